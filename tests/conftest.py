"""Shared pytest configuration for the vote pipeline tests."""


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers",
        "docker: mark test as requiring running Redis and PostgreSQL services"
    )
    config.addinivalue_line(
        "markers",
        "integration: mark test as exercising real external services"
    )
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow running"
    )
