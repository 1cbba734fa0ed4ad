"""Read-only HTTP API exposing the per-choice vote tally."""

__version__ = '2.0.0'
