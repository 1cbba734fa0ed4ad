"""Integration tests for the vote pipeline.

These tests run the worker against real Redis and PostgreSQL servers,
located through REDIS_HOST/REDIS_PORT and POSTGRES_HOST/POSTGRES_PORT.
Tests are skipped when either service is unreachable.
"""
