"""
Integration tests for collabsync.

These tests need a real Redis, provisioned through testcontainers, and
are skipped automatically when Docker or testcontainers is missing.

Run integration tests:
    pytest tests/integration/ -v -m redis

Skip integration tests:
    pytest tests/ -v -m "not integration"
"""
