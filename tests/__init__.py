"""
dgraph-acl test suite.

Tests are organized by layer:
    tests/unit/         Unit tests (no network, fakes from tests/fakes.py)
    tests/integration/  CLI tests through click's CliRunner

Run all tests:
    pytest

Run unit tests only:
    pytest tests/unit/
"""
