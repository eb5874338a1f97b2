"""
modelstore test suite.

Tests are organized by layer:
    tests/unit/         Unit tests (tmp_path files only, fast)

Run all tests:
    pytest

Run with coverage:
    pytest --cov=modelstore
"""
