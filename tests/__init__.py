"""Test suite for the pytest-stepwise package.

This package contains unit and integration tests validating step
orchestration, reporting sinks, test data loading, page objects and
pytest integration.
"""
