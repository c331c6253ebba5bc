# tests/fixtures/__init__.py
"""Shared test factories for siemship tests."""
