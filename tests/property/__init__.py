# tests/property/__init__.py
"""Property-based tests for siemship.

Property-based testing validates invariants that must hold for ALL inputs,
not just the specific examples we think of.

Test categories:
- exporter/: request splitting limits, entry order, wire encoding determinism
"""
