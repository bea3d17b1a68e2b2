"""
Property-based tests for certpress compression.

This package contains Hypothesis-based property tests that verify the
size and attempt-count invariants of the compressor across random asset
sizes, budgets and encoder behaviour.
"""
