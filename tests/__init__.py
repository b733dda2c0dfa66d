"""
Test Suite
==========

Test suite matching the neon_preview/ package structure.

Test Categories:
- unit: Unit tests for individual components
- integration: HTTP contract tests against the FastAPI application
"""
