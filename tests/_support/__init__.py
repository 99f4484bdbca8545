"""
Test support utilities for localnet tests.

Helpers that are not pytest fixtures but are shared across test modules.
"""
