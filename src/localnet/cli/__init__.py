"""Command-line interface for localnet."""
