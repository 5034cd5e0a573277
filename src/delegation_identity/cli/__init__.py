"""Command-line interface for delegation-identity."""
