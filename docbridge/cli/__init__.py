"""Command-line interface for docbridge."""
