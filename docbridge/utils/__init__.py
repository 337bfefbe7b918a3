"""Shared utilities for docbridge."""
