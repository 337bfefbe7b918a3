"""Configuration loading for docbridge."""
