"""Bundled static data."""
