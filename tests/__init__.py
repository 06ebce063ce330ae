"""Mosaic test suite."""
