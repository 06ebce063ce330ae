"""Linked entry storage layer.

This package writes entries as one file per entry and replaces linked
components with name/checksum links that resolve back on read.
"""
