"""Shared utilities for Pattern Lab."""
