"""HTTP API for Pattern Lab."""
