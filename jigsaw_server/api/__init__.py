"""HTTP API for Jigsaw Server."""
