"""Jigsaw Server - verified-fragment reconstruction pipeline."""

__version__ = "1.0.0"
