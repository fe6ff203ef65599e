"""Configuration: settings, logging and Redis."""
