"""Batch-level errors raised by the pipeline entry points."""


class MalformedInputError(ValueError):
    """Raised when a batch cannot be processed as submitted (duplicate or empty ids)."""
