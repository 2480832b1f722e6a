"""Error taxonomy shared by the generation pipeline."""

from __future__ import annotations


class PlaceholderError(Exception):
    pass


class ValidationError(PlaceholderError):
    """Malformed or out-of-range request parameters (client error)."""


class RenderError(PlaceholderError):
    """The renderer could not produce an image for valid parameters."""


class StorageError(PlaceholderError):
    """A read or write against the persistent cache store failed."""
