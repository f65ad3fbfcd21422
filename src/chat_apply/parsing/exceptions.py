"""Exceptions for response parsing."""


class ParsingError(Exception):
    """Base exception for all response parsing operations."""


class PathResolutionError(ParsingError):
    """Raised when a hinted path cannot be turned into a relative path."""
