"""Exceptions for reconciling parsed items against workspace files."""


class ReconciliationError(Exception):
    """Base exception for all reconciliation operations."""


class ConflictMarkerError(ReconciliationError):
    """Raised when a conflict's original side cannot be found in the file."""


class CompletionError(ReconciliationError):
    """Raised when a completion cannot be spliced into its target file."""


class WorkspaceError(ReconciliationError):
    """Raised when no workspace root is available to resolve paths against."""


class UnsafePathError(WorkspaceError):
    """Raised when a path escapes its workspace root."""
