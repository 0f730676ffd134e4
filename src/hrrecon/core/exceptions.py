"""hrrecon exception hierarchy.

Only conditions that abort a run or a backend call are exceptions. Per-line,
per-field and per-record problems are carried as issue models
(see ``hrrecon.models.issues``) so a run never dies on dirty input.
"""

from __future__ import annotations


class HRReconError(Exception):
    """Base exception for all hrrecon errors."""


class InputDirectoryError(HRReconError):
    """Input directory is missing or unreadable. Fatal."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read input directory {path!r}: {reason}")


class NoFilesClassifiedError(HRReconError):
    """No file in the input could be classified. Fatal."""

    def __init__(self, path: str, unclassified: int = 0) -> None:
        self.path = path
        self.unclassified = unclassified
        super().__init__(
            f"No source files classified in {path!r} ({unclassified} unclassified)"
        )


class OrganizationMappingError(HRReconError):
    """Organization mapping table is missing or malformed."""


class PersistenceError(HRReconError):
    """Employee store call failed."""

    def __init__(self, message: str, *, transient: bool = False) -> None:
        self.transient = transient
        super().__init__(message)


class CacheError(HRReconError):
    """Redis cache operation failed."""


class FileStoreError(HRReconError):
    """Report/file storage operation failed."""
