"""Shared test doubles: in-memory persistence backends."""

from __future__ import annotations

from hrrecon.persistence.memory_backend import (
    MemoryCacheBackend,
    MemoryEmployeeStore,
    MemoryFileStore,
    MemoryOrganizationStore,
)

__all__ = ["MemoryCacheBackend", "MemoryEmployeeStore", "MemoryFileStore", "MemoryOrganizationStore"]
