"""Persistence helpers for docfacts."""

from .snapshot import SnapshotStore

__all__ = ["SnapshotStore"]
