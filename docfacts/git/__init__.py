"""Git integration used to recover previous snapshots."""

from .history import GitHistory, HistoryError

__all__ = ["GitHistory", "HistoryError"]
