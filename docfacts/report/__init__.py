"""Session report rendering."""

from .renderer import ReportRenderer, summarize_changes, to_payload

__all__ = ["ReportRenderer", "summarize_changes", "to_payload"]
