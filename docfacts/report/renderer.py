"""Human-readable and JSON renderings of a session outcome."""

from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import Any, Dict, Iterable, List, Tuple

from jinja2 import Environment, FileSystemLoader

from ..models import ChangeCategory, FactChange, FactKind, SourceFact
from ..session import SessionOutcome

_PAYLOAD_VERSION = 1

_KIND_NOUNS: Dict[FactKind, Tuple[str, str]] = {
    FactKind.ENDPOINT: ("endpoint", "endpoints"),
    FactKind.ENTITY: ("entity", "entities"),
    FactKind.KAFKA_CONSUMER: ("Kafka consumer", "Kafka consumers"),
    FactKind.KAFKA_PRODUCER: ("Kafka producer", "Kafka producers"),
    FactKind.FEIGN_CLIENT: ("Feign client", "Feign clients"),
    FactKind.HTTP_CLIENT: ("HTTP client", "HTTP clients"),
    FactKind.EXCEPTION_CLASS: ("exception", "exceptions"),
    FactKind.CONFIG_PROPERTY: ("configuration property", "configuration properties"),
    FactKind.SERVICE_CLASS: ("service", "services"),
}

_CATEGORY_ADJECTIVES: Dict[ChangeCategory, str] = {
    ChangeCategory.ADDED: "new",
    ChangeCategory.MODIFIED: "modified",
    ChangeCategory.REMOVED: "removed",
}


def kind_noun(kind: FactKind, count: int) -> str:
    singular, plural = _KIND_NOUNS[kind]
    return singular if count == 1 else plural


def summarize_changes(changes: Iterable[FactChange]) -> List[str]:
    """Return phrases such as ``"2 new endpoints"`` ordered by category then kind."""
    counts = Counter((change.category, change.kind) for change in changes)
    phrases: List[str] = []
    for category in ChangeCategory:
        for kind in FactKind:
            count = counts.get((category, kind), 0)
            if count:
                phrases.append(f"{count} {_CATEGORY_ADJECTIVES[category]} {kind_noun(kind, count)}")
    return phrases


class ReportRenderer:
    """Renders session summaries from Jinja templates."""

    def __init__(self, templates_dir: Path | None = None) -> None:
        self.templates_dir = templates_dir or Path(__file__).with_name("templates")
        directories = [str(self.templates_dir)]
        default_dir = str(Path(__file__).with_name("templates"))
        if default_dir not in directories:
            directories.append(default_dir)
        self._env = Environment(
            loader=FileSystemLoader(directories),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )

    def render(self, outcome: SessionOutcome, template: str = "summary.j2") -> str:
        return self._env.get_template(template).render(**self.build_context(outcome))

    def build_context(self, outcome: SessionOutcome) -> Dict[str, Any]:
        store = outcome.store
        counts: List[Tuple[str, int]] = []
        if store is not None:
            counts = [
                (kind_noun(kind, count), count)
                for kind, count in store.count_by_kind().items()
                if count
            ]
        groups: List[Dict[str, Any]] = []
        for category in ChangeCategory:
            items = [
                {
                    "identity": change.identity,
                    "changed": change.changed_attributes()
                    if category is ChangeCategory.MODIFIED
                    else [],
                }
                for change in outcome.changes
                if change.category is category
            ]
            if items:
                groups.append({"category": category.value, "items": items})
        inventory = outcome.inventory
        return {
            "status": outcome.status.value,
            "requested_mode": outcome.requested_mode.value,
            "mode": outcome.mode.value,
            "root": str(outcome.root),
            "error": str(outcome.error) if outcome.error else None,
            "fallback_reason": outcome.fallback_reason,
            "previous_source": outcome.previous_source,
            "total": len(store) if store is not None else 0,
            "counts": counts,
            "change_summary": summarize_changes(outcome.changes),
            "change_groups": groups,
            "sections": list(outcome.impacted_sections),
            "warnings": [str(warning) for warning in outcome.warnings],
            "diff_warnings": [str(warning) for warning in outcome.diff_warnings],
            "inventory": inventory,
            "missing_docs": inventory.missing() if inventory else [],
            "profile": outcome.profile,
            "snapshot_path": str(outcome.snapshot_path) if outcome.snapshot_path else None,
        }


def to_payload(outcome: SessionOutcome) -> Dict[str, Any]:
    """Build the JSON handoff consumed by the documentation writer."""
    store = outcome.store
    return {
        "version": _PAYLOAD_VERSION,
        "status": outcome.status.value,
        "requested_mode": outcome.requested_mode.value,
        "mode": outcome.mode.value,
        "root": str(outcome.root),
        "error": {"path": outcome.error.path, "reason": outcome.error.reason}
        if outcome.error
        else None,
        "fallback_reason": outcome.fallback_reason,
        "previous_source": outcome.previous_source,
        "extracted_at": store.extracted_at if store is not None else None,
        "facts": [_fact_payload(fact) for fact in store.sorted_facts()] if store is not None else [],
        "changes": [_change_payload(change) for change in outcome.changes],
        "summary": summarize_changes(outcome.changes),
        "impacted_sections": list(outcome.impacted_sections),
        "warnings": [
            {
                "kind": warning.kind.value if warning.kind else None,
                "reason": warning.reason,
                "message": warning.message,
                "identity": warning.identity,
                "location": str(warning.location) if warning.location else None,
            }
            for warning in outcome.warnings
        ],
        "diff_warnings": [
            {"reason": warning.reason, "message": warning.message}
            for warning in outcome.diff_warnings
        ],
        "inventory": outcome.inventory.to_dict() if outcome.inventory else None,
        "profile": outcome.profile.to_dict() if outcome.profile else None,
    }


def _fact_payload(fact: SourceFact) -> Dict[str, Any]:
    return {
        "kind": fact.kind.value,
        "identity": fact.identity,
        "attributes": dict(fact.attributes),
        "location": str(fact.location) if fact.location else None,
    }


def _change_payload(change: FactChange) -> Dict[str, Any]:
    return {
        "identity": change.identity,
        "kind": change.kind.value,
        "category": change.category.value,
        "before": dict(change.before.attributes) if change.before else None,
        "after": dict(change.after.attributes) if change.after else None,
        "changed_attributes": change.changed_attributes() if change.before and change.after else [],
    }


__all__ = ["ReportRenderer", "kind_noun", "summarize_changes", "to_payload"]
