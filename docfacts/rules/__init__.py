"""Detection rule definitions and discovery utilities."""

from __future__ import annotations

from importlib import metadata
from typing import Iterable, List, Sequence, Set

from ..models import FactKind
from .base import (
    AttributeExtractor,
    DetectionRule,
    ExtractionError,
    FileFilter,
    NameStrategy,
    RuleInputError,
    Scope,
)
from .config_files import config_rules
from .spring import spring_rules

_ENTRY_POINT_GROUP = "docfacts.rules"


def builtin_rules(window: int = 5) -> List[DetectionRule]:
    return [*spring_rules(window), *config_rules(window)]


def discover_rules(
    kinds: Sequence["FactKind | str"] | None = None,
    *,
    window: int = 5,
) -> List[DetectionRule]:
    """Return built-in and plugin rules, optionally narrowed to ``kinds``.

    Plugins register under the ``docfacts.rules`` entry-point group; an entry may
    be a rule, an iterable of rules, or a callable returning either.
    """
    wanted: Set[FactKind] | None = None
    if kinds is not None:
        wanted = {FactKind.parse(kind) for kind in kinds}

    rules: List[DetectionRule] = []
    seen: Set[str] = set()
    for rule in [*builtin_rules(window), *_plugin_rules()]:
        if rule.name in seen:
            continue
        seen.add(rule.name)
        if wanted is not None and rule.kind not in wanted:
            continue
        rules.append(rule)
    return rules


def _plugin_rules() -> List[DetectionRule]:
    rules: List[DetectionRule] = []
    for entry in _iter_entry_points():
        try:
            loaded = entry.load()
        except Exception as exc:  # pragma: no cover - depends on installed plugins
            raise RuntimeError(f"Failed to load rule entry point '{entry.name}': {exc}") from exc
        rules.extend(_coerce_rules(entry.name, loaded))
    return rules


def _coerce_rules(name: str, obj: object) -> List[DetectionRule]:
    if isinstance(obj, DetectionRule):
        return [obj]
    if callable(obj):
        return _coerce_rules(name, obj())
    if isinstance(obj, Iterable):
        items = list(obj)
        if all(isinstance(item, DetectionRule) for item in items):
            return items
    raise TypeError(f"Rule entry point '{name}' did not provide DetectionRule instances")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=_ENTRY_POINT_GROUP)


__all__ = [
    "AttributeExtractor",
    "DetectionRule",
    "ExtractionError",
    "FileFilter",
    "NameStrategy",
    "RuleInputError",
    "Scope",
    "builtin_rules",
    "discover_rules",
]
