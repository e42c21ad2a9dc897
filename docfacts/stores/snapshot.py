"""Persistent JSON snapshots of extracted fact stores."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..logging import get_logger
from ..models import FactKind, FactStore, SourceFact, SourceLocation

_SNAPSHOT_VERSION = 1

logger = get_logger("snapshot")


class SnapshotStore:
    """Reads and writes the last extracted ``FactStore`` for incremental runs."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> Optional[FactStore]:
        """Return the stored snapshot, or ``None`` when it is missing or unusable."""
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Could not read snapshot %s: %s", self.path, exc)
            return None
        store = loads(text)
        if store is None:
            logger.warning("Ignoring invalid snapshot at %s", self.path)
        return store

    def save(self, store: FactStore) -> Path:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(dumps(store), encoding="utf-8")
        logger.debug("Wrote snapshot with %d facts to %s", len(store), self.path)
        return self.path


def dumps(store: FactStore) -> str:
    payload = {
        "version": _SNAPSHOT_VERSION,
        "root": store.root,
        "extracted_at": store.extracted_at,
        "facts": [_fact_to_dict(fact) for fact in store.sorted_facts()],
    }
    return json.dumps(payload, indent=2, sort_keys=True) + "\n"


def loads(text: str) -> Optional[FactStore]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict) or data.get("version") != _SNAPSHOT_VERSION:
        return None
    raw_facts = data.get("facts")
    if not isinstance(raw_facts, list):
        return None
    facts: List[SourceFact] = []
    for raw in raw_facts:
        fact = _fact_from_dict(raw)
        if fact is None:
            return None
        facts.append(fact)
    try:
        return FactStore.from_facts(
            str(data.get("root", "")),
            facts,
            extracted_at=str(data.get("extracted_at") or ""),
        )
    except ValueError:
        return None


def _fact_to_dict(fact: SourceFact) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "kind": fact.kind.value,
        "identity": fact.identity,
        # Attribute order is kept as a list of pairs; sort_keys would reorder a mapping.
        "attributes": [[key, value] for key, value in fact.attributes.items()],
    }
    if fact.location is not None:
        payload["location"] = {"path": fact.location.path, "line": fact.location.line}
    return payload


def _fact_from_dict(raw: Any) -> Optional[SourceFact]:
    if not isinstance(raw, dict):
        return None
    identity = raw.get("identity")
    pairs = raw.get("attributes")
    if not isinstance(identity, str) or not identity or not isinstance(pairs, list):
        return None
    try:
        kind = FactKind.parse(str(raw.get("kind", "")))
    except ValueError:
        return None
    attributes: Dict[str, str] = {}
    for pair in pairs:
        if not isinstance(pair, list) or len(pair) != 2:
            return None
        attributes[str(pair[0])] = str(pair[1])
    location = None
    raw_location = raw.get("location")
    if isinstance(raw_location, dict) and isinstance(raw_location.get("path"), str):
        line = raw_location.get("line")
        location = SourceLocation(raw_location["path"], line if isinstance(line, int) else None)
    return SourceFact(kind=kind, identity=identity, attributes=attributes, location=location)


__all__ = ["SnapshotStore", "dumps", "loads"]
