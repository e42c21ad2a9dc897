"""Core data models shared across docfacts components."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional


class FactKind(str, Enum):
    """Kinds of structural elements detected in a source tree."""

    ENDPOINT = "endpoint"
    ENTITY = "entity"
    KAFKA_CONSUMER = "kafka-consumer"
    KAFKA_PRODUCER = "kafka-producer"
    FEIGN_CLIENT = "feign-client"
    HTTP_CLIENT = "http-client"
    EXCEPTION_CLASS = "exception-class"
    CONFIG_PROPERTY = "config-property"
    SERVICE_CLASS = "service-class"

    @classmethod
    def parse(cls, value: "str | FactKind") -> "FactKind":
        """Accept `endpoint`, `Endpoint`, `kafka_consumer`, `KafkaConsumer`, ..."""
        if isinstance(value, FactKind):
            return value
        wanted = _squash(value)
        for member in cls:
            if _squash(member.value) == wanted or _squash(member.name) == wanted:
                return member
        raise ValueError(f"Unknown fact kind: {value}")

    @property
    def order(self) -> int:
        return _KIND_ORDER[self]


class ChangeCategory(str, Enum):
    """Classification of a difference between two snapshots."""

    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"

    @classmethod
    def parse(cls, value: "str | ChangeCategory") -> "ChangeCategory":
        if isinstance(value, ChangeCategory):
            return value
        wanted = _squash(value)
        for member in cls:
            if member.value == wanted:
                return member
        raise ValueError(f"Unknown change category: {value}")


def _squash(value: str) -> str:
    return str(value).strip().lower().replace("-", "").replace("_", "").replace(" ", "")


_KIND_ORDER: Dict[FactKind, int] = {kind: index for index, kind in enumerate(FactKind)}


@dataclass(frozen=True)
class SourceLocation:
    """Advisory position of a fact; never part of its identity."""

    path: str
    line: Optional[int] = None

    def __str__(self) -> str:
        return f"{self.path}:{self.line}" if self.line is not None else self.path


@dataclass(frozen=True)
class SourceFact:
    """One detected structural element of the scanned codebase."""

    kind: FactKind
    identity: str
    attributes: Mapping[str, str] = field(default_factory=dict)
    location: Optional[SourceLocation] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not self.identity:
            raise ValueError("SourceFact identity must not be empty")
        object.__setattr__(self, "kind", FactKind.parse(self.kind))
        object.__setattr__(
            self,
            "attributes",
            MappingProxyType({str(key): str(value) for key, value in self.attributes.items()}),
        )

    def same_attributes(self, other: "SourceFact") -> bool:
        return dict(self.attributes) == dict(other.attributes)


@dataclass(frozen=True)
class FactStore:
    """Immutable snapshot of every fact extracted in one run, keyed by identity."""

    root: str
    extracted_at: str
    facts: Mapping[str, SourceFact] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for identity, fact in self.facts.items():
            if identity != fact.identity:
                raise ValueError(f"Fact keyed as '{identity}' declares identity '{fact.identity}'")
        object.__setattr__(self, "facts", MappingProxyType(dict(self.facts)))

    @classmethod
    def from_facts(
        cls,
        root: str,
        facts: Iterable[SourceFact],
        *,
        extracted_at: str | None = None,
    ) -> "FactStore":
        """Build a store, rejecting duplicate identities."""
        mapping: Dict[str, SourceFact] = {}
        for fact in facts:
            if fact.identity in mapping:
                raise ValueError(f"Duplicate fact identity: {fact.identity}")
            mapping[fact.identity] = fact
        return cls(root=root, extracted_at=extracted_at or utc_timestamp(), facts=mapping)

    def __len__(self) -> int:
        return len(self.facts)

    def __contains__(self, identity: object) -> bool:
        return identity in self.facts

    def __iter__(self) -> Iterator[SourceFact]:
        return iter(self.sorted_facts())

    def get(self, identity: str) -> Optional[SourceFact]:
        return self.facts.get(identity)

    def identities(self) -> FrozenSet[str]:
        return frozenset(self.facts)

    def sorted_facts(self) -> List[SourceFact]:
        return sorted(self.facts.values(), key=lambda fact: (fact.kind.order, fact.identity))

    def of_kind(self, kind: "FactKind | str") -> List[SourceFact]:
        wanted = FactKind.parse(kind)
        return [fact for fact in self.sorted_facts() if fact.kind is wanted]

    def count_by_kind(self) -> Dict[FactKind, int]:
        counts: Dict[FactKind, int] = {kind: 0 for kind in FactKind}
        for fact in self.facts.values():
            counts[fact.kind] += 1
        return counts

    def restrict(self, kinds: Iterable["FactKind | str"]) -> "FactStore":
        """Return a new store holding only facts of the given kinds."""
        wanted = {FactKind.parse(kind) for kind in kinds}
        kept = {identity: fact for identity, fact in self.facts.items() if fact.kind in wanted}
        return FactStore(root=self.root, extracted_at=self.extracted_at, facts=kept)


@dataclass(frozen=True)
class FactChange:
    """A classified difference for one identity between two snapshots."""

    identity: str
    category: ChangeCategory
    kind: FactKind
    before: Optional[SourceFact] = None
    after: Optional[SourceFact] = None

    def __post_init__(self) -> None:
        category = ChangeCategory.parse(self.category)
        object.__setattr__(self, "category", category)
        object.__setattr__(self, "kind", FactKind.parse(self.kind))
        if category is ChangeCategory.ADDED and (self.before is not None or self.after is None):
            raise ValueError("Added changes carry only an 'after' fact")
        if category is ChangeCategory.REMOVED and (self.after is not None or self.before is None):
            raise ValueError("Removed changes carry only a 'before' fact")
        if category is ChangeCategory.MODIFIED:
            if self.before is None or self.after is None:
                raise ValueError("Modified changes carry both 'before' and 'after' facts")
            if self.before.same_attributes(self.after):
                raise ValueError("Modified changes require an attribute difference")

    def changed_attributes(self) -> List[str]:
        """Return attribute names whose values differ between before and after."""
        before = dict(self.before.attributes) if self.before else {}
        after = dict(self.after.attributes) if self.after else {}
        keys = list(before) + [key for key in after if key not in before]
        return [key for key in keys if before.get(key) != after.get(key)]


@dataclass(frozen=True)
class RuleApplicationWarning:
    """Non-fatal diagnostic raised while applying detection rules."""

    kind: Optional[FactKind]
    reason: str
    message: str
    identity: Optional[str] = None
    location: Optional[SourceLocation] = None

    def __str__(self) -> str:
        where = f" ({self.location})" if self.location else ""
        return f"{self.reason}: {self.message}{where}"


@dataclass(frozen=True)
class DiffIncompatibilityWarning:
    """Non-fatal diagnostic about two snapshots that may be unrelated."""

    reason: str
    message: str

    def __str__(self) -> str:
        return f"{self.reason}: {self.message}"


def utc_timestamp() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


__all__ = [
    "ChangeCategory",
    "DiffIncompatibilityWarning",
    "FactChange",
    "FactKind",
    "FactStore",
    "RuleApplicationWarning",
    "SourceFact",
    "SourceLocation",
    "utc_timestamp",
]
