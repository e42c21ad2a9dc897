"""Static impact table from (fact kind, change category) to documentation sections."""

from __future__ import annotations

from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from ..models import ChangeCategory, FactChange, FactKind

CLAUDE_MD = "claude-md"
API_REFERENCE = "api-reference"
DOMAIN_MODEL = "domain-model"
DATABASE_SCHEMA = "database-schema"
BUSINESS_RULES = "business-rules"
INTEGRATION_POINTS = "integration-points"
EXCEPTION_HANDLING = "exception-handling"
CONFIGURATION = "configuration"
RULES_DOMAIN = "rules-domain"
RULES_ARCHITECTURE = "rules-architecture"
DOCS_DOMAIN = "docs-domain"

ALL_SECTIONS: Tuple[str, ...] = (
    CLAUDE_MD,
    API_REFERENCE,
    DOMAIN_MODEL,
    DATABASE_SCHEMA,
    BUSINESS_RULES,
    INTEGRATION_POINTS,
    EXCEPTION_HANDLING,
    CONFIGURATION,
    RULES_DOMAIN,
    RULES_ARCHITECTURE,
    DOCS_DOMAIN,
)

ImpactTable = Mapping[Tuple[FactKind, ChangeCategory], FrozenSet[str]]

_ADDED = ChangeCategory.ADDED
_MODIFIED = ChangeCategory.MODIFIED
_REMOVED = ChangeCategory.REMOVED


def _uniform(kind: FactKind, *sections: str) -> Dict[Tuple[FactKind, ChangeCategory], FrozenSet[str]]:
    return {(kind, category): frozenset(sections) for category in ChangeCategory}


_ENTITY_SECTIONS = frozenset({DOMAIN_MODEL, DATABASE_SCHEMA, RULES_DOMAIN, DOCS_DOMAIN})

DEFAULT_IMPACT: ImpactTable = MappingProxyType(
    {
        (FactKind.ENDPOINT, _ADDED): frozenset({API_REFERENCE, CLAUDE_MD}),
        (FactKind.ENDPOINT, _MODIFIED): frozenset({API_REFERENCE, CLAUDE_MD}),
        (FactKind.ENDPOINT, _REMOVED): frozenset({API_REFERENCE}),
        (FactKind.ENTITY, _ADDED): _ENTITY_SECTIONS,
        (FactKind.ENTITY, _MODIFIED): _ENTITY_SECTIONS,
        (FactKind.ENTITY, _REMOVED): frozenset({DOMAIN_MODEL, DATABASE_SCHEMA}),
        **_uniform(FactKind.KAFKA_CONSUMER, INTEGRATION_POINTS, RULES_ARCHITECTURE),
        **_uniform(FactKind.KAFKA_PRODUCER, INTEGRATION_POINTS, RULES_ARCHITECTURE),
        **_uniform(FactKind.FEIGN_CLIENT, INTEGRATION_POINTS, CLAUDE_MD),
        **_uniform(FactKind.HTTP_CLIENT, INTEGRATION_POINTS, CLAUDE_MD),
        **_uniform(FactKind.EXCEPTION_CLASS, EXCEPTION_HANDLING),
        (FactKind.CONFIG_PROPERTY, _ADDED): frozenset({CONFIGURATION}),
        (FactKind.CONFIG_PROPERTY, _MODIFIED): frozenset({CONFIGURATION}),
        # Removed properties leave stale config docs, which are best-effort.
        (FactKind.CONFIG_PROPERTY, _REMOVED): frozenset(),
        **_uniform(FactKind.SERVICE_CLASS, BUSINESS_RULES),
    }
)


class SectionImpactMapper:
    """Resolves which documentation sections a set of changes invalidates."""

    def __init__(self, overrides: Optional[Mapping[str, Mapping[str, Sequence[str]]]] = None) -> None:
        table: Dict[Tuple[FactKind, ChangeCategory], FrozenSet[str]] = dict(DEFAULT_IMPACT)
        for kind_name, categories in (overrides or {}).items():
            kind = FactKind.parse(kind_name)
            for category_name, sections in categories.items():
                category = ChangeCategory.parse(category_name)
                table[(kind, category)] = frozenset(str(section) for section in sections)
        self._table: ImpactTable = MappingProxyType(table)

    @property
    def table(self) -> ImpactTable:
        return self._table

    def known_sections(self) -> List[str]:
        extra: Set[str] = set()
        for sections in self._table.values():
            extra.update(section for section in sections if section not in ALL_SECTIONS)
        return [*ALL_SECTIONS, *sorted(extra)]

    def sections_for(self, kind: "FactKind | str", category: "ChangeCategory | str") -> FrozenSet[str]:
        return self._table.get((FactKind.parse(kind), ChangeCategory.parse(category)), frozenset())

    def map_sections(self, changes: Iterable[FactChange]) -> FrozenSet[str]:
        impacted: Set[str] = set()
        for change in changes:
            impacted.update(self.sections_for(change.kind, change.category))
        return frozenset(impacted)

    def kinds_for(self, sections: Iterable[str]) -> List[FactKind]:
        """Return the kinds whose changes can touch any of ``sections``.

        Raises ``ValueError`` for section ids the table does not know.
        """
        wanted = set(sections)
        unknown = wanted.difference(self.known_sections())
        if unknown:
            raise ValueError(f"Unknown documentation sections: {', '.join(sorted(unknown))}")
        return [
            kind
            for kind in FactKind
            if any(self._table.get((kind, category), frozenset()) & wanted for category in ChangeCategory)
        ]

    def ordered(self, sections: Iterable[str]) -> List[str]:
        known = self.known_sections()
        return sorted(set(sections), key=lambda section: (_position(known, section), section))


def _position(known: Sequence[str], section: str) -> int:
    try:
        return known.index(section)
    except ValueError:
        return len(known)


__all__ = [
    "ALL_SECTIONS",
    "DEFAULT_IMPACT",
    "ImpactTable",
    "SectionImpactMapper",
]
