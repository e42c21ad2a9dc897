"""Snapshot comparison: classify per-identity differences between two fact stores."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

from ..logging import get_logger
from ..models import ChangeCategory, DiffIncompatibilityWarning, FactChange, FactStore

_MIN_DIVERGENT_COUNT = 10


@dataclass(frozen=True)
class ClassificationResult:
    """Changes between two snapshots plus warnings about their comparability."""

    changes: Tuple[FactChange, ...] = field(default_factory=tuple)
    warnings: Tuple[DiffIncompatibilityWarning, ...] = field(default_factory=tuple)


class ChangeClassifier:
    """Computes Added/Modified/Removed changes keyed by fact identity.

    Location is advisory and ignored; a fact whose attributes are unchanged
    produces no change even if it moved to another file or line.
    """

    def __init__(self, max_count_ratio: float = 3.0) -> None:
        if max_count_ratio < 1.0:
            raise ValueError("max_count_ratio must be at least 1.0")
        self.max_count_ratio = max_count_ratio
        self.logger = get_logger("diff")

    def diff(self, old: FactStore, new: FactStore) -> List[FactChange]:
        changes: List[FactChange] = []
        for identity in old.identities() | new.identities():
            before = old.get(identity)
            after = new.get(identity)
            if before is None and after is not None:
                changes.append(
                    FactChange(identity, ChangeCategory.ADDED, after.kind, after=after)
                )
            elif after is None and before is not None:
                changes.append(
                    FactChange(identity, ChangeCategory.REMOVED, before.kind, before=before)
                )
            elif before is not None and after is not None and not before.same_attributes(after):
                changes.append(
                    FactChange(
                        identity,
                        ChangeCategory.MODIFIED,
                        after.kind,
                        before=before,
                        after=after,
                    )
                )
        changes.sort(key=lambda change: (change.kind.order, change.identity))
        self.logger.debug(
            "Classified %d changes between %d and %d facts", len(changes), len(old), len(new)
        )
        return changes

    def check(self, old: FactStore, new: FactStore) -> List[DiffIncompatibilityWarning]:
        """Flag snapshot pairs that look unrelated; never blocks the diff."""
        warnings: List[DiffIncompatibilityWarning] = []
        if old.root != new.root:
            warnings.append(
                DiffIncompatibilityWarning(
                    reason="root-mismatch",
                    message=f"previous snapshot was taken from {old.root}, current from {new.root}",
                )
            )
        smaller, larger = sorted((len(old), len(new)))
        if larger >= _MIN_DIVERGENT_COUNT and larger > self.max_count_ratio * smaller:
            warnings.append(
                DiffIncompatibilityWarning(
                    reason="fact-count-divergence",
                    message=(
                        f"fact counts differ sharply ({len(old)} before, {len(new)} now); "
                        "the snapshots may describe different codebases"
                    ),
                )
            )
        return warnings

    def classify(self, old: FactStore, new: FactStore) -> ClassificationResult:
        return ClassificationResult(
            changes=tuple(self.diff(old, new)),
            warnings=tuple(self.check(old, new)),
        )


__all__ = ["ChangeClassifier", "ClassificationResult"]
