"""Snapshot diffing and documentation impact mapping."""

from .classifier import ChangeClassifier, ClassificationResult
from .sections import ALL_SECTIONS, DEFAULT_IMPACT, SectionImpactMapper

__all__ = [
    "ALL_SECTIONS",
    "ChangeClassifier",
    "ClassificationResult",
    "DEFAULT_IMPACT",
    "SectionImpactMapper",
]
