"""Declarative detection rules applied by the fact extractor."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from fnmatch import fnmatchcase
from pathlib import PurePosixPath
from typing import Callable, Dict, List, Optional, Pattern, Sequence, Tuple, Union

from ..models import FactKind

Attributes = Dict[str, str]
NumberedLine = Tuple[int, str]
# A normalizer drops a match (None), keeps it, or fans it out into several facts.
Normalized = Union[None, Attributes, Sequence[Attributes]]


class ExtractionError(RuntimeError):
    """Raised when the scan root cannot be used at all."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{reason}: {path}")
        self.path = path
        self.reason = reason


class RuleInputError(ValueError):
    """Raised by rule preprocessors when a file cannot be interpreted."""


class Scope(str, Enum):
    """Which lines an attribute extractor searches."""

    MARKER = "marker"
    STATEMENT = "statement"
    WINDOW = "window"
    DECLARATION = "declaration"
    FILE = "file"
    PATH = "path"


class NameStrategy(str, Enum):
    """How the declared name of a matched construct is resolved."""

    ENCLOSING = "enclosing"
    FOLLOWING = "following"
    CAPTURE = "capture"
    FILE_STEM = "file-stem"


@dataclass(frozen=True)
class FileFilter:
    """Selects candidate files by suffix and optional filename/path globs."""

    suffixes: Tuple[str, ...]
    globs: Tuple[str, ...] = ()

    def matches(self, rel_path: str) -> bool:
        lowered = rel_path.lower()
        if self.suffixes and not lowered.endswith(tuple(s.lower() for s in self.suffixes)):
            return False
        if not self.globs:
            return True
        name = PurePosixPath(rel_path).name
        return any(fnmatchcase(name, glob) or fnmatchcase(rel_path, glob) for glob in self.globs)


@dataclass(frozen=True)
class AttributeExtractor:
    """Pulls one attribute value out of the text around a marker match.

    A required extractor that finds nothing yields a ``missing-attribute``
    warning. An optional one yields ``absent-optional-attribute`` instead,
    unless it is ``quiet``: absence is the normal case for it (a class without
    a base path, a fallback read only when another attribute is empty).
    """

    name: str
    patterns: Tuple[Pattern[str], ...]
    scope: Scope = Scope.MARKER
    before: int = 0
    after: int = 0
    optional: bool = False
    quiet: bool = False
    collect: bool = False

    @classmethod
    def of(cls, name: str, *patterns: str, **options: object) -> "AttributeExtractor":
        compiled = tuple(re.compile(pattern) for pattern in patterns)
        return cls(name=name, patterns=compiled, **options)  # type: ignore[arg-type]

    def apply(self, chunks: Sequence[str]) -> str:
        """Return the first non-empty capture across ``chunks`` (or all of them when collecting)."""
        collected: List[str] = []
        for chunk in chunks:
            for pattern in self.patterns:
                for match in pattern.finditer(chunk):
                    value = first_capture(match)
                    if not value:
                        continue
                    if not self.collect:
                        return value
                    if value not in collected:
                        collected.append(value)
        return ",".join(sorted(collected))


@dataclass(frozen=True)
class DetectionRule:
    """Declarative description of how to find one kind of construct."""

    kind: FactKind
    name: str
    files: FileFilter
    marker: Pattern[str]
    identity: str
    attributes: Tuple[AttributeExtractor, ...] = ()
    naming: NameStrategy = NameStrategy.ENCLOSING
    window: int = 5
    requires: Optional[Pattern[str]] = None
    normalize: Optional[Callable[[Attributes], Normalized]] = field(
        default=None, compare=False
    )
    preprocess: Optional[Callable[[str], List[NumberedLine]]] = field(
        default=None, compare=False
    )

    def applies_to(self, rel_path: str) -> bool:
        return self.files.matches(rel_path)

    def format_identity(self, name: str, attributes: Attributes) -> str:
        values = _BlankDefault(attributes)
        values["name"] = name
        return self.identity.format_map(values)


class _BlankDefault(dict):
    def __missing__(self, key: str) -> str:
        return ""


def first_capture(match: "re.Match[str]") -> str:
    """Return the first non-empty group of ``match``, or the whole match when it has none."""
    if match.re.groups == 0:
        return match.group(0).strip()
    for group in match.groups():
        if group and group.strip():
            return group.strip()
    return ""


__all__ = [
    "AttributeExtractor",
    "Attributes",
    "DetectionRule",
    "ExtractionError",
    "FileFilter",
    "NameStrategy",
    "Normalized",
    "NumberedLine",
    "RuleInputError",
    "Scope",
    "first_capture",
]
