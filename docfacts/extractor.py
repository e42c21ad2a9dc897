"""Rule-driven fact extraction over a source tree."""

from __future__ import annotations

import os
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import cached_property, partial
from pathlib import Path, PurePosixPath
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .logging import get_logger
from .models import FactKind, FactStore, RuleApplicationWarning, SourceFact, SourceLocation
from .repo_scanner import RepoScanner
from .rules.base import (
    AttributeExtractor,
    Attributes,
    DetectionRule,
    ExtractionError,
    NameStrategy,
    NumberedLine,
    RuleInputError,
    Scope,
)

_DECLARATION_RE = re.compile(
    r"^\s*(?:@\w+(?:\([^)]*\))?\s+)*"
    r"(?:(?:public|protected|private|internal|abstract|final|static|sealed|open|data|"
    r"enum|annotation|inner|value)\s+)*"
    r"(?:class|interface|enum|record|object|@interface)\s+(?P<name>[A-Za-z_]\w*)"
)
_STRING_RE = re.compile(r'"(?:\\.|[^"\\])*"')
_CHAR_RE = re.compile(r"'(?:\\.|[^'\\])*'")
_COMMENT_PREFIXES = ("//", "/*", "*", "#", "!")

_FOLLOWING_LOOKAHEAD = 15
_HEADER_LIMIT = 10
_ANNOTATION_BLOCK_LIMIT = 15

FileResult = Tuple[List[SourceFact], List[RuleApplicationWarning]]


@dataclass(frozen=True)
class ExtractionResult:
    """A fact store together with the non-fatal diagnostics of its extraction."""

    store: FactStore
    warnings: Tuple[RuleApplicationWarning, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class _Declaration:
    name: str
    start: int
    end: int


class _SourceView:
    """Numbered lines of one file (raw or preprocessed) plus derived structure."""

    def __init__(self, rel_path: str, numbered: Sequence[NumberedLine], *, raw: bool = True) -> None:
        self.rel_path = rel_path
        self.numbers = [number for number, _ in numbered]
        self.lines = [text for _, text in numbered]
        self.raw = raw

    @cached_property
    def stem(self) -> str:
        return PurePosixPath(self.rel_path).stem

    @cached_property
    def declarations(self) -> List[_Declaration]:
        found: List[_Declaration] = []
        for index, line in enumerate(self.lines):
            if _is_comment(line):
                continue
            match = _DECLARATION_RE.match(line)
            if match:
                found.append(_Declaration(match.group("name"), index, self._block_end(index)))
        return found

    def _block_end(self, start: int) -> int:
        depth = 0
        opened = False
        for index in range(start, len(self.lines)):
            if not opened and index > start and _DECLARATION_RE.match(self.lines[index]):
                # Body-less declaration (Kotlin data class, Java record header).
                return start
            code = _strip_literals(self.lines[index])
            for char in code:
                if char == "{":
                    depth += 1
                    opened = True
                elif char == "}":
                    depth -= 1
                    if opened and depth <= 0:
                        return index
            if not opened and index - start >= _HEADER_LIMIT:
                return start
        return len(self.lines) - 1 if opened else start

    def enclosing(self, index: int) -> Optional[_Declaration]:
        innermost: Optional[_Declaration] = None
        for declaration in self.declarations:
            if declaration.start > index:
                break
            if declaration.end >= index:
                innermost = declaration
        return innermost

    def following(self, index: int) -> Optional[_Declaration]:
        for declaration in self.declarations:
            if index <= declaration.start <= index + _FOLLOWING_LOOKAHEAD:
                return declaration
            if declaration.start > index + _FOLLOWING_LOOKAHEAD:
                break
        return None

    # ------------------------------------------------------------------
    # Attribute scopes

    def chunks(
        self,
        extractor: AttributeExtractor,
        index: int,
        window: int,
        declaration: Optional[_Declaration],
    ) -> List[str]:
        scope = extractor.scope
        if scope is Scope.MARKER:
            return [self.lines[index]]
        if scope is Scope.STATEMENT:
            return [self._statement(index, window)]
        if scope is Scope.WINDOW:
            return self._window(index, min(extractor.before, window), min(extractor.after, window))
        if scope is Scope.DECLARATION:
            return [self._declaration_block(declaration)] if declaration else []
        if scope is Scope.FILE:
            return list(self.lines)
        if scope is Scope.PATH:
            return [self.rel_path]
        raise ValueError(f"Unsupported attribute scope: {scope}")

    def _statement(self, index: int, window: int) -> str:
        parts = [self.lines[index].strip()]
        depth = _paren_balance(self.lines[index])
        cursor = index
        while depth > 0 and cursor < index + window and cursor + 1 < len(self.lines):
            cursor += 1
            parts.append(self.lines[cursor].strip())
            depth += _paren_balance(self.lines[cursor])
        return " ".join(parts)

    def _window(self, index: int, before: int, after: int) -> List[str]:
        selected = [self.lines[index]]
        selected.extend(self.lines[index + 1 : index + 1 + after])
        for offset in range(1, before + 1):
            if index - offset < 0:
                break
            selected.append(self.lines[index - offset])
        return selected

    def _declaration_block(self, declaration: _Declaration) -> str:
        top = declaration.start
        for _ in range(_ANNOTATION_BLOCK_LIMIT):
            if top == 0:
                break
            previous = self.lines[top - 1].strip()
            if previous.endswith((";", "{", "}", "*/")) or previous.startswith(
                ("import ", "package ")
            ):
                break
            top -= 1
        return " ".join(line.strip() for line in self.lines[top : declaration.start + 1])


class FactExtractor:
    """Applies detection rules to every candidate file under a root directory."""

    def __init__(self, scanner: RepoScanner | None = None, workers: int = 1) -> None:
        self.scanner = scanner or RepoScanner()
        self.workers = max(1, workers)
        self.logger = get_logger("extractor")

    def extract(self, root: str | Path, rules: Iterable[DetectionRule]) -> FactStore:
        return self.extract_with_warnings(root, rules).store

    def extract_with_warnings(
        self,
        root: str | Path,
        rules: Iterable[DetectionRule],
        *,
        root_label: str | None = None,
    ) -> ExtractionResult:
        """Extract every fact under ``root``; only an unusable root raises."""
        root_path = _validate_root(root)
        rule_list = list(rules)
        self.logger.debug("Extracting %d rules under %s", len(rule_list), root_path)

        candidates = (
            rel_path
            for rel_path in self.scanner.iter_files(root_path)
            if any(rule.applies_to(rel_path) for rule in rule_list)
        )
        scan = partial(_scan_file, root_path, rule_list)
        if self.workers > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                results = list(pool.map(scan, candidates))
        else:
            results = [scan(rel_path) for rel_path in candidates]

        facts: Dict[str, SourceFact] = {}
        warnings: List[RuleApplicationWarning] = []
        for file_facts, file_warnings in results:
            warnings.extend(file_warnings)
            for fact in file_facts:
                existing = facts.get(fact.identity)
                if existing is None:
                    facts[fact.identity] = fact
                    continue
                if existing.kind is fact.kind and existing.same_attributes(fact):
                    continue
                warnings.append(
                    RuleApplicationWarning(
                        kind=fact.kind,
                        reason="identity-collision",
                        message=(
                            f"{fact.identity} already extracted from {existing.location}; "
                            "keeping the first definition"
                        ),
                        identity=fact.identity,
                        location=fact.location,
                    )
                )

        store = FactStore.from_facts(root_label or str(root_path), facts.values())
        self.logger.info(
            "Extracted %d facts from %d candidate files (%d warnings)",
            len(store),
            len(results),
            len(warnings),
        )
        return ExtractionResult(store=store, warnings=tuple(warnings))


def _validate_root(root: str | Path) -> Path:
    root_path = Path(root).expanduser()
    if not root_path.exists():
        raise ExtractionError(str(root), "root does not exist")
    if not root_path.is_dir():
        raise ExtractionError(str(root), "root is not a directory")
    if not os.access(root_path, os.R_OK | os.X_OK):
        raise ExtractionError(str(root), "root is not readable")
    return root_path.resolve()


def _scan_file(root: Path, rules: Sequence[DetectionRule], rel_path: str) -> FileResult:
    applicable = [rule for rule in rules if rule.applies_to(rel_path)]
    try:
        text = (root / rel_path).read_text(encoding="utf-8", errors="ignore")
    except OSError as exc:
        warning = RuleApplicationWarning(
            kind=applicable[0].kind if applicable else None,
            reason="unreadable-file",
            message=f"could not read file: {exc.strerror or exc}",
            location=SourceLocation(rel_path),
        )
        return [], [warning]

    raw_view: Optional[_SourceView] = None
    facts: List[SourceFact] = []
    warnings: List[RuleApplicationWarning] = []
    for rule in applicable:
        if rule.requires is not None and not rule.requires.search(text):
            continue
        if rule.preprocess is not None:
            try:
                view = _SourceView(rel_path, rule.preprocess(text), raw=False)
            except RuleInputError as exc:
                warnings.append(
                    RuleApplicationWarning(
                        kind=rule.kind,
                        reason="unparseable-file",
                        message=f"{rule.name}: {exc}",
                        location=SourceLocation(rel_path),
                    )
                )
                continue
        else:
            if raw_view is None:
                raw_view = _SourceView(rel_path, list(enumerate(text.splitlines(), start=1)))
            view = raw_view
        _apply_rule(rule, view, facts, warnings)
    return facts, warnings


def _apply_rule(
    rule: DetectionRule,
    view: _SourceView,
    facts: List[SourceFact],
    warnings: List[RuleApplicationWarning],
) -> None:
    for index, line in enumerate(view.lines):
        if view.raw and _is_comment(line):
            continue
        match = rule.marker.search(line)
        if match is None:
            continue

        name, declaration = _resolve_name(rule, view, index, match)
        raw: Attributes = {}
        for extractor in rule.attributes:
            raw[extractor.name] = extractor.apply(
                view.chunks(extractor, index, rule.window, declaration)
            )

        location = SourceLocation(view.rel_path, view.numbers[index])
        for attributes in _normalized(rule, raw):
            identity = rule.format_identity(name, attributes)
            warnings.extend(_attribute_warnings(rule, raw, attributes, identity, location))
            facts.append(
                SourceFact(
                    kind=rule.kind, identity=identity, attributes=attributes, location=location
                )
            )


def _normalized(rule: DetectionRule, raw: Attributes) -> List[Attributes]:
    if rule.normalize is None:
        return [raw]
    result = rule.normalize(dict(raw))
    if result is None:
        return []
    if isinstance(result, Mapping):
        return [dict(result)]
    return [dict(item) for item in result]


def _attribute_warnings(
    rule: DetectionRule,
    raw: Attributes,
    attributes: Attributes,
    identity: str,
    location: SourceLocation,
) -> List[RuleApplicationWarning]:
    found: List[RuleApplicationWarning] = []
    for extractor in rule.attributes:
        if not extractor.optional:
            if not raw.get(extractor.name):
                reason = "missing-attribute"
                message = f"{rule.name}: no value found for '{extractor.name}' in {identity}"
            else:
                continue
        elif extractor.quiet or attributes.get(extractor.name, raw.get(extractor.name)):
            continue
        else:
            reason = "absent-optional-attribute"
            message = f"{rule.name}: optional '{extractor.name}' not declared for {identity}"
        found.append(
            RuleApplicationWarning(
                kind=rule.kind,
                reason=reason,
                message=message,
                identity=identity,
                location=location,
            )
        )
    return found


def _resolve_name(
    rule: DetectionRule,
    view: _SourceView,
    index: int,
    match: "re.Match[str]",
) -> Tuple[str, Optional[_Declaration]]:
    declaration: Optional[_Declaration] = None
    if rule.naming is NameStrategy.CAPTURE:
        captured = match.groupdict().get("name")
        if captured and captured.strip():
            return captured.strip(), view.enclosing(index)
    elif rule.naming is NameStrategy.ENCLOSING:
        declaration = view.enclosing(index) or view.following(index)
    elif rule.naming is NameStrategy.FOLLOWING:
        declaration = view.following(index)
    if declaration is not None:
        return declaration.name, declaration
    return view.stem, None


def _is_comment(line: str) -> bool:
    return line.lstrip().startswith(_COMMENT_PREFIXES)


def _strip_literals(line: str) -> str:
    code = _STRING_RE.sub('""', line)
    code = _CHAR_RE.sub("''", code)
    return code.split("//", 1)[0]


def _paren_balance(line: str) -> int:
    code = _strip_literals(line)
    return code.count("(") - code.count(")")


__all__ = ["ExtractionError", "ExtractionResult", "FactExtractor"]
