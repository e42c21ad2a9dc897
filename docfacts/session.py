"""Documentation session orchestration: extract, diff, and map impacted sections."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence, Set, Tuple

from .config import CONFIG_FILENAME, ConfigError, DocFactsConfig, load_config
from .diff import ChangeClassifier, SectionImpactMapper
from .extractor import ExtractionResult, FactExtractor
from .git import GitHistory, HistoryError
from .inventory import DocInventory, detect_existing_docs
from .logging import get_logger, log_diagnostics
from .models import (
    DiffIncompatibilityWarning,
    FactChange,
    FactKind,
    FactStore,
    RuleApplicationWarning,
)
from .profile import ProjectProfile, detect_project_profile
from .rules import DetectionRule, ExtractionError, discover_rules
from .stores import SnapshotStore


class SessionMode(str, Enum):
    FULL = "full"
    INCREMENTAL = "incremental"
    SELECTIVE = "selective"

    @classmethod
    def parse(cls, value: "str | SessionMode") -> "SessionMode":
        if isinstance(value, SessionMode):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise ValueError(f"Unknown session mode: {value}") from exc


class SessionStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class SessionOutcome:
    """Terminal state of a documentation session and its handoff data."""

    status: SessionStatus
    requested_mode: SessionMode
    mode: SessionMode
    root: Path
    store: Optional[FactStore] = None
    previous: Optional[FactStore] = None
    previous_source: Optional[str] = None
    changes: Tuple[FactChange, ...] = field(default_factory=tuple)
    impacted_sections: Tuple[str, ...] = field(default_factory=tuple)
    warnings: Tuple[RuleApplicationWarning, ...] = field(default_factory=tuple)
    diff_warnings: Tuple[DiffIncompatibilityWarning, ...] = field(default_factory=tuple)
    error: Optional[ExtractionError] = None
    fallback_reason: Optional[str] = None
    inventory: Optional[DocInventory] = None
    profile: Optional[ProjectProfile] = None
    snapshot_path: Optional[Path] = None

    @property
    def completed(self) -> bool:
        return self.status is SessionStatus.COMPLETED


@dataclass
class _Previous:
    store: Optional[FactStore] = None
    source: Optional[str] = None
    reason: Optional[str] = None


class DocSession:
    """Drives one run of fact extraction for the documentation collaborator.

    Full runs hand every fact onward with all sections impacted. Incremental runs
    diff against a previous snapshot and degrade to full when none can be found.
    Selective runs narrow the rule set to the kinds feeding the requested sections.
    """

    def __init__(
        self,
        extractor: FactExtractor | None = None,
        classifier: ChangeClassifier | None = None,
        mapper: SectionImpactMapper | None = None,
        history: GitHistory | None = None,
        rules: Optional[Sequence[DetectionRule]] = None,
    ) -> None:
        self._extractor = extractor
        self._classifier = classifier
        self._mapper = mapper
        self.history = history or GitHistory()
        self._rule_overrides = list(rules) if rules is not None else None
        self.logger = get_logger("session")

    def run(
        self,
        path: str | Path,
        *,
        mode: "SessionMode | str" = SessionMode.FULL,
        sections: Optional[Sequence[str]] = None,
        since: Optional[str] = None,
        persist: Optional[bool] = None,
    ) -> SessionOutcome:
        repo_path = Path(path).expanduser()
        requested = SessionMode.parse(mode)
        self.logger.info("Starting %s session for %s", requested.value, repo_path)

        config = self._load_config(repo_path)
        mapper = self._resolve_mapper(config)

        kinds = self._configured_kinds(config)
        if requested is SessionMode.SELECTIVE:
            if not sections:
                raise ValueError("Selective mode requires at least one section")
            selected = mapper.kinds_for(sections)
            kinds = [kind for kind in selected if kinds is None or kind in kinds]
        rules = self._select_rules(config, kinds)
        extractor = self._extractor or FactExtractor(workers=config.extraction.workers)

        try:
            result = extractor.extract_with_warnings(repo_path, rules)
        except ExtractionError as exc:
            self.logger.error("Extraction failed: %s", exc)
            return SessionOutcome(
                status=SessionStatus.FAILED,
                requested_mode=requested,
                mode=requested,
                root=repo_path,
                error=exc,
            )

        store = result.store
        root = Path(store.root)
        log_diagnostics(self.logger, result.warnings, label="extraction warnings")
        outcome = SessionOutcome(
            status=SessionStatus.COMPLETED,
            requested_mode=requested,
            mode=requested,
            root=root,
            store=store,
            warnings=result.warnings,
            inventory=detect_existing_docs(root),
            profile=detect_project_profile(root, extractor.scanner),
        )

        if requested is SessionMode.SELECTIVE:
            outcome.impacted_sections = tuple(mapper.ordered(sections or ()))
        elif requested is SessionMode.INCREMENTAL:
            self._run_incremental(outcome, store, config, mapper, extractor, rules, since)
        else:
            outcome.impacted_sections = tuple(mapper.known_sections())

        should_persist = config.snapshot.persist if persist is None else persist
        if should_persist and outcome.mode is not SessionMode.SELECTIVE:
            outcome.snapshot_path = self._persist(store, config)

        self.logger.info(
            "Session completed in %s mode: %d facts, %d changes, %d impacted sections",
            outcome.mode.value,
            len(store),
            len(outcome.changes),
            len(outcome.impacted_sections),
        )
        return outcome

    # ------------------------------------------------------------------
    # Incremental mode

    def _run_incremental(
        self,
        outcome: SessionOutcome,
        store: FactStore,
        config: DocFactsConfig,
        mapper: SectionImpactMapper,
        extractor: FactExtractor,
        rules: Sequence[DetectionRule],
        since: Optional[str],
    ) -> None:
        previous = self._previous_store(outcome.root, config, extractor, rules, since)
        if previous.store is None:
            self.logger.warning("Falling back to full mode: %s", previous.reason)
            outcome.mode = SessionMode.FULL
            outcome.fallback_reason = previous.reason
            outcome.impacted_sections = tuple(mapper.known_sections())
            return

        # Kinds outside the current rule set would otherwise show up as removals.
        old_store = previous.store.restrict({rule.kind for rule in rules})
        classifier = self._classifier or ChangeClassifier(config.diff.max_count_ratio)
        classification = classifier.classify(old_store, store)
        log_diagnostics(self.logger, classification.warnings, label="snapshot comparison warnings")

        outcome.previous = old_store
        outcome.previous_source = previous.source
        outcome.changes = classification.changes
        outcome.diff_warnings = classification.warnings
        outcome.impacted_sections = tuple(mapper.ordered(mapper.map_sections(classification.changes)))
        self.logger.debug("Previous snapshot taken from %s", previous.source)

    def _previous_store(
        self,
        root: Path,
        config: DocFactsConfig,
        extractor: FactExtractor,
        rules: Sequence[DetectionRule],
        since: Optional[str],
    ) -> _Previous:
        if since:
            candidate = Path(since).expanduser()
            if not candidate.is_absolute() and not candidate.exists():
                candidate = root / candidate
            if candidate.is_file():
                store = SnapshotStore(candidate).load()
                if store is None:
                    return _Previous(reason=f"snapshot file {since} is not a valid snapshot")
                return _Previous(store=store, source=f"snapshot file {candidate}")
            return self._extract_at(root, since, extractor, rules, source=f"git ref {since}")

        snapshot = SnapshotStore(config.snapshot_path)
        if snapshot.exists():
            store = snapshot.load()
            if store is not None:
                return _Previous(store=store, source=f"snapshot {config.snapshot_path}")

        if not self.history.is_repository(root):
            return _Previous(reason="no previous snapshot and the root is not a git repository")
        try:
            commit = self.history.last_doc_commit(root, config.history.doc_paths)
        except HistoryError as exc:
            return _Previous(reason=f"could not read documentation history: {exc}")
        if commit is None:
            return _Previous(reason="no previous snapshot and no documentation commit found")
        return self._extract_at(
            root, commit, extractor, rules, source=f"last documentation commit {commit[:12]}"
        )

    def _extract_at(
        self,
        root: Path,
        ref: str,
        extractor: FactExtractor,
        rules: Sequence[DetectionRule],
        *,
        source: str,
    ) -> _Previous:
        try:
            with self.history.checkout(root, ref) as old_root:
                result: ExtractionResult = extractor.extract_with_warnings(
                    old_root, rules, root_label=str(root)
                )
        except HistoryError as exc:
            return _Previous(reason=f"could not check out {ref}: {exc}")
        except ExtractionError as exc:
            return _Previous(reason=f"could not extract facts at {ref}: {exc}")
        self.logger.debug(
            "Re-extracted %d facts at %s (%d warnings)", len(result.store), ref, len(result.warnings)
        )
        return _Previous(store=result.store, source=source)

    # ------------------------------------------------------------------
    # Helpers

    def _load_config(self, repo_path: Path) -> DocFactsConfig:
        if not repo_path.is_dir():
            return DocFactsConfig(root=repo_path)
        try:
            return load_config(repo_path / CONFIG_FILENAME)
        except ConfigError as exc:
            self.logger.warning("Ignoring invalid %s: %s", CONFIG_FILENAME, exc)
            return DocFactsConfig(root=repo_path.resolve())

    def _resolve_mapper(self, config: DocFactsConfig) -> SectionImpactMapper:
        if self._mapper is not None:
            return self._mapper
        try:
            return SectionImpactMapper(config.impact)
        except ValueError as exc:
            self.logger.warning("Ignoring impact overrides: %s", exc)
            return SectionImpactMapper()

    def _configured_kinds(self, config: DocFactsConfig) -> Optional[List[FactKind]]:
        if not config.extraction.kinds:
            return None
        kinds: List[FactKind] = []
        for name in config.extraction.kinds:
            try:
                kinds.append(FactKind.parse(name))
            except ValueError:
                self.logger.warning("Ignoring unknown kind in extraction.kinds: %s", name)
        return kinds or None

    def _select_rules(
        self, config: DocFactsConfig, kinds: Optional[Sequence[FactKind]]
    ) -> List[DetectionRule]:
        if self._rule_overrides is None:
            return discover_rules(kinds, window=config.extraction.window)
        if kinds is None:
            return list(self._rule_overrides)
        wanted: Set[FactKind] = set(kinds)
        return [rule for rule in self._rule_overrides if rule.kind in wanted]

    def _persist(self, store: FactStore, config: DocFactsConfig) -> Optional[Path]:
        try:
            return SnapshotStore(config.snapshot_path).save(store)
        except OSError as exc:
            self.logger.warning("Could not persist snapshot to %s: %s", config.snapshot_path, exc)
            return None


__all__ = ["DocSession", "SessionMode", "SessionOutcome", "SessionStatus"]
