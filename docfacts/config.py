"""Configuration loading for docfacts (.docfacts.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".docfacts.yml"

DEFAULT_DOC_PATHS: tuple[str, ...] = ("CLAUDE.md", ".claude/rules/", "docs/", "README.md")
DEFAULT_SNAPSHOT_PATH = ".docfacts/snapshot.json"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class ExtractionConfig:
    """Which kinds to extract and how wide attribute windows are."""

    kinds: List[str] = field(default_factory=list)
    window: int = 5
    workers: int = 1


@dataclass
class SnapshotConfig:
    """Where the last extracted snapshot is persisted."""

    path: str = DEFAULT_SNAPSHOT_PATH
    persist: bool = True


@dataclass
class HistoryConfig:
    """Paths whose last commit marks the previous documentation run."""

    doc_paths: List[str] = field(default_factory=lambda: list(DEFAULT_DOC_PATHS))


@dataclass
class DiffConfig:
    """Thresholds for snapshot comparison diagnostics."""

    max_count_ratio: float = 3.0


@dataclass
class DocFactsConfig:
    """Represents the settings defined in .docfacts.yml."""

    root: Path
    exclude_paths: List[str] = field(default_factory=list)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    snapshot: SnapshotConfig = field(default_factory=SnapshotConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    diff: DiffConfig = field(default_factory=DiffConfig)
    impact: Dict[str, Dict[str, List[str]]] = field(default_factory=dict)

    @property
    def snapshot_path(self) -> Path:
        path = Path(self.snapshot.path).expanduser()
        return path if path.is_absolute() else self.root / path


def load_config(config_path: Path) -> DocFactsConfig:
    """Load configuration from disk."""
    config_file = _resolve_config_path(Path(config_path))
    root = config_file.parent.resolve()

    if not config_file.exists():
        return DocFactsConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    extraction = ExtractionConfig()
    extraction_data = _as_dict(data.get("extraction"))
    if extraction_data:
        extraction.kinds = _as_str_list(extraction_data.get("kinds"))
        window = _as_int(extraction_data.get("window"))
        if window is not None:
            if window < 0:
                raise ConfigError("extraction.window must not be negative")
            extraction.window = window
        workers = _as_int(extraction_data.get("workers"))
        if workers is not None:
            extraction.workers = max(1, workers)

    snapshot = SnapshotConfig()
    snapshot_data = _as_dict(data.get("snapshot"))
    if snapshot_data:
        snapshot.path = _as_str(snapshot_data.get("path")) or DEFAULT_SNAPSHOT_PATH
        persist = _as_bool(snapshot_data.get("persist"))
        if persist is not None:
            snapshot.persist = persist

    history = HistoryConfig()
    history_data = _as_dict(data.get("history"))
    if history_data and history_data.get("doc_paths") is not None:
        history.doc_paths = _as_str_list(history_data.get("doc_paths"))

    diff = DiffConfig()
    diff_data = _as_dict(data.get("diff"))
    if diff_data:
        ratio = _as_float(diff_data.get("max_count_ratio"))
        if ratio is not None:
            if ratio < 1.0:
                raise ConfigError("diff.max_count_ratio must be at least 1.0")
            diff.max_count_ratio = ratio

    impact: Dict[str, Dict[str, List[str]]] = {}
    for kind, categories in _as_dict(data.get("impact")).items():
        category_map = _as_dict(categories)
        if not category_map:
            raise ConfigError(f"impact.{kind} must map change categories to section lists")
        impact[str(kind)] = {
            str(category): _as_str_list(sections) for category, sections in category_map.items()
        }

    return DocFactsConfig(
        root=root,
        exclude_paths=_as_str_list(data.get("exclude_paths")),
        extraction=extraction,
        snapshot=snapshot,
        history=history,
        diff=diff,
        impact=impact,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "DEFAULT_DOC_PATHS",
    "DiffConfig",
    "DocFactsConfig",
    "ExtractionConfig",
    "HistoryConfig",
    "SnapshotConfig",
    "load_config",
]
