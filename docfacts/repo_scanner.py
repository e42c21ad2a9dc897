"""Lazy source-tree enumeration honoring .gitignore files at every level."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Pattern, Sequence, Tuple

from .config import CONFIG_FILENAME, ConfigError, load_config
from .logging import get_logger

GITIGNORE = ".gitignore"

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    ".idea",
    ".vscode",
    ".gradle",
    ".mvn",
    ".docfacts",
    "node_modules",
    "__pycache__",
    "target",
}

_EXCLUDED_FILES = {
    ".DS_Store",
    "Thumbs.db",
}

LOGGER = get_logger("scanner")


@dataclass(frozen=True)
class IgnorePattern:
    """One gitignore-style pattern, scoped to the directory that declares it.

    ``base`` is the POSIX path of that directory relative to the scan root
    ("" for the root itself and for configured excludes). A pattern with a
    slash before its last character is anchored to ``base``; one without may
    match at any depth below it.
    """

    base: str
    regex: Pattern[str]
    negate: bool = False
    directory_only: bool = False

    @classmethod
    def parse(cls, line: str, base: str = "") -> Optional["IgnorePattern"]:
        text = line.strip()
        if not text or text.startswith("#"):
            return None
        negate = text.startswith("!")
        if negate:
            text = text[1:]
        elif text.startswith("\\"):
            text = text[1:]
        directory_only = text.endswith("/")
        text = text.rstrip("/")
        anchored = "/" in text
        text = text.lstrip("/")
        if not text:
            return None
        prefix = "" if anchored else "(?:.*/)?"
        return cls(
            base=base,
            regex=re.compile(prefix + _glob_to_regex(text)),
            negate=negate,
            directory_only=directory_only,
        )

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if self.directory_only and not is_dir:
            return False
        if self.base:
            if not rel_path.startswith(f"{self.base}/"):
                return False
            rel_path = rel_path[len(self.base) + 1 :]
        return self.regex.fullmatch(rel_path) is not None


def _glob_to_regex(glob: str) -> str:
    parts: List[str] = []
    index = 0
    while index < len(glob):
        if glob.startswith("**/", index):
            parts.append("(?:.*/)?")
            index += 3
            continue
        if glob.startswith("**", index):
            parts.append(".*")
            index += 2
            continue
        char = glob[index]
        if char == "*":
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        elif char == "[" and glob.find("]", index + 1) != -1:
            end = glob.find("]", index + 1)
            body = glob[index + 1 : end]
            if body.startswith("!"):
                body = "^" + body[1:]
            parts.append(f"[{body}]")
            index = end + 1
            continue
        else:
            parts.append(re.escape(char))
        index += 1
    return "".join(parts)


def _read_gitignore(path: Path, base: str) -> List[IgnorePattern]:
    try:
        text = path.read_text(encoding="utf-8", errors="ignore")
    except OSError as exc:
        LOGGER.warning("Could not read %s: %s", path, exc)
        return []
    return _compile(text.splitlines(), base)


def _compile(lines: Iterable[str], base: str = "") -> List[IgnorePattern]:
    patterns: List[IgnorePattern] = []
    for line in lines:
        pattern = IgnorePattern.parse(line, base)
        if pattern is not None:
            patterns.append(pattern)
    return patterns


def _config_excludes(root: Path) -> List[IgnorePattern]:
    try:
        config = load_config(root / CONFIG_FILENAME)
    except ConfigError as exc:
        LOGGER.debug("Ignoring exclude_paths from invalid %s: %s", CONFIG_FILENAME, exc)
        return []
    return _compile(config.exclude_paths)


def _is_ignored(rel_path: str, is_dir: bool, patterns: Sequence[IgnorePattern]) -> bool:
    # Last match wins, so deeper .gitignore files and excludes override the root file.
    ignored = False
    for pattern in patterns:
        if pattern.matches(rel_path, is_dir):
            ignored = not pattern.negate
    return ignored


def _walk(root: Path, excludes: Tuple[IgnorePattern, ...]) -> Iterator[str]:
    inherited: Dict[str, Tuple[IgnorePattern, ...]] = {"": ()}
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        rel_dir = current.relative_to(root).as_posix() if current != root else ""
        scoped = inherited.pop(rel_dir, ())
        if GITIGNORE in filenames:
            scoped = scoped + tuple(_read_gitignore(current / GITIGNORE, rel_dir))
        active = scoped + excludes

        # Sorted traversal keeps extraction order, and therefore collision handling, stable.
        kept_dirs = []
        for name in sorted(dirnames):
            if name in _EXCLUDED_DIRS:
                continue
            rel_path = f"{rel_dir}/{name}" if rel_dir else name
            if _is_ignored(rel_path, True, active):
                continue
            kept_dirs.append(name)
            inherited[rel_path] = scoped
        dirnames[:] = kept_dirs

        for filename in sorted(filenames):
            if filename in _EXCLUDED_FILES:
                continue
            rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
            if _is_ignored(rel_path, False, active):
                continue
            yield rel_path


class RepoScanner:
    """Walks a source tree and yields candidate files lazily."""

    def __init__(self, exclude_paths: Sequence[str] = ()) -> None:
        self.exclude_paths = list(exclude_paths)

    def iter_files(self, root: str | Path) -> Iterator[str]:
        """Yield POSIX paths relative to ``root`` in a deterministic order."""
        root_path = Path(root).expanduser().resolve()
        if not root_path.exists():
            raise FileNotFoundError(f"Repository path not found: {root}")
        if not root_path.is_dir():
            raise NotADirectoryError(f"Repository path is not a directory: {root}")

        excludes = tuple(_config_excludes(root_path) + _compile(self.exclude_paths))
        yield from _walk(root_path, excludes)


__all__ = ["IgnorePattern", "RepoScanner"]
