"""Detection of documentation artifacts that already exist in a repository."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Tuple

RULES_DIR = ".claude/rules"
LEGACY_INSTRUCTIONS = ".claude/instructions.md"


@dataclass(frozen=True)
class DocInventory:
    """Which documentation outputs exist before a session runs."""

    has_claude_md: bool = False
    has_rules: bool = False
    rule_files: Tuple[str, ...] = field(default_factory=tuple)
    has_docs: bool = False
    doc_sections: Tuple[str, ...] = field(default_factory=tuple)
    has_readme: bool = False
    has_legacy_instructions: bool = False

    def missing(self) -> List[str]:
        """Return the artifacts a documentation run would have to create."""
        absent: List[str] = []
        if not self.has_claude_md:
            absent.append("CLAUDE.md")
        if not self.has_rules:
            absent.append(f"{RULES_DIR}/")
        if not self.has_docs:
            absent.append("docs/")
        if not self.has_readme:
            absent.append("README.md")
        return absent

    def to_dict(self) -> Dict[str, object]:
        return {
            "has_claude_md": self.has_claude_md,
            "has_rules": self.has_rules,
            "rule_files": list(self.rule_files),
            "has_docs": self.has_docs,
            "doc_sections": list(self.doc_sections),
            "has_readme": self.has_readme,
            "has_legacy_instructions": self.has_legacy_instructions,
        }


def detect_existing_docs(root: str | Path) -> DocInventory:
    root_path = Path(root)
    rules_dir = root_path / RULES_DIR
    docs_dir = root_path / "docs"

    rule_files: Tuple[str, ...] = ()
    if rules_dir.is_dir():
        rule_files = tuple(
            sorted(path.relative_to(root_path).as_posix() for path in rules_dir.rglob("*.md") if path.is_file())
        )
    doc_sections: Tuple[str, ...] = ()
    if docs_dir.is_dir():
        doc_sections = tuple(sorted(path.name for path in docs_dir.iterdir() if path.is_dir()))

    return DocInventory(
        has_claude_md=(root_path / "CLAUDE.md").is_file(),
        has_rules=rules_dir.is_dir() and any(rules_dir.iterdir()),
        rule_files=rule_files,
        has_docs=docs_dir.is_dir() and any(docs_dir.iterdir()),
        doc_sections=doc_sections,
        has_readme=(root_path / "README.md").is_file(),
        has_legacy_instructions=(root_path / LEGACY_INSTRUCTIONS).is_file(),
    )


__all__ = ["DocInventory", "detect_existing_docs"]
