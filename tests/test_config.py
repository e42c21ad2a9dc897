"""Tests for docfacts.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from docfacts.config import ConfigError, DocFactsConfig, load_config


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, DocFactsConfig)
    assert config.root == tmp_path.resolve()
    assert config.exclude_paths == []
    assert config.extraction.kinds == []
    assert config.extraction.window == 5
    assert config.extraction.workers == 1
    assert config.snapshot.persist is True
    assert config.snapshot_path == tmp_path.resolve() / ".docfacts" / "snapshot.json"
    assert "CLAUDE.md" in config.history.doc_paths
    assert config.diff.max_count_ratio == 3.0
    assert config.impact == {}


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".docfacts.yml"
    config_file.write_text(
        """
exclude_paths:
  - "generated/"
  - "*.bak"
extraction:
  kinds: [endpoint, entity]
  window: 8
  workers: "4"
snapshot:
  path: "/var/tmp/facts.json"
  persist: no
history:
  doc_paths: [docs/]
diff:
  max_count_ratio: 5
impact:
  service-class:
    modified: [business-rules, docs-services]
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    assert config.exclude_paths == ["generated/", "*.bak"]
    assert config.extraction.kinds == ["endpoint", "entity"]
    assert config.extraction.window == 8
    assert config.extraction.workers == 4
    assert config.snapshot.persist is False
    assert config.snapshot_path == Path("/var/tmp/facts.json")
    assert config.history.doc_paths == ["docs/"]
    assert config.diff.max_count_ratio == 5.0
    assert config.impact == {"service-class": {"modified": ["business-rules", "docs-services"]}}


def test_relative_snapshot_path_resolves_against_root(tmp_path: Path) -> None:
    (tmp_path / ".docfacts.yml").write_text("snapshot:\n  path: build/facts.json\n", encoding="utf-8")

    config = load_config(tmp_path / "anything.txt")

    assert config.snapshot_path == tmp_path.resolve() / "build" / "facts.json"


def test_empty_config_file_uses_defaults(tmp_path: Path) -> None:
    (tmp_path / ".docfacts.yml").write_text("\n", encoding="utf-8")

    assert load_config(tmp_path).extraction.window == 5


@pytest.mark.parametrize(
    "content",
    [
        "- not\n- a mapping\n",
        "extraction: [unclosed\n",
        "extraction:\n  window: -1\n",
        "diff:\n  max_count_ratio: 0.5\n",
        "impact:\n  endpoint: [api-reference]\n",
    ],
)
def test_invalid_config_raises(tmp_path: Path, content: str) -> None:
    (tmp_path / ".docfacts.yml").write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)
