from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.repo_builder import RepoBuilder
from tests._fixtures.spring_sources import SPRING_PROJECT


@pytest.fixture
def repo_builder(tmp_path: Path) -> RepoBuilder:
    """Provide a throwaway source tree rooted at the pytest tmp_path."""
    return RepoBuilder(tmp_path)


@pytest.fixture
def spring_repo(repo_builder: RepoBuilder) -> RepoBuilder:
    """A small Spring service exercising every built-in rule."""
    repo_builder.write(SPRING_PROJECT)
    return repo_builder
