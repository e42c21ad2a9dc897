"""Read-only access to git history for reconstructing previous snapshots."""

from __future__ import annotations

import shutil
import subprocess
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional, Sequence

from ..logging import get_logger


class HistoryError(RuntimeError):
    """Raised when a git command fails or the path is not under version control."""


class GitHistory:
    """Thin wrapper around the git CLI with an injectable command runner."""

    def __init__(self, runner: Callable[..., str] | None = None) -> None:
        self._runner = runner or self._default_runner
        self.logger = get_logger("git")

    def is_repository(self, path: str | Path) -> bool:
        try:
            output = self._run(["git", "rev-parse", "--is-inside-work-tree"], cwd=Path(path))
        except HistoryError:
            return False
        return output.strip() == "true"

    def toplevel(self, path: str | Path) -> Path:
        output = self._run(["git", "rev-parse", "--show-toplevel"], cwd=Path(path)).strip()
        if not output:
            raise HistoryError(f"{path} is not inside a Git work tree")
        return Path(output)

    def resolve(self, path: str | Path, ref: str) -> str:
        """Return the full commit hash ``ref`` points at."""
        output = self._run(
            ["git", "rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"],
            cwd=Path(path),
        ).strip()
        if not output:
            raise HistoryError(f"Unknown revision: {ref}")
        return output

    def last_doc_commit(self, path: str | Path, doc_paths: Sequence[str]) -> Optional[str]:
        """Return the most recent commit touching any documentation path, if one exists."""
        if not doc_paths:
            return None
        output = self._run(
            ["git", "log", "-1", "--format=%H", "--", *doc_paths],
            cwd=Path(path),
        ).strip()
        return output or None

    @contextmanager
    def checkout(self, path: str | Path, ref: str) -> Iterator[Path]:
        """Check ``ref`` out into a temporary detached worktree.

        Yields the directory inside the worktree that corresponds to ``path``;
        the worktree is removed on exit.
        """
        repo_path = Path(path).resolve()
        top = self.toplevel(repo_path).resolve()
        try:
            relative = repo_path.relative_to(top)
        except ValueError as exc:
            raise HistoryError(f"{repo_path} is outside work tree {top}") from exc
        commit = self.resolve(repo_path, ref)

        scratch = Path(tempfile.mkdtemp(prefix="docfacts-history-"))
        worktree = scratch / "tree"
        try:
            self._run(["git", "worktree", "add", "--detach", str(worktree), commit], cwd=top)
            self.logger.debug("Checked out %s into %s", commit[:12], worktree)
            yield worktree / relative
        finally:
            try:
                self._run(["git", "worktree", "remove", "--force", str(worktree)], cwd=top)
            except HistoryError as exc:
                self.logger.warning("Failed to remove temporary worktree %s: %s", worktree, exc)
            shutil.rmtree(scratch, ignore_errors=True)

    # ------------------------------------------------------------------
    # Internals

    def _run(self, args: Iterable[str], *, cwd: Path) -> str:
        try:
            return self._runner(list(args), cwd=cwd, capture_output=True)
        except subprocess.CalledProcessError as exc:
            detail = (exc.stderr or "").strip() or f"exit status {exc.returncode}"
            raise HistoryError(f"git {' '.join(exc.cmd[1:3])} failed: {detail}") from exc
        except OSError as exc:
            raise HistoryError(f"git is not available: {exc}") from exc

    @staticmethod
    def _default_runner(
        args: Iterable[str],
        *,
        cwd: Path,
        capture_output: bool = False,
    ) -> str:
        completed = subprocess.run(
            list(args),
            cwd=str(cwd),
            check=True,
            text=True,
            capture_output=capture_output,
        )
        return completed.stdout if capture_output else ""


__all__ = ["GitHistory", "HistoryError"]
