"""Git operations backing a Cauldron repository checkout.

A Cauldron is a git repository holding `cauldron.json`. ernlocal keeps one local checkout
per registered repository under `$ERN_HOME/cauldron/<alias>/` and talks to it through
this module.

Two implementations share the same public surface:

- `GitClient`: shells out to `git` via `subprocess`.
- `DryRunGitClient`: used by `--dry-run`. Local commits still happen (so the checkout
  reflects what would be published) but nothing is fetched from or pushed to the remote.

GitClient API
- `clone(url)`: clones `url` into `repo_path` (parent directories are created).
- `ensure_checkout(url)`: clones when `repo_path` is not a git checkout yet, otherwise pulls.
- `pull()`: `git pull --ff-only` on the current branch.
- `has_changes() -> bool`: `git status --porcelain` is non-empty.
- `commit_all(message)`: stages everything and commits. Unlike a best-effort commit this
  raises on failure, since a rejected commit means the Cauldron did not change.
- `push()`: pushes the current branch to its upstream.
- `head() -> str`: commit SHA of `HEAD`.
- `reset_hard(ref)`: discards local changes. Destructive; only used to drop a Cauldron
  update that could not be pushed.

All commands go through `_git(...)`, which uses `check=True` and raises
`subprocess.CalledProcessError` on failure; callers translate these into `CauldronError`.
"""

from __future__ import annotations

import subprocess
from pathlib import Path


class GitClient:
    def __init__(self, *, repo_path: Path) -> None:
        self.repo_path = repo_path

    def clone(self, url: str) -> None:
        self.repo_path.parent.mkdir(parents=True, exist_ok=True)
        self._git(["clone", url, str(self.repo_path)], cwd=self.repo_path.parent)

    def ensure_checkout(self, url: str) -> None:
        if (self.repo_path / ".git").exists():
            self.pull()
        else:
            self.clone(url)

    def pull(self) -> None:
        self._git(["pull", "--ff-only"], cwd=self.repo_path)

    def has_changes(self) -> bool:
        return bool(self._git(["status", "--porcelain"], cwd=self.repo_path).strip())

    def commit_all(self, message: str) -> None:
        self._git(["add", "-A"], cwd=self.repo_path)
        self._git(["commit", "-m", message], cwd=self.repo_path)

    def push(self) -> None:
        self._git(["push"], cwd=self.repo_path)

    def head(self) -> str:
        return self._git(["rev-parse", "HEAD"], cwd=self.repo_path).strip()

    def reset_hard(self, ref: str) -> None:
        self._git(["reset", "--hard", ref], cwd=self.repo_path)

    def _git(self, args: list[str], *, cwd: Path) -> str:
        p = subprocess.run(
            ["git", *args],
            cwd=cwd,
            text=True,
            check=True,
            capture_output=True,
        )
        return p.stdout


class DryRunGitClient(GitClient):
    """Commits locally; never contacts the remote."""

    def ensure_checkout(self, url: str) -> None:  # type: ignore[override]
        if not (self.repo_path / ".git").exists():
            self.clone(url)

    def pull(self) -> None:  # type: ignore[override]
        return

    def push(self) -> None:  # type: ignore[override]
        return
