from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Any

import pytest

from ernlocal.cauldron import GitCauldron
from ernlocal.config import ErnConfig
from ernlocal.descriptor import PackageRef

SAMPLE_DOC: dict[str, Any] = {
    "nativeApps": [
        {
            "name": "myapp",
            "platforms": [
                {
                    "name": "android",
                    "versions": [
                        {
                            "name": "1.0.0",
                            "isReleased": False,
                            "containerVersion": "2.1.0",
                            "nativeDeps": ["react-native@0.42.0", "react-native-code-push@1.0.0"],
                            "miniApps": {"container": ["miniapp-a@1.0.0", "miniapp-b@2.0.0"]},
                        },
                        {
                            "name": "0.9.0",
                            "isReleased": True,
                            "containerVersion": "1.0.0",
                            "nativeDeps": [],
                            "miniApps": {"container": []},
                        },
                    ],
                },
                {
                    "name": "ios",
                    "versions": [
                        {"name": "1.0.0", "isReleased": False, "nativeDeps": [], "miniApps": {"container": []}},
                    ],
                },
            ],
        }
    ]
}


def git_error(cmd: str) -> subprocess.CalledProcessError:
    return subprocess.CalledProcessError(1, ["git", cmd], output="", stderr=f"fatal: {cmd} failed")


class FakeGit:
    """Stands in for `GitClient`; records calls and raises what `fail_on` names.

    `reset_hard` restores `cauldron.json` as it was when `head` was last read.
    """

    def __init__(self, repo_path: Path) -> None:
        self.repo_path = repo_path
        self.calls: list[tuple[Any, ...]] = []
        self.fail_on: dict[str, BaseException] = {}
        self._head_doc: str | None = None

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, *args))
        exc = self.fail_on.get(name)
        if exc is not None:
            raise exc

    def names(self) -> list[str]:
        return [c[0] for c in self.calls]

    def pull(self) -> None:
        self._record("pull")

    def head(self) -> str:
        self._record("head")
        doc = self.repo_path / "cauldron.json"
        if doc.exists():
            self._head_doc = doc.read_text(encoding="utf-8")
        return "abc123"

    def has_changes(self) -> bool:
        self._record("has_changes")
        return True

    def commit_all(self, message: str) -> None:
        self._record("commit_all", message)

    def push(self) -> None:
        self._record("push")

    def reset_hard(self, ref: str) -> None:
        self._record("reset_hard", ref)
        if self._head_doc is not None:
            (self.repo_path / "cauldron.json").write_text(self._head_doc, encoding="utf-8")


class FakeRegistry:
    def __init__(
        self,
        published: dict[str, list[str]] | None = None,
        dependencies: dict[str, dict[str, str]] | None = None,
    ) -> None:
        self.published = published or {}
        self.deps = dependencies or {}

    def is_published(self, package: PackageRef) -> bool:
        if package.version is None:
            return package.name in self.published
        return package.version in self.published.get(package.name, [])

    def dependencies(self, package: PackageRef) -> dict[str, str]:
        return dict(self.deps.get(str(package), {}))

    def package_exists(self, name: str) -> bool:
        return name in self.published


def read_doc(path: Path) -> dict[str, Any]:
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.fixture
def fake_git(tmp_path: Path) -> FakeGit:
    repo = tmp_path / "checkout"
    repo.mkdir()
    (repo / "cauldron.json").write_text(json.dumps(SAMPLE_DOC, indent=2), encoding="utf-8")
    return FakeGit(repo)


@pytest.fixture
def cauldron(fake_git: FakeGit) -> GitCauldron:
    return GitCauldron(git=fake_git)  # type: ignore[arg-type]


@pytest.fixture
def ern_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    home = tmp_path / "ern"
    monkeypatch.setenv("ERN_HOME", str(home))
    return home


@pytest.fixture
def ern_config(ern_home: Path) -> ErnConfig:
    cfg = ErnConfig.load()
    cfg.add_cauldron_repository("default", "git@example.com:org/cauldron.git")
    cfg.use_cauldron_repository("default")
    return cfg
