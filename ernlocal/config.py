"""Configuration for ernlocal.

Two layers:

- `ErnConfig`: the persisted user configuration, a JSON object stored at `$ERN_HOME/.ernrc`
  (default `~/.ern/.ernrc`). Known keys are `cauldronRepositories` (alias -> git URL) and
  `cauldronRepoInUse` (alias of the active repository). Unknown keys are kept as-is so
  other tools sharing the file are not disturbed.
- `RunnerConfig`: defaults used when building and launching Runner projects. They are
  named constants rather than literals at call sites.

`ERN_HOME` also anchors local Cauldron checkouts (`$ERN_HOME/cauldron/<alias>/`).
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_CONTAINER_VERSION = "1.0.0"
RUNNER_CONTAINER_NAME = "runner"
ANDROID_RUNNER_PACKAGE_NAME = "com.walmartlabs.ern"
IOS_RUNNER_BUNDLE_ID = "com.yourcompany.ernrunner"
IOS_RUNNER_SCHEME = "ErnRunner"
DOCS_ROOT_URL = "https://electrode.gitbooks.io/electrode-native/content/cli"

CAULDRON_REPOSITORIES_KEY = "cauldronRepositories"
CAULDRON_REPO_IN_USE_KEY = "cauldronRepoInUse"


def ern_home() -> Path:
    env = os.environ.get("ERN_HOME")
    return (Path(env) if env else Path.home() / ".ern").resolve()


def default_config_path() -> Path:
    return ern_home() / ".ernrc"


@dataclass(frozen=True)
class RunnerConfig:
    container_version: str = DEFAULT_CONTAINER_VERSION
    container_name: str = RUNNER_CONTAINER_NAME
    android_package_name: str = ANDROID_RUNNER_PACKAGE_NAME
    ios_bundle_id: str = IOS_RUNNER_BUNDLE_ID
    ios_scheme: str = IOS_RUNNER_SCHEME


@dataclass
class ErnConfig:
    path: Path
    values: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def load(path: Path | None = None) -> "ErnConfig":
        path = path or default_config_path()
        if not path.exists():
            return ErnConfig(path=path, values={})
        raw = json.loads(path.read_text(encoding="utf-8") or "{}")
        if not isinstance(raw, dict):
            raise ValueError(f"{path} must contain a JSON object, got {type(raw)}")
        return ErnConfig(path=path, values=raw)

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self.values, indent=2, ensure_ascii=True) + "\n", encoding="utf-8")

    def get_value(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)

    def set_value(self, key: str, value: Any) -> None:
        self.values[key] = value
        self.save()

    def del_value(self, key: str) -> None:
        if key in self.values:
            del self.values[key]
            self.save()

    @property
    def cauldron_repositories(self) -> dict[str, str]:
        repos = self.values.get(CAULDRON_REPOSITORIES_KEY) or {}
        return {str(k): str(v) for k, v in repos.items()}

    @property
    def cauldron_repo_in_use(self) -> str | None:
        alias = self.values.get(CAULDRON_REPO_IN_USE_KEY)
        return str(alias) if alias else None

    def active_cauldron_url(self) -> str | None:
        alias = self.cauldron_repo_in_use
        if alias is None:
            return None
        return self.cauldron_repositories.get(alias)

    def add_cauldron_repository(self, alias: str, url: str) -> None:
        repos = self.cauldron_repositories
        if alias in repos:
            raise ValueError(f"A Cauldron repository is already registered under alias {alias!r}")
        repos[alias] = url
        self.set_value(CAULDRON_REPOSITORIES_KEY, repos)

    def use_cauldron_repository(self, alias: str) -> None:
        if alias not in self.cauldron_repositories:
            raise ValueError(f"No Cauldron repository registered under alias {alias!r}")
        self.set_value(CAULDRON_REPO_IN_USE_KEY, alias)
