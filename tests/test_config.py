from __future__ import annotations

import json
from pathlib import Path

import pytest

from ernlocal import config


def test_ern_home_defaults_to_dot_ern_under_home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("ERN_HOME", raising=False)
    monkeypatch.setattr(config.Path, "home", lambda: tmp_path)

    assert config.ern_home() == (tmp_path / ".ern").resolve()
    assert config.default_config_path() == (tmp_path / ".ern" / ".ernrc").resolve()


def test_load_missing_file_gives_empty_config(ern_home: Path) -> None:
    cfg = config.ErnConfig.load()

    assert cfg.path == ern_home.resolve() / ".ernrc"
    assert cfg.values == {}
    assert cfg.cauldron_repositories == {}
    assert cfg.cauldron_repo_in_use is None
    assert cfg.active_cauldron_url() is None


def test_load_rejects_non_object(tmp_path: Path) -> None:
    path = tmp_path / ".ernrc"
    path.write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(ValueError, match="must contain a JSON object"):
        config.ErnConfig.load(path)


def test_cauldron_repositories_are_persisted_and_activated(ern_home: Path) -> None:
    cfg = config.ErnConfig.load()
    cfg.set_value("platformVersion", "0.5.0")
    cfg.add_cauldron_repository("team", "git@example.com:team/cauldron.git")
    cfg.use_cauldron_repository("team")

    reloaded = config.ErnConfig.load()
    assert reloaded.cauldron_repositories == {"team": "git@example.com:team/cauldron.git"}
    assert reloaded.cauldron_repo_in_use == "team"
    assert reloaded.active_cauldron_url() == "git@example.com:team/cauldron.git"
    raw = json.loads((ern_home / ".ernrc").read_text(encoding="utf-8"))
    assert raw["platformVersion"] == "0.5.0"


def test_duplicate_alias_and_unknown_alias_are_rejected(ern_config: config.ErnConfig) -> None:
    with pytest.raises(ValueError, match="already registered"):
        ern_config.add_cauldron_repository("default", "git@example.com:other.git")
    with pytest.raises(ValueError, match="No Cauldron repository registered"):
        ern_config.use_cauldron_repository("missing")


def test_del_value_removes_key(ern_config: config.ErnConfig) -> None:
    ern_config.del_value(config.CAULDRON_REPO_IN_USE_KEY)

    assert config.ErnConfig.load().cauldron_repo_in_use is None
    assert ern_config.active_cauldron_url() is None


def test_runner_config_defaults() -> None:
    cfg = config.RunnerConfig()

    assert cfg.container_version == config.DEFAULT_CONTAINER_VERSION == "1.0.0"
    assert cfg.container_name == "runner"
    assert cfg.android_package_name == "com.walmartlabs.ern"
    assert cfg.ios_bundle_id == "com.yourcompany.ernrunner"
    assert cfg.ios_scheme == "ErnRunner"
