from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest

import ernlocal.tmux as tmux


def test_in_tmux_reads_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("TMUX", raising=False)
    assert tmux.in_tmux() is False
    monkeypatch.setenv("TMUX", "/tmp/tmux-1000/default,1,0")
    assert tmux.in_tmux() is True


def test_ensure_window_creates_missing_window(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    outputs = {"display-message": "main\n", "list-windows": "editor\nshell\n"}
    created: list[list[str]] = []
    monkeypatch.setattr(tmux.subprocess, "check_output", lambda cmd, text: outputs[cmd[1]])
    monkeypatch.setattr(tmux.subprocess, "check_call", lambda cmd: created.append(cmd))

    assert tmux.ensure_window(window_name="ern", cwd=tmp_path) == "main:ern"
    assert created == [["tmux", "new-window", "-d", "-n", "ern", "-c", str(tmp_path)]]

    created.clear()
    outputs["list-windows"] = "ern\n"
    tmux.ensure_window(window_name="ern", cwd=tmp_path)
    assert created == []


def test_spawn_pane_runs_command_in_detached_pane(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    seen: dict[str, Any] = {}

    def fake_check_output(cmd: list[str], text: bool) -> str:
        seen["split"] = cmd
        return "%7\n"

    monkeypatch.setenv("ERN_PANE_SHELL", "/bin/bash")
    monkeypatch.setattr(tmux.subprocess, "check_output", fake_check_output)
    monkeypatch.setattr(tmux.subprocess, "run", lambda cmd, check: seen.setdefault("title", cmd))

    pane = tmux.spawn_pane(window_target="main:ern", argv=["react-native", "start"], cwd=tmp_path, title="packager")

    assert pane == "%7"
    assert seen["split"][:4] == ["tmux", "split-window", "-d", "-t"]
    assert seen["split"][-3:-1] == ["/bin/bash", "-c"]
    assert seen["split"][-1].startswith("react-native start; code=$?;")
    assert seen["title"] == ["tmux", "select-pane", "-d", "-t", "%7", "-T", "packager"]


def test_start_packager_uses_tmux_pane_when_available(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls: dict[str, Any] = {}
    monkeypatch.setattr(tmux, "in_tmux", lambda: True)
    monkeypatch.setenv("ERN_TMUX_WINDOW", "packagers")
    monkeypatch.setattr(tmux, "ensure_window", lambda *, window_name, cwd: calls.setdefault("window", window_name) and "s:packagers")
    monkeypatch.setattr(tmux, "spawn_pane", lambda **kwargs: calls.setdefault("pane", kwargs) and "%3")

    assert tmux.start_packager_in_new_window(tmp_path) == "%3"
    assert calls["window"] == "packagers"
    assert calls["pane"]["argv"] == ["react-native", "start"]
    assert calls["pane"]["window_target"] == "s:packagers"


def test_start_packager_detaches_outside_tmux(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    seen: dict[str, Any] = {}

    def fake_popen(argv: list[str], **kwargs: Any) -> SimpleNamespace:
        seen.update(argv=argv, **kwargs)
        return SimpleNamespace(pid=1234)

    monkeypatch.setattr(tmux, "in_tmux", lambda: False)
    monkeypatch.setattr(tmux.subprocess, "Popen", fake_popen)

    out = tmux.start_packager_in_new_window(tmp_path, argv=["yarn", "start"])

    assert out == str(tmp_path / "packager.log")
    assert (tmp_path / "packager.log").exists()
    assert seen["argv"] == ["yarn", "start"]
    assert seen["cwd"] == str(tmp_path)
    assert seen["start_new_session"] is True
