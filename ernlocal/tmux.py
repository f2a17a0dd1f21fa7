"""Terminal helpers for long-running side processes (the React Native packager).

When ern runs inside tmux, the packager is started in a detached pane of an `ern`
window so its output stays visible without stealing focus. Outside tmux it is started as
a detached background process whose output goes to a log file.

Environment variables:
- ERN_PANE_SHELL: shell used to host pane commands (default `/bin/sh`).
- ERN_TMUX_WINDOW: tmux window receiving the panes (default `ern`).
"""

from __future__ import annotations

import os
import shlex
import subprocess
from pathlib import Path


def in_tmux() -> bool:
    return bool(os.environ.get("TMUX"))


def _login_shell() -> str:
    return os.environ.get("ERN_PANE_SHELL", "/bin/sh")


def ensure_window(*, window_name: str, cwd: Path) -> str:
    """Ensure a tmux window exists and return its `session:window` target."""
    session = subprocess.check_output(["tmux", "display-message", "-p", "#S"], text=True).strip()
    existing = subprocess.check_output(["tmux", "list-windows", "-F", "#W"], text=True).splitlines()
    if window_name not in set(existing):
        subprocess.check_call(["tmux", "new-window", "-d", "-n", window_name, "-c", str(cwd)])
    return f"{session}:{window_name}"


def spawn_pane(*, window_target: str, argv: list[str], cwd: Path, title: str) -> str:
    """Run `argv` in a new detached pane that stays open after the command exits."""
    cmd = " ".join(shlex.quote(a) for a in argv)
    shell = shlex.quote(_login_shell())
    script = f"{cmd}; code=$?; echo; echo \"[ern] exited $code\"; exec {shell}"
    pane_id = subprocess.check_output(
        [
            "tmux",
            "split-window",
            "-d",
            "-t",
            window_target,
            "-P",
            "-F",
            "#{pane_id}",
            "-c",
            str(cwd),
            _login_shell(),
            "-c",
            script,
        ],
        text=True,
    ).strip()
    subprocess.run(["tmux", "select-pane", "-d", "-t", pane_id, "-T", title], check=False)
    return pane_id


def start_packager_in_new_window(cwd: Path, *, argv: list[str] | None = None) -> str:
    """Start the React Native packager for the MiniApp in `cwd`.

    Returns the tmux pane id, or the path of the log file when not running inside tmux.
    """
    argv = argv or ["react-native", "start"]
    if in_tmux():
        window = ensure_window(window_name=os.environ.get("ERN_TMUX_WINDOW", "ern"), cwd=cwd)
        return spawn_pane(window_target=window, argv=argv, cwd=cwd, title="packager")

    log_file = cwd / "packager.log"
    with log_file.open("ab") as out:
        subprocess.Popen(argv, cwd=str(cwd), stdout=out, stderr=subprocess.STDOUT, start_new_session=True)
    return str(log_file)
