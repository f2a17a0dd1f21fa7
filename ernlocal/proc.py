"""Subprocess helper shared by the external generators and native build steps.

`run_streamed()` runs a command and forwards its stdout and stderr line by line to the
`ernlocal` logger at DEBUG level as the lines arrive. It returns the exit code and never
raises on a non-zero exit; callers decide how to surface failures. Line forwarding relies
on the child flushing newline-terminated output.
"""

from __future__ import annotations

import selectors
import subprocess
from pathlib import Path

from .log import get_logger

log = get_logger(__name__)


def run_streamed(argv: list[str], *, cwd: Path | None = None) -> int:
    log.debug(f"run: {' '.join(argv)}")
    p = subprocess.Popen(
        argv,
        cwd=(str(cwd) if cwd else None),
        text=True,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        bufsize=1,
    )
    assert p.stdout is not None
    assert p.stderr is not None

    sel = selectors.DefaultSelector()
    sel.register(p.stdout, selectors.EVENT_READ)
    sel.register(p.stderr, selectors.EVENT_READ)

    while sel.get_map():
        for key, _ in sel.select(timeout=0.1):
            stream = key.fileobj
            if not hasattr(stream, "readline"):
                sel.unregister(stream)
                continue
            line = stream.readline()
            if line == "":
                sel.unregister(stream)
                continue
            log.debug(line.rstrip("\n"))

        if p.poll() is not None and not sel.get_map():
            break

    return int(p.wait())
