"""Package registry queries through `yarn info --json`.

`yarn info <package> [field] --json` prints a stream of JSON events, one per line (JSONL),
for example:

    {"type":"inspect","data":["1.0.0","1.1.0"]}

and on failure an event such as `{"type":"error","data":"Received invalid response from npm."}`
(usually on stderr, with a non-zero exit code). The output is parsed as a single JSON value
first and then line by line, ignoring lines that are not JSON (yarn prints warnings and
progress on the same streams).

`PackageRegistry.info()` returns the `data` of the last `inspect` event. It raises
`RegistryError` when yarn is missing, exits non-zero, or reports an `error` event.
"""

from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .descriptor import PackageRef
from .errors import RegistryError
from .log import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class YarnResult:
    exit_code: int
    events: list[dict[str, Any]]
    stderr: str


def run_yarn_json(args: list[str], *, executable: str = "yarn", cwd: Path | None = None) -> YarnResult:
    cmd = [executable, *args, "--json"]
    log.debug(f"registry: {' '.join(cmd)}")
    try:
        p = subprocess.run(cmd, cwd=(str(cwd) if cwd else None), text=True, capture_output=True, check=False)
    except FileNotFoundError as e:
        raise RegistryError(f"{executable} is required to query the package registry.") from e
    events = _parse_events(p.stdout) + _parse_events(p.stderr)
    return YarnResult(exit_code=p.returncode, events=events, stderr=p.stderr.strip())


def _parse_events(raw: str) -> list[dict[str, Any]]:
    if not raw.strip():
        return []
    try:
        val = json.loads(raw)
    except json.JSONDecodeError:
        val = None
    if isinstance(val, dict):
        return [val]
    if isinstance(val, list):
        return [v for v in val if isinstance(v, dict)]

    events: list[dict[str, Any]] = []
    for ln in raw.splitlines():
        ln = ln.strip()
        if not ln:
            continue
        try:
            ev = json.loads(ln)
        except json.JSONDecodeError:
            continue
        if isinstance(ev, dict):
            events.append(ev)
    return events


class PackageRegistry:
    def __init__(self, *, executable: str = "yarn") -> None:
        self.executable = executable

    def info(self, package: PackageRef | str, field: str | None = None, *, allow_missing: bool = False) -> Any:
        """`data` of the last inspect event; `None` for an absent field when `allow_missing`."""
        args = ["info", str(package)]
        if field:
            args.append(field)
        res = run_yarn_json(args, executable=self.executable)

        errors = [ev for ev in res.events if ev.get("type") == "error"]
        if errors:
            raise RegistryError(f"yarn info {package} failed: {errors[-1].get('data')}")
        inspect = [ev for ev in res.events if ev.get("type") == "inspect"]
        if allow_missing and res.exit_code == 0 and not inspect:
            return None
        if res.exit_code != 0 or not inspect:
            raise RegistryError(f"yarn info {package} failed with exit code {res.exit_code}: {res.stderr}")
        return inspect[-1].get("data")

    def versions(self, name: str) -> list[str]:
        data = self.info(name, "versions")
        if isinstance(data, str):
            return [data]
        if not isinstance(data, list):
            raise RegistryError(f"Unexpected versions payload for {name}: {type(data)}")
        return [str(v) for v in data]

    def dependencies(self, package: PackageRef) -> dict[str, str]:
        """`dependencies` of the published package.json; empty when none are declared."""
        data = self.info(package, "dependencies", allow_missing=True)
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def is_published(self, package: PackageRef) -> bool:
        if package.version is None:
            return self.package_exists(package.name)
        return package.version in self.versions(package.name)

    def package_exists(self, name: str) -> bool:
        try:
            self.info(name, "versions")
        except RegistryError:
            return False
        return True
