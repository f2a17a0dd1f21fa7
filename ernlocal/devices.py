"""Android device and iOS simulator control.

Thin wrappers over the platform tools; every call blocks until the tool exits.

- Android: `./gradlew installDebug` in the Runner project, then `adb shell am start`.
- iOS: `xcrun simctl` to list, boot, install on and launch simulators.

Failures raise `subprocess.CalledProcessError` (or `RuntimeError` for unusable tool output);
callers wrap them as needed.
"""

from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass
from pathlib import Path

from .log import get_logger
from .prompts import InputFn, choose

log = get_logger(__name__)


@dataclass(frozen=True)
class IosDevice:
    name: str
    udid: str
    runtime: str


def run_android_project(*, project_path: Path, package_name: str) -> None:
    gradlew = project_path / "gradlew"
    subprocess.run([str(gradlew), "installDebug"], cwd=str(project_path), check=True)
    subprocess.run(
        ["adb", "shell", "am", "start", "-n", f"{package_name}/.MainActivity"],
        cwd=str(project_path),
        check=True,
    )


def list_iphone_simulators() -> list[IosDevice]:
    out = subprocess.check_output(["xcrun", "simctl", "list", "devices", "available", "--json"], text=True)
    try:
        raw = json.loads(out)
    except json.JSONDecodeError as e:
        raise RuntimeError("Unexpected output from 'xcrun simctl list devices'.") from e
    devices: list[IosDevice] = []
    for runtime, entries in (raw.get("devices") or {}).items():
        for d in entries:
            name = str(d.get("name", ""))
            if name.startswith("iPhone") and d.get("isAvailable", True):
                devices.append(IosDevice(name=name, udid=str(d["udid"]), runtime=str(runtime)))
    return devices


def ask_user_to_select_an_iphone_device(*, input_fn: InputFn = input) -> IosDevice:
    devices = list_iphone_simulators()
    if not devices:
        raise RuntimeError("No iPhone simulator available.")
    labels = [f"{d.name} ({d.runtime.rsplit('.', 1)[-1]}) {d.udid}" for d in devices]
    picked = choose("Choose an iOS device", labels, input_fn=input_fn)
    return devices[labels.index(picked)]


def kill_all_running_simulators() -> None:
    subprocess.run(["xcrun", "simctl", "shutdown", "all"], check=False)
    subprocess.run(["killall", "Simulator"], check=False, capture_output=True)


def launch_simulator(udid: str) -> None:
    log.debug(f"booting simulator {udid}")
    subprocess.run(["xcrun", "simctl", "boot", udid], check=True)
    subprocess.run(["open", "-a", "Simulator", "--args", "-CurrentDeviceUDID", udid], check=False)


def install_application_on_device(udid: str, app_path: Path) -> None:
    subprocess.run(["xcrun", "simctl", "install", udid, str(app_path)], check=True)


def launch_application(udid: str, bundle_id: str) -> None:
    subprocess.run(["xcrun", "simctl", "launch", udid, bundle_id], check=True)
