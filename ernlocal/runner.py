"""Runner flow: build a container for one or more MiniApps and launch it in a Runner.

A Runner is a minimal native host project generated under `<cwd>/<platform>`. The
container it embeds is built either locally from MiniApp paths (the MiniApp in the current
directory plus any `--miniapps`), or from a native application version recorded in the
Cauldron (`--descriptor`). Nothing is published and the Cauldron is never written.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from . import devices
from .config import RunnerConfig
from .descriptor import PLATFORMS, NativeApplicationDescriptor, PackageRef
from .ensure import Ensure
from .errors import GenerationError, UsageError
from .generators import ContainerGenerator, RunnerGenerator
from .log import get_logger, spin
from .preconditions import IsCompleteNapDescriptorString, NapDescriptorExistsInCauldron, check_preconditions
from .proc import run_streamed
from .prompts import InputFn
from .tmux import start_packager_in_new_window

log = get_logger(__name__)


@dataclass
class RunnerEnv:
    cwd: Path
    container_generator: ContainerGenerator
    runner_generator: RunnerGenerator
    runner_config: RunnerConfig = field(default_factory=RunnerConfig)
    ensure: Ensure | None = None
    input_fn: InputFn = input
    start_packager: Callable[[Path], object] = start_packager_in_new_window


def miniapp_name_in_path(path: Path) -> str | None:
    """Name of the MiniApp whose `package.json` lives in `path`, or None."""
    pkg = path / "package.json"
    if not pkg.is_file():
        return None
    try:
        data = json.loads(pkg.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict) or not isinstance(data.get("ern"), dict) or not data.get("name"):
        return None
    return str(data["name"])


def run_miniapp(
    platform: str,
    *,
    env: RunnerEnv,
    main_miniapp_name: str | None = None,
    miniapps: list[str] | None = None,
    dependencies: list[str] | None = None,
    descriptor: str | None = None,
    dev: bool | None = None,
) -> None:
    if miniapps and len(miniapps) > 1 and not main_miniapp_name:
        raise UsageError("If you provide multiple MiniApps you need to provide the name of the MiniApp to launch")
    if miniapps and len(miniapps) > 1 and dev:
        raise UsageError("You cannot enable development mode yet when running multiple MiniApps")
    if dependencies and descriptor:
        raise UsageError("You cannot pass extra native dependencies when using a Native Application Descriptor")
    if miniapps and descriptor:
        raise UsageError("You cannot use miniapps and descriptor at the same time")
    if platform not in PLATFORMS:
        raise UsageError(f"Unsupported platform : {platform}")

    napd: NativeApplicationDescriptor | None = None
    if descriptor:
        if env.ensure is None:
            raise UsageError("A Cauldron is required to run a native application version")
        check_preconditions(
            [
                IsCompleteNapDescriptorString(descriptor),
                NapDescriptorExistsInCauldron(
                    descriptor,
                    extra_error_message="You cannot create a Runner for a non existing native application version.",
                ),
            ],
            ensure=env.ensure,
        )
        napd = NativeApplicationDescriptor.from_string(descriptor)

    entry = main_miniapp_name or ""
    extra_deps: list[PackageRef] = []
    paths: list[str] = []
    if miniapps:
        local = miniapp_name_in_path(env.cwd)
        if local:
            paths = [f"file:{env.cwd}"]
            log.debug(f"This command is being run from the {local} MiniApp directory.")
            log.info(f"All extra MiniApps will be included in the Runner container along with {local}")
            if not main_miniapp_name:
                log.info(f"{local} will be set as the main MiniApp")
                log.info("You can select another one instead through '--mainMiniAppName' option")
                entry = local
        extra_deps = _parse_refs(dependencies)
        paths += list(miniapps)
    elif not descriptor:
        local = miniapp_name_in_path(env.cwd)
        if local is None:
            raise UsageError(f"No MiniApp found in {env.cwd}")
        entry = local
        log.debug(f"This command is being run from the {entry} MiniApp directory.")
        log.debug("Initializing Runner")
        extra_deps = _parse_refs(dependencies)
        paths = [f"file:{env.cwd}"]
        if dev is None:
            # Standalone MiniApp runs default to development mode with a live packager.
            dev = True
            env.start_packager(env.cwd)

    generate_container_for_runner(
        platform,
        env=env,
        descriptor=napd,
        extra_dependencies=extra_deps,
        miniapp_paths=paths,
    )

    label = "Android" if platform == "android" else "iOS"
    project_path = env.cwd / platform
    if not project_path.exists():
        project_path.mkdir(parents=True)
        with spin(f"Generating {label} Runner project", logger=log):
            env.runner_generator.generate_project(platform, project_path, entry, dev=bool(dev))
    else:
        with spin(f"Regenerating {label} Runner Configuration", logger=log):
            env.runner_generator.regenerate_config(platform, project_path, entry, dev=bool(dev))

    if platform == "android":
        launch_android_runner(project_path, config=env.runner_config)
    else:
        launch_ios_runner(project_path, config=env.runner_config, input_fn=env.input_fn)


def generate_container_for_runner(
    platform: str,
    *,
    env: RunnerEnv,
    descriptor: NativeApplicationDescriptor | None = None,
    extra_dependencies: list[PackageRef] | None = None,
    miniapp_paths: list[str] | None = None,
) -> None:
    cfg = env.runner_config
    if descriptor is not None:
        env.container_generator.generate(
            descriptor, cfg.container_version, publish=False, container_name=cfg.container_name
        )
        return
    with spin("Generating Container locally", logger=log):
        env.container_generator.generate_local(
            list(miniapp_paths or []),
            platform,
            container_version=cfg.container_version,
            native_app_name=cfg.container_name,
            extra_native_dependencies=list(extra_dependencies or []),
        )


def launch_android_runner(project_path: Path, *, config: RunnerConfig) -> None:
    devices.run_android_project(project_path=project_path, package_name=config.android_package_name)


def launch_ios_runner(project_path: Path, *, config: RunnerConfig, input_fn: InputFn = input) -> None:
    device = devices.ask_user_to_select_an_iphone_device(input_fn=input_fn)
    devices.kill_all_running_simulators()
    with spin("Waiting for device to boot", logger=log):
        devices.launch_simulator(device.udid)
    with spin("Building iOS Runner project", logger=log):
        build_ios_runner(project_path, device.name, scheme=config.ios_scheme)
    app = project_path / "build" / "Debug-iphonesimulator" / f"{config.ios_scheme}.app"
    with spin("Installing runner project on device", logger=log):
        devices.install_application_on_device(device.udid, app)
    with spin("Launching runner project", logger=log):
        devices.launch_application(device.udid, config.ios_bundle_id)


def build_ios_runner(project_path: Path, device_name: str, *, scheme: str = "ErnRunner") -> None:
    argv = [
        "xcodebuild",
        "-scheme",
        scheme,
        "build",
        "-destination",
        f"platform=iOS Simulator,name={device_name}",
        f"SYMROOT={project_path}/build",
    ]
    code = run_streamed(argv, cwd=project_path)
    if code != 0:
        raise GenerationError(f"XCode xcbuild command failed with exit code {code}")


def _parse_refs(items: list[str] | None) -> list[PackageRef]:
    try:
        return [PackageRef.from_string(s) for s in items or []]
    except ValueError as exc:
        raise UsageError(str(exc)) from exc
