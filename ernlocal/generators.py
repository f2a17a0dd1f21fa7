"""ernlocal.generators

Protocols for the two code generators ernlocal sequences but does not implement, and two
sets of implementations:

- Stub generators: no-op implementations used by `--dry-run`. They log what they would do
  and record the calls, so orchestration can be exercised without native toolchains.
- External generators: shell out to generator executables and stream their output.

Protocols
- ContainerGenerator.generate(descriptor, container_version, publish, container_name)
  Builds the container for a native application version as recorded in the Cauldron, and
  publishes it when `publish` is true. Raises `GenerationError` on failure.
- ContainerGenerator.generate_local(miniapp_paths, platform, container_version,
  native_app_name, extra_native_dependencies)
  Builds a container from MiniApp paths (registry references or local directories)
  without involving the Cauldron. Used for Runner containers.
- RunnerGenerator.generate_project(platform, project_path, entry_miniapp, dev)
  Creates a Runner project (minimal native host) in `project_path`.
- RunnerGenerator.regenerate_config(platform, project_path, entry_miniapp, dev)
  Refreshes the configuration of an existing Runner project.

External command contract
- Container: `<cmd> cauldron --descriptor <d> --containerVersion <v> [--containerName <n>] [--publish]`
  and `<cmd> local --platform <p> --containerVersion <v> --nativeAppName <n>
  [--miniapps <m>...] [--dependencies <d>...]`.
- Runner: `<cmd> project|config --platform <p> --outDir <path> --mainMiniAppName <n> [--dev]`.
A non-zero exit code raises `GenerationError`; output goes to the DEBUG log.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from .descriptor import NativeApplicationDescriptor, PackageRef
from .errors import GenerationError
from .log import get_logger
from .proc import run_streamed

log = get_logger(__name__)

DEFAULT_CONTAINER_GEN_CMD = "ern-container-gen"
DEFAULT_RUNNER_GEN_CMD = "ern-runner-gen"


class ContainerGenerator(Protocol):
    def generate(
        self,
        descriptor: NativeApplicationDescriptor,
        container_version: str,
        *,
        publish: bool,
        container_name: str | None = None,
    ) -> None: ...

    def generate_local(
        self,
        miniapp_paths: list[str],
        platform: str,
        *,
        container_version: str,
        native_app_name: str,
        extra_native_dependencies: list[PackageRef],
    ) -> None: ...


class RunnerGenerator(Protocol):
    def generate_project(self, platform: str, project_path: Path, entry_miniapp: str, *, dev: bool) -> None: ...

    def regenerate_config(self, platform: str, project_path: Path, entry_miniapp: str, *, dev: bool) -> None: ...


@dataclass
class StubContainerGenerator:
    """Records calls instead of building anything; used by `--dry-run`."""

    calls: list[dict[str, object]] = field(default_factory=list)

    def generate(
        self,
        descriptor: NativeApplicationDescriptor,
        container_version: str,
        *,
        publish: bool,
        container_name: str | None = None,
    ) -> None:
        log.info(f"(dry-run) container {descriptor} v{container_version} publish={publish}")
        self.calls.append(
            {"descriptor": descriptor, "container_version": container_version, "publish": publish, "container_name": container_name}
        )

    def generate_local(
        self,
        miniapp_paths: list[str],
        platform: str,
        *,
        container_version: str,
        native_app_name: str,
        extra_native_dependencies: list[PackageRef],
    ) -> None:
        log.info(f"(dry-run) local {platform} container v{container_version} miniapps={miniapp_paths}")
        self.calls.append(
            {
                "miniapp_paths": list(miniapp_paths),
                "platform": platform,
                "container_version": container_version,
                "native_app_name": native_app_name,
                "extra_native_dependencies": list(extra_native_dependencies),
            }
        )


@dataclass
class StubRunnerGenerator:
    """Creates the Runner directory and nothing else; used by `--dry-run`."""

    calls: list[tuple[str, str, Path, str, bool]] = field(default_factory=list)

    def generate_project(self, platform: str, project_path: Path, entry_miniapp: str, *, dev: bool) -> None:
        project_path.mkdir(parents=True, exist_ok=True)
        self.calls.append(("project", platform, project_path, entry_miniapp, dev))

    def regenerate_config(self, platform: str, project_path: Path, entry_miniapp: str, *, dev: bool) -> None:
        self.calls.append(("config", platform, project_path, entry_miniapp, dev))


class ExternalContainerGenerator:
    def __init__(self, *, cmd: str | None = None, cwd: Path | None = None) -> None:
        self.cmd = cmd or DEFAULT_CONTAINER_GEN_CMD
        self.cwd = cwd

    def generate(
        self,
        descriptor: NativeApplicationDescriptor,
        container_version: str,
        *,
        publish: bool,
        container_name: str | None = None,
    ) -> None:
        argv = [self.cmd, "cauldron", "--descriptor", str(descriptor), "--containerVersion", container_version]
        if container_name:
            argv += ["--containerName", container_name]
        if publish:
            argv.append("--publish")
        self._run(argv, what=f"container {container_version} for {descriptor}")

    def generate_local(
        self,
        miniapp_paths: list[str],
        platform: str,
        *,
        container_version: str,
        native_app_name: str,
        extra_native_dependencies: list[PackageRef],
    ) -> None:
        argv = [
            self.cmd,
            "local",
            "--platform",
            platform,
            "--containerVersion",
            container_version,
            "--nativeAppName",
            native_app_name,
        ]
        if miniapp_paths:
            argv += ["--miniapps", *miniapp_paths]
        if extra_native_dependencies:
            argv += ["--dependencies", *[str(d) for d in extra_native_dependencies]]
        self._run(argv, what=f"local {platform} container")

    def _run(self, argv: list[str], *, what: str) -> None:
        try:
            code = run_streamed(argv, cwd=self.cwd)
        except FileNotFoundError as e:
            raise GenerationError(f"Container generator not found: {self.cmd}") from e
        if code != 0:
            raise GenerationError(f"Generation of {what} failed with exit code {code}")


class ExternalRunnerGenerator:
    def __init__(self, *, cmd: str | None = None) -> None:
        self.cmd = cmd or DEFAULT_RUNNER_GEN_CMD

    def generate_project(self, platform: str, project_path: Path, entry_miniapp: str, *, dev: bool) -> None:
        self._run("project", platform, project_path, entry_miniapp, dev=dev)

    def regenerate_config(self, platform: str, project_path: Path, entry_miniapp: str, *, dev: bool) -> None:
        self._run("config", platform, project_path, entry_miniapp, dev=dev)

    def _run(self, action: str, platform: str, project_path: Path, entry_miniapp: str, *, dev: bool) -> None:
        argv = [self.cmd, action, "--platform", platform, "--outDir", str(project_path), "--mainMiniAppName", entry_miniapp]
        if dev:
            argv.append("--dev")
        try:
            code = run_streamed(argv, cwd=project_path)
        except FileNotFoundError as e:
            raise GenerationError(f"Runner generator not found: {self.cmd}") from e
        if code != 0:
            raise GenerationError(f"Runner {action} generation for {platform} failed with exit code {code}")
