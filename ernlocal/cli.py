"""ernlocal.cli

Command-line entrypoint for `ern`, the local CLI of the Cauldron workflow:
1) keeps the registry of Cauldron repositories in `$ERN_HOME/.ernrc`,
2) changes what the containers of native application versions embed (MiniApps, native
   dependencies), regenerating and publishing a container for every change,
3) builds Runner projects to try MiniApps on an Android device or iOS simulator.

Entry points
- `ernlocal.cli:main` (console script `ern`)
- `python3 -m ernlocal ...` (delegates to this module)

Commands
- `ern cauldron repo list|add <alias> <url>|use <alias>|current`
- `ern cauldron get nativeapps [--platform P] [--released|--non-released]`
- `ern cauldron add miniapps <pkg>... [-d D] [--containerVersion V]`
- `ern cauldron del miniapps <pkg>... [-d D] [--containerVersion V]`
- `ern cauldron update miniapps <pkg>... [-d D] [--containerVersion V]`
- `ern cauldron add dependencies <pkg>... [-d D] [--containerVersion V]`
- `ern cauldron del dependencies <pkg>... [-d D] [--containerVersion V]`
- `ern cauldron add nativeapp <descriptor>`
- `ern run-android|run-ios [--miniapps M...] [--dependencies D...] [--descriptor D]
  [--mainMiniAppName N] [--dev|--no-dev]`

Container state updates
Every `add|del|update miniapps|dependencies` command first runs its preconditions (see
`ernlocal.preconditions`); a failing one exits with status 1 before anything changes.
The change itself goes through `perform_container_state_update()`: the Cauldron change,
the new container and the container version pointer land together or not at all. When
`-d/--descriptor` is omitted the user picks one of the non-released native application
versions of the Cauldron.

Global flags
- `--dry-run`: stub container and Runner generators (nothing is built or published) and a
  Cauldron checkout that commits locally but never pulls or pushes.
- `--container-gen-cmd <exe>` / `--runner-gen-cmd <exe>`: generator executables.
- `--yarn-cmd <exe>`: yarn executable used for registry queries (default: `yarn`).

Exit status
0 on success, 1 when a precondition fails or an `ErnError` surfaces (logged with the
`[ern]` prefix), 2 on argument errors.
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .cauldron import CauldronClient, open_cauldron
from .config import ErnConfig, RunnerConfig
from .descriptor import PLATFORMS, NativeApplicationDescriptor, PackageRef
from .ensure import Ensure
from .errors import ErnError, UsageError
from .generators import (
    ContainerGenerator,
    ExternalContainerGenerator,
    ExternalRunnerGenerator,
    RunnerGenerator,
    StubContainerGenerator,
    StubRunnerGenerator,
)
from .log import get_logger
from .preconditions import (
    CauldronIsActive,
    DependencyIsInContainer,
    DependencyNotInContainer,
    DependencyNotInUseByAMiniApp,
    IsCompleteNapDescriptorString,
    IsNewerContainerVersion,
    IsValidContainerVersion,
    MiniAppIsInContainer,
    MiniAppIsInContainerWithDifferentVersion,
    MiniAppNotInContainer,
    NapDescriptorDoesNotExistInCauldron,
    NapDescriptorExistsInCauldron,
    NoGitOrFilesystemPath,
    Precondition,
    PublishedToNpm,
    check_preconditions,
)
from .prompts import InputFn
from .registry import PackageRegistry
from .runner import RunnerEnv, run_miniapp
from .transaction import perform_container_state_update
from .utils import ask_user_to_choose_a_nap_descriptor_from_cauldron, epilog, get_nap_descriptor_strings_from_cauldron

log = get_logger(__name__)


@dataclass
class CliContext:
    config: ErnConfig
    registry: PackageRegistry
    container_generator: ContainerGenerator
    runner_generator: RunnerGenerator
    dry_run: bool = False
    cwd: Path | None = None
    input_fn: InputFn = input
    cauldron_client: CauldronClient | None = None

    def cauldron(self) -> CauldronClient:
        if self.cauldron_client is None:
            self.cauldron_client = open_cauldron(self.config, dry_run=self.dry_run)
        return self.cauldron_client

    def ensure(self) -> Ensure:
        # No active Cauldron: let CauldronIsActive report it instead of failing here.
        cauldron = self.cauldron() if self.config.active_cauldron_url() else self.cauldron_client
        return Ensure(cauldron=cauldron, registry=self.registry, config=self.config)


Handler = Callable[[argparse.Namespace, CliContext], int]


# Cauldron repositories


def _cmd_repo_list(args: argparse.Namespace, ctx: CliContext) -> int:
    repos = ctx.config.cauldron_repositories
    if not repos:
        raise ErnError("No Cauldron repositories have been added yet")
    log.info("[Cauldron Repositories]")
    for alias, url in repos.items():
        log.info(f"{alias} -> {url}")
    return 0


def _cmd_repo_add(args: argparse.Namespace, ctx: CliContext) -> int:
    try:
        ctx.config.add_cauldron_repository(args.alias, args.url)
        if args.current:
            ctx.config.use_cauldron_repository(args.alias)
    except ValueError as exc:
        raise UsageError(str(exc)) from exc
    log.info(f"Added Cauldron repository {args.alias} -> {args.url}")
    return 0


def _cmd_repo_use(args: argparse.Namespace, ctx: CliContext) -> int:
    try:
        ctx.config.use_cauldron_repository(args.alias)
    except ValueError as exc:
        raise UsageError(str(exc)) from exc
    log.info(f"{args.alias} Cauldron is now in use")
    return 0


def _cmd_repo_current(args: argparse.Namespace, ctx: CliContext) -> int:
    alias = ctx.config.cauldron_repo_in_use
    url = ctx.config.active_cauldron_url()
    if alias is None or url is None:
        raise ErnError("No Cauldron repository is in use")
    log.info(f"{alias} -> {url}")
    return 0


# Cauldron queries and changes


def _cmd_get_nativeapps(args: argparse.Namespace, ctx: CliContext) -> int:
    check_preconditions([CauldronIsActive()], ensure=ctx.ensure())
    for d in get_nap_descriptor_strings_from_cauldron(
        ctx.cauldron(),
        platform=args.platform,
        only_released_versions=bool(args.released),
        only_non_released_versions=bool(args.non_released),
    ):
        print(d)
    return 0


def _cmd_add_nativeapp(args: argparse.Namespace, ctx: CliContext) -> int:
    check_preconditions(
        [
            CauldronIsActive(),
            IsCompleteNapDescriptorString(args.descriptor),
            NapDescriptorDoesNotExistInCauldron(args.descriptor),
        ],
        ensure=ctx.ensure(),
    )
    napd = NativeApplicationDescriptor.from_string(args.descriptor)
    ctx.cauldron().create_native_app_version(napd)
    log.info(f"{napd} native application version added to Cauldron")
    return 0


def _container_update(
    args: argparse.Namespace,
    ctx: CliContext,
    *,
    checks: Callable[[list[str], NativeApplicationDescriptor], list[Precondition]],
    apply: Callable[[CauldronClient, NativeApplicationDescriptor, PackageRef], None],
    done: str,
) -> int:
    descriptor = args.descriptor or _ask_descriptor(ctx)
    napd = _parse_descriptor(descriptor)
    packages = list(args.packages)

    preconditions: list[Precondition] = [
        CauldronIsActive(),
        IsCompleteNapDescriptorString(descriptor),
        NapDescriptorExistsInCauldron(
            descriptor,
            extra_error_message="This command cannot work on a non existing native application version",
        ),
    ]
    if args.container_version:
        preconditions += [
            IsValidContainerVersion(args.container_version),
            IsNewerContainerVersion(descriptor, args.container_version),
        ]
    preconditions += checks(packages, napd)
    check_preconditions(preconditions, ensure=ctx.ensure())

    cauldron = ctx.cauldron()
    refs = [PackageRef.from_string(p) for p in packages]

    def mutation() -> None:
        for ref in refs:
            apply(cauldron, napd, ref)

    perform_container_state_update(
        mutation,
        napd,
        cauldron=cauldron,
        generator=ctx.container_generator,
        container_version=args.container_version,
    )
    log.info(f"{done} {napd}")
    return 0


def _cmd_add_miniapps(args: argparse.Namespace, ctx: CliContext) -> int:
    return _container_update(
        args,
        ctx,
        checks=lambda pkgs, napd: [
            NoGitOrFilesystemPath(pkgs, "You cannot provide MiniApp(s) using git or file scheme for this command."),
            PublishedToNpm(pkgs, "You can only add MiniApps versions that have been published to NPM"),
            MiniAppNotInContainer(
                pkgs, napd, "If you want to update MiniApp(s) version(s), use 'ern cauldron update miniapps' instead"
            ),
        ],
        apply=lambda c, napd, ref: c.add_miniapp(napd, ref),
        done="MiniApp(s) successfully added to",
    )


def _cmd_del_miniapps(args: argparse.Namespace, ctx: CliContext) -> int:
    return _container_update(
        args,
        ctx,
        checks=lambda pkgs, napd: [
            MiniAppIsInContainer(pkgs, napd),
        ],
        apply=lambda c, napd, ref: c.remove_miniapp(napd, ref),
        done="MiniApp(s) successfully removed from",
    )


def _cmd_update_miniapps(args: argparse.Namespace, ctx: CliContext) -> int:
    return _container_update(
        args,
        ctx,
        checks=lambda pkgs, napd: [
            NoGitOrFilesystemPath(pkgs, "You cannot provide MiniApp(s) using git or file scheme for this command."),
            PublishedToNpm(pkgs, "You can only update MiniApps versions that have been published to NPM"),
            MiniAppIsInContainerWithDifferentVersion(
                pkgs, napd, "If you want to add new MiniApp(s), use 'ern cauldron add miniapps' instead"
            ),
        ],
        apply=lambda c, napd, ref: c.update_miniapp_version(napd, ref),
        done="MiniApp(s) version(s) successfully updated in",
    )


def _cmd_add_dependencies(args: argparse.Namespace, ctx: CliContext) -> int:
    return _container_update(
        args,
        ctx,
        checks=lambda pkgs, napd: [
            NoGitOrFilesystemPath(pkgs, "You cannot provide dependency(ies) using git or file scheme for this command."),
            PublishedToNpm(pkgs, "You can only add dependencies versions that have been published to NPM"),
            DependencyNotInContainer(pkgs, napd),
        ],
        apply=lambda c, napd, ref: c.add_native_dependency(napd, ref),
        done="Dependency(ies) successfully added to",
    )


def _cmd_del_dependencies(args: argparse.Namespace, ctx: CliContext) -> int:
    return _container_update(
        args,
        ctx,
        checks=lambda pkgs, napd: [
            DependencyIsInContainer(pkgs, napd),
            DependencyNotInUseByAMiniApp(pkgs, napd),
        ],
        apply=lambda c, napd, ref: c.remove_native_dependency(napd, ref),
        done="Dependency(ies) successfully removed from",
    )


def _ask_descriptor(ctx: CliContext) -> str:
    return ask_user_to_choose_a_nap_descriptor_from_cauldron(
        ctx.cauldron(), only_non_released_versions=True, input_fn=ctx.input_fn
    )


def _parse_descriptor(descriptor: str) -> NativeApplicationDescriptor:
    try:
        return NativeApplicationDescriptor.from_string(descriptor)
    except ValueError as exc:
        raise UsageError(str(exc)) from exc


# Runner


def _run_platform(platform: str) -> Handler:
    def handler(args: argparse.Namespace, ctx: CliContext) -> int:
        cwd = ctx.cwd or Path.cwd()
        env = RunnerEnv(
            cwd=cwd,
            container_generator=ctx.container_generator,
            runner_generator=ctx.runner_generator,
            runner_config=RunnerConfig(),
            ensure=ctx.ensure() if args.descriptor else None,
            input_fn=ctx.input_fn,
        )
        run_miniapp(
            platform,
            env=env,
            main_miniapp_name=args.main_miniapp_name,
            miniapps=args.miniapps,
            dependencies=args.dependencies,
            descriptor=args.descriptor,
            dev=args.dev,
        )
        return 0

    return handler


# Parser


def _add_package_command(sub: Any, name: str, help_text: str, handler: Handler, argv: list[str]) -> None:
    p = sub.add_parser(name, help=help_text, epilog=epilog(name, argv))
    p.add_argument("packages", nargs="+", metavar="package", help="Package(s) as name@version.")
    p.add_argument("-d", "--descriptor", default=None, help="Complete native application descriptor.")
    p.add_argument(
        "--containerVersion",
        dest="container_version",
        default=None,
        help="Version of the generated container (default: patch increment of the current one).",
    )
    p.set_defaults(func=handler)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="ern", description="Electrode Native local CLI.")
    p.add_argument(
        "--dry-run",
        action="store_true",
        help="Use stub generators; Cauldron changes are committed locally but never pushed.",
    )
    p.add_argument("--container-gen-cmd", default=None, help="Container generator executable.")
    p.add_argument("--runner-gen-cmd", default=None, help="Runner generator executable.")
    p.add_argument("--yarn-cmd", default="yarn", help="yarn executable used for registry queries (default: yarn).")
    commands = p.add_subparsers(dest="command", required=True)

    # cauldron
    cauldron = commands.add_parser("cauldron", help="Cauldron access commands", epilog=epilog("cauldron", ["ern", "cauldron"]))
    cauldron_sub = cauldron.add_subparsers(dest="cauldron_command", required=True)

    repo = cauldron_sub.add_parser("repo", help="Manage Cauldron repositories")
    repo_sub = repo.add_subparsers(dest="repo_command", required=True)
    repo_list = repo_sub.add_parser(
        "list", help="List all Cauldron repositories", epilog=epilog("list", ["ern", "cauldron", "repo", "list"])
    )
    repo_list.set_defaults(func=_cmd_repo_list)
    repo_add = repo_sub.add_parser(
        "add", help="Add a Cauldron git repository", epilog=epilog("add", ["ern", "cauldron", "repo", "add"])
    )
    repo_add.add_argument("alias")
    repo_add.add_argument("url")
    repo_add.add_argument(
        "--current",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Use the added repository as the active Cauldron (default: yes).",
    )
    repo_add.set_defaults(func=_cmd_repo_add)
    repo_use = repo_sub.add_parser(
        "use", help="Select a Cauldron repository to use", epilog=epilog("use", ["ern", "cauldron", "repo", "use"])
    )
    repo_use.add_argument("alias")
    repo_use.set_defaults(func=_cmd_repo_use)
    repo_current = repo_sub.add_parser(
        "current",
        help="Display the current Cauldron repository",
        epilog=epilog("current", ["ern", "cauldron", "repo", "current"]),
    )
    repo_current.set_defaults(func=_cmd_repo_current)

    get = cauldron_sub.add_parser("get", help="Query the Cauldron")
    get_sub = get.add_subparsers(dest="get_command", required=True)
    nativeapps = get_sub.add_parser(
        "nativeapps",
        help="List native application versions",
        epilog=epilog("nativeapps", ["ern", "cauldron", "get", "nativeapps"]),
    )
    nativeapps.add_argument("--platform", choices=PLATFORMS, default=None)
    released = nativeapps.add_mutually_exclusive_group()
    released.add_argument("--released", action="store_true", help="Only released versions.")
    released.add_argument("--non-released", action="store_true", help="Only non-released versions.")
    nativeapps.set_defaults(func=_cmd_get_nativeapps)

    add = cauldron_sub.add_parser("add", help="Add objects to the Cauldron")
    add_sub = add.add_subparsers(dest="add_command", required=True)
    _add_package_command(
        add_sub, "miniapps", "Add MiniApp(s) to a container", _cmd_add_miniapps, ["ern", "cauldron", "add", "miniapps"]
    )
    _add_package_command(
        add_sub,
        "dependencies",
        "Add native dependency(ies) to a container",
        _cmd_add_dependencies,
        ["ern", "cauldron", "add", "dependencies"],
    )
    nativeapp = add_sub.add_parser(
        "nativeapp",
        help="Add a native application version to the Cauldron",
        epilog=epilog("nativeapp", ["ern", "cauldron", "add", "nativeapp"]),
    )
    nativeapp.add_argument("descriptor", help="Complete native application descriptor.")
    nativeapp.set_defaults(func=_cmd_add_nativeapp)

    delete = cauldron_sub.add_parser("del", help="Remove objects from the Cauldron")
    del_sub = delete.add_subparsers(dest="del_command", required=True)
    _add_package_command(
        del_sub, "miniapps", "Remove MiniApp(s) from a container", _cmd_del_miniapps, ["ern", "cauldron", "del", "miniapps"]
    )
    _add_package_command(
        del_sub,
        "dependencies",
        "Remove native dependency(ies) from a container",
        _cmd_del_dependencies,
        ["ern", "cauldron", "del", "dependencies"],
    )

    update = cauldron_sub.add_parser("update", help="Update objects in the Cauldron")
    update_sub = update.add_subparsers(dest="update_command", required=True)
    _add_package_command(
        update_sub,
        "miniapps",
        "Update MiniApp(s) version(s) in a container",
        _cmd_update_miniapps,
        ["ern", "cauldron", "update", "miniapps"],
    )

    # run-android / run-ios
    for platform in PLATFORMS:
        name = f"run-{platform}"
        run = commands.add_parser(
            name, help=f"Run one or more MiniApps in the {platform} Runner", epilog=epilog(name, ["ern", name])
        )
        run.add_argument("--miniapps", nargs="+", default=None, help="Extra MiniApp(s) to include.")
        run.add_argument("--dependencies", nargs="+", default=None, help="Extra native dependency(ies) to include.")
        run.add_argument("--descriptor", default=None, help="Run the container of a native application version.")
        run.add_argument("--mainMiniAppName", dest="main_miniapp_name", default=None, help="MiniApp to launch.")
        run.add_argument(
            "--dev",
            action=argparse.BooleanOptionalAction,
            default=None,
            help="React Native development mode (default: on for a standalone MiniApp).",
        )
        run.set_defaults(func=_run_platform(platform))
    return p


def build_context(args: argparse.Namespace) -> CliContext:
    if args.dry_run:
        container_generator: ContainerGenerator = StubContainerGenerator()
        runner_generator: RunnerGenerator = StubRunnerGenerator()
    else:
        container_generator = ExternalContainerGenerator(cmd=args.container_gen_cmd)
        runner_generator = ExternalRunnerGenerator(cmd=args.runner_gen_cmd)
    try:
        config = ErnConfig.load()
    except ValueError as exc:
        raise UsageError(str(exc)) from exc
    return CliContext(
        config=config,
        registry=PackageRegistry(executable=args.yarn_cmd),
        container_generator=container_generator,
        runner_generator=runner_generator,
        dry_run=bool(args.dry_run),
    )


def main(argv: list[str] | None = None) -> int:
    raw_argv = list(sys.argv[1:] if argv is None else argv)
    args = build_parser().parse_args(raw_argv)
    try:
        ctx = build_context(args)
        return args.func(args, ctx)
    except ErnError as exc:
        log.error(f"✗ {exc}")
        return 1
