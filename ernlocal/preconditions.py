"""Declarative command preconditions.

Commands describe what must hold before they change anything as a list of precondition
values, for example:

    check_preconditions(
        [
            IsCompleteNapDescriptorString(descriptor),
            NapDescriptorExistsInCauldron(descriptor, extra_error_message="..."),
        ],
        ensure=ensure,
    )

`check_preconditions()` runs them in the canonical order of `ORDER`, whatever order the
caller used, one `Ensure` check at a time, logging one status line per check. The first
failure (any `ErnError`, including registry and Cauldron errors raised while checking) is
logged and terminates the process with exit status 1 (`SystemExit(1)`); the
remaining checks do not run.

Adding a precondition means adding its dataclass, its `Ensure` method, and one entry in
`_CHECKS`.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from .descriptor import NativeApplicationDescriptor
from .ensure import Ensure, StrOrList
from .errors import ErnError
from .log import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class CauldronIsActive:
    extra_error_message: str | None = None


@dataclass(frozen=True)
class IsValidContainerVersion:
    container_version: str
    extra_error_message: str | None = None


@dataclass(frozen=True)
class IsNewerContainerVersion:
    descriptor: str
    container_version: str
    extra_error_message: str | None = None


@dataclass(frozen=True)
class IsCompleteNapDescriptorString:
    descriptor: str
    extra_error_message: str | None = None


@dataclass(frozen=True)
class NoGitOrFilesystemPath:
    obj: StrOrList
    extra_error_message: str | None = None


@dataclass(frozen=True)
class NapDescriptorExistsInCauldron:
    descriptor: str
    extra_error_message: str | None = None


@dataclass(frozen=True)
class NapDescriptorDoesNotExistInCauldron:
    descriptor: str
    extra_error_message: str | None = None


@dataclass(frozen=True)
class PublishedToNpm:
    obj: StrOrList
    extra_error_message: str | None = None


@dataclass(frozen=True)
class MiniAppNotInContainer:
    miniapp: StrOrList
    descriptor: NativeApplicationDescriptor
    extra_error_message: str | None = None


@dataclass(frozen=True)
class MiniAppIsInContainer:
    miniapp: StrOrList
    descriptor: NativeApplicationDescriptor
    extra_error_message: str | None = None


@dataclass(frozen=True)
class MiniAppIsInContainerWithDifferentVersion:
    miniapp: StrOrList
    descriptor: NativeApplicationDescriptor
    extra_error_message: str | None = None


@dataclass(frozen=True)
class DependencyNotInContainer:
    dependency: StrOrList
    descriptor: NativeApplicationDescriptor
    extra_error_message: str | None = None


@dataclass(frozen=True)
class DependencyIsInContainer:
    dependency: StrOrList
    descriptor: NativeApplicationDescriptor
    extra_error_message: str | None = None


@dataclass(frozen=True)
class DependencyIsInContainerWithDifferentVersion:
    dependency: StrOrList
    descriptor: NativeApplicationDescriptor
    extra_error_message: str | None = None


@dataclass(frozen=True)
class DependencyNotInUseByAMiniApp:
    dependency: StrOrList
    descriptor: NativeApplicationDescriptor
    extra_error_message: str | None = None


Precondition = (
    CauldronIsActive
    | IsValidContainerVersion
    | IsNewerContainerVersion
    | IsCompleteNapDescriptorString
    | NoGitOrFilesystemPath
    | NapDescriptorExistsInCauldron
    | NapDescriptorDoesNotExistInCauldron
    | PublishedToNpm
    | MiniAppNotInContainer
    | MiniAppIsInContainer
    | MiniAppIsInContainerWithDifferentVersion
    | DependencyNotInContainer
    | DependencyIsInContainer
    | DependencyIsInContainerWithDifferentVersion
    | DependencyNotInUseByAMiniApp
)

# (status line, check) per precondition type, in canonical order.
_CHECKS: dict[type, tuple[str, Callable[[Ensure, Precondition], None]]] = {
    CauldronIsActive: (
        "Ensuring that a Cauldron is active",
        lambda e, p: e.cauldron_is_active(p.extra_error_message),
    ),
    IsValidContainerVersion: (
        "Ensuring that container version is valid",
        lambda e, p: e.is_valid_container_version(p.container_version, p.extra_error_message),
    ),
    IsNewerContainerVersion: (
        "Ensuring that container version is newer compared to the current one",
        lambda e, p: e.is_newer_container_version(p.descriptor, p.container_version, p.extra_error_message),
    ),
    IsCompleteNapDescriptorString: (
        "Ensuring that native application descriptor is complete",
        lambda e, p: e.is_complete_nap_descriptor_string(p.descriptor, p.extra_error_message),
    ),
    NoGitOrFilesystemPath: (
        "Ensuring that no git or file system path(s) is/are used",
        lambda e, p: e.no_git_or_filesystem_path(p.obj, p.extra_error_message),
    ),
    NapDescriptorExistsInCauldron: (
        "Ensuring that native application descriptor exists in Cauldron",
        lambda e, p: e.nap_descriptor_exists_in_cauldron(p.descriptor, p.extra_error_message),
    ),
    NapDescriptorDoesNotExistInCauldron: (
        "Ensuring that native application descriptor does not already exist in Cauldron",
        lambda e, p: e.nap_descriptor_does_not_exist_in_cauldron(p.descriptor, p.extra_error_message),
    ),
    PublishedToNpm: (
        "Ensuring that package(s) version(s) have been published to NPM",
        lambda e, p: e.published_to_npm(p.obj, p.extra_error_message),
    ),
    MiniAppNotInContainer: (
        "Ensuring that MiniApp(s) is/are not present in native application version container",
        lambda e, p: e.miniapp_not_in_container(p.miniapp, p.descriptor, p.extra_error_message),
    ),
    MiniAppIsInContainer: (
        "Ensuring that MiniApp(s) is/are present in native application version container",
        lambda e, p: e.miniapp_is_in_container(p.miniapp, p.descriptor, p.extra_error_message),
    ),
    MiniAppIsInContainerWithDifferentVersion: (
        "Ensuring that MiniApp(s) is/are present in native application version container with different version(s)",
        lambda e, p: e.miniapp_is_in_container_with_different_version(p.miniapp, p.descriptor, p.extra_error_message),
    ),
    DependencyNotInContainer: (
        "Ensuring that dependency(ies) is/are not present in native application version container",
        lambda e, p: e.dependency_not_in_container(p.dependency, p.descriptor, p.extra_error_message),
    ),
    DependencyIsInContainer: (
        "Ensuring that dependency(ies) is/are present in native application version container",
        lambda e, p: e.dependency_is_in_container(p.dependency, p.descriptor, p.extra_error_message),
    ),
    DependencyIsInContainerWithDifferentVersion: (
        "Ensuring that dependency(ies) is/are present in native application version container with different version(s)",
        lambda e, p: e.dependency_is_in_container_with_different_version(
            p.dependency, p.descriptor, p.extra_error_message
        ),
    ),
    DependencyNotInUseByAMiniApp: (
        "Ensuring that no MiniApp(s) is/are using a dependency",
        lambda e, p: e.dependency_not_in_use_by_a_miniapp(p.dependency, p.descriptor, p.extra_error_message),
    ),
}

ORDER: list[type] = list(_CHECKS)


def ordered(preconditions: Iterable[Precondition]) -> list[Precondition]:
    items = list(preconditions)
    for p in items:
        if type(p) not in _CHECKS:
            raise TypeError(f"Unknown precondition: {p!r}")
    # sorted() is stable, so repeated variants keep the caller's relative order.
    return sorted(items, key=lambda p: ORDER.index(type(p)))


def check_preconditions(preconditions: Iterable[Precondition], *, ensure: Ensure) -> None:
    log.info("Performing initial checks")
    for p in ordered(preconditions):
        status, check = _CHECKS[type(p)]
        log.info(status)
        try:
            check(ensure, p)
        except ErnError as exc:
            log.error(f"✗ {exc}")
            raise SystemExit(1) from exc
    log.info("✓ All initial checks have passed")
