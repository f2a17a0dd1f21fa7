"""Domain checks used as command preconditions.

Each `Ensure` method returns `None` when its condition holds and raises `EnsureError`
otherwise. The message names the failing condition; an optional `extra_error_message`
from the caller is appended to it.

Parameters documented as "string or list" take a single package string, a list of them,
or `None` (nothing to check).
"""

from __future__ import annotations

from .cauldron import CauldronClient
from .config import ErnConfig
from .descriptor import NativeApplicationDescriptor, PackageRef, as_list, is_filesystem_path, is_git_path
from .errors import EnsureError
from .registry import PackageRegistry
from . import versions

StrOrList = str | list[str] | None


def _fail(message: str, extra: str | None) -> EnsureError:
    return EnsureError(f"{message}\n{extra}" if extra else message)


def _refs(obj: StrOrList) -> list[PackageRef]:
    try:
        return [PackageRef.from_string(s) for s in as_list(obj)]
    except ValueError as exc:
        raise EnsureError(str(exc)) from exc


def _descriptor(descriptor: str, extra: str | None) -> NativeApplicationDescriptor:
    try:
        return NativeApplicationDescriptor.from_string(descriptor)
    except ValueError as exc:
        raise _fail(str(exc), extra) from exc


class Ensure:
    def __init__(self, *, cauldron: CauldronClient | None, registry: PackageRegistry, config: ErnConfig) -> None:
        self._cauldron = cauldron
        self.registry = registry
        self.config = config

    @property
    def cauldron(self) -> CauldronClient:
        if self._cauldron is None:
            raise EnsureError("A Cauldron is required for this check but none is active.")
        return self._cauldron

    def cauldron_is_active(self, extra_error_message: str | None = None) -> None:
        if self.config.active_cauldron_url() is None:
            raise _fail("There is no active Cauldron", extra_error_message)

    def is_valid_container_version(self, container_version: str, extra_error_message: str | None = None) -> None:
        if not versions.is_valid_container_version(container_version):
            raise _fail(
                f"{container_version} is not a valid container version (expected MAJOR.MINOR.PATCH).",
                extra_error_message,
            )

    def is_newer_container_version(
        self, descriptor: str, container_version: str, extra_error_message: str | None = None
    ) -> None:
        napd = _descriptor(descriptor, extra_error_message)
        current = self.cauldron.get_top_level_container_version(napd)
        if not current:
            return
        try:
            newer = versions.gt(container_version, current)
        except ValueError as exc:
            raise _fail(str(exc), extra_error_message) from exc
        if not newer:
            raise _fail(
                f"Container version {container_version} is older than or equal to the current one ({current}).",
                extra_error_message,
            )

    def is_complete_nap_descriptor_string(self, descriptor: str, extra_error_message: str | None = None) -> None:
        napd = _descriptor(descriptor, extra_error_message)
        if napd.is_partial:
            raise _fail(
                f"{descriptor} is not a complete native application descriptor (expected name:platform:version).",
                extra_error_message,
            )

    def no_git_or_filesystem_path(self, obj: StrOrList, extra_error_message: str | None = None) -> None:
        for s in as_list(obj):
            if is_git_path(s) or is_filesystem_path(s):
                raise _fail(f"Found a git or file system path: {s}", extra_error_message)

    def nap_descriptor_exists_in_cauldron(self, descriptor: str, extra_error_message: str | None = None) -> None:
        napd = _descriptor(descriptor, extra_error_message)
        if not self.cauldron.has_descriptor(napd):
            raise _fail(f"{descriptor} descriptor does not exist in Cauldron.", extra_error_message)

    def nap_descriptor_does_not_exist_in_cauldron(
        self, descriptor: str, extra_error_message: str | None = None
    ) -> None:
        napd = _descriptor(descriptor, extra_error_message)
        if self.cauldron.has_descriptor(napd):
            raise _fail(f"{descriptor} already exists in Cauldron.", extra_error_message)

    def published_to_npm(self, obj: StrOrList, extra_error_message: str | None = None) -> None:
        for ref in _refs(obj):
            if not self.registry.is_published(ref):
                raise _fail(f"Version {ref.version} of {ref.name} is not published to NPM.", extra_error_message)

    # MiniApps

    def miniapp_not_in_container(
        self, miniapp: StrOrList, descriptor: NativeApplicationDescriptor, extra_error_message: str | None = None
    ) -> None:
        present = _refs(self.cauldron.get_container_miniapps(descriptor))
        for ref in _refs(miniapp):
            if any(p.same_package(ref) for p in present):
                raise _fail(f"{ref.name} MiniApp is already in {descriptor} container.", extra_error_message)

    def miniapp_is_in_container(
        self, miniapp: StrOrList, descriptor: NativeApplicationDescriptor, extra_error_message: str | None = None
    ) -> None:
        present = _refs(self.cauldron.get_container_miniapps(descriptor))
        for ref in _refs(miniapp):
            if not any(p.same_package(ref) for p in present):
                raise _fail(f"{ref.name} MiniApp is not in {descriptor} container.", extra_error_message)

    def miniapp_is_in_container_with_different_version(
        self, miniapp: StrOrList, descriptor: NativeApplicationDescriptor, extra_error_message: str | None = None
    ) -> None:
        self.miniapp_is_in_container(miniapp, descriptor, extra_error_message)
        present = {p.name: p for p in _refs(self.cauldron.get_container_miniapps(descriptor))}
        for ref in _refs(miniapp):
            if present[ref.name].version == ref.version:
                raise _fail(
                    f"{ref.name} MiniApp is already at version {ref.version} in {descriptor} container.",
                    extra_error_message,
                )

    # Native dependencies

    def dependency_not_in_container(
        self, dependency: StrOrList, descriptor: NativeApplicationDescriptor, extra_error_message: str | None = None
    ) -> None:
        present = _refs(self.cauldron.get_container_native_dependencies(descriptor))
        for ref in _refs(dependency):
            if any(p.same_package(ref) for p in present):
                raise _fail(f"{ref.name} dependency is already in {descriptor} container.", extra_error_message)

    def dependency_is_in_container(
        self, dependency: StrOrList, descriptor: NativeApplicationDescriptor, extra_error_message: str | None = None
    ) -> None:
        present = _refs(self.cauldron.get_container_native_dependencies(descriptor))
        for ref in _refs(dependency):
            if not any(p.same_package(ref) for p in present):
                raise _fail(f"{ref.name} dependency is not in {descriptor} container.", extra_error_message)

    def dependency_is_in_container_with_different_version(
        self, dependency: StrOrList, descriptor: NativeApplicationDescriptor, extra_error_message: str | None = None
    ) -> None:
        self.dependency_is_in_container(dependency, descriptor, extra_error_message)
        present = {p.name: p for p in _refs(self.cauldron.get_container_native_dependencies(descriptor))}
        for ref in _refs(dependency):
            if present[ref.name].version == ref.version:
                raise _fail(
                    f"{ref.name} dependency is already at version {ref.version} in {descriptor} container.",
                    extra_error_message,
                )

    def dependency_not_in_use_by_a_miniapp(
        self, dependency: StrOrList, descriptor: NativeApplicationDescriptor, extra_error_message: str | None = None
    ) -> None:
        miniapps = _refs(self.cauldron.get_container_miniapps(descriptor))
        for ref in _refs(dependency):
            users = [str(m) for m in miniapps if ref.name in self.registry.dependencies(m)]
            if users:
                raise _fail(
                    f"{ref.name} dependency is used by the following MiniApp(s): {', '.join(users)}",
                    extra_error_message,
                )
