"""Cauldron client: the state store of native application versions and their containers.

`CauldronClient` is the protocol the rest of ernlocal programs against. `GitCauldron` is
the shipped implementation: it keeps `cauldron.json` in a git checkout (see
`ernlocal.git_ops`) and publishes changes by committing and pushing.

Transactions
- `begin_transaction()` pulls the checkout (so the store must be reachable), snapshots
  the document in memory and records the current `HEAD`. Only one transaction may be
  open per client.
- While a transaction is open, writes only touch the in-memory snapshot. Reads through
  this client see those writes; nobody else does, since nothing reaches disk or the remote.
- `commit_transaction()` writes the snapshot to `cauldron.json`, commits once with the
  accumulated change messages, and pushes.
- `discard_transaction()` drops the snapshot. If a failed commit already touched the
  checkout, the checkout is reset to the `HEAD` recorded at begin.

Outside a transaction every write runs as a one-change transaction: it pulls, commits and
pushes immediately, and a failed commit or push resets the checkout like a discard.
"""

from __future__ import annotations

import subprocess
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

from .cauldron_doc import AppVersion, CauldronDoc
from .config import ErnConfig, ern_home
from .descriptor import NativeApplicationDescriptor, PackageRef
from .errors import CauldronError
from .git_ops import DryRunGitClient, GitClient
from .log import get_logger

log = get_logger(__name__)

CAULDRON_FILE = "cauldron.json"


class CauldronClient(Protocol):
    def begin_transaction(self) -> None: ...

    def commit_transaction(self) -> None: ...

    def discard_transaction(self) -> None: ...

    def get_top_level_container_version(self, descriptor: NativeApplicationDescriptor) -> str | None: ...

    def update_container_version(self, descriptor: NativeApplicationDescriptor, version: str) -> None: ...

    def get_all_native_apps(self) -> list[dict[str, Any]]: ...

    def has_descriptor(self, descriptor: NativeApplicationDescriptor) -> bool: ...

    def get_container_miniapps(self, descriptor: NativeApplicationDescriptor) -> list[str]: ...

    def get_container_native_dependencies(self, descriptor: NativeApplicationDescriptor) -> list[str]: ...

    def get_native_app_version(self, descriptor: NativeApplicationDescriptor) -> AppVersion | None: ...

    def create_native_app_version(self, descriptor: NativeApplicationDescriptor, *, is_released: bool = False) -> None: ...

    def add_miniapp(self, descriptor: NativeApplicationDescriptor, miniapp: PackageRef) -> None: ...

    def remove_miniapp(self, descriptor: NativeApplicationDescriptor, miniapp: PackageRef) -> None: ...

    def update_miniapp_version(self, descriptor: NativeApplicationDescriptor, miniapp: PackageRef) -> None: ...

    def add_native_dependency(self, descriptor: NativeApplicationDescriptor, dependency: PackageRef) -> None: ...

    def remove_native_dependency(self, descriptor: NativeApplicationDescriptor, dependency: PackageRef) -> None: ...


class GitCauldron:
    def __init__(self, *, git: GitClient) -> None:
        self.git = git
        self._tx_doc: CauldronDoc | None = None
        self._tx_messages: list[str] = []
        self._tx_head: str | None = None
        self._tx_touched_checkout = False

    @property
    def doc_path(self) -> Path:
        return self.git.repo_path / CAULDRON_FILE

    @property
    def in_transaction(self) -> bool:
        return self._tx_doc is not None

    # Transactions

    def begin_transaction(self) -> None:
        if self.in_transaction:
            raise CauldronError("A Cauldron transaction is already in progress.")
        try:
            self.git.pull()
            head = self._head_or_none()
            doc = CauldronDoc.load(self.doc_path)
        except (subprocess.CalledProcessError, OSError) as exc:
            raise CauldronError(f"Cannot open Cauldron transaction: {_git_error(exc)}") from exc
        self._tx_doc = doc
        self._tx_messages = []
        self._tx_head = head
        self._tx_touched_checkout = False
        log.debug(f"cauldron transaction begin head={head}")

    def commit_transaction(self) -> None:
        if self._tx_doc is None:
            raise CauldronError("No Cauldron transaction in progress.")
        message = "\n".join(self._tx_messages) or "Update Cauldron"
        self._tx_touched_checkout = True
        self._persist(self._tx_doc, message)
        log.debug(f"cauldron transaction commit messages={len(self._tx_messages)}")
        self._end_transaction()

    def discard_transaction(self) -> None:
        if self._tx_doc is None:
            return
        touched, head = self._tx_touched_checkout, self._tx_head
        self._end_transaction()
        if touched:
            try:
                self.git.reset_hard(head or "HEAD")
            except subprocess.CalledProcessError as exc:
                raise CauldronError(f"Failed to reset Cauldron checkout: {_git_error(exc)}") from exc
        log.debug("cauldron transaction discarded")

    def _end_transaction(self) -> None:
        self._tx_doc = None
        self._tx_messages = []
        self._tx_head = None
        self._tx_touched_checkout = False

    # Reads

    def get_all_native_apps(self) -> list[dict[str, Any]]:
        return [a.to_dict() for a in self._read_doc().native_apps]

    def has_descriptor(self, descriptor: NativeApplicationDescriptor) -> bool:
        return self._read_doc().find(descriptor) is not None

    def get_native_app_version(self, descriptor: NativeApplicationDescriptor) -> AppVersion | None:
        node = self._read_doc().find(descriptor)
        return node if isinstance(node, AppVersion) else None

    def get_top_level_container_version(self, descriptor: NativeApplicationDescriptor) -> str | None:
        return self._version(descriptor).container_version

    def get_container_miniapps(self, descriptor: NativeApplicationDescriptor) -> list[str]:
        return list(self._version(descriptor).container_miniapps)

    def get_container_native_dependencies(self, descriptor: NativeApplicationDescriptor) -> list[str]:
        return list(self._version(descriptor).native_deps)

    # Writes

    def create_native_app_version(self, descriptor: NativeApplicationDescriptor, *, is_released: bool = False) -> None:
        def apply(doc: CauldronDoc) -> None:
            try:
                doc.add_version(descriptor, is_released=is_released)
            except ValueError as exc:
                raise CauldronError(str(exc)) from exc

        self._write(f"Create native application {descriptor}", apply)

    def update_container_version(self, descriptor: NativeApplicationDescriptor, version: str) -> None:
        def apply(doc: CauldronDoc) -> None:
            self._version(descriptor, doc).container_version = version

        self._write(f"Update container version of {descriptor} to {version}", apply)

    def add_miniapp(self, descriptor: NativeApplicationDescriptor, miniapp: PackageRef) -> None:
        def apply(doc: CauldronDoc) -> None:
            _add_ref(self._version(descriptor, doc).container_miniapps, miniapp, kind="MiniApp", descriptor=descriptor)

        self._write(f"Add {miniapp} MiniApp to {descriptor} container", apply)

    def remove_miniapp(self, descriptor: NativeApplicationDescriptor, miniapp: PackageRef) -> None:
        def apply(doc: CauldronDoc) -> None:
            _remove_ref(self._version(descriptor, doc).container_miniapps, miniapp, kind="MiniApp", descriptor=descriptor)

        self._write(f"Remove {miniapp.name} MiniApp from {descriptor} container", apply)

    def update_miniapp_version(self, descriptor: NativeApplicationDescriptor, miniapp: PackageRef) -> None:
        def apply(doc: CauldronDoc) -> None:
            _replace_ref(self._version(descriptor, doc).container_miniapps, miniapp, kind="MiniApp", descriptor=descriptor)

        self._write(f"Update {miniapp.name} MiniApp to {miniapp.version} in {descriptor} container", apply)

    def add_native_dependency(self, descriptor: NativeApplicationDescriptor, dependency: PackageRef) -> None:
        def apply(doc: CauldronDoc) -> None:
            _add_ref(self._version(descriptor, doc).native_deps, dependency, kind="Dependency", descriptor=descriptor)

        self._write(f"Add {dependency} native dependency to {descriptor} container", apply)

    def remove_native_dependency(self, descriptor: NativeApplicationDescriptor, dependency: PackageRef) -> None:
        def apply(doc: CauldronDoc) -> None:
            _remove_ref(self._version(descriptor, doc).native_deps, dependency, kind="Dependency", descriptor=descriptor)

        self._write(f"Remove {dependency.name} native dependency from {descriptor} container", apply)

    # Internals

    def _read_doc(self) -> CauldronDoc:
        if self._tx_doc is not None:
            return self._tx_doc
        return CauldronDoc.load(self.doc_path)

    def _version(self, descriptor: NativeApplicationDescriptor, doc: CauldronDoc | None = None) -> AppVersion:
        try:
            return (doc or self._read_doc()).get_version(descriptor)
        except (KeyError, ValueError) as exc:
            raise CauldronError(str(exc).strip("'\"")) from exc

    def _write(self, message: str, apply: Callable[[CauldronDoc], None]) -> None:
        if self._tx_doc is not None:
            apply(self._tx_doc)
            self._tx_messages.append(message)
            return
        self.begin_transaction()
        try:
            self._write(message, apply)
            self.commit_transaction()
        except BaseException:
            try:
                self.discard_transaction()
            except CauldronError as exc:
                log.warning(f"Failed to discard Cauldron transaction: {exc}")
            raise

    def _persist(self, doc: CauldronDoc, message: str) -> None:
        try:
            doc.save(self.doc_path)
            if not self.git.has_changes():
                return
            self.git.commit_all(message)
            self.git.push()
        except (subprocess.CalledProcessError, OSError) as exc:
            raise CauldronError(f"Failed to update Cauldron: {_git_error(exc)}") from exc

    def _head_or_none(self) -> str | None:
        try:
            return self.git.head()
        except subprocess.CalledProcessError:
            # Freshly created repository without any commit yet.
            return None


def open_cauldron(config: ErnConfig, *, dry_run: bool = False) -> GitCauldron:
    """Return a client for the activated Cauldron repository, cloning or pulling its checkout."""
    alias = config.cauldron_repo_in_use
    url = config.active_cauldron_url()
    if alias is None or url is None:
        raise CauldronError("No Cauldron repository is active. Use 'ern cauldron repo use <alias>'.")
    git_cls = DryRunGitClient if dry_run else GitClient
    git = git_cls(repo_path=ern_home() / "cauldron" / alias)
    try:
        git.ensure_checkout(url)
    except subprocess.CalledProcessError as exc:
        raise CauldronError(f"Cannot access Cauldron repository {alias} ({url}): {_git_error(exc)}") from exc
    return GitCauldron(git=git)


def _add_ref(refs: list[str], ref: PackageRef, *, kind: str, descriptor: NativeApplicationDescriptor) -> None:
    if any(PackageRef.from_string(r).same_package(ref) for r in refs):
        raise CauldronError(f"{kind} {ref.name} is already in {descriptor} container")
    refs.append(str(ref))


def _remove_ref(refs: list[str], ref: PackageRef, *, kind: str, descriptor: NativeApplicationDescriptor) -> None:
    for idx, r in enumerate(refs):
        if PackageRef.from_string(r).same_package(ref):
            del refs[idx]
            return
    raise CauldronError(f"{kind} {ref.name} is not in {descriptor} container")


def _replace_ref(refs: list[str], ref: PackageRef, *, kind: str, descriptor: NativeApplicationDescriptor) -> None:
    for idx, r in enumerate(refs):
        if PackageRef.from_string(r).same_package(ref):
            refs[idx] = str(ref)
            return
    raise CauldronError(f"{kind} {ref.name} is not in {descriptor} container")


def _git_error(exc: BaseException) -> str:
    stderr = getattr(exc, "stderr", None)
    if isinstance(stderr, str) and stderr.strip():
        return stderr.strip()
    return str(exc)
