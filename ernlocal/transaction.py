"""Transactional container state updates in the Cauldron.

A container state update changes what a native application version's container embeds
(add or remove a MiniApp, bump a native dependency, ...) and publishes a regenerated
container for it. Readers of the Cauldron must see either all of the change or none of it.

`perform_container_state_update()` runs, strictly in this order:

1. Container version selection: the explicit `container_version` when given; otherwise the
   patch increment of the version currently recorded for the descriptor, or
   `DEFAULT_CONTAINER_VERSION` when none is recorded.
2. Open a Cauldron transaction. Failure discards whatever was half opened and raises
   `StateStoreUnavailable`; nothing else runs.
3. Run the caller's mutation against the in-transaction state.
4. Generate and publish the container at the selected version.
5. Record the selected version as the descriptor's container version.
6. Commit.

Any error in 3 to 6 is logged, the transaction is discarded and the original error is
re-raised. The container is published before the version pointer is written and
committed, so a committed pointer never references a container that does not exist.

`cauldron_transaction()` is the scoped form of 2 and 6: it commits when the block
completes and discards on any exception, including a failed commit.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager

from . import versions
from .cauldron import CauldronClient
from .config import DEFAULT_CONTAINER_VERSION
from .descriptor import NativeApplicationDescriptor
from .errors import CauldronError, StateStoreUnavailable
from .generators import ContainerGenerator
from .log import get_logger, spin

log = get_logger(__name__)


def select_container_version(
    cauldron: CauldronClient,
    descriptor: NativeApplicationDescriptor,
    container_version: str | None = None,
) -> str:
    if container_version:
        return container_version
    current = cauldron.get_top_level_container_version(descriptor)
    if current:
        try:
            return versions.inc_patch(current)
        except ValueError as exc:
            raise CauldronError(f"Cannot increment container version recorded for {descriptor}: {exc}") from exc
    return DEFAULT_CONTAINER_VERSION


@contextmanager
def cauldron_transaction(cauldron: CauldronClient) -> Iterator[CauldronClient]:
    try:
        cauldron.begin_transaction()
    except Exception as exc:
        _discard_quietly(cauldron)
        raise StateStoreUnavailable(f"Cannot begin Cauldron transaction: {exc}") from exc

    try:
        yield cauldron
        with spin("Updating Cauldron", logger=log):
            cauldron.commit_transaction()
    except BaseException:
        _discard_quietly(cauldron)
        raise


def perform_container_state_update(
    mutation: Callable[[], None],
    descriptor: NativeApplicationDescriptor,
    *,
    cauldron: CauldronClient,
    generator: ContainerGenerator,
    container_version: str | None = None,
) -> None:
    """Apply `mutation` and publish a new container for `descriptor`, all or nothing."""
    new_version = select_container_version(cauldron, descriptor, container_version)

    try:
        with cauldron_transaction(cauldron):
            mutation()
            with spin(f"Generating new container version {new_version} for {descriptor}", logger=log):
                generator.generate(descriptor, new_version, publish=True)
            cauldron.update_container_version(descriptor, new_version)
    except Exception as exc:
        log.error(f"[perform_container_state_update] An error happened: {exc}")
        raise

    log.debug(f"Published new container version {new_version} for {descriptor}")


def _discard_quietly(cauldron: CauldronClient) -> None:
    try:
        cauldron.discard_transaction()
    except Exception as exc:
        # Never mask the error that caused the discard.
        log.warning(f"Failed to discard Cauldron transaction: {exc}")
