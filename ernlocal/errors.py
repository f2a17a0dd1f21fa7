"""Exceptions raised by ernlocal.

`ErnError` is the only family the CLI turns into a logged message and exit status 1;
anything else propagates with a traceback.
"""

from __future__ import annotations


class ErnError(Exception):
    pass


class EnsureError(ErnError):
    """A named precondition does not hold."""


class CauldronError(ErnError):
    pass


class StateStoreUnavailable(CauldronError):
    """A Cauldron transaction could not be opened."""


class GenerationError(ErnError):
    pass


class UsageError(ErnError, ValueError):
    """Inconsistent combination of user inputs."""


class RegistryError(ErnError):
    """The package registry rejected or could not answer a query."""
