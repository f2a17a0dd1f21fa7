"""ernlocal: the local command layer of an Electrode Native style workflow.

`ern` (`ernlocal.cli:main`, runnable via `python -m ernlocal`) manages native application
versions recorded in a Cauldron, a git repository holding `cauldron.json`, and the
containers generated for them.

What ernlocal provides
- A Cauldron client (`ernlocal.cauldron`) with in-memory transactions committed as a
  single git commit and push.
- Transactional container state updates (`ernlocal.transaction`): a Cauldron change, the
  regenerated container and its new version are published together or not at all.
- Declarative command preconditions (`ernlocal.preconditions`) backed by domain checks
  (`ernlocal.ensure`), checked in a fixed order before any state changes.
- Runner flows (`ernlocal.runner`) to try MiniApps on an Android device or iOS simulator.

What ernlocal does not do
- Generate containers or Runner projects itself; both are delegated to external
  generator executables (`ernlocal.generators`).
- Resolve native dependency versions or lock the Cauldron across processes.

Key exports from this module
- `__version__`: the package version string.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
