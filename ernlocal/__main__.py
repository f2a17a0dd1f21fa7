"""Module entrypoint for ``python -m ernlocal``.

A thin wrapper around :func:`ernlocal.cli.main`; its return code becomes the process exit
status. Equivalent to the ``ern`` console script.
"""

from __future__ import annotations

from .cli import main

if __name__ == "__main__":
    raise SystemExit(main())
