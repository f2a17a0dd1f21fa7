"""Small helpers shared by the `ern` commands."""

from __future__ import annotations

from .cauldron import CauldronClient
from .config import DOCS_ROOT_URL
from .prompts import InputFn, choose, confirm
from .registry import PackageRegistry


def get_nap_descriptor_strings_from_cauldron(
    cauldron: CauldronClient,
    *,
    platform: str | None = None,
    only_released_versions: bool = False,
    only_non_released_versions: bool = False,
) -> list[str]:
    """Return `name:platform:version` for every native application version in the Cauldron."""
    out: list[str] = []
    for app in cauldron.get_all_native_apps():
        for p in app.get("platforms") or []:
            if platform and p.get("name") != platform:
                continue
            for v in p.get("versions") or []:
                released = bool(v.get("isReleased"))
                if (released and not only_non_released_versions) or (not released and not only_released_versions):
                    out.append(f"{app['name']}:{p['name']}:{v['name']}")
    return out


def ask_user_to_choose_a_nap_descriptor_from_cauldron(
    cauldron: CauldronClient,
    *,
    platform: str | None = None,
    only_released_versions: bool = False,
    only_non_released_versions: bool = False,
    input_fn: InputFn = input,
) -> str:
    choices = get_nap_descriptor_strings_from_cauldron(
        cauldron,
        platform=platform,
        only_released_versions=only_released_versions,
        only_non_released_versions=only_non_released_versions,
    )
    return choose("Choose a native application version", choices, input_fn=input_fn)


def epilog(command: str, argv: list[str], *, root_url: str = DOCS_ROOT_URL) -> str:
    """Help footer pointing at the online documentation of `command`.

    `argv` is the full command line (program first); the words between the program and
    `command` form the documentation path, e.g. `ern cauldron add miniapps` links to
    `<root>/cauldron/add/miniapps.html`.
    """
    words = argv[1:]
    parents = words[: words.index(command)] if command in words else []
    path = "".join(f"/{w}" for w in parents)
    return f"More info about this command @ {root_url}{path}/{command}.html"


def does_package_exist_in_npm(registry: PackageRegistry, name: str) -> bool:
    return registry.package_exists(name)


def prompt_skip_npm_name_conflict_check(name: str, *, input_fn: InputFn = input) -> bool:
    return confirm(
        f"The package with name {name} is already published in NPM registry. Do you wish to continue?",
        default=False,
        input_fn=input_fn,
    )
