"""ernlocal.cauldron_doc

On-disk model of a Cauldron (`cauldron.json`), the single document tracking every native
application version, its container version and the content of its container.

Persisted shape
- Top-level object:
  - `nativeApps` (array[NativeApp])
  - plus any unknown top-level keys captured in `CauldronDoc.extra`
- `NativeApp`:
  - `name` (string, required)
  - `platforms` (array[Platform])
- `Platform`:
  - `name` (string): "android" | "ios"
  - `versions` (array[AppVersion])
- `AppVersion`:
  - `name` (string): native application version, e.g. "1.0.0"
  - `isReleased` (bool, default false)
  - `containerVersion` (string, optional): the container version currently pointed to by
    this native application version (the "top-level" container version)
  - `nativeDeps` (array[string]): `name@version` native dependencies of the container
  - `miniApps` (object): `{"container": array[string]}` MiniApps embedded in the container;
    other keys of this object are kept in `AppVersion.miniapps_extra`

Unknown keys at each level are stored in `extra` and merged back on save, so documents
written by newer tooling survive a round-trip.

Lookups
- `CauldronDoc.find(descriptor)` resolves a descriptor, partial or complete, to the deepest
  node it names (`NativeApp`, `Platform` or `AppVersion`), or `None`.
- `CauldronDoc.get_version(descriptor)` requires a complete descriptor and raises `KeyError`
  when it is missing.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from .descriptor import NativeApplicationDescriptor

_APP_KEYS = {"name", "platforms"}
_PLATFORM_KEYS = {"name", "versions"}
_VERSION_KEYS = {"name", "isReleased", "containerVersion", "nativeDeps", "miniApps"}


def _split(d: Mapping[str, Any], known_keys: set[str]) -> tuple[dict[str, Any], dict[str, Any]]:
    known: dict[str, Any] = {}
    extra: dict[str, Any] = {}
    for k, v in d.items():
        if k in known_keys:
            known[k] = v
        else:
            extra[k] = v
    return known, extra


@dataclass
class AppVersion:
    name: str
    is_released: bool = False
    container_version: str | None = None
    native_deps: list[str] = field(default_factory=list)
    container_miniapps: list[str] = field(default_factory=list)
    miniapps_extra: dict[str, Any] = field(default_factory=dict, repr=False)
    extra: dict[str, Any] = field(default_factory=dict, repr=False)

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "AppVersion":
        known, extra = _split(d, _VERSION_KEYS)
        miniapps_raw = known.get("miniApps") or {}
        if not isinstance(miniapps_raw, dict):
            raise ValueError(f"miniApps of version {known.get('name')!r} must be an object")
        miniapps_extra = {k: v for k, v in miniapps_raw.items() if k != "container"}
        container_version = known.get("containerVersion")
        return AppVersion(
            name=str(known["name"]),
            is_released=bool(known.get("isReleased", False)),
            container_version=(str(container_version) if container_version else None),
            native_deps=[str(x) for x in (known.get("nativeDeps") or [])],
            container_miniapps=[str(x) for x in (miniapps_raw.get("container") or [])],
            miniapps_extra=miniapps_extra,
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "name": self.name,
            "isReleased": self.is_released,
            "nativeDeps": list(self.native_deps),
            "miniApps": {"container": list(self.container_miniapps), **self.miniapps_extra},
        }
        if self.container_version:
            d["containerVersion"] = self.container_version
        d.update(self.extra)
        return d


@dataclass
class Platform:
    name: str
    versions: list[AppVersion] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict, repr=False)

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "Platform":
        known, extra = _split(d, _PLATFORM_KEYS)
        return Platform(
            name=str(known["name"]),
            versions=[AppVersion.from_dict(v) for v in (known.get("versions") or [])],
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"name": self.name, "versions": [v.to_dict() for v in self.versions]}
        d.update(self.extra)
        return d


@dataclass
class NativeApp:
    name: str
    platforms: list[Platform] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict, repr=False)

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "NativeApp":
        known, extra = _split(d, _APP_KEYS)
        return NativeApp(
            name=str(known["name"]),
            platforms=[Platform.from_dict(p) for p in (known.get("platforms") or [])],
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"name": self.name, "platforms": [p.to_dict() for p in self.platforms]}
        d.update(self.extra)
        return d


@dataclass
class CauldronDoc:
    native_apps: list[NativeApp] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict, repr=False)

    @staticmethod
    def from_dict(raw: Any) -> "CauldronDoc":
        if not isinstance(raw, dict):
            raise ValueError(f"cauldron.json must be a JSON object, got {type(raw)}")
        known, extra = _split(raw, {"nativeApps"})
        return CauldronDoc(
            native_apps=[NativeApp.from_dict(a) for a in (known.get("nativeApps") or [])],
            extra=extra,
        )

    @staticmethod
    def load(path: Path) -> "CauldronDoc":
        if not path.exists():
            return CauldronDoc()
        return CauldronDoc.from_dict(json.loads(path.read_text(encoding="utf-8")))

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"nativeApps": [a.to_dict() for a in self.native_apps]}
        d.update(self.extra)
        return d

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2, ensure_ascii=True) + "\n", encoding="utf-8")

    def find(self, descriptor: NativeApplicationDescriptor) -> NativeApp | Platform | AppVersion | None:
        app = next((a for a in self.native_apps if a.name == descriptor.name), None)
        if app is None or descriptor.platform is None:
            return app
        platform = next((p for p in app.platforms if p.name == descriptor.platform), None)
        if platform is None or descriptor.version is None:
            return platform
        return next((v for v in platform.versions if v.name == descriptor.version), None)

    def get_version(self, descriptor: NativeApplicationDescriptor) -> AppVersion:
        if descriptor.is_partial:
            raise ValueError(f"A complete descriptor is required, got {descriptor}")
        node = self.find(descriptor)
        if not isinstance(node, AppVersion):
            raise KeyError(f"Native application version not found in Cauldron: {descriptor}")
        return node

    def add_version(self, descriptor: NativeApplicationDescriptor, *, is_released: bool = False) -> AppVersion:
        if descriptor.is_partial:
            raise ValueError(f"A complete descriptor is required, got {descriptor}")
        if self.find(descriptor) is not None:
            raise ValueError(f"Native application version already exists in Cauldron: {descriptor}")
        app = next((a for a in self.native_apps if a.name == descriptor.name), None)
        if app is None:
            app = NativeApp(name=descriptor.name)
            self.native_apps.append(app)
        platform = next((p for p in app.platforms if p.name == descriptor.platform), None)
        if platform is None:
            platform = Platform(name=str(descriptor.platform))
            app.platforms.append(platform)
        version = AppVersion(name=str(descriptor.version), is_released=is_released)
        platform.versions.append(version)
        return version
