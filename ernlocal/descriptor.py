"""Value types naming native applications and packages.

- `NativeApplicationDescriptor`: `name[:platform[:version]]`. A descriptor with all three
  parts is complete; shorter forms are partial and address an application or a platform.
- `PackageRef`: `name[@version]` for registry packages (MiniApps and native dependencies),
  including scoped names such as `@scope/name@1.0.0`.
- `is_git_path` / `is_filesystem_path`: classify raw package strings that do not point at
  the registry.
"""

from __future__ import annotations

from dataclasses import dataclass

PLATFORMS = ("android", "ios")


@dataclass(frozen=True)
class NativeApplicationDescriptor:
    name: str
    platform: str | None = None
    version: str | None = None

    @staticmethod
    def from_string(s: str) -> "NativeApplicationDescriptor":
        parts = s.strip().split(":")
        if not parts[0] or len(parts) > 3 or any(not p for p in parts):
            raise ValueError(f"Invalid native application descriptor: {s!r}")
        platform = parts[1] if len(parts) > 1 else None
        if platform is not None and platform not in PLATFORMS:
            raise ValueError(f"Unsupported platform {platform!r} in descriptor {s!r}")
        version = parts[2] if len(parts) > 2 else None
        return NativeApplicationDescriptor(name=parts[0], platform=platform, version=version)

    @property
    def is_partial(self) -> bool:
        return self.platform is None or self.version is None

    def __str__(self) -> str:
        return ":".join(p for p in (self.name, self.platform, self.version) if p)


@dataclass(frozen=True)
class PackageRef:
    name: str
    version: str | None = None

    @staticmethod
    def from_string(s: str) -> "PackageRef":
        s = s.strip()
        if not s:
            raise ValueError("Empty package reference")
        # Skip the leading '@' of a scoped name when looking for the version separator.
        idx = s.rfind("@")
        if idx > 0:
            name, version = s[:idx], s[idx + 1 :]
            if not version:
                raise ValueError(f"Invalid package reference: {s!r}")
            return PackageRef(name=name, version=version)
        return PackageRef(name=s)

    def same_package(self, other: "PackageRef") -> bool:
        return self.name == other.name

    def __str__(self) -> str:
        return f"{self.name}@{self.version}" if self.version else self.name


def is_git_path(s: str) -> bool:
    s = s.strip()
    return s.startswith("git+") or s.startswith("git:") or s.endswith(".git")


def is_filesystem_path(s: str) -> bool:
    s = s.strip()
    return s.startswith(("file:", "/", "./", "../", "~/"))


def as_list(obj: str | list[str] | tuple[str, ...] | None) -> list[str]:
    if obj is None:
        return []
    if isinstance(obj, str):
        return [obj]
    return list(obj)
