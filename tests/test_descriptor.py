from __future__ import annotations

import pytest

from ernlocal.descriptor import NativeApplicationDescriptor, PackageRef, as_list, is_filesystem_path, is_git_path


def test_descriptor_parses_complete_and_partial_forms() -> None:
    full = NativeApplicationDescriptor.from_string("myapp:android:1.0.0")
    assert (full.name, full.platform, full.version) == ("myapp", "android", "1.0.0")
    assert not full.is_partial
    assert str(full) == "myapp:android:1.0.0"

    partial = NativeApplicationDescriptor.from_string("myapp:ios")
    assert partial.is_partial
    assert partial.version is None
    assert str(partial) == "myapp:ios"

    assert NativeApplicationDescriptor.from_string("myapp").is_partial


@pytest.mark.parametrize("raw", ["", ":android", "myapp::1.0.0", "myapp:android:1.0.0:extra"])
def test_descriptor_rejects_malformed_strings(raw: str) -> None:
    with pytest.raises(ValueError, match="Invalid native application descriptor"):
        NativeApplicationDescriptor.from_string(raw)


def test_descriptor_rejects_unknown_platform() -> None:
    with pytest.raises(ValueError, match="Unsupported platform 'windows'"):
        NativeApplicationDescriptor.from_string("myapp:windows:1.0.0")


def test_package_ref_handles_versions_and_scoped_names() -> None:
    assert PackageRef.from_string("react-native@0.42.0") == PackageRef("react-native", "0.42.0")
    assert PackageRef.from_string("@walmart/miniapp@1.2.0") == PackageRef("@walmart/miniapp", "1.2.0")
    assert PackageRef.from_string("@walmart/miniapp") == PackageRef("@walmart/miniapp")
    assert str(PackageRef("a", "1.0.0")) == "a@1.0.0"
    assert str(PackageRef("a")) == "a"
    assert PackageRef("a", "1.0.0").same_package(PackageRef("a", "2.0.0"))


@pytest.mark.parametrize("raw", ["", "   ", "miniapp@"])
def test_package_ref_rejects_empty_parts(raw: str) -> None:
    with pytest.raises(ValueError):
        PackageRef.from_string(raw)


def test_path_classification() -> None:
    assert is_git_path("git+ssh://git@github.com/org/miniapp.git")
    assert is_git_path("https://github.com/org/miniapp.git")
    assert not is_git_path("miniapp@1.0.0")

    assert is_filesystem_path("file:/home/me/miniapp")
    assert is_filesystem_path("./miniapp")
    assert is_filesystem_path("/abs/miniapp")
    assert not is_filesystem_path("@scope/miniapp@1.0.0")


def test_as_list_normalizes_string_or_list() -> None:
    assert as_list(None) == []
    assert as_list("a@1.0.0") == ["a@1.0.0"]
    assert as_list(["a", "b"]) == ["a", "b"]
