from __future__ import annotations

import json
from pathlib import Path

import pytest

import ernlocal.runner as runner
from conftest import FakeRegistry
from ernlocal.cauldron import GitCauldron
from ernlocal.config import ErnConfig, RunnerConfig
from ernlocal.descriptor import NativeApplicationDescriptor as NAPD
from ernlocal.descriptor import PackageRef
from ernlocal.devices import IosDevice
from ernlocal.ensure import Ensure
from ernlocal.errors import GenerationError, UsageError
from ernlocal.generators import StubContainerGenerator, StubRunnerGenerator


@pytest.fixture
def launched(monkeypatch: pytest.MonkeyPatch) -> list[tuple[str, Path]]:
    seen: list[tuple[str, Path]] = []
    monkeypatch.setattr(runner, "launch_android_runner", lambda path, config: seen.append(("android", path)))
    monkeypatch.setattr(runner, "launch_ios_runner", lambda path, config, input_fn: seen.append(("ios", path)))
    return seen


def _miniapp_dir(path: Path, name: str = "MyMiniApp") -> Path:
    path.mkdir(parents=True, exist_ok=True)
    (path / "package.json").write_text(json.dumps({"name": name, "ern": {"moduleType": "miniapp"}}), encoding="utf-8")
    return path


def _env(cwd: Path, **kwargs: object) -> runner.RunnerEnv:
    packagers: list[Path] = []
    env = runner.RunnerEnv(
        cwd=cwd,
        container_generator=StubContainerGenerator(),
        runner_generator=StubRunnerGenerator(),
        start_packager=packagers.append,
        **kwargs,  # type: ignore[arg-type]
    )
    env.packagers = packagers  # type: ignore[attr-defined]
    return env


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({"miniapps": ["a@1.0.0", "b@1.0.0"]}, "provide the name of the MiniApp to launch"),
        ({"miniapps": ["a@1.0.0", "b@1.0.0"], "main_miniapp_name": "a", "dev": True}, "development mode"),
        ({"dependencies": ["x@1.0.0"], "descriptor": "myapp:android:1.0.0"}, "extra native dependencies"),
        ({"miniapps": ["a@1.0.0"], "descriptor": "myapp:android:1.0.0"}, "miniapps and descriptor"),
    ],
)
def test_inconsistent_inputs_are_rejected(tmp_path: Path, kwargs: dict[str, object], message: str) -> None:
    env = _env(tmp_path)

    with pytest.raises(UsageError, match=message):
        runner.run_miniapp("android", env=env, **kwargs)  # type: ignore[arg-type]

    assert env.container_generator.calls == []  # type: ignore[attr-defined]


def test_unsupported_platform(tmp_path: Path) -> None:
    with pytest.raises(UsageError, match="Unsupported platform : windows"):
        runner.run_miniapp("windows", env=_env(_miniapp_dir(tmp_path)))


def test_miniapp_name_in_path(tmp_path: Path) -> None:
    assert runner.miniapp_name_in_path(tmp_path) is None
    (tmp_path / "package.json").write_text('{"name": "plain-package"}', encoding="utf-8")
    assert runner.miniapp_name_in_path(tmp_path) is None
    (tmp_path / "package.json").write_text("{oops", encoding="utf-8")
    assert runner.miniapp_name_in_path(tmp_path) is None
    _miniapp_dir(tmp_path, "Foo")
    assert runner.miniapp_name_in_path(tmp_path) == "Foo"


def test_standalone_miniapp_defaults_to_dev_mode_with_packager(
    tmp_path: Path, launched: list[tuple[str, Path]]
) -> None:
    cwd = _miniapp_dir(tmp_path / "MyMiniApp")
    env = _env(cwd)

    runner.run_miniapp("android", env=env, dependencies=["react-native-maps@0.15.0"])

    assert env.packagers == [cwd]  # type: ignore[attr-defined]
    assert env.container_generator.calls == [  # type: ignore[attr-defined]
        {
            "miniapp_paths": [f"file:{cwd}"],
            "platform": "android",
            "container_version": "1.0.0",
            "native_app_name": "runner",
            "extra_native_dependencies": [PackageRef("react-native-maps", "0.15.0")],
        }
    ]
    assert env.runner_generator.calls == [("project", "android", cwd / "android", "MyMiniApp", True)]  # type: ignore[attr-defined]
    assert launched == [("android", cwd / "android")]


def test_existing_runner_project_is_reconfigured(tmp_path: Path, launched: list[tuple[str, Path]]) -> None:
    cwd = _miniapp_dir(tmp_path / "MyMiniApp")
    (cwd / "ios").mkdir()
    env = _env(cwd)

    runner.run_miniapp("ios", env=env, dev=False)

    assert env.packagers == []  # type: ignore[attr-defined]
    assert env.runner_generator.calls == [("config", "ios", cwd / "ios", "MyMiniApp", False)]  # type: ignore[attr-defined]
    assert launched == [("ios", cwd / "ios")]


def test_standalone_run_outside_a_miniapp_fails(tmp_path: Path, launched: list[tuple[str, Path]]) -> None:
    with pytest.raises(UsageError, match="No MiniApp found"):
        runner.run_miniapp("android", env=_env(tmp_path))
    assert launched == []


def test_extra_miniapps_include_current_miniapp_as_entry(tmp_path: Path, launched: list[tuple[str, Path]]) -> None:
    cwd = _miniapp_dir(tmp_path / "MyMiniApp")
    env = _env(cwd)

    runner.run_miniapp("android", env=env, miniapps=["other-miniapp@1.0.0"])

    call = env.container_generator.calls[0]  # type: ignore[attr-defined]
    assert call["miniapp_paths"] == [f"file:{cwd}", "other-miniapp@1.0.0"]
    assert env.runner_generator.calls[0][3] == "MyMiniApp"  # type: ignore[attr-defined]
    assert env.runner_generator.calls[0][4] is False  # type: ignore[attr-defined]
    assert env.packagers == []  # type: ignore[attr-defined]


def test_extra_miniapps_outside_a_miniapp_use_given_entry(tmp_path: Path, launched: list[tuple[str, Path]]) -> None:
    env = _env(tmp_path)

    runner.run_miniapp("android", env=env, miniapps=["a@1.0.0", "b@1.0.0"], main_miniapp_name="b")

    assert env.container_generator.calls[0]["miniapp_paths"] == ["a@1.0.0", "b@1.0.0"]  # type: ignore[attr-defined]
    assert env.runner_generator.calls[0][3] == "b"  # type: ignore[attr-defined]


def test_descriptor_builds_runner_container_from_cauldron(
    tmp_path: Path, cauldron: GitCauldron, ern_config: ErnConfig, launched: list[tuple[str, Path]]
) -> None:
    ensure = Ensure(cauldron=cauldron, registry=FakeRegistry(), config=ern_config)  # type: ignore[arg-type]
    env = _env(tmp_path / "work", ensure=ensure)
    env.cwd.mkdir()

    runner.run_miniapp("android", env=env, descriptor="myapp:android:1.0.0")

    assert env.container_generator.calls == [  # type: ignore[attr-defined]
        {
            "descriptor": NAPD("myapp", "android", "1.0.0"),
            "container_version": "1.0.0",
            "publish": False,
            "container_name": "runner",
        }
    ]
    assert launched == [("android", env.cwd / "android")]


def test_descriptor_missing_from_cauldron_exits(
    tmp_path: Path, cauldron: GitCauldron, ern_config: ErnConfig, caplog: pytest.LogCaptureFixture
) -> None:
    ensure = Ensure(cauldron=cauldron, registry=FakeRegistry(), config=ern_config)  # type: ignore[arg-type]
    env = _env(tmp_path, ensure=ensure)

    with pytest.raises(SystemExit) as exc:
        runner.run_miniapp("android", env=env, descriptor="myapp:android:7.0.0")

    assert exc.value.code == 1
    assert any("You cannot create a Runner for a non existing native application version." in m for m in caplog.messages)
    assert env.container_generator.calls == []  # type: ignore[attr-defined]


def test_launch_android_runner_uses_configured_package(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    seen: dict[str, object] = {}
    monkeypatch.setattr(runner.devices, "run_android_project", lambda **kwargs: seen.update(kwargs))

    runner.launch_android_runner(tmp_path, config=RunnerConfig())

    assert seen == {"project_path": tmp_path, "package_name": "com.walmartlabs.ern"}


def test_launch_ios_runner_boots_builds_installs_and_launches(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    steps: list[tuple[object, ...]] = []
    device = IosDevice(name="iPhone 15", udid="UDID-1", runtime="com.apple.CoreSimulator.SimRuntime.iOS-17-0")
    monkeypatch.setattr(runner.devices, "ask_user_to_select_an_iphone_device", lambda input_fn: device)
    monkeypatch.setattr(runner.devices, "kill_all_running_simulators", lambda: steps.append(("kill",)))
    monkeypatch.setattr(runner.devices, "launch_simulator", lambda udid: steps.append(("boot", udid)))
    monkeypatch.setattr(runner, "build_ios_runner", lambda path, name, scheme: steps.append(("build", path, name, scheme)))
    monkeypatch.setattr(
        runner.devices, "install_application_on_device", lambda udid, app: steps.append(("install", udid, app))
    )
    monkeypatch.setattr(runner.devices, "launch_application", lambda udid, bundle: steps.append(("launch", udid, bundle)))

    runner.launch_ios_runner(tmp_path, config=RunnerConfig())

    assert steps == [
        ("kill",),
        ("boot", "UDID-1"),
        ("build", tmp_path, "iPhone 15", "ErnRunner"),
        ("install", "UDID-1", tmp_path / "build" / "Debug-iphonesimulator" / "ErnRunner.app"),
        ("launch", "UDID-1", "com.yourcompany.ernrunner"),
    ]


def test_build_ios_runner_invokes_xcodebuild(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    seen: list[tuple[list[str], Path | None]] = []
    monkeypatch.setattr(runner, "run_streamed", lambda argv, cwd=None: seen.append((argv, cwd)) or 0)

    runner.build_ios_runner(tmp_path, "iPhone 15")

    assert seen == [
        (
            [
                "xcodebuild",
                "-scheme",
                "ErnRunner",
                "build",
                "-destination",
                "platform=iOS Simulator,name=iPhone 15",
                f"SYMROOT={tmp_path}/build",
            ],
            tmp_path,
        )
    ]


def test_build_ios_runner_failure(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(runner, "run_streamed", lambda argv, cwd=None: 65)

    with pytest.raises(GenerationError, match="XCode xcbuild command failed with exit code 65"):
        runner.build_ios_runner(tmp_path, "iPhone 15")
