"""Tests for switching the active version."""

import pytest

from godotup.core.activation import GODOT4_BIN, GODOT_BIN, GODOT_HOME, ActivationManager, find_executable
from godotup.exceptions import NotInstalledError
from godotup.utils.environment import current_from_environ, render
from godotup.versions.models import Platform, VersionId


def test_switch_to_missing_version_keeps_previous_state(store, godot_403, fake_install):
    previous = VersionId.parse("Godot_v3.5.2", Platform.LINUX64)
    fake_install(previous)
    manager = ActivationManager(store)
    before = manager.switch(previous)

    with pytest.raises(NotInstalledError):
        manager.switch(godot_403)

    assert manager.current == previous
    assert manager.bindings() == before
    assert not store.install_dir(godot_403).exists()


def test_switch_bindings(store, godot_403, fake_install):
    target = fake_install(godot_403)
    manager = ActivationManager(store)

    bindings = manager.switch(godot_403)

    executable = str(target / "Godot_v4.0.3_linux.x86_64")
    assert bindings == [
        (GODOT_HOME, str(target)),
        (GODOT_BIN, executable),
        (GODOT4_BIN, executable),
    ]
    assert manager.current == godot_403


def test_switch_is_idempotent(store, godot_403, fake_install):
    fake_install(godot_403)
    manager = ActivationManager(store)
    assert manager.switch(godot_403) == manager.switch(godot_403)
    assert manager.current == godot_403


def test_switch_away_leaves_install_untouched(store, godot_403, fake_install):
    target = fake_install(godot_403)
    other = VersionId.parse("Godot_v4.1.0", Platform.LINUX64)
    fake_install(other)
    manager = ActivationManager(store)
    manager.switch(godot_403)
    before = sorted(p.name for p in target.rglob("*"))

    manager.switch(other)

    assert manager.current == other
    assert sorted(p.name for p in target.rglob("*")) == before


def test_godot3_has_no_godot4_binding(store, fake_install):
    godot_3 = VersionId.parse("Godot_v3.5.2", Platform.LINUX64)
    fake_install(godot_3)
    names = [name for name, _ in ActivationManager(store).switch(godot_3)]
    assert names == [GODOT_HOME, GODOT_BIN]


def test_binary_bindings_follow_config(store, godot_403, fake_install):
    fake_install(godot_403)
    only_home = ActivationManager(store, set_godot_bin=False, set_godot4_bin=False)
    assert [n for n, _ in only_home.switch(godot_403)] == [GODOT_HOME]
    godot4_only = ActivationManager(store, set_godot_bin=False)
    assert [n for n, _ in godot4_only.switch(godot_403)] == [GODOT_HOME, GODOT4_BIN]


def test_missing_executable(store, godot_403, fake_install):
    fake_install(godot_403, {"README.txt": b"hello"})
    with pytest.raises(NotInstalledError, match="no Godot executable"):
        ActivationManager(store).switch(godot_403)


def test_bindings_without_current_version(store):
    assert ActivationManager(store).bindings() == []


def test_find_executable_in_mono_layout(tmp_path):
    root = tmp_path / "Godot_v4.0.3_mono"
    inner = root / "Godot_v4.0.3-stable_mono_linux_x86_64"
    inner.mkdir(parents=True)
    (inner / "Godot_v4.0.3-stable_mono_linux.x86_64").write_bytes(b"elf")
    (inner / "GodotSharp").mkdir()
    (inner / "GodotSharp" / "Godot_v4_tools.dll").write_bytes(b"dll")

    assert find_executable(root, Platform.LINUX64) == inner / "Godot_v4.0.3-stable_mono_linux.x86_64"


def test_find_executable_on_windows_skips_console_wrapper(tmp_path):
    (tmp_path / "Godot_v4.0.3-stable_win64.exe").write_bytes(b"mz")
    (tmp_path / "Godot_v4.0.3-stable_win64_console.exe").write_bytes(b"mz")

    assert find_executable(tmp_path, Platform.WIN64) == tmp_path / "Godot_v4.0.3-stable_win64.exe"
    assert find_executable(tmp_path, Platform.LINUX64) is None


def test_render_shells():
    bindings = [(GODOT_HOME, "/home/me/godot it's here"), (GODOT_BIN, "/opt/godot")]
    assert render(bindings) == (
        "export GODOT_HOME='/home/me/godot it'\"'\"'s here'\n"
        "export GODOT_BIN='/opt/godot'"
    )
    assert render(bindings[1:], "fish") == "set -gx GODOT_BIN '/opt/godot'"
    assert render(bindings[1:], "powershell") == "$env:GODOT_BIN='/opt/godot'"
    with pytest.raises(ValueError):
        render(bindings, "tcsh")


def test_current_from_environ(store, godot_403, fake_install):
    target = fake_install(godot_403)
    assert current_from_environ(store, {GODOT_HOME: str(target)}) == godot_403
    assert current_from_environ(store, {}) is None
    assert current_from_environ(store, {GODOT_HOME: "/opt/somewhere/else"}) is None
    assert current_from_environ(store, {GODOT_HOME: str(store.install_root / "Godot_v9.9.9")}) is None
