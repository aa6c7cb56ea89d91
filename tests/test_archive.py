"""Tests for archive extraction."""

import os
import stat

import pytest

from godotup.exceptions import ArchiveError
from godotup.runtime.archive import ArchiveInstaller
from http_server import make_zip

posix_only = pytest.mark.skipif(os.name != "posix", reason="unix permission bits")


def write_zip(path, entries):
    path.write_bytes(make_zip(entries))
    return path


def test_traversal_entry_is_skipped(tmp_path):
    archive = write_zip(tmp_path / "godot.zip", {
        "a/b.txt": (b"inside", None),
        "../escape.txt": (b"outside", None),
    })
    target = tmp_path / "out" / "target"

    result = ArchiveInstaller().extract(archive, target)

    assert (target / "a" / "b.txt").read_bytes() == b"inside"
    assert result.skipped == ["../escape.txt"]
    assert not (tmp_path / "out" / "escape.txt").exists()
    assert not list(tmp_path.rglob("escape.txt"))


def test_absolute_and_nested_escapes_are_skipped(tmp_path):
    archive = write_zip(tmp_path / "godot.zip", {
        str(tmp_path / "abs.txt"): (b"x", None),
        "a/../../sneaky.txt": (b"x", None),
        "a/./ok.txt": (b"ok", None),
    })
    target = tmp_path / "target"

    result = ArchiveInstaller().extract(archive, target)

    assert len(result.skipped) == 2
    assert "a/../../sneaky.txt" in result.skipped
    assert not (tmp_path / "abs.txt").exists()
    assert not (tmp_path / "sneaky.txt").exists()
    assert (target / "a" / "ok.txt").read_bytes() == b"ok"


def test_directory_entries_are_idempotent(tmp_path):
    archive = write_zip(tmp_path / "godot.zip", {
        "Godot_v4.0.3_mono/": (b"", None),
        "Godot_v4.0.3_mono/GodotSharp/": (b"", None),
        "Godot_v4.0.3_mono/GodotSharp/Api.dll": (b"dll", None),
    })
    target = tmp_path / "target"
    (target / "Godot_v4.0.3_mono").mkdir(parents=True)

    ArchiveInstaller().extract(archive, target)
    ArchiveInstaller().extract(archive, target)

    assert (target / "Godot_v4.0.3_mono" / "GodotSharp").is_dir()
    assert (target / "Godot_v4.0.3_mono" / "GodotSharp" / "Api.dll").read_bytes() == b"dll"


def test_existing_files_are_overwritten(tmp_path):
    archive = write_zip(tmp_path / "godot.zip", {"readme.txt": (b"new", None)})
    target = tmp_path / "target"
    target.mkdir()
    (target / "readme.txt").write_bytes(b"old contents")

    ArchiveInstaller().extract(archive, target)

    assert (target / "readme.txt").read_bytes() == b"new"


@posix_only
def test_permissions_are_restored(tmp_path):
    archive = write_zip(tmp_path / "godot.zip", {
        "Godot_v4.0.3_linux.x86_64": (b"\x7fELF", 0o755),
        "data.pck": (b"pck", 0o600),
        "plain.txt": (b"plain", None),
    })
    target = tmp_path / "target"

    ArchiveInstaller().extract(archive, target)

    assert stat.S_IMODE((target / "Godot_v4.0.3_linux.x86_64").stat().st_mode) == 0o755
    assert stat.S_IMODE((target / "data.pck").stat().st_mode) == 0o600
    assert (target / "plain.txt").read_bytes() == b"plain"


def test_permissions_can_be_left_alone(tmp_path):
    archive = write_zip(tmp_path / "godot.zip", {"tool": (b"x", 0o700)})
    target = tmp_path / "target"

    ArchiveInstaller(restore_permissions=False).extract(archive, target)

    assert (target / "tool").read_bytes() == b"x"


def test_corrupt_archive_raises(tmp_path):
    archive = tmp_path / "godot.zip"
    archive.write_bytes(b"this is not a zip file")
    with pytest.raises(ArchiveError) as excinfo:
        ArchiveInstaller().extract(archive, tmp_path / "target")
    assert excinfo.value.archive == archive


def test_missing_archive_raises(tmp_path):
    with pytest.raises(ArchiveError):
        ArchiveInstaller().extract(tmp_path / "missing.zip", tmp_path / "target")


def test_corrupt_entry_aborts_and_names_entry(tmp_path):
    data = bytearray(make_zip({"first.txt": (b"a" * 64, None), "second.txt": (os.urandom(4096), None)}))
    marker = data.find(b"second.txt") + len(b"second.txt")
    data[marker:marker + 40] = b"\x00" * 40
    archive = tmp_path / "godot.zip"
    archive.write_bytes(bytes(data))

    with pytest.raises(ArchiveError) as excinfo:
        ArchiveInstaller().extract(archive, tmp_path / "target")

    assert excinfo.value.entry == "second.txt"
    assert (tmp_path / "target" / "first.txt").read_bytes() == b"a" * 64
