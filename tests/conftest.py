import pytest

from godotup.runtime.store import InstallationStore
from godotup.versions.models import Platform, Stable, VersionId


@pytest.fixture
def linux_host(monkeypatch):
    """Pretend to run on 64-bit Linux so artifact names are predictable."""
    monkeypatch.setattr("platform.system", lambda: "Linux")
    monkeypatch.setattr("platform.machine", lambda: "x86_64")


@pytest.fixture
def godot_403():
    return VersionId(major=4, minor=0, patch=3, suffix=Stable(), is_mono=False,
                     platform=Platform.LINUX64)


@pytest.fixture
def store(tmp_path):
    return InstallationStore(tmp_path / "versions", tmp_path / "downloads",
                             platform=Platform.LINUX64)


@pytest.fixture
def fake_install(store):
    """Create an install directory by hand instead of downloading one."""
    def _install(version_id, files=None):
        target = store.install_dir(version_id)
        target.mkdir(parents=True, exist_ok=True)
        for name, content in (files or {f"{version_id.canonical}_linux.x86_64": b"\x7fELF"}).items():
            path = target / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        return target

    return _install
