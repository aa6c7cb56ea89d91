"""Active Godot version and the environment that points at it."""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from ..exceptions import NotInstalledError
from ..runtime.store import InstallationStore
from ..versions.models import Platform, VersionId

logger = logging.getLogger(__name__)

GODOT_HOME = "GODOT_HOME"
GODOT_BIN = "GODOT_BIN"
GODOT4_BIN = "GODOT4_BIN"

Binding = Tuple[str, str]

_DATA_SUFFIXES = {".pck", ".so", ".dll", ".dylib", ".txt", ".md", ".zip"}


def find_executable(install_dir: Path, platform: Platform) -> Optional[Path]:
    """Locate the Godot binary inside an install directory.

    Archives hold either the bare binary or, for mono builds, a folder with the
    binary next to its data. The shallowest ``Godot_v*`` file wins.
    """
    windows = platform in (Platform.WIN32, Platform.WIN64)
    candidates = []
    for path in install_dir.rglob("Godot_v*"):
        name = path.name.lower()
        if not path.is_file() or name.endswith("_console.exe"):
            continue
        if windows and not name.endswith(".exe"):
            continue
        if not windows and path.suffix.lower() in _DATA_SUFFIXES | {".exe"}:
            continue
        candidates.append(path)
    if not candidates:
        return None
    return min(candidates, key=lambda p: (len(p.relative_to(install_dir).parts), p.name))


class ActivationManager:
    """Tracks which installed version is current.

    ``switch`` only computes bindings; writing them into a shell or the OS
    environment is left to the caller. Install directories are never touched.

    Bindings produced:
      GODOT_HOME  install directory of the active version
      GODOT_BIN   its executable, when ``set_godot_bin``
      GODOT4_BIN  its executable, when ``set_godot4_bin`` and major >= 4

    GODOT_HOME is the per-version directory, not the shared install root.
    The root is ``GODOT_HOME``'s parent. ``current_from_environ`` relies on
    the directory name to recover the active version.
    """

    def __init__(self, store: InstallationStore, set_godot_bin: bool = True,
                 set_godot4_bin: bool = True, current: Optional[VersionId] = None):
        self.store = store
        self.set_godot_bin = set_godot_bin
        self.set_godot4_bin = set_godot4_bin
        self.current = current

    def bindings_for(self, version_id: VersionId) -> List[Binding]:
        install_dir = self.store.require_installed(version_id)
        bindings = [(GODOT_HOME, str(install_dir))]
        if not (self.set_godot_bin or (self.set_godot4_bin and version_id.major >= 4)):
            return bindings

        executable = find_executable(install_dir, version_id.platform)
        if executable is None:
            raise NotInstalledError(version_id, f"has no Godot executable in {install_dir}")
        if self.set_godot_bin:
            bindings.append((GODOT_BIN, str(executable)))
        if self.set_godot4_bin and version_id.major >= 4:
            bindings.append((GODOT4_BIN, str(executable)))
        return bindings

    def switch(self, version_id: VersionId) -> List[Binding]:
        bindings = self.bindings_for(version_id)
        if self.current != version_id:
            logger.info("Switching to %s", version_id)
        self.current = version_id
        return bindings

    def bindings(self) -> List[Binding]:
        if self.current is None:
            return []
        return self.bindings_for(self.current)
