"""Installed Godot versions on disk."""

import asyncio
import logging
import os
import shutil
import uuid
import zipfile
import zlib
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from ..exceptions import ArchiveError, FilesystemError, FormatError, NotInstalledError
from ..versions.download_manager import Downloader, ProgressCallback
from ..versions.models import Platform, VersionId
from ..versions.registry import VersionRegistry
from .archive import ArchiveInstaller

logger = logging.getLogger(__name__)

STAGING_PREFIX = ".staging-"
PARTIAL_SUFFIX = ".part"

# causes of ArchiveError that mean the downloaded file itself is bad
_CORRUPT_ARCHIVE = (zipfile.BadZipFile, zlib.error, EOFError)


class InstallState(str, Enum):
    NOT_INSTALLED = "not_installed"
    DOWNLOADING = "downloading"
    EXTRACTING = "extracting"
    INSTALLED = "installed"


class InstallationStore:
    """Owns ``install_root``: the only place install directories get created or removed.

    Each version lives in ``install_root/<canonical string>``. A version counts
    as installed when that directory exists and is not empty. Archives are
    extracted into a per-invocation staging directory first and renamed into
    place once extraction finished, so an install directory is never half
    written.
    """

    def __init__(self, install_root: Path, downloads_dir: Path,
                 registry: Optional[VersionRegistry] = None,
                 downloader: Optional[Downloader] = None,
                 installer: Optional[ArchiveInstaller] = None,
                 platform: Optional[Platform] = None):
        self.install_root = install_root
        self.downloads_dir = downloads_dir
        self.registry = registry
        self.downloader = downloader
        self.installer = installer or ArchiveInstaller()
        self._platform = platform
        self._states: Dict[VersionId, InstallState] = {}

    @property
    def platform(self) -> Platform:
        if self._platform is None:
            self._platform = Platform.current()
        return self._platform

    def install_dir(self, version_id: VersionId) -> Path:
        return self.install_root / version_id.canonical

    def is_installed(self, version_id: VersionId) -> bool:
        path = self.install_dir(version_id)
        return path.is_dir() and any(path.iterdir())

    def require_installed(self, version_id: VersionId) -> Path:
        if not self.is_installed(version_id):
            raise NotInstalledError(version_id)
        return self.install_dir(version_id)

    def state(self, version_id: VersionId) -> InstallState:
        if self.is_installed(version_id):
            return InstallState.INSTALLED
        return self._states.get(version_id, InstallState.NOT_INSTALLED)

    def installed(self) -> List[VersionId]:
        """Installed versions, sorted. Directories that aren't canonical names are ignored."""
        if not self.install_root.is_dir():
            return []
        versions = []
        for item in self.install_root.iterdir():
            if not item.is_dir() or item.name.startswith("."):
                continue
            try:
                version_id = VersionId.parse(item.name, self.platform)
            except FormatError:
                logger.debug("Ignoring %s in %s", item.name, self.install_root)
                continue
            if self.is_installed(version_id):
                versions.append(version_id)
        return sorted(versions)

    async def install(self, version_id: VersionId,
                      progress_callback: Optional[ProgressCallback] = None,
                      force: bool = False) -> Path:
        """Download and extract a version. Returns its install directory."""
        target = self.install_dir(version_id)
        if self.is_installed(version_id):
            if not force:
                logger.info("%s is already installed at %s", version_id, target)
                return target
            self.remove(version_id)

        url = self.registry.lookup(version_id)
        archive = self.downloads_dir / version_id.artifact_filename()
        partial = archive.with_name(archive.name + PARTIAL_SUFFIX)

        self._states[version_id] = InstallState.DOWNLOADING
        try:
            if not archive.exists():
                await self.downloader.fetch(url, partial, progress_callback)
                self._rename(partial, archive)

            self._states[version_id] = InstallState.EXTRACTING
            staging = self.install_root / f"{STAGING_PREFIX}{version_id.canonical}-{os.getpid()}-{uuid.uuid4().hex[:8]}"
            loop = asyncio.get_event_loop()
            try:
                await loop.run_in_executor(None, self.installer.extract, archive, staging)
            except ArchiveError as e:
                if isinstance(e.__cause__, _CORRUPT_ARCHIVE):
                    logger.warning("Removing unreadable archive %s, it will be downloaded again", archive)
                    archive.unlink(missing_ok=True)
                raise
            self._publish(version_id, staging, target)
        except BaseException:
            self._states.pop(version_id, None)
            raise

        self._states[version_id] = InstallState.INSTALLED
        archive.unlink(missing_ok=True)
        logger.info("Installed %s to %s", version_id, target)
        return target

    def _publish(self, version_id: VersionId, staging: Path, target: Path):
        try:
            os.rename(staging, target)
        except OSError as e:
            if self.is_installed(version_id):
                logger.info("%s was installed concurrently, discarding %s", version_id, staging.name)
                shutil.rmtree(staging, ignore_errors=True)
                return
            if target.exists() and not any(target.iterdir()):
                target.rmdir()
                self._rename(staging, target)
                return
            raise FilesystemError(target, f"cannot move extracted files into place: {e}") from e

    @staticmethod
    def _rename(src: Path, dst: Path):
        try:
            os.replace(src, dst)
        except OSError as e:
            raise FilesystemError(dst, str(e)) from e

    def remove(self, version_id: VersionId):
        target = self.install_dir(version_id)
        if not target.exists():
            raise NotInstalledError(version_id)
        try:
            shutil.rmtree(target)
        except OSError as e:
            raise FilesystemError(target, str(e)) from e
        self._states.pop(version_id, None)
        logger.info("Removed %s", target)

    def clean(self) -> List[Path]:
        """Delete staging directories and unfinished downloads left by interrupted runs."""
        leftovers = []
        if self.install_root.is_dir():
            leftovers += [p for p in self.install_root.iterdir() if p.name.startswith(STAGING_PREFIX)]
        if self.downloads_dir.is_dir():
            leftovers += list(self.downloads_dir.iterdir())
        for path in leftovers:
            try:
                if path.is_dir():
                    shutil.rmtree(path)
                else:
                    path.unlink()
            except OSError as e:
                raise FilesystemError(path, str(e)) from e
            logger.info("Removed %s", path)
        return leftovers
