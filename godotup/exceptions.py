"""Error types raised by godotup."""

from pathlib import Path
from typing import Optional


class GodotupError(Exception):
    """Base class for every error godotup reports to the user."""


class ConfigError(GodotupError):
    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"Invalid config file {path}: {reason}")


class FormatError(GodotupError):
    def __init__(self, text: str, reason: str = "malformed version string"):
        self.text = text
        super().__init__(f"{reason}: {text!r}")


class UnsupportedPlatformError(GodotupError):
    def __init__(self, system: str, machine: str):
        self.system = system
        self.machine = machine
        super().__init__(f"godotup is not available on {system}/{machine}")


class RegistryUnavailableError(GodotupError):
    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"Version list {path} is unavailable ({reason}); run 'godotup update'")


class VersionNotFoundError(GodotupError):
    def __init__(self, version_id):
        self.version_id = version_id
        super().__init__(
            f"{version_id} ({version_id.platform.value}) is not in the version list"
        )


class TransferError(GodotupError):
    """Download failure. ``partial_preserved`` tells whether a resumable file was left behind."""

    def __init__(self, url: str, status: Optional[int] = None, reason: str = "",
                 partial_preserved: bool = False):
        self.url = url
        self.status = status
        self.partial_preserved = partial_preserved
        message = f"Couldn't download URL: {url}"
        if status is not None:
            message += f". Status: {status}"
        if reason:
            message += f". Error: {reason}"
        if partial_preserved:
            message += " (partial file kept, run again to resume)"
        super().__init__(message)


class ArchiveError(GodotupError):
    def __init__(self, archive: Path, reason: str, entry: Optional[str] = None):
        self.archive = archive
        self.entry = entry
        where = f"{archive}:{entry}" if entry else str(archive)
        super().__init__(f"Couldn't extract {where}: {reason}")


class NotInstalledError(GodotupError):
    def __init__(self, version_id, reason: str = "is not installed"):
        self.version_id = version_id
        super().__init__(f"{version_id} {reason}")


class FilesystemError(GodotupError):
    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"{path}: {reason}")
