"""Version management module."""

from .download_manager import Downloader, DownloadProgress
from .models import Alpha, Beta, Platform, Rc, Stable, VersionId, platform_suffix
from .registry import VersionRegistry

__all__ = [
    "Downloader",
    "DownloadProgress",
    "VersionRegistry",
    "VersionId",
    "Platform",
    "Stable",
    "Alpha",
    "Beta",
    "Rc",
    "platform_suffix",
]
