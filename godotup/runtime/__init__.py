"""Archive extraction and the on-disk installation store."""

from .archive import ArchiveInstaller, ExtractionResult
from .store import InstallationStore, InstallState

__all__ = ["ArchiveInstaller", "ExtractionResult", "InstallationStore", "InstallState"]
