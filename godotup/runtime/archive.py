"""Safe extraction of downloaded Godot archives."""

import logging
import os
import shutil
import stat
import zipfile
import zlib
from pathlib import Path
from typing import List

from pydantic import BaseModel

from ..exceptions import ArchiveError

logger = logging.getLogger(__name__)


class ExtractionResult(BaseModel):
    extracted: List[Path] = []
    skipped: List[str] = []


def _contained(root: Path, candidate: Path) -> bool:
    return candidate != root and root in candidate.parents


class ArchiveInstaller:
    """Extracts zip archives without letting entries escape the target directory.

    Entries that would land outside the target (``../x``, absolute names) are
    skipped and logged, not treated as errors. Any other failure aborts the
    extraction with ArchiveError and leaves whatever was already written.
    """

    def __init__(self, restore_permissions: bool = os.name == "posix"):
        self.restore_permissions = restore_permissions

    def extract(self, archive_path: Path, target_dir: Path) -> ExtractionResult:
        result = ExtractionResult()
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            root = target_dir.resolve()
        except OSError as e:
            raise ArchiveError(archive_path, f"cannot create {target_dir}: {e}") from e

        try:
            zip_ref = zipfile.ZipFile(archive_path, 'r')
        except (OSError, zipfile.BadZipFile) as e:
            raise ArchiveError(archive_path, str(e)) from e

        with zip_ref:
            for info in zip_ref.infolist():
                out_path = (root / info.filename).resolve()
                if not _contained(root, out_path):
                    logger.warning("Skipping archive entry outside target directory: %s", info.filename)
                    result.skipped.append(info.filename)
                    continue
                try:
                    self._extract_entry(zip_ref, info, out_path)
                except (OSError, zipfile.BadZipFile, zlib.error, EOFError) as e:
                    raise ArchiveError(archive_path, str(e), entry=info.filename) from e
                result.extracted.append(out_path)

        logger.info("Extracted %d entries from %s into %s",
                    len(result.extracted), archive_path.name, target_dir)
        return result

    def _extract_entry(self, zip_ref: zipfile.ZipFile, info: zipfile.ZipInfo, out_path: Path):
        if info.is_dir():
            out_path.mkdir(parents=True, exist_ok=True)
            return

        out_path.parent.mkdir(parents=True, exist_ok=True)
        with zip_ref.open(info, 'r') as src, open(out_path, 'wb') as dst:
            shutil.copyfileobj(src, dst)

        mode = stat.S_IMODE(info.external_attr >> 16)
        if self.restore_permissions and mode:
            os.chmod(out_path, mode)
