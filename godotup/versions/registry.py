"""Cached list of downloadable Godot versions."""

import logging
import os
import uuid
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterator, List, Optional
from urllib.parse import urljoin, urlsplit

import yaml
from pydantic import BaseModel, ValidationError

from ..exceptions import FilesystemError, RegistryUnavailableError, VersionNotFoundError
from .download_manager import Downloader
from .models import Platform, VersionId

logger = logging.getLogger(__name__)

OFFICIAL_DOWNLOAD_URL = "https://downloads.tuxfamily.org/godotengine/"


class RegistryEntry(BaseModel):
    version: VersionId
    url: str


class RegistryDescriptor(BaseModel):
    versions: List[RegistryEntry] = []


class VersionRegistry(Mapping):
    """Read-only VersionId -> download URL mapping.

    A registry is never edited. ``refresh`` writes a new cache file and
    ``load`` builds a new registry from it.
    """

    def __init__(self, urls: Dict[VersionId, str], download_proxy_url: Optional[str] = None):
        self._urls = MappingProxyType(dict(urls))
        self.download_proxy_url = download_proxy_url

    def __getitem__(self, version_id: VersionId) -> str:
        return self._urls[version_id]

    def __iter__(self) -> Iterator[VersionId]:
        return iter(self._urls)

    def __len__(self) -> int:
        return len(self._urls)

    def lookup(self, version_id: VersionId) -> str:
        """Download URL for exactly this id, rewritten onto the configured mirror."""
        try:
            url = self._urls[version_id]
        except KeyError:
            raise VersionNotFoundError(version_id) from None
        return self._mirror(url)

    def _mirror(self, url: str) -> str:
        if not self.download_proxy_url:
            return url
        if not urlsplit(url).scheme:
            return urljoin(self.download_proxy_url.rstrip("/") + "/", url.lstrip("/"))
        if url.startswith(OFFICIAL_DOWNLOAD_URL):
            return self.download_proxy_url.rstrip("/") + "/" + url[len(OFFICIAL_DOWNLOAD_URL):]
        return url

    def versions(self, platform: Optional[Platform] = None) -> List[VersionId]:
        return sorted(v for v in self._urls if platform is None or v.platform == platform)

    def dump(self) -> str:
        descriptor = RegistryDescriptor(versions=[
            RegistryEntry(version=v, url=self._urls[v]) for v in self.versions()
        ])
        return yaml.safe_dump(descriptor.model_dump(mode="json"), sort_keys=False)

    @classmethod
    def from_yaml(cls, text: str, source: Path,
                  download_proxy_url: Optional[str] = None) -> "VersionRegistry":
        try:
            descriptor = RegistryDescriptor.model_validate(yaml.safe_load(text) or {})
        except (yaml.YAMLError, ValidationError) as e:
            raise RegistryUnavailableError(source, f"malformed: {e}") from e

        urls: Dict[VersionId, str] = {}
        for entry in descriptor.versions:
            if entry.version in urls:
                raise RegistryUnavailableError(
                    source, f"malformed: duplicate entry for {entry.version} ({entry.version.platform.value})")
            urls[entry.version] = entry.url
        return cls(urls, download_proxy_url)

    @classmethod
    def load(cls, cache_path: Path, download_proxy_url: Optional[str] = None) -> "VersionRegistry":
        try:
            text = cache_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise RegistryUnavailableError(cache_path, "not downloaded yet") from None
        except (OSError, UnicodeDecodeError) as e:
            raise RegistryUnavailableError(cache_path, str(e)) from e
        registry = cls.from_yaml(text, cache_path, download_proxy_url)
        logger.debug("Loaded %d versions from %s", len(registry), cache_path)
        return registry

    @classmethod
    async def refresh(cls, source_url: str, cache_path: Path, downloader: Downloader,
                      download_proxy_url: Optional[str] = None) -> "VersionRegistry":
        """Download a new version list and swap it in only once it is complete and valid."""
        tmp_path = cache_path.with_name(f".{cache_path.name}.{os.getpid()}.{uuid.uuid4().hex[:8]}.tmp")
        try:
            await downloader.fetch(source_url, tmp_path)
            registry = cls.load(tmp_path, download_proxy_url)
            try:
                os.replace(tmp_path, cache_path)
            except OSError as e:
                raise FilesystemError(cache_path, str(e)) from e
        finally:
            if tmp_path.exists():
                tmp_path.unlink()
        logger.info("Version list updated: %d versions", len(registry))
        return registry
