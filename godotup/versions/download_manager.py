"""Resumable downloads for Godot archives and the version list."""

import asyncio
import logging
import re
import time
from pathlib import Path
from typing import Awaitable, Callable, Optional

import aiofiles
import aiohttp
from aiohttp import hdrs
from pydantic import BaseModel

from ..exceptions import FilesystemError, TransferError

logger = logging.getLogger(__name__)

_CONTENT_RANGE_RE = re.compile(r"bytes (\d+)-(\d+)/(\d+|\*)")
_UNSATISFIED_RANGE_RE = re.compile(r"bytes \*/(\d+)")

# Content-Length and Range offsets must count the bytes written to disk
_IDENTITY = {hdrs.ACCEPT_ENCODING: "identity"}


class DownloadProgress(BaseModel):
    """One progress event. ``percentage`` and ``eta`` are None while the total size is unknown."""

    bytes_transferred: int
    total_size: Optional[int] = None
    elapsed: float
    resumed_from: int = 0

    @property
    def percentage(self) -> Optional[float]:
        if not self.total_size:
            return None
        return 100.0 * self.bytes_transferred / self.total_size

    @property
    def eta(self) -> Optional[float]:
        if self.total_size is None:
            return None
        fetched = self.bytes_transferred - self.resumed_from
        if fetched <= 0 or self.elapsed <= 0:
            return None
        return max(self.total_size - self.bytes_transferred, 0) / (fetched / self.elapsed)


ProgressCallback = Callable[[DownloadProgress], Awaitable[None]]


def _parse_length(value: Optional[str]) -> Optional[int]:
    try:
        length = int(value)
    except (TypeError, ValueError):
        return None
    return length if length > 0 else None


def _partial_size(path: Path) -> int:
    return path.stat().st_size if path.is_file() else 0


class Downloader:
    """Fetches a URL into a local file, resuming from whatever is already on disk.

    Use as an async context manager so the aiohttp session gets closed::

        async with Downloader() as downloader:
            await downloader.fetch(url, dest, progress_callback)

    Nothing is retried here. A broken transfer raises TransferError and keeps
    the partial file, so calling ``fetch`` again continues where it stopped.
    """

    def __init__(self, chunk_size: int = 64 * 1024, timeout: Optional[float] = 60,
                 session: Optional[aiohttp.ClientSession] = None):
        self.chunk_size = chunk_size
        self.timeout = aiohttp.ClientTimeout(total=None, sock_connect=timeout, sock_read=timeout)
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self):
        if self.session is None:
            self.session = aiohttp.ClientSession(timeout=self.timeout, auto_decompress=False)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None

    async def probe_size(self, url: str) -> Optional[int]:
        """HEAD the URL for its Content-Length. None when the server doesn't say."""
        try:
            async with self.session.head(url, headers=_IDENTITY, allow_redirects=True) as resp:
                if not 200 <= resp.status < 300:
                    raise TransferError(url, resp.status, "HEAD request failed")
                return _parse_length(resp.headers.get(hdrs.CONTENT_LENGTH))
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransferError(url, reason=str(e) or type(e).__name__) from e

    async def fetch(self, url: str, dest: Path,
                    progress_callback: Optional[ProgressCallback] = None) -> Path:
        if self.session is None:
            raise RuntimeError("Downloader must be entered with 'async with' before use")
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(dest.parent, str(e)) from e

        offset = _partial_size(dest)
        total = await self.probe_size(url)
        if total is not None and offset == total:
            logger.info("%s is already complete", dest.name)
            await self._report(progress_callback, offset, total, 0.0, offset)
            return dest
        if total is not None and offset > total:
            logger.warning("%s is larger than the remote file, restarting download", dest)
            offset = 0

        try:
            while True:
                headers = dict(_IDENTITY)
                if offset:
                    headers[hdrs.RANGE] = f"bytes={offset}-"
                if offset:
                    logger.info("Resuming %s from byte %d", url, offset)
                else:
                    logger.info("Downloading %s to %s", url, dest)

                async with self.session.get(url, headers=headers) as resp:
                    if offset and resp.status == 416 and self._satisfied(resp, offset):
                        logger.info("%s is already complete", dest.name)
                        await self._report(progress_callback, offset, offset, 0.0, offset)
                        return dest
                    if resp.status not in (200, 206):
                        raise TransferError(url, resp.status,
                                            partial_preserved=_partial_size(dest) > 0)
                    if offset and not self._resume_accepted(resp, offset, total):
                        logger.warning("Server did not honour resume for %s, restarting from zero", url)
                        offset = 0
                        if resp.status != 200:
                            continue
                    if total is None:
                        total = self._total_from(resp, offset)
                    await self._stream(resp, dest, offset, total, progress_callback)
                    break
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransferError(url, reason=str(e) or type(e).__name__,
                                partial_preserved=_partial_size(dest) > 0) from e
        except OSError as e:
            raise FilesystemError(dest, str(e)) from e

        size = _partial_size(dest)
        if total is not None and size != total:
            raise TransferError(url, reason=f"received {size} of {total} bytes",
                                partial_preserved=size > 0)
        logger.info("Download complete: %s (%d bytes)", dest.name, size)
        return dest

    @staticmethod
    def _satisfied(resp: aiohttp.ClientResponse, offset: int) -> bool:
        """A 416 on resume means done when the server's full length equals what we have."""
        match = _UNSATISFIED_RANGE_RE.fullmatch(resp.headers.get(hdrs.CONTENT_RANGE, ""))
        return bool(match) and int(match.group(1)) == offset

    @staticmethod
    def _resume_accepted(resp: aiohttp.ClientResponse, offset: int, total: Optional[int]) -> bool:
        if resp.status != 206:
            return False
        match = _CONTENT_RANGE_RE.fullmatch(resp.headers.get(hdrs.CONTENT_RANGE, ""))
        if match and int(match.group(1)) != offset:
            return False
        length = resp.content_length
        if total is not None and length is not None and length != total - offset:
            return False
        return True

    @staticmethod
    def _total_from(resp: aiohttp.ClientResponse, offset: int) -> Optional[int]:
        if resp.status == 206:
            match = _CONTENT_RANGE_RE.fullmatch(resp.headers.get(hdrs.CONTENT_RANGE, ""))
            if match and match.group(3) != "*":
                return int(match.group(3))
            return offset + resp.content_length if resp.content_length is not None else None
        return resp.content_length

    async def _stream(self, resp: aiohttp.ClientResponse, dest: Path, offset: int,
                      total: Optional[int], progress_callback: Optional[ProgressCallback]):
        transferred = offset
        started = time.monotonic()
        async with aiofiles.open(dest, 'ab' if offset else 'wb') as f:
            async for chunk in resp.content.iter_chunked(self.chunk_size):
                await f.write(chunk)
                transferred += len(chunk)
                await self._report(progress_callback, transferred, total,
                                   time.monotonic() - started, offset)

    @staticmethod
    async def _report(progress_callback: Optional[ProgressCallback], transferred: int,
                      total: Optional[int], elapsed: float, resumed_from: int):
        if progress_callback:
            await progress_callback(DownloadProgress(
                bytes_transferred=transferred,
                total_size=total,
                elapsed=elapsed,
                resumed_from=resumed_from,
            ))
