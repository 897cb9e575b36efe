"""Single-entry reads from local or remote zip archives.

Archives are addressed by URL. ``file://`` archives are read through a
plain file handle; ``http(s)://`` archives through :class:`HttpRangeFile`,
which fetches only the byte ranges the zip reader seeks to. Either way only
the central directory and the requested entry are ever read.
"""

from __future__ import annotations

import io
import logging
import zipfile
import zlib
from typing import BinaryIO, Set
from urllib.parse import urlsplit
from urllib.request import url2pathname

import httpx

LOGGER = logging.getLogger(__name__)

CHUNK_SIZE = 1 << 20
RANGE_BUFFER_SIZE = 1 << 16

# Failures the archive reader can raise while opening, listing or extracting.
ARCHIVE_ERRORS = (
    OSError,
    zipfile.BadZipFile,
    zlib.error,
    httpx.HTTPError,
    NotImplementedError,
    RuntimeError,
)


class HttpRangeFile(io.RawIOBase):
    """Seekable read-only view of a remote file backed by HTTP range requests."""

    def __init__(self, url: str, *, client: httpx.Client | None = None, timeout: float = 30.0) -> None:
        super().__init__()
        self.url = url
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout, follow_redirects=True)
        self._pos = 0
        try:
            response = self._client.head(url)
            response.raise_for_status()
            length = response.headers.get("content-length")
            if length is None:
                raise OSError(f"Server did not report a size for {url}")
            self.size = int(length)
        except BaseException:
            self.close()
            raise

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def tell(self) -> int:
        return self._pos

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        if whence == io.SEEK_SET:
            position = offset
        elif whence == io.SEEK_CUR:
            position = self._pos + offset
        elif whence == io.SEEK_END:
            position = self.size + offset
        else:
            raise ValueError(f"Invalid whence: {whence}")
        if position < 0:
            raise OSError(f"Negative seek position {position}")
        self._pos = position
        return self._pos

    def readinto(self, buffer) -> int:
        if self._pos >= self.size or len(buffer) == 0:
            return 0
        end = min(self._pos + len(buffer), self.size) - 1
        response = self._client.get(self.url, headers={"Range": f"bytes={self._pos}-{end}"})
        response.raise_for_status()
        if response.status_code != httpx.codes.PARTIAL_CONTENT:
            raise OSError(f"Server ignored range request for {self.url}")
        data = response.content
        count = len(data)
        buffer[:count] = data
        self._pos += count
        return count

    def close(self) -> None:
        if not self.closed and self._owns_client:
            self._client.close()
        super().close()


class ArchiveHandle:
    """Open zip archive exposing entry listing and single-entry extraction."""

    def __init__(self, location: str, fileobj: BinaryIO) -> None:
        self.location = location
        self._fileobj = fileobj
        self._zip = zipfile.ZipFile(fileobj)

    def list_names(self) -> Set[str]:
        return set(self._zip.namelist())

    def extract(self, entry_name: str, sink: BinaryIO) -> int:
        """Decompress one entry into ``sink``, returning the number of bytes written."""
        written = 0
        with self._zip.open(entry_name) as member:
            for chunk in iter(lambda: member.read(CHUNK_SIZE), b""):
                sink.write(chunk)
                written += len(chunk)
        LOGGER.debug("Extracted %d bytes of '%s' from %s", written, entry_name, self.location)
        return written

    def close(self) -> None:
        try:
            self._zip.close()
        finally:
            self._fileobj.close()

    def __enter__(self) -> "ArchiveHandle":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def open_archive(location: str, *, client: httpx.Client | None = None) -> ArchiveHandle:
    """Open the zip archive at a ``file://`` or ``http(s)://`` location."""
    parts = urlsplit(location)
    if parts.scheme == "file":
        fileobj: BinaryIO = open(url2pathname(parts.path), "rb")
    elif parts.scheme in ("http", "https"):
        fileobj = io.BufferedReader(
            HttpRangeFile(location, client=client), buffer_size=RANGE_BUFFER_SIZE
        )
    else:
        raise ValueError(f"Unsupported archive location: {location}")

    try:
        return ArchiveHandle(location, fileobj)
    except BaseException:
        fileobj.close()
        raise
