"""
Random-access byte sources over a Parquet file.

The footer is located from the end of the file and page streams are read at
arbitrary offsets, so every accessor serves ``read_at(offset, length)``
instead of sequential reads.
"""

import logging
import os
import threading

from .errors import IOFailure


class FileAccessor(object):
    """Ranged, seekable byte source. Subclasses implement ``_read``."""

    logger = logging.getLogger(__qualname__)

    def __init__(self, size, name):
        self.size = size
        self.name = name

    def read_at(self, offset, length):
        if offset < 0 or length < 0 or offset + length > self.size:
            raise IOFailure(
                f"Read of {length} bytes at offset {offset} is outside "
                f"{self.name} ({self.size} bytes)"
            )
        if length == 0:
            return b""
        data = self._read(offset, length)
        if len(data) != length:
            raise IOFailure(
                f"Short read from {self.name}: wanted {length} bytes at "
                f"offset {offset}, got {len(data)}"
            )
        return data

    def _read(self, offset, length):
        raise NotImplementedError

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()


class LocalFileAccessor(FileAccessor):
    """A file on the local file system, opened once for the session.

    ``FileNotFoundError`` and ``PermissionError`` from opening the file are
    raised unchanged.
    """

    def __init__(self, path):
        self._file = open(path, "rb")
        self._lock = threading.Lock()
        try:
            self._file.seek(0, os.SEEK_END)
            size = self._file.tell()
        except OSError as e:
            self._file.close()
            raise IOFailure(f"Cannot determine size of {path}: {e}") from e
        super().__init__(size, os.fspath(path))
        self.logger.debug(f"Opened {self.name} ({self.size} bytes)")

    def _read(self, offset, length):
        # The prefetch worker shares this handle with the foreground loop.
        with self._lock:
            try:
                self._file.seek(offset)
                return self._file.read(length)
            except (OSError, ValueError) as e:
                raise IOFailure(f"Read from {self.name} failed: {e}") from e

    def close(self):
        with self._lock:
            if not self._file.closed:
                self._file.close()
                self.logger.debug(f"Closed {self.name}")


class BufferAccessor(FileAccessor):
    """In-memory bytes holding a complete Parquet file."""

    def __init__(self, data, name="<buffer>"):
        self._data = memoryview(bytes(data))
        super().__init__(len(self._data), name)

    def _read(self, offset, length):
        return self._data[offset:offset + length].tobytes()


def open_accessor(source):
    """Return a FileAccessor for a path, a bytes-like object or an accessor."""
    if isinstance(source, FileAccessor):
        return source
    if isinstance(source, (bytes, bytearray, memoryview)):
        return BufferAccessor(source)
    if isinstance(source, (str, os.PathLike)):
        return LocalFileAccessor(source)
    raise TypeError(f"Cannot read Parquet data from {type(source).__name__}")
