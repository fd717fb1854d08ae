"""Byte-addressed file access: a buffered file object and a memory-mapped file."""

from __future__ import annotations

import mmap
import os
import struct
from pathlib import Path

_BINARY = getattr(os, "O_BINARY", 0)


class MmapFile:
    """A file mapped into memory for reading and writing.

    Writing ``data`` at ``offset`` resizes the file to end exactly at
    ``offset + len(data)``.
    """

    def __init__(self) -> None:
        self._fd: int | None = None
        self._map: mmap.mmap | None = None
        self._size = 0
        self._filename = ""

    @property
    def filename(self) -> str:
        return self._filename

    def _map_current(self) -> None:
        self._map = mmap.mmap(self._fd, self._size) if self._size > 0 else None

    def open(self, filename: str | Path, create: bool = False) -> None:
        """Open ``filename`` read-write and map its contents."""
        self.close()
        flags = os.O_RDWR | _BINARY | (os.O_CREAT if create else 0)
        fd = os.open(filename, flags, 0o644)
        try:
            self._fd = fd
            self._size = os.fstat(fd).st_size
            self._map_current()
        except BaseException:
            self.close()
            raise
        self._filename = str(filename)

    def create(self, filename: str | Path, buf: bytes) -> None:
        """Create (or truncate) ``filename`` holding exactly ``buf``."""
        self.close()
        fd = os.open(filename, os.O_RDWR | os.O_CREAT | os.O_TRUNC | _BINARY, 0o644)
        try:
            self._fd = fd
            os.ftruncate(fd, len(buf))
            self._size = len(buf)
            self._map_current()
            if self._map is not None:
                self._map[:] = bytes(buf)
            self.sync()
        except BaseException:
            self.close()
            raise
        self._filename = str(filename)

    def close(self) -> None:
        if self._map is not None:
            self._map.close()
            self._map = None
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None
        self._size = 0

    def size(self) -> int:
        return self._size

    def write(self, offset: int, data: bytes) -> None:
        """Write ``data`` at ``offset``; the file then ends after the written range."""
        if self._fd is None:
            raise ValueError("file is not open")
        if offset < 0:
            raise ValueError("offset must not be negative")
        new_size = offset + len(data)
        if self._map is not None:
            self._map.close()
            self._map = None
        os.ftruncate(self._fd, new_size)
        self._size = new_size
        self._map_current()
        if self._map is not None and data:
            self._map[offset:new_size] = bytes(data)
        self.sync()

    def read(self, offset: int, length: int) -> bytes:
        """Copy ``length`` bytes starting at ``offset``."""
        if offset < 0 or length < 0 or offset + length > self._size:
            raise IndexError("read beyond file size")
        if length == 0:
            return b""
        return bytes(self._map[offset : offset + length])

    def sync(self) -> None:
        if self._map is not None:
            self._map.flush()

    def __enter__(self) -> MmapFile:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class FileObj:
    """A binary file read and written at explicit offsets.

    Integers are stored little-endian.
    """

    def __init__(self, handle, path: str | Path):
        self._file = handle
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def closed(self) -> bool:
        return self._file.closed

    @classmethod
    def create_and_write(cls, path: str | Path, buf: bytes) -> FileObj:
        """Create (or truncate) ``path``, write ``buf`` and sync it."""
        obj = cls.open(path, create=True)
        if buf:
            obj.write(0, buf)
        obj.sync()
        return obj

    @classmethod
    def open(cls, path: str | Path, create: bool = False) -> FileObj:
        """Open ``path`` read-write; ``create`` truncates or creates it."""
        mode = "w+b" if create else "r+b"
        return cls(open(path, mode), path)

    def _require_open(self) -> None:
        if self._file.closed:
            raise ValueError("file is closed")

    def size(self) -> int:
        self._require_open()
        return self._file.seek(0, os.SEEK_END)

    def read_to_slice(self, offset: int, length: int) -> bytes:
        """Read exactly ``length`` bytes at ``offset``."""
        if offset < 0 or length < 0 or offset + length > self.size():
            raise IndexError("read beyond file size")
        self._file.seek(offset)
        data = self._file.read(length)
        if len(data) != length:
            raise OSError(f"short read from {self._path}")
        return data

    def _read_int(self, offset: int, fmt: str) -> int:
        return struct.unpack(fmt, self.read_to_slice(offset, struct.calcsize(fmt)))[0]

    def read_uint8(self, offset: int) -> int:
        return self._read_int(offset, "<B")

    def read_uint16(self, offset: int) -> int:
        return self._read_int(offset, "<H")

    def read_uint32(self, offset: int) -> int:
        return self._read_int(offset, "<I")

    def read_uint64(self, offset: int) -> int:
        return self._read_int(offset, "<Q")

    def write(self, offset: int, buf: bytes) -> None:
        """Write ``buf`` at ``offset``, extending the file if needed."""
        self._require_open()
        if offset < 0:
            raise ValueError("offset must not be negative")
        self._file.seek(offset)
        self._file.write(buf)

    def append(self, buf: bytes) -> None:
        """Write ``buf`` at the end of the file."""
        self.write(self.size(), buf)

    def sync(self) -> None:
        """Push buffered writes to disk."""
        self._require_open()
        self._file.flush()
        os.fsync(self._file.fileno())

    def delete(self) -> None:
        """Close and remove the file from disk."""
        self.close()
        os.remove(self._path)

    def close(self) -> None:
        if not self._file.closed:
            self._file.flush()
            self._file.close()

    def __enter__(self) -> FileObj:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()