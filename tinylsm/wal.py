"""Write-ahead log: buffered appends to rotating files, recovery and cleanup."""

from __future__ import annotations

import re
import struct
import threading
from collections.abc import Iterable
from pathlib import Path

from .files import FileObj
from .record import Record

_FILE_RE = re.compile(r"wal\.(\d+)")
_LEN = struct.Struct("<H")


def _wal_files(log_dir: Path) -> list[tuple[int, Path]]:
    found = []
    for entry in log_dir.iterdir():
        match = _FILE_RE.fullmatch(entry.name)
        if match and entry.is_file():
            found.append((int(match.group(1)), entry))
    return sorted(found)


def _complete_length(data: bytes) -> int:
    """Length of the leading run of whole records; a torn tail is left out."""
    pos = 0
    while pos + _LEN.size <= len(data):
        (record_len,) = _LEN.unpack_from(data, pos)
        if record_len == 0 or pos + record_len > len(data):
            break
        pos += record_len
    return pos


def _read_records(path: Path) -> list[Record]:
    data = path.read_bytes()
    return Record.decode(data[: _complete_length(data)])


class WAL:
    """Log of transaction records kept in files named ``wal.<seq>``.

    Records are buffered until ``buffer_size`` of them are pending or a
    flush is forced. Once the active file reaches ``file_size_limit`` bytes a
    new one is started. A background thread wakes every ``clean_interval``
    seconds and removes inactive files whose records all belong to
    transactions no newer than ``max_finished_tranc_id``.
    """

    def __init__(
        self,
        log_dir: str | Path,
        buffer_size: int,
        max_finished_tranc_id: int,
        clean_interval: float,
        file_size_limit: int,
    ):
        if buffer_size < 1:
            raise ValueError("buffer_size must be at least 1")
        if clean_interval <= 0:
            raise ValueError("clean_interval must be positive")
        if file_size_limit <= 0:
            raise ValueError("file_size_limit must be positive")
        self._dir = Path(log_dir)
        self._dir.mkdir(parents=True, exist_ok=True)
        self._buffer_size = buffer_size
        self._max_finished = max_finished_tranc_id
        self._clean_interval = clean_interval
        self._file_size_limit = file_size_limit
        self._buffer: list[Record] = []
        self._lock = threading.Lock()
        self._closed = False

        existing = _wal_files(self._dir)
        self._seq = existing[-1][0] + 1 if existing else 0
        self._active_path = self._dir / f"wal.{self._seq}"
        self._file = FileObj.create_and_write(self._active_path, b"")

        self._stop = threading.Event()
        self._cleaner_thread = threading.Thread(
            target=self._cleaner, name="wal-cleaner", daemon=True
        )
        self._cleaner_thread.start()

    @property
    def max_finished_tranc_id(self) -> int:
        return self._max_finished

    @max_finished_tranc_id.setter
    def max_finished_tranc_id(self, tranc_id: int) -> None:
        with self._lock:
            self._max_finished = tranc_id

    @staticmethod
    def recover(log_dir: str | Path, max_finished_tranc_id: int) -> dict[int, list[Record]]:
        """Group logged records of transactions newer than ``max_finished_tranc_id``.

        Files are read in sequence order; a torn record at a file's end is
        ignored.
        """
        directory = Path(log_dir)
        if not directory.is_dir():
            return {}
        grouped: dict[int, list[Record]] = {}
        for _, path in _wal_files(directory):
            for record in _read_records(path):
                if record.tranc_id > max_finished_tranc_id:
                    grouped.setdefault(record.tranc_id, []).append(record)
        return dict(sorted(grouped.items()))

    def log(self, records: Iterable[Record], force_flush: bool = False) -> None:
        """Buffer ``records``; write them out once the buffer is full or when forced."""
        with self._lock:
            self._require_open()
            self._buffer.extend(records)
            if force_flush or len(self._buffer) >= self._buffer_size:
                self._flush_locked()

    def flush(self) -> None:
        """Write every buffered record to disk."""
        with self._lock:
            self._require_open()
            self._flush_locked()

    def close(self) -> None:
        """Flush pending records, stop the cleaner and close the active file."""
        self._stop.set()
        if self._cleaner_thread is not threading.current_thread():
            self._cleaner_thread.join()
        with self._lock:
            if self._closed:
                return
            self._flush_locked()
            self._file.close()
            self._closed = True

    def _require_open(self) -> None:
        if self._closed:
            raise ValueError("write-ahead log is closed")

    def _flush_locked(self) -> None:
        if not self._buffer:
            return
        payload = b"".join(record.encode() for record in self._buffer)
        self._file.append(payload)
        self._file.sync()
        self._buffer.clear()
        if self._file.size() >= self._file_size_limit:
            self._rotate()

    def _rotate(self) -> None:
        self._file.close()
        self._seq += 1
        self._active_path = self._dir / f"wal.{self._seq}"
        self._file = FileObj.create_and_write(self._active_path, b"")

    def _cleaner(self) -> None:
        while not self._stop.wait(self._clean_interval):
            self._clean()

    def _clean(self) -> None:
        with self._lock:
            if self._closed:
                return
            threshold = self._max_finished
            for _, path in _wal_files(self._dir):
                if path == self._active_path:
                    continue
                try:
                    records = _read_records(path)
                except (OSError, ValueError):
                    continue
                if all(record.tranc_id <= threshold for record in records):
                    path.unlink(missing_ok=True)

    def __enter__(self) -> WAL:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()