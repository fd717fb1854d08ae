"""Write-ahead log records and their binary encoding.

Every record starts with a fixed header of ``record_len`` (u16, the whole
record's length in bytes), ``tranc_id`` (u64) and the operation type (u8).
PUT records then carry ``key_len`` (u16), the key, ``value_len`` (u16) and
the value; DELETE records carry ``key_len`` and the key. All integers are
little-endian and strings are UTF-8.
"""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass

_HEADER = struct.Struct("<HQB")
_LEN = struct.Struct("<H")
_MAX_U16 = 0xFFFF
_MAX_U64 = 2**64 - 1


class OperationType(enum.IntEnum):
    CREATE = 0
    COMMIT = 1
    ROLLBACK = 2
    PUT = 3
    DELETE = 4


_NO_PAYLOAD = frozenset({OperationType.CREATE, OperationType.COMMIT, OperationType.ROLLBACK})


@dataclass(frozen=True, eq=False, slots=True)
class Record:
    """One logged step of a transaction."""

    tranc_id: int
    operation_type: OperationType
    key: str = ""
    value: str = ""

    def __post_init__(self) -> None:
        if not 0 <= self.tranc_id <= _MAX_U64:
            raise ValueError(f"tranc_id out of range: {self.tranc_id}")
        op = OperationType(self.operation_type)
        object.__setattr__(self, "operation_type", op)
        if op in _NO_PAYLOAD and (self.key or self.value):
            raise ValueError(f"{op.name} records carry no key or value")
        if op is OperationType.DELETE and self.value:
            raise ValueError("DELETE records carry no value")
        if _HEADER.size + len(self._body()) > _MAX_U16:
            raise ValueError("record is too long to encode")

    @classmethod
    def create(cls, tranc_id: int) -> Record:
        return cls(tranc_id, OperationType.CREATE)

    @classmethod
    def commit(cls, tranc_id: int) -> Record:
        return cls(tranc_id, OperationType.COMMIT)

    @classmethod
    def rollback(cls, tranc_id: int) -> Record:
        return cls(tranc_id, OperationType.ROLLBACK)

    @classmethod
    def put(cls, tranc_id: int, key: str, value: str) -> Record:
        return cls(tranc_id, OperationType.PUT, key, value)

    @classmethod
    def delete(cls, tranc_id: int, key: str) -> Record:
        return cls(tranc_id, OperationType.DELETE, key)

    def _body(self) -> bytes:
        if self.operation_type is OperationType.PUT:
            key = self.key.encode("utf-8")
            value = self.value.encode("utf-8")
            if len(key) > _MAX_U16 or len(value) > _MAX_U16:
                raise ValueError("record is too long to encode")
            return _LEN.pack(len(key)) + key + _LEN.pack(len(value)) + value
        if self.operation_type is OperationType.DELETE:
            key = self.key.encode("utf-8")
            if len(key) > _MAX_U16:
                raise ValueError("record is too long to encode")
            return _LEN.pack(len(key)) + key
        return b""

    def encode(self) -> bytes:
        body = self._body()
        header = _HEADER.pack(_HEADER.size + len(body), self.tranc_id, self.operation_type)
        return header + body

    @classmethod
    def decode(cls, data: bytes) -> list[Record]:
        """Decode a sequence of back-to-back encoded records."""
        data = bytes(data)
        records = []
        pos = 0
        while pos < len(data):
            if len(data) - pos < _LEN.size:
                raise ValueError("truncated record length")
            (record_len,) = _LEN.unpack_from(data, pos)
            if record_len < _HEADER.size:
                raise ValueError(f"record length {record_len} is shorter than the header")
            end = pos + record_len
            if end > len(data):
                raise ValueError("truncated record")
            records.append(cls._parse(data[pos:end]))
            pos = end
        return records

    @classmethod
    def _parse(cls, chunk: bytes) -> Record:
        _, tranc_id, raw_op = _HEADER.unpack_from(chunk)
        op = OperationType(raw_op)
        pos = _HEADER.size

        def take_string() -> str:
            nonlocal pos
            if len(chunk) - pos < _LEN.size:
                raise ValueError("truncated string length")
            (length,) = _LEN.unpack_from(chunk, pos)
            pos += _LEN.size
            if len(chunk) - pos < length:
                raise ValueError("truncated string")
            text = chunk[pos : pos + length].decode("utf-8")
            pos += length
            return text

        key = value = ""
        if op in (OperationType.PUT, OperationType.DELETE):
            key = take_string()
        if op is OperationType.PUT:
            value = take_string()
        if pos != len(chunk):
            raise ValueError("record length does not match its contents")
        return cls(tranc_id, op, key, value)

    def _identity(self) -> tuple:
        if self.operation_type in _NO_PAYLOAD:
            return (self.tranc_id, self.operation_type)
        if self.operation_type is OperationType.DELETE:
            return (self.tranc_id, self.operation_type, self.key)
        return (self.tranc_id, self.operation_type, self.key, self.value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Record):
            return NotImplemented
        return self._identity() == other._identity()

    def __hash__(self) -> int:
        return hash(self._identity())