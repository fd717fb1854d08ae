import pytest

from tinylsm.record import OperationType, Record


def test_create_record_wire_bytes():
    encoded = Record.create(7).encode()
    assert encoded == b"\x0b\x00" + (7).to_bytes(8, "little") + b"\x00"


def test_record_length_prefix_matches_encoding():
    for record in (
        Record.put(1, "key", "value"),
        Record.delete(2, "key"),
        Record.commit(3),
        Record.rollback(4),
    ):
        encoded = record.encode()
        assert int.from_bytes(encoded[:2], "little") == len(encoded)


@pytest.mark.parametrize(
    "record",
    [
        Record.create(1),
        Record.commit(2),
        Record.rollback(3),
        Record.put(4, "k", "v"),
        Record.put(5, "", ""),
        Record.delete(6, "gone"),
        Record.put(2**64 - 1, "ключ", "值"),
    ],
)
def test_round_trip(record):
    decoded = Record.decode(record.encode())
    assert decoded == [record]
    assert decoded[0].operation_type is record.operation_type
    assert decoded[0].key == record.key
    assert decoded[0].value == record.value


def test_decode_sequence():
    records = [
        Record.create(1),
        Record.put(1, "a", "1"),
        Record.delete(1, "b"),
        Record.commit(1),
    ]
    data = b"".join(r.encode() for r in records)
    assert Record.decode(data) == records


def test_decode_empty():
    assert Record.decode(b"") == []


def test_equality_ignores_payload_for_control_records():
    assert Record.commit(3) == Record(3, OperationType.COMMIT)
    assert Record.commit(3) != Record.commit(4)
    assert Record.commit(3) != Record.rollback(3)


def test_equality_of_data_records():
    assert Record.put(1, "k", "v") == Record.put(1, "k", "v")
    assert Record.put(1, "k", "v") != Record.put(1, "k", "w")
    assert Record.delete(1, "k") != Record.delete(1, "j")
    assert Record.delete(1, "k") != Record.put(1, "k", "")


def test_hash_agrees_with_equality():
    assert len({Record.put(1, "k", "v"), Record.put(1, "k", "v"), Record.commit(1)}) == 2


def test_decode_truncated_raises():
    encoded = Record.put(1, "key", "value").encode()
    with pytest.raises(ValueError):
        Record.decode(encoded[:-1])
    with pytest.raises(ValueError):
        Record.decode(encoded[:1])


def test_decode_unknown_operation_raises():
    encoded = bytearray(Record.create(1).encode())
    encoded[10] = 99
    with pytest.raises(ValueError):
        Record.decode(bytes(encoded))


def test_decode_length_mismatch_raises():
    encoded = bytearray(Record.commit(1).encode() + b"\x00")
    encoded[0] += 1
    with pytest.raises(ValueError):
        Record.decode(bytes(encoded))


def test_too_long_record_rejected():
    with pytest.raises(ValueError):
        Record.put(1, "k", "x" * 70000)


def test_payload_on_control_record_rejected():
    with pytest.raises(ValueError):
        Record(1, OperationType.CREATE, "key")
    with pytest.raises(ValueError):
        Record(1, OperationType.DELETE, "key", "value")


def test_negative_tranc_id_rejected():
    with pytest.raises(ValueError):
        Record.create(-1)