import json

import msgpack
import pytest

from savedata.addressing import DataType
from savedata.codec import (
    compress,
    decode_durable,
    decode_wire,
    decompress,
    encode_durable,
    encode_wire,
)
from savedata.errors import CorruptSaveError, EncodeError, InvalidRequest, WireDecodeError
from savedata.models import GameMode, SessionSaveData, SystemSaveData


def system_payload(**overrides):
    data = {
        "trainerId": 7,
        "secretId": 0,
        "gender": 1,
        "dexData": {"1": {"seenAttr": 3, "caughtAttr": 1}},
        "starterData": {"1": {"moveset": None, "eggMoves": 0}},
        "gameStats": {"battles": 12, "classicSessionsPlayed": 2},
        "unlocks": {"0": True},
        "achvUnlocks": {"CLASSIC_VICTORY": 1700000000000},
        "voucherUnlocks": {},
        "voucherCounts": {"0": 2},
        "eggs": [{"id": 5, "tier": 1}],
        "gameVersion": "1.0.4",
        "timestamp": 1715950000000,
        "futureField": {"nested": [1, 2.5, "x"]},
    }
    data.update(overrides)
    return data


def session_payload(**overrides):
    data = {
        "seed": "Zm9vYmFy",
        "playTime": 321,
        "gameMode": int(GameMode.DAILY),
        "party": [{"species": 25, "level": 30}],
        "enemyParty": [],
        "modifiers": [{"typeId": "EXP_SHARE", "stackCount": 1}],
        "enemyModifiers": [],
        "arena": {"biome": 4, "weather": None},
        "pokeballCounts": {"0": 5},
        "money": 1200,
        "score": 4500,
        "waveIndex": 5,
        "battleType": 0,
        "trainer": None,
        "gameVersion": "1.0.4",
        "timestamp": 1715950000000,
    }
    data.update(overrides)
    return data


def test_wire_roundtrip_system():
    body = json.dumps(system_payload())
    save = decode_wire(DataType.SYSTEM, body)
    assert isinstance(save, SystemSaveData)
    assert save.trainer_id == 7
    assert save.game_stats["battles"] == 12
    assert json.loads(encode_wire(save)) == system_payload()


def test_wire_keeps_unknown_fields():
    save = decode_wire(DataType.SESSION, json.dumps(session_payload(challenges=[{"id": 1}])))
    assert json.loads(encode_wire(save))["challenges"] == [{"id": 1}]


@pytest.mark.parametrize(
    "data_type,payload",
    [(DataType.SYSTEM, system_payload()), (DataType.SESSION, session_payload())],
)
def test_durable_roundtrip_is_exact(data_type, payload):
    save = decode_wire(data_type, json.dumps(payload))
    blob = encode_durable(save)
    assert decode_durable(data_type, blob) == save


def test_durable_format_is_zstd_framed_msgpack():
    save = decode_wire(DataType.SESSION, json.dumps(session_payload()))
    blob = encode_durable(save, level=19)
    assert blob[:4] == b"\x28\xb5\x2f\xfd"  # zstd frame magic
    unpacked = msgpack.unpackb(decompress(blob), raw=False)
    assert unpacked["seed"] == "Zm9vYmFy"
    assert unpacked["waveIndex"] == 5


def test_compression_is_lossless():
    payload = bytes(range(256)) * 40
    assert decompress(compress(payload)) == payload


def test_system_identity_fields_are_required():
    payload = system_payload()
    del payload["secretId"]
    with pytest.raises(WireDecodeError):
        decode_wire(DataType.SYSTEM, json.dumps(payload))


def test_system_identity_fields_must_be_integers():
    with pytest.raises(WireDecodeError):
        decode_wire(DataType.SYSTEM, json.dumps(system_payload(trainerId="7")))


@pytest.mark.parametrize("value", [-1, 2**32, 2**64])
def test_system_identity_fields_must_fit_unsigned_32_bits(value):
    with pytest.raises(WireDecodeError):
        decode_wire(DataType.SYSTEM, json.dumps(system_payload(trainerId=value)))
    with pytest.raises(WireDecodeError):
        decode_wire(DataType.SYSTEM, json.dumps(system_payload(secretId=value)))


def test_session_defaults_fill_missing_fields():
    save = decode_wire(DataType.SESSION, "{}")
    assert save.seed == ""
    assert save.wave_index == 0


@pytest.mark.parametrize("body", ["not json", "[1, 2]", '{"waveIndex": "many"}', b"\xff\xfe"])
def test_malformed_wire_body_is_a_client_error(body):
    with pytest.raises(WireDecodeError) as excinfo:
        decode_wire(DataType.SESSION, body)
    assert isinstance(excinfo.value, InvalidRequest)


def test_corrupt_durable_bytes_raise_corrupt_save():
    with pytest.raises(CorruptSaveError):
        decode_durable(DataType.SYSTEM, b"definitely not zstd")


def test_trailing_bytes_after_frame_are_corruption():
    blob = encode_durable(SessionSaveData(seed="x"))
    with pytest.raises(CorruptSaveError):
        decode_durable(DataType.SESSION, blob + b"GARBAGE")


def test_truncated_frame_is_corruption():
    blob = encode_durable(SessionSaveData(seed="x", party=[{"species": n} for n in range(50)]))
    with pytest.raises(CorruptSaveError):
        decode_durable(DataType.SESSION, blob[: len(blob) // 2])


def test_durable_payload_that_is_not_an_object():
    with pytest.raises(CorruptSaveError):
        decode_durable(DataType.SESSION, compress(msgpack.packb([1, 2, 3])))


def test_durable_payload_failing_validation():
    blob = compress(msgpack.packb({"trainerId": 1}))
    with pytest.raises(CorruptSaveError):
        decode_durable(DataType.SYSTEM, blob)


def test_unserializable_save_raises_encode_error():
    save = SessionSaveData(seed="s")
    save.trainer = object()
    with pytest.raises(EncodeError):
        encode_durable(save)
