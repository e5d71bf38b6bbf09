from __future__ import annotations

import logging
from typing import Any, Dict, Type, Union

import msgpack
import zstandard as zstd
from pydantic import ValidationError

from .addressing import DataType, parse_data_type
from .errors import CorruptSaveError, EncodeError, WireDecodeError
from .models import SaveData, SessionSaveData, SystemSaveData

logger = logging.getLogger(__name__)

DEFAULT_COMPRESSION_LEVEL = 3

_MODELS: Dict[DataType, Type[Any]] = {
    DataType.SYSTEM: SystemSaveData,
    DataType.SESSION: SessionSaveData,
}


def model_for(data_type: Any) -> Type[Any]:
    return _MODELS[parse_data_type(data_type)]


def encode_wire(save: SaveData) -> str:
    """Encode a save to the JSON text exchanged with clients."""
    return save.model_dump_json(by_alias=True)


def decode_wire(data_type: Any, body: Union[str, bytes]) -> SaveData:
    """Decode a client-submitted JSON body. Malformed input is the client's fault."""
    model = model_for(data_type)
    try:
        return model.model_validate_json(body)
    except ValidationError as e:
        raise WireDecodeError(f"failed to decode request body: {e}") from e


def compress(payload: bytes, level: int = DEFAULT_COMPRESSION_LEVEL) -> bytes:
    """Compress into a single self-describing zstd frame (no dictionary)."""
    cctx = zstd.ZstdCompressor(level=level, write_checksum=True, write_content_size=True)
    return cctx.compress(payload)


def decompress(blob: bytes) -> bytes:
    """Decompress exactly one complete zstd frame."""
    dobj = zstd.ZstdDecompressor().decompressobj()
    payload = dobj.decompress(blob)
    if dobj.unused_data:
        raise CorruptSaveError(f"{len(dobj.unused_data)} trailing bytes after zstd frame")
    if not dobj.eof:
        raise CorruptSaveError("truncated zstd frame")
    return payload


def encode_durable(save: SaveData, level: int = DEFAULT_COMPRESSION_LEVEL) -> bytes:
    """Encode a save to its stored form: msgpack, then zstd.

    Failures here concern bytes the server produced itself and are fatal.
    """
    try:
        packed = msgpack.packb(save.model_dump(by_alias=True), use_bin_type=True)
        return compress(packed, level=level)
    except (TypeError, ValueError, OverflowError, zstd.ZstdError) as e:
        logger.error("Failed to encode %s: %s", type(save).__name__, e)
        raise EncodeError(f"failed to serialize save: {e}") from e


def decode_durable(data_type: Any, blob: bytes) -> SaveData:
    """Decode a stored entry. Any failure implies store corruption."""
    model = model_for(data_type)
    try:
        raw = msgpack.unpackb(decompress(blob), raw=False, strict_map_key=False)
    except zstd.ZstdError as e:
        raise CorruptSaveError(f"failed to decompress save: {e}") from e
    except (ValueError, TypeError) as e:
        raise CorruptSaveError(f"failed to deserialize save: {e}") from e
    if not isinstance(raw, dict):
        raise CorruptSaveError(f"stored save is not an object: {type(raw).__name__}")
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        raise CorruptSaveError(f"stored save failed validation: {e}") from e
