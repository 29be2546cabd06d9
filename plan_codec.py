#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Binary encoding for signature tables and delta plans.

A payload is a fixed 8-byte header followed by the compressed JSON form of
the object's to_dict():

    offset  size  field
    0       4     magic (b"RDSG" signature table, b"RDPL" delta plan)
    4       1     format version
    5       1     compression id (CompressionType wire value)
    6       2     reserved (zero)

Example:
    >>> from plan_codec import encode_plan, decode_plan, CompressionType
    >>> payload = encode_plan(plan, CompressionType.ZSTD)
    >>> assert decode_plan(payload).entries == plan.entries
"""

from __future__ import annotations

import json
import struct
import zlib
from enum import Enum
from typing import Any, Dict, List, Optional, Union, cast

import lz4.frame  # type: ignore[import]
import zstandard  # type: ignore[import]

from rdiff_core import (
    Config,
    DeltaPlan,
    RdiffError,
    SignatureTable,
    ValidationError,
    logger,
)

# Normalize untyped third-party modules to `Any` for strict type-checkers.
_lz4_frame: Any = cast(Any, lz4.frame)
_zstandard: Any = cast(Any, zstandard)

__all__ = [
    'CodecError',
    'CompressionType',
    'CompressionRegistry',
    'encode_signatures',
    'decode_signatures',
    'encode_plan',
    'decode_plan',
    'FORMAT_VERSION',
]

SIGNATURE_MAGIC = b"RDSG"
PLAN_MAGIC = b"RDPL"
FORMAT_VERSION = 1

_HEADER = struct.Struct('<4sBBH')


class CodecError(RdiffError):
    """
    Raised when a payload cannot be decoded (bad magic, unknown version or
    compression, corrupt body).
    """
    def __init__(self, message: str) -> None:
        super().__init__(message, code=7)


# ============================================================================
# COMPRESSION
# ============================================================================

class CompressionType(Enum):
    """
    Supported payload compression algorithms.

        NONE -> 0
        ZLIB -> 1
        LZ4  -> 3 (LZ4 frame format)
        ZSTD -> 4
    """
    NONE = "none"
    ZLIB = "zlib"
    LZ4 = "lz4"
    ZSTD = "zstd"

    @property
    def wire_id(self) -> int:
        return _WIRE_IDS[self]

    @classmethod
    def from_wire_id(cls, wire_id: int) -> 'CompressionType':
        for comp_type, value in _WIRE_IDS.items():
            if value == wire_id:
                return comp_type
        raise CodecError(f"Unknown compression id: {wire_id}")


_WIRE_IDS: Dict[CompressionType, int] = {
    CompressionType.NONE: 0,
    CompressionType.ZLIB: 1,
    CompressionType.LZ4: 3,
    CompressionType.ZSTD: 4,
}


class CompressionRegistry:
    """Registry of available compression algorithms.

    Provides a unified interface over zlib, lz4 and zstandard.
    """
    # Pre-create zstd contexts per level
    _zstd_compressors: Dict[int, Any] = {}
    _zstd_decompressor: Optional[Any] = None

    @classmethod
    def compress(cls, data: bytes, comp_type: CompressionType,
                 level: Optional[int] = None) -> bytes:
        """Compress data using specified algorithm.

        Args:
            data: Data to compress
            comp_type: Compression algorithm
            level: Compression level (None = algorithm default)

        Returns:
            Compressed data bytes
        """
        if level is None:
            level = cls.get_compression_level(comp_type)
        if comp_type == CompressionType.NONE:
            return data
        elif comp_type == CompressionType.ZLIB:
            return zlib.compress(data, level)
        elif comp_type == CompressionType.LZ4:
            return cast(bytes, _lz4_frame.compress(data, compression_level=level))
        elif comp_type == CompressionType.ZSTD:
            return cast(bytes, cls._get_zstd_compressor(level).compress(data))
        else:
            raise ValidationError(f"Unsupported compression type: {comp_type}")

    @classmethod
    def decompress(cls, data: bytes, comp_type: CompressionType) -> bytes:
        """Decompress data using specified algorithm.

        Raises:
            CodecError: If the data is not valid for the algorithm
        """
        try:
            if comp_type == CompressionType.NONE:
                return data
            elif comp_type == CompressionType.ZLIB:
                return zlib.decompress(data)
            elif comp_type == CompressionType.LZ4:
                return cast(bytes, _lz4_frame.decompress(data))
            elif comp_type == CompressionType.ZSTD:
                return cast(bytes, cls._get_zstd_decompressor().decompress(data))
        except (zlib.error, RuntimeError, _zstandard.ZstdError) as e:
            raise CodecError(f"{comp_type.value} decompression failed: {e}") from e
        raise CodecError(f"Unsupported compression type: {comp_type}")

    @classmethod
    def _get_zstd_compressor(cls, level: int) -> Any:
        """Get or create a ZstdCompressor for the given level."""
        if level not in cls._zstd_compressors:
            cls._zstd_compressors[level] = _zstandard.ZstdCompressor(level=level)
        return cls._zstd_compressors[level]

    @classmethod
    def _get_zstd_decompressor(cls) -> Any:
        """Get or create a ZstdDecompressor."""
        if cls._zstd_decompressor is None:
            cls._zstd_decompressor = _zstandard.ZstdDecompressor()
        return cls._zstd_decompressor

    @classmethod
    def get_compression_level(cls, comp_type: CompressionType) -> int:
        """Get default compression level for algorithm."""
        if Config.COMPRESSION_LEVEL is not None:
            return Config.COMPRESSION_LEVEL
        levels = {
            CompressionType.NONE: 0,
            CompressionType.ZLIB: 6,
            CompressionType.LZ4: 1,   # lz4 uses 0-12, 1 is fast
            CompressionType.ZSTD: 3,  # zstd uses 1-22, 3 is balanced
        }
        return levels.get(comp_type, 6)

    @classmethod
    def get_supported_types(cls) -> List[CompressionType]:
        return list(CompressionType)


# ============================================================================
# PAYLOAD FRAMING
# ============================================================================

def _resolve_compression(compression: Union[CompressionType, str, None]) -> CompressionType:
    if compression is None:
        compression = Config.DEFAULT_COMPRESSION
    try:
        return CompressionType(compression)
    except ValueError:
        raise ValidationError(f"Unsupported compression type: {compression}") from None


def _encode(magic: bytes, body: Dict[str, Any],
            compression: Union[CompressionType, str, None]) -> bytes:
    comp_type = _resolve_compression(compression)
    raw = json.dumps(body, separators=(',', ':')).encode('utf-8')
    packed = CompressionRegistry.compress(raw, comp_type)
    logger.debug(
        f"Encoded {magic.decode('ascii')} payload: {len(raw)} -> {len(packed)} bytes "
        f"({comp_type.value})"
    )
    return _HEADER.pack(magic, FORMAT_VERSION, comp_type.wire_id, 0) + packed


def _decode(magic: bytes, payload: bytes) -> Dict[str, Any]:
    if len(payload) < _HEADER.size:
        raise CodecError(f"Payload too short ({len(payload)} bytes)")
    found_magic, version, wire_id, _reserved = _HEADER.unpack_from(payload)
    if found_magic != magic:
        raise CodecError(f"Bad magic {found_magic!r}, expected {magic!r}")
    if version != FORMAT_VERSION:
        raise CodecError(f"Unsupported format version {version}")
    comp_type = CompressionType.from_wire_id(wire_id)

    raw = CompressionRegistry.decompress(bytes(payload[_HEADER.size:]), comp_type)
    try:
        body = json.loads(raw.decode('utf-8'))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CodecError(f"Corrupt payload body: {e}") from e
    if not isinstance(body, dict):
        raise CodecError("Corrupt payload body: expected an object")
    return body


# ============================================================================
# PUBLIC API
# ============================================================================

def encode_signatures(table: SignatureTable,
                      compression: Union[CompressionType, str, None] = None) -> bytes:
    """
    Serialize a signature table.

    Args:
        table: Signature table to encode
        compression: Compression algorithm (default: Config.DEFAULT_COMPRESSION)
    """
    return _encode(SIGNATURE_MAGIC, table.to_dict(), compression)


def decode_signatures(payload: bytes) -> SignatureTable:
    """
    Deserialize a signature table.

    Raises:
        CodecError: If the payload is malformed
    """
    body = _decode(SIGNATURE_MAGIC, payload)
    try:
        return SignatureTable.from_dict(body)
    except ValidationError as e:
        raise CodecError(str(e)) from e


def encode_plan(plan: DeltaPlan,
                compression: Union[CompressionType, str, None] = None) -> bytes:
    """
    Serialize a delta plan, literals included.

    Args:
        plan: Delta plan to encode
        compression: Compression algorithm (default: Config.DEFAULT_COMPRESSION)
    """
    return _encode(PLAN_MAGIC, plan.to_dict(), compression)


def decode_plan(payload: bytes) -> DeltaPlan:
    """
    Deserialize a delta plan.

    Raises:
        CodecError: If the payload is malformed
    """
    body = _decode(PLAN_MAGIC, payload)
    try:
        return DeltaPlan.from_dict(body)
    except ValidationError as e:
        raise CodecError(str(e)) from e
