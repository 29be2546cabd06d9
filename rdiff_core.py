#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
rdiff-python: Block-Signature Delta Computation
===============================================

A pure Python implementation of the two-phase rsync-style delta algorithm:
build a signature table for a reference document, then scan a target
document with a rolling hash to find which reference blocks it reuses and
which bytes must be sent literally.

Quick Start:
-----------
    >>> from rdiff_core import HashParameters, build_signatures, compute_delta, apply_delta
    >>>
    >>> params = HashParameters.create(block_size=16)
    >>> signatures = build_signatures(reference, 16, params=params)
    >>> plan = compute_delta(target, 16, signatures, params=params)
    >>> assert apply_delta(reference, plan) == target
    >>>
    >>> for index, entry in plan.items():
    ...     print(index, entry.missing, entry.literal)

Algorithm:
---------
    1. Weak hash: Karp-Rabin polynomial rolling hash, O(1) window slide
    2. Strong hash: MurmurHash3 (x86, 32-bit) to reject weak collisions
    3. Lookup: weak value -> every signature sharing it, in block order
    4. Scan: greedy single pass, jump past each confirmed match

Hashing parameters (block size, per-byte weight table, B^n) live in an
immutable HashParameters value that both phases share. initialize() installs
a process-wide default for callers that prefer the classic global setup.

Copyright:
---------
    Python implementation: rdiff-python contributors (2025-2026)
    License: GPLv3+
"""

from __future__ import annotations

__version__ = "1.0.0"
__author__ = "rdiff-python contributors"
__license__ = "GPL-3.0-or-later"

# Public API exports
__all__ = [
    # Hashing
    'HashParameters',
    'WeakHash',
    'StrongHashType',
    'StrongHashRegistry',
    'murmur3_32',
    'initialize',
    'get_parameters',
    'reset_parameters',

    # Data structures
    'BlockSignature',
    'SignatureTable',
    'DeltaEntry',
    'DeltaPlan',
    'DiffResult',
    'SyncStats',

    # Engines
    'SignatureBuilder',
    'DeltaMatcher',

    # Operations
    'build_signatures',
    'compute_delta',
    'apply_delta',
    'calculate_diff',

    # Exceptions
    'RdiffError',
    'ValidationError',
    'ResourceLimitError',
    'ParameterMismatchError',
    'NotInitializedError',
    'DataIntegrityError',

    # Configuration
    'Config',

    # Validation functions
    'validate_block_size',
    'validate_data',
    'validate_seed',
    'validate_signatures',
    'validate_plan',
    'byte_view',

    # Statistics
    'reset_match_stats',
    'get_total_match_stats',
    'match_report',

    # Profiling
    'Profiler',

    # Constants
    'WEAK_HASH_BASE',
    'WEAK_HASH_MODULUS',
    'DEFAULT_WEIGHT_SEED',
    'STRONG_HASH_SEED',
    'MIN_BLOCK_SIZE',
    'MAX_BLOCK_SIZE',

    # Utility functions
    'format_size',
]

import logging
import random
import struct
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import (
    Any, Callable, ClassVar, Dict, Iterator, List, Mapping, NamedTuple,
    Optional, Set, Tuple, Union, cast
)

import xxhash

Buffer = Union[bytes, bytearray, memoryview]

# ============================================================================
# ALGORITHM CONSTANTS
# ============================================================================

# Karp-Rabin rolling hash: value = sum(B^(n-1-k) * weight[byte_k]) mod M
WEAK_HASH_BASE = 37                 # Small odd multiplier (B)
WEAK_HASH_MODULUS = (1 << 19) - 1   # Fixed modulus (M)
BYTE_VALUES = 1 << 8                # One weight per possible byte value

# Weight table seed used unless the caller supplies one. A fixed seed makes
# weak hashes reproducible across runs; pass weight_seed=None for a seed
# taken from the wall clock.
DEFAULT_WEIGHT_SEED = 0x9E3779B9

# MurmurHash3 seed shared by signature generation and delta matching
STRONG_HASH_SEED = 0x1234

# Block sizes
MIN_BLOCK_SIZE = 1
MAX_BLOCK_SIZE = 0x20000  # 131072 bytes
MAX_DOCUMENT_SIZE = 1024 * 1024 * 100  # 100MB default max in memory

_MASK32 = 0xFFFFFFFF


# ============================================================================
# GLOBAL CONFIGURATION - Behavior tuning
# ============================================================================

class Config:
    """
    Global configuration for rdiff-python behavior.

    Attributes:
        DEFAULT_BLOCK_SIZE (int): Block size used by initialize() when none is given
        STRONG_HASH_SEED (int): Seed for strong hashes in newly built signature tables
        COLLECT_STATS (bool): Collect matching statistics (hash hits, false alarms)
        COMPUTE_TARGET_CHECKSUM (bool): Store an xxHash64 of the target in each plan
        VERIFY_TARGET_CHECKSUM (bool): Check that checksum in apply_delta()
        ENABLE_PROFILING (bool): Time operations with Profiler
        VERBOSE_LOGGING (bool): Enable verbose logging output
        MAX_DOCUMENT_SIZE (int): Largest document accepted in memory
        DEFAULT_COMPRESSION (str): Compression used by plan_codec encoders
        COMPRESSION_LEVEL (Optional[int]): Level override for plan_codec (None = per-codec default)

    Example:
        >>> Config.COLLECT_STATS = True
        >>> Config.reset_defaults()  # Reset all to defaults
    """
    # Algorithm settings
    DEFAULT_BLOCK_SIZE: ClassVar[int] = 2048
    STRONG_HASH_SEED: ClassVar[int] = STRONG_HASH_SEED

    # Statistics collection (like rsync's match.c tracking)
    COLLECT_STATS: ClassVar[bool] = False

    # End-to-end verification
    COMPUTE_TARGET_CHECKSUM: ClassVar[bool] = True
    VERIFY_TARGET_CHECKSUM: ClassVar[bool] = True

    # Diagnostics
    ENABLE_PROFILING: ClassVar[bool] = False
    VERBOSE_LOGGING: ClassVar[bool] = False

    # Resource limits
    MAX_DOCUMENT_SIZE: ClassVar[int] = MAX_DOCUMENT_SIZE

    # Serialization (plan_codec)
    DEFAULT_COMPRESSION: ClassVar[str] = "zstd"
    COMPRESSION_LEVEL: ClassVar[Optional[int]] = None

    @classmethod
    def reset_defaults(cls) -> None:
        """Reset all configuration to default values."""
        defaults: Dict[str, object] = {
            "DEFAULT_BLOCK_SIZE": 2048,
            "STRONG_HASH_SEED": STRONG_HASH_SEED,
            "COLLECT_STATS": False,
            "COMPUTE_TARGET_CHECKSUM": True,
            "VERIFY_TARGET_CHECKSUM": True,
            "ENABLE_PROFILING": False,
            "VERBOSE_LOGGING": False,
            "MAX_DOCUMENT_SIZE": MAX_DOCUMENT_SIZE,
            "DEFAULT_COMPRESSION": "zstd",
            "COMPRESSION_LEVEL": None,
        }
        for name, value in defaults.items():
            setattr(cls, name, value)


# ============================================================================
# LOGGING CONFIGURATION
# ============================================================================

# Stay quiet by default (tests, library use); verbose mode raises to INFO.
_default_log_level = logging.INFO if Config.VERBOSE_LOGGING else logging.WARNING
logging.basicConfig(
    level=_default_log_level,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger('rdiff-python')
logger.setLevel(_default_log_level)


# ============================================================================
# CUSTOM EXCEPTIONS - Hierarchical exception system
# ============================================================================

class RdiffError(Exception):
    """
    Base exception for all rdiff-python errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code

    Example:
        >>> raise RdiffError("Operation failed", code=1)
    """
    def __init__(self, message: str, code: int = 1) -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        return self.message


class ValidationError(RdiffError):
    """
    Raised when input validation fails.

    This indicates a programming error or invalid input, such as a zero
    block size, a non-bytes document or an inconsistent signature table.
    """
    def __init__(self, message: str) -> None:
        super().__init__(message, code=2)


class ResourceLimitError(RdiffError):
    """
    Raised when a document exceeds Config.MAX_DOCUMENT_SIZE.
    """
    def __init__(self, message: str) -> None:
        super().__init__(message, code=3)


class ParameterMismatchError(RdiffError):
    """
    Raised when the two phases disagree on hashing parameters.

    A signature table built with one block size or weight table can never
    match windows hashed with another, so this is reported instead of
    producing a plan where every block is missing.
    """
    def __init__(self, message: str) -> None:
        super().__init__(message, code=4)


class NotInitializedError(RdiffError):
    """
    Raised when hashing is requested before initialize() has run and no
    explicit HashParameters were passed.
    """
    def __init__(self, message: str) -> None:
        super().__init__(message, code=5)


class DataIntegrityError(RdiffError):
    """
    Raised when a reconstructed document fails the plan's checksum.
    """
    def __init__(self, message: str) -> None:
        super().__init__(message, code=6)


# ============================================================================
# UTILITIES
# ============================================================================

def format_size(size: int) -> str:
    """
    Format a byte count in human-readable form.

    Example:
        >>> format_size(1536)
        '1.50 KB'
    """
    value = float(size)
    for unit in ('B', 'KB', 'MB', 'GB'):
        if value < 1024 or unit == 'GB':
            if unit == 'B':
                return f"{int(value)} B"
            return f"{value:.2f} {unit}"
        value /= 1024
    return f"{value:.2f} GB"


class Profiler:
    """
    Simple profiler for measuring performance.

    Only measures when Config.ENABLE_PROFILING is set; results go to the
    debug log.

    Example:
        >>> with Profiler("signatures") as p:
        ...     build_signatures(data, 1024, params=params)
        >>> print(p.elapsed)
    """
    def __init__(self, name: str = ""):
        self.name = name
        self.elapsed = 0.0
        self._start = 0.0

    def __enter__(self) -> 'Profiler':
        if Config.ENABLE_PROFILING:
            self._start = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        if Config.ENABLE_PROFILING:
            self.elapsed = time.perf_counter() - self._start
            logger.debug(f"[PROFILE] {self.name}: {self.elapsed * 1000:.2f}ms")


# ============================================================================
# INPUT VALIDATION
# ============================================================================

def validate_block_size(block_size: int) -> None:
    """
    Validate block size is a positive integer within limits.

    Args:
        block_size: The block size to validate

    Raises:
        ValidationError: If block_size is invalid

    Example:
        >>> validate_block_size(4096)  # OK
        >>> validate_block_size(0)  # Raises ValidationError
    """
    if isinstance(block_size, bool) or not isinstance(block_size, int):
        raise ValidationError(
            f"block_size must be an integer, got {type(block_size).__name__}"
        )
    if block_size < MIN_BLOCK_SIZE:
        raise ValidationError(f"block_size must be positive, got {block_size}")
    if block_size > MAX_BLOCK_SIZE:
        raise ValidationError(
            f"block_size too large ({block_size}), maximum is {MAX_BLOCK_SIZE} bytes"
        )


def validate_data(data: Buffer, max_size: Optional[int] = None) -> None:
    """
    Validate data is a byte sequence and within size limits.

    Args:
        data: The document to validate
        max_size: Maximum allowed size (default: Config.MAX_DOCUMENT_SIZE)

    Raises:
        ValidationError: If data is not bytes-like
        ResourceLimitError: If data exceeds the size limit

    Example:
        >>> validate_data(b"hello")  # OK
        >>> validate_data("string")  # Raises ValidationError
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise ValidationError(
            f"data must be bytes, bytearray or memoryview, got {type(data).__name__}"
        )
    if isinstance(data, memoryview) and not data.c_contiguous:
        raise ValidationError("memoryview data must be C-contiguous")
    size = memoryview(data).nbytes
    limit = Config.MAX_DOCUMENT_SIZE if max_size is None else max_size
    if size > limit:
        raise ResourceLimitError(
            f"data too large ({format_size(size)}), maximum {format_size(limit)}"
        )


def byte_view(data: Buffer) -> memoryview:
    """
    Flat unsigned-byte view of a validated document.

    memoryviews with wider item formats (e.g. from array('H')) are read
    as their raw bytes, so offsets and lengths are always byte counts.
    """
    view = memoryview(data)
    if view.format != 'B' or view.ndim != 1:
        view = view.cast('B')
    return view


def validate_seed(seed: int, name: str = "seed") -> None:
    """
    Validate a 32-bit unsigned hash seed.

    Raises:
        ValidationError: If seed is negative or out of range
    """
    if isinstance(seed, bool) or not isinstance(seed, int):
        raise ValidationError(f"{name} must be an integer, got {type(seed).__name__}")
    if seed < 0:
        raise ValidationError(f"{name} cannot be negative, got {seed}")
    if seed > _MASK32:
        raise ValidationError(f"{name} too large ({seed}), maximum is {_MASK32}")


def validate_signatures(signatures: 'SignatureTable') -> None:
    """
    Validate a SignatureTable for internal consistency.

    Checks that indices run 0..count-1 and that block ranges exactly tile
    [0, document_size).

    Raises:
        ValidationError: If the table is inconsistent
    """
    validate_block_size(signatures.block_size)
    if signatures.document_size < 0:
        raise ValidationError(
            f"document_size cannot be negative ({signatures.document_size})"
        )

    block_size = signatures.block_size
    expected_count = -(-signatures.document_size // block_size)
    if len(signatures.signatures) != expected_count:
        raise ValidationError(
            f"Signature table inconsistent: expected {expected_count} blocks for "
            f"{signatures.document_size} bytes, got {len(signatures.signatures)}"
        )

    for i, sig in enumerate(signatures.signatures):
        if sig.index != i:
            raise ValidationError(f"Block {i} has index {sig.index}")
        expected_offset = i * block_size
        if sig.offset != expected_offset:
            raise ValidationError(
                f"Block {i} offset mismatch: expected {expected_offset}, got {sig.offset}"
            )
        expected_length = min(block_size, signatures.document_size - expected_offset)
        if sig.length != expected_length:
            raise ValidationError(
                f"Block {i} length mismatch: expected {expected_length}, got {sig.length}"
            )


def validate_plan(plan: 'DeltaPlan') -> None:
    """
    Validate a DeltaPlan for internal consistency.

    Checks one entry per reference block keyed by its index, entry ranges
    equal to the block ranges, matched windows inside the target, and a
    trailing literal that ends the target.

    Raises:
        ValidationError: If the plan is inconsistent
    """
    validate_block_size(plan.block_size)
    if plan.reference_size < 0 or plan.target_size < 0:
        raise ValidationError(
            f"Plan sizes cannot be negative (reference={plan.reference_size}, "
            f"target={plan.target_size})"
        )

    block_size = plan.block_size
    expected_count = -(-plan.reference_size // block_size)
    if len(plan.entries) != expected_count:
        raise ValidationError(
            f"Delta plan inconsistent: expected {expected_count} entries for "
            f"{plan.reference_size} bytes, got {len(plan.entries)}"
        )

    for i in range(expected_count):
        entry = plan.entries.get(i)
        if entry is None:
            raise ValidationError(f"Delta plan has no entry for block {i}")
        if entry.index != i:
            raise ValidationError(f"Entry for block {i} has index {entry.index}")
        start = i * block_size
        end = min(start + block_size, plan.reference_size)
        if entry.start != start or entry.end != end:
            raise ValidationError(
                f"Entry {i} range [{entry.start}, {entry.end}) does not match "
                f"block range [{start}, {end})"
            )
        if entry.missing:
            continue
        if entry.literal_offset < 0 or entry.literal_end + entry.length > plan.target_size:
            raise ValidationError(
                f"Entry {i} window at {entry.literal_end} runs past the target "
                f"({plan.target_size} bytes)"
            )

    if plan.trailing_offset + len(plan.trailing_literal) != plan.target_size:
        raise ValidationError(
            f"Trailing literal [{plan.trailing_offset}, "
            f"{plan.trailing_offset + len(plan.trailing_literal)}) does not end "
            f"the target ({plan.target_size} bytes)"
        )


# ============================================================================
# HASH PARAMETERS - Shared, immutable hashing state for both phases
# ============================================================================

@dataclass(frozen=True)
class HashParameters:
    """
    Immutable hashing parameters shared by signature building and matching.

    Both phases must hash with the same block size and the same per-byte
    weight table; carrying them in one value makes that explicit.

    Attributes:
        block_size: Window width in bytes
        weight_seed: Seed the weight table was drawn from
        weights: 256 weights, one per byte value, each < WEAK_HASH_MODULUS
        b_to_n: WEAK_HASH_BASE ** block_size mod WEAK_HASH_MODULUS, used to
            cancel the outgoing byte when sliding

    Example:
        >>> params = HashParameters.create(block_size=4096)
        >>> params.weights[0x41]
        ...
    """
    block_size: int
    weight_seed: int
    weights: Tuple[int, ...] = field(repr=False)
    b_to_n: int = field(repr=False)

    @classmethod
    def create(cls, block_size: int,
               weight_seed: Optional[int] = DEFAULT_WEIGHT_SEED) -> 'HashParameters':
        """
        Derive parameters for a block size.

        Args:
            block_size: Window width in bytes
            weight_seed: Seed for the weight table; None seeds from the clock

        Raises:
            ValidationError: If block_size or weight_seed is invalid
        """
        validate_block_size(block_size)
        if weight_seed is None:
            weight_seed = int(time.time()) & _MASK32
            logger.debug(f"Weight table seeded from clock: {weight_seed}")
        validate_seed(weight_seed, "weight_seed")

        b_to_n = pow(WEAK_HASH_BASE, block_size, WEAK_HASH_MODULUS)
        rng = random.Random(weight_seed)
        weights = tuple(rng.randrange(WEAK_HASH_MODULUS) for _ in range(BYTE_VALUES))

        logger.debug(
            f"HashParameters created: block_size={block_size}, "
            f"weight_seed=0x{weight_seed:08x}, b_to_n={b_to_n}"
        )
        return cls(block_size=block_size, weight_seed=weight_seed,
                   weights=weights, b_to_n=b_to_n)

    def check_compatible(self, block_size: int, weight_seed: Optional[int] = None) -> None:
        """
        Ensure these parameters can hash data produced with block_size/weight_seed.

        Raises:
            ParameterMismatchError: On block size or weight seed disagreement
        """
        if block_size != self.block_size:
            raise ParameterMismatchError(
                f"block_size {block_size} does not match hash parameters "
                f"(block_size={self.block_size})"
            )
        if weight_seed is not None and weight_seed != self.weight_seed:
            raise ParameterMismatchError(
                f"weight_seed 0x{weight_seed:08x} does not match hash parameters "
                f"(weight_seed=0x{self.weight_seed:08x})"
            )


# Process-wide default installed by initialize()
_default_parameters: Optional[HashParameters] = None


def initialize(block_size: Optional[int] = None,
               weight_seed: Optional[int] = DEFAULT_WEIGHT_SEED) -> HashParameters:
    """
    Install process-wide default hash parameters.

    Must run before build_signatures()/compute_delta() are called without an
    explicit params argument. Calling it again replaces the defaults; every
    later operation then uses the new block size. Not safe to call while
    another thread is hashing with the defaults.

    Args:
        block_size: Block size for both phases (default: Config.DEFAULT_BLOCK_SIZE)
        weight_seed: Weight table seed (None = wall clock)

    Returns:
        The installed HashParameters
    """
    global _default_parameters
    if block_size is None:
        block_size = Config.DEFAULT_BLOCK_SIZE
    params = HashParameters.create(block_size, weight_seed=weight_seed)
    if _default_parameters is not None and _default_parameters != params:
        logger.info(
            f"Replacing default hash parameters (block_size "
            f"{_default_parameters.block_size} -> {block_size})"
        )
    _default_parameters = params
    return params


def get_parameters(block_size: Optional[int] = None) -> HashParameters:
    """
    Return the default parameters installed by initialize().

    Args:
        block_size: If given, must equal the initialized block size

    Raises:
        NotInitializedError: If initialize() has not run
        ParameterMismatchError: If block_size disagrees with the defaults
    """
    if _default_parameters is None:
        raise NotInitializedError(
            "hash parameters not initialized; call initialize(block_size) "
            "or pass params explicitly"
        )
    if block_size is not None:
        _default_parameters.check_compatible(block_size)
    return _default_parameters


def reset_parameters() -> None:
    """Forget the process-wide default parameters."""
    global _default_parameters
    _default_parameters = None


def _resolve_parameters(block_size: int, params: Optional[HashParameters]) -> HashParameters:
    validate_block_size(block_size)
    if params is None:
        return get_parameters(block_size)
    params.check_compatible(block_size)
    return params


# ============================================================================
# WEAK HASH - Karp-Rabin rolling hash
# ============================================================================

class WeakHash:
    """
    Rolling polynomial hash over a fixed-width byte window.

    The hash of a window w[0..n-1] is:

        sum(B^(n-1-k) * weight[w[k]]) mod M

    with B = WEAK_HASH_BASE, M = WEAK_HASH_MODULUS and a 256-entry weight
    table from HashParameters. Sliding the window one byte is O(1):

        value = (B * value + weight[in] - B^n * weight[out]) mod M

    slide() is only valid for windows of exactly params.block_size bytes, one
    byte per call, in document order; resynchronize with from_scratch()
    whenever the window jumps.

    Example:
        >>> h = WeakHash(params)
        >>> h.from_scratch(data[0:params.block_size])
        >>> h.slide(data[0], data[params.block_size])
        >>> assert h.value == WeakHash(params).from_scratch(data[1:params.block_size + 1])
    """
    __slots__ = ('params', 'value')

    def __init__(self, params: HashParameters) -> None:
        self.params = params
        self.value = 0

    def from_scratch(self, window: Buffer) -> int:
        """
        Recompute the hash of a whole window in O(len(window)).

        Horner evaluation of the closed-form weighted sum.
        """
        weights = self.params.weights
        value = 0
        for byte in window:
            value = (value * WEAK_HASH_BASE + weights[byte]) % WEAK_HASH_MODULUS
        self.value = value
        return value

    def slide(self, outgoing: int, incoming: int) -> int:
        """Drop outgoing from the front of the window and append incoming."""
        weights = self.params.weights
        self.value = (
            WEAK_HASH_BASE * self.value
            + weights[incoming]
            - self.params.b_to_n * weights[outgoing]
        ) % WEAK_HASH_MODULUS
        return self.value

    def digest(self) -> int:
        return self.value


# ============================================================================
# STRONG HASH - Collision filter for weak hash hits
# ============================================================================

_MURMUR_C1 = 0xCC9E2D51
_MURMUR_C2 = 0x1B873593


def murmur3_32(seed: int, data: Buffer) -> int:
    """
    MurmurHash3 x86 32-bit digest.

    Processes 4-byte little-endian groups with multiply/rotate/xor mixing,
    folds in a 0-3 byte tail zero-padded in its high bytes, then XORs the
    length and applies the fmix32 avalanche.

    Args:
        seed: 32-bit seed
        data: Bytes to hash

    Returns:
        Unsigned 32-bit digest

    Example:
        >>> hex(murmur3_32(0, b""))
        '0x0'
        >>> hex(murmur3_32(1, b""))
        '0x514e28b7'
    """
    length = len(data)
    h1 = seed & _MASK32
    body = length & ~3

    for (k1,) in struct.iter_unpack('<I', data[:body]):
        k1 = (k1 * _MURMUR_C1) & _MASK32
        k1 = ((k1 << 15) | (k1 >> 17)) & _MASK32
        k1 = (k1 * _MURMUR_C2) & _MASK32

        h1 ^= k1
        h1 = ((h1 << 13) | (h1 >> 19)) & _MASK32
        h1 = (h1 * 5 + 0xE6546B64) & _MASK32

    if length & 3:
        k1 = int.from_bytes(data[body:], 'little')
        k1 = (k1 * _MURMUR_C1) & _MASK32
        k1 = ((k1 << 15) | (k1 >> 17)) & _MASK32
        k1 = (k1 * _MURMUR_C2) & _MASK32
        h1 ^= k1

    # finalization
    h1 ^= length & _MASK32
    h1 ^= h1 >> 16
    h1 = (h1 * 0x85EBCA6B) & _MASK32
    h1 ^= h1 >> 13
    h1 = (h1 * 0xC2B2AE35) & _MASK32
    h1 ^= h1 >> 16
    return h1


def _xxh32(seed: int, data: Buffer) -> int:
    return cast(int, xxhash.xxh32_intdigest(bytes(data), seed=seed))


class StrongHashType(Enum):
    """
    Supported strong hash algorithms (32-bit, seeded).

        MURMUR3 -> MurmurHash3 x86_32 (default)
        XXH32   -> xxHash32 via the xxhash library
    """
    MURMUR3 = "murmur3"
    XXH32 = "xxh32"


StrongHashFunction = Callable[[int, Buffer], int]


class StrongHashRegistry:
    """
    Registry of available strong hash algorithms.

    Example:
        >>> digest = StrongHashRegistry.get_function(StrongHashType.MURMUR3)
        >>> digest(STRONG_HASH_SEED, b"Hello, World!")
    """
    _functions: ClassVar[Dict[StrongHashType, StrongHashFunction]] = {
        StrongHashType.MURMUR3: murmur3_32,
        StrongHashType.XXH32: _xxh32,
    }

    @classmethod
    def get_function(cls, hash_type: Union[StrongHashType, str]) -> StrongHashFunction:
        """
        Look up the digest function for a hash type or its name.

        Raises:
            ValidationError: If the algorithm is unknown
        """
        try:
            hash_type = StrongHashType(hash_type)
        except ValueError:
            raise ValidationError(f"Unsupported strong hash: {hash_type}") from None
        return cls._functions[hash_type]

    @classmethod
    def digest(cls, hash_type: Union[StrongHashType, str], seed: int, data: Buffer) -> int:
        return cls.get_function(hash_type)(seed, data)


# ============================================================================
# STATISTICS - Matching counters in the spirit of rsync's match.c
# ============================================================================

@dataclass
class SyncStats:
    """
    Statistics from one delta computation.

    Attributes:
        hash_hits: Windows whose weak hash had at least one candidate
        false_alarms: Candidates rejected by the strong hash
        matches: Confirmed block matches
        literal_data: Target bytes that must be sent literally
        matched_data: Target bytes served from reference blocks
        windows_scanned: Window positions examined
        total_time_ms: Scan time in milliseconds
    """
    hash_hits: int = 0
    false_alarms: int = 0
    matches: int = 0
    literal_data: int = 0
    matched_data: int = 0
    windows_scanned: int = 0
    total_time_ms: float = 0.0

    @property
    def efficiency(self) -> float:
        """Calculate sync efficiency (matched / total)."""
        total = self.literal_data + self.matched_data
        return self.matched_data / total if total > 0 else 0.0

    @property
    def false_positive_rate(self) -> float:
        """Calculate false positive rate of the weak hash."""
        if self.hash_hits == 0:
            return 0.0
        return self.false_alarms / self.hash_hits

    def to_dict(self) -> Dict[str, Any]:
        return {
            'hash_hits': self.hash_hits,
            'false_alarms': self.false_alarms,
            'matches': self.matches,
            'literal_data': self.literal_data,
            'matched_data': self.matched_data,
            'windows_scanned': self.windows_scanned,
            'total_time_ms': self.total_time_ms,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SyncStats':
        return cls(**{k: data[k] for k in cls().to_dict() if k in data})

    def __repr__(self) -> str:
        return (
            f"SyncStats(matches={self.matches}, false_alarms={self.false_alarms}, "
            f"hash_hits={self.hash_hits}, efficiency={self.efficiency:.1%})"
        )


_total_hash_hits: int = 0
_total_false_alarms: int = 0
_total_matches: int = 0
_total_literal_data: int = 0


def reset_match_stats() -> None:
    """Reset the accumulated totals."""
    global _total_hash_hits, _total_false_alarms, _total_matches, _total_literal_data
    _total_hash_hits = 0
    _total_false_alarms = 0
    _total_matches = 0
    _total_literal_data = 0


def _accumulate_match_stats(stats: SyncStats) -> None:
    global _total_hash_hits, _total_false_alarms, _total_matches, _total_literal_data
    _total_hash_hits += stats.hash_hits
    _total_false_alarms += stats.false_alarms
    _total_matches += stats.matches
    _total_literal_data += stats.literal_data


def get_total_match_stats() -> SyncStats:
    """
    Get statistics accumulated across every delta computed with stats on.
    """
    return SyncStats(
        hash_hits=_total_hash_hits,
        false_alarms=_total_false_alarms,
        matches=_total_matches,
        literal_data=_total_literal_data,
    )


def match_report() -> None:
    """Log accumulated match statistics at INFO level (verbose mode only)."""
    if Config.VERBOSE_LOGGING:
        logger.info(
            f"total: matches={_total_matches}  hash_hits={_total_hash_hits}  "
            f"false_alarms={_total_false_alarms} data={_total_literal_data}"
        )


# ============================================================================
# DATA STRUCTURES - Signature table and delta plan
# ============================================================================

@dataclass(frozen=True)
class BlockSignature:
    """
    Signature of one reference block.

    The block's bytes are not copied: the signature records the range
    [offset, offset + length) of the reference document and view() returns
    a zero-copy slice of it.

    Attributes:
        index: 0-based block position in the reference document
        weak: Weak (rolling) hash of the block
        strong: 32-bit strong hash of the block
        offset: Byte offset of the block (index * block_size)
        length: Block length (block_size, except possibly the last block)
    """
    index: int
    weak: int
    strong: int
    offset: int
    length: int

    @property
    def end(self) -> int:
        return self.offset + self.length

    def view(self, reference: Buffer) -> memoryview:
        """Zero-copy view of this block's bytes in the reference document."""
        return byte_view(reference)[self.offset:self.end]

    def __repr__(self) -> str:
        return (
            f"BlockSignature(index={self.index}, weak=0x{self.weak:05x}, "
            f"strong=0x{self.strong:08x}, offset={self.offset}, len={self.length})"
        )


@dataclass(frozen=True)
class SignatureTable:
    """
    Complete signature of a reference document.

    Attributes:
        block_size: Block size the document was cut with
        document_size: Length of the reference document
        signatures: One BlockSignature per block, ordered by index
        weight_seed: Seed of the weak hash weight table used
        strong_hash: Name of the strong hash algorithm used
        strong_seed: Seed used for strong hashes
        by_weak: Weak value -> signatures sharing it, in table order

    Example:
        >>> table = build_signatures(data, 1024, params=params)
        >>> print(f"{len(table)} blocks")
        >>> for sig in table.candidates(weak_value):
        ...     print(sig.index)
    """
    block_size: int
    document_size: int
    signatures: Tuple[BlockSignature, ...]
    weight_seed: int
    strong_hash: str = StrongHashType.MURMUR3.value
    strong_seed: int = STRONG_HASH_SEED
    by_weak: Dict[int, Tuple[BlockSignature, ...]] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        buckets: Dict[int, List[BlockSignature]] = {}
        for sig in self.signatures:
            buckets.setdefault(sig.weak, []).append(sig)
        object.__setattr__(
            self, 'by_weak', {weak: tuple(sigs) for weak, sigs in buckets.items()}
        )

    def __len__(self) -> int:
        return len(self.signatures)

    def __iter__(self) -> Iterator[BlockSignature]:
        return iter(self.signatures)

    def __getitem__(self, index: int) -> BlockSignature:
        return self.signatures[index]

    def candidates(self, weak: int) -> Tuple[BlockSignature, ...]:
        """All signatures whose weak hash equals weak, in index order."""
        return self.by_weak.get(weak, ())

    def __repr__(self) -> str:
        return (
            f"SignatureTable(document_size={format_size(self.document_size)}, "
            f"blocks={len(self.signatures)}, block_size={self.block_size}, "
            f"strong={self.strong_hash})"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert signature table to dictionary for serialization."""
        return {
            'block_size': self.block_size,
            'document_size': self.document_size,
            'weight_seed': self.weight_seed,
            'strong_hash': self.strong_hash,
            'strong_seed': self.strong_seed,
            'signatures': [
                [sig.index, sig.weak, sig.strong, sig.offset, sig.length]
                for sig in self.signatures
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SignatureTable':
        """
        Create signature table from dictionary.

        Raises:
            ValidationError: If required keys are missing or the table is inconsistent
        """
        try:
            signatures = tuple(
                BlockSignature(
                    index=int(index), weak=int(weak), strong=int(strong),
                    offset=int(offset), length=int(length),
                )
                for index, weak, strong, offset, length in data['signatures']
            )
            table = cls(
                block_size=int(data['block_size']),
                document_size=int(data['document_size']),
                signatures=signatures,
                weight_seed=int(data['weight_seed']),
                strong_hash=str(data.get('strong_hash', StrongHashType.MURMUR3.value)),
                strong_seed=int(data.get('strong_seed', STRONG_HASH_SEED)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Malformed signature table: {e}") from e
        validate_signatures(table)
        return table


@dataclass(frozen=True)
class DeltaEntry:
    """
    Delta record for one reference block.

    Attributes:
        index: Reference block index
        start: Reference byte offset of the block
        end: Reference byte offset just past the block
        missing: True when no target window matched this block
        literal_offset: Target offset where the literal run begins
        literal: Target bytes between the previous match and this one
            (empty when missing, or when matches are adjacent)

    Example:
        >>> entry = plan[1]
        >>> if not entry.missing:
        ...     print(f"send {entry.literal!r}, then copy block {entry.index}")
    """
    index: int
    start: int
    end: int
    missing: bool = True
    literal_offset: int = 0
    literal: bytes = b""

    @property
    def length(self) -> int:
        return self.end - self.start

    @property
    def literal_end(self) -> int:
        """Target offset where this block's matched window starts."""
        return self.literal_offset + len(self.literal)

    def __repr__(self) -> str:
        if self.missing:
            return f"DeltaEntry(index={self.index}, missing)"
        preview = self.literal[:20]
        suffix = '...' if len(self.literal) > 20 else ''
        return (
            f"DeltaEntry(index={self.index}, at={self.literal_end}, "
            f"literal={preview!r}{suffix})"
        )


@dataclass(frozen=True)
class DeltaPlan:
    """
    Per-reference-block reconstruction plan for a target document.

    Behaves as a read-only mapping from reference block index to DeltaEntry
    (one entry per block). Target bytes after the last match, which no entry
    covers, are reported in trailing_literal. The plan is frozen and its
    entries are exposed through a read-only mapping; use dataclasses.replace()
    to derive a modified copy.

    Attributes:
        block_size: Block size used for matching
        reference_size: Length of the reference document
        target_size: Length of the target document
        entries: Block index -> DeltaEntry
        trailing_offset: Target offset of the unmatched tail
        trailing_literal: Unmatched tail bytes (empty if the target ends on a match)
        target_checksum: xxHash64 of the target, or None
        stats: SyncStats when statistics were collected

    Example:
        >>> plan = compute_delta(target, 16, table, params=params)
        >>> print(plan.missing_indices, plan.literal_bytes)
        >>> for kind, value in plan.segments():
        ...     print(kind, value)
    """
    block_size: int
    reference_size: int
    target_size: int
    entries: Mapping[int, DeltaEntry]
    trailing_offset: int = 0
    trailing_literal: bytes = b""
    target_checksum: Optional[int] = None
    stats: Optional[SyncStats] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, 'entries', MappingProxyType(dict(self.entries)))

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, index: int) -> DeltaEntry:
        return self.entries[index]

    def __iter__(self) -> Iterator[int]:
        return iter(self.entries)

    def __contains__(self, index: object) -> bool:
        return index in self.entries

    def items(self) -> Iterator[Tuple[int, DeltaEntry]]:
        return iter(self.entries.items())

    def values(self) -> Iterator[DeltaEntry]:
        return iter(self.entries.values())

    @property
    def matched_indices(self) -> List[int]:
        return [i for i, e in self.entries.items() if not e.missing]

    @property
    def missing_indices(self) -> List[int]:
        return [i for i, e in self.entries.items() if e.missing]

    @property
    def is_complete(self) -> bool:
        """True when every target byte is served by a match (no literals at all)."""
        return self.literal_bytes == 0

    @property
    def matched_bytes(self) -> int:
        return sum(e.length for e in self.entries.values() if not e.missing)

    @property
    def literal_bytes(self) -> int:
        return (
            sum(len(e.literal) for e in self.entries.values() if not e.missing)
            + len(self.trailing_literal)
        )

    @property
    def compression_ratio(self) -> float:
        """Share of target bytes served from the reference."""
        return self.matched_bytes / self.target_size if self.target_size else 0.0

    def segments(self) -> Iterator[Tuple[str, Union[bytes, DeltaEntry]]]:
        """
        Yield the plan in target order.

        Yields ('literal', bytes) for each non-empty literal run and
        ('match', DeltaEntry) for each matched block, ending with the
        trailing literal if there is one.
        """
        matched = sorted(
            (e for e in self.entries.values() if not e.missing),
            key=lambda e: e.literal_offset,
        )
        for entry in matched:
            if entry.literal:
                yield 'literal', entry.literal
            yield 'match', entry
        if self.trailing_literal:
            yield 'literal', self.trailing_literal

    def __repr__(self) -> str:
        return (
            f"DeltaPlan(reference={format_size(self.reference_size)}, "
            f"target={format_size(self.target_size)}, blocks={len(self.entries)}, "
            f"matched={len(self.matched_indices)}, literal={self.literal_bytes}B, "
            f"ratio={self.compression_ratio:.1%})"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert plan to dictionary for serialization."""
        return {
            'block_size': self.block_size,
            'reference_size': self.reference_size,
            'target_size': self.target_size,
            'entries': [
                {
                    'index': e.index,
                    'start': e.start,
                    'end': e.end,
                    'missing': e.missing,
                    'literal_offset': e.literal_offset,
                    'literal': e.literal.hex(),
                }
                for e in self.entries.values()
            ],
            'trailing_offset': self.trailing_offset,
            'trailing_literal': self.trailing_literal.hex(),
            'target_checksum': self.target_checksum,
            'stats': self.stats.to_dict() if self.stats is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DeltaPlan':
        """
        Create plan from dictionary.

        Raises:
            ValidationError: If required keys are missing or the plan is inconsistent
        """
        try:
            entries: Dict[int, DeltaEntry] = {}
            for item in data['entries']:
                entry = DeltaEntry(
                    index=int(item['index']),
                    start=int(item['start']),
                    end=int(item['end']),
                    missing=bool(item['missing']),
                    literal_offset=int(item.get('literal_offset', 0)),
                    literal=bytes.fromhex(item.get('literal', '')),
                )
                entries[entry.index] = entry
            checksum = data.get('target_checksum')
            stats = data.get('stats')
            plan = cls(
                block_size=int(data['block_size']),
                reference_size=int(data['reference_size']),
                target_size=int(data['target_size']),
                entries=entries,
                trailing_offset=int(data.get('trailing_offset', 0)),
                trailing_literal=bytes.fromhex(data.get('trailing_literal', '')),
                target_checksum=int(checksum) if checksum is not None else None,
                stats=SyncStats.from_dict(stats) if stats else None,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Malformed delta plan: {e}") from e
        validate_plan(plan)
        return plan


class DiffResult(NamedTuple):
    """Signature table and delta plan produced by calculate_diff()."""
    signatures: SignatureTable
    delta: DeltaPlan


# ============================================================================
# SIGNATURE BUILDER
# ============================================================================

class SignatureBuilder:
    """
    Cuts a reference document into consecutive blocks and signs each one.

    Blocks start at offset 0 and are params.block_size long, except the last
    which takes the 1..block_size remaining bytes. An empty document gives an
    empty table.

    Attributes:
        params: Hash parameters (block size and weight table)
        strong_hash: Strong hash algorithm
        strong_seed: Strong hash seed

    Example:
        >>> builder = SignatureBuilder(params)
        >>> table = builder.build(reference)
    """

    def __init__(
        self,
        params: HashParameters,
        strong_hash: Union[StrongHashType, str] = StrongHashType.MURMUR3,
        strong_seed: Optional[int] = None
    ) -> None:
        self.params = params
        self._strong = StrongHashRegistry.get_function(strong_hash)
        self.strong_hash = StrongHashType(strong_hash)
        self.strong_seed = Config.STRONG_HASH_SEED if strong_seed is None else strong_seed
        validate_seed(self.strong_seed, "strong_seed")

    def iter_signatures(self, reference: Buffer) -> Iterator[BlockSignature]:
        """Yield one BlockSignature per block, in index order."""
        mv = byte_view(reference)
        block_size = self.params.block_size
        weak = WeakHash(self.params)
        strong = self._strong
        seed = self.strong_seed

        for index, offset in enumerate(range(0, len(mv), block_size)):
            block = mv[offset:offset + block_size]
            yield BlockSignature(
                index=index,
                weak=weak.from_scratch(block),
                strong=strong(seed, block),
                offset=offset,
                length=len(block),
            )

    def build(self, reference: Buffer) -> SignatureTable:
        """
        Build the signature table of a reference document.

        Raises:
            ValidationError: If reference is not bytes-like
            ResourceLimitError: If reference exceeds Config.MAX_DOCUMENT_SIZE
        """
        validate_data(reference)
        mv = byte_view(reference)

        with Profiler("build_signatures"):
            signatures = tuple(self.iter_signatures(mv))

        logger.debug(
            f"Built {len(signatures)} signatures for {format_size(len(mv))} "
            f"(block_size={self.params.block_size}, strong={self.strong_hash.value})"
        )
        return SignatureTable(
            block_size=self.params.block_size,
            document_size=len(mv),
            signatures=signatures,
            weight_seed=self.params.weight_seed,
            strong_hash=self.strong_hash.value,
            strong_seed=self.strong_seed,
        )


# ============================================================================
# DELTA MATCHER
# ============================================================================

class DeltaMatcher:
    """
    Single forward scan of a target document against a signature table.

    The scan keeps a window of block_size bytes:

        1. Look the window's weak hash up in the table. On a hit, compute the
           window's strong hash once and take the first candidate (in block
           order) with equal strong hash and length that has not been
           matched yet.
        2. On a match, record the target bytes since the previous match as
           that block's literal, jump past the window and rehash the new
           window from scratch.
        3. Otherwise, if the window already reaches the end of the target,
           stop; else slide it one byte with the rolling update.

    Target bytes after the last match are reported as the plan's trailing
    literal.

    Attributes:
        params: Hash parameters (must match those used to build the table)
        collect_stats: Collect SyncStats into the plan

    Example:
        >>> matcher = DeltaMatcher(params)
        >>> plan = matcher.compute(target, table)
    """

    def __init__(self, params: HashParameters, collect_stats: Optional[bool] = None) -> None:
        self.params = params
        self.collect_stats = Config.COLLECT_STATS if collect_stats is None else collect_stats

    def _check_table(self, signatures: SignatureTable) -> None:
        if signatures.block_size != self.params.block_size:
            raise ParameterMismatchError(
                f"signature table block_size {signatures.block_size} does not match "
                f"matcher block_size {self.params.block_size}"
            )
        if signatures.weight_seed != self.params.weight_seed:
            raise ParameterMismatchError(
                f"signature table weight_seed 0x{signatures.weight_seed:08x} does not "
                f"match matcher weight_seed 0x{self.params.weight_seed:08x}"
            )

    def compute(self, target: Buffer, signatures: SignatureTable) -> DeltaPlan:
        """
        Compute the delta plan of target against signatures.

        Raises:
            ValidationError: If target is not bytes-like or the table's strong hash is unknown
            ResourceLimitError: If target exceeds Config.MAX_DOCUMENT_SIZE
            ParameterMismatchError: If the table was built with other parameters
        """
        validate_data(target)
        self._check_table(signatures)

        started = time.perf_counter()
        strong = StrongHashRegistry.get_function(signatures.strong_hash)
        seed = signatures.strong_seed
        by_weak = signatures.by_weak

        entries: Dict[int, DeltaEntry] = {
            sig.index: DeltaEntry(index=sig.index, start=sig.offset, end=sig.end)
            for sig in signatures
        }
        matched: Set[int] = set()

        data = byte_view(target)
        target_len = len(data)
        block_size = self.params.block_size

        hash_hits = 0
        false_alarms = 0
        windows = 0

        window_start = 0
        window_end = min(block_size, target_len)
        last_match_end = 0
        rolling = WeakHash(self.params)
        rolling.from_scratch(data[window_start:window_end])

        with Profiler("compute_delta"):
            while window_start < target_len:
                windows += 1
                found: Optional[BlockSignature] = None
                candidates = by_weak.get(rolling.value)
                if candidates:
                    hash_hits += 1
                    width = window_end - window_start
                    live = [sig for sig in candidates
                            if sig.index not in matched and sig.length == width]
                    if live:
                        window_strong = strong(seed, data[window_start:window_end])
                        for sig in live:
                            if sig.strong == window_strong:
                                found = sig
                                break
                            false_alarms += 1

                if found is not None:
                    entries[found.index] = replace(
                        entries[found.index],
                        missing=False,
                        literal_offset=last_match_end,
                        literal=bytes(data[last_match_end:window_start]),
                    )
                    matched.add(found.index)

                    window_start = window_end
                    last_match_end = window_start
                    if window_start < target_len:
                        # The window jumped; the rolling state no longer applies.
                        window_end = min(window_start + block_size, target_len)
                        rolling.from_scratch(data[window_start:window_end])
                elif window_end == target_len:
                    break
                else:
                    rolling.slide(data[window_start], data[window_end])
                    window_start += 1
                    window_end += 1

        trailing = bytes(data[last_match_end:target_len])
        if trailing:
            logger.debug(
                f"Unmatched tail of {len(trailing)} bytes at offset {last_match_end} "
                f"reported as trailing literal"
            )

        plan = DeltaPlan(
            block_size=block_size,
            reference_size=signatures.document_size,
            target_size=target_len,
            entries=entries,
            trailing_offset=last_match_end,
            trailing_literal=trailing,
            target_checksum=(
                xxhash.xxh64_intdigest(bytes(data)) if Config.COMPUTE_TARGET_CHECKSUM else None
            ),
        )

        if self.collect_stats:
            stats = SyncStats(
                hash_hits=hash_hits,
                false_alarms=false_alarms,
                matches=len(matched),
                literal_data=plan.literal_bytes,
                matched_data=plan.matched_bytes,
                windows_scanned=windows,
                total_time_ms=(time.perf_counter() - started) * 1000,
            )
            plan = replace(plan, stats=stats)
            _accumulate_match_stats(stats)
            match_report()

        logger.debug(
            f"Delta computed: {len(matched)}/{len(entries)} blocks matched, "
            f"{plan.literal_bytes} literal bytes"
        )
        return plan


# ============================================================================
# PUBLIC OPERATIONS
# ============================================================================

def build_signatures(
    reference: Buffer,
    block_size: int,
    params: Optional[HashParameters] = None,
    strong_hash: Union[StrongHashType, str] = StrongHashType.MURMUR3,
    strong_seed: Optional[int] = None
) -> SignatureTable:
    """
    Build the signature table of a reference document.

    Args:
        reference: Reference document
        block_size: Block size (must equal params.block_size)
        params: Hash parameters (default: those installed by initialize())
        strong_hash: Strong hash algorithm
        strong_seed: Strong hash seed (default: Config.STRONG_HASH_SEED)

    Returns:
        SignatureTable with ceil(len(reference) / block_size) signatures

    Raises:
        ValidationError: On invalid block size or input
        NotInitializedError: If params is None and initialize() has not run
        ParameterMismatchError: If block_size disagrees with params

    Example:
        >>> initialize(16)
        >>> table = build_signatures(b"When wintertime rolls in", 16)
        >>> len(table)
        2
    """
    params = _resolve_parameters(block_size, params)
    builder = SignatureBuilder(params, strong_hash=strong_hash, strong_seed=strong_seed)
    return builder.build(reference)


def compute_delta(
    target: Buffer,
    block_size: int,
    signatures: SignatureTable,
    params: Optional[HashParameters] = None,
    collect_stats: Optional[bool] = None
) -> DeltaPlan:
    """
    Compute the delta plan of a target document against a signature table.

    Args:
        target: Target document
        block_size: Block size (must equal params and table block size)
        signatures: Signature table of the reference document
        params: Hash parameters (default: those installed by initialize())
        collect_stats: Attach SyncStats to the plan (default: Config.COLLECT_STATS)

    Returns:
        DeltaPlan with one entry per reference block

    Raises:
        ValidationError: On invalid block size or input
        NotInitializedError: If params is None and initialize() has not run
        ParameterMismatchError: If block sizes or weight tables disagree
    """
    params = _resolve_parameters(block_size, params)
    return DeltaMatcher(params, collect_stats=collect_stats).compute(target, signatures)


def apply_delta(reference: Buffer, plan: DeltaPlan, verify: bool = True) -> bytes:
    """
    Reconstruct the target document from the reference and a delta plan.

    Matched blocks are emitted in target order, each preceded by its literal
    run, followed by the trailing literal.

    Args:
        reference: Reference document the plan was computed against
        plan: Delta plan from compute_delta()
        verify: Check the plan's target checksum (if it has one)

    Returns:
        Reconstructed target bytes

    Raises:
        ValidationError: If the reference size or plan layout is inconsistent
        DataIntegrityError: If the result fails the checksum

    Example:
        >>> plan = compute_delta(target, 16, table, params=params)
        >>> assert apply_delta(reference, plan) == target
    """
    validate_data(reference)
    validate_plan(plan)
    ref = byte_view(reference)
    if len(ref) != plan.reference_size:
        raise ValidationError(
            f"reference is {len(ref)} bytes but plan was computed against "
            f"{plan.reference_size} bytes"
        )

    result = bytearray()
    for kind, value in plan.segments():
        if kind == 'literal':
            result.extend(cast(bytes, value))
            continue
        entry = cast(DeltaEntry, value)
        if len(result) != entry.literal_end:
            raise ValidationError(
                f"Block {entry.index} expected at target offset {entry.literal_end}, "
                f"reconstruction is at {len(result)}"
            )
        result.extend(ref[entry.start:entry.end])

    if len(result) != plan.target_size:
        raise DataIntegrityError(
            f"reconstructed {len(result)} bytes, expected {plan.target_size}"
        )

    if verify and Config.VERIFY_TARGET_CHECKSUM and plan.target_checksum is not None:
        actual = xxhash.xxh64_intdigest(bytes(result))
        if actual != plan.target_checksum:
            raise DataIntegrityError(
                f"target checksum mismatch: expected 0x{plan.target_checksum:016x}, "
                f"got 0x{actual:016x}"
            )

    return bytes(result)


def calculate_diff(
    block_size: int,
    reference: Buffer,
    target: Buffer,
    weight_seed: Optional[int] = DEFAULT_WEIGHT_SEED,
    strong_hash: Union[StrongHashType, str] = StrongHashType.MURMUR3,
    collect_stats: Optional[bool] = None
) -> DiffResult:
    """
    Sign the reference and diff the target in one call.

    Uses private HashParameters, so it neither needs nor touches the
    process-wide defaults.

    Example:
        >>> result = calculate_diff(16, reference, target)
        >>> result.delta[1].literal
        b'When summertime '
    """
    params = HashParameters.create(block_size, weight_seed=weight_seed)
    signatures = build_signatures(reference, block_size, params=params, strong_hash=strong_hash)
    delta = compute_delta(target, block_size, signatures, params=params,
                          collect_stats=collect_stats)
    return DiffResult(signatures, delta)
