#!/usr/bin/env python
"""
Weak and strong hash tests
==========================

1. Karp-Rabin weak hash: determinism, closed form, rolling property
2. MurmurHash3 strong hash: published reference vectors
3. HashParameters: derivation, seeding, validation
"""

import random
import unittest

import xxhash

from rdiff_core import (
    DEFAULT_WEIGHT_SEED,
    HashParameters,
    StrongHashRegistry,
    StrongHashType,
    ValidationError,
    WEAK_HASH_BASE,
    WEAK_HASH_MODULUS,
    WeakHash,
    murmur3_32,
)


def _closed_form(params, window):
    """Weak hash straight from its definition, for cross-checking."""
    n = len(window)
    total = 0
    for k, byte in enumerate(window):
        weight = pow(WEAK_HASH_BASE, n - 1 - k, WEAK_HASH_MODULUS)
        total = (total + weight * params.weights[byte] % WEAK_HASH_MODULUS) % WEAK_HASH_MODULUS
    return total


class TestHashParameters(unittest.TestCase):

    def test_b_to_n(self):
        params = HashParameters.create(16)
        self.assertEqual(params.b_to_n, (WEAK_HASH_BASE ** 16) % WEAK_HASH_MODULUS)

    def test_weight_table_shape(self):
        params = HashParameters.create(64)
        self.assertEqual(len(params.weights), 256)
        self.assertTrue(all(0 <= w < WEAK_HASH_MODULUS for w in params.weights))

    def test_same_seed_same_table(self):
        """A fixed seed gives identical tables across calls (and runs)"""
        a = HashParameters.create(32, weight_seed=1234)
        b = HashParameters.create(32, weight_seed=1234)
        self.assertEqual(a.weights, b.weights)
        self.assertEqual(a, b)

    def test_different_seed_different_table(self):
        a = HashParameters.create(32, weight_seed=1)
        b = HashParameters.create(32, weight_seed=2)
        self.assertNotEqual(a.weights, b.weights)

    def test_default_seed(self):
        self.assertEqual(HashParameters.create(8).weight_seed, DEFAULT_WEIGHT_SEED)

    def test_clock_seed_is_recorded(self):
        params = HashParameters.create(8, weight_seed=None)
        self.assertIsInstance(params.weight_seed, int)
        self.assertEqual(params, HashParameters.create(8, weight_seed=params.weight_seed))

    def test_invalid_block_sizes(self):
        for bad in (0, -1, 0x20000 + 1, True, 4.0, "16"):
            with self.subTest(block_size=bad):
                with self.assertRaises(ValidationError):
                    HashParameters.create(bad)

    def test_invalid_seed(self):
        with self.assertRaises(ValidationError):
            HashParameters.create(16, weight_seed=-5)
        with self.assertRaises(ValidationError):
            HashParameters.create(16, weight_seed=1 << 32)


class TestWeakHash(unittest.TestCase):

    def setUp(self):
        self.params = HashParameters.create(8)

    def test_deterministic(self):
        data = b"deterministic!"
        self.assertEqual(
            WeakHash(self.params).from_scratch(data),
            WeakHash(self.params).from_scratch(bytearray(data)),
        )
        self.assertEqual(
            WeakHash(self.params).from_scratch(data),
            WeakHash(self.params).from_scratch(memoryview(data)),
        )

    def test_matches_closed_form(self):
        rng = random.Random(7)
        for length in (0, 1, 3, 8, 31):
            window = bytes(rng.randrange(256) for _ in range(length))
            with self.subTest(length=length):
                self.assertEqual(
                    WeakHash(self.params).from_scratch(window),
                    _closed_form(self.params, window),
                )

    def test_empty_window(self):
        self.assertEqual(WeakHash(self.params).from_scratch(b""), 0)

    def test_rolling_matches_recomputation(self):
        """slide() agrees with from_scratch() at every offset, for every byte value"""
        rng = random.Random(42)
        values = list(range(256)) * 2
        rng.shuffle(values)
        data = bytes(values)
        n = self.params.block_size

        rolling = WeakHash(self.params)
        rolling.from_scratch(data[:n])
        for start in range(1, len(data) - n + 1):
            rolling.slide(data[start - 1], data[start + n - 1])
            expected = WeakHash(self.params).from_scratch(data[start:start + n])
            self.assertEqual(rolling.value, expected, f"offset {start}")

    def test_rolling_extreme_bytes(self):
        """Outgoing 0xff / incoming 0x00 and vice versa"""
        data = bytes([0xFF] * 8 + [0x00] * 8 + [0xFF] * 8)
        rolling = WeakHash(self.params)
        rolling.from_scratch(data[:8])
        for start in range(1, len(data) - 7):
            rolling.slide(data[start - 1], data[start + 7])
            self.assertEqual(
                rolling.digest(), WeakHash(self.params).from_scratch(data[start:start + 8])
            )

    def test_value_range(self):
        rng = random.Random(3)
        for _ in range(50):
            window = bytes(rng.randrange(256) for _ in range(8))
            self.assertLess(WeakHash(self.params).from_scratch(window), WEAK_HASH_MODULUS)


class TestStrongHash(unittest.TestCase):

    def test_reference_vectors(self):
        """MurmurHash3 x86_32 published test vectors"""
        vectors = [
            (b"", 0, 0x00000000),
            (b"", 1, 0x514E28B7),
            (b"", 0xFFFFFFFF, 0x81F16F39),
            (b"\x00\x00\x00\x00", 0, 0x2362F9DE),
            (b"\xff\xff\xff\xff", 0, 0x76293B50),
            (b"\x21\x43\x65\x87", 0, 0xF55B516B),
            (b"\x21\x43\x65", 0, 0x7E4A8634),
            (b"\x21\x43", 0, 0xA0F7B07A),
            (b"\x21", 0, 0x72661CF4),
            (b"aaaa", 0x9747B28C, 0x5A97808A),
            (b"aaa", 0x9747B28C, 0x283E0130),
            (b"aa", 0x9747B28C, 0x5D211726),
            (b"a", 0x9747B28C, 0x7FA09EA6),
            (b"abcd", 0x9747B28C, 0xF0478627),
            (b"Hello, world!", 0x9747B28C, 0x24884CBA),
            (b"The quick brown fox jumps over the lazy dog", 0x9747B28C, 0x2FA826CD),
        ]
        for data, seed, expected in vectors:
            with self.subTest(data=data, seed=seed):
                self.assertEqual(murmur3_32(seed, data), expected)

    def test_deterministic_across_buffer_types(self):
        data = b"When summertime rolls in"
        self.assertEqual(murmur3_32(0x1234, data), murmur3_32(0x1234, bytearray(data)))
        self.assertEqual(murmur3_32(0x1234, data), murmur3_32(0x1234, memoryview(data)))

    def test_seed_changes_digest(self):
        self.assertNotEqual(murmur3_32(0x1234, b"block"), murmur3_32(0x1235, b"block"))

    def test_registry(self):
        murmur = StrongHashRegistry.get_function(StrongHashType.MURMUR3)
        self.assertEqual(murmur(7, b"abc"), murmur3_32(7, b"abc"))
        self.assertIs(StrongHashRegistry.get_function("murmur3"), murmur)

        xxh = StrongHashRegistry.get_function(StrongHashType.XXH32)
        self.assertEqual(xxh(7, b"abc"), xxhash.xxh32_intdigest(b"abc", seed=7))
        self.assertEqual(StrongHashRegistry.digest("xxh32", 7, b"abc"), xxh(7, b"abc"))

    def test_unknown_algorithm(self):
        with self.assertRaises(ValidationError):
            StrongHashRegistry.get_function("md5")


if __name__ == "__main__":
    unittest.main()
