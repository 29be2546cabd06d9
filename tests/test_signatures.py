#!/usr/bin/env python
"""
Signature table tests
=====================

Block carving, weak-hash buckets, validation and dictionary form.
"""

import random
import unittest

import xxhash

from rdiff_core import (
    BlockSignature,
    HashParameters,
    NotInitializedError,
    ParameterMismatchError,
    ResourceLimitError,
    SignatureBuilder,
    SignatureTable,
    StrongHashType,
    ValidationError,
    WeakHash,
    Config,
    build_signatures,
    initialize,
    murmur3_32,
    reset_parameters,
    validate_signatures,
)


class TestSignatureBuilder(unittest.TestCase):

    def setUp(self):
        self.params = HashParameters.create(7)

    def tearDown(self):
        Config.reset_defaults()
        reset_parameters()

    def test_block_count_and_tiling(self):
        """ceil(len / block_size) blocks whose ranges tile [0, len)"""
        for length in range(0, 50):
            data = bytes(range(length))
            table = build_signatures(data, 7, params=self.params)
            with self.subTest(length=length):
                self.assertEqual(len(table), -(-length // 7))
                self.assertEqual([s.index for s in table], list(range(len(table))))
                offset = 0
                for sig in table:
                    self.assertEqual(sig.offset, offset)
                    self.assertGreaterEqual(sig.length, 1)
                    self.assertLessEqual(sig.length, 7)
                    offset = sig.end
                self.assertEqual(offset, length)

    def test_empty_reference(self):
        table = build_signatures(b"", 7, params=self.params)
        self.assertEqual(len(table), 0)
        self.assertEqual(table.document_size, 0)
        self.assertEqual(table.by_weak, {})

    def test_last_block_length(self):
        table = build_signatures(b"x" * 23, 7, params=self.params)
        self.assertEqual([s.length for s in table], [7, 7, 7, 2])

    def test_hashes_match_block_bytes(self):
        rng = random.Random(11)
        data = bytes(rng.randrange(256) for _ in range(40))
        table = build_signatures(data, 7, params=self.params)
        for sig in table:
            block = data[sig.offset:sig.end]
            self.assertEqual(bytes(sig.view(data)), block)
            self.assertEqual(sig.weak, WeakHash(self.params).from_scratch(block))
            self.assertEqual(sig.strong, murmur3_32(table.strong_seed, block))

    def test_records_parameters(self):
        table = build_signatures(b"abcdefghij", 7, params=self.params)
        self.assertEqual(table.block_size, 7)
        self.assertEqual(table.weight_seed, self.params.weight_seed)
        self.assertEqual(table.strong_hash, "murmur3")
        self.assertEqual(table.strong_seed, 0x1234)

    def test_strong_seed_from_config(self):
        Config.STRONG_HASH_SEED = 99
        table = build_signatures(b"abcdefghij", 7, params=self.params)
        self.assertEqual(table.strong_seed, 99)
        self.assertEqual(table[0].strong, murmur3_32(99, b"abcdefg"))

    def test_xxh32_strong_hash(self):
        builder = SignatureBuilder(self.params, strong_hash=StrongHashType.XXH32, strong_seed=5)
        table = builder.build(b"abcdefghij")
        self.assertEqual(table.strong_hash, "xxh32")
        self.assertEqual(table[0].strong, xxhash.xxh32_intdigest(b"abcdefg", seed=5))

    def test_duplicate_blocks_share_bucket(self):
        """Collisions are fully enumerated, in index order"""
        block = b"SAMEBLK"
        data = block + b"other!!" + block + block
        table = build_signatures(data, 7, params=self.params)
        bucket = table.candidates(table[0].weak)
        self.assertEqual([s.index for s in bucket], [0, 2, 3])
        self.assertEqual(table.candidates(-1), ())

    def test_rejects_non_bytes(self):
        with self.assertRaises(ValidationError):
            build_signatures("not bytes", 7, params=self.params)

    def test_rejects_oversized_document(self):
        Config.MAX_DOCUMENT_SIZE = 10
        with self.assertRaises(ResourceLimitError):
            build_signatures(b"x" * 11, 7, params=self.params)

    def test_block_size_must_match_params(self):
        with self.assertRaises(ParameterMismatchError):
            build_signatures(b"abc", 8, params=self.params)

    def test_zero_block_size(self):
        with self.assertRaises(ValidationError):
            build_signatures(b"abc", 0, params=self.params)

    def test_requires_initialize(self):
        reset_parameters()
        with self.assertRaises(NotInitializedError):
            build_signatures(b"abc", 7)

    def test_initialized_defaults(self):
        params = initialize(7, weight_seed=77)
        table = build_signatures(b"abcdefghij", 7)
        self.assertEqual(table.weight_seed, 77)
        self.assertEqual(table[0].weak, WeakHash(params).from_scratch(b"abcdefg"))
        with self.assertRaises(ParameterMismatchError):
            build_signatures(b"abcdefghij", 8)

    def test_initialize_uses_configured_block_size(self):
        Config.DEFAULT_BLOCK_SIZE = 5
        params = initialize()
        self.assertEqual(params.block_size, 5)
        self.assertEqual(len(build_signatures(b"abcdefghij", 5)), 2)


class TestSignatureTable(unittest.TestCase):

    def setUp(self):
        self.params = HashParameters.create(4)
        self.table = build_signatures(b"The quick brown fox", 4, params=self.params)

    def test_dict_round_trip(self):
        restored = SignatureTable.from_dict(self.table.to_dict())
        self.assertEqual(restored, self.table)
        self.assertEqual(restored.by_weak, self.table.by_weak)

    def test_validate_accepts_built_table(self):
        validate_signatures(self.table)

    def test_validate_rejects_bad_offset(self):
        sigs = list(self.table.signatures)
        bad = sigs[1]
        sigs[1] = BlockSignature(bad.index, bad.weak, bad.strong, bad.offset + 1, bad.length)
        broken = SignatureTable(
            block_size=4, document_size=self.table.document_size,
            signatures=tuple(sigs), weight_seed=self.table.weight_seed,
        )
        with self.assertRaises(ValidationError):
            validate_signatures(broken)

    def test_validate_rejects_wrong_count(self):
        broken = SignatureTable(
            block_size=4, document_size=self.table.document_size + 10,
            signatures=self.table.signatures, weight_seed=self.table.weight_seed,
        )
        with self.assertRaises(ValidationError):
            validate_signatures(broken)

    def test_from_dict_rejects_malformed(self):
        data = self.table.to_dict()
        del data['block_size']
        with self.assertRaises(ValidationError):
            SignatureTable.from_dict(data)

    def test_immutable(self):
        with self.assertRaises(AttributeError):
            self.table.block_size = 8  # type: ignore[misc]


if __name__ == "__main__":
    unittest.main()
