#!/usr/bin/env python3
"""
Benchmark: signature / delta / apply timings
============================================

Times the three phases on synthetic documents with reproducible edits and
reports how much of each target was served from reference blocks, plus the
encoded plan size for every compression codec.
"""

import random
import time

from plan_codec import CompressionType, encode_plan
from rdiff_core import (
    HashParameters,
    apply_delta,
    build_signatures,
    compute_delta,
    format_size,
)


def create_document(size_kb: int, seed: int = 7) -> bytes:
    """Text-like data: a shuffled vocabulary so blocks are not all identical"""
    rnd = random.Random(seed)
    words = [b"summer", b"winter", b"heat", b"cool", b"blazing", b"days",
             b"rolls", b"enough", b"that", b"the", b"and", b"off"]
    out = bytearray()
    while len(out) < size_kb * 1024:
        out += rnd.choice(words) + b" "
    return bytes(out[:size_kb * 1024])


def modify_document(original: bytes, change_percent: float, pattern: str,
                    seed: int = 123) -> bytes:
    """Create a modified version of a document (reproducible).

    Supported patterns:
        - flip-random: overwrite random bytes across the document
        - append: append new bytes to the end
        - prepend: prepend new bytes to the beginning
        - insert-middle: insert new bytes in the middle
    """
    rnd = random.Random(seed)
    count = int(len(original) * change_percent / 100)
    fresh = bytes(rnd.randint(0, 255) for _ in range(count))

    if pattern == 'flip-random':
        data = bytearray(original)
        for _ in range(count if data else 0):
            data[rnd.randint(0, len(data) - 1)] = rnd.randint(0, 255)
        return bytes(data)
    elif pattern == 'append':
        return original + fresh
    elif pattern == 'prepend':
        return fresh + original
    elif pattern == 'insert-middle':
        mid = len(original) // 2
        return original[:mid] + fresh + original[mid:]
    raise ValueError(f"Unknown pattern: {pattern}")


def benchmark_case(reference: bytes, target: bytes, block_size: int) -> dict:
    params = HashParameters.create(block_size)

    t1 = time.perf_counter()
    signatures = build_signatures(reference, block_size, params=params)
    t2 = time.perf_counter()
    plan = compute_delta(target, block_size, signatures, params=params, collect_stats=True)
    t3 = time.perf_counter()
    verified = apply_delta(reference, plan) == target
    t4 = time.perf_counter()

    return {
        'signature_time': t2 - t1,
        'delta_time': t3 - t2,
        'apply_time': t4 - t3,
        'blocks': len(signatures),
        'matched_bytes': plan.matched_bytes,
        'literal_bytes': plan.literal_bytes,
        'false_alarms': plan.stats.false_alarms if plan.stats else 0,
        'compression_ratio': plan.compression_ratio,
        'encoded': {c.value: len(encode_plan(plan, c)) for c in CompressionType},
        'verified': verified,
    }


def run_benchmark_suite():
    """Run complete benchmark suite"""
    print("=" * 80)
    print("BENCHMARK: rdiff-python".center(80))
    print("=" * 80)

    test_cases = [
        ('256KB flip-random 1%', 256, 'flip-random', 1, 2048),
        ('256KB flip-random 10%', 256, 'flip-random', 10, 2048),
        ('256KB append 5%', 256, 'append', 5, 2048),
        ('256KB prepend 5%', 256, 'prepend', 5, 2048),
        ('256KB insert-middle 5%', 256, 'insert-middle', 5, 512),
        ('1MB insert-middle 1%', 1024, 'insert-middle', 1, 4096),
    ]

    for case_i, (name, size_kb, pattern, change_percent, block_size) in enumerate(test_cases, start=1):
        reference = create_document(size_kb, seed=case_i)
        target = modify_document(reference, change_percent, pattern, seed=123 + case_i)
        r = benchmark_case(reference, target, block_size)

        print(f"\n{name} (block size {block_size}, {r['blocks']} blocks)")
        print(f"  Signature:    {r['signature_time']:.3f}s")
        print(f"  Delta:        {r['delta_time']:.3f}s")
        print(f"  Apply:        {r['apply_time']:.3f}s")
        print(f"  Matched:      {format_size(r['matched_bytes'])}")
        print(f"  Literal:      {format_size(r['literal_bytes'])}")
        print(f"  False alarms: {r['false_alarms']}")
        print(f"  Compression:  {r['compression_ratio']:.1%}")
        for codec, size in r['encoded'].items():
            print(f"  Plan ({codec:>4}):  {format_size(size)}")
        print(f"  Verified:     {'yes' if r['verified'] else 'NO'}")

    print("\n" + "=" * 80)


if __name__ == '__main__':
    run_benchmark_suite()
