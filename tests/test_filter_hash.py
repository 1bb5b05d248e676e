# -*- coding: utf-8 -*-
"""
Test hàm băm 32-bit của bộ lọc.
"""

import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))
from blockfilter.hashing.filter_hash import (
    FILTER_HASH_SEED,
    bloom_hash,
    hash32,
    probe_positions,
    rotate_right_32,
)


def test_reference_vectors():
    """Giá trị chuẩn, tương thích LevelDB (byte > 0x7f xử lý không dấu)."""
    assert hash32(b"", FILTER_HASH_SEED) == 0xbc9f1d34
    assert hash32(b"\x62", FILTER_HASH_SEED) == 0xef1345c4
    assert hash32(b"\xc3\x97", FILTER_HASH_SEED) == 0x5b663814
    assert hash32(b"\xe2\x99\xa5", FILTER_HASH_SEED) == 0x323c078f
    assert hash32(b"\xe1\x80\xb9\x32", FILTER_HASH_SEED) == 0xed21633a


def test_bloom_hash_uses_filter_seed():
    assert bloom_hash(b"hello") == hash32(b"hello", 0xbc9f1d34) == 0xf795964e
    assert hash32(b"hello", 0) != bloom_hash(b"hello")


def test_hash_is_32_bit_and_deterministic():
    for n in range(0, 40):
        data = bytes(range(200, 200 + n % 56)) * 3
        h = hash32(data, FILTER_HASH_SEED)
        assert 0 <= h <= 0xFFFFFFFF
        assert h == hash32(bytearray(data), FILTER_HASH_SEED)


def test_rotate_right_32():
    assert rotate_right_32(0x00000001, 17) == 0x00008000
    assert rotate_right_32(0x80000000, 17) == 0x00004000
    assert rotate_right_32(0x12345678, 0) == 0x12345678
    assert rotate_right_32(0x12345678, 32) == 0x12345678
    assert rotate_right_32(0xFFFFFFFF, 17) == 0xFFFFFFFF


def test_probe_positions_double_hashing():
    h = bloom_hash(b"hello")
    delta = rotate_right_32(h, 17)
    expected = []
    for _ in range(6):
        expected.append(h % 64)
        h = (h + delta) & 0xFFFFFFFF
    assert list(probe_positions(b"hello", 6, 64)) == expected
    assert list(probe_positions(b"hello", 0, 64)) == []
