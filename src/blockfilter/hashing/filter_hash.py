"""Hàm băm 32-bit cố định seed dùng riêng cho bộ lọc Bloom.

Thuật toán tương thích từng bit với hàm băm của LevelDB để bộ lọc đã ghi
xuống đĩa đọc được giữa các phiên bản.
"""
from __future__ import annotations

import struct
from typing import Iterator

from blockfilter.types.key_types import KeyBytes

FILTER_HASH_SEED = 0xBC9F1D34

_MASK32 = 0xFFFFFFFF
_MULTIPLIER = 0xC6A4A793
_TAIL_SHIFT = 24
_DELTA_ROTATION = 17


def hash32(data: bytes, seed: int) -> int:
    """Băm 32-bit kiểu murmur: từng word little-endian rồi phần đuôi 1-3 byte."""
    view = memoryview(data)
    n = len(view)
    h = (seed ^ (n * _MULTIPLIER)) & _MASK32

    body = n - (n % 4)
    for (word,) in struct.iter_unpack("<I", view[:body]):
        h = (h + word) & _MASK32
        h = (h * _MULTIPLIER) & _MASK32
        h ^= h >> 16

    tail = view[body:]
    if len(tail) == 3:
        h = (h + (tail[2] << 16)) & _MASK32
    if len(tail) >= 2:
        h = (h + (tail[1] << 8)) & _MASK32
    if len(tail) >= 1:
        h = (h + tail[0]) & _MASK32
        h = (h * _MULTIPLIER) & _MASK32
        h ^= h >> _TAIL_SHIFT
    return h


def bloom_hash(key: KeyBytes) -> int:
    """Băm khóa với seed riêng của bộ lọc."""
    return hash32(key, FILTER_HASH_SEED)


def rotate_right_32(value: int, shift: int) -> int:
    """Xoay phải một word 32-bit."""
    value &= _MASK32
    shift %= 32
    return ((value >> shift) | (value << (32 - shift))) & _MASK32


def probe_positions(key: KeyBytes, k: int, total_bits: int) -> Iterator[int]:
    """Sinh k vị trí bit bằng double hashing (Kirsch-Mitzenmacher).

    delta là hash xoay phải 17 bit; mỗi bước cộng delta modulo 2^32.
    """
    h = bloom_hash(key)
    delta = rotate_right_32(h, _DELTA_ROTATION)
    for _ in range(k):
        yield h % total_bits
        h = (h + delta) & _MASK32
