"""Tiện ích khóa cho bộ lọc khối.

Bộ lọc chỉ làm việc trên chuỗi byte. Module này chuẩn hóa các kiểu khóa
được chấp nhận (bytes, bytearray, memoryview, str) về `bytes`.
"""
from __future__ import annotations

from typing import NewType, Union

# Alias kiểu để diễn đạt ý nghĩa; lưu dưới dạng bytes bất biến.
KeyBytes = NewType("KeyBytes", bytes)
KeyLike = Union[bytes, bytearray, memoryview, str]


def normalize_key(value: KeyLike) -> KeyBytes:
    """Ép khóa về bytes; str được mã hóa UTF-8, kiểu khác báo TypeError."""
    if isinstance(value, bytes):
        return KeyBytes(value)
    if isinstance(value, (bytearray, memoryview)):
        return KeyBytes(bytes(value))
    if isinstance(value, str):
        return KeyBytes(value.encode("utf-8"))
    raise TypeError(f"key must be bytes-like or str, got {type(value).__name__}")
