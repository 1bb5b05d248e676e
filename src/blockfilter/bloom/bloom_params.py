"""Tiện ích tham số Bloom filter: suy ra k và kích thước bộ đệm."""
from __future__ import annotations

from dataclasses import dataclass

K_MIN = 1
# k nằm trong một byte trailer; giá trị > 30 dành cho định dạng tương lai.
K_MAX = 30
LN2_APPROX = 0.69
MIN_FILTER_BITS = 64
DEFAULT_BITS_PER_KEY = 10
# Ngoài khoảng [2, 43] phép kẹp đã quyết định k; tránh đổi int lớn sang float.
_BITS_FOR_K_MIN = 1
_BITS_FOR_K_MAX = 44


def derive_k(bits_per_key: int) -> int:
    """k = floor(bits_per_key * 0.69), kẹp trong [1, 30].

    Làm tròn xuống có chủ ý để giảm chi phí dò; mọi giá trị đầu vào (kể cả
    0 hay âm) đều cho ra k hợp lệ.
    """
    if isinstance(bits_per_key, bool) or not isinstance(bits_per_key, int):
        raise TypeError("bits_per_key must be an integer")
    if bits_per_key <= _BITS_FOR_K_MIN:
        return K_MIN
    if bits_per_key >= _BITS_FOR_K_MAX:
        return K_MAX
    k = int(bits_per_key * LN2_APPROX)
    if k < K_MIN:
        k = K_MIN
    if k > K_MAX:
        k = K_MAX
    return k


@dataclass(frozen=True)
class BloomParams:
    bits_per_key: int
    k_hash: int

    @staticmethod
    def for_bits_per_key(bits_per_key: int) -> "BloomParams":
        """Tạo bộ tham số từ núm chỉnh duy nhất bits_per_key."""
        return BloomParams(bits_per_key=bits_per_key, k_hash=derive_k(bits_per_key))

    def filter_bits(self, key_count: int) -> int:
        """Số bit của mảng bit (chưa làm tròn byte), tối thiểu 64."""
        if key_count < 0:
            raise ValueError("key_count must be non-negative")
        return max(MIN_FILTER_BITS, key_count * self.bits_per_key)

    def filter_size(self, key_count: int) -> int:
        """Số byte của mảng bit, không tính byte trailer."""
        return (self.filter_bits(key_count) + 7) // 8
