"""Bloom filter dạng bộ đệm tự mô tả cho khối dữ liệu của storage engine.

Bố cục: [mảng bit][1 byte trailer = k]. Bit `pos` nằm ở byte `pos // 8`,
mặt nạ `1 << (pos % 8)` (thứ tự bit little-endian trong byte).
"""
from __future__ import annotations

from typing import Iterable

from bitarray import bitarray

from blockfilter.bloom.bloom_params import DEFAULT_BITS_PER_KEY, K_MAX, BloomParams
from blockfilter.hashing.filter_hash import probe_positions
from blockfilter.types.key_types import KeyLike, normalize_key

POLICY_NAME = "filter.leveldb.BuiltinBloomFilter2"


class BloomFilterPolicy:
    def __init__(self, bits_per_key: int) -> None:
        """Suy ra k một lần từ bits_per_key; đối tượng bất biến sau đó."""
        self._params = BloomParams.for_bits_per_key(bits_per_key)

    def name(self) -> str:
        """Tên định danh định dạng bộ lọc, ghi kèm trên đĩa."""
        return POLICY_NAME

    def params(self) -> BloomParams:
        """Lấy bộ tham số đã suy ra (bits_per_key, k)."""
        return self._params

    def bits_per_key(self) -> int:
        """Lấy số bit cấp cho mỗi khóa."""
        return self._params.bits_per_key

    def k_hash(self) -> int:
        """Lấy số lần dò (k) dùng khi dựng bộ lọc."""
        return self._params.k_hash

    def filter_size(self, key_count: int) -> int:
        """Số byte mảng bit cho key_count khóa (không gồm trailer)."""
        return self._params.filter_size(key_count)

    def build_filter(self, keys: Iterable[KeyLike]) -> bytes:
        """Đặt k bit cho mỗi khóa, trả về mảng bit kèm byte trailer k."""
        key_list = [normalize_key(key) for key in keys]
        bits = bitarray(self.filter_size(len(key_list)) * 8, endian="little")
        bits.setall(0)
        total_bits = len(bits)
        k = self._params.k_hash
        for key in key_list:
            for pos in probe_positions(key, k, total_bits):
                bits[pos] = 1
        return bits.tobytes() + bytes((k,))

    def may_match(self, key: KeyLike, filter_data: bytes) -> bool:
        """Kiểm tra khóa trên bộ lọc bất kỳ, dùng k ghi trong trailer.

        Bộ đệm < 2 byte: không khớp (engine phải tra cứu thật). k > 30 là
        định dạng dự phòng: luôn khớp để không gây âm tính giả.
        """
        data = memoryview(filter_data).cast("B")
        if len(data) < 2:
            return False

        k = data[-1]
        if k > K_MAX:
            return True

        bits = bitarray(buffer=data[:-1], endian="little")
        total_bits = len(bits)
        for pos in probe_positions(normalize_key(key), k, total_bits):
            if not bits[pos]:
                return False
        return True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BloomFilterPolicy):
            return NotImplemented
        return self._params == other._params

    def __hash__(self) -> int:
        return hash(self._params)

    def __repr__(self) -> str:
        return (
            f"BloomFilterPolicy(name={POLICY_NAME!r}, "
            f"bits_per_key={self._params.bits_per_key}, k={self._params.k_hash})"
        )


def create_policy(bits_per_key: int) -> BloomFilterPolicy:
    """Tạo chính sách Bloom với bits_per_key do engine cấu hình."""
    return BloomFilterPolicy(bits_per_key)


def create_default_policy() -> BloomFilterPolicy:
    """Chính sách mặc định: 10 bit/khóa, k = 6."""
    return BloomFilterPolicy(DEFAULT_BITS_PER_KEY)
