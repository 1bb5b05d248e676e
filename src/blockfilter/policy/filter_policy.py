"""Giao thức cho chính sách bộ lọc khối."""
from __future__ import annotations

from typing import Iterable, Protocol, runtime_checkable

from blockfilter.types.key_types import KeyLike


@runtime_checkable
class FilterPolicy(Protocol):
    """Bộ lọc xác suất mà engine gắn vào mỗi khối dữ liệu.

    Tên được ghi kèm bộ lọc trên đĩa để engine biết định dạng nào đang dùng;
    có thể thay bằng cài đặt khác mà không đổi phía gọi.
    """

    def name(self) -> str:
        """Tên định danh định dạng bộ lọc."""
        ...

    def build_filter(self, keys: Iterable[KeyLike]) -> bytes:
        """Mã hóa một lô khóa thành bộ lọc."""
        ...

    def may_match(self, key: KeyLike, filter_data: bytes) -> bool:
        """False nghĩa là chắc chắn vắng mặt; True là có thể có mặt."""
        ...
