"""Cấu trúc dữ liệu cho một khối: bản ghi thật + bộ lọc đã mã hóa."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict


@dataclass
class DataBlock:
    entries: Dict[bytes, bytes] = field(default_factory=dict)
    filter_data: bytes = b""
