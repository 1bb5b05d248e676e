"""Đường đọc khối có bộ lọc Bloom đứng trước tra cứu thật."""
from __future__ import annotations

import time
from enum import Enum, auto
from typing import Mapping, Optional

from blockfilter.block.data_block import DataBlock
from blockfilter.metrics.metrics import Metrics
from blockfilter.policy.filter_policy import FilterPolicy
from blockfilter.types.key_types import KeyLike, normalize_key


class CheckResult(Enum):
    ABSENT = auto()
    PRESENT = auto()
    FILTER_FALSE_POSITIVE = auto()


class FilteredBlockReader:
    def __init__(self, policy: FilterPolicy, metrics: Optional[Metrics] = None) -> None:
        """Giữ danh sách khối trong bộ nhớ; bộ lọc chỉ là gợi ý trước tra cứu thật."""
        self.policy = policy
        self.metrics = metrics or Metrics()
        self._blocks: list[DataBlock] = []

    def add_block(self, entries: Mapping[KeyLike, bytes], filter_data: Optional[bytes] = None) -> int:
        """Thêm khối và dựng bộ lọc từ khóa của nó (trừ khi đã cho sẵn), trả về chỉ số khối."""
        normalized = {normalize_key(key): bytes(value) for key, value in entries.items()}
        if filter_data is None:
            filter_data = self.policy.build_filter(normalized.keys())
            self.metrics.record_filter_built(len(filter_data))
        self._blocks.append(DataBlock(entries=normalized, filter_data=bytes(filter_data)))
        return len(self._blocks) - 1

    def block_count(self) -> int:
        return len(self._blocks)

    def block(self, block_index: int) -> DataBlock:
        if not 0 <= block_index < len(self._blocks):
            raise IndexError(f"block index out of range: {block_index}")
        return self._blocks[block_index]

    def fast_check(self, block_index: int, key: KeyLike) -> CheckResult:
        """Tra cứu qua bộ lọc rồi xác nhận bằng bản ghi thật, có thu thập metrics."""
        start = time.perf_counter_ns()
        block = self.block(block_index)
        raw_key = normalize_key(key)

        # Bộ lọc < 2 byte coi như hỏng: không được dùng làm bằng chứng vắng mặt.
        if len(block.filter_data) < 2:
            self.metrics.record_filter_skipped()
            found = raw_key in block.entries
            self.metrics.record_lookup_latency(self._micros_since(start))
            return CheckResult.PRESENT if found else CheckResult.ABSENT

        in_filter = self.policy.may_match(raw_key, block.filter_data)
        self.metrics.record_filter_check(in_filter)
        if not in_filter:
            self.metrics.record_lookup_latency(self._micros_since(start))
            return CheckResult.ABSENT

        found = raw_key in block.entries
        self.metrics.record_block_lookup(found)
        self.metrics.record_lookup_latency(self._micros_since(start))
        if found:
            return CheckResult.PRESENT
        return CheckResult.FILTER_FALSE_POSITIVE

    def get(self, key: KeyLike) -> Optional[bytes]:
        """Quét khối từ mới đến cũ, trả về giá trị đầu tiên tìm thấy."""
        raw_key = normalize_key(key)
        for block_index in range(len(self._blocks) - 1, -1, -1):
            if self.fast_check(block_index, raw_key) is CheckResult.PRESENT:
                return self._blocks[block_index].entries[raw_key]
        return None

    @staticmethod
    def _micros_since(start_ns: int) -> int:
        """Tính thời gian đã trôi qua (micro giây) từ thời điểm start_ns."""
        end = time.perf_counter_ns()
        return int((end - start_ns) / 1000)
