"""Bộ đếm metrics gọn cho đường đọc có bộ lọc."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Metrics:
    filters_built: int = 0
    filter_bytes_built: int = 0
    filter_checks: int = 0
    filter_hits: int = 0
    filter_misses: int = 0
    filter_skipped: int = 0
    block_hits: int = 0
    false_positives: int = 0
    lookup_latency_total_us: int = 0
    lookup_count: int = 0

    def record_filter_built(self, size_bytes: int) -> None:
        self.filters_built += 1
        self.filter_bytes_built += size_bytes

    def record_filter_check(self, hit: bool) -> None:
        self.filter_checks += 1
        if hit:
            self.filter_hits += 1
        else:
            self.filter_misses += 1

    def record_filter_skipped(self) -> None:
        self.filter_skipped += 1

    def record_block_lookup(self, found: bool) -> None:
        if found:
            self.block_hits += 1
        else:
            self.false_positives += 1

    def record_lookup_latency(self, micros: int) -> None:
        self.lookup_latency_total_us += micros
        self.lookup_count += 1

    def observed_false_positive_rate(self) -> float:
        """Tỉ lệ dương giả trên các khóa thực sự vắng mặt đã qua bộ lọc."""
        absent = self.filter_misses + self.false_positives
        if absent == 0:
            return 0.0
        return self.false_positives / float(absent)

    def average_lookup_latency_us(self) -> float:
        if self.lookup_count == 0:
            return 0.0
        return self.lookup_latency_total_us / float(self.lookup_count)
