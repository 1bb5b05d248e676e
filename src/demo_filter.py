"""CLI demo: Bloom filter cho từng khối dữ liệu của storage engine.

- Bước 1: nạp khóa từ CSV, chia thành khối BLOCK_SIZE khóa, dựng một bộ lọc mỗi khối.
- Bước 2: chạy log truy vấn CSV qua fast_check, in thống kê FPR/tiết kiệm đọc khối.
- Menu console cho phép chọn dataset và xem tiến trình.
"""

from __future__ import annotations

import csv
import os
import time
from typing import Dict, List, Optional

import psutil

from blockfilter.bloom.bloom_filter import create_policy
from blockfilter.bloom.bloom_params import DEFAULT_BITS_PER_KEY
from blockfilter.manager.filtered_reader import CheckResult, FilteredBlockReader
from blockfilter.types.key_types import KeyBytes, normalize_key


# Đường dẫn dữ liệu mẫu
KEYS_CSV = "data/block_keys.csv"
QUERIES_CSV = "data/block_queries.csv"
KEY_COLUMN = "key"

# Tham số bộ lọc
BITS_PER_KEY = DEFAULT_BITS_PER_KEY
BLOCK_SIZE = 4096


def _current_memory_bytes() -> int:
    """Lấy RSS của tiến trình (bytes)."""
    return psutil.Process(os.getpid()).memory_info().rss


def load_keys(csv_path: str, column: str = KEY_COLUMN) -> List[KeyBytes]:
    """Đọc cột khóa từ CSV và trả về danh sách khóa bytes (đã khử trùng lặp, giữ thứ tự)."""

    if not os.path.exists(csv_path):
        raise FileNotFoundError(f"Dataset not found: {csv_path}")

    keys: list[KeyBytes] = []
    seen: set[KeyBytes] = set()
    with open(csv_path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        for row in reader:
            raw = (row.get(column) or "").strip()
            if not raw:
                continue
            key = normalize_key(raw)
            if key in seen:
                continue
            seen.add(key)
            keys.append(key)
    return keys


def build_reader(keys: List[KeyBytes], bits_per_key: int = BITS_PER_KEY, block_size: int = BLOCK_SIZE) -> FilteredBlockReader:
    """Chia khóa thành các khối và dựng bộ lọc cho từng khối."""

    policy = create_policy(bits_per_key)
    reader = FilteredBlockReader(policy)
    start = time.time()

    for offset in range(0, len(keys), block_size):
        chunk = keys[offset:offset + block_size]
        block_index = reader.add_block({key: b"v:" + key for key in chunk})
        if (block_index + 1) % 50 == 0:
            print(
                f"[Tiến độ dựng bộ lọc] khối={block_index + 1} khóa={offset + len(chunk)}/{len(keys)} "
                f"bytes_bộ_lọc={reader.metrics.filter_bytes_built:,}"
            )

    print(
        "[Init] Dựng bộ lọc: policy={} bits_per_key={} k={} khối={} khóa={} bytes_bộ_lọc={:,} "
        "thời_gian={:.2f}s".format(
            policy.name(), policy.bits_per_key(), policy.k_hash(), reader.block_count(), len(keys),
            reader.metrics.filter_bytes_built, time.time() - start,
        )
    )
    return reader


def run_query_dataset(
    reader: FilteredBlockReader,
    csv_path: str,
    column: str = KEY_COLUMN,
    verbose: bool = False,
    max_rows: Optional[int] = None,
) -> Dict[str, int | float]:
    """Stream log truy vấn CSV qua mọi khối bằng fast_check, trả về thống kê."""

    stats: Dict[str, int | float] = {
        "total_queries": 0,
        "found": 0,
        "block_checks": 0,
        "filter_negative": 0,
        "block_reads": 0,
        "filter_false_positive": 0,
    }

    if not os.path.exists(csv_path):
        raise FileNotFoundError(f"Dataset not found: {csv_path}")

    start_time = time.time()
    start_mem = _current_memory_bytes()

    with open(csv_path, newline="", encoding="utf-8") as f:
        rows = csv.DictReader(f)
        for idx, row in enumerate(rows, start=1):
            raw = (row.get(column) or "").strip()
            if not raw:
                continue

            stats["total_queries"] += 1
            key = normalize_key(raw)
            verdict = "ABSENT"
            for block_index in range(reader.block_count() - 1, -1, -1):
                stats["block_checks"] += 1
                result = reader.fast_check(block_index, key)
                if result is CheckResult.ABSENT:
                    stats["filter_negative"] += 1
                    continue
                stats["block_reads"] += 1
                if result is CheckResult.PRESENT:
                    stats["found"] += 1
                    verdict = f"FOUND@{block_index}"
                    break
                stats["filter_false_positive"] += 1

            if verbose:
                print(f"[Dòng {idx}] key={raw} -> phán đoán={verdict}")

            if max_rows is not None and stats["total_queries"] >= max_rows:
                break

            if idx % 50000 == 0:
                elapsed = max(1e-9, time.time() - start_time)
                print(
                    f"[Replay tiến độ] đã_xử_lý={idx} found={stats['found']} "
                    f"đọc_khối={stats['block_reads']} fp={stats['filter_false_positive']} "
                    f"throughput={stats['total_queries'] / elapsed:,.0f} q/s "
                    f"mem={_current_memory_bytes():,} bytes"
                )

    stats["duration_sec"] = time.time() - start_time
    stats["start_mem_bytes"] = start_mem
    stats["end_mem_bytes"] = _current_memory_bytes()
    return stats


def print_stats(stats: Dict[str, int | float]) -> None:
    total = stats.get("total_queries", 0)
    found = stats.get("found", 0)
    checks = stats.get("block_checks", 0)
    negative = stats.get("filter_negative", 0)
    reads = stats.get("block_reads", 0)
    fp = stats.get("filter_false_positive", 0)
    duration = stats.get("duration_sec") or 0.0
    end_mem = stats.get("end_mem_bytes")
    start_mem = stats.get("start_mem_bytes")

    print("\n=== Tóm tắt kết quả ===")
    print(f"Tổng số truy vấn: {total}")
    print(f"Tìm thấy: {found}")
    print("")
    print(f"Lượt kiểm tra khối: {checks}")
    print(f" ├─ Bộ lọc âm (bỏ qua đọc khối): {negative}")
    print(f" └─ Đọc khối thật: {reads}")
    print(f"     └─ Bộ lọc dương giả: {fp}")

    if duration > 0 and total > 0:
        print(f"Thời gian chạy: {duration:.1f}s (~{total / duration:,.0f} q/s)")
    if end_mem is not None and start_mem is not None:
        print(f"Memory tiến trình (kết thúc): {end_mem:,} bytes (Δ={end_mem - start_mem:+,} bytes)")

    print("Các tỉ lệ chính:")
    if checks > 0:
        print(f"- Tỉ lệ đọc khối tránh được ≈ {negative}/{checks} ≈ {negative / checks:.2%}")
    if negative + fp > 0:
        print(f"- FPR thực tế ≈ {fp}/{negative + fp} ≈ {fp / (negative + fp):.2%}")


def choose_dataset() -> tuple[str, str]:
    options = {
        "1": ("Truy vấn mẫu", QUERIES_CSV, KEY_COLUMN),
        "2": ("Tự nhập đường dẫn", None, None),
    }

    print("\nChọn dataset truy vấn để replay:")
    for key, (title, path, _) in options.items():
        suffix = f" ({path})" if path else ""
        print(f" {key}. {title}{suffix}")

    choice = input("Chọn dataset [1]: ").strip() or "1"
    selected = options.get(choice)
    if selected is None:
        print("Lựa chọn không hợp lệ, dùng mặc định 1.")
        selected = options["1"]

    title, path, column = selected
    if path is None:
        custom = input("Nhập đường dẫn CSV: ").strip()
        column = input(f"Nhập tên cột khóa [{KEY_COLUMN}]: ").strip() or KEY_COLUMN
        return custom, column
    return path, column or KEY_COLUMN


def _ask_bits_per_key() -> int:
    raw = input(f"bits_per_key [{BITS_PER_KEY}]: ").strip()
    if not raw:
        return BITS_PER_KEY
    return int(raw)


def main() -> None:
    print("=== Demo Bloom filter cho khối dữ liệu (log tiếng Việt) ===")
    reader: Optional[FilteredBlockReader] = None

    while True:
        print("\nMenu:")
        print(" 1. Nạp khóa và dựng bộ lọc cho từng khối")
        print(" 2. Chọn dataset truy vấn và chạy fast_check")
        print(" 3. Thoát")
        choice = input("Chọn [1/2/3]: ").strip()

        if choice == "1" or choice == "":
            try:
                bits_per_key = _ask_bits_per_key()
                reader = build_reader(load_keys(KEYS_CSV), bits_per_key=bits_per_key)
            except (FileNotFoundError, ValueError) as exc:
                print(f"Không dựng được bộ lọc: {exc}")
        elif choice == "2":
            if reader is None:
                print("Hãy nạp khóa trước (chọn 1).")
                continue
            dataset_path, column = choose_dataset()
            verbose = input("In log từng dòng? [y/N]: ").strip().lower() == "y"
            try:
                stats = run_query_dataset(reader, dataset_path, column=column, verbose=verbose)
            except FileNotFoundError as exc:
                print(f"Không chạy được dataset: {exc}")
                continue
            print_stats(stats)
        elif choice == "3":
            print("Thoát.")
            break
        else:
            print("Lựa chọn không hợp lệ.")


if __name__ == "__main__":
    main()
