# benchmark/run_benchmark.py
"""
Benchmark Bloom filter khối theo bits_per_key

- Đo FPR thực nghiệm trên khóa vắng mặt, so với FPR lý thuyết (1 - e^{-k/b})^k
- Throughput dựng bộ lọc (keys/s) và truy vấn (queries/s)
- Kích thước bộ lọc (bytes) và memory tiến trình (psutil RSS)
- Multiple runs với avg ± std (numpy), in bảng (tabulate), vẽ biểu đồ (matplotlib)
- Khóa lấy từ CSV/Parquet trong data/ (pandas) hoặc sinh ngẫu nhiên
"""

import math
import os
import sys
import time
from glob import glob
from typing import Dict, List, Optional, Set

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import psutil

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))
from blockfilter.bloom.bloom_filter import create_policy  # noqa: E402

BITS_PER_KEY_GRID = [2, 4, 6, 8, 10, 12, 16, 20]


def generate_random_keys(count: int, rng: np.random.Generator, exclude: Optional[Set[bytes]] = None) -> List[bytes]:
    """Sinh khóa ngẫu nhiên 16 byte, không trùng với exclude"""
    exclude = exclude or set()
    keys: List[bytes] = []
    while len(keys) < count:
        key = rng.bytes(16)
        if key not in exclude:
            keys.append(key)
    return keys


def load_keys(file_paths: List[str], sample_size: int = 50_000, key_column: str = "key") -> Set[bytes]:
    """
    Load khóa từ nhiều file (CSV hoặc Parquet)
    - Dedup khóa
    - Dừng khi đủ sample_size
    """
    keys: Set[bytes] = set()
    process = psutil.Process()

    print(f"Loading khóa từ {len(file_paths)} files (target ~{sample_size:,} unique)...")
    print(f"  Memory trước load: {process.memory_info().rss / 1024 / 1024:.1f} MB")

    for path in file_paths:
        print(f"  Processing {os.path.basename(path)}...")
        if path.endswith(".parquet"):
            df = pd.read_parquet(path)
        else:
            df = pd.read_csv(path, low_memory=False)

        column = key_column
        if column not in df.columns:
            possible = [c for c in df.columns if "key" in c.lower()]
            if not possible:
                print(f"    Bỏ qua: không có cột khóa trong {os.path.basename(path)}")
                continue
            column = possible[0]
            print(f"    Auto-detect key column: {column}")

        for value in df[column].dropna().astype(str).unique().tolist():
            keys.add(value.encode("utf-8"))
            if len(keys) >= sample_size:
                print(f"  Đạt {sample_size:,} unique khóa.")
                print(f"  Memory sau load: {process.memory_info().rss / 1024 / 1024:.1f} MB")
                return keys

    print(f"  Tổng unique khóa: {len(keys):,}")
    return keys


def theoretical_fpr(bits_per_key: int, k: int) -> float:
    """FPR lý thuyết: (1 - e^{-k/b})^k"""
    if bits_per_key <= 0:
        return 1.0
    return (1.0 - math.exp(-k / float(bits_per_key))) ** k


def benchmark_bits_per_key(bits_per_key: int, keys: List[bytes], probes: List[bytes]) -> Dict[str, float]:
    """Benchmark một giá trị bits_per_key"""
    policy = create_policy(bits_per_key)

    start_build = time.time()
    filter_data = policy.build_filter(keys)
    build_duration = time.time() - start_build

    missed = sum(1 for key in keys if not policy.may_match(key, filter_data))
    if missed:
        raise RuntimeError(f"bits_per_key={bits_per_key}: {missed} âm tính giả")

    start_query = time.time()
    false_positives = sum(1 for key in probes if policy.may_match(key, filter_data))
    query_duration = time.time() - start_query

    return {
        "fpr": false_positives / len(probes),
        "build_kps": len(keys) / max(1e-9, build_duration),
        "query_qps": len(probes) / max(1e-9, query_duration),
        "filter_bytes": len(filter_data),
        "memory_kb": psutil.Process().memory_info().rss / 1024,
        "k": policy.k_hash(),
    }


def run_full_benchmark(
    data_paths: List[str],
    sample_size: int = 20_000,
    total_probes: int = 50_000,
    num_runs: int = 3,
    seed: int = 301,
) -> dict:
    """Chạy benchmark full với multiple runs"""
    rng = np.random.default_rng(seed)
    results: Dict[int, List[Dict[str, float]]] = {b: [] for b in BITS_PER_KEY_GRID}

    for run in range(1, num_runs + 1):
        print(f"\n{'='*20} RUN {run}/{num_runs} {'='*20}")

        if data_paths:
            key_set = load_keys(data_paths, sample_size=sample_size)
        else:
            key_set = set(generate_random_keys(sample_size, rng))
        probes = generate_random_keys(total_probes, rng, exclude=key_set)
        keys = list(key_set)
        print(f"Prepared: {len(keys):,} khóa dựng bộ lọc, {len(probes):,} khóa thăm dò vắng mặt")

        for bits_per_key in BITS_PER_KEY_GRID:
            res = benchmark_bits_per_key(bits_per_key, keys, probes)
            results[bits_per_key].append(res)
            print(
                f"  [bits_per_key={bits_per_key:>2}] k={res['k']} fpr={res['fpr']:.4%} "
                f"bytes={res['filter_bytes']:,} query={res['query_qps']:,.0f} q/s"
            )

        print(f"Run {run} hoàn thành.\n")

    # Tính avg ± std
    summary = {}
    for bits_per_key, runs in results.items():
        fprs = [r["fpr"] for r in runs]
        builds = [r["build_kps"] for r in runs]
        queries = [r["query_qps"] for r in runs]
        memories = [r["memory_kb"] for r in runs]
        k = int(runs[0]["k"])

        summary[bits_per_key] = {
            "k": k,
            "fpr_theory": theoretical_fpr(bits_per_key, k),
            "fpr_mean": np.mean(fprs),
            "fpr_std": np.std(fprs),
            "build_mean": np.mean(builds),
            "build_std": np.std(builds),
            "query_mean": np.mean(queries),
            "query_std": np.std(queries),
            "filter_bytes": runs[0]["filter_bytes"],
            "memory_mean": np.mean(memories),
            "memory_std": np.std(memories),
        }

    print_results(summary, num_runs)
    plot_results(summary)
    return summary


def print_results(summary: dict, num_runs: int):
    """In bảng kết quả đẹp"""
    from tabulate import tabulate

    table = []
    for bits_per_key, s in summary.items():
        table.append([
            bits_per_key,
            s["k"],
            f"{s['fpr_mean']:.4%} ± {s['fpr_std']:.4%}",
            f"{s['fpr_theory']:.4%}",
            f"{s['build_mean']:,.0f} ± {s['build_std']:,.0f} keys/s",
            f"{s['query_mean']:,.0f} ± {s['query_std']:,.0f} qps",
            f"{s['filter_bytes']:,} B",
            f"{s['memory_mean']:,.0f} ± {s['memory_std']:,.0f} KB",
        ])

    print(f"\n=== KẾT QUẢ BENCHMARK (Avg ± Std over {num_runs} runs) ===")
    print(tabulate(
        table,
        headers=["bits/key", "k", "FPR", "FPR lý thuyết", "Build", "Query", "Filter", "Memory"],
        tablefmt="github",
    ))


def plot_results(summary: dict):
    """Vẽ biểu đồ FPR (thực nghiệm vs lý thuyết) và throughput với error bars"""
    grid = list(summary.keys())
    fpr_means = [summary[b]["fpr_mean"] * 100 for b in grid]
    fpr_stds = [summary[b]["fpr_std"] * 100 for b in grid]
    fpr_theory = [summary[b]["fpr_theory"] * 100 for b in grid]
    query_means = [summary[b]["query_mean"] / 1000 for b in grid]
    query_stds = [summary[b]["query_std"] / 1000 for b in grid]

    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(14, 6))

    # FPR
    ax1.errorbar(grid, fpr_means, yerr=fpr_stds, capsize=5, marker="o", color="green", label="Thực nghiệm")
    ax1.plot(grid, fpr_theory, linestyle="--", color="orange", label="Lý thuyết")
    ax1.set_yscale("log")
    ax1.set_xlabel("bits_per_key")
    ax1.set_ylabel("False Positive Rate (%)")
    ax1.set_title("False Positive Rate")
    ax1.legend()

    # Throughput
    ax2.bar([str(b) for b in grid], query_means, yerr=query_stds, capsize=5, color="green", alpha=0.8)
    ax2.set_xlabel("bits_per_key")
    ax2.set_ylabel("Throughput (K queries/s)")
    ax2.set_title("Query Throughput")

    plt.suptitle("Bloom filter khối: FPR và throughput theo bits_per_key")
    plt.tight_layout()

    os.makedirs("plots", exist_ok=True)
    plot_path = "plots/benchmark_bits_per_key.png"
    plt.savefig(plot_path, dpi=200)
    plt.close(fig)
    print(f"\nBiểu đồ đã lưu tại: {plot_path}")


if __name__ == "__main__":
    # Đặt file CSV/Parquet có cột 'key' vào folder 'data/'; không có thì sinh khóa ngẫu nhiên
    data_files = glob("data/*.csv") + glob("data/*.parquet")
    if not data_files:
        print("Không tìm thấy file data, dùng khóa ngẫu nhiên.")
    run_full_benchmark(
        data_paths=data_files[:4],
        sample_size=20_000,
        total_probes=50_000,
        num_runs=3,
    )
