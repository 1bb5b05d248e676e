# -*- coding: utf-8 -*-
"""
Test script cho Bloom filter khối (dựng + kiểm tra).
"""

import sys
import os
import random
import string
import struct

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))
from blockfilter.bloom.bloom_filter import (
    POLICY_NAME,
    BloomFilterPolicy,
    create_default_policy,
    create_policy,
)
from blockfilter.policy.filter_policy import FilterPolicy


def random_str(rng: random.Random, n: int = 12) -> str:
    """Sinh chuỗi ngẫu nhiên a–z."""
    return ''.join(rng.choices(string.ascii_lowercase, k=n))


def int_key(i: int) -> bytes:
    """Khóa 4 byte little-endian."""
    return struct.pack("<I", i)


def false_positive_rate(policy: BloomFilterPolicy, filter_data: bytes) -> float:
    hits = sum(policy.may_match(int_key(i + 1_000_000_000), filter_data) for i in range(10_000))
    return hits / 10_000.0


def test_empty_filter():
    policy = create_policy(10)
    filter_data = policy.build_filter([])
    assert len(filter_data) == 9
    assert filter_data == bytes(8) + b"\x06"
    assert not policy.may_match(b"hello", filter_data)
    assert not policy.may_match(b"world", filter_data)
    assert not policy.may_match(b"", filter_data)


def test_small_filter_golden_bytes():
    policy = create_policy(10)
    filter_data = policy.build_filter([b"hello", b"world"])
    assert filter_data == bytes.fromhex("1140004144104010") + b"\x06"
    assert policy.may_match(b"hello", filter_data)
    assert policy.may_match(b"world", filter_data)
    assert not policy.may_match(b"x", filter_data)
    assert not policy.may_match(b"foo", filter_data)


def test_layout_and_trailer():
    for bits_per_key in (1, 5, 10, 20, 1000):
        policy = create_policy(bits_per_key)
        keys = [int_key(i) for i in range(100)]
        filter_data = policy.build_filter(keys)
        assert len(filter_data) == policy.filter_size(len(keys)) + 1
        assert filter_data[-1] == policy.k_hash()


def test_varying_lengths():
    policy = create_default_policy()
    for length in (1, 10, 100, 1000, 10_000):
        keys = [int_key(i) for i in range(length)]
        filter_data = policy.build_filter(keys)
        assert len(filter_data) <= (length * 10 / 8) + 40, f"Bộ lọc quá lớn cho {length} khóa"

        for key in keys:
            assert policy.may_match(key, filter_data), f"Âm tính giả với length={length}"

        rate = false_positive_rate(policy, filter_data)
        assert rate <= 0.02, f"FPR quá cao ({rate:.2%}) với length={length}"


def test_random_keys_fpr():
    """10 bit/khóa: khóa ngẫu nhiên không có trong tập bị loại ≥ ~99%."""
    rng = random.Random(301)
    policy = create_policy(10)
    dataset = {random_str(rng) for _ in range(5_000)}
    filter_data = policy.build_filter(dataset)

    assert all(policy.may_match(item, filter_data) for item in dataset)

    probes = [random_str(rng, 14) for _ in range(10_000)]
    false_positive = sum(policy.may_match(item, filter_data) for item in probes)
    empirical_fpr = false_positive / len(probes)
    assert empirical_fpr < 0.02, f"FPR quá cao ({empirical_fpr:.2%})"


def test_no_false_negatives_edge_keys():
    policy = create_policy(10)
    keys = [b"", b"\x00", b"\xff" * 3, os.urandom(1 << 20), b"k" * 4097]
    filter_data = policy.build_filter(keys)
    for key in keys:
        assert policy.may_match(key, filter_data)


def test_duplicates_and_order_do_not_change_bits():
    policy = create_policy(10)
    keys = [int_key(i) for i in range(50)]
    shuffled = list(keys)
    random.Random(7).shuffle(shuffled)
    base = policy.build_filter(keys)
    assert policy.build_filter(shuffled) == base
    # Trùng lặp tính vào n nên chỉ mảng bit dài hơn; bit đặt cho mỗi khóa không đổi.
    doubled = policy.build_filter(keys + keys)
    assert len(doubled) == policy.filter_size(100) + 1
    assert all(policy.may_match(key, doubled) for key in keys)


def test_deterministic_build():
    policy = create_policy(10)
    keys = [int_key(i) for i in range(1_000)]
    assert policy.build_filter(keys) == policy.build_filter(keys)
    assert create_policy(10).build_filter(iter(keys)) == policy.build_filter(keys)


def test_undersized_buffer_never_matches():
    policy = create_policy(10)
    for filter_data in (b"", b"\x00", b"\x06", b"\xff"):
        assert not policy.may_match(b"hello", filter_data)
        assert not policy.may_match(b"", filter_data)


def test_reserved_k_always_matches():
    policy = create_policy(10)
    for k in (31, 32, 100, 255):
        assert policy.may_match(b"hello", bytes(8) + bytes((k,)))
        assert policy.may_match(b"anything", b"\x00" + bytes((k,)))


def test_zero_k_trailer_matches_everything():
    policy = create_policy(10)
    assert policy.may_match(b"hello", bytes(8) + b"\x00")


def test_cross_parameter_read():
    """k đi theo dữ liệu: chính sách khác tham số vẫn đọc đúng."""
    writer = create_policy(20)
    reader = create_policy(5)
    keys = [int_key(i) for i in range(2_000)]
    filter_data = writer.build_filter(keys)
    assert filter_data[-1] == 13
    assert all(reader.may_match(key, filter_data) for key in keys)
    assert false_positive_rate(reader, filter_data) == false_positive_rate(writer, filter_data)


def test_buffer_types():
    policy = create_policy(10)
    keys = [b"alpha", bytearray(b"beta"), memoryview(b"gamma"), "delta"]
    filter_data = policy.build_filter(keys)
    for view in (filter_data, bytearray(filter_data), memoryview(filter_data)):
        assert policy.may_match(b"alpha", view)
        assert policy.may_match(b"beta", view)
        assert policy.may_match("gamma", view)
        assert policy.may_match(b"delta", view)


def test_rejects_non_bytes_key():
    policy = create_policy(10)
    try:
        policy.build_filter([123])
    except TypeError:
        pass
    else:
        raise AssertionError("build_filter phải báo TypeError với khóa int")


def test_policy_identity():
    policy = create_default_policy()
    assert isinstance(policy, FilterPolicy)
    assert policy.name() == POLICY_NAME == "filter.leveldb.BuiltinBloomFilter2"
    assert policy.bits_per_key() == 10
    assert policy.k_hash() == 6
    assert policy.filter_size(100) == 125
    assert policy == create_policy(10)
    assert policy != create_policy(11)
    assert "k=6" in repr(policy)


def test_zero_bits_per_key_roundtrip():
    """bits_per_key <= 0: bộ lọc tối thiểu 8 byte, k = 1, không âm tính giả."""
    for bits_per_key in (0, -7):
        policy = create_policy(bits_per_key)
        keys = [int_key(i) for i in range(20)]
        filter_data = policy.build_filter(keys)
        assert len(filter_data) == 9
        assert filter_data[-1] == 1
        assert all(policy.may_match(key, filter_data) for key in keys)


def test_huge_bits_per_key_policy():
    assert create_policy(10**400).k_hash() == 30
    assert create_policy(-10**400).k_hash() == 1
    assert create_policy(-10**400).filter_size(1000) == 8
