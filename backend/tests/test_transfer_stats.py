"""Tests for transfer counters and size formatting."""

import threading

import pytest

from tunehost.services.transfer_stats import TransferStats
from tunehost.utils.formatting import encode_uri_component, format_file_size, format_transfer


def test_starts_at_zero():
    snap = TransferStats().snapshot()
    assert snap.total_bytes == 0
    assert snap.requests == 0


def test_record_accumulates():
    stats = TransferStats()
    stats.record(1000)
    stats.record(100)
    snap = stats.snapshot()
    assert snap.total_bytes == 1100
    assert snap.requests == 2


def test_negative_rejected():
    with pytest.raises(ValueError):
        TransferStats().record(-1)


def test_concurrent_records_are_not_lost():
    stats = TransferStats()

    def worker():
        for _ in range(1000):
            stats.record(3)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    snap = stats.snapshot()
    assert snap.requests == 8000
    assert snap.total_bytes == 24000


@pytest.mark.parametrize(
    "size,expected",
    [
        (0, "0.00B"),
        (1023, "1023.00B"),
        (1024, "1.00KB"),
        (1536, "1.50KB"),
        (5 * 1024 * 1024, "5.00MB"),
        (3 * 1024**3, "3.00GB"),
        (2048 * 1024**3, "2048.00GB"),
    ],
)
def test_format_file_size(size, expected):
    assert format_file_size(size) == expected


@pytest.mark.parametrize(
    "total,expected",
    [
        (0, "0B"),
        (100, "100B"),
        (1024, "1KB"),
        (1536, "1.5KB"),
        (1000 * 1024 + 1, "1000KB"),
        (1024**4, "1TB"),
    ],
)
def test_format_transfer(total, expected):
    assert format_transfer(total) == expected


def test_encode_uri_component():
    assert encode_uri_component("a b (1)'!*.mp3") == "a%20b%20(1)'!*.mp3"
    assert encode_uri_component("周.mp3") == "%E5%91%A8.mp3"
    assert encode_uri_component("a/b?.mp3") == "a%2Fb%3F.mp3"
