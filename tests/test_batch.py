"""
Batch Runner Test Suite
=======================
"""

import time

from pixelcore.batch import BatchResult, pool_size, run_batch
from pixelcore.buffer import PixelBuffer
from pixelcore.tonal import TonalOptions, apply_tonal


def _buffers(n, size=4):
    return [PixelBuffer.solid(size, size, (i, i, i, 255)) for i in range(n)]


def test_results_come_back_in_input_order():
    buffers = _buffers(6)

    def slow_first(buffer):
        # Earlier jobs finish later
        time.sleep(0.01 * (6 - buffer.pixel(0, 0)[0]))
        return buffer.pixel(0, 0)[0]

    results = run_batch(buffers, slow_first, max_workers=6)
    assert [r.index for r in results] == list(range(6))
    assert [r.value for r in results] == list(range(6))
    assert all(r.ok for r in results)


def test_failures_are_isolated():
    def explode_on_three(buffer):
        if buffer.pixel(0, 0)[0] == 3:
            raise RuntimeError("boom")
        return buffer.pixel(0, 0)[0]

    results = run_batch(_buffers(5), explode_on_three, max_workers=2)
    assert [r.ok for r in results] == [True, True, True, False, True]
    assert isinstance(results[3].error, RuntimeError)
    assert results[4].value == 4


def test_engine_calls_match_sequential_runs():
    buffers = _buffers(4, size=8)
    options = TonalOptions(brightness=20, contrast=10)
    results = run_batch(buffers, lambda b: apply_tonal(b, options))
    assert [r.value for r in results] == [apply_tonal(b, options) for b in buffers]


def test_pool_size_is_bounded_by_memory():
    buffers = [PixelBuffer.solid(100, 100, (0, 0, 0, 255)) for _ in range(10)]
    # 1 MiB / (40000 bytes * 4 working copies) = 6
    assert pool_size(buffers, max_workers=16, memory_ceiling_mb=1) == 6
    assert pool_size(buffers, max_workers=3, memory_ceiling_mb=1) == 3
    assert pool_size(buffers[:2], max_workers=16, memory_ceiling_mb=1) == 2


def test_pool_size_never_drops_below_one():
    huge = [PixelBuffer.solid(1024, 1024, (0, 0, 0, 255))]
    assert pool_size(huge, max_workers=8, memory_ceiling_mb=1) == 1
    assert pool_size([]) == 1


def test_empty_batch():
    assert run_batch([], lambda b: b) == []


def test_batch_result_ok():
    assert BatchResult(index=0, value=1).ok
    assert not BatchResult(index=0, error=ValueError("x")).ok
