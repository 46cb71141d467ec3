import pytest

from alphaos.heap import (
    BLOCK_FREE,
    BLOCK_HAS_NEXT,
    BLOCK_IS_FIRST,
    BLOCK_TAKEN,
    Heap,
    KernelHeap,
)
from alphaos.status import HEAP_ADDRESS, HEAP_BLOCK_SIZE, KernelError, Status

START = HEAP_ADDRESS
BLOCK = HEAP_BLOCK_SIZE


def _heap(blocks=10):
    return Heap(START, START + blocks * BLOCK)


def test_new_heap_is_all_free():
    heap = _heap()
    assert heap.total == 10
    assert all(entry == BLOCK_FREE for entry in heap.table)


def test_single_block_allocation():
    heap = _heap()
    address = heap.malloc(1)
    assert address == START
    assert heap.table[0] == BLOCK_TAKEN | BLOCK_IS_FIRST
    assert heap.table[1] == BLOCK_FREE


def test_multi_block_allocation_marks_chain():
    heap = _heap()
    heap.malloc(1)
    address = heap.malloc(3 * BLOCK)
    assert heap.address_to_block(address) == 1
    assert heap.table[1] == BLOCK_TAKEN | BLOCK_IS_FIRST | BLOCK_HAS_NEXT
    assert heap.table[2] == BLOCK_TAKEN | BLOCK_HAS_NEXT
    assert heap.table[3] == BLOCK_TAKEN
    assert heap.table[4] == BLOCK_FREE


def test_size_rounds_up_to_blocks():
    heap = _heap()
    heap.malloc(BLOCK + 1)
    assert sum(1 for entry in heap.table if entry & BLOCK_TAKEN) == 2


def test_free_releases_whole_chain_only():
    heap = _heap()
    first = heap.malloc(2 * BLOCK)
    second = heap.malloc(BLOCK)
    heap.free(first)
    assert heap.table[0] == BLOCK_FREE
    assert heap.table[1] == BLOCK_FREE
    assert heap.table[heap.address_to_block(second)] & BLOCK_TAKEN


def test_first_fit_reuses_hole():
    heap = _heap()
    a = heap.malloc(BLOCK)
    b = heap.malloc(2 * BLOCK)
    heap.malloc(BLOCK)
    heap.free(b)
    assert heap.malloc(2 * BLOCK) == b
    heap.free(a)
    assert heap.malloc(BLOCK) == a


def test_exhaustion_raises_enomem():
    heap = _heap(4)
    with pytest.raises(KernelError) as info:
        heap.malloc(5 * BLOCK)
    assert info.value.status is Status.ENOMEM


def test_short_trailing_run_is_not_enough():
    heap = _heap(4)
    heap.malloc(2 * BLOCK)
    with pytest.raises(KernelError) as info:
        heap.malloc(3 * BLOCK)
    assert info.value.status is Status.ENOMEM


def test_block_address_round_trip():
    heap = _heap()
    for block in range(heap.total):
        assert heap.address_to_block(heap.block_to_address(block)) == block


def test_unaligned_bounds_rejected():
    with pytest.raises(KernelError) as info:
        Heap(START + 1, START + 10 * BLOCK)
    assert info.value.status is Status.EINVARG


def test_table_size_mismatch_rejected():
    with pytest.raises(KernelError) as info:
        Heap(START, START + 10 * BLOCK, total=9)
    assert info.value.status is Status.EINVARG


def test_free_outside_heap_rejected():
    heap = _heap()
    with pytest.raises(KernelError) as info:
        heap.free(START - BLOCK)
    assert info.value.status is Status.EINVARG


def test_kernel_heap_default_location():
    kheap = KernelHeap()
    assert kheap.block_to_address(0) == HEAP_ADDRESS
    assert kheap.malloc(10) == HEAP_ADDRESS


def test_kernel_heap_write_read_round_trip_across_blocks():
    kheap = KernelHeap(START, START + 8 * BLOCK)
    address = kheap.malloc(3 * BLOCK)
    payload = bytes(range(256)) * 20
    kheap.write(address + BLOCK - 100, payload)
    assert kheap.read(address + BLOCK - 100, len(payload)) == payload


def test_kernel_heap_zalloc_clears_memory():
    kheap = KernelHeap(START, START + 8 * BLOCK)
    address = kheap.malloc(BLOCK)
    kheap.write(address, b"\xaa" * 64)
    kheap.free(address)
    again = kheap.zalloc(64)
    assert again == address
    assert kheap.read(again, 64) == bytes(64)


def test_kernel_heap_untouched_memory_reads_zero():
    kheap = KernelHeap(START, START + 4 * BLOCK)
    assert kheap.read(START + 5, 20) == bytes(20)


def test_kernel_heap_access_outside_rejected():
    kheap = KernelHeap(START, START + 2 * BLOCK)
    with pytest.raises(KernelError) as info:
        kheap.read(START + 2 * BLOCK - 4, 8)
    assert info.value.status is Status.EINVARG
    with pytest.raises(KernelError):
        kheap.write(START - 1, b"x")