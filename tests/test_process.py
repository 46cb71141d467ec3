import pytest

from alphaos.disk import Disk
from alphaos.fat16 import DirectoryItem, Fat16Header
from alphaos.heap import KernelHeap
from alphaos.process import ProcessTable
from alphaos.status import (
    MAX_PROCESSES,
    PROGRAM_VIRTUAL_ADDRESS,
    PROGRAM_VIRTUAL_STACK_ADDRESS_END,
    USER_PROGRAM_STACK_SIZE,
    KernelError,
    Status,
)
from alphaos.vfs import FileSystemManager

PROGRAM = bytes(range(200)) * 3


def _sector(data):
    return bytes(data).ljust(512, b"\0")


def build_image(files):
    header = Fat16Header(
        bytes_per_sector=512,
        sectors_per_cluster=1,
        reserved_sectors=1,
        fat_copies=2,
        sectors_per_fat=1,
        root_dir_entries=16,
    )
    fat = bytearray(512)
    root = bytearray()
    data = bytearray()
    cluster = 2
    for name, content in files.items():
        stem, _, ext = name.partition(".")
        clusters = max(1, -(-len(content) // 512))
        for step in range(clusters):
            current = cluster + step
            following = current + 1 if step < clusters - 1 else 0xFFFF
            fat[current * 2:current * 2 + 2] = following.to_bytes(2, "little")
        root += DirectoryItem(
            filename=stem.ljust(8).encode(),
            ext=ext.ljust(3).encode(),
            low_first_cluster=cluster,
            file_size=len(content),
        ).to_bytes()
        data += content.ljust(clusters * 512, b"\0")
        cluster += clusters
    return _sector(header.to_bytes()) + _sector(fat) + bytes(512) + _sector(root) + bytes(data)


@pytest.fixture
def table():
    fs = FileSystemManager()
    fs.attach_disk(Disk(build_image({"BLANK.BIN": PROGRAM})))
    return ProcessTable(fs, KernelHeap())


def test_load_places_program(table):
    process = table.load("0:/blank.bin")
    assert process.id == 0
    assert process.size == len(PROGRAM)
    assert process.filename == "0:/blank.bin"
    assert table.get(0) is process


def test_program_mapped_at_virtual_address(table):
    process = table.load("0:/BLANK.BIN")
    assert process.read_virtual(PROGRAM_VIRTUAL_ADDRESS, len(PROGRAM)) == PROGRAM


def test_stack_mapped(table):
    process = table.load("0:/BLANK.BIN")
    top = PROGRAM_VIRTUAL_STACK_ADDRESS_END + USER_PROGRAM_STACK_SIZE - 3
    process.write_virtual(top, b"abc")
    assert table.heap.read(process.stack + USER_PROGRAM_STACK_SIZE - 3, 3) == b"abc"
    assert process.read_virtual(top, 3) == b"abc"


def test_first_process_is_current(table):
    process = table.load("0:/BLANK.BIN")
    assert table.current is process
    assert process.task.process is process
    assert table.tasks.current is process.task


def test_descriptors_released_after_load(table):
    table.load("0:/BLANK.BIN")
    assert table.filesystems.fopen("0:/BLANK.BIN", "r") == 1


def test_slots_fill_in_order(table):
    first = table.load("0:/BLANK.BIN")
    second = table.load("0:/BLANK.BIN")
    assert (first.id, second.id) == (0, 1)
    assert table.get_free_slot() == 2


def test_missing_file(table):
    with pytest.raises(KernelError) as info:
        table.load("0:/NOPE.BIN")
    assert info.value.status is Status.EIO
    assert table.get(0) is None
    assert len(table.tasks) == 0


def test_taken_slot(table):
    table.load_for_slot("0:/BLANK.BIN", 3)
    with pytest.raises(KernelError) as info:
        table.load_for_slot("0:/BLANK.BIN", 3)
    assert info.value.status is Status.EISTKN


def test_table_full(table):
    for _ in range(MAX_PROCESSES):
        table.load("0:/BLANK.BIN")
    with pytest.raises(KernelError) as info:
        table.load("0:/BLANK.BIN")
    assert info.value.status is Status.EISTKN


@pytest.mark.parametrize("slot", [-1, MAX_PROCESSES])
def test_get_out_of_range(table, slot):
    assert table.get(slot) is None
    with pytest.raises(KernelError) as info:
        table.load_for_slot("0:/BLANK.BIN", slot)
    assert info.value.status is Status.EINVARG


def test_keyboard_buffer_per_process(table):
    first = table.load("0:/BLANK.BIN")
    second = table.load("0:/BLANK.BIN")
    first.keyboard.push("a")
    assert second.keyboard.pop() is None
    assert first.keyboard.pop() == "a"