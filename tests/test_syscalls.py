import struct

import pytest

from alphaos.heap import KernelHeap
from alphaos.status import KernelPanic, MAX_ISR80H_COMMANDS, KernelError, Status
from alphaos.syscalls import (
    CommandTable,
    SystemCommand,
    idt_descriptor,
    print_command,
    register_commands,
    sum_command,
)
from alphaos.task import InterruptFrame, TaskList

HEAP_START = 0x100000


@pytest.fixture
def setup():
    heap = KernelHeap(start=HEAP_START, end=HEAP_START + 16 * 4096)
    tasks = TaskList(heap)
    task = tasks.new(None)
    stack = heap.zalloc(4096)
    task.registers.esp = stack
    return heap, tasks, stack


def test_idt_descriptor_layout():
    data = idt_descriptor(0x12345678)
    assert data == bytes([0x78, 0x56, 0x08, 0x00, 0x00, 0xEE, 0x34, 0x12])


def test_idt_descriptor_length_and_selector():
    data = idt_descriptor(0)
    assert len(data) == 8
    assert data[2] == 0x08
    assert data[5] == 0xEE


def test_sum_dispatched_by_system_command(setup):
    heap, tasks, stack = setup
    table = CommandTable()
    register_commands(table, tasks, lambda text: None)
    heap.write(stack, struct.pack("<II", 5, 7))
    assert table.handle(SystemCommand.SUM, InterruptFrame()) == 12


def test_handle_unregistered_returns_zero():
    table = CommandTable()
    assert table.handle(5, InterruptFrame()) == 0


def test_handle_out_of_range_returns_zero():
    table = CommandTable()
    table.register(0, lambda frame: 42)
    assert table.handle(-1, InterruptFrame()) == 0
    assert table.handle(MAX_ISR80H_COMMANDS, InterruptFrame()) == 0


def test_handle_dispatches_with_frame():
    table = CommandTable()
    table.register(3, lambda frame: frame.eax)
    assert table.handle(3, InterruptFrame(eax=99)) == 99


def test_handler_returning_none_gives_zero():
    table = CommandTable()
    table.register(2, lambda frame: None)
    assert table.handle(2, InterruptFrame()) == 0


def test_register_duplicate_panics():
    table = CommandTable()
    table.register(1, lambda frame: 0)
    with pytest.raises(KernelPanic, match="already registered"):
        table.register(1, lambda frame: 0)


@pytest.mark.parametrize("command_id", [-1, MAX_ISR80H_COMMANDS])
def test_register_out_of_bounds_panics(command_id):
    table = CommandTable()
    with pytest.raises(KernelPanic, match="out of bounds"):
        table.register(command_id, lambda frame: 0)


def test_sum_command_adds_stack_words(setup):
    heap, tasks, stack = setup
    heap.write(stack, struct.pack("<II", 5, 7))
    assert sum_command(tasks)(InterruptFrame()) == 5 + 7


def test_sum_is_commutative(setup):
    heap, tasks, stack = setup
    command = sum_command(tasks)
    heap.write(stack, struct.pack("<II", 11, 30))
    first = command(InterruptFrame())
    heap.write(stack, struct.pack("<II", 30, 11))
    assert command(InterruptFrame()) == first


def test_print_command_outputs_string(setup):
    heap, tasks, stack = setup
    text_address = stack + 64
    heap.write(text_address, b"Hello\0")
    heap.write(stack, struct.pack("<I", text_address))
    output = []
    result = print_command(tasks, output.append)(InterruptFrame())
    assert output == ["Hello"]
    assert result == 0


def test_print_command_truncates_to_buffer(setup):
    heap, tasks, stack = setup
    text_address = stack + 1024
    heap.write(text_address, b"a" * 2000 + b"\0")
    heap.write(stack, struct.pack("<I", text_address))
    output = []
    print_command(tasks, output.append)(InterruptFrame())
    assert len(output[0]) == 1023


def test_commands_without_current_task_panic():
    heap = KernelHeap(start=HEAP_START, end=HEAP_START + 4 * 4096)
    tasks = TaskList(heap)
    with pytest.raises(KernelPanic):
        sum_command(tasks)(InterruptFrame())


def test_print_from_unmapped_memory_fails(setup):
    heap, tasks, stack = setup
    heap.write(stack, struct.pack("<I", 0x10))
    with pytest.raises(KernelError) as info:
        print_command(tasks, lambda text: None)(InterruptFrame())
    assert info.value.status == Status.EINVARG


def test_register_commands_installs_both(setup):
    heap, tasks, stack = setup
    table = CommandTable()
    output = []
    register_commands(table, tasks, output.append)
    assert len(table) == 2
    heap.write(stack + 32, b"hi\0")
    heap.write(stack, struct.pack("<I", stack + 32))
    table.handle(SystemCommand.PRINT, InterruptFrame())
    assert output == ["hi"]


def test_register_commands_twice_panics(setup):
    _, tasks, _ = setup
    table = CommandTable()
    register_commands(table, tasks, print)
    with pytest.raises(KernelPanic):
        register_commands(table, tasks, print)