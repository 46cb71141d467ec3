"""System call dispatch and the system calls offered to user programs."""

import struct
from enum import IntEnum

from .status import KERNEL_CODE_SELECTOR, MAX_ISR80H_COMMANDS, KernelPanic

PRINT_BUFFER_SIZE = 1024

_IDT_TYPE_ATTR = 0xEE
_IDT_DESCRIPTOR = struct.Struct("<HHBBH")


class SystemCommand(IntEnum):
    """Numbers of the system calls made through interrupt 0x80."""

    SUM = 0
    PRINT = 1


def idt_descriptor(address):
    """Encode the 8-byte interrupt gate for a handler at ``address``."""
    return _IDT_DESCRIPTOR.pack(
        address & 0xFFFF,
        KERNEL_CODE_SELECTOR,
        0x00,
        _IDT_TYPE_ATTR,
        (address >> 16) & 0xFFFF,
    )


class CommandTable:
    """The system call handlers, indexed by command number."""

    def __init__(self):
        self._commands = {}

    def __contains__(self, command_id):
        return command_id in self._commands

    def __len__(self):
        return len(self._commands)

    def register(self, command_id, command):
        """Install ``command`` under ``command_id``; a bad or reused id is fatal."""
        if not 0 <= command_id < MAX_ISR80H_COMMANDS:
            raise KernelPanic(
                "isr80h_register_command(): Invalid command ID, index out of bounds"
            )
        if command_id in self._commands:
            raise KernelPanic("isr80h_register_command(): Command already registered")
        self._commands[command_id] = command

    def handle(self, command, frame):
        """Run the handler for ``command`` and return its result.

        Unknown or out-of-range commands return 0.
        """
        if not 0 <= command < MAX_ISR80H_COMMANDS:
            return 0
        handler = self._commands.get(command)
        if handler is None:
            return 0
        result = handler(frame)
        return 0 if result is None else result


def _current_task(tasks):
    task = tasks.current
    if task is None:
        raise KernelPanic("system call made with no current task")
    return task


def sum_command(tasks):
    """The call that adds the two words on top of the caller's stack."""

    def command(frame):
        task = _current_task(tasks)
        second = task.get_stack_item(1)
        first = task.get_stack_item(0)
        return (first + second) & 0xFFFFFFFF

    return command


def print_command(tasks, output):
    """The call that prints the string whose address is on top of the caller's stack."""

    def command(frame):
        task = _current_task(tasks)
        address = task.get_stack_item(0)
        output(task.copy_string(address, PRINT_BUFFER_SIZE))
        return 0

    return command


def register_commands(table, tasks, output):
    """Register every kernel system call in ``table``."""
    table.register(SystemCommand.SUM, sum_command(tasks))
    table.register(SystemCommand.PRINT, print_command(tasks, output))