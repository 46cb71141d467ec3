"""Kernel status codes, kernel errors and system-wide configuration values."""

from enum import IntEnum

KERNEL_CODE_SELECTOR = 0x08
KERNEL_DATA_SELECTOR = 0x10

TOTAL_INTERRUPTS = 512

HEAP_SIZE_BYTES = 104857600
HEAP_BLOCK_SIZE = 4096
HEAP_ADDRESS = 0x01000000
HEAP_TABLE_ADDRESS = 0x00007E00

SECTOR_SIZE = 512

MAX_FILESYSTEMS = 12
MAX_FILEDESCRIPTORS = 512

MAX_PATH_LENGTH = 108
MAX_PATH = 108

TOTAL_GDT_SEGMENTS = 6

PROGRAM_VIRTUAL_ADDRESS = 0x400000
USER_PROGRAM_STACK_SIZE = 1024 * 16
PROGRAM_VIRTUAL_STACK_ADDRESS_START = 0x3FF000
PROGRAM_VIRTUAL_STACK_ADDRESS_END = (
    PROGRAM_VIRTUAL_STACK_ADDRESS_START - USER_PROGRAM_STACK_SIZE
)

MAX_PROGRAM_ALLOCATIONS = 1024
MAX_PROCESSES = 12

USER_DATA_SEGMENT = 0x23
USER_CODE_SEGMENT = 0x1B

MAX_ISR80H_COMMANDS = 1024

KEYBOARD_BUFFER_SIZE = 1024

VGA_WIDTH = 80
VGA_HEIGHT = 25


class Status(IntEnum):
    """Status codes reported by kernel subsystems."""

    ALL_OK = 0
    EIO = 1
    EINVARG = 2
    ENOMEM = 3
    EBADPATH = 4
    EFSNOTUS = 5
    ERDONLY = 6
    EUNIMP = 7
    EISTKN = 8


class KernelError(Exception):
    """A recoverable kernel failure carrying a status code."""

    def __init__(self, status, message=None):
        self.status = Status(status)
        super().__init__(message or self.status.name)

    @property
    def code(self):
        """The negative status value, as returned through system interfaces."""
        return -int(self.status)


class KernelPanic(Exception):
    """An unrecoverable kernel failure."""

    def __init__(self, message):
        self.message = message
        super().__init__(message)