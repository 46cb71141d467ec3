"""Keyboard drivers, the driver list and per-process key buffers."""

from dataclasses import dataclass
from typing import Callable, Optional

from .status import KEYBOARD_BUFFER_SIZE, KernelError, Status

PS2_PORT = 0x64
PS2_COMMAND_ENABLE_FIRST_PORT = 0xAE

_U32 = 0xFFFFFFFF

_SCAN_SET_ONE = (
    b"\x00\x1b1234567890-="
    b"\x08\tQWERTYUIOP[]"
    b"\r\x00ASDFGHJKL;'`"
    b"\x00\\ZXCVBNM,./\x00*"
    b"\x00 \x00\x00\x00\x00"
    b"\x00\x00\x00\x00\x00\x00"
    b"\x00789-45"
    b"6+1230."
)


def scancode_to_char(scancode):
    """Translate a scan set one code to its character, or None when unmapped."""
    if not 0 <= scancode < len(_SCAN_SET_ONE):
        return None
    code = _SCAN_SET_ONE[scancode]
    return chr(code) if code else None


class KeyboardBuffer:
    """Circular buffer of typed characters; a NUL slot marks it empty."""

    def __init__(self, size=KEYBOARD_BUFFER_SIZE):
        self.buffer = bytearray(size)
        self.head = 0
        self.tail = 0

    def _index(self, counter):
        return counter % len(self.buffer)

    def push(self, c):
        """Append the character ``c``."""
        self.buffer[self._index(self.tail)] = ord(c) & 0xFF
        self.tail = (self.tail + 1) & _U32

    def pop(self):
        """Remove and return the oldest character, or None when the buffer is empty."""
        index = self._index(self.head)
        code = self.buffer[index]
        if code == 0:
            return None
        self.buffer[index] = 0
        self.head = (self.head + 1) & _U32
        return chr(code)

    def backspace(self):
        """Drop the most recently pushed character."""
        self.tail = (self.tail - 1) & _U32
        self.buffer[self._index(self.tail)] = 0


@dataclass
class Keyboard:
    """A keyboard driver: a name and the function that initialises it."""

    name: str
    init: Optional[Callable[[], int]]


class KeyboardList:
    """Registered keyboard drivers in insertion order."""

    def __init__(self):
        self._keyboards = []

    def insert(self, keyboard):
        """Register ``keyboard`` and initialise it, returning what its init returns."""
        if not callable(keyboard.init):
            raise KernelError(Status.EINVARG, "keyboard has no init function")
        self._keyboards.append(keyboard)
        return keyboard.init()

    @property
    def head(self):
        return self._keyboards[0] if self._keyboards else None

    @property
    def last(self):
        return self._keyboards[-1] if self._keyboards else None

    def __iter__(self):
        return iter(self._keyboards)

    def __len__(self):
        return len(self._keyboards)


def classic_keyboard(outb):
    """The PS/2 keyboard driver; ``outb(port, value)`` writes to an I/O port."""

    def init():
        outb(PS2_PORT, PS2_COMMAND_ENABLE_FIRST_PORT)
        return 0

    return Keyboard("classic", init)