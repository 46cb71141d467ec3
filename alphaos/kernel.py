"""The text terminal and the kernel that boots the system."""

import argparse
import sys
from dataclasses import dataclass

from .disk import Disk
from .gdt import GdtEntry, encode_gdt
from .heap import KernelHeap
from .keyboard import KeyboardList, classic_keyboard
from .paging import PageDirectory, PagingFlag
from .process import ProcessTable
from .status import (
    KERNEL_DATA_SELECTOR,
    TOTAL_INTERRUPTS,
    VGA_HEIGHT,
    VGA_WIDTH,
    KernelError,
    KernelPanic,
    Status,
)
from .syscalls import CommandTable, register_commands
from .vfs import FileSystemManager

BOOT_PROGRAM = "0:/blank.bin"
DEFAULT_COLOR = 15

_TSS_SIZE = 100
_TSS_SEGMENT = 0x28
_KERNEL_STACK = 0x600000
_PIC_PORT = 0x20
_PIC_EOI = 0x20


class Terminal:
    """A VGA text screen: cells of character and colour, and a cursor."""

    def __init__(self, width=VGA_WIDTH, height=VGA_HEIGHT):
        self.width = width
        self.height = height
        self.row = 0
        self.col = 0
        self.cells = [ord(" ")] * (width * height)

    def putchar(self, x, y, c, color):
        """Place character ``c`` with ``color`` at column ``x``, row ``y``."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise KernelError(Status.EINVARG, f"cell ({x}, {y}) is off screen")
        self.cells[y * self.width + x] = ((color & 0xFF) << 8) | (ord(c) & 0xFF)

    def writechar(self, c, color):
        """Write ``c`` at the cursor and advance; characters below the screen are dropped."""
        if c == "\n":
            self.col = 0
            self.row += 1
            return
        if self.row < self.height:
            self.putchar(self.col, self.row, c, color)
        self.col += 1
        if self.col >= self.width:
            self.col = 0
            self.row += 1

    def print(self, text):
        """Write ``text`` up to its first NUL in the default colour."""
        for c in text.split("\0", 1)[0]:
            self.writechar(c, DEFAULT_COLOR)

    def text(self):
        """The characters on screen, one line per row, trailing blanks removed."""
        rows = (
            "".join(
                chr(cell & 0xFF) for cell in self.cells[y * self.width:(y + 1) * self.width]
            ).rstrip(" ")
            for y in range(self.height)
        )
        return "\n".join(rows).rstrip("\n")


@dataclass
class _Tss:
    esp0: int = 0
    ss0: int = 0


class Kernel:
    """The whole system: boots from a disk image and runs the first program."""

    def __init__(self, image, program=BOOT_PROGRAM, tss_address=0):
        self.image = bytes(image)
        self.program = program
        self.tss_address = tss_address
        self.terminal = Terminal()
        self.ports = []
        self.gdt = b""
        self.tss = _Tss()
        self.heap = None
        self.filesystems = None
        self.disk = None
        self.idt = []
        self.kernel_directory = None
        self.processes = None
        self.commands = CommandTable()
        self.keyboards = KeyboardList()
        self.process = None

    @property
    def tasks(self):
        return self.processes.tasks if self.processes is not None else None

    def _outb(self, port, value):
        self.ports.append((port, value & 0xFF))

    def _gdt_entries(self):
        return [
            GdtEntry(0x00, 0x00, 0x00),
            GdtEntry(0x00, 0xFFFFFFFF, 0x9A),
            GdtEntry(0x00, 0xFFFFFFFF, 0x92),
            GdtEntry(0x00, 0xFFFFFFFF, 0xF8),
            GdtEntry(0x00, 0xFFFFFFFF, 0xF2),
            GdtEntry(self.tss_address, _TSS_SIZE, 0xE9),
        ]

    def _no_interrupt(self, frame):
        self._outb(_PIC_PORT, _PIC_EOI)
        return 0

    def _divide_error(self, frame):
        self.terminal.print("Division by zero exception\n")
        return 0

    def _keyboard_interrupt(self, frame):
        self.terminal.print("Keyboard pressed!\n")
        self._outb(_PIC_PORT, _PIC_EOI)
        return 0

    def _isr80h(self, frame):
        self.tasks.directory = self.kernel_directory
        self.tasks.save_current_state(frame)
        result = self.commands.handle(frame.eax, frame)
        self.tasks.switch(self.tasks.current)
        return result

    def _build_idt(self):
        idt = [self._no_interrupt] * TOTAL_INTERRUPTS
        idt[0] = self._divide_error
        idt[0x21] = self._keyboard_interrupt
        idt[0x80] = self._isr80h
        return idt

    def panic(self, message):
        """Report ``message`` on screen and stop with :class:`KernelPanic`."""
        self.terminal.print("\nKernel panic: ")
        self.terminal.print(message)
        self.terminal.print("\n")
        raise KernelPanic(message)

    def boot(self):
        """Bring up every subsystem, load the boot program and return its registers."""
        self.terminal = Terminal()
        self.gdt = encode_gdt(self._gdt_entries())
        self.heap = KernelHeap()
        self.filesystems = FileSystemManager()
        self.disk = Disk(self.image)
        self.filesystems.attach_disk(self.disk)
        self.idt = self._build_idt()
        self.tss = _Tss(esp0=_KERNEL_STACK, ss0=KERNEL_DATA_SELECTOR)
        self.kernel_directory = PageDirectory.new_4gb(
            PagingFlag.IS_WRITABLE | PagingFlag.IS_PRESENT | PagingFlag.ACCESS_FROM_ALL
        )
        self.processes = ProcessTable(self.filesystems, self.heap)
        self.tasks.directory = self.kernel_directory

        self.commands = CommandTable()
        register_commands(self.commands, self.tasks, self.terminal.print)
        self.keyboards = KeyboardList()
        self.keyboards.insert(classic_keyboard(self._outb))

        try:
            self.process = self.processes.load(self.program)
        except KernelError:
            self.panic(f"Failed to load {self.program.rsplit('/', 1)[-1]}")

        return self.tasks.run_first_ever_task()


def main(argv=None):
    """Boot a disk image and show the screen it leaves behind."""
    parser = argparse.ArgumentParser(description="Boot a disk image.")
    parser.add_argument("image", help="path of the disk image")
    parser.add_argument("--program", default=BOOT_PROGRAM, help="program to start")
    args = parser.parse_args(argv)

    with open(args.image, "rb") as handle:
        kernel = Kernel(handle.read(), program=args.program)
    try:
        kernel.boot()
    except KernelPanic:
        print(kernel.terminal.text())
        return 1
    print(kernel.terminal.text())
    return 0


if __name__ == "__main__":
    sys.exit(main())