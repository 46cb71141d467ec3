"""Tasks, their saved registers and the scheduler's task list."""

from dataclasses import dataclass, fields

from .paging import PAGE_SIZE, PageDirectory, PagingFlag
from .status import (
    PROGRAM_VIRTUAL_ADDRESS,
    PROGRAM_VIRTUAL_STACK_ADDRESS_START,
    USER_CODE_SEGMENT,
    USER_DATA_SEGMENT,
    KernelError,
    KernelPanic,
    Status,
)


@dataclass
class InterruptFrame:
    """Registers pushed on interrupt entry."""

    edi: int = 0
    esi: int = 0
    ebp: int = 0
    reserved: int = 0
    ebx: int = 0
    edx: int = 0
    ecx: int = 0
    eax: int = 0
    ip: int = 0
    cs: int = 0
    flags: int = 0
    esp: int = 0
    ss: int = 0


@dataclass
class Registers:
    """Registers of a task while it is not running."""

    edi: int = 0
    esi: int = 0
    ebp: int = 0
    ebx: int = 0
    edx: int = 0
    ecx: int = 0
    eax: int = 0
    ip: int = 0
    cs: int = 0
    flags: int = 0
    esp: int = 0
    ss: int = 0


def _virtual_spans(directory, address, size):
    """Yield (physical address, length) pieces of a virtual range, page by page."""
    end = address + size
    while address < end:
        length = min(PAGE_SIZE - address % PAGE_SIZE, end - address)
        yield directory.translate(address), length
        address += length


class Task:
    """A thread of execution with its own address space.

    ``memory`` is the physical memory the task's pages refer to; it offers
    ``read(address, size)`` and ``write(address, data)``.
    """

    def __init__(self, process, memory, page_directory=None):
        if page_directory is None:
            page_directory = PageDirectory.new_4gb(
                PagingFlag.IS_PRESENT | PagingFlag.ACCESS_FROM_ALL
            )
        self.page_directory = page_directory
        self.process = process
        self.memory = memory
        self.registers = Registers(
            ip=PROGRAM_VIRTUAL_ADDRESS,
            ss=USER_DATA_SEGMENT,
            cs=USER_CODE_SEGMENT,
            esp=PROGRAM_VIRTUAL_STACK_ADDRESS_START,
        )

    def __repr__(self):
        return f"Task(ip={self.registers.ip:#x}, esp={self.registers.esp:#x})"

    def save_state(self, frame):
        """Copy the registers held in an interrupt frame."""
        for register in fields(Registers):
            setattr(self.registers, register.name, getattr(frame, register.name))

    def _read(self, virtual_address, size):
        return b"".join(
            self.memory.read(physical, length)
            for physical, length in _virtual_spans(self.page_directory, virtual_address, size)
        )

    def get_stack_item(self, index):
        """Return the 32-bit word at position ``index`` above the stack pointer."""
        address = (self.registers.esp + 4 * index) & 0xFFFFFFFF
        return int.from_bytes(self._read(address, 4), "little")

    def copy_string(self, virtual_address, max_len):
        """Read a NUL-terminated string of at most ``max_len - 1`` characters."""
        if max_len >= PAGE_SIZE:
            raise KernelError(Status.EINVARG, "string buffer larger than a page")
        chunks = []
        spans = _virtual_spans(self.page_directory, virtual_address, max(max_len - 1, 0))
        for physical, length in spans:
            chunk = self.memory.read(physical, length)
            terminator = chunk.find(b"\0")
            if terminator != -1:
                chunks.append(chunk[:terminator])
                break
            chunks.append(chunk)
        return b"".join(chunks).decode("latin-1")


class TaskList:
    """The tasks known to the scheduler, in creation order, and the current one."""

    def __init__(self, memory):
        self.memory = memory
        self._tasks = []
        self.current = None
        self.directory = None

    @property
    def head(self):
        return self._tasks[0] if self._tasks else None

    @property
    def tail(self):
        return self._tasks[-1] if self._tasks else None

    def __iter__(self):
        return iter(self._tasks)

    def __len__(self):
        return len(self._tasks)

    def new(self, process):
        """Create a task for ``process``; the first task becomes the current one."""
        task = Task(process, self.memory)
        self._tasks.append(task)
        if self.current is None:
            self.current = task
        return task

    def get_next(self):
        """The task after the current one, wrapping round to the head."""
        if self.current in self._tasks:
            position = self._tasks.index(self.current) + 1
            if position < len(self._tasks):
                return self._tasks[position]
        return self.head

    def free(self, task):
        """Remove ``task``; when it was current, the next task takes its place."""
        if task not in self._tasks:
            raise KernelError(Status.EINVARG, "task is not in the list")
        position = self._tasks.index(task)
        self._tasks.remove(task)
        if task is self.current:
            if position < len(self._tasks):
                self.current = self._tasks[position]
            else:
                self.current = self.head

    def switch(self, task):
        """Make ``task`` current and activate its address space."""
        self.current = task
        self.directory = task.page_directory

    def save_current_state(self, frame):
        """Save an interrupt frame into the current task."""
        if self.current is None:
            raise KernelPanic("task_current_save_state(): No current task exists")
        self.current.save_state(frame)

    def run_first_ever_task(self):
        """Switch to the first task and return the registers it starts with."""
        if self.current is None:
            raise KernelPanic("task_run_first_ever_task(): No current task exists")
        self.switch(self.head)
        return self.head.registers