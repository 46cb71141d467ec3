"""User processes: loading program images and mapping them into memory."""

from dataclasses import dataclass, field
from typing import Optional

from .keyboard import KeyboardBuffer
from .kstring import strncpy
from .paging import PagingFlag, align_address
from .status import (
    MAX_PATH_LENGTH,
    MAX_PROCESSES,
    PROGRAM_VIRTUAL_ADDRESS,
    PROGRAM_VIRTUAL_STACK_ADDRESS_END,
    USER_PROGRAM_STACK_SIZE,
    KernelError,
    Status,
)
from .task import Task, TaskList, _virtual_spans

_USER_PAGE_FLAGS = PagingFlag.IS_PRESENT | PagingFlag.ACCESS_FROM_ALL | PagingFlag.IS_WRITABLE


@dataclass
class Process:
    """A loaded program: its image, its stack, its task and its key buffer."""

    id: int
    filename: str
    memory: object = field(repr=False)
    ptr: int = 0
    size: int = 0
    stack: int = 0
    task: Optional[Task] = field(default=None, repr=False)
    allocations: list = field(default_factory=list, repr=False)
    keyboard: KeyboardBuffer = field(default_factory=KeyboardBuffer, repr=False)

    def _directory(self):
        if self.task is None:
            raise KernelError(Status.EINVARG, "process has no task")
        return self.task.page_directory

    def read_virtual(self, address, size):
        """Read ``size`` bytes at a virtual address of the process."""
        return b"".join(
            self.memory.read(physical, length)
            for physical, length in _virtual_spans(self._directory(), address, size)
        )

    def write_virtual(self, address, data):
        """Write ``data`` at a virtual address of the process."""
        data = bytes(data)
        position = 0
        for physical, length in _virtual_spans(self._directory(), address, len(data)):
            self.memory.write(physical, data[position:position + length])
            position += length


class ProcessTable:
    """The fixed set of process slots.

    Programs are read through ``filesystems`` (a file system manager) into
    ``heap``, which is also the physical memory of every task.
    """

    def __init__(self, filesystems, heap, tasks=None):
        self.filesystems = filesystems
        self.heap = heap
        self.tasks = TaskList(heap) if tasks is None else tasks
        self._processes = [None] * MAX_PROCESSES

    @property
    def current(self):
        """The process of the current task, or None."""
        task = self.tasks.current
        return task.process if task is not None else None

    def get(self, process_id):
        """Return the process in slot ``process_id``, or None."""
        if 0 <= process_id < MAX_PROCESSES:
            return self._processes[process_id]
        return None

    def get_free_slot(self):
        """Return the lowest free slot; raises ``EISTKN`` when all are taken."""
        for slot, process in enumerate(self._processes):
            if process is None:
                return slot
        raise KernelError(Status.EISTKN, "no free process slot")

    def load(self, filename):
        """Load ``filename`` into the first free slot and return the process."""
        return self.load_for_slot(filename, self.get_free_slot())

    def _load_binary(self, filename, process):
        fs = self.filesystems
        try:
            fd = fs.fopen(filename, "r")
        except KernelError as exc:
            raise KernelError(Status.EIO, f"cannot open {filename}") from exc
        try:
            stat = fs.fstat(fd)
            ptr = self.heap.zalloc(stat.filesize)
            try:
                data = fs.fread(stat.filesize, 1, fd)
            except KernelError as exc:
                self.heap.free(ptr)
                raise KernelError(Status.EIO, f"cannot read {filename}") from exc
            self.heap.write(ptr, data)
            process.ptr = ptr
            process.size = stat.filesize
        finally:
            fs.fclose(fd)

    @staticmethod
    def _map_memory(process):
        directory = process.task.page_directory
        directory.map_to(
            PROGRAM_VIRTUAL_ADDRESS,
            process.ptr,
            align_address(process.ptr + process.size),
            _USER_PAGE_FLAGS,
        )
        directory.map_to(
            PROGRAM_VIRTUAL_STACK_ADDRESS_END,
            process.stack,
            align_address(process.stack + USER_PROGRAM_STACK_SIZE),
            _USER_PAGE_FLAGS,
        )

    def load_for_slot(self, filename, slot):
        """Load ``filename`` into ``slot``; raises ``EISTKN`` when it is taken."""
        if not 0 <= slot < MAX_PROCESSES:
            raise KernelError(Status.EINVARG, f"invalid process slot {slot}")
        if self._processes[slot] is not None:
            raise KernelError(Status.EISTKN, f"process slot {slot} is taken")

        process = Process(id=slot, filename="", memory=self.heap)
        self._load_binary(filename, process)
        try:
            process.stack = self.heap.zalloc(USER_PROGRAM_STACK_SIZE)
            process.filename = strncpy(filename, MAX_PATH_LENGTH)
            process.task = self.tasks.new(process)
            self._map_memory(process)
        except KernelError:
            if process.task is not None:
                self.tasks.free(process.task)
            if process.stack:
                self.heap.free(process.stack)
            self.heap.free(process.ptr)
            raise

        self._processes[slot] = process
        return process