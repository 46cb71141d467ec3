"""Block heap allocator and the kernel heap backed by simulated memory."""

from .status import (
    HEAP_ADDRESS,
    HEAP_BLOCK_SIZE,
    HEAP_SIZE_BYTES,
    KernelError,
    Status,
)

BLOCK_FREE = 0x00
BLOCK_TAKEN = 0x01
BLOCK_HAS_NEXT = 0x80
BLOCK_IS_FIRST = 0x40


class Heap:
    """First-fit allocator over a block table covering ``[start, end)``."""

    def __init__(self, start, end, total=None, block_size=HEAP_BLOCK_SIZE):
        if start % block_size or end % block_size or end < start:
            raise KernelError(Status.EINVARG, "heap bounds must be block aligned")
        blocks = (end - start) // block_size
        if total is not None and total != blocks:
            raise KernelError(Status.EINVARG, "heap table size does not match heap")
        self.start = start
        self.end = end
        self.block_size = block_size
        self.table = bytearray(blocks)

    @property
    def total(self):
        """Number of blocks in the heap."""
        return len(self.table)

    def block_to_address(self, block):
        return self.start + block * self.block_size

    def address_to_block(self, address):
        return (address - self.start) // self.block_size

    def _find_free_run(self, count):
        run_start, run_len = -1, 0
        for index, entry in enumerate(self.table):
            if entry & 0x0F != BLOCK_FREE:
                run_start, run_len = -1, 0
                continue
            if run_start == -1:
                run_start = index
            run_len += 1
            if run_len == count:
                return run_start
        raise KernelError(Status.ENOMEM)

    def _mark_taken(self, first, count):
        last = first + count - 1
        for index in range(first, last + 1):
            entry = BLOCK_TAKEN
            if index == first:
                entry |= BLOCK_IS_FIRST
            if index != last:
                entry |= BLOCK_HAS_NEXT
            self.table[index] = entry

    def malloc(self, size):
        """Allocate whole blocks for ``size`` bytes and return the start address.

        Raises :class:`KernelError` with ``ENOMEM`` when no run of free blocks fits.
        """
        if size < 0:
            raise KernelError(Status.EINVARG, "negative allocation size")
        count = max(1, -(-size // self.block_size))
        first = self._find_free_run(count)
        self._mark_taken(first, count)
        return self.block_to_address(first)

    def free(self, address):
        """Release the allocation that starts at ``address``."""
        if not self.start <= address < self.end:
            raise KernelError(Status.EINVARG, "address outside heap")
        for index in range(self.address_to_block(address), len(self.table)):
            entry = self.table[index]
            self.table[index] = BLOCK_FREE
            if not entry & BLOCK_HAS_NEXT:
                break


class KernelHeap(Heap):
    """The kernel heap, with readable and writable backing memory."""

    def __init__(
        self,
        start=HEAP_ADDRESS,
        end=HEAP_ADDRESS + HEAP_SIZE_BYTES,
        block_size=HEAP_BLOCK_SIZE,
    ):
        super().__init__(start, end, block_size=block_size)
        self._pages = {}

    def _check_range(self, address, size):
        if size < 0 or address < self.start or address + size > self.end:
            raise KernelError(Status.EINVARG, "memory access outside heap")

    def _spans(self, address, size):
        offset = address - self.start
        stop = offset + size
        while offset < stop:
            block, inner = divmod(offset, self.block_size)
            length = min(self.block_size - inner, stop - offset)
            yield block, inner, length
            offset += length

    def zalloc(self, size):
        """Allocate ``size`` bytes and clear them."""
        address = self.malloc(size)
        self.write(address, bytes(size))
        return address

    def read(self, address, size):
        """Return ``size`` bytes of heap memory starting at ``address``."""
        self._check_range(address, size)
        chunks = []
        for block, inner, length in self._spans(address, size):
            page = self._pages.get(block)
            chunks.append(bytes(length) if page is None else bytes(page[inner:inner + length]))
        return b"".join(chunks)

    def write(self, address, data):
        """Store ``data`` in heap memory starting at ``address``."""
        data = bytes(data)
        self._check_range(address, len(data))
        position = 0
        for block, inner, length in self._spans(address, len(data)):
            page = self._pages.setdefault(block, bytearray(self.block_size))
            page[inner:inner + length] = data[position:position + length]
            position += length