"""Two-level page tables covering a 32-bit address space."""

from enum import IntFlag

from .status import KernelError, Status

TOTAL_ENTRIES_PER_TABLE = 1024
PAGE_SIZE = 4096

_ADDRESS_LIMIT = 1 << 32
_FRAME_MASK = 0xFFFFF000


class PagingFlag(IntFlag):
    """Page table entry flags."""

    NONE = 0
    IS_PRESENT = 0b00000001
    IS_WRITABLE = 0b00000010
    ACCESS_FROM_ALL = 0b00000100
    WRITE_THROUGH = 0b00001000
    CACHE_DISABLED = 0b00010000


def is_aligned(address):
    """True when ``address`` lies on a page boundary."""
    return address % PAGE_SIZE == 0


def align_address(address):
    """Round ``address`` up to the next page boundary."""
    remainder = address % PAGE_SIZE
    return address + PAGE_SIZE - remainder if remainder else address


def _check_address(address):
    if not 0 <= address < _ADDRESS_LIMIT:
        raise KernelError(Status.EINVARG, f"address {address:#x} outside 32-bit space")


def get_indexes(virtual_address):
    """Return the (directory index, table index) pair for a page-aligned address."""
    if not is_aligned(virtual_address):
        raise KernelError(Status.EINVARG, "virtual address is not page aligned")
    _check_address(virtual_address)
    return divmod(virtual_address // PAGE_SIZE, TOTAL_ENTRIES_PER_TABLE)


class PageDirectory:
    """A page directory whose pages start identity-mapped with common flags.

    Entries that have been set explicitly are kept apart from the identity
    mapping, so a full 4 GiB directory costs nothing until it is changed.
    """

    def __init__(self, flags=PagingFlag.NONE):
        self.flags = int(flags) & 0xFF
        self._entries = {}

    @classmethod
    def new_4gb(cls, flags):
        """Create a directory that maps the whole address space onto itself."""
        return cls(flags)

    @staticmethod
    def _page(virtual_address):
        directory_index, table_index = get_indexes(virtual_address)
        return directory_index * TOTAL_ENTRIES_PER_TABLE + table_index

    def set(self, virtual_address, value):
        """Store the raw table entry ``value`` for a page-aligned address."""
        self._entries[self._page(virtual_address)] = value & 0xFFFFFFFF

    def get(self, virtual_address):
        """Return the raw table entry for a page-aligned address."""
        page = self._page(virtual_address)
        return self._entries.get(page, (page * PAGE_SIZE) | self.flags)

    def map(self, virtual_address, physical_address, flags):
        """Map one page at ``virtual_address`` to ``physical_address``."""
        if not (is_aligned(virtual_address) and is_aligned(physical_address)):
            raise KernelError(Status.EINVARG, "addresses must be page aligned")
        _check_address(physical_address)
        self.set(virtual_address, physical_address | int(flags))

    def map_range(self, virtual_address, physical_address, count, flags):
        """Map ``count`` consecutive pages."""
        for offset in range(0, count * PAGE_SIZE, PAGE_SIZE):
            self.map(virtual_address + offset, physical_address + offset, flags)

    def map_to(self, virtual_address, physical_address, physical_end_address, flags):
        """Map the physical range ``[physical_address, physical_end_address)``."""
        if not all(
            is_aligned(address)
            for address in (virtual_address, physical_address, physical_end_address)
        ):
            raise KernelError(Status.EINVARG, "addresses must be page aligned")
        if physical_end_address < physical_address:
            raise KernelError(Status.EINVARG, "physical range ends before it starts")
        count = (physical_end_address - physical_address) // PAGE_SIZE
        self.map_range(virtual_address, physical_address, count, flags)

    def translate(self, virtual_address):
        """Return the physical address that ``virtual_address`` refers to.

        Raises :class:`KernelError` with ``EIO`` when the page is not present.
        """
        offset = virtual_address % PAGE_SIZE
        entry = self.get(virtual_address - offset)
        if not entry & PagingFlag.IS_PRESENT:
            raise KernelError(Status.EIO, f"page for {virtual_address:#x} not present")
        return (entry & _FRAME_MASK) | offset