"""Disks backed by in-memory images, and byte streams over them."""

from dataclasses import dataclass, field
from enum import IntEnum

from .status import SECTOR_SIZE, KernelError, Status


class DiskType(IntEnum):
    """Kinds of disk the kernel knows about."""

    REAL = 0


@dataclass
class Disk:
    """A sector-addressed disk whose contents are held in memory.

    ``filesystem`` and ``fs_private`` are filled in by whichever filesystem
    recognises the disk.
    """

    image: bytes = field(repr=False)
    id: int = 0
    type: DiskType = DiskType.REAL
    sector_size: int = SECTOR_SIZE
    filesystem: object = None
    fs_private: object = field(default=None, repr=False)

    def __post_init__(self):
        self.image = bytes(self.image)
        if self.sector_size <= 0:
            raise KernelError(Status.EINVARG, "sector size must be positive")

    def read_block(self, lba, total):
        """Return ``total`` sectors starting at sector ``lba``.

        Sectors beyond the end of the image read as zeros.
        """
        if lba < 0:
            raise KernelError(Status.EIO, f"invalid sector {lba}")
        if total < 0:
            raise KernelError(Status.EINVARG, "negative sector count")
        start = lba * self.sector_size
        length = total * self.sector_size
        data = self.image[start:start + length]
        return data + bytes(length - len(data))


class DiskStreamer:
    """A byte-addressed reader over a disk that keeps its own position."""

    def __init__(self, disk, pos=0):
        self.disk = disk
        self.pos = pos

    def seek(self, pos):
        """Move the stream to absolute byte position ``pos``."""
        if pos < 0:
            raise KernelError(Status.EINVARG, "negative stream position")
        self.pos = pos

    def read(self, total):
        """Read ``total`` bytes from the current position and advance past them."""
        if total <= 0:
            return b""
        size = self.disk.sector_size
        first = self.pos // size
        last = (self.pos + total - 1) // size
        block = self.disk.read_block(first, last - first + 1)
        offset = self.pos - first * size
        self.pos += total
        return block[offset:offset + total]