"""A read-only FAT16 filesystem driver."""

import struct
from dataclasses import dataclass, field
from itertools import count
from typing import List, Optional

from .disk import DiskStreamer
from .fstypes import FileMode, FileStat, Filesystem, SeekMode, StatFlag
from .kstring import istrncmp
from .status import MAX_PATH, KernelError, Status

FAT16_SIGNATURE = 0x29
FAT_ENTRY_SIZE = 2
DIRECTORY_ITEM_SIZE = 32

ENTRY_END = 0x00
ENTRY_DELETED = 0xE5

ATTR_READ_ONLY = 0x01
ATTR_HIDDEN = 0x02
ATTR_SYSTEM = 0x04
ATTR_VOLUME_LABEL = 0x08
ATTR_SUBDIRECTORY = 0x10
ATTR_ARCHIVE = 0x20
ATTR_DEVICE = 0x40
ATTR_RESERVED = 0x80

_END_OF_CHAIN = frozenset({0xFF8, 0xFFF}) | frozenset(range(0xFFF8, 0x10000))
_BAD_CLUSTER = frozenset({0xFF7, 0xFFF7})
_RESERVED_CLUSTER = frozenset({0x000, 0xFF0, 0xFF6})

_PRIMARY = struct.Struct("<3s8sHBHBHHBHHHII")
_EXTENDED = struct.Struct("<BBBI11s8s")
_ITEM = struct.Struct("<8s3sBBBHHHHHHHI")


@dataclass
class Fat16Header:
    """The boot sector header together with its extended part."""

    jump: bytes = b"\x00\x00\x00"
    oem_identifier: bytes = b""
    bytes_per_sector: int = 512
    sectors_per_cluster: int = 1
    reserved_sectors: int = 1
    fat_copies: int = 2
    root_dir_entries: int = 0
    number_of_sectors: int = 0
    media_type: int = 0
    sectors_per_fat: int = 0
    sectors_per_track: int = 0
    number_of_heads: int = 0
    hidden_sectors: int = 0
    sectors_big: int = 0
    drive_number: int = 0
    win_nt_bit: int = 0
    signature: int = FAT16_SIGNATURE
    volume_id: int = 0
    volume_id_string: bytes = b""
    system_id_string: bytes = b""

    SIZE = _PRIMARY.size + _EXTENDED.size

    @classmethod
    def from_bytes(cls, data):
        """Parse a header from the start of ``data``."""
        if len(data) < cls.SIZE:
            raise KernelError(Status.EIO, "boot sector too short")
        primary = _PRIMARY.unpack_from(data, 0)
        extended = _EXTENDED.unpack_from(data, _PRIMARY.size)
        return cls(*primary, *extended)

    def to_bytes(self):
        """Encode the header into its on-disk form."""
        return _PRIMARY.pack(
            self.jump,
            self.oem_identifier,
            self.bytes_per_sector,
            self.sectors_per_cluster,
            self.reserved_sectors,
            self.fat_copies,
            self.root_dir_entries,
            self.number_of_sectors,
            self.media_type,
            self.sectors_per_fat,
            self.sectors_per_track,
            self.number_of_heads,
            self.hidden_sectors,
            self.sectors_big,
        ) + _EXTENDED.pack(
            self.drive_number,
            self.win_nt_bit,
            self.signature,
            self.volume_id,
            self.volume_id_string,
            self.system_id_string,
        )


def _proper_string(raw):
    """Decode a space-padded FAT name field."""
    end = len(raw)
    for stop in (b" ", b"\x00"):
        position = raw.find(stop)
        if position != -1:
            end = min(end, position)
    return raw[:end].decode("latin-1")


@dataclass
class DirectoryItem:
    """One 32-byte directory entry."""

    filename: bytes = b""
    ext: bytes = b""
    attributes: int = 0
    reserved: int = 0
    creation_time_tenths: int = 0
    creation_time: int = 0
    creation_date: int = 0
    last_access_date: int = 0
    high_first_cluster: int = 0
    last_mod_time: int = 0
    last_mod_date: int = 0
    low_first_cluster: int = 0
    file_size: int = 0

    SIZE = DIRECTORY_ITEM_SIZE

    @classmethod
    def from_bytes(cls, data):
        """Parse an entry from the first 32 bytes of ``data``."""
        if len(data) < cls.SIZE:
            raise KernelError(Status.EINVARG, "directory entry too short")
        return cls(*_ITEM.unpack_from(data, 0))

    def to_bytes(self):
        """Encode the entry into its on-disk form."""
        return _ITEM.pack(
            self.filename,
            self.ext,
            self.attributes,
            self.reserved,
            self.creation_time_tenths,
            self.creation_time,
            self.creation_date,
            self.last_access_date,
            self.high_first_cluster,
            self.last_mod_time,
            self.last_mod_date,
            self.low_first_cluster,
            self.file_size,
        )

    def full_name(self):
        """The entry's name as ``NAME.EXT``, or ``NAME`` when it has no extension."""
        name = _proper_string(self.filename[:8])
        if self.ext[:1] not in (b"", b"\x00", b" "):
            name += "." + _proper_string(self.ext[:3])
        return name

    @property
    def first_cluster(self):
        return (self.high_first_cluster << 16) | self.low_first_cluster

    @property
    def is_directory(self):
        return bool(self.attributes & ATTR_SUBDIRECTORY)

    @property
    def read_only(self):
        return bool(self.attributes & ATTR_READ_ONLY)


@dataclass
class FatDirectory:
    """The live entries of a directory and where it lies on disk."""

    items: List[DirectoryItem] = field(default_factory=list)
    sector_pos: int = 0
    ending_sector_pos: int = 0

    @property
    def total(self):
        return len(self.items)


@dataclass
class FatItem:
    """A directory entry, with its loaded contents when it is a directory."""

    item: DirectoryItem
    directory: Optional[FatDirectory] = None

    @property
    def is_directory(self):
        return self.directory is not None


@dataclass
class FatFileDescriptor:
    """An open FAT16 file: its entry and the current read position."""

    item: Optional[FatItem]
    pos: int = 0


@dataclass
class _Fat16Private:
    header: Fat16Header
    cluster_stream: DiskStreamer
    fat_stream: DiskStreamer
    directory_stream: DiskStreamer
    root_directory: FatDirectory = field(default_factory=FatDirectory)


class Fat16(Filesystem):
    """Read-only driver for FAT16 volumes."""

    name = "FAT16"

    @staticmethod
    def _private(disk):
        private = disk.fs_private
        if not isinstance(private, _Fat16Private):
            raise KernelError(Status.EIO, "disk is not a FAT16 volume")
        return private

    def resolve(self, disk):
        """Claim ``disk`` when it holds a FAT16 volume; return whether it did."""
        disk.fs_private = None
        try:
            header = Fat16Header.from_bytes(DiskStreamer(disk).read(Fat16Header.SIZE))
            if header.signature != FAT16_SIGNATURE or header.sectors_per_cluster == 0:
                return False
            private = _Fat16Private(
                header, DiskStreamer(disk), DiskStreamer(disk), DiskStreamer(disk)
            )
            disk.fs_private = private
            private.root_directory = self._load_root_directory(disk, private)
        except KernelError:
            disk.fs_private = None
            return False
        disk.filesystem = self
        return True

    @staticmethod
    def _scan(read_entry, limit=None):
        indexes = range(limit) if limit is not None else count()
        for index in indexes:
            data = read_entry(index)
            if data[0] == ENTRY_END:
                break
            if data[0] == ENTRY_DELETED:
                continue
            yield DirectoryItem.from_bytes(data)

    def _load_root_directory(self, disk, private):
        header = private.header
        sector_pos = header.fat_copies * header.sectors_per_fat + header.reserved_sectors
        root_size = header.root_dir_entries * DIRECTORY_ITEM_SIZE
        total_sectors = -(-root_size // disk.sector_size)
        stream = private.directory_stream
        stream.seek(sector_pos * disk.sector_size)
        items = list(
            self._scan(lambda _: stream.read(DIRECTORY_ITEM_SIZE), header.root_dir_entries)
        )
        return FatDirectory(items, sector_pos, sector_pos + total_sectors)

    def _load_directory(self, disk, item):
        if not item.is_directory:
            raise KernelError(Status.EINVARG, "entry is not a directory")
        private = self._private(disk)
        cluster = item.first_cluster

        def read_entry(index):
            try:
                return self._read_internal(
                    disk, private, cluster, index * DIRECTORY_ITEM_SIZE, DIRECTORY_ITEM_SIZE
                )
            except KernelError:
                return bytes(DIRECTORY_ITEM_SIZE)

        items = list(self._scan(read_entry))
        return FatDirectory(items, self._cluster_to_sector(private, cluster))

    @staticmethod
    def _cluster_to_sector(private, cluster):
        return private.root_directory.ending_sector_pos + (
            (cluster - 2) * private.header.sectors_per_cluster
        )

    @staticmethod
    def _fat_entry(disk, private, cluster):
        position = private.header.reserved_sectors * disk.sector_size
        private.fat_stream.seek(position + cluster * FAT_ENTRY_SIZE)
        return int.from_bytes(private.fat_stream.read(FAT_ENTRY_SIZE), "little")

    def _cluster_for_offset(self, disk, private, starting_cluster, offset):
        cluster_bytes = private.header.sectors_per_cluster * disk.sector_size
        cluster = starting_cluster
        for _ in range(offset // cluster_bytes):
            entry = self._fat_entry(disk, private, cluster)
            if entry in _END_OF_CHAIN:
                raise KernelError(Status.EIO, "read past the end of the cluster chain")
            if entry in _BAD_CLUSTER:
                raise KernelError(Status.EIO, "cluster marked as bad")
            if entry in _RESERVED_CLUSTER:
                raise KernelError(Status.EIO, "cluster chain reaches a reserved entry")
            cluster = entry
        return cluster

    def _read_internal(self, disk, private, starting_cluster, offset, total):
        cluster_bytes = private.header.sectors_per_cluster * disk.sector_size
        stream = private.cluster_stream
        chunks = []
        while total > 0:
            cluster = self._cluster_for_offset(disk, private, starting_cluster, offset)
            inner = offset % cluster_bytes
            length = min(total, cluster_bytes - inner)
            sector = self._cluster_to_sector(private, cluster)
            stream.seek(sector * disk.sector_size + inner)
            chunks.append(stream.read(length))
            offset += length
            total -= length
        return b"".join(chunks)

    def _new_item(self, disk, item):
        directory = self._load_directory(disk, item) if item.is_directory else None
        return FatItem(item, directory)

    def _find_in_directory(self, disk, directory, name):
        found = None
        for item in directory.items:
            if istrncmp(item.full_name(), name, MAX_PATH) == 0:
                found = item
        return self._new_item(disk, found) if found is not None else None

    def _directory_entry(self, disk, path):
        parts = list(path)
        if not parts:
            return None
        private = self._private(disk)
        current = self._find_in_directory(disk, private.root_directory, parts[0])
        for part in parts[1:]:
            if current is None or not current.is_directory:
                return None
            current = self._find_in_directory(disk, current.directory, part)
        return current

    def open(self, disk, path, mode):
        """Open the file named by the path components ``path`` for reading."""
        if mode != FileMode.READ:
            raise KernelError(Status.ERDONLY, "FAT16 volumes are read-only")
        item = self._directory_entry(disk, path)
        if item is None:
            raise KernelError(Status.EIO, "file not found")
        return FatFileDescriptor(item)

    def read(self, disk, descriptor, size, nmemb):
        """Read ``nmemb`` items of ``size`` bytes from the descriptor's position."""
        private = self._private(disk)
        cluster = descriptor.item.item.first_cluster
        offset = descriptor.pos
        chunks = []
        for _ in range(nmemb):
            chunks.append(self._read_internal(disk, private, cluster, offset, size))
            offset += size
        return b"".join(chunks)

    def seek(self, descriptor, offset, whence):
        """Move the descriptor's position; seeking from the end is unsupported."""
        item = descriptor.item
        if item.is_directory:
            raise KernelError(Status.EINVARG, "cannot seek in a directory")
        if offset >= item.item.file_size:
            raise KernelError(Status.EIO, "seek beyond end of file")
        try:
            whence = SeekMode(whence)
        except ValueError:
            raise KernelError(Status.EINVARG, f"invalid seek mode {whence!r}") from None
        if whence is SeekMode.SET:
            descriptor.pos = offset
        elif whence is SeekMode.CUR:
            descriptor.pos += offset
        else:
            raise KernelError(Status.EUNIMP, "seek from end is not implemented")

    def stat(self, disk, descriptor):
        """Return the size and flags of the open file."""
        item = descriptor.item
        if item.is_directory:
            raise KernelError(Status.EINVARG, "cannot stat a directory")
        flags = StatFlag.READ_ONLY if item.item.read_only else StatFlag.NONE
        return FileStat(flags=flags, filesize=item.item.file_size)

    def close(self, descriptor):
        """Release the descriptor."""
        if descriptor is not None:
            descriptor.item = None