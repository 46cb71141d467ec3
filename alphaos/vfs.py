"""The virtual file layer: registered filesystems, attached disks and descriptors."""

from dataclasses import dataclass, field

from .fat16 import Fat16
from .fstypes import FileMode, file_mode_from_string
from .pparser import parse_path
from .status import MAX_FILEDESCRIPTORS, MAX_FILESYSTEMS, KernelError, KernelPanic, Status


@dataclass
class _FileDescriptor:
    index: int
    filesystem: object
    private: object = field(repr=False)
    disk: object = field(repr=False)


class FileSystemManager:
    """Owns the filesystem drivers, the disks and the open file descriptors.

    Descriptors are numbered from 1; every operation on an unknown descriptor
    raises :class:`KernelError`.
    """

    def __init__(self, filesystems=None):
        self._filesystems = []
        self._disks = []
        self._descriptors = [None] * MAX_FILEDESCRIPTORS
        for filesystem in [Fat16()] if filesystems is None else filesystems:
            self.insert_filesystem(filesystem)

    @property
    def filesystems(self):
        return tuple(self._filesystems)

    def insert_filesystem(self, filesystem):
        """Register a filesystem driver; running out of slots is fatal."""
        if len(self._filesystems) >= MAX_FILESYSTEMS:
            raise KernelPanic("Problem inserting filesystem")
        self._filesystems.append(filesystem)

    def resolve(self, disk):
        """Return the first registered filesystem that claims ``disk``, or None."""
        for filesystem in self._filesystems:
            if filesystem.resolve(disk):
                return filesystem
        return None

    def attach_disk(self, disk):
        """Add ``disk`` under the next drive number and detect its filesystem."""
        disk.id = len(self._disks)
        self._disks.append(disk)
        disk.filesystem = self.resolve(disk)
        return disk.filesystem

    def get_disk(self, index):
        """Return the disk with drive number ``index``, or None."""
        if 0 <= index < len(self._disks):
            return self._disks[index]
        return None

    def _descriptor(self, fd):
        if fd <= 0 or fd >= MAX_FILEDESCRIPTORS:
            return None
        return self._descriptors[fd - 1]

    def _require(self, fd, status):
        descriptor = self._descriptor(fd)
        if descriptor is None:
            raise KernelError(status, f"bad file descriptor {fd}")
        return descriptor

    def _free_slot(self):
        for slot, descriptor in enumerate(self._descriptors):
            if descriptor is None:
                return slot
        raise KernelError(Status.ENOMEM, "no free file descriptors")

    def fopen(self, filename, mode):
        """Open ``filename`` (``N:/path``) and return its descriptor number."""
        try:
            root = parse_path(filename)
        except KernelError as exc:
            raise KernelError(Status.EINVARG, str(exc)) from exc
        if root.first is None:
            raise KernelError(Status.EINVARG, "path names no file")

        disk = self.get_disk(root.drive_no)
        if disk is None:
            raise KernelError(Status.EIO, f"no disk {root.drive_no}")
        if disk.filesystem is None:
            raise KernelError(Status.EIO, f"disk {root.drive_no} has no filesystem")

        file_mode = file_mode_from_string(mode)
        if file_mode is FileMode.INVALID:
            raise KernelError(Status.EINVARG, f"invalid mode {mode!r}")

        private = disk.filesystem.open(disk, root.parts, file_mode)
        try:
            slot = self._free_slot()
        except KernelError:
            disk.filesystem.close(private)
            raise
        descriptor = _FileDescriptor(slot + 1, disk.filesystem, private, disk)
        self._descriptors[slot] = descriptor
        return descriptor.index

    def fstat(self, fd):
        """Return the :class:`~alphaos.fstypes.FileStat` of an open file."""
        descriptor = self._require(fd, Status.EIO)
        return descriptor.filesystem.stat(descriptor.disk, descriptor.private)

    def fseek(self, fd, offset, whence):
        """Move the position of an open file."""
        descriptor = self._require(fd, Status.EIO)
        descriptor.filesystem.seek(descriptor.private, offset, whence)

    def fread(self, size, nmemb, fd):
        """Read ``nmemb`` items of ``size`` bytes from an open file."""
        if size == 0 or nmemb == 0 or fd < 1:
            raise KernelError(Status.EINVARG, "invalid read request")
        descriptor = self._require(fd, Status.EINVARG)
        return descriptor.filesystem.read(descriptor.disk, descriptor.private, size, nmemb)

    def fclose(self, fd):
        """Close an open file and release its descriptor number."""
        descriptor = self._require(fd, Status.EIO)
        descriptor.filesystem.close(descriptor.private)
        self._descriptors[descriptor.index - 1] = None