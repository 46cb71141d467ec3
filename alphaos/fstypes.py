"""File modes, seek modes, file status and the filesystem interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntEnum, IntFlag


class SeekMode(IntEnum):
    """Origins for a seek."""

    SET = 0
    CUR = 1
    END = 2


class FileMode(IntEnum):
    """Modes a file can be opened in."""

    READ = 0
    WRITE = 1
    APPEND = 2
    INVALID = 3


class StatFlag(IntFlag):
    """Flags reported in :class:`FileStat`."""

    NONE = 0
    READ_ONLY = 0b00000001


@dataclass
class FileStat:
    """Status of an open file."""

    flags: StatFlag = StatFlag.NONE
    filesize: int = 0

    @property
    def read_only(self):
        return bool(self.flags & StatFlag.READ_ONLY)


def file_mode_from_string(mode):
    """Map a mode string to a :class:`FileMode`; only the first character counts."""
    return {
        "r": FileMode.READ,
        "w": FileMode.WRITE,
        "a": FileMode.APPEND,
    }.get(mode[:1], FileMode.INVALID)


class Filesystem(ABC):
    """A filesystem driver that can recognise disks and serve open files."""

    name = ""

    @abstractmethod
    def resolve(self, disk):
        """Return True when ``disk`` holds this filesystem, claiming it."""

    @abstractmethod
    def open(self, disk, path, mode):
        """Open the file at the path components ``path`` and return a descriptor."""

    @abstractmethod
    def read(self, disk, descriptor, size, nmemb):
        """Read ``nmemb`` items of ``size`` bytes from the descriptor and return them."""

    @abstractmethod
    def seek(self, descriptor, offset, whence):
        """Move the descriptor's position according to ``whence``."""

    @abstractmethod
    def stat(self, disk, descriptor):
        """Return a :class:`FileStat` for the descriptor."""

    @abstractmethod
    def close(self, descriptor):
        """Release the descriptor."""