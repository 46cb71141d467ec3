"""Parsing of drive-qualified paths such as ``0:/dir/file.txt``."""

from dataclasses import dataclass, field
from itertools import takewhile

from .kstring import isdigit, strnlen, tonumericdigit
from .status import MAX_PATH, KernelError, Status


@dataclass
class PathRoot:
    """A parsed path: the drive number and the path components in order."""

    drive_no: int
    parts: list = field(default_factory=list)

    @property
    def first(self):
        """The first path component, or None when the path names only a drive."""
        return self.parts[0] if self.parts else None


def _valid_format(path):
    return strnlen(path, MAX_PATH) >= 3 and isdigit(path[0]) and path[1:3] == ":/"


def parse_path(path, current_directory=None):
    """Parse ``path`` into a :class:`PathRoot`.

    Components end at a slash; parsing stops at the first empty component.
    Raises :class:`KernelError` with ``EBADPATH`` for a malformed or too long path.
    """
    path = path.split("\0", 1)[0]
    if len(path) > MAX_PATH:
        raise KernelError(Status.EBADPATH, "path too long")
    if not _valid_format(path):
        raise KernelError(Status.EBADPATH, f"invalid path: {path!r}")

    drive_no = tonumericdigit(path[0])
    parts = list(takewhile(bool, path[3:].split("/")))
    return PathRoot(drive_no, parts)