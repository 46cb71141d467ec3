"""A small 32-bit hobby kernel in Python: heap, paging, FAT16, processes, tasks and system calls."""

__version__ = "0.1.0"