"""Encoding of global descriptor table entries."""

from dataclasses import dataclass

from .status import KernelPanic


@dataclass(frozen=True)
class GdtEntry:
    """A segment descriptor in structured form."""

    base: int
    limit: int
    type: int


def encode_gdt_entry(entry):
    """Encode one segment descriptor into its 8-byte hardware form.

    Raises :class:`KernelPanic` when a page-granular limit does not end in 0xFFF.
    """
    limit = entry.limit
    if limit > 65536 and (limit & 0xFFF) != 0xFFF:
        raise KernelPanic("encode_gdt_entry: invalid limit")

    flags = 0x40
    if limit > 65536:
        limit >>= 12
        flags = 0xC0

    base = entry.base
    return bytes(
        [
            limit & 0xFF,
            (limit >> 8) & 0xFF,
            base & 0xFF,
            (base >> 8) & 0xFF,
            (base >> 16) & 0xFF,
            entry.type & 0xFF,
            flags | ((limit >> 16) & 0x0F),
            (base >> 24) & 0xFF,
        ]
    )


def encode_gdt(entries):
    """Encode a sequence of entries into a contiguous table."""
    return b"".join(encode_gdt_entry(entry) for entry in entries)