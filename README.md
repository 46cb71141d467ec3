# alphaos

`alphaos` models a small 32-bit hobby kernel in plain Python. Every part
that can be expressed as data and logic is here, and physical memory, disks
and I/O ports are held in memory:

- `alphaos.status`: the `Status` codes, `KernelError` (carries a `Status`;
  its `code` is the negative value) and `KernelPanic`, plus the system-wide
  limits and addresses.
- `alphaos.kstring`: NUL-terminated string helpers with C comparison
  semantics (`strncmp`, `istrncmp`, `strnlen`, `strncpy`, ...).
- `alphaos.pparser`: `parse_path("0:/dir/file")` returns a `PathRoot` with
  `drive_no` and `parts`.
- `alphaos.gdt`: `GdtEntry`, `encode_gdt_entry` and `encode_gdt` produce the
  8-byte segment descriptors.
- `alphaos.heap`: `Heap`, a first-fit block allocator, and `KernelHeap`,
  which adds readable and writable backing memory (`zalloc`, `read`,
  `write`).
- `alphaos.paging`: `PageDirectory` (identity-mapped 4 GiB directory with
  `map`, `map_range`, `map_to`, `get`, `set`, `translate`) and `PagingFlag`.
- `alphaos.disk`: `Disk`, a sector-addressed in-memory image, and
  `DiskStreamer`, a byte stream over it.
- `alphaos.fstypes`: `FileMode`, `SeekMode`, `StatFlag`, `FileStat`,
  `file_mode_from_string` and the abstract `Filesystem` driver interface.
- `alphaos.fat16`: `Fat16`, a read-only FAT16 driver, with `Fat16Header` and
  `DirectoryItem` for the on-disk structures.
- `alphaos.vfs`: `FileSystemManager`, which registers drivers, attaches
  disks and hands out descriptors through `fopen`, `fread`, `fseek`, `fstat`
  and `fclose`.
- `alphaos.task`: `Task`, `TaskList`, `Registers` and `InterruptFrame`.
- `alphaos.process`: `Process` and `ProcessTable`, which load a program from
  disk into the heap and map it and its stack into the task's address space.
- `alphaos.keyboard`: the PS/2 scan set one table (`scancode_to_char`), the
  `classic_keyboard` driver, `KeyboardList` and the per-process
  `KeyboardBuffer`.
- `alphaos.syscalls`: `CommandTable` for `int 0x80` commands, the `sum` and
  `print` commands, `register_commands` and `idt_descriptor`.
- `alphaos.kernel`: `Terminal`, an 80x25 VGA text screen, and `Kernel`,
  which boots every subsystem in order.

Failures are raised as `KernelError`; unrecoverable conditions as
`KernelPanic`.

## Installing

```
pip install .
```

With the test dependencies:

```
pip install ".[test]"
pytest
```

## Running

```
alphaos IMAGE [--program PATH]
```

`IMAGE` is a disk image file holding a FAT16 volume. The command builds the
descriptor tables, heap, file layer and page directories, attaches the image
as drive 0, registers the system calls and the keyboard driver, then loads
the program (default `0:/blank.bin`) into a new process. It prints what the
terminal shows and exits with 0, or with 1 after a kernel panic such as
`Failed to load blank.bin`.

The same from Python:

```python
from alphaos.kernel import Kernel

with open("disk.img", "rb") as handle:
    kernel = Kernel(handle.read())
registers = kernel.boot()          # the first task's starting registers
print(hex(registers.ip))           # 0x400000
print(kernel.terminal.text())
```

## Using the pieces

```python
from alphaos.pparser import parse_path
from alphaos.fstypes import FileMode, file_mode_from_string

root = parse_path("0:/bin/blank.bin")
assert root.drive_no == 0 and root.parts == ["bin", "blank.bin"]
assert file_mode_from_string("r") is FileMode.READ
```

```python
from alphaos.heap import Heap

heap = Heap(0, 4096 * 4)
first = heap.malloc(5000)   # two blocks, at address 0
second = heap.malloc(1)     # next free block, at address 8192
heap.free(first)
```

```python
from alphaos.paging import PageDirectory, PagingFlag

directory = PageDirectory.new_4gb(PagingFlag.IS_PRESENT)
directory.map(0x400000, 0x1000000, PagingFlag.IS_PRESENT | PagingFlag.IS_WRITABLE)
assert directory.translate(0x400010) == 0x1000010
```

```python
from alphaos.gdt import GdtEntry, encode_gdt_entry

assert encode_gdt_entry(GdtEntry(0, 0xFFFFFFFF, 0x9A)) == bytes.fromhex("ffff0000009acf00")
```

```python
from alphaos.kernel import Terminal

terminal = Terminal()
terminal.print("Hello\nworld")
print(terminal.text())
```

## What it does not do

- It does not execute program code. Booting stops once the first task is
  ready and returns that task's registers; system calls run only when a
  handler from `Kernel.idt` or `CommandTable.handle` is called directly.
- There is no real hardware access: port writes are recorded in
  `Kernel.ports`, and disks are byte images held in memory.
- The FAT16 driver is read-only. Opening in any mode other than `"r"`
  raises `ERDONLY`, and seeking from the end raises `EUNIMP`.
- There is no shell, no console input loop and no scheduler that switches
  between tasks on its own.