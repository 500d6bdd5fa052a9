# sbunix

`sbunix` models a small x86-64 teaching kernel and its user space in plain
Python. Each part of the system is a module you can import, drive and inspect;
nothing touches real hardware.

| Module                | What it holds                                                           |
|-----------------------|-------------------------------------------------------------------------|
| `sbunix.cstring`      | NUL-terminated string helpers: `find`, `compare`, `compare_prefix`, `decimal_value`, `octal_to_decimal` |
| `sbunix.fmt`          | the minimal formatters: `format_user` (`%d %c %s %x`, `%x` with a `0x` prefix), `format_kernel` (`%d %c %s %x %p`) and `scan` (`%d %c %s`) |
| `sbunix.console`      | `Console`, a 80x25 text-mode video page with cursor, scrolling and an uptime clock; `clock_value` turns ticks into `HHMMSScc` |
| `sbunix.keyboard`     | `Keyboard`, whose `press(scancode)` tracks Shift/Control and returns the two characters shown for a key |
| `sbunix.descriptors`  | GDT, TSS and IDT entries and the PIT divisor: `default_gdt`, `tss_descriptor`, `idt_entry`, `decode_idt_entry`, `pit_divisor_bytes` |
| `sbunix.frames`       | `FrameAllocator`, physical 4 KiB frames with reference counts, and `SegmentationFault` |
| `sbunix.paging`       | `PageTables`, four-level page tables with a self-reference slot; the self-reference address helpers; `PageFault` |
| `sbunix.virtmem`      | `VirtualMemory`: `allocate_pages`, `free_page`, `kmmap` and the `kmalloc` bump allocator |
| `sbunix.proc`         | `Task`, `MemoryMap`, `VmArea`, the `TaskState`, `Mode` and `VmaType` enums, and the round-robin `Scheduler` |
| `sbunix.elf`          | ELF64 parsing (`ElfHeader`, `ProgramHeader`, `check_elf`) and loading into a `UserImage`: `load_elf`, `load_process` |
| `sbunix.tarfs`        | `TarHeader` and `retrieve`, for finding a member in a ustar archive     |
| `sbunix.newfs`        | `format_disk`, stamping the superblock magic and first inode into a disk image |
| `sbunix.shell`        | `Shell`, the sbush command interpreter, with `trim`, `split_command` and `read_environment` |
| `sbunix.hello`        | a program that prints `Hello World`                                     |

## Installing

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Commands

### sbush

An interactive shell. It reads `USER`, `HOME` and `PATH` from the environment
(reporting any that are missing), builds its prompt string as `USER@SBU-SH`
and shows `user@SBU-SH:~/dir$ ` with the home directory written as `~`. It
understands:

* `cd [dir]`, with `..`, absolute paths and `~`; `cd` alone goes home;
* `pwd`;
* `export NAME=value` for `PATH`, `HOME` and `PS1` only;
* `./program args…` to run a file relative to the current directory;
* any other command, run from an absolute path or the first `PATH` entry
  that holds it;
* pipelines such as `ls | grep py | wc -l`.

Words are split on single spaces; there is no quoting, globbing or
redirection. The working directory is kept by the shell itself and passed to
the programs it starts.

```
sbush
```

Given a file, it runs each line of it as an external command and exits:

```
sbush script.sh
```

### sbunix-hello

Prints `Hello World`.

```
sbunix-hello
```

### sbunix-newfs

Formats an existing disk image in place: it writes the superblock magic
`0x20363035` at the start of the first 512-byte sector and the inode marker
at the start of the second. The image must be at least 520 bytes. Errors are
reported on standard error; the exit status is always 0.

```
sbunix-newfs disk.img
```

## Using the library

Formatting text the way the kernel's console does:

```python
from sbunix.console import Console
from sbunix.fmt import format_user

console = Console()
console.printf("frames free: %d\n", 42)
print(console.row_text(0))          # frames free: 42

print(format_user("%s has %d items", "queue", 3))
```

Finding a program inside a tar archive and loading it as a process:

```python
from sbunix.proc import Scheduler
from sbunix.elf import load_process

with open("rootfs.tar", "rb") as handle:
    archive = handle.read()

scheduler = Scheduler()
scheduler.create_primal()
image = load_process(archive, "bin/hello", None, scheduler)
print(hex(image.entry), image.task.name)
```

`load_process` raises `FileNotFoundError` if the archive has no such member
and `ValueError` if it is not an ELF file. The returned `UserImage` holds the
loaded pages; its task's stack holds `argc`, the `argv` pointers and the
argument strings, with the program name as the first argument.

Allocating physical frames and mapping them:

```python
from sbunix.frames import FrameAllocator
from sbunix.paging import PageTables

frames = FrameAllocator(0x100000, 0x2000000)
tables = PageTables(frames)
frame = frames.allocate()
tables.map(0x400000, frame, 0x7)
print(hex(tables.lookup(0x400000)))
```

## What it does not do

`sbunix` models the kernel's data structures and algorithms; it is not a
kernel that boots. There is no bootable image, no real interrupt handling or
port I/O, no system-call layer and no CPU context switch: `Scheduler.tick`
only chooses which `Task` would run next, and page tables and user images are
held in Python objects rather than in memory a processor could use.