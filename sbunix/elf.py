"""Loading ELF64 executables into a fresh user address space."""

import struct
from dataclasses import dataclass

from sbunix.paging import P_PRESENT, P_READ_WRITE, P_USER_SUPERVISOR, PAGE_SIZE, PageFault
from sbunix.proc import (
    PERM_R,
    PERM_W,
    PROC_NAME_MAX,
    USER_STACK_SIZE,
    USER_STACK_TOP,
    Mode,
    VmaType,
)
from sbunix.tarfs import retrieve

ELF_MAGIC = b"\x7fELF"
EI_NIDENT = 16
PT_LOAD = 1
MAX_ARG = 10
MAX_ARG_LEN = 100

_EHDR = struct.Struct("<16sHHIQQQIHHHHHH")
_PHDR = struct.Struct("<IIQQQQQQ")
_U64 = struct.Struct("<Q")
_SEGMENT_TYPES = {5: VmaType.TEXT, 6: VmaType.DATA}
_TEXT_FLAGS = P_PRESENT | P_USER_SUPERVISOR
_DATA_FLAGS = P_PRESENT | P_READ_WRITE | P_USER_SUPERVISOR


def check_elf(data):
    """Return True if data starts with the ELF magic bytes."""
    return bytes(data[:4]) == ELF_MAGIC


@dataclass(frozen=True)
class ElfHeader:
    ident: bytes
    type: int
    machine: int
    version: int
    entry: int
    phoff: int
    shoff: int
    flags: int
    ehsize: int
    phentsize: int
    phnum: int
    shentsize: int
    shnum: int
    shstrndx: int

    @classmethod
    def parse(cls, data):
        """Read the file header from the start of data."""
        if len(data) < _EHDR.size:
            raise ValueError(f"an ELF header is {_EHDR.size} bytes, got {len(data)}")
        return cls(*_EHDR.unpack_from(data, 0))


@dataclass(frozen=True)
class ProgramHeader:
    type: int
    flags: int
    offset: int
    vaddr: int
    paddr: int
    filesz: int
    memsz: int
    align: int

    @classmethod
    def parse(cls, data, offset=0):
        """Read one program header at offset."""
        if offset + _PHDR.size > len(data):
            raise ValueError(f"program header at {offset} runs past the file")
        return cls(*_PHDR.unpack_from(data, offset))


def program_headers(data, header):
    """Yield the program headers listed by header."""
    for index in range(header.phnum):
        yield ProgramHeader.parse(data, header.phoff + index * _PHDR.size)


class UserImage:
    """The pages of a loaded task, held sparsely by page address."""

    def __init__(self, task, entry=0):
        self.task = task
        self.entry = entry
        self.pages = {}
        self.flags = {}

    def map(self, start, size, flags):
        """Back the page of start and the next size >> 12 pages with zeroed memory."""
        page = start >> 12 << 12
        for number in range((size >> 12) + 1):
            address = page + number * PAGE_SIZE
            self.pages.setdefault(address, bytearray(PAGE_SIZE))
            self.flags[address] = flags

    def _page(self, address):
        page = self.pages.get(address >> 12 << 12)
        if page is None:
            raise PageFault(f"no page mapped at {address:#x}", address)
        return page

    def write(self, address, data):
        data = bytes(data)
        done = 0
        while done < len(data):
            page = self._page(address + done)
            offset = (address + done) % PAGE_SIZE
            chunk = data[done : done + PAGE_SIZE - offset]
            page[offset : offset + len(chunk)] = chunk
            done += len(chunk)

    def read(self, address, size):
        out = bytearray()
        while len(out) < size:
            current = address + len(out)
            page = self._page(current)
            offset = current % PAGE_SIZE
            out += page[offset : offset + size - len(out)]
        return bytes(out)

    def read_u64(self, address):
        return _U64.unpack(self.read(address, _U64.size))[0]

    def write_u64(self, address, value):
        self.write(address, _U64.pack(value))

    def read_string(self, address):
        """Read a NUL-terminated string."""
        out = bytearray()
        while True:
            byte = self.read(address + len(out), 1)
            if byte == b"\0":
                return out.decode("utf-8", errors="replace")
            out += byte


def _load_segment(image, data, phdr):
    if phdr.memsz < phdr.filesz:
        raise ValueError("segment is smaller in memory than in the file")
    contents = bytes(data[phdr.offset : phdr.offset + phdr.filesz])
    if len(contents) != phdr.filesz:
        raise ValueError("segment runs past the end of the file")
    mm = image.task.mm
    vma_type = _SEGMENT_TYPES.get(phdr.flags, VmaType.COMM)
    vma = _make_vma(image, phdr.vaddr, phdr.vaddr + phdr.memsz, phdr.flags, vma_type)
    mm.count += 1
    mm.total_vm += phdr.memsz
    image.map(phdr.vaddr, phdr.memsz, _TEXT_FLAGS if vma_type == VmaType.TEXT else _DATA_FLAGS)
    mm.add(vma)
    image.write(phdr.vaddr, contents)
    image.write(phdr.vaddr + phdr.filesz, bytes(phdr.memsz - phdr.filesz))
    return phdr.vaddr + phdr.memsz


def _make_vma(image, start, end, permission, vma_type):
    from sbunix.proc import VmArea

    allocate = getattr(image, "allocate_vma", None)
    if allocate is not None:
        return allocate(start, end, permission, vma_type, 0)
    return VmArea(start=start, end=end, permission=permission, type=vma_type)


def _map_stack_and_heap(image, max_addr):
    mm = image.task.mm
    stack_start = USER_STACK_TOP - USER_STACK_SIZE
    mm.add(_make_vma(image, stack_start, USER_STACK_TOP, PERM_R | PERM_W, VmaType.STACK))
    image.map(USER_STACK_TOP - PAGE_SIZE, PAGE_SIZE, _DATA_FLAGS)
    heap = (max_addr & ~0xFFF) + PAGE_SIZE
    mm.add(_make_vma(image, heap, heap, PERM_R | PERM_W, VmaType.HEAP))
    mm.count += 2
    mm.locked_vm = USER_STACK_SIZE
    mm.total_vm += USER_STACK_SIZE
    mm.start_brk = heap
    mm.brk = heap
    mm.start_stack = USER_STACK_TOP - 0x8


def _store_args(image, args):
    if len(args) > MAX_ARG:
        raise ValueError(f"at most {MAX_ARG} arguments, got {len(args)}")
    encoded = [arg.encode("utf-8") for arg in args]
    for raw in encoded:
        if len(raw) >= MAX_ARG_LEN:
            raise ValueError(f"argument longer than {MAX_ARG_LEN - 1} bytes")
    mm = image.task.mm
    stack = mm.start_stack
    pointers = []
    for raw in reversed(encoded):
        stack -= len(raw) + 1
        image.write(stack, raw + b"\0")
        pointers.append(stack)
    for pointer in pointers:
        stack -= _U64.size
        image.write_u64(stack, pointer)
    stack -= _U64.size
    image.write_u64(stack, len(encoded))
    mm.start_stack = stack


def load_elf(data, task, name, args=None):
    """Load the segments of data into a new image for task and set up its stack.

    The stack ends up holding argc, then argv pointers, then the strings.
    """
    header = ElfHeader.parse(data)
    image = UserImage(task, header.entry)
    task.name = name[:PROC_NAME_MAX]
    max_addr = 0
    for phdr in program_headers(data, header):
        if phdr.type == PT_LOAD:
            max_addr = max(max_addr, _load_segment(image, data, phdr))
    _map_stack_and_heap(image, max_addr)
    _store_args(image, [name, *(args or ())])
    return image


def load_process(archive, name, args, scheduler):
    """Load the program called name from a tar archive and queue it to run."""
    data = retrieve(archive, name)
    if data is None:
        raise FileNotFoundError(name)
    if not check_elf(data):
        raise ValueError(f"{name} is not an ELF file")
    task = scheduler.allocate_task(Mode.USER)
    image = UserImage(task)
    image.allocate_vma = scheduler.allocate_vma
    loaded = load_elf(data, task, name, args)
    loaded.allocate_vma = scheduler.allocate_vma
    scheduler.init_task(task, loaded.entry, task.mm.start_stack)
    return loaded