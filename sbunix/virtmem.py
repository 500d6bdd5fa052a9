"""Kernel virtual pages and a simple bump allocator on top of them."""

from sbunix.paging import P_PRESENT, P_READ_WRITE, PAGE_SIZE

KERNEL_HEAP_BASE = 0xFFFFFFFF80510000
_ALIGNMENT = 0x10


class VirtualMemory:
    """The kernel's next free virtual address and its small-object allocator."""

    def __init__(self, tables, frames, base=KERNEL_HEAP_BASE):
        self.tables = tables
        self.frames = frames
        self.pointer = base
        self.unused = 0
        self.used_ptr = 0

    def allocate_pages(self, page_num, flags):
        """Map page_num fresh frames at the pointer and return the first address."""
        start = self.pointer
        for _ in range(page_num):
            self.tables.map(self.pointer, self.frames.allocate(), flags)
            self.pointer += PAGE_SIZE
        return start

    def free_page(self, virt_addr):
        """Release the frame behind virt_addr and clear its mapping."""
        phys_addr = self.tables.entry(virt_addr) >> 12 << 12
        self.frames.free(phys_addr)
        self.tables.unmap(virt_addr)

    def kmmap(self, start_addr, size, flags):
        """Map the pages from start_addr over size bytes, plus one; return start_addr."""
        saved = self.pointer
        self.pointer = start_addr >> 12 << 12
        try:
            self.allocate_pages((size >> 12) + 1, flags)
        finally:
            self.pointer = saved
        return start_addr

    def kmalloc(self, size):
        """Return kernel memory for size bytes, carved from the current page when it fits."""
        size = (size >> 4 << 4) + _ALIGNMENT
        if size > self.unused:
            page_num = size // PAGE_SIZE + 1
            address = self.allocate_pages(page_num, P_PRESENT | P_READ_WRITE)
            if page_num > 1:
                self.unused = 0
            else:
                self.unused = page_num * PAGE_SIZE - size
                self.used_ptr = address + size
            return address
        address = self.used_ptr
        self.used_ptr += size
        self.unused -= size
        return address