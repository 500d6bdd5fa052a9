"""Four-level x86-64 page tables with a self-referencing top-level slot."""

ENTRY_LIMIT = 512
PAGE_SIZE = 0x1000

P_PRESENT = 0x0000000000000001
P_READ_WRITE = 0x0000000000000002
P_USER_SUPERVISOR = 0x0000000000000004
P_PAGE_LEVEL_WORKTHROUGH = 0x0000000000000008
P_PAGE_LEVEL_CACHE_DISABLE = 0x0000000000000010
P_ACCESS = 0x0000000000000020
P_PTE_DIRTY = 0x0000000000000040
P_PTE_PAGE_ATTRIBUTE_TABLE = 0x0000000000000080
P_GLOBAL_PAGE = 0x0000000000000100
P_PML4_MBZ = 0x0000000000000180
P_PDPE_MBZ = 0x0000000000000100
P_AVAILABLE_TO_SOFTWARE = 0x0000000000000D00
P_AVAILABLE = 0x3FF0000000000000
P_NO_EXECUTE = 0x8000000000000000
P_FLAG_BITS = 0xFFF0000000000FFF
P_ADDR_BITS = 0x000FFFFFFFFFF000

PML4_SELF_REFERENCE = 0xFFFFFF7FBFDFE000
PDP_SELF_REFERENCE = 0xFFFFFF7FBFC00000
PD_SELF_REFERENCE = 0xFFFFFF7F80000000
PT_SELF_REFERENCE = 0xFFFFFF0000000000

PML4_SR_ENTRY = 0x0000FF8000000000
PDP_SR_ENTRY = 0x0000FFFFC0000000
PD_SR_ENTRY = 0x0000FFFFFFE00000
PT_SR_ENTRY = 0x0000FFFFFFFFF000

PML4E_OFFSET = 0x0000FF8000000000
PDPE_OFFSET = 0x0000007FC0000000
PDE_OFFSET = 0x000000003FE00000
PTE_OFFSET = 0x00000000001FF000

KERNEL_SPACE_BASE = 0xFFFFFFFF80000000
SELF_REFERENCE_SLOT = 510
KERNEL_SLOT = 511
TABLE_FLAGS = P_PRESENT | P_READ_WRITE | P_USER_SUPERVISOR

_U64_MASK = (1 << 64) - 1


class PageFault(Exception):
    """A fault on a virtual address, as the fault handler reports it."""

    def __init__(self, message, address, kernel=False, present=False, writable=False):
        super().__init__(message)
        self.address = address
        self.kernel = kernel
        self.present = present
        self.writable = writable


def kaddr_v_to_p(virt_addr):
    """Return the physical page of a kernel virtual address."""
    return ((virt_addr >> 12 << 12) - KERNEL_SPACE_BASE) & _U64_MASK


def kaddr_p_to_v(phys_addr):
    """Return the kernel virtual page of a physical address."""
    return ((phys_addr >> 12 << 12) + KERNEL_SPACE_BASE) & _U64_MASK


def table_indices(virt_addr):
    """Return the (pml4, pdp, pd, pt) table indices of a virtual address."""
    virt_addr &= _U64_MASK
    return (
        (virt_addr & PML4E_OFFSET) >> 39,
        (virt_addr & PDPE_OFFSET) >> 30,
        (virt_addr & PDE_OFFSET) >> 21,
        (virt_addr & PTE_OFFSET) >> 12,
    )


def pml4e_address(virt_addr):
    """Return the virtual address of the PML4 entry for virt_addr."""
    return ((virt_addr & PML4_SR_ENTRY) >> 36) | PML4_SELF_REFERENCE


def pdpe_address(virt_addr):
    """Return the virtual address of the PDP entry for virt_addr."""
    return ((virt_addr & PDP_SR_ENTRY) >> 27) | PDP_SELF_REFERENCE


def pde_address(virt_addr):
    """Return the virtual address of the page directory entry for virt_addr."""
    return ((virt_addr & PD_SR_ENTRY) >> 18) | PD_SELF_REFERENCE


def pte_address(virt_addr):
    """Return the virtual address of the page table entry for virt_addr."""
    return ((virt_addr & PT_SR_ENTRY) >> 9) | PT_SELF_REFERENCE


class PageTables:
    """One address space: a PML4 and the tables below it, held per frame.

    Table frames come from, and go back to, the given frame allocator, which
    must offer allocate() and free(phys_addr).
    """

    def __init__(self, frames):
        self._frames = frames
        self.root = frames.allocate()
        self._tables = {self.root: [0] * ENTRY_LIMIT}
        self._tables[self.root][SELF_REFERENCE_SLOT] = self.root | TABLE_FLAGS

    def _table(self, value, virt_addr):
        table = self._tables.get(value & P_ADDR_BITS)
        if table is None:
            raise PageFault(
                f"entry {value:#x} does not point to a page table", virt_addr
            )
        return table

    def _leaf(self, virt_addr):
        """Return (table, index) of the entry for virt_addr, or None if a level is missing."""
        table = self._tables[self.root]
        *upper, last = table_indices(virt_addr)
        for index in upper:
            value = table[index]
            if not value & P_PRESENT:
                return None
            table = self._table(value, virt_addr)
        return table, last

    def map(self, virt_addr, phys_addr, flags):
        """Map the page of virt_addr to phys_addr, creating missing tables.

        Returns True if the mapping was made. If the page is already mapped
        and present, the existing mapping stays and phys_addr is released to
        the frame allocator; False is returned.
        """
        table = self._tables[self.root]
        *upper, last = table_indices(virt_addr)
        for index in upper:
            value = table[index]
            if value == 0:
                frame = self._frames.allocate()
                self._tables[frame] = [0] * ENTRY_LIMIT
                value = frame | TABLE_FLAGS
                table[index] = value
            table = self._table(value, virt_addr)
        current = table[last]
        if current == 0:
            table[last] = (phys_addr | flags) & _U64_MASK
            return True
        if current & P_PRESENT:
            self._frames.free(phys_addr)
        return False

    def entry(self, virt_addr):
        """Return the page table entry for virt_addr, 0 if it has none."""
        leaf = self._leaf(virt_addr)
        if leaf is None:
            return 0
        table, index = leaf
        return table[index]

    def unmap(self, virt_addr):
        """Clear the page table entry for virt_addr and return what it held."""
        leaf = self._leaf(virt_addr)
        if leaf is None:
            return 0
        table, index = leaf
        old = table[index]
        table[index] = 0
        return old

    def lookup(self, virt_addr):
        """Return the entry for virt_addr with its low twelve flag bits cleared."""
        return self.entry(virt_addr) >> 12 << 12

    def _release_table(self, value):
        frame = value & P_ADDR_BITS
        self._frames.free(frame)
        self._tables.pop(frame, None)

    def free_all(self):
        """Release every mapped page and every table below the PML4.

        The self-reference and kernel slots are kept. Returns the number of
        mapped pages released.
        """
        released = 0
        pml4 = self._tables[self.root]
        for pml4_index in range(SELF_REFERENCE_SLOT):
            pml4_value = pml4[pml4_index]
            if not pml4_value & P_PRESENT:
                continue
            pdp = self._table(pml4_value, 0)
            for pdp_index, pdp_value in enumerate(pdp):
                if not pdp_value & P_PRESENT:
                    continue
                pd = self._table(pdp_value, 0)
                for pd_index, pd_value in enumerate(pd):
                    if not pd_value & P_PRESENT:
                        continue
                    pt = self._table(pd_value, 0)
                    for pt_index, pt_value in enumerate(pt):
                        if pt_value & P_PRESENT:
                            self._frames.free(pt_value & P_ADDR_BITS)
                            pt[pt_index] = 0
                            released += 1
                    self._release_table(pd_value)
                    pd[pd_index] = 0
                self._release_table(pdp_value)
                pdp[pdp_index] = 0
            self._release_table(pml4_value)
            pml4[pml4_index] = 0
        return released

    def check_fault(self, fault_addr):
        """Report a page fault at fault_addr; every fault is fatal, so this always raises."""
        if fault_addr >= KERNEL_SPACE_BASE:
            raise PageFault("<KERNEL> page fault", fault_addr, kernel=True)
        pte = self.entry(fault_addr)
        raise PageFault(
            "<USER> page fault",
            fault_addr,
            present=bool(pte & P_PRESENT),
            writable=bool(pte & P_READ_WRITE),
        )