"""Physical frame allocation with reference counts."""

KERNEL_SIZE = 0x400000
KERNEL_SPACE_BASE = 0xFFFFFFFF80000000
FRAME_SIZE = 0x1000
RESERVED_FRAMES = 5
_FRAMES_PER_WORD = 64


class SegmentationFault(Exception):
    """An access to a physical address outside the managed frames."""

    def __init__(self, address):
        super().__init__(f"Segmentation fault at {address:#x}")
        self.address = address


class FrameAllocator:
    """Hands out 4 KiB frames from the memory above the kernel image.

    Frames are given lowest first, only from whole groups of 64, and the
    last few frames are always kept back.
    """

    def __init__(self, phys_base, phys_size):
        if phys_size < KERNEL_SIZE:
            raise ValueError(
                f"{phys_size:#x} bytes cannot hold the kernel of {KERNEL_SIZE:#x}"
            )
        self.base = phys_base + KERNEL_SIZE
        size = phys_size - KERNEL_SIZE
        self.ceiling = self.base + size
        self.total = size >> 12
        self._free = self.total
        self._refs = bytearray(self.total)
        self._usable = self.total // _FRAMES_PER_WORD * _FRAMES_PER_WORD

    @property
    def free_count(self):
        """The number of frames not in use."""
        return self._free

    def allocate(self):
        """Return the physical address of a free frame; MemoryError if none is left."""
        if self._free <= RESERVED_FRAMES:
            raise MemoryError("out of physical frames")
        index = self._refs.find(0, 0, self._usable)
        if index < 0:
            raise MemoryError("out of physical frames")
        self._refs[index] = 1
        self._free -= 1
        return self.base + index * FRAME_SIZE

    def _index(self, phys_addr):
        if not self.base <= phys_addr < self.ceiling:
            raise SegmentationFault(phys_addr)
        return (phys_addr - self.base) >> 12

    def free(self, phys_addr):
        """Drop one reference to a frame; it becomes free when none are left."""
        index = self._index(phys_addr)
        if not self._refs[index]:
            raise ValueError(f"frame {phys_addr:#x} is not allocated")
        self._refs[index] -= 1
        if not self._refs[index]:
            self._free += 1

    def references(self, phys_addr):
        """Return the reference count of the frame holding phys_addr."""
        return self._refs[self._index(phys_addr)]