"""Find files in a ustar archive the way the kernel's boot file system does."""

from dataclasses import dataclass

from sbunix.cstring import compare, decimal_value, octal_to_decimal

BLOCK_SIZE = 512

_LAYOUT = (
    ("name", 100),
    ("mode", 8),
    ("uid", 8),
    ("gid", 8),
    ("size", 12),
    ("mtime", 12),
    ("checksum", 8),
    ("typeflag", 1),
    ("linkname", 100),
    ("magic", 6),
    ("version", 2),
    ("uname", 32),
    ("gname", 32),
    ("devmajor", 8),
    ("devminor", 8),
    ("prefix", 155),
    ("pad", 12),
)


def _field(raw):
    return raw.split(b"\0", 1)[0].decode("latin-1")


@dataclass(frozen=True)
class TarHeader:
    """The text fields of one 512-byte ustar header block."""

    name: str
    mode: str
    uid: str
    gid: str
    size: str
    mtime: str
    checksum: str
    typeflag: str
    linkname: str
    magic: str
    version: str
    uname: str
    gname: str
    devmajor: str
    devminor: str
    prefix: str

    @classmethod
    def parse(cls, block):
        """Read a header from exactly one block of bytes."""
        block = bytes(block)
        if len(block) != BLOCK_SIZE:
            raise ValueError(f"a header block is {BLOCK_SIZE} bytes, got {len(block)}")
        values = {}
        offset = 0
        for name, width in _LAYOUT:
            if name != "pad":
                values[name] = _field(block[offset : offset + width])
            offset += width
        return cls(**values)

    @property
    def file_size(self):
        """The size field read as octal digits."""
        return octal_to_decimal(decimal_value(self.size))


def retrieve(archive, name):
    """Return the contents of the member called name, or None if there is none.

    The walk stops at the first block with an empty name. After a member
    with data it skips size // 512 + 2 blocks, as the kernel does.
    """
    data = bytes(archive)
    offset = 0
    while offset < len(data):
        block = data[offset : offset + BLOCK_SIZE].ljust(BLOCK_SIZE, b"\0")
        header = TarHeader.parse(block)
        if not header.name:
            return None
        size = header.file_size
        start = offset + BLOCK_SIZE
        if compare(name, header.name) == 0:
            return data[start : start + size]
        if size:
            offset += (size // BLOCK_SIZE + 2) * BLOCK_SIZE
        else:
            offset += BLOCK_SIZE
    return None