"""Write the initial superblock and inode markers onto a raw disk image."""

import mmap
import os
import struct
import sys

SECTOR_SIZE = 512
SUPERBLOCK_MAGIC = 0x20363035
INODE_REFCOUNT = 0x45444F4344414544

_SUPERBLOCK = struct.Struct("<I")
_INODE = struct.Struct("<Q")
MIN_DISK_SIZE = SECTOR_SIZE + _INODE.size


def format_disk(path):
    """Stamp the superblock magic into sector 0 and the inode marker into sector 1.

    The rest of the image is left as it is. Raises OSError if the image
    cannot be opened and ValueError if it is too small to hold both sectors.
    """
    size = os.stat(path).st_size
    if size < MIN_DISK_SIZE:
        raise ValueError(
            f"{path} holds {size} bytes, at least {MIN_DISK_SIZE} are needed"
        )
    with open(path, "r+b") as handle, mmap.mmap(handle.fileno(), size) as disk:
        _SUPERBLOCK.pack_into(disk, 0, SUPERBLOCK_MAGIC)
        _INODE.pack_into(disk, SECTOR_SIZE, INODE_REFCOUNT)
        disk.flush()


def _reason(error):
    return error.strerror or str(error)


def main(argv=None):
    """Format the disk image named on the command line; always exits with 0."""
    program = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "newfs"
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) != 1:
        print(f"Usage: {program} disk.img", file=sys.stderr)
        return 0
    path = args[0]
    try:
        os.stat(path)
    except OSError as error:
        print(f"{program}: Unable to stat {path} ({_reason(error)})", file=sys.stderr)
        return 0
    try:
        format_disk(path)
    except OSError as error:
        print(f"{program}: Unable to open {path} ({_reason(error)})", file=sys.stderr)
    except ValueError as error:
        print(f"{program}: Unable to map {path} ({error})", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())