"""The kernel's text-mode screen: printing, scrolling and the uptime clock."""

from sbunix.fmt import format_kernel

ROWS = 25
ROW_BYTES = 160
COLUMNS = ROW_BYTES // 2
VIDEO_PAGE_SIZE = 0x1000
DEFAULT_COLOR = 0x08
TICKS_PER_SECOND = 100


def _int32(value):
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


def clock_value(ticks):
    """Return the uptime for a tick count as the number HHMMSScc."""
    ticks &= 0xFFFFFFFF
    seconds = ticks // TICKS_PER_SECOND
    minutes = seconds // 60
    hours = minutes // 60
    return (
        ticks % TICKS_PER_SECOND
        + (seconds % 60) * 100
        + (minutes % 60) * 10000
        + ((hours * 1000000) & 0xFFFFFFFF)
    )


class Console:
    """A page of video memory with a write cursor.

    Each cell is two bytes, character then colour; x is the cursor's byte
    offset within its row and y is its row.
    """

    def __init__(self):
        self.memory = bytearray(VIDEO_PAGE_SIZE)
        self.x = 0
        self.y = 0

    def _store(self, offset, value):
        if not 0 <= offset < len(self.memory):
            raise IndexError(f"write outside the video page at offset {offset}")
        self.memory[offset] = value & 0xFF

    def clear(self):
        """Blank the visible screen and move the cursor home."""
        self.memory[: ROWS * ROW_BYTES] = bytes(ROWS * ROW_BYTES)
        self.x = 0
        self.y = 0

    def write(self, text, color=DEFAULT_COLOR):
        """Write text at the cursor, stopping at the first NUL."""
        for char in text:
            if char == "\0":
                break
            if char == "\r":
                self.x = 0
                continue
            if char == "\n":
                self.x = 0
                self.y += 1
                continue
            self.scroll()
            position = self.x + ROW_BYTES * self.y
            self._store(position, ord(char))
            self._store(position + 1, color)
            self.x += 2
            if self.x >= ROW_BYTES:
                self.x = 0
                self.y += 1

    def printf(self, fmt, *args):
        """Format with the kernel conventions and write the result."""
        for char in format_kernel(fmt, *args):
            self.write(char, DEFAULT_COLOR)

    def scroll(self):
        """Move the first 24 rows up by one once the cursor is below row 22."""
        if self.y > 22:
            self.memory[: 23 * ROW_BYTES] = self.memory[ROW_BYTES : 24 * ROW_BYTES]
            start = 23 * ROW_BYTES
            # Only the characters of the first half of row 23 are blanked.
            self.memory[start : start + 80 : 2] = bytes(40)
            self.y -= 1

    def cell(self, row, column):
        """Return the (character, colour) pair of a visible cell."""
        if not (0 <= row < ROWS and 0 <= column < COLUMNS):
            raise IndexError(f"no cell at row {row}, column {column}")
        offset = row * ROW_BYTES + column * 2
        return chr(self.memory[offset]), self.memory[offset + 1]

    def row_text(self, row):
        """Return the characters of a row, NUL shown as blank, trailing blanks removed."""
        if not 0 <= row < ROWS:
            raise IndexError(f"no row {row}")
        start = row * ROW_BYTES
        chars = self.memory[start : start + ROW_BYTES : 2]
        return chars.decode("latin-1").replace("\0", " ").rstrip(" ")

    def show_clock(self, ticks):
        """Draw the uptime right-aligned on the bottom row, colons between digit pairs."""
        value = _int32(clock_value(ticks))
        offset = 0
        colon = 0
        while value > 0:
            value, digit = divmod(value, 10)
            offset += 2
            position = ROWS * ROW_BYTES - offset - colon
            self._store(position, ord("0") + digit)
            self._store(position + 1, DEFAULT_COLOR)
            if (offset - 2) % 4 == 0 and offset != 2:
                self._store(position + 2, ord(":"))
                self._store(position + 3, DEFAULT_COLOR)
            if offset % 4 == 0:
                colon += 2