"""NUL-terminated string helpers shared by the kernel and the user library."""

from itertools import islice

_U64_MASK = (1 << 64) - 1


def _terminated(text):
    """Return text up to, not including, its first NUL character."""
    return text.split("\0", 1)[0]


def find(haystack, needle):
    """Return the index of the first occurrence of needle in haystack, or None.

    An empty haystack never matches, even with an empty needle.
    """
    haystack = _terminated(haystack)
    needle = _terminated(needle)
    if not haystack:
        return None
    index = haystack.find(needle)
    return None if index < 0 else index


def _difference(pairs):
    for left, right in pairs:
        if left != right:
            return ord(left) - ord(right)
        if left == "\0":
            return 0
    return 0


def compare(first, second):
    """Compare two strings; return 0, or the difference of the first differing characters."""
    first = _terminated(first) + "\0"
    second = _terminated(second) + "\0"
    return _difference(zip(first, second))


def compare_prefix(first, second, limit):
    """Compare at most limit characters of two strings."""
    if limit < 0:
        raise ValueError("limit must not be negative")
    first = _terminated(first) + "\0"
    second = _terminated(second) + "\0"
    return _difference(islice(zip(first, second), limit))


def decimal_value(text):
    """Read text as decimal digits without any validation, wrapping at 64 bits."""
    value = 0
    for char in _terminated(text):
        value = (value * 10 + ord(char) - ord("0")) & _U64_MASK
    return value


def octal_to_decimal(octal):
    """Reinterpret the decimal digits of a number as octal digits."""
    octal &= _U64_MASK
    value = 0
    power = 0
    while octal:
        octal, digit = divmod(octal, 10)
        value = (value + digit * 8**power) & _U64_MASK
        power += 1
    return value