"""The small printf and scanf of the user library and the kernel console."""

import re

MAX_LINE = 2048
MAX_BUFF = 4096

_U64_MASK = (1 << 64) - 1
_DIGITS = re.compile(r"[0-9]*")
_WORD = re.compile(r"[^\0\n]*")


def _int32(value):
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


def _digits(value, base):
    """Render value in base; values below the base, negatives too, become one character."""
    if value < base:
        code = value + ord("0") if value < 10 else value - 10 + ord("a")
        return chr(code & 0xFF)
    return str(value) if base == 10 else format(value, "x")


def _char(value):
    if isinstance(value, str):
        return value[:1] or "\0"
    return chr(value & 0xFF)


def _string(value):
    return value.split("\0", 1)[0]


def _decimal(value):
    return _digits(_int32(value), 10)


_USER_CONVERSIONS = {
    "d": _decimal,
    "c": _char,
    "s": _string,
    "x": lambda value: "0x" + _digits(_int32(value), 16),
}

_KERNEL_CONVERSIONS = {
    "d": _decimal,
    "c": _char,
    "s": _string,
    "x": lambda value: _digits(value & _U64_MASK, 16),
    "p": lambda value: "0x" + _digits(value & _U64_MASK, 16),
}


def _render(fmt, args, conversions):
    pieces = []
    values = iter(args)
    chars = iter(_string(fmt))
    for char in chars:
        if char != "%":
            pieces.append(char)
            continue
        spec = next(chars, None)
        if spec is None:
            break
        convert = conversions.get(spec)
        if convert is None:
            continue
        try:
            value = next(values)
        except StopIteration:
            raise TypeError(f"not enough arguments for %{spec}") from None
        pieces.append(convert(value))
    return "".join(pieces)


def format_user(fmt, *args):
    """Format as the user library does: %d, %c, %s and %x (with a 0x prefix)."""
    return _render(fmt, args, _USER_CONVERSIONS)


def format_kernel(fmt, *args):
    """Format as the kernel console does: %d, %c, %s, %x (64-bit, no prefix) and %p."""
    return _render(fmt, args, _KERNEL_CONVERSIONS)


def scan(fmt, text):
    """Parse one read of input against fmt and return the converted values.

    %d reads plain digits, %c one character and %s everything up to a newline.
    Only the first MAX_BUFF characters of text are seen.
    """
    buffer = text[:MAX_BUFF]
    position = 0
    values = []
    chars = iter(fmt)
    for char in chars:
        if char != "%":
            continue
        spec = next(chars, None)
        if spec is None:
            break
        if spec == "d":
            match = _DIGITS.match(buffer, position)
            digits = match.group()
            values.append(_int32(int(digits)) if digits else 0)
            position = match.end()
        elif spec == "c":
            values.append(buffer[position] if position < len(buffer) else "\0")
            position += 1
        elif spec == "s":
            match = _WORD.match(buffer, position)
            values.append(match.group())
            position = match.end()
    return values