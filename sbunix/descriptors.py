"""Descriptor table entries and timer programming values for x86-64."""

MAX_GDT = 32

GDT_CS = 0x00180000000000
GDT_DS = 0x00100000000000
C = 0x00040000000000
DPL0 = 0x00000000000000
DPL1 = 0x00200000000000
DPL2 = 0x00400000000000
DPL3 = 0x00600000000000
P = 0x00800000000000
L = 0x20000000000000
D = 0x40000000000000
W = 0x00020000000000

KERNEL_CODE_SELECTOR = 0x08
KERNEL_DATA_SELECTOR = 0x10
TSS_SIZE = 4 + 8 + 11 * 4
TSS_TYPE = 9
INTERRUPT_GATE = 0xE
IDT_ENTRY_SIZE = 16

PIT_BASE_FREQUENCY = 1193180
PIT_FREQUENCY = 100
PIT_COMMAND = 0x30 | 0x06

_U64_MASK = (1 << 64) - 1


def _bits(value, width, shift):
    return (value & ((1 << width) - 1)) << shift


def default_gdt():
    """Return the 32 GDT words: null, kernel code/data, user code/data, room for the TSS."""
    table = [0] * MAX_GDT
    table[1:5] = [
        GDT_CS | P | DPL0 | L,
        GDT_DS | P | W | DPL0,
        GDT_CS | P | DPL3 | L,
        GDT_DS | P | W | DPL3,
    ]
    return table


def tss_descriptor(base, limit=TSS_SIZE - 1):
    """Return the two GDT words of a present 386 TSS descriptor at privilege 0."""
    base &= _U64_MASK
    value = (
        _bits(limit, 16, 0)
        | _bits(base, 24, 16)
        | _bits(TSS_TYPE, 5, 40)
        | _bits(0, 2, 45)
        | _bits(1, 1, 47)
        | _bits(0, 4, 48)
        | _bits(0, 1, 55)
        | _bits(base >> 24, 40, 56)
    )
    return value & _U64_MASK, value >> 64


def _check(name, value, width):
    if not 0 <= value < (1 << width):
        raise ValueError(f"{name} {value} does not fit in {width} bits")


def idt_entry(offset, selector=KERNEL_CODE_SELECTOR, gate_type=INTERRUPT_GATE, dpl=0):
    """Return the 16 bytes of a present IDT gate for a handler at offset."""
    _check("selector", selector, 16)
    _check("gate type", gate_type, 4)
    _check("dpl", dpl, 2)
    offset &= _U64_MASK
    value = (
        _bits(offset, 16, 0)
        | _bits(selector, 16, 16)
        | _bits(gate_type, 4, 40)
        | _bits(dpl, 2, 45)
        | _bits(1, 1, 47)
        | _bits(offset >> 16, 16, 48)
        | _bits(offset >> 32, 32, 64)
    )
    return value.to_bytes(IDT_ENTRY_SIZE, "little")


def decode_idt_entry(entry):
    """Split the 16 bytes of an IDT gate back into its fields."""
    entry = bytes(entry)
    if len(entry) != IDT_ENTRY_SIZE:
        raise ValueError(f"an IDT entry is {IDT_ENTRY_SIZE} bytes, got {len(entry)}")
    value = int.from_bytes(entry, "little")
    return {
        "offset": (value & 0xFFFF)
        | (((value >> 48) & 0xFFFF) << 16)
        | (((value >> 64) & 0xFFFFFFFF) << 32),
        "selector": (value >> 16) & 0xFFFF,
        "ist": (value >> 32) & 0x7,
        "type": (value >> 40) & 0xF,
        "dpl": (value >> 45) & 0x3,
        "present": (value >> 47) & 0x1,
    }


def pit_divisor_bytes(frequency=PIT_FREQUENCY):
    """Return the low and high bytes of the PIT divisor for a tick frequency."""
    if frequency <= 0:
        raise ValueError("frequency must be positive")
    divisor = (PIT_BASE_FREQUENCY // frequency) & 0xFFFF
    return divisor & 0xFF, divisor >> 8