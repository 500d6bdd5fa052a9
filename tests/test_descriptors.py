import pytest

from sbunix.descriptors import (
    MAX_GDT,
    decode_idt_entry,
    default_gdt,
    idt_entry,
    pit_divisor_bytes,
    tss_descriptor,
)


def test_gdt_shape():
    table = default_gdt()
    assert len(table) == MAX_GDT
    assert table[0] == 0
    assert table[5] == table[6] == 0
    assert all(word == 0 for word in table[7:])


def test_gdt_kernel_code_segment():
    assert default_gdt()[1] == 0x00180000000000 | 0x00800000000000 | 0x20000000000000


def test_gdt_user_segments_differ_only_in_privilege():
    table = default_gdt()
    assert table[3] ^ table[1] == 0x00600000000000
    assert table[4] ^ table[2] == 0x00600000000000


def test_tss_descriptor_fields():
    base = 0xFFFFFFFF80312340
    low, high = tss_descriptor(base, 55)
    assert low & 0xFFFF == 55
    assert (low >> 40) & 0x1F == 9
    assert (low >> 47) & 1 == 1
    assert (low >> 45) & 0x3 == 0
    rebuilt = ((low >> 16) & 0xFFFFFF) | (((low >> 56) | ((high & 0xFFFFFFFF) << 8)) << 24)
    assert rebuilt == base
    assert high >> 32 == 0


def test_idt_entry_round_trip():
    offset = 0xFFFFFFFF80201234
    fields = decode_idt_entry(idt_entry(offset, 0x08, 0xE, 0))
    assert fields["offset"] == offset
    assert fields["selector"] == 0x08
    assert fields["type"] == 0xE
    assert fields["dpl"] == 0
    assert fields["present"] == 1
    assert fields["ist"] == 0


def test_idt_entry_bytes():
    entry = idt_entry(0xFFFFFFFF80201234, 0x08, 0xE, 0)
    assert len(entry) == 16
    assert entry[2:4] == b"\x08\x00"
    assert entry[5] == 0x8E
    assert entry[12:] == bytes(4)


@pytest.mark.parametrize("dpl", [0, 1, 2, 3])
def test_idt_entry_dpl_round_trip(dpl):
    assert decode_idt_entry(idt_entry(0x1000, 0x08, 0xE, dpl))["dpl"] == dpl


def test_idt_entry_rejects_bad_dpl():
    with pytest.raises(ValueError):
        idt_entry(0x1000, 0x08, 0xE, 4)


def test_decode_rejects_wrong_length():
    with pytest.raises(ValueError):
        decode_idt_entry(bytes(8))


@pytest.mark.parametrize("frequency", [19, 100, 1000, 50000])
def test_pit_divisor_brackets_frequency(frequency):
    low, high = pit_divisor_bytes(frequency)
    divisor = (high << 8) | low
    assert 0 <= low <= 0xFF
    assert divisor * frequency <= 1193180 < (divisor + 1) * frequency


def test_pit_divisor_rejects_zero():
    with pytest.raises(ValueError):
        pit_divisor_bytes(0)