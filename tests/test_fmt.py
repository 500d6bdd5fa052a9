import pytest

from sbunix.fmt import MAX_BUFF, format_kernel, format_user, scan


def test_plain_text_passes_through():
    assert format_user("Hello World\n") == "Hello World\n"


@pytest.mark.parametrize(
    "number", [0, 5, 9, 10, 15, 100, 105, 110, 1000, 1005, 1010, 2147483647]
)
def test_user_decimal(number):
    assert format_user("%d", number) == str(number)


def test_user_decimal_wraps_to_int():
    assert format_user("%d", (1 << 32) + 7) == "7"


def test_user_negative_decimal_is_one_character():
    assert format_user("%d", -1) == "/"


@pytest.mark.parametrize("number", [0, 9, 10, 15, 16, 255, 4096, 0x5EADBEEF])
def test_user_hex_has_prefix(number):
    assert format_user("%x", number) == "0x" + format(number, "x")


def test_user_char_from_int_and_str():
    assert format_user("%c%c", 65, "z") == "Az"


def test_user_string_stops_at_nul():
    assert format_user("[%s]", "abc\0def") == "[abc]"


def test_percent_percent_prints_nothing():
    assert format_user("100%%") == "100"


def test_unknown_conversion_prints_nothing():
    assert format_user("a%qb") == "ab"


def test_trailing_percent_ends_output():
    assert format_user("ab%") == "ab"


def test_missing_argument_raises():
    with pytest.raises(TypeError):
        format_user("%d")
    with pytest.raises(TypeError):
        format_kernel("%s %s", "one")


def test_kernel_hex_has_no_prefix():
    assert format_kernel("%x", 255) == format(255, "x")


def test_kernel_pointer():
    assert format_kernel("%p", 0xFFFFFFFF80000000) == "0xffffffff80000000"


def test_kernel_hex_is_unsigned_64_bit():
    assert format_kernel("%x", -1) == format((1 << 64) - 1, "x")


@pytest.mark.parametrize("number", [0, 7, 42, 1005, 65536])
def test_kernel_and_user_decimal_agree(number):
    assert format_kernel("%d", number) == format_user("%d", number)


def test_kernel_mixed_format():
    result = format_kernel("tarfs in [%p:%p]\n", 0x1000, 0x2000)
    assert result == "tarfs in [0x" + format(0x1000, "x") + ":0x" + format(0x2000, "x") + "]\n"


def test_scan_string_reads_to_newline():
    assert scan("%s", "ls -l\nmore") == ["ls -l"]


def test_scan_decimal_reads_leading_digits():
    assert scan("%d", "42abc") == [42]


def test_scan_decimal_without_digits_is_zero():
    assert scan("%d", "abc") == [0]


def test_scan_sequence_of_conversions():
    assert scan("%d%c%s", "12xrest\n") == [12, "x", "rest"]


def test_scan_char_past_end_is_nul():
    assert scan("%c", "") == ["\0"]


def test_scan_sees_only_one_buffer():
    assert scan("%s", "a" * (MAX_BUFF + 100)) == ["a" * MAX_BUFF]


def test_scan_skips_unknown_conversion():
    assert scan("%q%d", "7") == [7]