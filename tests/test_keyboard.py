import pytest

from sbunix.keyboard import (
    KB_1,
    KB_A,
    KB_COMMA,
    KB_ENTER,
    KB_F1,
    KB_F9,
    KB_L_CONTROL,
    KB_L_SHIFT,
    KB_M,
    KB_Q,
    KB_SEMICOLON,
    KB_SPACE,
    Keyboard,
)


def test_plain_letter():
    assert Keyboard().press(KB_Q) == ("q", "")


def test_shifted_letter():
    keyboard = Keyboard()
    keyboard.press(KB_L_SHIFT)
    assert keyboard.press(KB_A) == ("A", "")


def test_shift_resets_after_key():
    keyboard = Keyboard()
    keyboard.press(KB_L_SHIFT)
    keyboard.press(KB_A)
    assert keyboard.press(KB_A) == ("a", "")


def test_control_letter():
    keyboard = Keyboard()
    keyboard.press(KB_L_CONTROL)
    assert keyboard.press(KB_M) == ("^", "M")


def test_control_blocks_shift():
    keyboard = Keyboard()
    keyboard.press(KB_L_CONTROL)
    keyboard.press(KB_L_SHIFT)
    assert keyboard.shift is False
    assert keyboard.press(KB_Q) == ("^", "Q")


def test_control_ignored_on_digit_row():
    keyboard = Keyboard()
    keyboard.press(KB_L_CONTROL)
    assert keyboard.press(KB_1) == ("1", "")


@pytest.mark.parametrize(
    "scancode, shifted, expected",
    [
        (KB_1, True, ("!", "")),
        (KB_COMMA, False, (",", "")),
        (KB_COMMA, True, ("<", "")),
        (KB_SEMICOLON, True, (":", "")),
        (KB_SEMICOLON + 1, False, ("'", "")),
    ],
)
def test_symbol_rows(scancode, shifted, expected):
    keyboard = Keyboard()
    if shifted:
        keyboard.press(KB_L_SHIFT)
    assert keyboard.press(scancode) == expected


def test_function_keys():
    keyboard = Keyboard()
    assert keyboard.press(KB_F1) == ("F", "1")
    assert keyboard.press(KB_F9) == ("F", "9")


def test_enter_and_space():
    keyboard = Keyboard()
    assert keyboard.press(KB_ENTER) == ("\\", "n")
    assert keyboard.press(KB_SPACE) == (" ", "")


def test_unknown_code_keeps_display_and_clears_modifiers():
    keyboard = Keyboard()
    keyboard.press(KB_Q)
    keyboard.press(KB_L_SHIFT)
    assert keyboard.press(0xAA) == ("q", "")
    assert keyboard.shift is False


def test_initial_display_is_empty():
    assert Keyboard().press(KB_L_SHIFT) == ("", "")


def test_scancode_out_of_range():
    with pytest.raises(ValueError):
        Keyboard().press(0x100)