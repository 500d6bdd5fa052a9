"""Translate keyboard scancodes into the characters the kernel shows."""

KB_1 = 0x02
KB_EQUAL = 0x0D
KB_Q = 0x10
KB_R_BRACKET = 0x1B
KB_ENTER = 0x1C
KB_L_CONTROL = 0x1D
KB_A = 0x1E
KB_L = 0x26
KB_SEMICOLON = 0x27
KB_QUOTE = 0x28
KB_L_SHIFT = 0x2A
KB_Z = 0x2C
KB_M = 0x32
KB_COMMA = 0x33
KB_L_SLASH = 0x35
KB_SPACE = 0x39
KB_F1 = 0x3B
KB_F9 = 0x43

# first scancode, plain characters, with shift, with control (None: not a letter row)
_ROWS = (
    (KB_1, "1234567890-=", "!@#$%^&*()_+", None),
    (KB_Q, "qwertyuiop[]", "QWERTYUIOP{}", "QWERTYUIOP[]"),
    (KB_A, "asdfghjkl", "ASDFGHJKL", "ASDFGHJKL"),
    (KB_Z, "zxcvbnm", "ZXCVBNM", "ZXCVBNM"),
    (KB_COMMA, ",./", "<>?", None),
    (KB_SEMICOLON, ";'", ':"', None),
)
_FUNCTION_DIGITS = "123456789"


class Keyboard:
    """Modifier state and the two characters last shown for a key.

    A second character of "" means nothing is shown in that place.
    """

    def __init__(self):
        self.shift = False
        self.control = False
        self.key = ""
        self.key2 = ""

    def _show(self, key, key2=""):
        self.key = key
        self.key2 = key2

    def _translate(self, scancode):
        for first, plain, shifted, controlled in _ROWS:
            index = scancode - first
            if 0 <= index < len(plain):
                if self.shift:
                    self._show(shifted[index])
                elif self.control and controlled:
                    self._show("^", controlled[index])
                else:
                    self._show(plain[index])
                return
        if KB_F1 <= scancode <= KB_F9:
            self._show("F", _FUNCTION_DIGITS[scancode - KB_F1])
        elif scancode == KB_ENTER:
            self._show("\\", "n")
        elif scancode == KB_SPACE:
            self._show(" ")

    def press(self, scancode):
        """Handle one scancode and return the (key, key2) pair now shown."""
        if not 0 <= scancode <= 0xFF:
            raise ValueError(f"scancode {scancode} is not a byte")
        if scancode == KB_L_SHIFT:
            if not self.control:
                self.shift = True
        elif scancode == KB_L_CONTROL:
            self.control = True
        else:
            self._translate(scancode)
            self.shift = False
            self.control = False
        return self.key, self.key2