"""Text encodings found in zip names and comments."""

import enum

from zipfsm.errors import FormatError


class Encoding(enum.Enum):
    """Character encoding used for names and comments in an archive."""

    UTF8 = "utf-8"
    CP437 = "cp437"
    SHIFT_JIS = "shift_jis"

    def decode(self, data):
        try:
            return bytes(data).decode(self.value)
        except UnicodeDecodeError as exc:
            raise FormatError(f"text is not valid {self.value}: {exc}") from exc


def detect_utf8(data):
    """Return ``(valid, require)`` for ``data`` read as UTF-8.

    ``valid`` is false when the bytes are not UTF-8. ``require`` is true when
    some character falls outside the range that CP-437 and most local
    encodings share with ASCII (control characters, ``\\``, ``~`` and
    anything above it).
    """
    try:
        text = bytes(data).decode("utf-8")
    except UnicodeDecodeError:
        return False, False
    require = any(ord(ch) < 0x20 or ord(ch) > 0x7D or ch == "\\" for ch in text)
    return True, require