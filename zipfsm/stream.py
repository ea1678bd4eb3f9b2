"""Little-endian reading over a possibly incomplete byte buffer."""


class Incomplete(Exception):
    """More input is needed before the value can be read."""

    def __init__(self, needed=None):
        super().__init__(f"need {needed} more bytes" if needed else "need more bytes")
        self.needed = needed


class Mismatch(Exception):
    """The input does not hold the expected structure."""


class ByteReader:
    """Reads fixed-size little-endian values from the front of a buffer.

    Running out of data raises :class:`Incomplete`, so callers can wait for
    more input and try again; data that cannot match raises :class:`Mismatch`.
    """

    def __init__(self, data, position=0):
        self._data = bytes(data)
        self.position = position

    @property
    def remaining(self):
        return len(self._data) - self.position

    def _advance(self, count):
        if count > self.remaining:
            raise Incomplete(count - self.remaining)
        chunk = self._data[self.position:self.position + count]
        self.position += count
        return chunk

    def _uint(self, width):
        return int.from_bytes(self._advance(width), "little")

    def u8(self):
        return self._uint(1)

    def u16(self):
        return self._uint(2)

    def u32(self):
        return self._uint(4)

    def u64(self):
        return self._uint(8)

    def take(self, count):
        if count < 0:
            raise ValueError("count must not be negative")
        return self._advance(count)

    def tag(self, signature):
        """Consume ``signature`` or raise if the input does not start with it."""
        signature = bytes(signature)
        available = self._data[self.position:self.position + len(signature)]
        if available != signature[:len(available)]:
            raise Mismatch(f"expected signature {signature!r}")
        if len(available) < len(signature):
            raise Incomplete(len(signature) - len(available))
        self.position += len(signature)
        return signature

    def is_empty(self):
        return self.remaining <= 0