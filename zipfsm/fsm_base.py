"""Building blocks shared by the archive and entry state machines."""

import enum
from dataclasses import dataclass

DEFAULT_CAPACITY = 256 * 1024


class Buffer:
    """A bounded input buffer that data is filled into and consumed from.

    ``read_bytes`` counts the bytes filled since creation or the last reset.
    """

    def __init__(self, capacity=DEFAULT_CAPACITY):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._data = bytearray()
        self.read_bytes = 0

    def data(self):
        return bytes(self._data)

    def available_data(self):
        return len(self._data)

    def available_space(self):
        return self.capacity - len(self._data)

    def fill(self, data):
        """Append as much of ``data`` as fits; return how many bytes were taken."""
        accepted = memoryview(data)[:self.available_space()]
        self._data += accepted
        self.read_bytes += len(accepted)
        return len(accepted)

    def consume(self, count):
        if count < 0 or count > len(self._data):
            raise ValueError(f"cannot consume {count} of {len(self._data)} bytes")
        del self._data[:count]

    def reset(self):
        self._data.clear()
        self.read_bytes = 0


@dataclass
class DecompressOutcome:
    """What one decompression step read from its input and produced."""

    bytes_read: int = 0
    data: bytes = b""

    @property
    def bytes_written(self):
        return len(self.data)


class HasMoreInput(enum.Enum):
    """Whether more compressed input follows the bytes being fed."""

    YES = "yes"
    NO = "no"