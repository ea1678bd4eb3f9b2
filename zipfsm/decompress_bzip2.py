"""Decompressor for bzip2 entries."""

import bz2

from zipfsm.errors import DecompressionError
from zipfsm.fsm_base import DecompressOutcome


class Bzip2Decompressor:
    """Incremental bzip2 decompressor."""

    def __init__(self):
        self._inner = bz2.BZ2Decompressor()

    @property
    def eof(self):
        return self._inner.eof

    def decompress(self, in_buf, max_out, has_more_input):
        if self._inner.eof or max_out <= 0:
            return DecompressOutcome()

        # Only hand over new input once the previous input has been used up.
        fed = bytes(in_buf) if self._inner.needs_input else b""
        unused_before = len(self._inner.unused_data)
        try:
            data = self._inner.decompress(fed, max_out)
        except (OSError, EOFError, ValueError) as exc:
            raise DecompressionError("Bzip2", str(exc)) from exc

        past_end = len(self._inner.unused_data) - unused_before
        return DecompressOutcome(bytes_read=len(fed) - past_end, data=data)