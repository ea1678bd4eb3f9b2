"""Decompressor for zstd entries."""

import zstandard

from zipfsm.errors import DecompressionError
from zipfsm.fsm_base import DecompressOutcome, HasMoreInput

_METHOD = "Zstd"
# Some archives record one more compressed byte than the frame holds.
_TRAILER_LENGTH = 1


class ZstdDecompressor:
    """Incremental decompressor for a single zstd frame."""

    def __init__(self):
        self._inner = zstandard.ZstdDecompressor().decompressobj()
        self._pending = bytearray()
        self._finished = False

    def _drain(self, max_out):
        chunk = bytes(self._pending[:max(max_out, 0)])
        del self._pending[:len(chunk)]
        return chunk

    def _feed(self, data):
        if self._inner.eof:
            return 0
        unused_before = len(self._inner.unused_data)
        try:
            produced = self._inner.decompress(data)
        except zstandard.ZstdError as exc:
            raise DecompressionError(_METHOD, str(exc)) from exc
        self._pending += produced
        return len(data) - (len(self._inner.unused_data) - unused_before)

    def _finish(self, leftover):
        if leftover not in (0, _TRAILER_LENGTH):
            raise DecompressionError(
                _METHOD,
                "expected ZSTD trailer or no ZSTD trailer, "
                f"but not a {leftover}-byte trailer",
            )
        self._finished = True
        if not self._inner.eof:
            raise DecompressionError(_METHOD, "unexpected end of compressed data")
        return leftover

    def decompress(self, in_buf, max_out, has_more_input):
        pending = self._drain(max_out)
        if pending:
            return DecompressOutcome(bytes_read=0, data=pending)
        if self._finished:
            return DecompressOutcome()

        in_buf = bytes(in_buf)
        bytes_read = self._feed(in_buf) if in_buf else 0
        if has_more_input is HasMoreInput.NO:
            bytes_read += self._finish(len(in_buf) - bytes_read)
        return DecompressOutcome(bytes_read=bytes_read, data=self._drain(max_out))