"""Decompressors for stored and deflated entries."""

import zlib

from zipfsm.errors import DecompressionError
from zipfsm.fsm_base import DecompressOutcome, HasMoreInput


class StoreDecompressor:
    """Passes stored data through unchanged."""

    def decompress(self, in_buf, max_out, has_more_input):
        length = min(len(in_buf), max_out)
        return DecompressOutcome(bytes_read=length, data=bytes(in_buf[:length]))


class DeflateDecompressor:
    """Incremental raw DEFLATE decompressor with a bounded internal buffer."""

    INTERNAL_BUFFER_LENGTH = 64 * 1024

    def __init__(self):
        self._inflater = zlib.decompressobj(-zlib.MAX_WBITS)
        self._pending = bytearray()

    def _drain(self, max_out):
        chunk = bytes(self._pending[:max_out])
        del self._pending[:len(chunk)]
        return chunk

    def decompress(self, in_buf, max_out, has_more_input):
        pending = self._drain(max_out)
        if pending:
            return DecompressOutcome(bytes_read=0, data=pending)

        in_buf = bytes(in_buf)
        unused_before = len(self._inflater.unused_data)
        try:
            produced = self._inflater.decompress(in_buf, self.INTERNAL_BUFFER_LENGTH)
        except zlib.error as exc:
            raise DecompressionError(
                "Deflate", "Failed to decompress due to invalid data."
            ) from exc

        tail = len(self._inflater.unconsumed_tail)
        past_end = len(self._inflater.unused_data) - unused_before
        bytes_read = len(in_buf) - tail - past_end

        if (
            has_more_input is HasMoreInput.NO
            and not self._inflater.eof
            and tail == 0
            and len(produced) < self.INTERNAL_BUFFER_LENGTH
        ):
            raise DecompressionError(
                "Deflate",
                "Failed to make progress: more input data was expected, but the "
                "caller indicated there was no more data, so the input stream is "
                "likely truncated",
            )

        self._pending += produced
        return DecompressOutcome(bytes_read=bytes_read, data=self._drain(max_out))