"""Decompressor for LZMA entries."""

import lzma

from zipfsm.errors import DecompressionError
from zipfsm.fsm_base import DecompressOutcome, HasMoreInput

_METHOD = "Lzma"
_PROPERTIES_LENGTH = 5
_TRAILER_LENGTH = 10
_MIN_DICT_SIZE = 4096


def _lzma1_filter(properties):
    first = properties[0]
    if first >= 9 * 5 * 5:
        raise DecompressionError(_METHOD, f"invalid LZMA properties byte {first:#04x}")
    lc = first % 9
    lp = (first // 9) % 5
    pb = first // 45
    dict_size = max(int.from_bytes(properties[1:], "little"), _MIN_DICT_SIZE)
    return {"id": lzma.FILTER_LZMA1, "lc": lc, "lp": lp, "pb": pb, "dict_size": dict_size}


class LzmaDecompressor:
    """Incremental decompressor for zip LZMA data.

    The stream starts with five property bytes, followed by the raw LZMA data.
    When ``uncompressed_size`` is known, output is limited to it and the stream
    need not carry an end marker.
    """

    def __init__(self, uncompressed_size=None):
        self.uncompressed_size = uncompressed_size
        self._properties = bytearray()
        self._inner = None
        self._pending = bytearray()
        self._produced = 0
        self._finished = False

    def _drain(self, max_out):
        chunk = bytes(self._pending[:max(max_out, 0)])
        del self._pending[:len(chunk)]
        return chunk

    def _keep(self, produced):
        if self.uncompressed_size is not None:
            produced = produced[:max(self.uncompressed_size - self._produced, 0)]
        self._pending += produced
        self._produced += len(produced)

    def _start(self):
        try:
            self._inner = lzma.LZMADecompressor(
                format=lzma.FORMAT_RAW, filters=[_lzma1_filter(self._properties)]
            )
        except (lzma.LZMAError, ValueError) as exc:
            raise DecompressionError(_METHOD, str(exc)) from exc

    def _feed(self, data):
        if self._inner.eof:
            return 0
        unused_before = len(self._inner.unused_data)
        try:
            produced = self._inner.decompress(data)
        except lzma.LZMAError as exc:
            raise DecompressionError(_METHOD, str(exc)) from exc
        self._keep(produced)
        return len(data) - (len(self._inner.unused_data) - unused_before)

    def _complete(self):
        if self._inner.eof:
            return True
        return self.uncompressed_size is not None and self._produced >= self.uncompressed_size

    def _finish(self, leftover):
        # Some writers leave a 10-byte trailer after the stream.
        if leftover not in (0, _TRAILER_LENGTH):
            raise DecompressionError(
                _METHOD,
                "expected LZMA trailer or no LZMA trailer, "
                f"but not a {leftover}-byte trailer",
            )
        self._finished = True
        if self._inner is None:
            raise DecompressionError(_METHOD, "stream ended inside the LZMA properties")
        if not self._complete():
            raise DecompressionError(_METHOD, "unexpected end of compressed data")
        return leftover

    def decompress(self, in_buf, max_out, has_more_input):
        pending = self._drain(max_out)
        if pending:
            return DecompressOutcome(bytes_read=0, data=pending)
        if self._finished:
            return DecompressOutcome()

        in_buf = bytes(in_buf)
        taken = in_buf[:_PROPERTIES_LENGTH - len(self._properties)]
        self._properties += taken
        bytes_read = len(taken)
        if self._inner is None and len(self._properties) == _PROPERTIES_LENGTH:
            self._start()

        rest = in_buf[len(taken):]
        if self._inner is not None and rest:
            bytes_read += self._feed(rest)

        if has_more_input is HasMoreInput.NO:
            bytes_read += self._finish(len(in_buf) - bytes_read)

        return DecompressOutcome(bytes_read=bytes_read, data=self._drain(max_out))