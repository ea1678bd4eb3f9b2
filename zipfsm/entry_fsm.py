"""State machine that reads one entry: local header, data and data descriptor."""

import zlib
from dataclasses import dataclass
from typing import Any

from zipfsm.decompress_bzip2 import Bzip2Decompressor
from zipfsm.decompress_deflate import DeflateDecompressor, StoreDecompressor
from zipfsm.decompress_lzma import LzmaDecompressor
from zipfsm.decompress_zstd import ZstdDecompressor
from zipfsm.entry import Method
from zipfsm.errors import FormatError, UnsupportedError, ZipError
from zipfsm.fsm_base import Buffer, DecompressOutcome, HasMoreInput
from zipfsm.local_headers import DataDescriptorRecord, LocalFileHeader
from zipfsm.stream import ByteReader, Incomplete, Mismatch

BUFFER_CAPACITY = 256 * 1024
_U32_MAX = 0xFFFF_FFFF
_READ_SIZE = 64 * 1024
_OUT_SIZE = 64 * 1024


@dataclass
class _ReadLocalHeader:
    pass


@dataclass
class _ReadData:
    has_data_descriptor: bool
    is_zip64: bool
    decompressor: Any
    compressed_bytes: int = 0
    uncompressed_bytes: int = 0
    crc32: int = 0


@dataclass
class _ReadDataDescriptor:
    is_zip64: bool
    uncompressed_size: int
    crc32: int


@dataclass
class _Validate:
    uncompressed_size: int
    crc32: int
    descriptor: DataDescriptorRecord | None


@dataclass
class _Done:
    pass


def make_decompressor(method, uncompressed_size):
    """Return a decompressor for ``method``, or raise :class:`UnsupportedError`."""
    method = Method.from_value(int(method))
    if method == Method.STORE:
        return StoreDecompressor()
    if method == Method.DEFLATE:
        return DeflateDecompressor()
    if method == Method.BZIP2:
        return Bzip2Decompressor()
    if method == Method.LZMA:
        return LzmaDecompressor(uncompressed_size)
    if method == Method.ZSTD:
        return ZstdDecompressor()
    if method == Method.DEFLATE64:
        raise UnsupportedError(f"compression method {method.name} is not enabled")
    raise UnsupportedError(f"compression method {method.name} is not supported")


class EntryFsm:
    """Reads and decompresses a single entry, checking its size and CRC-32.

    Feed it bytes starting at the entry's local header with :meth:`fill`
    whenever :meth:`wants_read` is true, and call :meth:`process`. It returns
    a :class:`~zipfsm.fsm_base.DecompressOutcome` while work remains and None
    once the entry has been read and validated.
    """

    def __init__(self, entry=None, buffer=None):
        if buffer is None:
            buffer = Buffer(BUFFER_CAPACITY)
        elif buffer.capacity < BUFFER_CAPACITY:
            raise ValueError("buffer too small")
        self.entry = entry
        self.buffer = buffer
        self._state = _ReadLocalHeader()

    @property
    def done(self):
        return isinstance(self._state, _Done)

    def wants_read(self):
        """True if the caller should :meth:`fill` more input."""
        state = self._state
        if isinstance(state, (_ReadLocalHeader, _ReadDataDescriptor)):
            return True
        if isinstance(state, _ReadData):
            return self.buffer.available_space() > 0
        return False

    def fill(self, data):
        """Add input bytes; return how many of them were taken."""
        return self.buffer.fill(data)

    def process_till_header(self):
        """Parse the local header if possible; return the entry, or None if more data is needed."""
        if isinstance(self._state, _ReadLocalHeader):
            self._process_local_header()
        return self.entry

    def _process_local_header(self):
        data = self.buffer.data()
        reader = ByteReader(data)
        try:
            header = LocalFileHeader.read(reader)
        except Incomplete:
            return False
        except (Mismatch, UnsupportedError) as exc:
            raise FormatError("invalid local header") from exc

        known_size = self.entry.uncompressed_size if self.entry is not None else None
        decompressor = make_decompressor(header.method, known_size)
        if self.entry is None:
            self.entry = header.as_entry()

        self._state = _ReadData(
            has_data_descriptor=header.has_data_descriptor(),
            is_zip64=header.compressed_size == _U32_MAX
            or header.uncompressed_size == _U32_MAX,
            decompressor=decompressor,
        )
        self.buffer.consume(reader.position)
        return True

    def process(self, max_out):
        """Advance the machine, producing at most ``max_out`` decompressed bytes.

        Returns the step's outcome, or None once the entry is complete.
        """
        while True:
            state = self._state
            if isinstance(state, _ReadLocalHeader):
                if not self._process_local_header():
                    return DecompressOutcome()
            elif isinstance(state, _ReadData):
                outcome = self._process_data(state, max_out)
                if outcome is not None:
                    return outcome
            elif isinstance(state, _ReadDataDescriptor):
                if not self._process_data_descriptor(state):
                    return DecompressOutcome()
            elif isinstance(state, _Validate):
                self._validate(state)
                self._state = _Done()
                return None
            else:
                return None

    def _process_data(self, state, max_out):
        in_buf = self.buffer.data()
        compressed_size = self.entry.compressed_size

        # don't give the decompressor an empty read while input is still due
        if not in_buf and state.compressed_bytes < compressed_size:
            return DecompressOutcome()

        # never feed bytes beyond the entry's compressed size
        in_buf = in_buf[:max(compressed_size - state.compressed_bytes, 0)]
        fed = len(in_buf)
        if state.compressed_bytes + fed == compressed_size:
            has_more_input = HasMoreInput.NO
        else:
            has_more_input = HasMoreInput.YES

        outcome = state.decompressor.decompress(in_buf, max_out, has_more_input)
        self.buffer.consume(outcome.bytes_read)
        state.compressed_bytes += outcome.bytes_read

        if outcome.bytes_written == 0 and state.compressed_bytes == compressed_size:
            if state.has_data_descriptor:
                self._state = _ReadDataDescriptor(
                    is_zip64=state.is_zip64,
                    uncompressed_size=state.uncompressed_bytes,
                    crc32=state.crc32,
                )
            else:
                self._state = _Validate(
                    uncompressed_size=state.uncompressed_bytes,
                    crc32=state.crc32,
                    descriptor=None,
                )
            return None

        if outcome.bytes_written == 0 and outcome.bytes_read == 0 and fed == 0:
            raise ZipError("decompressor made no progress")

        state.crc32 = zlib.crc32(outcome.data, state.crc32)
        state.uncompressed_bytes += outcome.bytes_written
        return outcome

    def _process_data_descriptor(self, state):
        reader = ByteReader(self.buffer.data())
        try:
            descriptor = DataDescriptorRecord.read(reader, state.is_zip64)
        except Incomplete:
            return False
        except Mismatch as exc:
            raise FormatError("invalid data descriptor") from exc
        self.buffer.consume(reader.position)
        self._state = _Validate(
            uncompressed_size=state.uncompressed_size,
            crc32=state.crc32,
            descriptor=descriptor,
        )
        return True

    def _validate(self, state):
        entry = self.entry
        if entry.crc32 != 0:
            expected_crc32 = entry.crc32
        elif state.descriptor is not None:
            expected_crc32 = state.descriptor.crc32
        else:
            expected_crc32 = 0

        if entry.uncompressed_size != state.uncompressed_size:
            raise FormatError(
                f"wrong size: expected {entry.uncompressed_size}, "
                f"got {state.uncompressed_size}"
            )
        if expected_crc32 != 0 and expected_crc32 != state.crc32:
            raise FormatError(
                f"wrong checksum: expected {expected_crc32:#010x}, got {state.crc32:#010x}"
            )


def read_entry(data, entry=None):
    """Decompress one entry of an in-memory zip file and return its contents.

    Without ``entry`` the local header at the start of ``data`` is used;
    otherwise reading starts at ``entry.header_offset``.
    """
    view = memoryview(bytes(data))
    position = entry.header_offset if entry is not None else 0
    fsm = EntryFsm(entry)
    output = bytearray()
    while True:
        filled = 0
        if fsm.wants_read():
            filled = fsm.fill(view[position:position + _READ_SIZE])
            position += filled
        state_before = type(fsm._state)
        outcome = fsm.process(_OUT_SIZE)
        if outcome is None:
            return bytes(output)
        output += outcome.data
        stalled = (
            filled == 0
            and outcome.bytes_read == 0
            and outcome.bytes_written == 0
            and type(fsm._state) is state_before
        )
        if stalled:
            raise FormatError("unexpected end of file")