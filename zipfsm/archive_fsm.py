"""State machine that locates and parses the central directory of an archive."""

from dataclasses import dataclass, field

import chardet

from zipfsm.central_directory import CentralDirectoryFileHeader
from zipfsm.encoding import Encoding
from zipfsm.entry import Archive
from zipfsm.eocd import (
    EndOfCentralDirectory,
    EndOfCentralDirectory64Locator,
    EndOfCentralDirectory64Record,
    EndOfCentralDirectoryRecord,
    Located,
)
from zipfsm.errors import FormatError
from zipfsm.fsm_base import Buffer
from zipfsm.stream import ByteReader, Incomplete, Mismatch

# The end of central directory record is searched for in this many trailing bytes.
HAYSTACK_SIZE = 65 * 1024

_MAX_ENCODING_FEED = 4096
_U16_MASK = 0xFFFF
_READ_SIZE = 64 * 1024


@dataclass
class _ReadEocd:
    haystack_size: int


@dataclass
class _ReadEocd64Locator:
    eocdr: Located


@dataclass
class _ReadEocd64:
    eocdr64_offset: int
    eocdr: Located


@dataclass
class _ReadCentralDirectory:
    eocd: EndOfCentralDirectory
    headers: list = field(default_factory=list)


@dataclass
class _Done:
    archive: Archive


def detect_encoding(headers):
    """Guess the text encoding of the names and comments in ``headers``."""
    sample = bytearray()
    all_utf8 = True
    suspicious_for_cp437 = False

    def feed(chunk):
        nonlocal suspicious_for_cp437
        sample.extend(chunk)
        # bytes in this range are box drawing characters in CP-437
        if any(0xB0 <= byte <= 0xDF for byte in chunk):
            suspicious_for_cp437 = True
        return len(sample) < _MAX_ENCODING_FEED

    for header in headers:
        if not header.is_non_utf8():
            continue
        all_utf8 = False
        if not feed(header.name) or not feed(header.comment):
            break

    if all_utf8:
        return Encoding.UTF8

    guess = (chardet.detect(bytes(sample)).get("encoding") or "").lower()
    guess = guess.replace("-", "_")
    if guess == "shift_jis":
        # CP-437 is sometimes taken for Shift-JIS; only believe it when there
        # are characters that would be odd in a DOS file name.
        return Encoding.SHIFT_JIS if suspicious_for_cp437 else Encoding.CP437
    if guess == "utf_8":
        return Encoding.UTF8
    return Encoding.CP437


class ArchiveFsm:
    """Finds the end of central directory record and reads the whole directory.

    Drive it with a loop: ask :meth:`wants_read` for an offset, read the file
    from there and hand the bytes to :meth:`fill`, then call :meth:`process`.
    ``process`` returns None while it needs more data and the parsed
    :class:`~zipfsm.entry.Archive` once it is done.
    """

    def __init__(self, size):
        if size < 0:
            raise ValueError("size must not be negative")
        self.size = size
        self._buffer = Buffer()
        self._state = _ReadEocd(haystack_size=min(size, HAYSTACK_SIZE))

    def wants_read(self):
        """Return the file offset to read from next, or None when done."""
        state = self._state
        if isinstance(state, _ReadEocd):
            base = self.size - state.haystack_size
        elif isinstance(state, _ReadEocd64Locator):
            base = state.eocdr.offset - EndOfCentralDirectory64Locator.LENGTH
        elif isinstance(state, _ReadEocd64):
            base = state.eocdr64_offset
        elif isinstance(state, _ReadCentralDirectory):
            base = state.eocd.directory_offset()
        else:
            return None
        return self._buffer.read_bytes + base

    def fill(self, data):
        """Add bytes read from the offset given by :meth:`wants_read`.

        Returns how many of them were taken.
        """
        return self._buffer.fill(data)

    def process(self):
        """Process buffered data; return the archive when done, else None."""
        state = self._state
        if isinstance(state, _ReadEocd):
            return self._process_eocd(state)
        if isinstance(state, _ReadEocd64Locator):
            return self._process_eocd64_locator(state)
        if isinstance(state, _ReadEocd64):
            return self._process_eocd64(state)
        if isinstance(state, _ReadCentralDirectory):
            return self._process_central_directory(state)
        return state.archive

    def _start_directory(self, eocdr, eocdr64=None):
        self._buffer.reset()
        eocd = EndOfCentralDirectory.build(self.size, eocdr, eocdr64)
        self._state = _ReadCentralDirectory(eocd=eocd)

    def _process_eocd(self, state):
        if self._buffer.read_bytes < state.haystack_size:
            return None
        haystack = self._buffer.data()[:state.haystack_size]
        found = EndOfCentralDirectoryRecord.find_in_block(haystack)
        if found is None:
            raise FormatError("end of central directory signature not found")
        eocdr = Located(
            offset=found.offset + self.size - state.haystack_size, inner=found.inner
        )
        self._buffer.reset()
        if eocdr.offset < EndOfCentralDirectory64Locator.LENGTH:
            # no room for a zip64 locator before the record
            self._start_directory(eocdr)
        else:
            self._state = _ReadEocd64Locator(eocdr=eocdr)
        return None

    def _process_eocd64_locator(self, state):
        try:
            locator = EndOfCentralDirectory64Locator.read(ByteReader(self._buffer.data()))
        except Incomplete:
            return None
        except Mismatch:
            self._start_directory(state.eocdr)
            return None
        self._buffer.reset()
        self._state = _ReadEocd64(eocdr64_offset=locator.directory_offset, eocdr=state.eocdr)
        return None

    def _process_eocd64(self, state):
        try:
            record = EndOfCentralDirectory64Record.read(ByteReader(self._buffer.data()))
        except Incomplete:
            return None
        except Mismatch as exc:
            raise FormatError("zip64 end of central directory record invalid") from exc
        self._start_directory(
            state.eocdr, Located(offset=state.eocdr64_offset, inner=record)
        )
        return None

    def _process_central_directory(self, state):
        reader = ByteReader(self._buffer.data())
        consumed = 0
        while not reader.is_empty():
            try:
                header = CentralDirectoryFileHeader.read(reader)
            except Incomplete:
                break
            except Mismatch:
                archive = self._finish(state)
                self._state = _Done(archive=archive)
                return archive
            consumed = reader.position
            state.headers.append(header)
        self._buffer.consume(consumed)
        return None

    def _finish(self, state):
        # only the low 16 bits are compared: plain archives wrap at 65536 entries
        read_records = len(state.headers) & _U16_MASK
        announced = state.eocd.directory_records() & _U16_MASK
        if read_records != announced:
            raise FormatError(
                f"invalid central record: read {read_records} records, "
                f"end of central directory announced {announced}"
            )
        encoding = detect_encoding(state.headers)
        entries = [
            header.as_entry(encoding, state.eocd.global_offset) for header in state.headers
        ]
        comment = encoding.decode(state.eocd.comment())
        return Archive(size=self.size, encoding=encoding, entries=entries, comment=comment)


def read_archive(data):
    """Parse the central directory of an in-memory zip file."""
    view = memoryview(bytes(data))
    fsm = ArchiveFsm(len(view))
    while True:
        offset = fsm.wants_read()
        chunk = view[offset:offset + _READ_SIZE] if offset is not None else view[:0]
        if chunk:
            fsm.fill(chunk)
        archive = fsm.process()
        if archive is not None:
            return archive
        if not chunk:
            raise FormatError("unexpected end of file")