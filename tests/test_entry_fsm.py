import dataclasses
import io
import struct
import zipfile
import zlib

import pytest
import zstandard

from zipfsm.archive_fsm import read_archive
from zipfsm.decompress_deflate import StoreDecompressor
from zipfsm.decompress_zstd import ZstdDecompressor
from zipfsm.entry import Method
from zipfsm.entry_fsm import EntryFsm, make_decompressor, read_entry
from zipfsm.errors import FormatError, UnsupportedError, ZipError
from zipfsm.fsm_base import Buffer, HasMoreInput

CONTENT = b"The quick brown fox jumps over the lazy dog.\n" * 200


def _zip(compression, name="hello.txt", content=CONTENT):
    out = io.BytesIO()
    with zipfile.ZipFile(out, "w", compression=compression) as zf:
        zf.writestr(name, content)
    return out.getvalue()


class _Unseekable:
    def __init__(self):
        self.buf = io.BytesIO()

    def write(self, data):
        return self.buf.write(data)

    def tell(self):
        raise OSError("not seekable")

    def flush(self):
        pass


def _streamed_zip(content=CONTENT):
    sink = _Unseekable()
    with zipfile.ZipFile(sink, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        with zf.open("streamed.txt", "w") as handle:
            handle.write(content)
    return sink.buf.getvalue()


def _local_entry(method, payload, content, name=b"data.bin"):
    header = struct.pack(
        "<4sHHHHHIIIHH",
        b"PK\x03\x04",
        20,
        0,
        method,
        0,
        0x21,
        zlib.crc32(content),
        len(payload),
        len(content),
        len(name),
        0,
    )
    return header + name + payload


@pytest.mark.parametrize(
    "compression", [zipfile.ZIP_STORED, zipfile.ZIP_DEFLATED, zipfile.ZIP_BZIP2]
)
def test_read_entry_from_local_header(compression):
    assert read_entry(_zip(compression)) == CONTENT


@pytest.mark.parametrize("compression", [zipfile.ZIP_STORED, zipfile.ZIP_DEFLATED])
def test_read_entries_from_central_directory(compression):
    out = io.BytesIO()
    with zipfile.ZipFile(out, "w", compression=compression) as zf:
        zf.writestr("a.txt", CONTENT)
        zf.writestr("b.txt", CONTENT[::-1])
    data = out.getvalue()
    archive = read_archive(data)
    assert read_entry(data, archive.by_name("a.txt")) == CONTENT
    assert read_entry(data, archive.by_name("b.txt")) == CONTENT[::-1]


def test_data_descriptor_entry():
    data = _streamed_zip()
    entry = read_archive(data).by_name("streamed.txt")
    assert entry is not None
    assert read_entry(data, entry) == CONTENT


def test_empty_stored_entry():
    assert read_entry(_zip(zipfile.ZIP_STORED, content=b"")) == b""


def test_zstd_entry():
    payload = zstandard.ZstdCompressor().compress(CONTENT)
    blob = _local_entry(int(Method.ZSTD), payload, CONTENT)
    assert read_entry(blob) == CONTENT


def test_lzma_with_unsupported_version_is_invalid_header():
    with pytest.raises(FormatError):
        read_entry(_zip(zipfile.ZIP_LZMA))


def test_invalid_local_header():
    with pytest.raises(FormatError):
        read_entry(b"XXXX" + bytes(100))


def test_wrong_checksum_detected():
    data = bytearray(_zip(zipfile.ZIP_STORED, name="x"))
    data[31] ^= 0xFF  # first byte of the stored content
    with pytest.raises(FormatError):
        read_entry(bytes(data))


def test_wrong_size_detected():
    data = _zip(zipfile.ZIP_STORED)
    entry = read_archive(data).by_name("hello.txt")
    bad = dataclasses.replace(entry, uncompressed_size=entry.uncompressed_size + 1)
    with pytest.raises(FormatError):
        read_entry(data, bad)


def test_truncated_entry():
    data = _zip(zipfile.ZIP_STORED, name="x")
    with pytest.raises(FormatError):
        read_entry(data[:100])


def test_unsupported_method_in_header():
    blob = _local_entry(int(Method.PPMD), b"abc", b"abc")
    with pytest.raises(UnsupportedError):
        read_entry(blob)


def test_process_till_header_waits_for_data():
    data = _zip(zipfile.ZIP_DEFLATED)
    fsm = EntryFsm()
    assert fsm.wants_read()
    assert fsm.process_till_header() is None
    fsm.fill(data[:10])
    assert fsm.process_till_header() is None
    fsm.fill(data[10:200])
    entry = fsm.process_till_header()
    assert entry.name == "hello.txt"
    assert entry.method == Method.DEFLATE
    assert entry.uncompressed_size == len(CONTENT)


def test_output_respects_max_out():
    data = _zip(zipfile.ZIP_DEFLATED)
    fsm = EntryFsm()
    assert fsm.fill(data) == len(data)
    output = bytearray()
    while True:
        outcome = fsm.process(7)
        if outcome is None:
            break
        assert outcome.bytes_written <= 7
        output += outcome.data
    assert bytes(output) == CONTENT
    assert fsm.done
    assert not fsm.wants_read()
    assert fsm.process(7) is None


def test_buffer_too_small():
    with pytest.raises(ValueError):
        EntryFsm(buffer=Buffer(1024))


def test_given_buffer_is_used():
    buffer = Buffer(256 * 1024)
    fsm = EntryFsm(buffer=buffer)
    fsm.fill(b"PK")
    assert fsm.buffer is buffer
    assert buffer.available_data() == 2


def test_make_decompressor_store_copies_input():
    dec = make_decompressor(Method.STORE, None)
    assert isinstance(dec, StoreDecompressor)
    outcome = dec.decompress(b"abcdef", 4, HasMoreInput.NO)
    assert outcome.data == b"abcd"
    assert outcome.bytes_read == 4


def test_make_decompressor_zstd_decodes_frame():
    dec = make_decompressor(Method.ZSTD, None)
    assert isinstance(dec, ZstdDecompressor)
    pending = zstandard.ZstdCompressor().compress(CONTENT)
    output = bytearray()
    for _ in range(1000):
        outcome = dec.decompress(pending, 1 << 20, HasMoreInput.NO)
        pending = pending[outcome.bytes_read:]
        if outcome.bytes_written == 0 and not pending:
            break
        output += outcome.data
    assert bytes(output) == CONTENT


@pytest.mark.parametrize("method", [Method.DEFLATE64, Method.PPMD, Method.AEX, 1234])
def test_make_decompressor_unsupported(method):
    with pytest.raises(UnsupportedError):
        make_decompressor(method, None)


def test_errors_share_base_class():
    with pytest.raises(ZipError):
        read_entry(b"nope" * 20)