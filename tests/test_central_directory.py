import struct
from datetime import datetime, timezone

import pytest

from zipfsm.central_directory import CentralDirectoryFileHeader
from zipfsm.encoding import Encoding
from zipfsm.entry import EntryKind, Method
from zipfsm.errors import FormatError
from zipfsm.mode import Mode, format_mode, mode_from_msdos
from zipfsm.stream import ByteReader, Incomplete, Mismatch
from zipfsm.version import HostSystem

DOS_DATE_2020_01_02 = ((2020 - 1980) << 9) | (1 << 5) | 2


def header_bytes(
    name=b"hello.txt",
    extra=b"",
    comment=b"",
    flags=0,
    method=8,
    host=3,
    external=0o100644 << 16,
    header_offset=0,
    crc=0x1234,
    csize=10,
    usize=20,
    date=DOS_DATE_2020_01_02,
    time=0,
):
    return (
        b"PK\x01\x02"
        + struct.pack(
            "<BBBBHHHHIIIHHHHHII",
            20, host, 20, host, flags, method, time, date, crc, csize, usize,
            len(name), len(extra), len(comment), 0, 0, external, header_offset,
        )
        + name
        + extra
        + comment
    )


def parse(**kwargs):
    return CentralDirectoryFileHeader.read(ByteReader(header_bytes(**kwargs)))


def test_read_fields():
    header = parse(comment=b"note", header_offset=77)
    assert header.name == b"hello.txt"
    assert header.comment == b"note"
    assert header.method is Method.DEFLATE
    assert header.creator_version.host_system is HostSystem.UNIX
    assert header.header_offset == 77
    assert header.crc32 == 0x1234


def test_read_consumes_whole_header():
    data = header_bytes(extra=b"\x99\x99\x00\x00") + b"rest"
    reader = ByteReader(data)
    CentralDirectoryFileHeader.read(reader)
    assert reader.take(reader.remaining) == b"rest"


def test_read_bad_signature():
    with pytest.raises(Mismatch):
        CentralDirectoryFileHeader.read(ByteReader(b"PK\x03\x04" + bytes(60)))


def test_read_truncated():
    with pytest.raises(Incomplete):
        CentralDirectoryFileHeader.read(ByteReader(header_bytes()[:-2]))


def test_ascii_is_utf8():
    assert parse().is_non_utf8() is False


def test_invalid_utf8_is_non_utf8():
    assert parse(name=b"\x82\xa0.txt").is_non_utf8() is True


def test_multibyte_utf8_trusts_flag():
    name = "café.txt".encode("utf-8")
    assert parse(name=name, flags=0x800).is_non_utf8() is False
    assert parse(name=name, flags=0).is_non_utf8() is True


def test_as_entry_unix_file():
    entry = parse(header_offset=40).as_entry(Encoding.UTF8, 0)
    assert entry.name == "hello.txt"
    assert entry.kind() is EntryKind.FILE
    assert format_mode(entry.mode) == "-rw-r--r--"
    assert entry.header_offset == 40
    assert entry.compressed_size == 10
    assert entry.uncompressed_size == 20
    assert entry.modified == datetime(2020, 1, 2, tzinfo=timezone.utc)


def test_as_entry_adds_global_offset():
    entry = parse(header_offset=40).as_entry(Encoding.UTF8, 100)
    assert entry.header_offset == 140


def test_as_entry_directory_by_name():
    entry = parse(name=b"folder/", external=0, host=0).as_entry(Encoding.UTF8, 0)
    assert entry.kind() is EntryKind.DIRECTORY
    assert entry.mode.has(Mode.DIR)


def test_as_entry_msdos_read_only():
    entry = parse(host=0, external=0x01).as_entry(Encoding.UTF8, 0)
    assert entry.mode == mode_from_msdos(0x01)


def test_as_entry_unknown_host_has_empty_mode():
    entry = parse(host=1, external=0o100644 << 16).as_entry(Encoding.UTF8, 0)
    assert int(entry.mode) == 0


def test_as_entry_cp437_name():
    entry = parse(name=b"caf\x82").as_entry(Encoding.CP437, 0)
    assert entry.name == "café"


def test_as_entry_zip64_extra():
    extra = struct.pack("<HHQQ", 0x0001, 16, 5_000_000_000, 4_000_000_000)
    header = parse(extra=extra, csize=0xFFFF_FFFF, usize=0xFFFF_FFFF)
    entry = header.as_entry(Encoding.UTF8, 0)
    assert entry.uncompressed_size == 5_000_000_000
    assert entry.compressed_size == 4_000_000_000


def test_as_entry_invalid_extra():
    header = parse(extra=b"\x01\x00\x10\x00\x00")
    with pytest.raises(FormatError):
        header.as_entry(Encoding.UTF8, 0)


def test_as_entry_bad_date_falls_back_to_epoch():
    entry = parse(date=0).as_entry(Encoding.UTF8, 0)
    assert entry.modified == datetime(1970, 1, 1, tzinfo=timezone.utc)