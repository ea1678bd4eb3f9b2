from datetime import datetime, timezone

import pytest

from zipfsm.date_time import NtfsTimestamp, zero_datetime
from zipfsm.encoding import Encoding
from zipfsm.entry import Archive, Entry, EntryKind, Method
from zipfsm.extra_field import (
    ExtraNewUnixField,
    ExtraNtfsField,
    ExtraTimestampField,
    ExtraUnixField,
    ExtraZip64Field,
    NtfsAttr1,
    UnknownExtraField,
)
from zipfsm.mode import Mode
from zipfsm.stream import ByteReader, Incomplete


@pytest.mark.parametrize(
    "value, method",
    [(0, Method.STORE), (8, Method.DEFLATE), (12, Method.BZIP2), (14, Method.LZMA), (93, Method.ZSTD)],
)
def test_method_from_known_value(value, method):
    assert Method.from_value(value) is method


def test_method_keeps_unrecognised_value():
    method = Method.from_value(1234)
    assert int(method) == 1234
    assert Method.from_value(1234) is method


def test_method_read_little_endian():
    assert Method.read(ByteReader(b"\x08\x00")) is Method.DEFLATE


def test_method_read_incomplete():
    with pytest.raises(Incomplete):
        Method.read(ByteReader(b"\x08"))


def test_sanitized_name_refuses_traversal():
    assert Entry(name="../evil.txt").sanitized_name() is None
    assert Entry(name="a/../../b").sanitized_name() is None


def test_sanitized_name_keeps_plain_relative_name():
    assert Entry(name="dir/file.txt").sanitized_name() == "dir/file.txt"


@pytest.mark.parametrize(
    "mode, kind",
    [
        (Mode(0o644), EntryKind.FILE),
        (Mode.DIR | Mode(0o755), EntryKind.DIRECTORY),
        (Mode.SYMLINK | Mode(0o777), EntryKind.SYMLINK),
        (Mode.SYMLINK | Mode.DIR, EntryKind.SYMLINK),
    ],
)
def test_kind(mode, kind):
    assert Entry(name="x", mode=mode).kind() is kind


def test_apply_zip64_updates_sizes_and_offset():
    entry = Entry(name="big")
    entry.apply_extra_field(ExtraZip64Field(5_000_000_000, 4_000_000_000, 6_000_000_000))
    assert (entry.uncompressed_size, entry.compressed_size, entry.header_offset) == (
        5_000_000_000,
        4_000_000_000,
        6_000_000_000,
    )


def test_apply_timestamp_sets_modified():
    entry = Entry(name="x")
    entry.apply_extra_field(ExtraTimestampField(mtime=86400))
    assert entry.modified == datetime(1970, 1, 2, tzinfo=timezone.utc)


def test_apply_timestamp_zero_is_epoch():
    entry = Entry(name="x", modified=datetime(2000, 1, 1, tzinfo=timezone.utc))
    entry.apply_extra_field(ExtraTimestampField(mtime=0))
    assert entry.modified == zero_datetime()


def test_apply_ntfs_sets_all_times():
    entry = Entry(name="x")
    attr = NtfsAttr1(NtfsTimestamp(0), NtfsTimestamp(20_000_000), NtfsTimestamp(10_000_000))
    entry.apply_extra_field(ExtraNtfsField(attrs=[attr]))
    assert entry.modified == datetime(1601, 1, 1, tzinfo=timezone.utc)
    assert entry.accessed == NtfsTimestamp(20_000_000).to_datetime()
    assert entry.created == NtfsTimestamp(10_000_000).to_datetime()
    assert entry.created < entry.accessed


def test_apply_unix_keeps_existing_ids():
    entry = Entry(name="x", uid=5)
    entry.apply_extra_field(ExtraUnixField(atime=1, mtime=0, uid=1000, gid=1001))
    assert (entry.uid, entry.gid) == (5, 1001)
    assert entry.modified == zero_datetime()


def test_apply_new_unix_overrides_ids_with_uid():
    entry = Entry(name="x", uid=5, gid=6)
    entry.apply_extra_field(ExtraNewUnixField(uid=1000, gid=1001))
    assert (entry.uid, entry.gid) == (1000, 1000)


def test_apply_unknown_field_changes_nothing():
    entry = Entry(name="x", crc32=7)
    before = Entry(name="x", crc32=7, modified=entry.modified)
    entry.apply_extra_field(UnknownExtraField(tag=0xCAFE))
    assert entry == before


def test_archive_by_name():
    first = Entry(name="a.txt")
    second = Entry(name="b.txt")
    archive = Archive(size=100, encoding=Encoding.UTF8, entries=[first, second], comment="hi")
    assert archive.by_name("b.txt") is second
    assert archive.by_name("missing") is None
    assert list(archive) == [first, second]