"""End of central directory records, plain and zip64."""

from dataclasses import dataclass, replace
from typing import Any

from zipfsm.errors import FormatError
from zipfsm.stream import ByteReader, Incomplete, Mismatch

_U32_MASK = 0xFFFF_FFFF


@dataclass(frozen=True)
class Located:
    """A zip structure together with its absolute offset in the file."""

    offset: int
    inner: Any


@dataclass(frozen=True)
class EndOfCentralDirectoryRecord:
    """The end of central directory record (APPNOTE 4.3.16)."""

    SIGNATURE = b"PK\x05\x06"
    # does not include the comment length and comment
    MIN_LENGTH = 20

    disk_nbr: int
    dir_disk_nbr: int
    dir_records_this_disk: int
    directory_records: int
    directory_size: int
    directory_offset: int
    comment: bytes = b""

    @classmethod
    def read(cls, reader):
        reader.tag(cls.SIGNATURE)
        disk_nbr = reader.u16()
        dir_disk_nbr = reader.u16()
        dir_records_this_disk = reader.u16()
        directory_records = reader.u16()
        directory_size = reader.u32()
        directory_offset = reader.u32()
        comment = reader.take(reader.u16())
        return cls(
            disk_nbr=disk_nbr,
            dir_disk_nbr=dir_disk_nbr,
            dir_records_this_disk=dir_records_this_disk,
            directory_records=directory_records,
            directory_size=directory_size,
            directory_offset=directory_offset,
            comment=comment,
        )

    @classmethod
    def find_in_block(cls, block):
        """Search ``block`` backwards for a record; return it located, or None."""
        block = bytes(block)
        last = max(0, len(block) - (cls.MIN_LENGTH + 1))
        for start in reversed(range(last)):
            try:
                record = cls.read(ByteReader(block, start))
            except (Incomplete, Mismatch):
                continue
            return Located(offset=start, inner=record)
        return None


@dataclass(frozen=True)
class EndOfCentralDirectory64Locator:
    """The zip64 end of central directory locator (APPNOTE 4.3.15)."""

    SIGNATURE = b"PK\x06\x07"
    LENGTH = 20

    dir_disk_number: int
    directory_offset: int
    total_disks: int

    @classmethod
    def read(cls, reader):
        reader.tag(cls.SIGNATURE)
        dir_disk_number = reader.u32()
        directory_offset = reader.u64()
        total_disks = reader.u32()
        return cls(
            dir_disk_number=dir_disk_number,
            directory_offset=directory_offset,
            total_disks=total_disks,
        )


@dataclass(frozen=True)
class EndOfCentralDirectory64Record:
    """The zip64 end of central directory record (APPNOTE 4.3.14)."""

    SIGNATURE = b"PK\x06\x06"

    record_size: int
    creator_version: int
    reader_version: int
    disk_nbr: int
    dir_disk_nbr: int
    dir_records_this_disk: int
    directory_records: int
    directory_size: int
    directory_offset: int

    @classmethod
    def read(cls, reader):
        reader.tag(cls.SIGNATURE)
        return cls(
            record_size=reader.u64(),
            creator_version=reader.u16(),
            reader_version=reader.u16(),
            disk_nbr=reader.u32(),
            dir_disk_nbr=reader.u32(),
            dir_records_this_disk=reader.u64(),
            directory_records=reader.u64(),
            directory_size=reader.u64(),
            directory_offset=reader.u64(),
        )


@dataclass(frozen=True)
class EndOfCentralDirectory:
    """Combined view of the plain and zip64 end of central directory records.

    ``global_offset`` is the amount of non-zip data found before the archive.
    """

    dir: Located
    dir64: Located | None = None
    global_offset: int = 0

    @classmethod
    def build(cls, size, record, record64):
        """Combine the records, correcting for data prepended to the archive."""
        eocd = cls(dir=record, dir64=record64)

        # The directory ends where its end record was found; if that disagrees
        # with the recorded offset, the whole archive is assumed to be shifted.
        computed = eocd.located_directory_offset() - eocd.directory_size()
        if computed < 0:
            raise FormatError("directory offset points outside file")

        if 0 <= computed < size and computed != eocd.directory_offset():
            eocd = eocd._with_directory_offset(computed)
            eocd = replace(
                eocd, global_offset=computed - cls(dir=record, dir64=record64).directory_offset()
            )

        if not 0 <= eocd.directory_offset() < size:
            raise FormatError("directory offset points outside file")
        return eocd

    def _with_directory_offset(self, offset):
        if self.dir64 is not None:
            inner = replace(self.dir64.inner, directory_offset=offset)
            return replace(self, dir64=Located(self.dir64.offset, inner))
        inner = replace(self.dir.inner, directory_offset=offset & _U32_MASK)
        return replace(self, dir=Located(self.dir.offset, inner))

    def located_directory_offset(self):
        if self.dir64 is not None:
            return self.dir64.offset
        return self.dir.offset

    def directory_offset(self):
        if self.dir64 is not None:
            return self.dir64.inner.directory_offset
        return self.dir.inner.directory_offset

    def directory_size(self):
        if self.dir64 is not None:
            return self.dir64.inner.directory_size
        return self.dir.inner.directory_size

    def directory_records(self):
        if self.dir64 is not None:
            return self.dir64.inner.directory_records
        return self.dir.inner.directory_records

    def comment(self):
        return self.dir.inner.comment