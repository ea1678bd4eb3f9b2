"""Archive entries, compression methods and the archive itself."""

import enum
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone

from zipfsm.date_time import zero_datetime
from zipfsm.extra_field import (
    ExtraNewUnixField,
    ExtraNtfsField,
    ExtraTimestampField,
    ExtraUnixField,
    ExtraZip64Field,
    NtfsAttr1,
)
from zipfsm.mode import Mode
from zipfsm.version import HostSystem, Version

_U32_MASK = 0xFFFF_FFFF


class Method(enum.IntEnum):
    """Compression method of an entry; unrecognised values are kept."""

    STORE = 0
    DEFLATE = 8
    DEFLATE64 = 9
    BZIP2 = 12
    LZMA = 14
    ZSTD = 93
    MP3 = 94
    XZ = 95
    JPEG = 96
    WAVPACK = 97
    PPMD = 98
    AEX = 99

    @classmethod
    def _missing_(cls, value):
        if not isinstance(value, int) or not 0 <= value <= 0xFFFF:
            return None
        member = int.__new__(cls, value)
        member._name_ = f"UNRECOGNIZED_{value}"
        member._value_ = value
        return cls._value2member_map_.setdefault(value, member)

    @classmethod
    def from_value(cls, value):
        return cls(value)

    @classmethod
    def read(cls, reader):
        return cls.from_value(reader.u16())


class EntryKind(enum.Enum):
    """Whether an entry is a directory, a file or a symbolic link."""

    DIRECTORY = "directory"
    FILE = "file"
    SYMLINK = "symlink"


def _unix_datetime(seconds):
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return zero_datetime()


@dataclass
class Entry:
    """A file, directory or symlink described by an archive."""

    name: str
    method: Method = Method.STORE
    comment: str = ""
    modified: datetime = field(default_factory=zero_datetime)
    created: datetime | None = None
    accessed: datetime | None = None
    header_offset: int = 0
    reader_version: Version = Version(HostSystem.MS_DOS, 0)
    flags: int = 0
    uid: int | None = None
    gid: int | None = None
    crc32: int = 0
    compressed_size: int = 0
    uncompressed_size: int = 0
    mode: Mode = Mode(0)

    def sanitized_name(self):
        """Return the name if it looks safe to extract, else None.

        Names containing ``..`` are refused; leading slashes are stripped
        (on Windows, absolute drive or backslash paths are refused instead).
        """
        name = self.name
        if ".." in name:
            return None
        if os.name == "nt":
            if ":\\" in name or name.startswith("\\"):
                return None
            return name
        return name.lstrip("/")

    def apply_extra_field(self, field):
        """Update this entry's metadata from a parsed extra field."""
        if isinstance(field, ExtraZip64Field):
            self.uncompressed_size = field.uncompressed_size
            self.compressed_size = field.compressed_size
            self.header_offset = field.header_offset
        elif isinstance(field, ExtraTimestampField):
            self.modified = _unix_datetime(field.mtime)
        elif isinstance(field, ExtraNtfsField):
            for attr in field.attrs:
                if isinstance(attr, NtfsAttr1):
                    self.modified = attr.mtime.to_datetime() or zero_datetime()
                    self.created = attr.ctime.to_datetime()
                    self.accessed = attr.atime.to_datetime()
        elif isinstance(field, ExtraUnixField):
            self.modified = _unix_datetime(field.mtime)
            if self.uid is None:
                self.uid = field.uid & _U32_MASK
            if self.gid is None:
                self.gid = field.gid & _U32_MASK
        elif isinstance(field, ExtraNewUnixField):
            # both ids are taken from the uid slot of the field
            self.uid = field.uid & _U32_MASK
            self.gid = field.uid & _U32_MASK

    def kind(self):
        mode = Mode(int(self.mode))
        if mode.has(Mode.SYMLINK):
            return EntryKind.SYMLINK
        if mode.has(Mode.DIR):
            return EntryKind.DIRECTORY
        return EntryKind.FILE


@dataclass
class Archive:
    """A parsed zip archive: its size, text encoding, entries and comment."""

    size: int
    encoding: object
    entries: list = field(default_factory=list)
    comment: str = ""

    def __iter__(self):
        return iter(self.entries)

    def by_name(self, name):
        """Return the first entry whose name is exactly ``name``, or None."""
        return next((entry for entry in self.entries if entry.name == name), None)