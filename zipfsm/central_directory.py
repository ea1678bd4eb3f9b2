"""Central directory file headers."""

from dataclasses import dataclass

from zipfsm.date_time import MsdosTimestamp, zero_datetime
from zipfsm.encoding import detect_utf8
from zipfsm.entry import Entry, Method
from zipfsm.errors import FormatError
from zipfsm.extra_field import ExtraFieldSettings, parse_extra_fields
from zipfsm.mode import Mode, mode_from_msdos, mode_from_unix
from zipfsm.version import HostSystem, Version

_U64_MASK = 0xFFFF_FFFF_FFFF_FFFF
_UTF8_FLAG = 0x800

_UNIX_HOSTS = (HostSystem.UNIX, HostSystem.OSX)
_MSDOS_HOSTS = (HostSystem.WINDOWS_NTFS, HostSystem.VFAT, HostSystem.MS_DOS)


@dataclass(frozen=True)
class CentralDirectoryFileHeader:
    """A central directory file header (APPNOTE 4.3.12)."""

    SIGNATURE = b"PK\x01\x02"

    creator_version: Version
    reader_version: Version
    flags: int
    method: Method
    modified: MsdosTimestamp
    crc32: int
    compressed_size: int
    uncompressed_size: int
    disk_nbr_start: int
    internal_attrs: int
    external_attrs: int
    header_offset: int
    name: bytes
    extra: bytes
    comment: bytes

    @classmethod
    def read(cls, reader):
        reader.tag(cls.SIGNATURE)
        creator_version = Version.read(reader)
        reader_version = Version.read(reader)
        flags = reader.u16()
        method = Method.read(reader)
        modified = MsdosTimestamp.read(reader)
        crc32 = reader.u32()
        compressed_size = reader.u32()
        uncompressed_size = reader.u32()
        name_len = reader.u16()
        extra_len = reader.u16()
        comment_len = reader.u16()
        disk_nbr_start = reader.u16()
        internal_attrs = reader.u16()
        external_attrs = reader.u32()
        header_offset = reader.u32()
        name = reader.take(name_len)
        extra = reader.take(extra_len)
        comment = reader.take(comment_len)
        return cls(
            creator_version=creator_version,
            reader_version=reader_version,
            flags=flags,
            method=method,
            modified=modified,
            crc32=crc32,
            compressed_size=compressed_size,
            uncompressed_size=uncompressed_size,
            disk_nbr_start=disk_nbr_start,
            internal_attrs=internal_attrs,
            external_attrs=external_attrs,
            header_offset=header_offset,
            name=name,
            extra=extra,
            comment=comment,
        )

    def is_non_utf8(self):
        """Return True if the name or comment should not be read as UTF-8."""
        valid_name, require_name = detect_utf8(self.name)
        valid_comment, require_comment = detect_utf8(self.comment)
        if not valid_name or not valid_comment:
            return True
        if not require_name and not require_comment:
            return False
        # Valid UTF-8 may still be another encoding; trust the UTF-8 flag.
        return self.flags & _UTF8_FLAG == 0

    def _mode(self):
        host = self.creator_version.host_system
        if host in _UNIX_HOSTS:
            return mode_from_unix(self.external_attrs >> 16)
        if host in _MSDOS_HOSTS:
            return mode_from_msdos(self.external_attrs)
        return Mode(0)

    def as_entry(self, encoding, global_offset):
        """Build an :class:`Entry`, decoding text and applying extra fields."""
        # the global offset is added as an unsigned 64-bit value
        header_offset = self.header_offset + (global_offset & _U64_MASK)
        if header_offset > _U64_MASK:
            raise FormatError("invalid header offset")

        entry = Entry(
            name=encoding.decode(self.name),
            method=self.method,
            comment=encoding.decode(self.comment),
            modified=self.modified.to_datetime() or zero_datetime(),
            header_offset=header_offset,
            reader_version=self.reader_version,
            flags=self.flags,
            crc32=self.crc32,
            compressed_size=self.compressed_size,
            uncompressed_size=self.uncompressed_size,
            mode=self._mode(),
        )
        if entry.name.endswith("/"):
            entry.mode |= Mode.DIR

        settings = ExtraFieldSettings(
            uncompressed_size_u32=self.uncompressed_size,
            compressed_size_u32=self.compressed_size,
            header_offset_u32=self.header_offset,
        )
        for extra_field in parse_extra_fields(self.extra, settings):
            entry.apply_extra_field(extra_field)
        return entry