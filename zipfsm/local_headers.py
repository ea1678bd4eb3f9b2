"""Local file headers, data descriptors and LZMA properties headers."""

from dataclasses import dataclass

from zipfsm.date_time import MsdosTimestamp, zero_datetime
from zipfsm.encoding import Encoding, detect_utf8
from zipfsm.entry import Entry, Method
from zipfsm.errors import UnsupportedError
from zipfsm.extra_field import ExtraFieldSettings, parse_extra_fields
from zipfsm.mode import Mode
from zipfsm.stream import Mismatch
from zipfsm.version import Version

LZMA_PROPERTIES_SIZE = 5
_DATA_DESCRIPTOR_FLAG = 0b1000
_UTF8_FLAG = 0x800


@dataclass(frozen=True)
class LzmaProperties:
    """The LZMA properties header that follows an LZMA local header (APPNOTE 5.8.5).

    The five property bytes themselves belong to the compressed stream.
    """

    major: int
    minor: int
    properties_size: int

    @classmethod
    def read(cls, reader):
        major = reader.u8()
        minor = reader.u8()
        properties_size = reader.u16()
        return cls(major=major, minor=minor, properties_size=properties_size)

    def check_supported(self):
        """Raise :class:`UnsupportedError` unless this is LZMA SDK 2.0 with 5 properties."""
        if (self.major, self.minor) != (2, 0):
            raise UnsupportedError(
                f"LZMA version {self.major}.{self.minor} is not supported"
            )
        if self.properties_size != LZMA_PROPERTIES_SIZE:
            raise UnsupportedError(
                f"LZMA properties header has wrong size: expected "
                f"{LZMA_PROPERTIES_SIZE}, got {self.properties_size}"
            )


@dataclass(frozen=True)
class LocalFileHeader:
    """A local file header (APPNOTE 4.3.7)."""

    SIGNATURE = b"PK\x03\x04"

    reader_version: Version
    flags: int
    method: Method
    modified: MsdosTimestamp
    crc32: int
    compressed_size: int
    uncompressed_size: int
    name: bytes
    extra: bytes
    lzma_properties: LzmaProperties | None = None

    @classmethod
    def read(cls, reader):
        reader.tag(cls.SIGNATURE)
        reader_version = Version.read(reader)
        flags = reader.u16()
        method = Method.read(reader)
        modified = MsdosTimestamp.read(reader)
        crc32 = reader.u32()
        compressed_size = reader.u32()
        uncompressed_size = reader.u32()
        name_len = reader.u16()
        extra_len = reader.u16()
        name = reader.take(name_len)
        extra = reader.take(extra_len)

        lzma_properties = None
        if method == Method.LZMA:
            lzma_properties = LzmaProperties.read(reader)
            lzma_properties.check_supported()

        return cls(
            reader_version=reader_version,
            flags=flags,
            method=method,
            modified=modified,
            crc32=crc32,
            compressed_size=compressed_size,
            uncompressed_size=uncompressed_size,
            name=name,
            extra=extra,
            lzma_properties=lzma_properties,
        )

    def has_data_descriptor(self):
        """True if a data descriptor follows the file data (flag bit 3)."""
        return bool(self.flags & _DATA_DESCRIPTOR_FLAG)

    def as_entry(self):
        """Build an :class:`Entry` from this header alone."""
        # The check is on the flag being clear, as the reference reader does.
        utf8_flag_clear = self.flags & _UTF8_FLAG == 0
        if utf8_flag_clear and detect_utf8(self.name)[0]:
            encoding = Encoding.UTF8
        else:
            encoding = Encoding.CP437

        entry = Entry(
            name=encoding.decode(self.name),
            method=self.method,
            comment="",
            modified=self.modified.to_datetime() or zero_datetime(),
            header_offset=0,
            reader_version=self.reader_version,
            flags=self.flags,
            crc32=self.crc32,
            compressed_size=self.compressed_size,
            uncompressed_size=self.uncompressed_size,
            mode=Mode(0),
        )
        if entry.name.endswith("/"):
            entry.mode |= Mode.DIR

        settings = ExtraFieldSettings(
            uncompressed_size_u32=self.uncompressed_size,
            compressed_size_u32=self.compressed_size,
            header_offset_u32=0,
        )
        for extra_field in parse_extra_fields(self.extra, settings):
            entry.apply_extra_field(extra_field)
        return entry


@dataclass(frozen=True)
class DataDescriptorRecord:
    """The data descriptor that may follow an entry's data (APPNOTE 4.3.9)."""

    SIGNATURE = b"PK\x07\x08"

    crc32: int
    compressed_size: int
    uncompressed_size: int

    @classmethod
    def read(cls, reader, is_zip64):
        # The signature is optional; writers emit it or leave it out.
        try:
            reader.tag(cls.SIGNATURE)
        except Mismatch:
            pass
        crc32 = reader.u32()
        if is_zip64:
            compressed_size = reader.u64()
            uncompressed_size = reader.u64()
        else:
            compressed_size = reader.u32()
            uncompressed_size = reader.u32()
        return cls(
            crc32=crc32,
            compressed_size=compressed_size,
            uncompressed_size=uncompressed_size,
        )