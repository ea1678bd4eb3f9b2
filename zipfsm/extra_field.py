"""Extra fields stored alongside local and central directory headers."""

from dataclasses import dataclass, field

from zipfsm.date_time import NtfsTimestamp
from zipfsm.errors import FormatError
from zipfsm.stream import ByteReader, Incomplete, Mismatch

_U32_MAX = 0xFFFF_FFFF


@dataclass(frozen=True)
class ExtraFieldSettings:
    """The 32-bit header values that decide which zip64 fields are present.

    A zip64 extra field only holds a value when the matching header field is
    set to ``0xFFFFFFFF``.
    """

    uncompressed_size_u32: int
    compressed_size_u32: int
    header_offset_u32: int


@dataclass(frozen=True)
class ExtraZip64Field:
    """Zip64 extended information (tag 0x0001)."""

    TAG = 0x0001

    uncompressed_size: int
    compressed_size: int
    header_offset: int
    disk_start: int | None = None

    @classmethod
    def _parse(cls, reader, settings):
        def wide(value):
            return reader.u64() if value == _U32_MAX else value

        uncompressed_size = wide(settings.uncompressed_size_u32)
        compressed_size = wide(settings.compressed_size_u32)
        header_offset = wide(settings.header_offset_u32)
        disk_start = reader.u32() if reader.remaining >= 4 else None
        return cls(
            uncompressed_size=uncompressed_size,
            compressed_size=compressed_size,
            header_offset=header_offset,
            disk_start=disk_start,
        )


@dataclass(frozen=True)
class ExtraTimestampField:
    """Extended timestamp (tag 0x5455); ``mtime`` is seconds since the epoch."""

    TAG = 0x5455

    mtime: int

    @classmethod
    def _parse(cls, reader, settings):
        flags = reader.u8()
        if not flags & 0b1:
            raise Mismatch("extended timestamp without modification time")
        return cls(mtime=reader.u32())


@dataclass(frozen=True)
class ExtraUnixField:
    """UNIX extra field (tag 0x000d) and its Info-ZIP variant (tag 0x5855)."""

    TAG = 0x000D
    TAG_INFOZIP = 0x5855

    atime: int
    mtime: int
    uid: int
    gid: int
    data: bytes = b""

    @classmethod
    def _parse(cls, reader, settings):
        t_size = reader.u16()
        # t_size counts the 12 bytes of atime, mtime, uid and gid
        if t_size < 12:
            raise Mismatch("unix extra field too short")
        atime = reader.u32()
        mtime = reader.u32()
        uid = reader.u16()
        gid = reader.u16()
        data = reader.take(t_size - 12)
        return cls(atime=atime, mtime=mtime, uid=uid, gid=gid, data=data)


@dataclass(frozen=True)
class ExtraNewUnixField:
    """Info-ZIP new Unix extra field (tag 0x7875) with variable-size ids."""

    TAG = 0x7875

    uid: int
    gid: int

    @staticmethod
    def _variable_length_integer(reader):
        size = reader.u8()
        raw = reader.take(size)
        if size not in (1, 2, 4, 8):
            raise Mismatch(f"unsupported id size {size}")
        return int.from_bytes(raw, "little")

    @classmethod
    def _parse(cls, reader, settings):
        reader.tag(b"\x01")
        uid = cls._variable_length_integer(reader)
        gid = cls._variable_length_integer(reader)
        return cls(uid=uid, gid=gid)


@dataclass(frozen=True)
class NtfsAttr1:
    """NTFS attribute 1: modification, access and creation times."""

    mtime: NtfsTimestamp
    atime: NtfsTimestamp
    ctime: NtfsTimestamp

    @classmethod
    def _parse(cls, reader):
        mtime = NtfsTimestamp.read(reader)
        atime = NtfsTimestamp.read(reader)
        ctime = NtfsTimestamp.read(reader)
        return cls(mtime=mtime, atime=atime, ctime=ctime)


@dataclass(frozen=True)
class UnknownNtfsAttr:
    """An NTFS attribute this package does not interpret."""

    tag: int


@dataclass(frozen=True)
class ExtraNtfsField:
    """NTFS extra field (tag 0x000a)."""

    TAG = 0x000A

    attrs: list = field(default_factory=list)

    @staticmethod
    def _parse_attr(reader):
        tag = reader.u16()
        payload = reader.take(reader.u16())
        if tag == 0x0001:
            return NtfsAttr1._parse(ByteReader(payload))
        return UnknownNtfsAttr(tag=tag)

    @classmethod
    def _parse(cls, reader, settings):
        reader.take(4)  # reserved
        attrs = []
        while not reader.is_empty():
            attrs.append(cls._parse_attr(reader))
        return cls(attrs=attrs)


@dataclass(frozen=True)
class UnknownExtraField:
    """An extra field that is unknown or could not be interpreted."""

    tag: int


_PAYLOAD_PARSERS = {
    ExtraZip64Field.TAG: ExtraZip64Field._parse,
    ExtraTimestampField.TAG: ExtraTimestampField._parse,
    ExtraNtfsField.TAG: ExtraNtfsField._parse,
    ExtraUnixField.TAG: ExtraUnixField._parse,
    ExtraUnixField.TAG_INFOZIP: ExtraUnixField._parse,
    ExtraNewUnixField.TAG: ExtraNewUnixField._parse,
}


def parse_extra_field(reader, settings):
    """Read one extra field record from ``reader``.

    A payload that does not match its tag's layout gives an
    :class:`UnknownExtraField`; a payload or record cut short raises
    :class:`~zipfsm.stream.Incomplete`.
    """
    tag = reader.u16()
    payload = ByteReader(reader.take(reader.u16()))
    parser = _PAYLOAD_PARSERS.get(tag)
    if parser is None:
        return UnknownExtraField(tag=tag)
    try:
        return parser(payload, settings)
    except Mismatch:
        return UnknownExtraField(tag=tag)


def parse_extra_fields(data, settings):
    """Parse a whole extra field block into a list of fields."""
    reader = ByteReader(data)
    fields = []
    while not reader.is_empty():
        try:
            fields.append(parse_extra_field(reader, settings))
        except (Incomplete, Mismatch) as exc:
            raise FormatError("invalid extra field") from exc
    return fields