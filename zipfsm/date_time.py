"""MS-DOS and NTFS timestamps."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

_NTFS_TICKS_PER_SECOND = 10_000_000
_NTFS_EPOCH = datetime(1601, 1, 1, tzinfo=timezone.utc)


def zero_datetime():
    """The Unix epoch, used when a timestamp cannot be converted."""
    return datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class MsdosTimestamp:
    """An MS-DOS date and time: years 1980 to 2107, two-second precision."""

    time: int
    date: int

    @classmethod
    def read(cls, reader):
        time = reader.u16()
        date = reader.u16()
        return cls(time=time, date=date)

    def to_datetime(self):
        """Return the UTC datetime, or None if the fields are out of range."""
        day = self.date & 0b1_1111
        month = (self.date >> 5) & 0b1111
        year = (self.date >> 9) + 1980
        second = (self.time & 0b1_1111) * 2
        minute = (self.time >> 5) & 0b11_1111
        hour = self.time >> 11
        try:
            return datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)
        except ValueError:
            return None


@dataclass(frozen=True)
class NtfsTimestamp:
    """An NTFS timestamp: 100ns intervals since 1601-01-01 UTC."""

    timestamp: int

    @classmethod
    def read(cls, reader):
        return cls(timestamp=reader.u64())

    def to_datetime(self):
        """Return the UTC datetime (microsecond precision), or None if out of range."""
        seconds, ticks = divmod(self.timestamp, _NTFS_TICKS_PER_SECOND)
        try:
            return _NTFS_EPOCH + timedelta(seconds=seconds, microseconds=ticks // 10)
        except OverflowError:
            return None