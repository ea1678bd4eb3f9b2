"""Zip "version made by" and "version needed" fields."""

import enum
from dataclasses import dataclass


class HostSystem(enum.IntEnum):
    """The system an archive or entry was created on."""

    MS_DOS = 0
    AMIGA = 1
    OPEN_VMS = 2
    UNIX = 3
    VM_CMS = 4
    ATARI_ST = 5
    OS2_HPFS = 6
    MACINTOSH = 7
    Z_SYSTEM = 8
    CP_M = 9
    WINDOWS_NTFS = 10
    MVS = 11
    VSE = 12
    ACORN_RISC = 13
    VFAT = 14
    ALTERNATE_MVS = 15
    BE_OS = 16
    TANDEM = 17
    OS400 = 18
    OSX = 19

    @classmethod
    def _missing_(cls, value):
        if not isinstance(value, int) or not 0 <= value <= 0xFF:
            return None
        member = int.__new__(cls, value)
        member._name_ = f"UNKNOWN_{value}"
        member._value_ = value
        return cls._value2member_map_.setdefault(value, member)

    @classmethod
    def from_value(cls, value):
        """Return the host system for a byte value; unknown values are kept."""
        return cls(value)


@dataclass(frozen=True)
class Version:
    """A zip version together with the host system it applies to."""

    host_system: HostSystem
    version: int

    @classmethod
    def read(cls, reader):
        version = reader.u8()
        host_system = HostSystem.from_value(reader.u8())
        return cls(host_system=host_system, version=version)

    def __str__(self):
        return f"{self.host_system.name} v{self.version}"