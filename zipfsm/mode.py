"""File mode bits, with conversions from Unix and MS-DOS attributes."""

import enum


class Mode(enum.IntFlag):
    """A file's type and permission bits; the low nine bits are rwxrwxrwx."""

    DIR = 1 << 31
    APPEND = 1 << 30
    EXCLUSIVE = 1 << 29
    TEMPORARY = 1 << 28
    SYMLINK = 1 << 27
    DEVICE = 1 << 26
    NAMED_PIPE = 1 << 25
    SOCKET = 1 << 24
    SETUID = 1 << 23
    SETGID = 1 << 22
    CHAR_DEVICE = 1 << 21
    STICKY = 1 << 20
    IRREGULAR = 1 << 19

    def has(self, other):
        return bool(self & other)

    def __str__(self):
        return format_mode(self)


class UnixMode(enum.IntFlag):
    """Unix ``st_mode`` bits."""

    IFMT = 0xF000
    IFSOCK = 0xC000
    IFLNK = 0xA000
    IFREG = 0x8000
    IFBLK = 0x6000
    IFDIR = 0x4000
    IFCHR = 0x2000
    IFIFO = 0x1000
    ISUID = 0x800
    ISGID = 0x400
    ISVTX = 0x200


class MsdosMode(enum.IntFlag):
    """MS-DOS file attribute bits."""

    DIR = 0x10
    READ_ONLY = 0x01


_TYPE_LETTERS = (
    (Mode.DIR, "d"),
    (Mode.APPEND, "a"),
    (Mode.EXCLUSIVE, "l"),
    (Mode.TEMPORARY, "T"),
    (Mode.SYMLINK, "L"),
    (Mode.DEVICE, "D"),
    (Mode.NAMED_PIPE, "p"),
    (Mode.SOCKET, "S"),
    (Mode.SETUID, "u"),
    (Mode.SETGID, "g"),
    (Mode.CHAR_DEVICE, "c"),
    (Mode.STICKY, "t"),
    (Mode.IRREGULAR, "?"),
)

_UNIX_TYPES = {
    UnixMode.IFBLK: Mode.DEVICE,
    UnixMode.IFCHR: Mode.DEVICE & Mode.CHAR_DEVICE,
    UnixMode.IFDIR: Mode.DIR,
    UnixMode.IFIFO: Mode.NAMED_PIPE,
    UnixMode.IFLNK: Mode.SYMLINK,
    UnixMode.IFSOCK: Mode.SOCKET,
}


def mode_from_unix(unix_mode):
    """Convert Unix mode bits into a :class:`Mode`."""
    bits = int(unix_mode)
    mode = Mode(bits & 0o777)
    mode |= _UNIX_TYPES.get(bits & UnixMode.IFMT, Mode(0))
    if bits & UnixMode.ISGID:
        mode |= Mode.SETGID
    if bits & UnixMode.ISUID:
        mode |= Mode.SETUID
    if bits & UnixMode.ISVTX:
        mode |= Mode.STICKY
    return mode


def mode_from_msdos(msdos_mode):
    """Convert MS-DOS attribute bits into a :class:`Mode`."""
    bits = int(msdos_mode)
    if bits & MsdosMode.DIR:
        mode = Mode.DIR | Mode(0o777)
    else:
        mode = Mode(0o666)
    if bits & MsdosMode.READ_ONLY:
        mode &= Mode(0o222)
    return mode


def format_mode(mode):
    """Render a mode like ``ls -l`` does, e.g. ``drwxr-xr-x``."""
    mode = Mode(int(mode))
    kinds = "".join(letter for flag, letter in _TYPE_LETTERS if mode.has(flag)) or "-"
    perms = "".join(
        letter if mode.has(Mode(1 << (8 - index))) else "-"
        for index, letter in enumerate("rwxrwxrwx")
    )
    return kinds + perms