"""Exceptions raised while reading zip archives."""


class ZipError(Exception):
    """Base class for every error raised by this package."""


class FormatError(ZipError):
    """The archive is malformed or violates the zip format."""


class UnsupportedError(ZipError):
    """The archive uses a feature this package cannot handle."""


class DecompressionError(ZipError):
    """A decompressor rejected the data of an entry."""

    def __init__(self, method, message):
        super().__init__(f"{method} decompression failed: {message}")
        self.method = method
        self.message = message