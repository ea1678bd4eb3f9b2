"""I/O-free state machines for reading zip archives and decompressing their entries."""

__version__ = "0.1.0"