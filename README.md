# zipfsm

zipfsm reads zip archives without doing any I/O of its own. It gives you
state machines that tell you which bytes they need next; you read those
bytes however you like (from a file, a socket or memory) and hand them back.

It handles:

- finding the end of central directory record, including zip64 archives
  and archives with data prepended (self-extracting installers and the like);
- parsing the central directory, guessing the text encoding of names and
  comments (UTF-8, CP437 or Shift-JIS), and normalising entry metadata:
  timestamps, sizes, Unix and MS-DOS modes, uid/gid;
- reading local file headers and data descriptors, and decompressing entry
  data stored with Store, Deflate, Bzip2, LZMA or Zstandard, checking the
  uncompressed size and CRC-32 of each entry.

## Installation

```
pip install zipfsm
```

## Reading an archive held in memory

```python
from zipfsm.archive_fsm import read_archive
from zipfsm.entry_fsm import read_entry

with open("example.zip", "rb") as f:
    data = f.read()

archive = read_archive(data)
print(archive.encoding, archive.comment)
for entry in archive.entries:
    print(entry.name, entry.kind(), entry.uncompressed_size, entry.modified)

readme = archive.by_name("README.txt")
if readme is not None:
    contents = read_entry(data, readme)
```

`read_entry(data)` without an entry reads the local header at the start of
`data` and builds the entry from it.

Each `Entry` carries its name, comment, compression `method`
(`zipfsm.entry.Method`), `modified`, `created` and `accessed` timestamps,
`uid`/`gid`, `crc32`, compressed and uncompressed sizes, `header_offset`
and `mode` (`zipfsm.mode.Mode`; `zipfsm.mode.format_mode` renders it like
`ls -l`, e.g. `drwxr-xr-x`). `Entry.kind()` returns an `EntryKind`:
`DIRECTORY`, `FILE` or `SYMLINK`.

`Entry.sanitized_name()` returns the entry name with leading slashes
removed, or `None` when the name contains `..`. On Windows it instead
refuses names with a drive (`:\`) or a leading backslash.

## Driving the state machines yourself

`ArchiveFsm` asks for data at file offsets. Each time round the loop, call
`wants_read()` for the offset to read from, pass the bytes you read to
`fill()` (it returns how many it took), then call `process()`. It returns
`None` while it needs more data and the finished `Archive` once the central
directory has been read:

```python
import os

from zipfsm.archive_fsm import ArchiveFsm
from zipfsm.errors import FormatError


def read_archive_from_file(path):
    fsm = ArchiveFsm(os.path.getsize(path))
    with open(path, "rb") as f:
        while True:
            f.seek(fsm.wants_read())
            chunk = f.read(64 * 1024)
            fsm.fill(chunk)
            archive = fsm.process()
            if archive is not None:
                return archive
            if not chunk:
                raise FormatError("unexpected end of file")
```

`EntryFsm` does the same for one entry's data. Start reading at the entry's
`header_offset` and `fill()` it while `wants_read()` is true.
`process_till_header()` parses the local header only and returns the entry,
or `None` if more data is needed. `process(max_out)` returns a
`DecompressOutcome` whose `data` holds at most `max_out` decompressed bytes,
and `None` once the entry has been read and validated:

```python
from zipfsm.entry_fsm import EntryFsm
from zipfsm.errors import FormatError


def read_entry_from_file(f, entry):
    fsm = EntryFsm(entry)
    f.seek(entry.header_offset)
    output = bytearray()
    while True:
        chunk = b""
        if fsm.wants_read():
            chunk = f.read(min(64 * 1024, fsm.buffer.available_space()))
            fsm.fill(chunk)
        outcome = fsm.process(64 * 1024)
        if outcome is None:
            return bytes(output)
        output += outcome.data
        if not chunk and outcome.bytes_read == 0 and outcome.bytes_written == 0:
            raise FormatError("unexpected end of file")
```

The lower-level pieces are available too: the record parsers in
`zipfsm.eocd`, `zipfsm.central_directory`, `zipfsm.local_headers` and
`zipfsm.extra_field` read from a `zipfsm.stream.ByteReader`, which raises
`Incomplete` when more bytes are needed and `Mismatch` when the bytes do not
hold the expected record. The decompressors (`StoreDecompressor`,
`DeflateDecompressor`, `Bzip2Decompressor`, `LzmaDecompressor`,
`ZstdDecompressor`) are returned by `zipfsm.entry_fsm.make_decompressor`.

## Errors

Errors raised for a bad or unsupported archive are subclasses of
`zipfsm.errors.ZipError`:

- `FormatError`: the archive is malformed, for example a missing end of
  central directory record, a wrong record count, an invalid extra field,
  an invalid local header or data descriptor, text that does not decode,
  a size mismatch or a checksum mismatch;
- `UnsupportedError`: a compression method this package cannot
  decompress, or (from `LocalFileHeader.read` and
  `LzmaProperties.check_supported`) an LZMA header other than version 2.0
  with five property bytes. `EntryFsm` reports such a local header as a
  `FormatError`;
- `DecompressionError`: the compressed stream itself is corrupt or
  truncated.

The library does no I/O, so none of these errors comes from I/O.

## What it does not do

- It only reads archives; it cannot create or modify them.
- Deflate64, PPMd, XZ, MP3, JPEG, WavPack and other methods are not
  decompressed; `make_decompressor` raises `UnsupportedError` for them.
- Encrypted entries are not decrypted.
- There is no command-line tool; the package is a library.