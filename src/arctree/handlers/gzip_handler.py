"""
GZIP handler for ARCTREE.
Provides the gzip compression layer (for .tar.gz / .tgz) and access to plain GZIP
compressed files as single-entry containers.

Author: Tim Hosking
Contact: https://github.com/Munger
License: MIT
"""

import gzip
import os
import struct
from typing import BinaryIO, Iterator, List, Optional, Set

from arctree.core.base_handler import ArchiveHandler, CompressionLayer
from arctree.core.buffering import HybridBufferedStream, copy_stream
from arctree.core.cancellation import CancelToken, check_cancelled
from arctree.core.entries import ArchiveEntry
from arctree.core.errors import InvalidArgumentError, UnsupportedFormatError
from arctree.core.global_config import HandlerConfig

GZIP_MAGIC = b'\x1f\x8b'

# Header flag bits (RFC 1952)
_FEXTRA = 0x04
_FNAME = 0x08


class GzipConfig(HandlerConfig):
    """Overrides for the GZIP handler, e.g. ``GzipConfig.set('default_entry_name', 'payload')``."""


class GzipLayer(CompressionLayer):
    name = 'gz'
    magic = GZIP_MAGIC
    extension = '.gz'
    tar_alias = '.tgz'

    @classmethod
    def open_reader(cls, stream: BinaryIO) -> BinaryIO:
        return gzip.GzipFile(fileobj=stream, mode='rb')

    @classmethod
    def open_writer(cls, stream) -> BinaryIO:
        return gzip.GzipFile(fileobj=stream, mode='wb', mtime=0)


def read_stored_name(stream: BinaryIO) -> Optional[str]:
    """
    Read the original file name (FNAME) from a gzip member header at the current position.
    Returns None if the header carries no name.
    """
    header = stream.read(10)
    if len(header) < 10 or header[:2] != GZIP_MAGIC:
        return None
    flags = header[3]
    if flags & _FEXTRA:
        extra_len = struct.unpack('<H', stream.read(2))[0]
        stream.read(extra_len)
    if not flags & _FNAME:
        return None
    name = bytearray()
    while True:
        c = stream.read(1)
        if not c or c == b'\x00':
            break
        name += c
    return name.decode('latin-1') or None


class GzipHandler(ArchiveHandler):
    """
    Handler for plain GZIP files, exposed as a container holding exactly one entry.
    The entry key is the name stored in the gzip header, else the source file name
    without '.gz', else the configured default entry name.
    """
    format_name = 'gzip'
    config = GzipConfig

    def _default_key(self) -> str:
        if self.name_hint:
            base = os.path.basename(self.name_hint)
            if base.lower().endswith('.gz'):
                base = base[:-3]
            if base:
                return base
        return self.config.get('default_entry_name')

    def _read_entries(self) -> Iterator[ArchiveEntry]:
        self._stream.seek(0)
        stored_name = read_stored_name(self._stream)
        # Decompressed once; entry reads are served from the spool
        buffer = HybridBufferedStream()
        self._stream.seek(0)
        try:
            with gzip.GzipFile(fileobj=self._stream, mode='rb') as src:
                copy_stream(src, buffer)
        except Exception:
            buffer.close()
            raise
        # An empty member without a stored name is an empty container
        if stored_name is None and buffer.size == 0:
            buffer.close()
            return
        entry = ArchiveEntry(self._normalize_key(stored_name or self._default_key(), False))
        entry._replace_data(buffer)
        yield entry

    def _check_can_add(self, key: str, is_directory: bool) -> None:
        if is_directory:
            raise InvalidArgumentError("A GZIP container cannot hold directories.")
        if self._file_entries(self.entries):
            raise UnsupportedFormatError("A GZIP container holds a single entry.")

    def _write(self, stream, entries: List[ArchiveEntry], cancel: Optional[CancelToken]) -> None:
        files = self._file_entries(entries)
        if len(files) > 1:
            raise UnsupportedFormatError("A GZIP container holds a single entry.")
        check_cancelled(cancel)
        if not files:
            with gzip.GzipFile(fileobj=stream, mode='wb', mtime=0):
                pass
            return
        entry = files[0]
        with gzip.GzipFile(filename=entry.key, fileobj=stream, mode='wb', mtime=int(entry.modified)) as dst, \
                entry.open_stream('rb') as src:
            copy_stream(src, dst, cancel)

    @classmethod
    def can_parse(cls, stream: BinaryIO) -> bool:
        return stream.read(2) == GZIP_MAGIC

    @classmethod
    def get_supported_extensions(cls) -> Set[str]:
        return {'.gz'}
