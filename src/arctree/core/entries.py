"""
Archive entries and the entry classifier.

An entry is one record in an archive's flat namespace: a key, a directory flag and a
content stream. Its content is either read lazily from the container's source stream,
or held in a private HybridBufferedStream once it has been written or materialized.

Author: Tim Hosking
Contact: https://github.com/Munger
License: MIT
"""

import io
import time
from typing import BinaryIO, Callable, Optional

from .buffering import HybridBufferedStream, copy_stream
from .ids import SEPARATOR
from .logging import debug_print


def normalize_key(key: str) -> str:
    """Normalize a key read from disk: forward slashes, no leading './' or '/'."""
    key = key.replace('\\', SEPARATOR)
    while key.startswith('./'):
        key = key[2:]
    return key.lstrip(SEPARATOR)


def is_directory(entry: 'ArchiveEntry') -> bool:
    """
    True if the container flags the entry as a directory, or its key ends with the separator.
    Some TAR and GZIP producers never set an explicit directory flag.
    """
    return entry.is_directory or entry.key.endswith(SEPARATOR)


def is_direct_child(child_key: str, parent_key: str) -> bool:
    """
    Determine whether ``child_key`` lies exactly one segment below ``parent_key``.
    Trailing separators on either key are ignored. A key is never its own child.
    """
    child = child_key.rstrip(SEPARATOR)
    parent = parent_key.rstrip(SEPARATOR)
    if parent:
        if not child.startswith(parent + SEPARATOR):
            return False
        relative = child[len(parent) + 1:]
    else:
        relative = child
    return bool(relative) and SEPARATOR not in relative


def is_descendant(key: str, folder_key: str) -> bool:
    """
    True if ``key`` is the folder's own directory key or any key below it.
    A file key equal to the folder name without the separator is a sibling, not a descendant.
    """
    folder = folder_key.rstrip(SEPARATOR)
    if not folder:
        return True
    return key.startswith(folder + SEPARATOR)


class ArchiveEntry:
    """A single record in an archive container."""

    def __init__(self, key: str, is_directory: bool = False, size: int = 0,
                 modified: Optional[float] = None, reader: Optional[Callable[[], BinaryIO]] = None):
        """
        Args:
            key: Container-relative key
            is_directory: Explicit directory flag from the container
            size: Uncompressed size in bytes
            modified: Modification time as a Unix timestamp
            reader: Callable opening a fresh stream over the stored content
        """
        self.key = key
        self.is_directory = is_directory
        self._size = size
        self.modified = modified if modified is not None else time.time()
        self._reader = reader
        self._data: Optional[HybridBufferedStream] = None

    def __repr__(self):
        kind = 'dir' if is_directory(self) else 'file'
        return f"ArchiveEntry({self.key!r}, {kind})"

    @property
    def size(self) -> int:
        if self._data is not None:
            return self._data.size
        return self._size

    @property
    def is_materialized(self) -> bool:
        return self._data is not None or self._reader is None

    def open_stream(self, mode: str = 'rb') -> BinaryIO:
        """
        Open the entry content. Read modes return a fresh stream per call; write modes
        return an EntryWriteStream that replaces the content when closed.
        """
        if is_directory(self):
            raise IsADirectoryError(f"Cannot open directory entry as a file: {self.key}")
        if 'w' in mode or 'a' in mode or '+' in mode:
            return EntryWriteStream(self, mode)
        if self._data is not None:
            return self._data.reader()
        if self._reader is not None:
            return self._reader()
        return io.BytesIO(b'')

    def set_data(self, stream: BinaryIO, close_stream: bool = True) -> None:
        """Replace the entry content with the contents of ``stream``."""
        buffer = HybridBufferedStream()
        try:
            copy_stream(stream, buffer)
        except Exception:
            buffer.close()
            raise
        finally:
            if close_stream:
                stream.close()
        self._replace_data(buffer)

    def _replace_data(self, buffer: HybridBufferedStream) -> None:
        if self._data is not None:
            self._data.close()
        self._data = buffer
        self._reader = None
        self.modified = time.time()

    def materialize(self) -> None:
        """Copy lazily read content into a private buffer, detaching it from the source stream."""
        if self.is_materialized or is_directory(self):
            return
        debug_print(f"[ArchiveEntry.materialize] {self.key}", level=3)
        with self._reader() as src:
            buffer = HybridBufferedStream()
            copy_stream(src, buffer)
        modified = self.modified
        self._replace_data(buffer)
        self.modified = modified

    def close(self) -> None:
        if self._data is not None:
            self._data.close()
            self._data = None


class EntryWriteStream:
    """
    Stream wrapper for writing an archive entry.

    Writes go to a HybridBufferedStream; the entry content is replaced on close.
    Modes 'r+' and 'a' start from the existing content.
    """

    def __init__(self, entry: ArchiveEntry, mode: str):
        self.entry = entry
        self.mode = mode
        self._closed = False
        self._buffer = HybridBufferedStream()
        if 'r' in mode or 'a' in mode:
            with entry.open_stream('rb') as src:
                copy_stream(src, self._buffer)
            if 'a' not in mode:
                self._buffer.seek(0)

    def _check_open(self):
        if self._closed:
            raise ValueError("I/O operation on closed file.")

    def write(self, b):
        self._check_open()
        if 'a' in self.mode:
            self._buffer.seek(0, io.SEEK_END)
        return self._buffer.write(b)

    def read(self, size=-1):
        self._check_open()
        if 'r' not in self.mode and '+' not in self.mode:
            raise io.UnsupportedOperation("read")
        return self._buffer.read(size)

    def seek(self, offset, whence=io.SEEK_SET):
        self._check_open()
        return self._buffer.seek(offset, whence)

    def tell(self):
        self._check_open()
        return self._buffer.tell()

    def truncate(self, size=None):
        self._check_open()
        return self._buffer.truncate(size)

    @property
    def closed(self):
        return self._closed

    def close(self):
        if self._closed:
            return
        self._buffer.seek(0)
        self.entry._replace_data(self._buffer)
        self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def readable(self):
        return 'r' in self.mode or '+' in self.mode

    def writable(self):
        return True

    def seekable(self):
        return True

    def flush(self):
        self._buffer.flush()
