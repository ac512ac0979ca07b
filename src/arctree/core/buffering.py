"""
Generic buffering classes for ARCTREE.
Provides unified in-memory and temporary file buffering for archive entries,
and a lazily filled seekable view over forward-only streams.

Author: Tim Hosking
Contact: https://github.com/Munger
License: MIT
"""

import io
import os
import tempfile
from typing import BinaryIO, Optional

from .cancellation import CancelToken, check_cancelled
from .global_config import GlobalConfig
from .logging import debug_print


class HybridBufferedStream:
    """
    Generic buffered stream for archive entry data.
    Transparently uses an in-memory buffer or a tempfile based on data size.
    Handlers and folders should treat this as a file object and never manage temp files directly.
    """

    def __init__(self, max_memory_size: Optional[int] = None):
        self._max_memory_size = max_memory_size if max_memory_size is not None else GlobalConfig.get_buffer_threshold()
        self._closed = False
        self._buffer = io.BytesIO()
        self._tempfile = None
        self._using_tempfile = False

    def _rollover_to_tempfile(self):
        if self._using_tempfile:
            return
        pos = self._buffer.tell()
        temp = tempfile.NamedTemporaryFile(mode='w+b', delete=False)
        try:
            temp.write(self._buffer.getvalue())
            temp.flush()
            temp.seek(pos)
        except OSError as e:
            debug_print(f"Exception in HybridBufferedStream._rollover_to_tempfile: {e}", level=1, exc=e)
            temp.close()
            os.remove(temp.name)
            raise
        debug_print(f"[HybridBufferedStream] Rolled over to temp file {temp.name}", level=3)
        self._buffer.close()
        self._buffer = temp
        self._tempfile = temp
        self._using_tempfile = True

    def _check_open(self):
        if self._closed:
            raise ValueError("I/O operation on closed file.")

    def write(self, data):
        self._check_open()
        res = self._buffer.write(data)
        if not self._using_tempfile and self._buffer.tell() >= self._max_memory_size:
            self._rollover_to_tempfile()
        return res

    def read(self, size=-1):
        self._check_open()
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

    def flush(self):
        if not self._closed:
            self._buffer.flush()

    @property
    def size(self) -> int:
        self._check_open()
        pos = self._buffer.tell()
        end = self._buffer.seek(0, io.SEEK_END)
        self._buffer.seek(pos)
        return end

    def get_bytes(self):
        """Return all data as bytes, regardless of backend."""
        self.flush()
        pos = self._buffer.tell()
        self._buffer.seek(0)
        data = self._buffer.read()
        self._buffer.seek(pos)
        return data

    def reader(self) -> BinaryIO:
        """
        Open an independent read-only stream over the current contents.
        The position of this buffer is not affected by reads on the returned stream.
        """
        self._check_open()
        if self._using_tempfile:
            self._buffer.flush()
            return open(self._tempfile.name, 'rb')
        return io.BytesIO(self._buffer.getvalue())

    def close(self):
        if self._closed:
            return
        if self._tempfile is not None:
            temp_path = self._tempfile.name
            self._tempfile.close()
            if os.path.exists(temp_path):
                os.remove(temp_path)
        else:
            self._buffer.close()
        self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def writable(self):
        return True

    def readable(self):
        return True

    def seekable(self):
        return True

    @property
    def closed(self):
        return self._closed


class LazySeekStream(io.RawIOBase):
    """
    Seekable view over a forward-only stream.

    Bytes are pulled from the inner stream only when a read or seek needs them and are
    kept in a HybridBufferedStream, so seeking backwards never re-reads the source.
    Seeking to the end uses ``length`` when known, otherwise it drains the inner stream.
    The inner stream is not closed by this wrapper.
    """

    def __init__(self, inner: BinaryIO, length: Optional[int] = None, chunk_size: Optional[int] = None):
        super().__init__()
        self._inner = inner
        self._length = length
        self._chunk_size = chunk_size or GlobalConfig.get_read_chunk_size()
        self._spool = HybridBufferedStream()
        self._filled = 0
        self._pos = 0
        self._eof = False

    def _fill_to(self, target: int) -> None:
        while not self._eof and self._filled < target:
            chunk = self._inner.read(self._chunk_size)
            if not chunk:
                self._eof = True
                break
            self._spool.seek(self._filled)
            self._spool.write(chunk)
            self._filled += len(chunk)

    def _fill_all(self) -> None:
        while not self._eof:
            self._fill_to(self._filled + self._chunk_size)

    def readinto(self, b) -> int:
        if self.closed:
            raise ValueError("I/O operation on closed file.")
        wanted = len(b)
        if wanted == 0:
            return 0
        self._fill_to(self._pos + wanted)
        available = max(0, min(wanted, self._filled - self._pos))
        if available == 0:
            return 0
        self._spool.seek(self._pos)
        data = self._spool.read(available)
        b[:len(data)] = data
        self._pos += len(data)
        return len(data)

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        if self.closed:
            raise ValueError("I/O operation on closed file.")
        if whence == io.SEEK_SET:
            new_pos = offset
        elif whence == io.SEEK_CUR:
            new_pos = self._pos + offset
        elif whence == io.SEEK_END:
            if self._length is None:
                self._fill_all()
                end = self._filled
            else:
                end = self._length
            new_pos = end + offset
        else:
            raise ValueError(f"Invalid whence: {whence}")
        if new_pos < 0:
            raise ValueError(f"Negative seek position {new_pos}")
        self._pos = new_pos
        return self._pos

    def tell(self) -> int:
        return self._pos

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def writable(self) -> bool:
        return False

    @property
    def buffered_bytes(self) -> int:
        """Number of bytes pulled from the inner stream so far."""
        return self._filled

    def close(self) -> None:
        if not self.closed:
            self._spool.close()
        super().close()


def ensure_seekable(stream: BinaryIO, length: Optional[int] = None) -> BinaryIO:
    """Return ``stream`` if it can seek, otherwise a LazySeekStream over it."""
    if stream.seekable():
        return stream
    return LazySeekStream(stream, length=length)


def copy_stream(src: BinaryIO, dst, cancel: Optional[CancelToken] = None, chunk_size: Optional[int] = None) -> int:
    """Copy ``src`` to ``dst`` in chunks, checking ``cancel`` between chunks. Returns bytes copied."""
    chunk_size = chunk_size or GlobalConfig.get_read_chunk_size()
    total = 0
    while True:
        check_cancelled(cancel)
        chunk = src.read(chunk_size)
        if not chunk:
            return total
        dst.write(chunk)
        total += len(chunk)
