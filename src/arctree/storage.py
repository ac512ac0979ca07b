"""
Byte-stream sources for ARCTREE.

A source file is anything that can report an id, a name and a length, and open a
binary stream. Archive folders read their container from one and flush back to it.

Author: Tim Hosking
Contact: https://github.com/Munger
License: MIT
"""

import io
import os
import uuid
from abc import ABC, abstractmethod
from typing import BinaryIO, Optional

from .core.errors import ConflictError, InvalidArgumentError, NotFoundError
from .core.ids import validate_name
from .core.logging import debug_print


class SourceFile(ABC):
    """Capability consumed by archive folders: a named, openable byte stream."""

    @property
    @abstractmethod
    def id(self) -> str:
        """Stable identifier; hashed to build the archive root id."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def length(self) -> int:
        pass

    @abstractmethod
    def open_stream(self, mode: str = 'rb') -> BinaryIO:
        """
        Open the content.

        Args:
            mode: 'rb' to read, 'wb' to replace the content, 'r+b' to read and write
        """

    def __repr__(self):
        return f"{type(self).__name__}({self.id!r})"


class LocalFile(SourceFile):
    """A regular file on the local filesystem."""

    def __init__(self, path: str):
        self.path = os.path.abspath(path)

    @property
    def id(self) -> str:
        return self.path

    @property
    def name(self) -> str:
        return os.path.basename(self.path)

    @property
    def length(self) -> int:
        return os.path.getsize(self.path)

    def open_stream(self, mode: str = 'rb') -> BinaryIO:
        if 'b' not in mode:
            mode += 'b'
        debug_print(f"[LocalFile.open_stream] path={self.path}, mode={mode}", level=2)
        return open(self.path, mode)


class LocalFolder:
    """A directory on the local filesystem, able to create files for new archives."""

    def __init__(self, path: str):
        self.path = os.path.abspath(path)
        if not os.path.isdir(self.path):
            raise NotFoundError(f"Not a directory: {self.path}")

    @property
    def id(self) -> str:
        return self.path

    @property
    def name(self) -> str:
        return os.path.basename(self.path)

    def get_file(self, name: str) -> LocalFile:
        path = os.path.join(self.path, validate_name(name))
        if not os.path.isfile(path):
            raise NotFoundError(f"No file named {name!r} in {self.path}")
        return LocalFile(path)

    def create_file(self, name: str, overwrite: bool = False) -> LocalFile:
        """
        Create an empty file, or return the existing one.

        Args:
            name: File name (no separators)
            overwrite: Truncate an existing file instead of returning it unchanged
        """
        path = os.path.join(self.path, validate_name(name))
        if os.path.isdir(path):
            raise ConflictError(f"A folder named {name!r} already exists in {self.path}")
        if overwrite or not os.path.exists(path):
            with open(path, 'wb'):
                pass
        return LocalFile(path)


class _MemoryWriter(io.BytesIO):
    """BytesIO that stores its contents into the owning MemoryFile on close."""

    def __init__(self, owner: 'MemoryFile', initial: bytes = b''):
        super().__init__(initial)
        self._owner = owner

    def close(self):
        if not self.closed:
            self._owner._data = self.getvalue()
        super().close()


class MemoryFile(SourceFile):
    """An in-memory source, e.g. archive bytes received over the network."""

    def __init__(self, data: bytes = b'', name: str = 'memory', file_id: Optional[str] = None):
        if not name:
            raise InvalidArgumentError("MemoryFile requires a name.")
        self._data = bytes(data)
        self._name = name
        self._id = file_id or f"memory:{uuid.uuid4()}"

    @property
    def id(self) -> str:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @property
    def length(self) -> int:
        return len(self._data)

    @property
    def data(self) -> bytes:
        return self._data

    def open_stream(self, mode: str = 'rb') -> BinaryIO:
        if 'w' in mode:
            return _MemoryWriter(self)
        if '+' in mode or 'a' in mode:
            writer = _MemoryWriter(self, self._data)
            if 'a' in mode:
                writer.seek(0, io.SEEK_END)
            return writer
        return io.BytesIO(self._data)
