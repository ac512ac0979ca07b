"""
File nodes for ARCTREE.

Author: Tim Hosking
Contact: https://github.com/Munger
License: MIT
"""

import io
from typing import Optional

from .core.cancellation import CancelToken, check_cancelled
from .core.entries import ArchiveEntry
from .core.errors import NotModifiableError
from .core.ids import combine, key_of, name_of
from .core.logging import debug_print

_WRITE_CHARS = set('wa+')


class ArchiveFile:
    """
    A file inside an archive, wrapping a single entry.

    File nodes are created on every lookup or listing and are not cached. The parent is
    the folder that produced the node and is only used by ``get_parent``.
    """

    def __init__(self, entry: ArchiveEntry, parent, name: Optional[str] = None, file_id: Optional[str] = None):
        self._entry = entry
        self._parent = parent
        self._name = name or name_of(entry.key)
        self._id = file_id or combine(False, parent.id, self._name)

    def __repr__(self):
        return f"ArchiveFile({self._id!r})"

    def __eq__(self, other):
        return isinstance(other, ArchiveFile) and other._id == self._id

    def __hash__(self):
        return hash(self._id)

    @property
    def id(self) -> str:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @property
    def key(self) -> str:
        return key_of(self._id)

    @property
    def entry(self) -> ArchiveEntry:
        return self._entry

    @property
    def size(self) -> int:
        return self._entry.size

    @property
    def modified(self) -> float:
        return self._entry.modified

    def get_parent(self):
        return self._parent

    def open_stream(self, mode: str = 'rb', encoding: Optional[str] = None,
                    cancel: Optional[CancelToken] = None):
        """
        Open the file content. The returned stream belongs to the caller.

        Args:
            mode: 'rb', 'wb', 'ab', 'r+b', or the same without 'b' for text
            encoding: Text encoding for text modes (default utf-8)
            cancel: Optional cancellation token

        Raises:
            NotModifiableError: If a write mode is requested inside a read-only archive
        """
        check_cancelled(cancel)
        writing = bool(_WRITE_CHARS & set(mode))
        if writing:
            if not getattr(self._parent, 'writable', False):
                raise NotModifiableError(f"Archive is read-only: {self._id}")
            self._parent.container.modified = True
        debug_print(f"[ArchiveFile.open_stream] {self._id} mode={mode}", level=3)
        stream = self._entry.open_stream(mode.replace('t', '').replace('b', '') + 'b')
        if 'b' in mode:
            return stream
        return io.TextIOWrapper(stream, encoding=encoding or 'utf-8')
