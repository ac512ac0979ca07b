"""
Base handler for archive containers and compression layers.
Defines the interfaces that all format handlers must implement.

Author: Tim Hosking
Contact: https://github.com/Munger
License: MIT
"""

import io
from abc import ABC, abstractmethod
from typing import BinaryIO, Dict, Iterator, List, Optional, Set

from .cancellation import CancelToken, check_cancelled
from .entries import ArchiveEntry, is_directory, normalize_key
from .errors import InvalidArgumentError, NotFoundError
from .ids import SEPARATOR
from .logging import debug_print


class ArchiveHandler(ABC):
    """
    Base class for archive container handlers.

    A handler instance is an opened (or newly created) container: an ordered, mutable list
    of ArchiveEntry objects. Entries are read from the source stream on first access to
    ``entries``, never in the constructor. Mutations only touch the in-memory list;
    ``save_to`` re-serializes the whole container.

    Concrete subclasses register themselves with HandlerManager on definition, in
    definition order. That order is the probing order used when detecting formats.
    """

    format_name: str = ''
    config = None

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if cls.format_name:
            from arctree.core.handler_manager import HandlerManager
            HandlerManager.register_handler(cls.format_name, cls, cls.config)

    def __init__(self, stream: Optional[BinaryIO] = None, name_hint: Optional[str] = None):
        """
        Args:
            stream: Seekable stream holding the serialized container, or None for a new empty one
            name_hint: Name of the source file, used by formats that do not store entry names
        """
        self._stream = stream
        self.name_hint = name_hint
        self._entries: Optional[List[ArchiveEntry]] = None if stream is not None else []
        self._index: Dict[str, ArchiveEntry] = {}
        self.modified = False
        self._closed = False

    # --- Context management ---
    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # --- Logging ---
    def _log(self, msg, level=2, exc=None):
        debug_print(f"{type(self).__name__}: {msg}", level=level, exc=exc)

    # --- Entry list ---
    @property
    def entries(self) -> List[ArchiveEntry]:
        """The live entry list, loaded from the source stream on first access."""
        if self._closed:
            raise ValueError(f"{type(self).__name__} is closed.")
        if self._entries is None:
            self._entries = []
            try:
                for entry in self._read_entries():
                    self._append(entry)
            except Exception as e:
                self._entries = None
                self._index.clear()
                self._log(f"failed to read entries: {e}", level=1, exc=e)
                raise
            self._log(f"loaded {len(self._entries)} entries")
        return self._entries

    def _load(self) -> List[ArchiveEntry]:
        return self.entries

    def _append(self, entry: ArchiveEntry) -> None:
        self._entries.append(entry)
        self._index.setdefault(entry.key, entry)

    def iter_entries(self, cancel: Optional[CancelToken] = None) -> Iterator[ArchiveEntry]:
        """Iterate a snapshot of the entry list, checking ``cancel`` before each entry."""
        for entry in list(self.entries):
            check_cancelled(cancel)
            yield entry

    def find(self, key: str) -> Optional[ArchiveEntry]:
        """Return the first entry with exactly this key, or None."""
        self._load()
        return self._index.get(key)

    def add_entry(self, key: str, stream: Optional[BinaryIO] = None, close_stream: bool = True,
                  is_directory: Optional[bool] = None) -> ArchiveEntry:
        """
        Append a new entry.

        Args:
            key: Container-relative key; a trailing separator marks a directory
            stream: Initial content (ignored for directories)
            close_stream: Close ``stream`` after its content has been copied
            is_directory: Explicit directory flag; inferred from the key when None
        """
        if not key:
            raise InvalidArgumentError("Entry key cannot be empty.")
        if is_directory is None:
            is_directory = key.endswith(SEPARATOR)
        self._check_can_add(key, is_directory)
        entry = ArchiveEntry(key, is_directory=is_directory)
        if stream is not None and not is_directory:
            entry.set_data(stream, close_stream=close_stream)
        elif stream is not None and close_stream:
            stream.close()
        self._append_new(entry)
        return entry

    def _append_new(self, entry: ArchiveEntry) -> None:
        self._load()
        self._append(entry)
        self.modified = True
        self._log(f"added entry {entry.key}", level=3)

    def _check_can_add(self, key: str, is_directory: bool) -> None:
        """Hook for formats with structural limits (e.g. single-entry containers)."""

    def remove_entry(self, entry: ArchiveEntry) -> None:
        entries = self.entries
        for i, existing in enumerate(entries):
            if existing is entry:
                del entries[i]
                break
        else:
            raise NotFoundError(f"Entry not found in container: {entry.key}")
        if self._index.get(entry.key) is entry:
            del self._index[entry.key]
            for other in entries:
                if other.key == entry.key:
                    self._index[entry.key] = other
                    break
        self.modified = True
        self._log(f"removed entry {entry.key}", level=3)

    def materialize(self, cancel: Optional[CancelToken] = None) -> None:
        """Detach every entry from the source stream so the source may be overwritten."""
        for entry in self.iter_entries(cancel):
            entry.materialize()

    # --- Serialization ---
    def save_to(self, stream, cancel: Optional[CancelToken] = None) -> None:
        """Serialize every entry into ``stream`` using this format's default compression policy."""
        entries = self.entries
        self._log(f"saving {len(entries)} entries")
        self._write(stream, list(entries), cancel)
        self.modified = False

    def close(self) -> None:
        """Release entry buffers and the format reader. The source stream is owned by the opener."""
        if self._closed:
            return
        for entry in self._entries or []:
            entry.close()
        self._close_reader()
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    # --- Key helpers ---
    @staticmethod
    def _normalize_key(key: str, is_dir: bool) -> str:
        key = normalize_key(key)
        if is_dir and key and not key.endswith(SEPARATOR):
            key += SEPARATOR
        return key

    @staticmethod
    def _file_entries(entries: List[ArchiveEntry]) -> List[ArchiveEntry]:
        return [e for e in entries if not is_directory(e)]

    # --- Abstract methods ---
    @abstractmethod
    def _read_entries(self) -> Iterator[ArchiveEntry]:
        """Yield the entries stored in the source stream, in stored order."""

    @abstractmethod
    def _write(self, stream, entries: List[ArchiveEntry], cancel: Optional[CancelToken]) -> None:
        """Write ``entries`` to ``stream`` in this format."""

    def _close_reader(self) -> None:
        """Close any format-level reader object opened over the source stream."""

    @classmethod
    @abstractmethod
    def can_parse(cls, stream: BinaryIO) -> bool:
        """
        Determine whether ``stream`` holds this format. The caller rewinds the stream
        before and after the call.
        """

    @classmethod
    def open(cls, stream: BinaryIO, name_hint: Optional[str] = None) -> 'ArchiveHandler':
        """Open a container over a seekable stream without reading its entries yet."""
        return cls(stream, name_hint=name_hint)

    @classmethod
    def create(cls) -> 'ArchiveHandler':
        """Create a new empty container."""
        return cls()

    @classmethod
    @abstractmethod
    def get_supported_extensions(cls) -> Set[str]:
        """
        Get the file extensions supported by this handler.

        Returns:
            Set of supported extensions (with leading dot)
        """


class CompressionLayer(ABC):
    """
    Base class for single-stream compression layers (gzip, bzip2, xz) that may wrap a container.
    Registered with HandlerManager on definition, in definition order.
    """

    name: str = ''
    magic: bytes = b''
    extension: str = ''
    tar_alias: str = ''
    # Raised by the reader when the compressed data is corrupt
    read_errors: tuple = (OSError, EOFError)

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if cls.name:
            from arctree.core.handler_manager import HandlerManager
            HandlerManager.register_layer(cls.name, cls)

    @classmethod
    def matches(cls, stream: BinaryIO) -> bool:
        """Peek the magic bytes at the current position without consuming them."""
        pos = stream.tell()
        try:
            head = stream.read(len(cls.magic))
        finally:
            stream.seek(pos, io.SEEK_SET)
        return head == cls.magic

    @classmethod
    @abstractmethod
    def open_reader(cls, stream: BinaryIO) -> BinaryIO:
        """Return a decompressing reader over ``stream``."""

    @classmethod
    @abstractmethod
    def open_writer(cls, stream) -> BinaryIO:
        """Return a compressing writer over ``stream``; closing it must not close ``stream``."""
