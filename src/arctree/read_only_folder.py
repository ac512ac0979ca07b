"""
Read-only archive folders for ARCTREE.

A folder presents the part of an archive's flat entry list below its key as a
directory: subfolders are synthesized from the key prefixes of the entries, whether
or not the archive stores directory entries.

Author: Tim Hosking
Contact: https://github.com/Munger
License: MIT
"""

import enum
import uuid
from typing import Dict, Iterator, Optional

from .archive_file import ArchiveFile
from .core.base_handler import ArchiveHandler
from .core.cancellation import CancelToken, check_cancelled
from .core.entries import is_direct_child, is_directory
from .core.errors import InvalidArgumentError, NotConfiguredError, NotFoundError
from .core.handler_manager import HandlerManager
from .core.ids import SEPARATOR, combine, ensure_trailing_separator, hash_id, key_of, validate_name
from .core.logging import debug_print
from .opener import OpenedContainer, open_source


class StorableType(enum.Flag):
    """Filter for ``list_items``."""
    NONE = 0
    FILE = 1
    FOLDER = 2
    ALL = FILE | FOLDER


class OpenState(enum.Enum):
    UNOPENED = 'unopened'
    OPENING = 'opening'
    OPENED = 'opened'


class ReadOnlyArchiveFolder:
    """
    A folder inside an archive that can be traversed but not modified.

    A root folder is built either from an already-open container, or from a source file
    (see arctree.storage) whose container is opened on first traversal. The root owns
    the container and the streams opened for it; child folders reach it through
    ``root`` and never close it.

    Usage example:
        with ReadOnlyArchiveFolder(source_file=LocalFile('docs.zip')) as root:
            for item in root.list_items():
                print(item.id)
            index = root.get_first_by_name('index')
    """

    writable = False

    def __init__(self, container: Optional[ArchiveHandler] = None, folder_id: Optional[str] = None,
                 name: Optional[str] = None, source_file=None, parent: Optional['ReadOnlyArchiveFolder'] = None):
        """
        Args:
            container: An open container; the root starts opened
            folder_id: Root id; derived from the source file id when omitted
            name: Display name; for a root, the source file name without its extension
            source_file: Source of the container bytes, and flush destination for writable roots
            parent: Parent folder; only set for child folders
        """
        self._parent = parent
        self._subfolders: Optional[Dict[str, 'ReadOnlyArchiveFolder']] = None
        self._detached = False
        if parent is not None:
            self._root = parent.root
            self._name = validate_name(name)
            self._id = combine(True, parent.id, self._name)
            self._key = key_of(self._id)
            return
        self._root = self
        self._source_file = source_file
        self._container = container
        self._opened: Optional[OpenedContainer] = None
        self.layer = None
        self._state = OpenState.OPENED if container is not None else OpenState.UNOPENED
        if folder_id:
            self._id = folder_id
        elif source_file is not None:
            self._id = hash_id(source_file.id)
        else:
            self._id = hash_id(uuid.uuid4().hex)
        if SEPARATOR in self._id:
            raise InvalidArgumentError(f"A root id cannot contain '{SEPARATOR}': {self._id!r}")
        if name:
            self._name = name
        elif source_file is not None:
            self._name = HandlerManager.strip_extension(source_file.name)
        else:
            self._name = self._id
        self._key = ''

    def __repr__(self):
        return f"{type(self).__name__}({self._id!r})"

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # --- Identity ---
    @property
    def id(self) -> str:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @property
    def key(self) -> str:
        """Container key prefix of this folder; empty for the root."""
        return self._key

    @property
    def root(self) -> 'ReadOnlyArchiveFolder':
        return self._root

    @property
    def is_root(self) -> bool:
        return self._parent is None

    @property
    def state(self) -> OpenState:
        return self._root._state

    @property
    def source_file(self):
        return self._root._source_file

    @property
    def container(self) -> ArchiveHandler:
        return self.open_container()

    def get_parent(self) -> Optional['ReadOnlyArchiveFolder']:
        return self._parent

    # --- Container acquisition ---
    def open_container(self, cancel: Optional[CancelToken] = None) -> ArchiveHandler:
        """
        Return the root's container, opening the source file on first use.

        Raises:
            NotConfiguredError: If the root has neither a container nor a source file
            NotFoundError: If this folder was deleted from the archive
            UnsupportedFormatError: If no registered handler accepts the source
        """
        self._check_attached()
        root = self._root
        if root is not self:
            return root.open_container(cancel)
        if self._state is OpenState.OPENED:
            return self._container
        if self._source_file is None:
            raise NotConfiguredError(f"{self._id} has neither an open container nor a source file.")
        self._state = OpenState.OPENING
        try:
            opened = open_source(self._source_file, cancel)
        except BaseException as e:
            self._state = OpenState.UNOPENED
            debug_print(f"[{type(self).__name__}.open_container] {self._id}: {e}", level=1, exc=e)
            raise
        self._adopt(opened)
        return self._container

    def _check_attached(self) -> None:
        if self._detached:
            raise NotFoundError(f"{self._id} was deleted from the archive.")

    def _detach(self) -> None:
        """Mark this folder and its cached subfolders as deleted."""
        for folder in list((self._subfolders or {}).values()):
            folder._detach()
        self._subfolders = None
        self._detached = True

    def _adopt(self, opened: OpenedContainer) -> None:
        self._opened = opened
        self._container = opened.container
        self.layer = opened.layer
        self._state = OpenState.OPENED
        debug_print(f"[{type(self).__name__}] {self._id} opened as {opened.container.format_name}", level=2)

    def close(self) -> None:
        """Release the container and its streams. Child folders do not own anything."""
        if self._root is not self:
            return
        if self._opened is not None:
            self._opened.close()
        elif self._container is not None:
            self._container.close()
        self._opened = None
        self._container = None
        self._subfolders = None
        self._state = OpenState.UNOPENED

    # --- Subfolder synthesis ---
    def _new_subfolder(self, name: str) -> 'ReadOnlyArchiveFolder':
        return type(self)(parent=self, name=name)

    def _get_subfolders(self, cancel: Optional[CancelToken] = None) -> Dict[str, 'ReadOnlyArchiveFolder']:
        """Subfolders keyed by their container key, synthesized once from the entry keys."""
        if self._subfolders is not None:
            return self._subfolders
        container = self.open_container(cancel)
        prefix = self._key
        found = {}
        for entry in container.iter_entries(cancel):
            if not entry.key.startswith(prefix):
                continue
            rest = entry.key[len(prefix):]
            index = rest.find(SEPARATOR)
            if index <= 0:
                continue
            sub_key = prefix + rest[:index + 1]
            if sub_key not in found:
                found[sub_key] = self._new_subfolder(rest[:index])
        self._subfolders = found
        debug_print(f"[{type(self).__name__}] {self._id}: {len(found)} subfolders", level=3)
        return found

    # --- Traversal ---
    def list_items(self, kind: StorableType = StorableType.ALL,
                   cancel: Optional[CancelToken] = None) -> Iterator:
        """
        List the children of this folder: subfolders first, then files.

        Each call re-reads the current entries, so the result reflects earlier changes.

        Raises:
            InvalidArgumentError: If ``kind`` selects nothing
        """
        if not isinstance(kind, StorableType) or not kind & StorableType.ALL:
            raise InvalidArgumentError(f"Invalid item filter: {kind!r}")
        return self._iter_items(kind, cancel)

    def _iter_items(self, kind: StorableType, cancel: Optional[CancelToken]) -> Iterator:
        if kind & StorableType.FOLDER:
            for folder in list(self._get_subfolders(cancel).values()):
                yield folder
        if kind & StorableType.FILE:
            for entry in self.open_container(cancel).iter_entries(cancel):
                if not is_directory(entry) and is_direct_child(entry.key, self._key):
                    yield ArchiveFile(entry, self)

    def _relative(self, item_id: str) -> str:
        prefix = ensure_trailing_separator(self._id)
        if not item_id.startswith(prefix) or item_id == prefix:
            raise NotFoundError(f"{item_id} is not inside {self._id}")
        return item_id[len(prefix):]

    def get_item(self, item_id: str, cancel: Optional[CancelToken] = None):
        """
        Get a direct child by id. Ids of deeper descendants are resolved through
        ``get_item_recursive``.

        Raises:
            NotFoundError: If nothing exists at that id
        """
        relative = self._relative(item_id)
        if SEPARATOR in relative.rstrip(SEPARATOR):
            return self.get_item_recursive(item_id, cancel)
        container = self.open_container(cancel)
        check_cancelled(cancel)
        key = self._key + relative
        entry = container.find(key)
        if entry is not None and not is_directory(entry):
            return ArchiveFile(entry, self)
        if key.endswith(SEPARATOR) or entry is not None:
            folder = self._get_subfolders(cancel).get(ensure_trailing_separator(key))
            if folder is not None:
                return folder
        raise NotFoundError(f"No item with id {item_id}")

    def get_first_by_name(self, name: str, cancel: Optional[CancelToken] = None):
        """Get a child by name, trying a file first and then a folder."""
        validate_name(name)
        try:
            return self.get_item(combine(False, self._id, name), cancel)
        except NotFoundError:
            return self.get_item(combine(True, self._id, name), cancel)

    def get_item_recursive(self, item_id: str, cancel: Optional[CancelToken] = None):
        """Resolve a descendant id at any depth, descending through subfolders by key prefix."""
        segments = self._relative(item_id).rstrip(SEPARATOR).split(SEPARATOR)
        folder = self
        for segment in segments[:-1]:
            check_cancelled(cancel)
            folder = folder._get_subfolders(cancel).get(folder.key + segment + SEPARATOR)
            if folder is None:
                raise NotFoundError(f"No item with id {item_id}")
        return folder.get_item(item_id, cancel)
