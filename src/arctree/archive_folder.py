"""
Writable archive folders for ARCTREE.

Mutations change the live entry list of the root's container and keep each folder's
subfolder cache in step with it. Nothing reaches the source file until ``flush``.

Author: Tim Hosking
Contact: https://github.com/Munger
License: MIT
"""

from typing import BinaryIO, Optional

from .archive_file import ArchiveFile
from .core.base_handler import ArchiveHandler
from .core.buffering import HybridBufferedStream, copy_stream
from .core.cancellation import CancelToken, check_cancelled
from .core.entries import is_descendant
from .core.errors import (
    ConflictError, InvalidArgumentError, NotFlushableError, NotFoundError, NotModifiableError,
)
from .core.handler_manager import HandlerManager
from .core.ids import SEPARATOR, ensure_trailing_separator, validate_name
from .core.logging import debug_print
from .opener import open_stream
from .read_only_folder import ReadOnlyArchiveFolder


class ArchiveFolder(ReadOnlyArchiveFolder):
    """
    A folder inside a writable archive.

    Usage example:
        with ArchiveFolder(source_file=LocalFile('docs.zip')) as root:
            reports = root.create_folder('reports')
            with reports.create_file('q1.txt').open_stream('w') as f:
                f.write('done')
            root.flush()
    """

    writable = True

    def create_file(self, name: str, overwrite: bool = False, cancel: Optional[CancelToken] = None) -> ArchiveFile:
        """
        Create an empty file in this folder.

        An existing file of that name is returned unchanged unless ``overwrite`` is set,
        in which case it is replaced by an empty one.

        Raises:
            ConflictError: If a folder of that name exists and ``overwrite`` is not set
        """
        validate_name(name)
        container = self.open_container(cancel)
        key = self.key + name
        folder = self._get_subfolders(cancel).get(key + SEPARATOR)
        if folder is not None:
            if not overwrite:
                raise ConflictError(f"A folder named {name!r} already exists in {self.id}")
            self.delete(folder, cancel)
        existing = container.find(key)
        if existing is not None:
            if not overwrite:
                return ArchiveFile(existing, self)
            container.remove_entry(existing)
        check_cancelled(cancel)
        entry = container.add_entry(key, is_directory=False)
        debug_print(f"[ArchiveFolder.create_file] {self.id}{name}", level=2)
        return ArchiveFile(entry, self)

    def create_folder(self, name: str, overwrite: bool = False,
                      cancel: Optional[CancelToken] = None) -> 'ArchiveFolder':
        """
        Create a subfolder, or return the existing one when ``overwrite`` is not set.

        With ``overwrite`` the existing subfolder and everything below it is deleted through
        its parent first, then an empty folder is created in its place.

        Raises:
            ConflictError: If a file of that name exists and ``overwrite`` is not set
            NotModifiableError: If the existing folder's parent cannot delete it
        """
        validate_name(name)
        container = self.open_container(cancel)
        key = self.key + name + SEPARATOR
        subfolders = self._get_subfolders(cancel)
        existing = subfolders.get(key)
        if existing is not None:
            if not overwrite:
                return existing
            parent = existing.get_parent()
            delete = getattr(parent, 'delete', None)
            if not callable(delete):
                raise NotModifiableError(f"The parent of {existing.id} cannot delete it.")
            delete(existing, cancel=cancel)
        else:
            file_entry = container.find(self.key + name)
            if file_entry is not None:
                if not overwrite:
                    raise ConflictError(f"A file named {name!r} already exists in {self.id}")
                container.remove_entry(file_entry)
        check_cancelled(cancel)
        container.add_entry(key, is_directory=True)
        folder = self._new_subfolder(name)
        subfolders[key] = folder
        debug_print(f"[ArchiveFolder.create_folder] {folder.id}", level=2)
        return folder

    def delete(self, item, cancel: Optional[CancelToken] = None) -> None:
        """
        Delete a file, or a folder together with every entry below it.

        Raises:
            NotFoundError: If no entry exists for the item
            InvalidArgumentError: If ``item`` is a root folder
        """
        container = self.open_container(cancel)
        if not item.id.startswith(ensure_trailing_separator(self.root.id)):
            raise NotFoundError(f"{item.id} is not inside {self.root.id}")
        if isinstance(item, ReadOnlyArchiveFolder):
            if item.is_root:
                raise InvalidArgumentError("Cannot delete the root folder.")
            key = item.key
            targets = [e for e in container.iter_entries(cancel) if is_descendant(e.key, key)]
        else:
            key = item.key
            targets = [e for e in container.iter_entries(cancel) if e.key == key]
        if not targets:
            raise NotFoundError(f"No item with id {item.id}")
        check_cancelled(cancel)
        for entry in targets:
            container.remove_entry(entry)
        debug_print(f"[ArchiveFolder.delete] {item.id}: removed {len(targets)} entries", level=2)

        owner = item.get_parent()
        for folder in {id(self): self, id(owner): owner}.values():
            if folder is not None and folder._subfolders is not None:
                cached = folder._subfolders.pop(key, None)
                if cached is not None:
                    cached._detach()
        if isinstance(item, ReadOnlyArchiveFolder):
            item._detach()
        # Keep a synthesized folder alive once its last entry is gone
        if owner is not None and not owner.is_root and not any(
                is_descendant(e.key, owner.key) for e in container.entries):
            container.add_entry(owner.key, is_directory=True)

    def flush(self, cancel: Optional[CancelToken] = None) -> None:
        """
        Write the whole container back to the source file. Flushing any folder flushes its root.

        Raises:
            NotFlushableError: If the root has no source file, or the destination stream
                is not positioned at zero
            NotFoundError: If this folder was deleted from the archive
        """
        root = self.root
        if root is not self:
            self._check_attached()
            return root.flush(cancel)
        if self.source_file is None:
            raise NotFlushableError(f"{self.id} was not opened from a file and cannot be flushed.")
        container = self.open_container(cancel)
        flush_to(container, self.source_file, compression=self.layer, cancel=cancel)


def flush_to(container: ArchiveHandler, file, compression=None, cancel: Optional[CancelToken] = None) -> None:
    """
    Serialize ``container`` into ``file``, optionally wrapped in a compression layer.

    The container is serialized to a spool and its entries detached from the source
    before ``file`` is opened, so ``file`` may be the container's own source.
    """
    debug_print(f"[flush_to] {file!r} format={container.format_name} "
                f"layer={compression.name if compression else None}", level=2)
    spool = HybridBufferedStream()
    try:
        container.save_to(spool, cancel)
        if compression is not None:
            packed = HybridBufferedStream()
            spool.seek(0)
            try:
                with compression.open_writer(packed) as writer:
                    copy_stream(spool, writer, cancel)
            except BaseException:
                packed.close()
                raise
            spool.close()
            spool = packed
        container.materialize(cancel)
        check_cancelled(cancel)
        spool.seek(0)
        with file.open_stream('wb') as dst:
            if dst.tell() != 0:
                raise NotFlushableError(f"Destination {file!r} is not positioned at the start.")
            copy_stream(spool, dst)
    except Exception as e:
        debug_print(f"[flush_to] failed for {file!r}: {e}", level=1, exc=e)
        raise
    finally:
        spool.close()


def create_archive(parent_folder, name: str, archive_format: Optional[str] = None,
                   cancel: Optional[CancelToken] = None) -> ArchiveFolder:
    """
    Create a new empty archive file under ``parent_folder`` and return its root folder.

    Args:
        parent_folder: Anything with ``create_file(name, overwrite)`` returning a source file,
            e.g. arctree.storage.LocalFolder
        name: File name; an existing file of that name is overwritten
        archive_format: 'zip', 'tar', 'tar.gz', 'tgz', ...; inferred from ``name`` when omitted

    Raises:
        UnsupportedFormatError: If no handler can create the format
    """
    validate_name(name)
    container, layer = HandlerManager.create_archive(name, archive_format)
    check_cancelled(cancel)
    file = parent_folder.create_file(name, overwrite=True)
    flush_to(container, file, compression=layer, cancel=cancel)
    folder = ArchiveFolder(container=container, source_file=file)
    folder.layer = layer
    debug_print(f"[create_archive] created {file!r} as {container.format_name}", level=2)
    return folder


def open_archive(stream: BinaryIO, archive_id: str, name: str,
                 cancel: Optional[CancelToken] = None) -> ReadOnlyArchiveFolder:
    """
    Open the archive held by an already-open stream.

    Returns an ArchiveFolder when the stream is writable, otherwise a ReadOnlyArchiveFolder.
    The stream stays owned by the caller. Such a folder has no destination file, so its
    changes cannot be flushed; use ``flush_to`` instead.
    """
    opened = open_stream(stream, name_hint=name, cancel=cancel)
    folder_cls = ArchiveFolder if stream.writable() else ReadOnlyArchiveFolder
    folder = folder_cls(folder_id=archive_id, name=name)
    folder._adopt(opened)
    return folder
