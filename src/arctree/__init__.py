"""
ArcTree: Archives as navigable folder trees

A Python library that presents the flat entry list of a ZIP, TAR or GZIP archive as a
hierarchy of folders and files, synthesizing folders that the archive never stored,
and writes changes back to the archive on flush.

Author: Tim Hosking
Contact: https://github.com/Munger
License: MIT

Public API:
    - ReadOnlyArchiveFolder / ArchiveFolder: root or child folder of an archive
    - ArchiveFile: a file inside an archive
    - create_archive, open_archive, flush_to: archive-level operations
    - LocalFile, LocalFolder, MemoryFile: byte sources for archives
    - GlobalConfig: buffer size, debug level and flush policy

Example usage:
    from arctree import ArchiveFolder, LocalFile, LocalFolder, create_archive
    with ArchiveFolder(source_file=LocalFile('docs.zip')) as root:
        with root.create_folder('notes').create_file('a.txt').open_stream('w') as f:
            f.write('Hello!')
        root.flush()
    with create_archive(LocalFolder('.'), 'backup.tar.gz') as backup:
        backup.create_folder('logs')
        backup.flush()
"""

import arctree.handlers
from .archive_file import ArchiveFile
from .archive_folder import ArchiveFolder, create_archive, flush_to, open_archive
from .core.cancellation import CancelToken
from .core.errors import (
    ArcTreeError, ConflictError, InvalidArgumentError, NotConfiguredError, NotFlushableError,
    NotFoundError, NotModifiableError, OperationCancelledError, UnsupportedFormatError,
)
from .core.global_config import GlobalConfig
from .read_only_folder import OpenState, ReadOnlyArchiveFolder, StorableType
from .storage import LocalFile, LocalFolder, MemoryFile, SourceFile

__version__ = '0.1.0'
__all__ = [
    "ReadOnlyArchiveFolder", "ArchiveFolder", "ArchiveFile", "StorableType", "OpenState",
    "create_archive", "open_archive", "flush_to",
    "SourceFile", "LocalFile", "LocalFolder", "MemoryFile",
    "CancelToken", "GlobalConfig",
    "ArcTreeError", "NotFoundError", "ConflictError", "NotModifiableError", "NotFlushableError",
    "UnsupportedFormatError", "NotConfiguredError", "InvalidArgumentError", "OperationCancelledError",
]
