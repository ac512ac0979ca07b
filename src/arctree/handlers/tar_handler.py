"""
TAR archive handler for ARCTREE.
Provides access to uncompressed TAR containers. Compressed forms (.tar.gz, .tar.bz2,
.tar.xz) are handled by an outer compression layer wrapped around this handler.

Author: Tim Hosking
Contact: https://github.com/Munger
License: MIT
"""

import tarfile
from functools import partial
from typing import BinaryIO, Iterator, List, Optional, Set

from arctree.core.base_handler import ArchiveHandler
from arctree.core.cancellation import CancelToken, check_cancelled
from arctree.core.entries import ArchiveEntry, is_directory
from arctree.core.global_config import HandlerConfig


class TarConfig(HandlerConfig):
    """Overrides for the TAR handler."""


class TarHandler(ArchiveHandler):
    """
    Handler for TAR containers.
    Member headers are scanned on first access to the entry list; member data is read
    only when an entry stream is opened.
    """
    format_name = 'tar'
    config = TarConfig

    def __init__(self, stream: Optional[BinaryIO] = None, name_hint: Optional[str] = None):
        super().__init__(stream, name_hint)
        self.tar_file: Optional[tarfile.TarFile] = None

    def _read_entries(self) -> Iterator[ArchiveEntry]:
        self._stream.seek(0)
        self.tar_file = tarfile.open(fileobj=self._stream, mode='r:')
        for member in self.tar_file.getmembers():
            # Links and device nodes have no content to expose
            if not (member.isfile() or member.isdir()):
                self._log(f"skipping non-regular member {member.name}", level=3)
                continue
            is_dir = member.isdir()
            yield ArchiveEntry(
                self._normalize_key(member.name, is_dir),
                is_directory=is_dir,
                size=member.size,
                modified=float(member.mtime),
                reader=None if is_dir else partial(self.tar_file.extractfile, member),
            )

    def _write(self, stream, entries: List[ArchiveEntry], cancel: Optional[CancelToken]) -> None:
        with tarfile.open(fileobj=stream, mode='w:', format=tarfile.PAX_FORMAT) as out_tar:
            for entry in entries:
                check_cancelled(cancel)
                info = tarfile.TarInfo(entry.key.rstrip('/'))
                info.mtime = int(entry.modified)
                if is_directory(entry):
                    info.type = tarfile.DIRTYPE
                    info.mode = 0o755
                    out_tar.addfile(info)
                    continue
                info.mode = 0o644
                info.size = entry.size
                with entry.open_stream('rb') as src:
                    out_tar.addfile(info, src)
                self._log(f"wrote {entry.key}", level=3)

    def _close_reader(self) -> None:
        if self.tar_file is not None:
            self.tar_file.close()
            self.tar_file = None

    @classmethod
    def can_parse(cls, stream: BinaryIO) -> bool:
        try:
            with tarfile.open(fileobj=stream, mode='r:'):
                return True
        except (tarfile.TarError, EOFError, OSError):
            return False

    @classmethod
    def get_supported_extensions(cls) -> Set[str]:
        return {'.tar'}
