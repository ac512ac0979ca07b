"""
ZIP archive handler for ARCTREE.
Provides access to ZIP format containers.

Author: Tim Hosking
Contact: https://github.com/Munger
License: MIT
"""

import shutil
import time
import zipfile
from functools import partial
from typing import BinaryIO, Iterator, List, Optional, Set

from arctree.core.base_handler import ArchiveHandler
from arctree.core.cancellation import CancelToken, check_cancelled
from arctree.core.entries import ArchiveEntry, is_directory
from arctree.core.global_config import HandlerConfig

_ZIP_MAGIC = (b'PK\x03\x04', b'PK\x05\x06', b'PK\x07\x08')
_MIN_DATE_TIME = (1980, 1, 1, 0, 0, 0)


class ZipConfig(HandlerConfig):
    """Overrides for the ZIP handler, e.g. ``ZipConfig.set('zip_compression', zipfile.ZIP_STORED)``."""


def _to_timestamp(date_time) -> float:
    return time.mktime(tuple(date_time) + (0, 0, -1))


def _to_date_time(timestamp: float):
    date_time = time.localtime(timestamp)[:6]
    if date_time < _MIN_DATE_TIME:
        return _MIN_DATE_TIME
    return date_time


class ZipHandler(ArchiveHandler):
    """
    Handler for ZIP format containers.
    Reading opens the central directory on first access to the entry list; member data is
    decompressed only when an entry stream is opened.
    """
    format_name = 'zip'
    config = ZipConfig

    def __init__(self, stream: Optional[BinaryIO] = None, name_hint: Optional[str] = None):
        super().__init__(stream, name_hint)
        self.zip_file: Optional[zipfile.ZipFile] = None

    def _read_entries(self) -> Iterator[ArchiveEntry]:
        self._stream.seek(0)
        self.zip_file = zipfile.ZipFile(self._stream, 'r')
        for info in self.zip_file.infolist():
            is_dir = info.is_dir()
            yield ArchiveEntry(
                self._normalize_key(info.filename, is_dir),
                is_directory=is_dir,
                size=info.file_size,
                modified=_to_timestamp(info.date_time),
                reader=None if is_dir else partial(self.zip_file.open, info),
            )

    def _write(self, stream, entries: List[ArchiveEntry], cancel: Optional[CancelToken]) -> None:
        compression = self.config.get('zip_compression')
        with zipfile.ZipFile(stream, 'w', compression=compression) as zip_file:
            for entry in entries:
                check_cancelled(cancel)
                info = zipfile.ZipInfo(entry.key, date_time=_to_date_time(entry.modified))
                if is_directory(entry):
                    if not info.filename.endswith('/'):
                        info.filename += '/'
                    # drwxrwxr-x plus the MS-DOS directory flag
                    info.external_attr = (0o40775 << 16) | 0x10
                    zip_file.writestr(info, b'')
                    continue
                info.compress_type = compression
                info.external_attr = 0o644 << 16
                with entry.open_stream('rb') as src, \
                        zip_file.open(info, 'w', force_zip64=entry.size >= zipfile.ZIP64_LIMIT) as dst:
                    shutil.copyfileobj(src, dst)
                self._log(f"wrote {entry.key}", level=3)

    def _close_reader(self) -> None:
        if self.zip_file is not None:
            self.zip_file.close()
            self.zip_file = None

    @classmethod
    def can_parse(cls, stream: BinaryIO) -> bool:
        # Require a ZIP signature at the start so probing never scans a whole stream
        if stream.read(4) not in _ZIP_MAGIC:
            return False
        stream.seek(0)
        return zipfile.is_zipfile(stream)

    @classmethod
    def get_supported_extensions(cls) -> Set[str]:
        return {'.zip', '.jar', '.war', '.ear', '.apk'}
