"""
XZ handler for ARCTREE.
Provides the xz (LZMA) compression layer used for .tar.xz / .txz containers.

Author: Tim Hosking
Contact: https://github.com/Munger
License: MIT
"""

import lzma
from typing import BinaryIO

from arctree.core.base_handler import CompressionLayer


class XzLayer(CompressionLayer):
    name = 'xz'
    magic = b'\xfd7zXZ\x00'
    extension = '.xz'
    tar_alias = '.txz'
    read_errors = (OSError, EOFError, lzma.LZMAError)

    @classmethod
    def open_reader(cls, stream: BinaryIO) -> BinaryIO:
        return lzma.LZMAFile(stream, mode='rb', format=lzma.FORMAT_XZ)

    @classmethod
    def open_writer(cls, stream) -> BinaryIO:
        return lzma.LZMAFile(stream, mode='wb', format=lzma.FORMAT_XZ)
