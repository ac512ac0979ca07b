"""
BZIP2 handler for ARCTREE.
Provides the bzip2 compression layer used for .tar.bz2 / .tbz2 containers.

Author: Tim Hosking
Contact: https://github.com/Munger
License: MIT
"""

import bz2
from typing import BinaryIO

from arctree.core.base_handler import CompressionLayer


class Bzip2Layer(CompressionLayer):
    name = 'bz2'
    magic = b'BZh'
    extension = '.bz2'
    tar_alias = '.tbz2'

    @classmethod
    def open_reader(cls, stream: BinaryIO) -> BinaryIO:
        return bz2.BZ2File(stream, mode='rb')

    @classmethod
    def open_writer(cls, stream) -> BinaryIO:
        return bz2.BZ2File(stream, mode='wb')
