"""
Archive handlers package for ARCTREE.
Contains implementations for the supported container formats and compression layers.

Import order is the probing order: ZIP, then TAR, then single-entry GZIP.

Author: Tim Hosking
Contact: https://github.com/Munger
License: MIT
"""

from .zip_handler import ZipHandler, ZipConfig
from .tar_handler import TarHandler, TarConfig
from .gzip_handler import GzipHandler, GzipConfig, GzipLayer
from .bzip2_handler import Bzip2Layer
from .xz_handler import XzLayer

__all__ = [
    'ZipHandler', 'ZipConfig',
    'TarHandler', 'TarConfig',
    'GzipHandler', 'GzipConfig',
    'GzipLayer', 'Bzip2Layer', 'XzLayer',
]
