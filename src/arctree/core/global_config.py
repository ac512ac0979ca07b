"""
global_config.py
Central configuration for ARCTREE, including buffer thresholds, debug level and flush policy.

Author: Tim Hosking
Contact: https://github.com/Munger
License: MIT
"""

import zipfile

import psutil


class GlobalConfig:
    _defaults = {
        "buffer_threshold": None,  # Will be dynamically computed if None
        "debug_level": 0,
        "read_chunk_size": 64 * 1024,
        "zip_compression": zipfile.ZIP_DEFLATED,
        "default_entry_name": "data",
    }
    _settings = _defaults.copy()

    @classmethod
    def set(cls, key, value):
        cls._settings[key] = value

    @classmethod
    def get(cls, key):
        if key == "buffer_threshold":
            val = cls._settings.get(key, None)
            if val is not None:
                return val
            total_mem = psutil.virtual_memory().total
            return min(max(total_mem // 32, 100 * 1024 ** 2), 2 * 1024 ** 3)
        return cls._settings.get(key, cls._defaults.get(key))

    @classmethod
    def reset(cls, key=None):
        if key is None:
            cls._settings = cls._defaults.copy()
        else:
            if key in cls._defaults:
                cls._settings[key] = cls._defaults[key]
            else:
                cls._settings.pop(key, None)

    @classmethod
    def set_debug_level(cls, value: int):
        cls.set("debug_level", int(value))

    @classmethod
    def get_debug_level(cls) -> int:
        return cls.get("debug_level")

    @classmethod
    def get_buffer_threshold(cls):
        return cls.get("buffer_threshold")

    @classmethod
    def set_buffer_threshold(cls, value: int):
        cls.set("buffer_threshold", int(value))

    @classmethod
    def get_read_chunk_size(cls) -> int:
        return cls.get("read_chunk_size")


class HandlerConfig:
    """
    Per-handler configuration overrides.
    Subclasses keep their own ``_overrides`` dict; unset keys fall back to GlobalConfig.
    """
    _overrides = {}

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        cls._overrides = {}

    @classmethod
    def set(cls, key, value):
        cls._overrides[key] = value

    @classmethod
    def get(cls, key):
        if key in cls._overrides:
            return cls._overrides[key]
        return GlobalConfig.get(key)

    @classmethod
    def reset(cls, key=None):
        if key is None:
            cls._overrides.clear()
        else:
            cls._overrides.pop(key, None)
