"""
HandlerManager for ARCTREE.
Central registry of container handlers and compression layers, used for format
detection, creation and lookup by name or by path.

Author: Tim Hosking
Contact: https://github.com/Munger
License: MIT
"""

import os
from typing import Dict, List, Optional, Tuple, Type

from .errors import UnsupportedFormatError


class HandlerManager:
    """
    Central registry for archive handlers, their config classes and compression layers.

    Registration order is significant: ``get_handlers()`` returns handlers in the order
    they were registered, and format detection accepts the first handler whose
    ``can_parse`` succeeds.

    Usage example:
        HandlerManager.register_handler('tar', TarHandler, TarConfig)
        handler_cls = HandlerManager.get_handler('tar')
        handler_cls, layer = HandlerManager.get_handler_for_path('foo.tar.gz')
        HandlerManager.deregister_handler('tar')
    """
    _registry: Dict[str, Tuple[type, Optional[object]]] = {}
    _layers: Dict[str, type] = {}

    @classmethod
    def register_handler(cls, name: str, handler_cls: type, config_iface: Optional[object] = None):
        """
        Register a container handler and its config class under a format name.
        Re-registering a name keeps its original probing position.
        """
        cls._registry[name.lower()] = (handler_cls, config_iface)

    @classmethod
    def deregister_handler(cls, name: str):
        cls._registry.pop(name.lower(), None)

    @classmethod
    def register_layer(cls, name: str, layer_cls: type):
        cls._layers[name.lower()] = layer_cls

    @classmethod
    def deregister_layer(cls, name: str):
        cls._layers.pop(name.lower(), None)

    @classmethod
    def get_handler(cls, name: str):
        """
        Get the handler class for a format name ('zip') or extension ('.zip').
        Returns None if nothing matches.
        """
        key = name.lower()
        entry = cls._registry.get(key)
        if entry:
            return entry[0]
        ext = key if key.startswith('.') else '.' + key
        for handler_cls, _ in cls._registry.values():
            if ext in handler_cls.get_supported_extensions():
                return handler_cls
        return None

    @classmethod
    def get_handler_config(cls, name: str):
        entry = cls._registry.get(name.lower())
        return entry[1] if entry else None

    @classmethod
    def get_layer(cls, name: str):
        key = name.lower()
        layer_cls = cls._layers.get(key)
        if layer_cls:
            return layer_cls
        ext = key if key.startswith('.') else '.' + key
        for layer_cls in cls._layers.values():
            if ext in (layer_cls.extension, layer_cls.tar_alias):
                return layer_cls
        return None

    @classmethod
    def get_handlers(cls) -> List[type]:
        """Registered handler classes in probing order."""
        return [entry[0] for entry in cls._registry.values()]

    @classmethod
    def get_layers(cls) -> List[type]:
        return list(cls._layers.values())

    @classmethod
    def get_supported_formats(cls) -> List[str]:
        return list(cls._registry.keys())

    @classmethod
    def detect_layer(cls, stream):
        """Return the compression layer whose magic bytes start ``stream``, or None."""
        for layer_cls in cls._layers.values():
            if layer_cls.matches(stream):
                return layer_cls
        return None

    @classmethod
    def _match_extension(cls, path: str) -> Tuple[Optional[str], Optional[Type], Optional[Type]]:
        basename = os.path.basename(path).lower()
        candidates = []
        for handler_cls in cls.get_handlers():
            for ext in handler_cls.get_supported_extensions():
                candidates.append((ext, handler_cls, None))
        tar_cls = cls.get_handler('tar')
        if tar_cls is not None:
            for layer_cls in cls._layers.values():
                candidates.append(('.tar' + layer_cls.extension, tar_cls, layer_cls))
                if layer_cls.tar_alias:
                    candidates.append((layer_cls.tar_alias, tar_cls, layer_cls))
        for ext, handler_cls, layer_cls in sorted(candidates, key=lambda c: len(c[0]), reverse=True):
            if basename.endswith(ext):
                return ext, handler_cls, layer_cls
        return None, None, None

    @classmethod
    def get_handler_for_path(cls, path: str) -> Tuple[Optional[Type], Optional[Type]]:
        """
        Resolve the handler and outer compression layer for a file name, handling
        multi-extension names ('.tar.gz') and combined forms ('.tgz').

        Returns:
            (handler_cls, layer_cls); either may be None
        """
        _, handler_cls, layer_cls = cls._match_extension(path)
        return handler_cls, layer_cls

    @classmethod
    def strip_extension(cls, path: str) -> str:
        """
        Return the base name of ``path`` without its archive extension, so 'backup.tar.gz'
        gives 'backup'. Names without a known archive extension lose their last extension.
        """
        basename = os.path.basename(path)
        ext, _, _ = cls._match_extension(basename)
        if ext and len(ext) < len(basename):
            return basename[:-len(ext)]
        return os.path.splitext(basename)[0]

    @classmethod
    def create_archive(cls, path: str, archive_format: Optional[str] = None):
        """
        Create an empty container for ``archive_format`` ('zip', 'tar.gz', '.tgz'), or for
        the format implied by ``path`` when no format is given.

        Returns:
            (container, layer_cls)
        Raises:
            UnsupportedFormatError: If no handler supports this archive type
        """
        if archive_format:
            fmt = archive_format.lower().lstrip('.')
            handler_cls, layer_cls = cls.get_handler_for_path('.' + fmt)
            if handler_cls is None:
                handler_cls = cls.get_handler(fmt)
        else:
            handler_cls, layer_cls = cls.get_handler_for_path(path)
        if handler_cls is None:
            raise UnsupportedFormatError(
                f"Archive creation for '{archive_format or path}' is not supported.")
        return handler_cls.create(), layer_cls
