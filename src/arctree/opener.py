"""
Lazy container opener for ARCTREE.

Detects an outer compression layer and the container format of a byte stream by
peeking at its head, then opens the matching handler without reading the entries.

Author: Tim Hosking
Contact: https://github.com/Munger
License: MIT
"""

from typing import BinaryIO, List, Optional

from .core.base_handler import ArchiveHandler
from .core.buffering import LazySeekStream, ensure_seekable
from .core.cancellation import CancelToken, check_cancelled
from .core.errors import UnsupportedFormatError
from .core.handler_manager import HandlerManager
from .core.logging import debug_print


class OpenedContainer:
    """
    An opened container together with the streams acquired to open it.
    ``close()`` releases the container first, then the streams in reverse acquisition order.
    """

    def __init__(self, container: ArchiveHandler, streams: List[BinaryIO], layer=None):
        self.container = container
        self.streams = streams
        self.layer = layer

    def close(self) -> None:
        self.container.close()
        while self.streams:
            self.streams.pop().close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def _close_all(streams: List[BinaryIO]) -> None:
    while streams:
        streams.pop().close()


def _probe(stream: BinaryIO, cancel: Optional[CancelToken], errors: tuple = (OSError, EOFError)):
    """Ask each registered handler, in registration order, whether it can parse ``stream``."""
    for handler_cls in HandlerManager.get_handlers():
        check_cancelled(cancel)
        stream.seek(0)
        try:
            accepted = handler_cls.can_parse(stream)
        except errors as e:
            debug_print(f"[opener] {handler_cls.__name__} probe failed: {e}", level=3, exc=e)
            accepted = False
        finally:
            stream.seek(0)
        if accepted:
            debug_print(f"[opener] detected format {handler_cls.format_name}", level=2)
            return handler_cls
    return None


def _open_seekable(stream: BinaryIO, streams: List[BinaryIO], name_hint: Optional[str],
                   cancel: Optional[CancelToken]) -> OpenedContainer:
    stream.seek(0)
    layer = HandlerManager.detect_layer(stream)
    if layer is not None:
        debug_print(f"[opener] detected compression layer {layer.name}", level=2)
        decompressor = layer.open_reader(stream)
        inner = LazySeekStream(decompressor)
        handler_cls = _probe(inner, cancel, layer.read_errors)
        if handler_cls is not None:
            streams.extend([decompressor, inner])
            return OpenedContainer(handler_cls.open(inner, name_hint=name_hint), streams, layer)
        # The layer is the whole file, e.g. a plain .gz
        inner.close()
        decompressor.close()
        stream.seek(0)
    handler_cls = _probe(stream, cancel)
    if handler_cls is None:
        debug_print(f"[opener] no handler accepts {name_hint or 'stream'}", level=1)
        raise UnsupportedFormatError(f"Unsupported archive format: {name_hint or 'stream'}")
    return OpenedContainer(handler_cls.open(stream, name_hint=name_hint), streams, None)


def open_source(source_file, cancel: Optional[CancelToken] = None) -> OpenedContainer:
    """
    Open the container stored in a source file.

    Args:
        source_file: A SourceFile (see arctree.storage)
        cancel: Optional cancellation token

    Raises:
        UnsupportedFormatError: If no registered handler accepts the content
    """
    check_cancelled(cancel)
    debug_print(f"[opener] opening {source_file!r}", level=2)
    raw = source_file.open_stream('rb')
    streams = [raw]
    try:
        seekable = ensure_seekable(raw, source_file.length)
        if seekable is not raw:
            streams.append(seekable)
        return _open_seekable(seekable, streams, source_file.name, cancel)
    except BaseException:
        _close_all(streams)
        raise


def open_stream(stream: BinaryIO, name_hint: Optional[str] = None, length: Optional[int] = None,
                cancel: Optional[CancelToken] = None) -> OpenedContainer:
    """
    Open the container held by an already-open stream. The stream stays owned by the
    caller; only wrappers created here are released by the returned OpenedContainer.
    """
    check_cancelled(cancel)
    streams = []
    try:
        seekable = ensure_seekable(stream, length)
        if seekable is not stream:
            streams.append(seekable)
        return _open_seekable(seekable, streams, name_hint, cancel)
    except BaseException:
        _close_all(streams)
        raise
