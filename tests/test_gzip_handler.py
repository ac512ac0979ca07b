"""
Unit tests for the ARCTREE Gzip handler and the gzip, bzip2 and xz compression layers.

Author: Tim Hosking
Contact: https://github.com/Munger
License: MIT
"""
import sys, os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../src')))
import bz2
import gzip
import io
import lzma
import pytest
import arctree.handlers
from arctree.core.errors import InvalidArgumentError, UnsupportedFormatError
from arctree.core.global_config import GlobalConfig
from arctree.core.handler_manager import HandlerManager
from arctree.handlers import Bzip2Layer, GzipConfig, GzipHandler, GzipLayer, XzLayer
from arctree.handlers.gzip_handler import read_stored_name


@pytest.fixture(autouse=True)
def debug_level():
    # Allow debug level to be set via environment variable for tests
    level = os.environ.get('ARCTREE_DEBUG_LEVEL')
    if level is not None:
        GlobalConfig.set_debug_level(int(level))
    yield
    GlobalConfig.set_debug_level(0)
    GzipConfig.reset()


def make_gzip(content, stored_name=None):
    buf = io.BytesIO()
    with gzip.GzipFile(filename=stored_name or '', fileobj=buf, mode='wb') as f:
        f.write(content)
    buf.seek(0)
    return buf


@pytest.mark.parametrize("content", [b"", b"x", b"A" * 4096, os.urandom(1024 * 1024)])
def test_gzip_single_entry_content(content):
    handler = GzipHandler.open(make_gzip(content, "payload.bin"))
    assert len(handler.entries) == 1
    with handler.entries[0].open_stream('rb') as f:
        assert f.read() == content
    handler.close()


def test_gzip_entry_name_sources():
    assert GzipHandler.open(make_gzip(b"x", "stored.txt")).entries[0].key == "stored.txt"
    assert GzipHandler.open(make_gzip(b"x"), name_hint="notes.txt.gz").entries[0].key == "notes.txt"
    assert GzipHandler.open(make_gzip(b"x")).entries[0].key == "data"
    GzipConfig.set('default_entry_name', 'payload')
    assert GzipHandler.open(make_gzip(b"x")).entries[0].key == "payload"


def test_read_stored_name():
    assert read_stored_name(make_gzip(b"x", "abc.txt")) == "abc.txt"
    assert read_stored_name(make_gzip(b"x")) is None
    assert read_stored_name(io.BytesIO(b"short")) is None


def test_gzip_rewrite_keeps_name_and_content():
    handler = GzipHandler.open(make_gzip(b"old", "file.txt"))
    with handler.entries[0].open_stream('wb') as f:
        f.write(b"new content")
    out = io.BytesIO()
    handler.save_to(out)
    out.seek(0)
    assert read_stored_name(out) == "file.txt"
    out.seek(0)
    assert gzip.decompress(out.getvalue()) == b"new content"


def test_gzip_holds_a_single_file():
    handler = GzipHandler.open(make_gzip(b"x", "a"))
    with pytest.raises(UnsupportedFormatError):
        handler.add_entry("b", io.BytesIO(b"y"))
    with pytest.raises(InvalidArgumentError):
        handler.add_entry("dir/", is_directory=True)
    assert len(handler.entries) == 1


def test_gzip_empty_container_round_trip():
    out = io.BytesIO()
    GzipHandler.create().save_to(out)
    out.seek(0)
    assert GzipHandler.can_parse(out)
    out.seek(0)
    # An empty member without a stored name reopens as an empty container
    assert GzipHandler.open(out).entries == []


def test_gzip_empty_named_file_is_kept():
    handler = GzipHandler.open(make_gzip(b"", "empty.txt"))
    assert [e.key for e in handler.entries] == ["empty.txt"]
    assert handler.entries[0].size == 0


@pytest.mark.parametrize("layer, decompress", [
    (GzipLayer, gzip.decompress),
    (Bzip2Layer, bz2.decompress),
    (XzLayer, lzma.decompress),
])
def test_layer_writer_and_reader(layer, decompress):
    content = b"layered " * 1000
    buf = io.BytesIO()
    with layer.open_writer(buf) as writer:
        writer.write(content)
    assert not buf.closed
    assert decompress(buf.getvalue()) == content
    buf.seek(0)
    assert layer.matches(buf)
    assert buf.tell() == 0
    with layer.open_reader(buf) as reader:
        assert reader.read() == content


def test_detect_layer_by_magic():
    assert HandlerManager.detect_layer(io.BytesIO(gzip.compress(b"x"))) is GzipLayer
    assert HandlerManager.detect_layer(io.BytesIO(bz2.compress(b"x"))) is Bzip2Layer
    assert HandlerManager.detect_layer(io.BytesIO(lzma.compress(b"x"))) is XzLayer
    assert HandlerManager.detect_layer(io.BytesIO(b"PK\x03\x04")) is None


@pytest.mark.parametrize("path, handler_name, layer", [
    ("a.zip", "zip", None),
    ("a.tar", "tar", None),
    ("a.tar.gz", "tar", GzipLayer),
    ("a.TGZ", "tar", GzipLayer),
    ("a.tar.bz2", "tar", Bzip2Layer),
    ("a.tbz2", "tar", Bzip2Layer),
    ("a.tar.xz", "tar", XzLayer),
    ("a.txz", "tar", XzLayer),
    ("a.txt.gz", "gzip", None),
])
def test_handler_for_path(path, handler_name, layer):
    handler_cls, layer_cls = HandlerManager.get_handler_for_path(path)
    assert handler_cls is HandlerManager.get_handler(handler_name)
    assert layer_cls is layer


@pytest.mark.parametrize("path, expected", [
    ("backup.tar.gz", "backup"),
    ("Backup.TGZ", "Backup"),
    ("docs.zip", "docs"),
    ("report.txt.gz", "report.txt"),
    ("data.bin", "data"),
    (".tar.gz", ".tar"),
])
def test_strip_extension(path, expected):
    assert HandlerManager.strip_extension(path) == expected


def test_handler_for_unknown_path():
    assert HandlerManager.get_handler_for_path("a.7z") == (None, None)
    with pytest.raises(UnsupportedFormatError):
        HandlerManager.create_archive("a.7z")


def test_probe_order_is_registration_order():
    assert HandlerManager.get_supported_formats()[:3] == ["zip", "tar", "gzip"]
