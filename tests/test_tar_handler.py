"""
Unit tests for the ARCTREE Tar handler.

Author: Tim Hosking
Contact: https://github.com/Munger
License: MIT
"""
import sys, os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../src')))
import io
import tarfile
import pytest
import arctree.handlers
from arctree.core.global_config import GlobalConfig
from arctree.handlers.tar_handler import TarHandler


@pytest.fixture(autouse=True)
def debug_level():
    # Allow debug level to be set via environment variable for tests
    level = os.environ.get('ARCTREE_DEBUG_LEVEL')
    if level is not None:
        GlobalConfig.set_debug_level(int(level))
    yield
    GlobalConfig.set_debug_level(0)


def make_tar(files, dirs=(), symlinks=()):
    """Build a TAR archive in memory with tarfile itself."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode='w') as tar_file:
        for name in dirs:
            info = tarfile.TarInfo(name)
            info.type = tarfile.DIRTYPE
            tar_file.addfile(info)
        for name, content in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            tar_file.addfile(info, io.BytesIO(content))
        for name, target in symlinks:
            info = tarfile.TarInfo(name)
            info.type = tarfile.SYMTYPE
            info.linkname = target
            tar_file.addfile(info)
    buf.seek(0)
    return buf


@pytest.mark.parametrize("files", [
    {"a.txt": b"", "b.txt": b"x", "c.txt": b"A" * 4096},
    {"d.txt": os.urandom(1024 * 1024)},
])
def test_tar_read_entries(files):
    handler = TarHandler.open(make_tar(files))
    assert [e.key for e in handler.entries] == list(files)
    for key, content in files.items():
        with handler.find(key).open_stream('rb') as stream:
            assert stream.read() == content
    handler.close()


def test_tar_directory_keys_get_trailing_separator():
    handler = TarHandler.open(make_tar({"docs/index": b"i"}, dirs=["docs"]))
    assert [e.key for e in handler.entries] == ["docs/", "docs/index"]
    assert handler.entries[0].is_directory
    handler.close()


def test_tar_dot_prefixed_keys_are_normalized():
    handler = TarHandler.open(make_tar({"./a/b.txt": b"b"}))
    assert handler.entries[0].key == "a/b.txt"
    handler.close()


def test_tar_skips_links():
    handler = TarHandler.open(make_tar({"real.txt": b"r"}, symlinks=[("link.txt", "real.txt")]))
    assert [e.key for e in handler.entries] == ["real.txt"]
    handler.close()


def test_tar_add_remove_and_save():
    handler = TarHandler.open(make_tar({"keep.txt": b"keep", "drop.txt": b"drop"}))
    handler.add_entry("new/", is_directory=True)
    handler.add_entry("new/file.bin", io.BytesIO(b"\x00\x01"))
    handler.remove_entry(handler.find("drop.txt"))
    out = io.BytesIO()
    handler.save_to(out)
    handler.close()
    out.seek(0)
    with tarfile.open(fileobj=out, mode='r:') as tar_file:
        assert tar_file.getnames() == ["keep.txt", "new", "new/file.bin"]
        assert tar_file.getmember("new").isdir()
        assert tar_file.extractfile("keep.txt").read() == b"keep"
        assert tar_file.extractfile("new/file.bin").read() == b"\x00\x01"


def test_tar_can_parse():
    assert TarHandler.can_parse(make_tar({"a": b"a"}))
    assert not TarHandler.can_parse(io.BytesIO(b"not a tar file" * 100))
    assert not TarHandler.can_parse(io.BytesIO(b""))


def test_tar_empty_container_round_trip():
    out = io.BytesIO()
    TarHandler.create().save_to(out)
    out.seek(0)
    assert TarHandler.can_parse(out)
    out.seek(0)
    assert TarHandler.open(out).entries == []
