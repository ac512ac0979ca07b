"""
Unit tests for ARCTREE archive entries.

Author: Tim Hosking
Contact: https://github.com/Munger
License: MIT
"""

import sys, os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../src')))
import io
import pytest
from arctree.core.entries import ArchiveEntry


def test_new_entry_reads_empty():
    entry = ArchiveEntry("a.txt")
    with entry.open_stream('rb') as f:
        assert f.read() == b""
    assert entry.size == 0
    assert entry.is_materialized


def test_lazy_reader_opened_per_call():
    calls = []

    def reader():
        calls.append(1)
        return io.BytesIO(b"payload")

    entry = ArchiveEntry("a.txt", size=7, reader=reader)
    assert not entry.is_materialized
    for _ in range(2):
        with entry.open_stream('rb') as f:
            assert f.read() == b"payload"
    assert len(calls) == 2


def test_write_stream_replaces_content_on_close():
    entry = ArchiveEntry("a.txt", reader=lambda: io.BytesIO(b"old"))
    with entry.open_stream('wb') as f:
        f.write(b"new content")
        # Not visible until closed
        with entry.open_stream('rb') as r:
            assert r.read() == b"old"
    with entry.open_stream('rb') as f:
        assert f.read() == b"new content"
    assert entry.size == len(b"new content")
    entry.close()


def test_append_and_read_write_modes():
    entry = ArchiveEntry("a.txt")
    entry.set_data(io.BytesIO(b"hello"))
    with entry.open_stream('ab') as f:
        f.write(b" world")
    with entry.open_stream('rb') as f:
        assert f.read() == b"hello world"
    with entry.open_stream('r+b') as f:
        assert f.read(5) == b"hello"
        f.seek(0)
        f.write(b"J")
    with entry.open_stream('rb') as f:
        assert f.read() == b"Jello world"
    entry.close()


def test_materialize_detaches_from_reader_and_keeps_mtime():
    source = io.BytesIO(b"stored")
    entry = ArchiveEntry("a.txt", size=6, modified=1000.0, reader=lambda: io.BytesIO(source.getvalue()))
    entry.materialize()
    source.seek(0)
    source.truncate()
    assert entry.is_materialized
    assert entry.modified == 1000.0
    with entry.open_stream('rb') as f:
        assert f.read() == b"stored"
    entry.close()


def test_directory_entry_cannot_be_opened():
    with pytest.raises(IsADirectoryError):
        ArchiveEntry("docs/").open_stream('rb')


def test_set_data_closes_source_stream_by_default():
    src = io.BytesIO(b"abc")
    entry = ArchiveEntry("a.txt")
    entry.set_data(src)
    assert src.closed
    keep = io.BytesIO(b"def")
    entry.set_data(keep, close_stream=False)
    assert not keep.closed
    with entry.open_stream('rb') as f:
        assert f.read() == b"def"
    entry.close()
