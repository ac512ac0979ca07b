"""
Unit tests for ARCTREE read-only archive folders.

Author: Tim Hosking
Contact: https://github.com/Munger
License: MIT
"""
import sys, os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../src')))
import io
import tarfile
import zipfile
import pytest
from arctree import (
    ArchiveFile, CancelToken, GlobalConfig, LocalFile, MemoryFile, OpenState, ReadOnlyArchiveFolder,
    StorableType, open_archive,
)
from arctree.core.errors import (
    InvalidArgumentError, NotConfiguredError, NotFoundError, NotModifiableError,
    OperationCancelledError, UnsupportedFormatError,
)
from arctree.core.ids import hash_id
from arctree.handlers import ZipHandler

DOCS = {
    "docs/Astir Magis.xml": b"<astir/>",
    "docs/images/logo.png": b"\x89PNG",
    "index": b"index page",
}


@pytest.fixture(autouse=True)
def debug_level():
    # Allow debug level to be set via environment variable for tests
    level = os.environ.get('ARCTREE_DEBUG_LEVEL')
    if level is not None:
        GlobalConfig.set_debug_level(int(level))
    yield
    GlobalConfig.set_debug_level(0)


def write_zip(path, files, dirs=()):
    with zipfile.ZipFile(path, 'w') as zip_file:
        for name in dirs:
            zip_file.writestr(name, b"")
        for name, content in files.items():
            zip_file.writestr(name, content)
    return LocalFile(str(path))


def write_tar(path, files):
    with tarfile.open(path, 'w') as tar_file:
        for name, content in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            tar_file.addfile(info, io.BytesIO(content))
    return LocalFile(str(path))


@pytest.fixture(params=["zip", "zip-with-dirs", "tar"])
def docs_root(request, tmp_path):
    if request.param == "zip":
        source = write_zip(tmp_path / "docs.zip", DOCS)
    elif request.param == "zip-with-dirs":
        source = write_zip(tmp_path / "docs.zip", DOCS, dirs=["docs/", "docs/images/"])
    else:
        source = write_tar(tmp_path / "docs.tar", DOCS)
    root = ReadOnlyArchiveFolder(source_file=source)
    yield root
    root.close()


def names(items):
    return sorted(item.name for item in items)


def test_root_identity(tmp_path):
    source = write_zip(tmp_path / "docs.zip", DOCS)
    root = ReadOnlyArchiveFolder(source_file=source)
    assert root.id == hash_id(source.id)
    assert root.name == "docs"
    assert root.key == ""
    assert root.is_root
    assert root.get_parent() is None


@pytest.mark.parametrize("file_name, expected", [
    ("backup.tar.gz", "backup"),
    ("backup.tbz2", "backup"),
    ("notes.txt.gz", "notes.txt"),
])
def test_root_name_drops_archive_extension(file_name, expected):
    root = ReadOnlyArchiveFolder(source_file=MemoryFile(b"", file_name))
    assert root.name == expected
    assert root.state is OpenState.UNOPENED


def test_container_is_opened_on_first_traversal(docs_root):
    assert docs_root.state is OpenState.UNOPENED
    list(docs_root.list_items())
    assert docs_root.state is OpenState.OPENED


def test_list_root(docs_root):
    items = list(docs_root.list_items())
    # Folders come first
    assert isinstance(items[0], ReadOnlyArchiveFolder)
    assert names(items) == ["docs", "index"]
    assert names(docs_root.list_items(StorableType.FOLDER)) == ["docs"]
    assert names(docs_root.list_items(StorableType.FILE)) == ["index"]


def test_list_synthesized_folder(docs_root):
    docs = docs_root.get_first_by_name("docs")
    assert docs.id == docs_root.id + "/docs/"
    assert docs.get_parent() is docs_root
    assert names(docs.list_items()) == ["Astir Magis.xml", "images"]
    images = docs.get_first_by_name("images")
    assert names(images.list_items()) == ["logo.png"]


def test_list_items_rejects_empty_filter(docs_root):
    with pytest.raises(InvalidArgumentError):
        docs_root.list_items(StorableType.NONE)
    # Validation happens before anything is opened
    assert docs_root.state is OpenState.UNOPENED


def test_get_first_by_name_file_or_folder(docs_root):
    index = docs_root.get_first_by_name("index")
    assert isinstance(index, ArchiveFile)
    assert index.id == docs_root.id + "/index"
    with index.open_stream('rb') as f:
        assert f.read() == b"index page"
    docs = docs_root.get_first_by_name("docs")
    assert isinstance(docs, ReadOnlyArchiveFolder)
    with pytest.raises(NotFoundError):
        docs_root.get_first_by_name("missing")


def test_navigation_is_identity_stable(docs_root):
    docs = docs_root.get_first_by_name("docs")
    assert docs_root.get_item(docs.id) is docs
    assert next(iter(docs_root.list_items(StorableType.FOLDER))) is docs


def test_get_item_round_trips_listed_ids(docs_root):
    for item in docs_root.list_items():
        assert docs_root.get_item(item.id).id == item.id


def test_file_and_folder_ids_are_distinct(docs_root):
    with pytest.raises(NotFoundError):
        docs_root.get_item(docs_root.id + "/docs")
    with pytest.raises(NotFoundError):
        docs_root.get_item(docs_root.id + "/index/")


def test_get_item_deeper_id_has_correct_parent(docs_root):
    logo = docs_root.get_item(docs_root.id + "/docs/images/logo.png")
    assert isinstance(logo, ArchiveFile)
    images = logo.get_parent()
    assert images.id == docs_root.id + "/docs/images/"
    assert images.get_parent() is docs_root.get_first_by_name("docs")


def test_get_item_recursive(docs_root):
    images = docs_root.get_item_recursive(docs_root.id + "/docs/images/")
    assert images.name == "images"
    logo = docs_root.get_item_recursive(docs_root.id + "/docs/images/logo.png")
    with logo.open_stream('rb') as f:
        assert f.read() == b"\x89PNG"
    # The requested id is resolved, not the folder's own id
    assert logo.id != docs_root.id
    with pytest.raises(NotFoundError):
        docs_root.get_item_recursive(docs_root.id + "/docs/nothing/logo.png")


def test_get_item_outside_folder(docs_root):
    docs = docs_root.get_first_by_name("docs")
    with pytest.raises(NotFoundError):
        docs.get_item(docs_root.id + "/index")
    with pytest.raises(NotFoundError):
        docs_root.get_item("OTHERROOT/index")


def test_read_only_file_rejects_writes(docs_root):
    index = docs_root.get_first_by_name("index")
    with pytest.raises(NotModifiableError):
        index.open_stream('wb')
    assert not hasattr(docs_root, "create_file")


def test_text_mode_read(docs_root):
    with docs_root.get_first_by_name("index").open_stream('r') as f:
        assert f.read() == "index page"


def test_close_and_reopen(docs_root):
    docs_root.get_first_by_name("index")
    docs_root.close()
    assert docs_root.state is OpenState.UNOPENED
    assert names(docs_root.list_items()) == ["docs", "index"]


def test_root_from_open_container():
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, 'w') as zip_file:
        zip_file.writestr("a/b.txt", b"b")
    buf.seek(0)
    root = ReadOnlyArchiveFolder(container=ZipHandler.open(buf), folder_id="ROOT", name="mem")
    assert root.state is OpenState.OPENED
    assert root.get_item("ROOT/a/b.txt").name == "b.txt"
    root.close()


def test_root_id_cannot_contain_separator():
    with pytest.raises(InvalidArgumentError):
        ReadOnlyArchiveFolder(container=ZipHandler.create(), folder_id="a/b")


def test_not_configured():
    root = ReadOnlyArchiveFolder()
    with pytest.raises(NotConfiguredError):
        list(root.list_items())


def test_unsupported_format_leaves_root_unopened():
    root = ReadOnlyArchiveFolder(source_file=MemoryFile(b"plain text", "notes.zip"))
    with pytest.raises(UnsupportedFormatError):
        root.get_first_by_name("x")
    assert root.state is OpenState.UNOPENED


def test_traversal_is_cancellable(docs_root):
    token = CancelToken()
    token.cancel()
    with pytest.raises(OperationCancelledError):
        list(docs_root.list_items(cancel=token))
    assert docs_root.state is OpenState.UNOPENED


def test_open_archive_from_read_only_stream(tmp_path):
    source = write_zip(tmp_path / "docs.zip", DOCS)
    with open(source.path, 'rb') as stream:
        root = open_archive(stream, "STREAMROOT", "docs")
        assert type(root) is ReadOnlyArchiveFolder
        assert root.get_item("STREAMROOT/docs/Astir Magis.xml").name == "Astir Magis.xml"
        root.close()
        assert not stream.closed
