"""
Identifier codec for ARCTREE.

Node ids have the form ``<root-id>/<segment>/<segment>[/]``. Folder ids end with the
separator, file ids never do. The separator is always ``/`` regardless of the host OS,
matching the ZIP standard (APPNOTE 4.4.17.1), because callers persist ids.

Author: Tim Hosking
Contact: https://github.com/Munger
License: MIT
"""

import hashlib

from .errors import InvalidArgumentError

SEPARATOR = '/'


def combine(leave_trailing_separator: bool, *parts: str) -> str:
    """
    Join path parts with the separator.

    Args:
        leave_trailing_separator: Keep the separator after the last part (folder ids)
        *parts: Non-empty parts; a part that already ends with the separator gets no extra one

    Returns:
        The combined id or key
    """
    result = []
    for part in parts:
        if not part:
            raise InvalidArgumentError("Cannot combine an empty string in a path.")
        result.append(part)
        if not part.endswith(SEPARATOR):
            result.append(SEPARATOR)
    combined = ''.join(result)
    if not leave_trailing_separator:
        combined = combined[:-1]
    return combined


def key_of(node_id: str) -> str:
    """Strip the leading ``<root-id>/`` from an id, giving the container-relative key."""
    index = node_id.find(SEPARATOR)
    if index < 0:
        raise InvalidArgumentError(f"Malformed id, no separator: {node_id!r}")
    return node_id[index + 1:]


def name_of(node_id: str) -> str:
    trimmed = node_id.rstrip(SEPARATOR)
    return trimmed[trimmed.rfind(SEPARATOR) + 1:]


def root_of(node_id: str) -> str:
    index = node_id.find(SEPARATOR)
    return node_id if index < 0 else node_id[:index]


def ensure_trailing_separator(node_id: str) -> str:
    if not node_id.endswith(SEPARATOR):
        return node_id + SEPARATOR
    return node_id


def validate_name(name: str) -> str:
    """A child name must be non-empty and hold no separator."""
    if not name or SEPARATOR in name:
        raise InvalidArgumentError(f"Invalid item name: {name!r}")
    return name


def hash_id(text: str, encoding: str = 'utf-8') -> str:
    """Upper-case SHA-256 hex digest, used to derive a root id from a source file id."""
    return hashlib.sha256(text.encode(encoding)).hexdigest().upper()
