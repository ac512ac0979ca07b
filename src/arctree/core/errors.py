"""
Exceptions raised by ARCTREE.

Every error derives from ArcTreeError. Where a builtin exception already names the
condition, the ARCTREE error subclasses it too, so ``except FileNotFoundError`` keeps working.

Author: Tim Hosking
Contact: https://github.com/Munger
License: MIT
"""


class ArcTreeError(Exception):
    """Base class for all ARCTREE errors."""


class NotFoundError(ArcTreeError, FileNotFoundError):
    """No file or folder exists for the requested id or name."""


class ConflictError(ArcTreeError, FileExistsError):
    """An item of the other kind already holds the name and overwrite was not requested."""


class NotModifiableError(ArcTreeError, PermissionError):
    """The target, or the parent it must be deleted through, cannot be mutated."""


class NotFlushableError(ArcTreeError):
    """The folder has no destination file, or the destination is not positioned at zero."""


class UnsupportedFormatError(ArcTreeError, ValueError):
    """No registered container handler accepted the stream."""


class NotConfiguredError(ArcTreeError, RuntimeError):
    """A root folder was built with neither an open container nor a source file."""


class InvalidArgumentError(ArcTreeError, ValueError):
    """A malformed id, name or filter was supplied."""


class OperationCancelledError(ArcTreeError):
    """The operation observed a cancellation request and stopped."""
