"""
Cooperative cancellation for long-running archive operations.

Author: Tim Hosking
Contact: https://github.com/Munger
License: MIT
"""

from threading import Event
from typing import Optional

from .errors import OperationCancelledError


class CancelToken:
    """
    A cancellation flag shared between the caller and an operation.
    The operation checks it at each I/O boundary; the caller may set it from any thread.
    """

    def __init__(self):
        self._event = Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError("Operation was cancelled.")


def check_cancelled(cancel: Optional[CancelToken]) -> None:
    """Raise OperationCancelledError if ``cancel`` has been triggered. ``None`` never cancels."""
    if cancel is not None:
        cancel.raise_if_cancelled()
