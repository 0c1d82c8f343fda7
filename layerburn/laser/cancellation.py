"""
Cooperative cancellation for long-running conversions.
"""

import threading


class ConversionCancelled(Exception):
    """Raised inside a conversion once its token has been cancelled."""


class CancellationToken:
    """Flag shared between the caller and a running conversion."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise ConversionCancelled("Conversion cancelled")
