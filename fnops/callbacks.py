"""Interceptors invoked around every store call made by an operator.

An interceptor receives the StatusEntry for an object and the error produced
so far, and returns the error to continue with. Returning `None` lets the
operation proceed; returning an error stops the chain and the enclosing
operation with that error.

A chain is a plain sequence of interceptors:
```python
from fnops.callbacks import LoggingInterceptor, StatusCapture, ignore_not_found

capture = StatusCapture()
err = fire(entry, store_error, LoggingInterceptor(_LOGGER), capture)
```
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
import logging

from fnops.client.status import StatusEntry
from fnops.exceptions import is_not_found

__all__ = [
    "Interceptor",
    "Callback",
    "fire",
    "LoggingInterceptor",
    "StatusCapture",
    "ignore_not_found",
]

_LOGGER = logging.getLogger(__name__)


class Interceptor(ABC):
    """A unit of the callback chain observing or transforming a (status, error) pair."""

    @abstractmethod
    def handle(
        self, status: StatusEntry, error: Exception | None
    ) -> Exception | None:
        """Handle the status and return the error to continue with."""

    def __call__(
        self, status: StatusEntry, error: Exception | None
    ) -> Exception | None:
        return self.handle(status, error)


Callback = Interceptor | Callable[[StatusEntry, Exception | None], Exception | None]
"""An Interceptor or a plain function with the same signature."""


def fire(
    status: StatusEntry, error: Exception | None, *chain: Callback
) -> Exception | None:
    """Run the chain of interceptors in order.

    Each interceptor receives the error returned by the previous one. The
    first interceptor returning an error stops the chain and that error is
    returned. An empty chain returns the prior error.
    """
    if not chain:
        return error
    for callback in chain:
        if (error := callback(status, error)) is not None:
            return error
    return None


class LoggingInterceptor(Interceptor):
    """Logs every status and passes the error through unchanged."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        """Initialize LoggingInterceptor."""
        self._logger = logger or _LOGGER

    def handle(
        self, status: StatusEntry, error: Exception | None
    ) -> Exception | None:
        """Log the status."""
        if status.outcome is None:
            self._logger.debug(
                "object %s/%s (apiVersion=%s, uid=%s)",
                status.kind,
                status.name,
                status.api_version,
                status.uid,
            )
        else:
            self._logger.debug(
                "object %s/%s %s (apiVersion=%s, uid=%s)",
                status.kind,
                status.name,
                status.outcome.lower(),
                status.api_version,
                status.uid,
            )
        if error is not None:
            self._logger.warning("object %s/%s: %s", status.kind, status.name, error)
        return error


class StatusCapture(Interceptor):
    """Captures the last StatusEntry seen, passing the error through unchanged."""

    def __init__(self) -> None:
        """Initialize StatusCapture."""
        self.entry: StatusEntry | None = None

    def handle(
        self, status: StatusEntry, error: Exception | None
    ) -> Exception | None:
        """Record the status."""
        self.entry = status
        return error


def ignore_not_found(
    status: StatusEntry, error: Exception | None
) -> Exception | None:
    """Treat a missing object as success, any other error is returned."""
    if is_not_found(error):
        _LOGGER.debug("Ignoring missing object %s/%s", status.kind, status.name)
        return None
    return error
