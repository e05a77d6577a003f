"""Tests for the callback chain."""

import logging

import pytest

from fnops.callbacks import (
    LoggingInterceptor,
    StatusCapture,
    fire,
    ignore_not_found,
)
from fnops.client import Outcome, StatusEntry
from fnops.exceptions import (
    FnOpsException,
    OwnerReferenceNotFoundError,
    ResourceNotFoundError,
)

ENTRY = StatusEntry(
    name="hello",
    uid="1234",
    api_version="serverless.kyma-project.io/v1alpha1",
    kind="Function",
    outcome=Outcome.CREATED,
)


def test_empty_chain_returns_prior_error() -> None:
    """An empty chain leaves the error as it was."""
    err = FnOpsException("boom")
    assert fire(ENTRY, err) is err
    assert fire(ENTRY, None) is None


def test_all_pass() -> None:
    """Every callback runs when none of them returns an error."""
    seen: list[str] = []

    def first(status: StatusEntry, error: Exception | None) -> Exception | None:
        seen.append("first")
        return None

    def second(status: StatusEntry, error: Exception | None) -> Exception | None:
        seen.append("second")
        return None

    assert fire(ENTRY, None, first, second) is None
    assert seen == ["first", "second"]


def test_short_circuit() -> None:
    """The first error returned stops the chain."""
    err = FnOpsException("stop")
    seen: list[str] = []

    def passes(status: StatusEntry, error: Exception | None) -> Exception | None:
        seen.append("passes")
        return None

    def fails(status: StatusEntry, error: Exception | None) -> Exception | None:
        seen.append("fails")
        return err

    def never(status: StatusEntry, error: Exception | None) -> Exception | None:
        seen.append("never")
        return None

    assert fire(ENTRY, None, passes, fails, never) is err
    assert seen == ["passes", "fails"]


def test_error_is_threaded_through_chain() -> None:
    """Each callback receives the error returned by the previous one."""
    err = ResourceNotFoundError("Function", "hello")
    received: list[Exception | None] = []

    def record(status: StatusEntry, error: Exception | None) -> Exception | None:
        received.append(error)
        return None

    assert fire(ENTRY, err, ignore_not_found, record) is None
    assert received == [None]


def test_prior_error_stops_pass_through_chain() -> None:
    """A pass-through callback returns the prior error, ending the chain."""
    err = FnOpsException("store failed")
    capture = StatusCapture()
    assert fire(ENTRY, err, LoggingInterceptor(), capture) is err
    assert capture.entry is None


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (None, None),
        (ResourceNotFoundError("Function", "hello"), None),
        (OwnerReferenceNotFoundError("Function", "functionUID"), None),
    ],
)
def test_ignore_not_found(error: Exception | None, expected: Exception | None) -> None:
    """Missing objects are treated as success."""
    assert ignore_not_found(ENTRY, error) is expected


def test_ignore_not_found_passes_other_errors() -> None:
    """Errors other than NotFound are returned unchanged."""
    err = FnOpsException("forbidden")
    assert ignore_not_found(ENTRY, err) is err


def test_status_capture() -> None:
    """The last status is captured."""
    capture = StatusCapture()
    other = StatusEntry(name="other", uid=None, api_version="v1", kind="Function")
    assert fire(ENTRY, None, capture) is None
    assert capture.entry == ENTRY
    assert fire(other, None, capture) is None
    assert capture.entry == other


def test_logging_interceptor(caplog: pytest.LogCaptureFixture) -> None:
    """Statuses are logged and the error passes through unchanged."""
    logger = logging.getLogger("test_callbacks")
    interceptor = LoggingInterceptor(logger)
    err = FnOpsException("denied")

    with caplog.at_level(logging.DEBUG, logger="test_callbacks"):
        assert interceptor(ENTRY, None) is None
        assert interceptor(ENTRY, err) is err

    messages = [record.getMessage() for record in caplog.records]
    assert "object Function/hello created (apiVersion=serverless.kyma-project.io/v1alpha1, uid=1234)" in messages
    assert "object Function/hello: denied" in messages
    assert [record.levelno for record in caplog.records] == [
        logging.DEBUG,
        logging.DEBUG,
        logging.WARNING,
    ]


def test_status_entry_str() -> None:
    """Entries render the kind, name and outcome."""
    assert str(ENTRY) == "Function/hello Created"
    pending = StatusEntry(name="hello", uid=None, api_version="v1", kind="Function")
    assert str(pending) == "Function/hello"
