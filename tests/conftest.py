"""Pytest configuration for the Blueflood publisher test suite."""

import os
from concurrent.futures import Executor, Future

import pytest

# Ensure test environment variables are set before any imports
os.environ.setdefault("BLUEFLOOD_SERVER_URL", "http://localhost:9090")
os.environ.setdefault("LOG_LEVEL", "warning")

from blueflood.dispatcher import BatchDispatcher, DispatchOutcome  # noqa: E402


class InlineExecutor(Executor):
    """Runs submitted work immediately on the calling thread."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as e:
            future.set_exception(e)
        return future


class RecordingDispatcher(BatchDispatcher):
    """Keeps every batch it is asked to send instead of posting it."""

    def __init__(self, **kwargs):
        kwargs.setdefault("executor", InlineExecutor())
        super().__init__(**kwargs)
        self.sent = []

    def dispatch(self, batch, server, timeout):
        self.sent.append((list(batch), server, timeout))
        return DispatchOutcome.INGESTED


@pytest.fixture
def inline_executor():
    return InlineExecutor()


@pytest.fixture
def recorder():
    return RecordingDispatcher()
