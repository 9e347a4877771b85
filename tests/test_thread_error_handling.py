"""Tests for thread error handling utilities in app module."""
from __future__ import annotations

import threading
from unittest import mock

import survey_chatbot.app as app_module


def _boom() -> None:  # noqa: WPS110 – test helper
    raise RuntimeError("boom")


def test_submit_background_logs_exception():
    logged = threading.Event()

    with mock.patch.object(
        app_module.logger, "exception", side_effect=lambda *a, **k: logged.set()
    ) as mock_exc:
        fut = app_module.submit_background(_boom)
        fut.exception(timeout=1)  # wait for completion without raising
        # Done-callbacks may run just after waiters are released.
        assert logged.wait(1)
        mock_exc.assert_called_once()
        args, _ = mock_exc.call_args
        assert "boom" in str(args[1])  # second positional arg is exception instance


def test_submit_background_returns_result():
    fut = app_module.submit_background(lambda x: x * 2, 21)
    assert fut.result(timeout=1) == 42
