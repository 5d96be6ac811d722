"""Unit tests for structured logging helpers."""
from __future__ import annotations

import asyncio
import json
import logging
import sys

from notification_service.infra.logging import (
    ContextInjectingFilter,
    JSONFormatter,
    clear_log_context,
    get_lazy_logger,
    get_log_context,
    get_logger,
    remove_from_log_context,
    set_log_context,
)


def make_record(msg: str = "Notification dispatch completed", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="notification_service.features.notifications.dispatcher",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_single_line_json_with_extras(self):
        formatter = JSONFormatter(static={"service": "notification-service"})

        line = formatter.format(make_record(notification_id="n-1", channels=["IN_APP", "EMAIL"]))

        data = json.loads(line)
        assert "\n" not in line
        assert data["level"] == "INFO"
        assert data["message"] == "Notification dispatch completed"
        assert data["service"] == "notification-service"
        assert data["notification_id"] == "n-1"
        assert data["channels"] == ["IN_APP", "EMAIL"]
        assert data["timestamp"].endswith("Z")

    def test_exception_is_escaped(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = make_record()
            record.exc_info = sys.exc_info()

        data = json.loads(JSONFormatter().format(record))

        assert "ValueError: boom" in data["exception"]

    def test_non_ascii_kept(self):
        data = json.loads(JSONFormatter().format(make_record("Ny förfrågan")))

        assert data["message"] == "Ny förfrågan"


class TestLogContext:
    def setup_method(self):
        clear_log_context()

    def teardown_method(self):
        clear_log_context()

    def test_filter_injects_context_without_overriding_extra(self):
        set_log_context(user_id="u1", notification_id="n-1")
        record = make_record(notification_id="explicit")

        assert ContextInjectingFilter().filter(record)

        assert record.user_id == "u1"
        assert record.notification_id == "explicit"

    def test_remove_keys(self):
        set_log_context(user_id="u1", channel="EMAIL")

        remove_from_log_context("channel")

        assert get_log_context() == {"user_id": "u1"}

    async def test_tasks_get_their_own_copy(self):
        set_log_context(user_id="u1")

        async def channel_task(channel: str) -> dict:
            set_log_context(channel=channel)
            await asyncio.sleep(0)
            return get_log_context()

        email, sms = await asyncio.gather(
            asyncio.create_task(channel_task("EMAIL")),
            asyncio.create_task(channel_task("SMS")),
        )

        assert email == {"user_id": "u1", "channel": "EMAIL"}
        assert sms == {"user_id": "u1", "channel": "SMS"}
        assert get_log_context() == {"user_id": "u1"}


def test_bound_logger_merges_extra(caplog):
    logger = get_logger("notification_service.test", channel="EMAIL").bind(user_id="u1")

    with caplog.at_level(logging.INFO, logger="notification_service.test"):
        logger.info("Sent", extra={"notification_id": "n-1"})

    record = caplog.records[-1]
    assert (record.channel, record.user_id, record.notification_id) == ("EMAIL", "u1", "n-1")


def test_lazy_logger_skips_disabled_levels(caplog):
    calls = []
    logger = get_lazy_logger("notification_service.lazy")

    def expensive() -> str:
        calls.append(1)
        return "payload"

    with caplog.at_level(logging.INFO, logger="notification_service.lazy"):
        logger.debug(expensive)
        logger.info(expensive)

    assert calls == [1]
    assert caplog.records[-1].getMessage() == "payload"
