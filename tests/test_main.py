"""
Tests for application-level error handling and logging.
"""

import json
import logging

import pytest

from negotiator.core.exceptions import (
    MissingClientIdError,
    MissingOAuthEndpointError,
    ProfileFetchFailedError,
    SessionUnavailableError,
    StateMismatchError,
    TokenNotReceivedError,
    UnexpectedResponseError,
)
from negotiator.logging_config import JsonFormatter
from negotiator.main import negotiation_error_status


class TestNegotiationErrorStatus:
    """Tests for mapping negotiation errors to HTTP statuses."""

    @pytest.mark.parametrize(
        "exc, expected",
        [
            (MissingOAuthEndpointError("Missing OAuth endpoint."), 500),
            (MissingClientIdError("Missing client ID."), 500),
            (SessionUnavailableError("no sessions"), 500),
            (StateMismatchError("forged"), 400),
            (UnexpectedResponseError("no code"), 400),
            (UnexpectedResponseError("bad answer", upstream=True), 502),
            (TokenNotReceivedError("Access token not received"), 502),
            (ProfileFetchFailedError("Failed to get user profile"), 502),
        ],
    )
    def test_status(self, exc, expected):
        assert negotiation_error_status(exc) == expected


class TestJsonFormatter:
    """Tests for the local JSON log formatter."""

    def _record(self, **extra) -> logging.LogRecord:
        record = logging.LogRecord(
            "negotiator.core.negotiator",
            logging.WARNING,
            __file__,
            1,
            "State %s",
            ("mismatch",),
            None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_formats_message_and_severity(self):
        data = json.loads(JsonFormatter().format(self._record()))

        assert data["message"] == "State mismatch"
        assert data["severity"] == "WARNING"
        assert data["name"] == "negotiator.core.negotiator"
        assert "timestamp" in data

    def test_includes_extra_fields(self):
        data = json.loads(JsonFormatter().format(self._record(phase="code_requested")))

        assert data["phase"] == "code_requested"
        assert "args" not in data
        assert "levelno" not in data
