from __future__ import annotations

import json
import logging

from helpdesk.shared.infrastructure.logging import CustomJsonFormatter


def _format(**extra: object) -> dict:
    formatter = CustomJsonFormatter("%(name)s %(levelname)s %(message)s", environment="staging")
    record = logging.LogRecord("helpdesk.test", logging.INFO, __file__, 1, "Ticket created", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return json.loads(formatter.format(record))


def test_formatter_adds_context_fields() -> None:
    payload = _format(correlation_id="abc-123", ticket_id="t-1")

    assert payload["message"] == "Ticket created"
    assert payload["correlation_id"] == "abc-123"
    assert payload["environment"] == "staging"
    assert payload["ticket_id"] == "t-1"
    assert "timestamp" in payload


def test_formatter_redacts_credentials() -> None:
    payload = _format(auth_token="eyJhbGciOi", authorization="Bearer x", principal_id="user-u")

    assert payload["auth_token"] == "***REDACTED***"
    assert payload["authorization"] == "***REDACTED***"
    assert payload["principal_id"] == "user-u"
