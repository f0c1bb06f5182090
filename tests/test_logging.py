import json
import logging
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from printdesk.core.logging import JsonLogFormatter, log_event
from printdesk.middlewares import principal_ctx_var, request_id_ctx_var


def _record(message="ticket.created", extra_data=None):
    record = logging.LogRecord("printdesk.services.lifecycle", logging.INFO, __file__, 1, message, None, None)
    if extra_data is not None:
        record.extra_data = extra_data
    return record


def test_formatter_writes_event_and_structured_fields():
    line = JsonLogFormatter(service="printdesk-test").format(
        _record(extra_data={"ticket_id": "t-1", "technician_id": "tech-1"})
    )
    payload = json.loads(line)

    assert payload["service"] == "printdesk-test"
    assert payload["event"] == "ticket.created"
    assert payload["level"] == "INFO"
    assert payload["ticket_id"] == "t-1"
    assert payload["ts"].endswith("Z")
    assert "request_id" not in payload


def test_formatter_keeps_envelope_keys():
    payload = json.loads(JsonLogFormatter().format(_record(extra_data={"event": "spoofed", "level": "x"})))

    assert payload["event"] == "ticket.created"
    assert payload["level"] == "INFO"


def test_formatter_adds_request_context():
    request_token = request_id_ctx_var.set("req-42")
    principal_token = principal_ctx_var.set("technician:tech-1")
    try:
        payload = json.loads(JsonLogFormatter().format(_record()))
    finally:
        request_id_ctx_var.reset(request_token)
        principal_ctx_var.reset(principal_token)

    assert payload["request_id"] == "req-42"
    assert payload["principal"] == "technician:tech-1"


def test_log_event_passes_fields_as_extra_data(caplog):
    logger = logging.getLogger("printdesk.test_events")

    with caplog.at_level(logging.INFO, logger="printdesk.test_events"):
        log_event(logger, "import.completed", imported=3, dropped_lines=[4])
        log_event(logger, "import.rejected", logging.WARNING, rows=2)

    completed, rejected = caplog.records
    assert completed.extra_data == {"imported": 3, "dropped_lines": [4]}
    assert rejected.levelno == logging.WARNING
