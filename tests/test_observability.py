import json
import logging

from vectorizer_proxy.observability import JsonLogFormatter, RequestIdFilter


class _Collecting(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


def test_json_formatter_emits_extra_fields_only() -> None:
    record = logging.makeLogRecord(
        {
            "name": "vectorizer_proxy.upstream",
            "levelname": "INFO",
            "msg": "upstream_response",
            "upstream_status": 402,
            "request_id": "req-1",
            "content_type": None,
        }
    )

    payload = json.loads(JsonLogFormatter().format(record))

    assert payload["message"] == "upstream_response"
    assert payload["logger"] == "vectorizer_proxy.upstream"
    assert payload["upstream_status"] == 402
    assert payload["request_id"] == "req-1"
    assert "content_type" not in payload
    assert "args" not in payload
    assert "lineno" not in payload


def test_request_id_reaches_relay_log_lines(make_client, stub_upstream) -> None:
    client = make_client(stub_upstream())
    handler = _Collecting()
    handler.addFilter(RequestIdFilter())
    relay_logger = logging.getLogger("vectorizer_proxy.relay")
    previous_level = relay_logger.level
    relay_logger.setLevel(logging.INFO)
    relay_logger.addHandler(handler)
    try:
        response = client.post(
            "/vectorize",
            files={"image": ("logo.png", b"png", "image/png")},
            headers={"x-request-id": "req-abc"},
        )
    finally:
        relay_logger.removeHandler(handler)
        relay_logger.setLevel(previous_level)

    assert response.status_code == 200
    assert response.headers["x-request-id"] == "req-abc"
    processed = [record for record in handler.records if record.getMessage() == "processing_image"]
    assert processed
    assert processed[0].request_id == "req-abc"


def test_filter_leaves_request_id_empty_outside_requests() -> None:
    record = logging.makeLogRecord({"msg": "startup"})
    assert RequestIdFilter().filter(record) is True
    assert record.request_id is None
