import json
import logging
import time
import uuid
from contextvars import ContextVar

from fastapi import Request
from fastapi.responses import Response
from starlette.middleware.base import BaseHTTPMiddleware

from vectorizer_proxy.config import Settings

REQUEST_ID_HEADER = "x-request-id"

_current_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)

# Attributes every LogRecord carries; anything else came in through ``extra=``.
_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


class RequestIdFilter(logging.Filter):
    """Stamps the id of the inbound request onto relay and upstream log lines."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = _current_request_id.get()
        return True


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and value is not None
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(settings: Settings) -> None:
    root = logging.getLogger()
    if root.handlers:
        return
    handler = logging.StreamHandler()
    handler.addFilter(RequestIdFilter())
    if settings.log_json:
        handler.setFormatter(JsonLogFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s")
        )
    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    root.addHandler(handler)
    # httpx logs every outbound request at INFO; the relay already logs the upstream call.
    logging.getLogger("httpx").setLevel(logging.WARNING)


_access_logger = logging.getLogger("vectorizer_proxy.access")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds a request id for the duration of the request and logs one access line."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        token = _current_request_id.set(request_id)
        started = time.perf_counter()
        extra = {
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else None,
        }
        try:
            response = await call_next(request)
        except Exception:
            extra["latency_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
            _access_logger.exception("request_failed", extra=extra)
            raise
        finally:
            _current_request_id.reset(token)

        extra["status_code"] = response.status_code
        extra["latency_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
        _access_logger.info("request_complete", extra={**extra, "request_id": request_id})
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
