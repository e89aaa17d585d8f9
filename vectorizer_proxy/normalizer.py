"""Normalize the vectorizer's heterogeneous responses into one relay response.

The upstream answers either with the image bytes directly (token in a custom
header) or with a JSON envelope whose field names vary by mode. Responses are
decoded once into ``BinaryBody`` or ``JsonEnvelope`` and then normalized with
a fixed precedence. The field lists below are a compatibility layer over
observed upstream behaviour, not a documented contract.
"""

import base64
import binascii
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

import httpx

SVG_MEDIA_TYPE = "image/svg+xml"

TOKEN_HEADERS = ("X-Image-Token", "x-image-token", "X-IMAGE-TOKEN")
ENVELOPE_TOKEN_FIELDS = ("vector_token", "image_token")
ENVELOPE_FALLBACK_FIELDS = ("result", "output")

_URLSAFE_TO_STANDARD = str.maketrans("-_", "+/")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BinaryBody:
    content: bytes
    content_type: str | None
    headers: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class JsonEnvelope:
    """A parsed JSON body. ``fields`` is the raw value: usually an object, possibly an array."""

    fields: dict | list


@dataclass(frozen=True)
class NormalizedResult:
    body: bytes
    content_type: str
    image_token: str | None = None
    editor_url: str | None = None

    def headers(self) -> dict[str, str]:
        headers = {"Content-Type": self.content_type, "Cache-Control": "no-store"}
        if self.image_token:
            headers["X-Image-Token"] = self.image_token
        if self.editor_url:
            headers["X-Editor-URL"] = self.editor_url
        return headers


def is_json_media_type(content_type: str | None) -> bool:
    if not content_type:
        return False
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


def decode_upstream(response: httpx.Response) -> BinaryBody | JsonEnvelope:
    content_type = response.headers.get("content-type")
    content = response.content

    declared_json = is_json_media_type(content_type)
    if declared_json or content.lstrip()[:1] == b"{":
        try:
            parsed = json.loads(content)
        except ValueError:
            parsed = None
        # Undeclared bodies only count as JSON when they are an object.
        if isinstance(parsed, dict) or (declared_json and isinstance(parsed, list)):
            return JsonEnvelope(fields=parsed)

    return BinaryBody(content=content, content_type=content_type, headers=response.headers)


def normalize(decoded: BinaryBody | JsonEnvelope) -> NormalizedResult:
    if isinstance(decoded, JsonEnvelope):
        return _normalize_envelope(decoded)
    return _normalize_binary(decoded)


def _normalize_envelope(envelope: JsonEnvelope) -> NormalizedResult:
    if not isinstance(envelope.fields, dict):
        return NormalizedResult(body=_to_bytes(envelope.fields), content_type=SVG_MEDIA_TYPE)

    fields = envelope.fields
    editor_url = fields.get("editor_url") or None
    token = _first_present(fields, ENVELOPE_TOKEN_FIELDS)
    logger.info(
        "json_envelope_received",
        extra={"has_editor_url": editor_url is not None, "has_token": token is not None},
    )
    return NormalizedResult(
        body=_envelope_payload(fields),
        content_type=SVG_MEDIA_TYPE,
        image_token=str(token) if token is not None else None,
        editor_url=str(editor_url) if editor_url is not None else None,
    )


def _envelope_payload(fields: dict) -> bytes:
    svg = fields.get("svg")
    if svg:
        return _to_bytes(svg)

    data = fields.get("data")
    if data:
        if isinstance(data, str):
            try:
                return decode_base64(data)
            except (binascii.Error, ValueError):
                logger.warning("envelope_data_not_base64")
        return _to_bytes(data)

    fallback = _first_present(fields, ENVELOPE_FALLBACK_FIELDS)
    return _to_bytes(fallback if fallback is not None else fields)


def decode_base64(data: str) -> bytes:
    """Decode standard or URL-safe base64, with or without padding and line breaks."""
    compact = "".join(data.split()).rstrip("=").translate(_URLSAFE_TO_STANDARD)
    return base64.b64decode(compact + "=" * (-len(compact) % 4), validate=True)


def _normalize_binary(body: BinaryBody) -> NormalizedResult:
    token = _first_present(body.headers, TOKEN_HEADERS)
    return NormalizedResult(
        body=body.content,
        content_type=body.content_type or SVG_MEDIA_TYPE,
        image_token=token,
    )


def _first_present(source: Mapping, keys: tuple[str, ...]):
    for key in keys:
        value = source.get(key)
        if value:
            return value
    return None


def _to_bytes(value) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode("utf-8")
    return json.dumps(value, ensure_ascii=False).encode("utf-8")
