import logging

import httpx

from vectorizer_proxy.config import Settings
from vectorizer_proxy.errors import TransportError, UpstreamError
from vectorizer_proxy.normalizer import BinaryBody, NormalizedResult, decode_upstream, normalize
from vectorizer_proxy.translator import UploadRequest, build_upstream_parts

logger = logging.getLogger(__name__)


class VectorizerClient:
    """Issues one authenticated vectorize call per upload. Never retries."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._settings = settings
        self._transport = transport

    async def vectorize(self, upload: UploadRequest) -> NormalizedResult:
        data, files = build_upstream_parts(upload)
        logger.info(
            "upstream_request",
            extra={"image_name": upload.filename, "image_bytes": len(upload.content), "options": data},
        )

        try:
            # A fresh client per call: cancelling the inbound request closes the connection.
            async with httpx.AsyncClient(timeout=self._settings.timeout_s, transport=self._transport) as client:
                response = await client.post(
                    self._settings.api_url,
                    data=data,
                    files=files,
                    auth=(self._settings.api_id, self._settings.api_secret),
                )
        except httpx.HTTPError as exc:
            logger.error("upstream_transport_failed", extra={"error": str(exc) or type(exc).__name__})
            raise TransportError(str(exc) or type(exc).__name__) from exc

        logger.info(
            "upstream_response",
            extra={"upstream_status": response.status_code, "content_type": response.headers.get("content-type")},
        )
        if not response.is_success:
            raise UpstreamError(_error_message(response), status_code=response.status_code)

        decoded = decode_upstream(response)
        logger.info("upstream_body_decoded", extra={"shape": type(decoded).__name__})
        result = normalize(decoded)
        if isinstance(decoded, BinaryBody) and result.image_token:
            logger.info("image_token_from_header")
        return result


def _error_message(response: httpx.Response) -> str:
    text = response.text.strip()
    return text or response.reason_phrase or f"upstream returned {response.status_code}"
