import logging
from datetime import datetime, timezone

import httpx
from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from vectorizer_proxy.config import Settings, settings as default_settings
from vectorizer_proxy.errors import RelayError, UploadTooLarge
from vectorizer_proxy.observability import RequestContextMiddleware, configure_logging
from vectorizer_proxy.schemas import ErrorResponse, HealthResponse, ServiceDescriptor
from vectorizer_proxy.translator import UploadRequest, image_from_form, text_fields
from vectorizer_proxy.upstream import VectorizerClient

SERVICE_NAME = "vectorizer-proxy"
EXPOSED_HEADERS = ["X-Image-Token", "X-Editor-URL"]
# Multipart boundaries and the small option fields ride on top of the image.
FORM_OVERHEAD_BYTES = 64 * 1024

logger = logging.getLogger("vectorizer_proxy.relay")
router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    timestamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return HealthResponse(status="ok", service=SERVICE_NAME, timestamp=timestamp)


@router.get("/", response_model=ServiceDescriptor)
def index() -> ServiceDescriptor:
    return ServiceDescriptor(message="Vectorizer Proxy is running")


@router.post(
    "/vectorize",
    response_class=Response,
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def vectorize(request: Request) -> Response:
    settings: Settings = request.app.state.settings
    client: VectorizerClient = request.app.state.vectorizer

    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > settings.max_upload_bytes + FORM_OVERHEAD_BYTES:
        raise UploadTooLarge(f"Upload exceeds {settings.max_upload_bytes} bytes")

    form = await request.form()
    try:
        image = image_from_form(form)
        # Chunked uploads carry no Content-Length; the parser has already counted the part.
        if image.size is not None and image.size > settings.max_upload_bytes:
            raise UploadTooLarge(f"Upload exceeds {settings.max_upload_bytes} bytes")
        content = await image.read()
        if len(content) > settings.max_upload_bytes:
            raise UploadTooLarge(f"Upload exceeds {settings.max_upload_bytes} bytes")

        upload = UploadRequest(
            content=content,
            filename=image.filename or "upload",
            content_type=image.content_type or "application/octet-stream",
            fields=text_fields(form),
        )
    finally:
        await form.close()

    logger.info("processing_image", extra={"image_name": upload.filename, "image_bytes": len(content)})
    result = await client.vectorize(upload)
    logger.info("image_processed", extra={"image_name": upload.filename, "content_type": result.content_type})
    return Response(content=result.body, headers=result.headers())


async def _relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    logger.warning("relay_error", extra={"status_code": exc.status_code, "error": exc.message})
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def _not_found_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code in (404, 405):
        return JSONResponse(
            status_code=404,
            content={"error": "Not found", "message": f"Cannot {request.method} {request.url.path}"},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "HTTP error", "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # Runs outside CORSMiddleware, so the browser-facing header is set here.
    logger.error("unhandled_error", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "message": str(exc)},
        headers={"Access-Control-Allow-Origin": "*"},
    )


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings)

    app = FastAPI(title="Vectorizer Proxy", version="0.1.0")
    app.state.settings = settings
    app.state.vectorizer = VectorizerClient(settings, transport=transport)

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        expose_headers=EXPOSED_HEADERS,
    )
    app.add_exception_handler(RelayError, _relay_error_handler)
    app.add_exception_handler(StarletteHTTPException, _not_found_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
    app.include_router(router)

    if settings.uses_default_credentials:
        logger.warning("API credentials not set in environment variables, using local development defaults")
    return app


app = create_app()
