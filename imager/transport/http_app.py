# imager/transport/http_app.py
"""
HTTP front end for the thumbnailing core.

Endpoints take the raw image as the request body:
- POST /thumbnail?width=&height=&fit=  scaled image
- POST /crop?width=&height=            centered crop
- POST /info                           dimensions and formats as JSON

Error mapping comes from ``ImagerError.status_code``: undecodable or
degenerate input -> 415, over budget -> 413, encoder failure -> 500.
Decoding and encoding are blocking, so they run in the threadpool; the
image handle is always closed before the response is sent.
"""
from __future__ import annotations

from typing import Callable

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool

from imager.config import settings
from imager.core.errors import ImagerError, TooBigError
from imager.core.formats import content_type
from imager.core.image import Image, get_image_config
from imager.infra.logging_config import setup_logging, get_logger, LogContext
from imager.transport.middleware import (
    RequestIDMiddleware,
    RequestLoggingMiddleware,
    ErrorHandlingMiddleware,
)
from imager.transport.schemas import ErrorOut, ImageInfoOut

# Initialize logging first
setup_logging(
    level=settings.log_level,
    use_json=settings.is_production
)

logger = get_logger(__name__)

# Largest box a caller may request; anything bigger is clamped to the source anyway
MAX_REQUEST_DIMENSION = 16_384

# Documented error bodies for the image endpoints
ERROR_RESPONSES = {
    413: {"model": ErrorOut, "description": "Upload or decoded image over budget"},
    415: {"model": ErrorOut, "description": "Not a decodable JPEG, PNG or GIF"},
    500: {"model": ErrorOut, "description": "Encoder failure"},
}


app = FastAPI(
    title="Imager",
    description="Image validation and thumbnailing service",
    version="1.0.0",
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
    openapi_url=None if settings.is_production else "/openapi.json",
)

app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(RequestLoggingMiddleware, enabled=settings.enable_request_logging)
app.add_middleware(RequestIDMiddleware)


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================

@app.exception_handler(ImagerError)
async def imager_error_handler(request: Request, exc: ImagerError):
    """Map image errors to their status codes"""
    if exc.status_code >= 500:
        logger.error(f"Image processing failed: {exc.detail}")
    else:
        logger.info(f"Image rejected ({exc.status_code}): {exc.detail}")

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
    )


# ============================================================================
# HELPERS
# ============================================================================

def request_log_context(request: Request, operation: str) -> LogContext:
    return LogContext(
        logger,
        request_id=getattr(request.state, "request_id", None),
        operation=operation,
    )


async def read_image_body(request: Request) -> bytes:
    """Read the request body, refusing anything over max_upload_bytes."""
    declared = request.headers.get("Content-Length")
    if declared and declared.isdigit() and int(declared) > settings.max_upload_bytes:
        raise TooBigError(
            f"Upload of {int(declared)} bytes exceeds limit of {settings.max_upload_bytes} bytes"
        )

    data = await request.body()
    if len(data) > settings.max_upload_bytes:
        raise TooBigError(
            f"Upload of {len(data)} bytes exceeds limit of {settings.max_upload_bytes} bytes"
        )
    return data


def derive(data: bytes, operation: Callable[[Image], bytes], log_ctx: LogContext) -> Response:
    """Open, derive, close. Blocking; call via run_in_threadpool."""
    with Image(data, settings.max_buffer_pixels, config=get_image_config()) as img:
        log_ctx = log_ctx.bind(image_id=img.image_id)
        log_ctx.info(
            f"Decoded {img.input_format.value} {img.dimensions}, "
            f"orientation={img.orientation}, output={img.output_format.value}"
        )
        output = operation(img)
        media_type = content_type(img.output_format)
    log_ctx.info(f"Derived {len(output)} bytes as {media_type}", extra={"output_bytes": len(output)})
    return Response(content=output, media_type=media_type)


def describe(data: bytes, log_ctx: LogContext) -> ImageInfoOut:
    with Image(data, settings.max_buffer_pixels, config=get_image_config()) as img:
        log_ctx.bind(image_id=img.image_id).info(f"Described {img.input_format.value} {img.dimensions}")
        return ImageInfoOut(
            width=img.width,
            height=img.height,
            input_format=img.input_format.value,
            output_format=img.output_format.value,
            orientation=img.orientation,
        )


# ============================================================================
# ENDPOINTS
# ============================================================================

@app.get("/health")
def health():
    """Basic health check for load balancers."""
    return {"status": "healthy"}


@app.post("/info", response_model=ImageInfoOut, responses=ERROR_RESPONSES)
async def info(request: Request):
    data = await read_image_body(request)
    return await run_in_threadpool(describe, data, request_log_context(request, "info"))


@app.post("/thumbnail", responses=ERROR_RESPONSES)
async def thumbnail(
    request: Request,
    width: int = Query(ge=1, le=MAX_REQUEST_DIMENSION),
    height: int = Query(ge=1, le=MAX_REQUEST_DIMENSION),
    fit: bool = Query(default=True),
):
    """Scale down into a width x height box (fit=true) or to fill it (fit=false)."""
    data = await read_image_body(request)
    return await run_in_threadpool(
        derive,
        data,
        lambda img: img.thumbnail(width, height, fit_inside=fit),
        request_log_context(request, "thumbnail"),
    )


@app.post("/crop", responses=ERROR_RESPONSES)
async def crop(
    request: Request,
    width: int = Query(ge=1, le=MAX_REQUEST_DIMENSION),
    height: int = Query(ge=1, le=MAX_REQUEST_DIMENSION),
):
    """Centered width x height crop, shrunk to the source when oversized."""
    data = await read_image_body(request)
    return await run_in_threadpool(
        derive, data, lambda img: img.crop(width, height), request_log_context(request, "crop")
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "imager.transport.http_app:app",
        host="0.0.0.0",
        port=8080,
        reload=not settings.is_production,
        log_level=settings.log_level.lower(),
        access_log=not settings.is_production,  # Middleware logs requests in prod
        server_header=False,
        date_header=False,
    )
