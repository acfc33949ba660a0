"""FastAPI application for text parsing.

Thin HTTP layer around the parsing service:
- Parse and validate endpoints with a consistent response envelope
- Health and readiness checks
- Prometheus metrics for monitoring
- CORS for the browser UI, which calls the same endpoints under
  /api/textparser/

Based on FastAPI best practices:
https://fastapi.tiangolo.com/
"""

import logging
import time

from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from textparser.api import metrics
from textparser.parsing.schema import ParseResult, ValidationOutcome
from textparser.parsing.service import TextParsingService
from textparser.shared.config import get_settings

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Text Parsing API",
    description="Extracts XML blocks and tagged fields from e-mail text and calculates GST",
    version=settings.service_version,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

parsing_service = TextParsingService()


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Middleware to collect request metrics.

    Tracks:
    - Request count by method, endpoint, and status
    - Request duration by method and endpoint
    """
    # Skip metrics for /metrics endpoint itself
    if request.url.path == "/metrics":
        return await call_next(request)

    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    metrics.http_requests_total.labels(
        method=request.method,
        endpoint=request.url.path,
        status=response.status_code,
    ).inc()

    metrics.http_request_duration_seconds.labels(
        method=request.method,
        endpoint=request.url.path,
    ).observe(duration)

    return response


class ParseRequest(BaseModel):
    """Text submitted for parsing or validation."""

    content: str = ""


class ParseResponse(BaseModel):
    """Envelope for parse results."""

    success: bool
    data: ParseResult | None = None
    errors: list[str] = []
    message: str = ""


class ValidateResponse(BaseModel):
    """Envelope for validation results."""

    success: bool
    data: ValidationOutcome | None = None
    errors: list[str] = []
    message: str = ""


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    service: str


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool


def _envelope(status_code: int, body: BaseModel) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True),
    )


def _content_error(content: str) -> str | None:
    """Reject requests the parser should never see."""
    if not content.strip():
        return "Content is required"
    if len(content) > settings.max_content_length:
        return f"Content exceeds maximum length of {settings.max_content_length} characters"
    return None


@app.get("/health", response_model=HealthResponse, tags=["Health"])
@app.get("/api/textparser/health", response_model=HealthResponse, include_in_schema=False)
def health_check() -> HealthResponse:
    """Health check endpoint for liveness probe.

    Returns:
        Health status information
    """
    return HealthResponse(
        status="healthy", version=settings.service_version, service=settings.service_name
    )


@app.get("/ready", response_model=ReadinessResponse, tags=["Health"])
def readiness_check() -> ReadinessResponse:
    """Readiness check endpoint for Kubernetes readiness probe.

    Returns:
        Readiness status
    """
    return ReadinessResponse(ready=True)


@app.get("/metrics", tags=["Monitoring"])
def get_metrics() -> Response:
    """Prometheus metrics endpoint.

    Returns:
        Prometheus metrics in text format
    """
    metrics_data, content_type = metrics.get_metrics()
    return Response(content=metrics_data, media_type=content_type)


@app.post("/api/v1/text/parse", response_model=ParseResponse, tags=["Parsing"])
@app.post("/api/textparser/parse", response_model=ParseResponse, include_in_schema=False)
def parse_text(request: ParseRequest) -> JSONResponse:
    """Parse e-mail text into XML blocks, tagged fields and a GST breakdown.

    ## Example

    ```bash
    curl -X POST "http://localhost:8000/api/v1/text/parse" \\
      -H "Content-Type: application/json" \\
      -d '{"content": "<expense><total>1,150</total></expense>"}'
    ```

    ## Responses

    - 200 with `success: true` when the text is accepted
    - 400 with `success: false` and the rejection `errors` when the text is
      empty, too large, or fails validation
    - 500 with a generic error if something unexpected goes wrong

    Args:
        request: Text to parse

    Returns:
        Response envelope with the parse result
    """
    logger.info(f"Parsing text content of length: {len(request.content)}")

    invalid = _content_error(request.content)
    if invalid:
        metrics.parse_requests_total.labels(outcome="rejected").inc()
        return _envelope(
            status.HTTP_400_BAD_REQUEST,
            ParseResponse(success=False, errors=[invalid], message="Invalid request"),
        )

    metrics.content_size_chars.observe(len(request.content))

    try:
        parse_start = time.time()
        result = parsing_service.parse(request.content)
        metrics.parse_processing_duration_seconds.observe(time.time() - parse_start)
    except Exception:
        logger.exception("Unexpected error during text parsing")
        metrics.parse_requests_total.labels(outcome="error").inc()
        return _envelope(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            ParseResponse(
                success=False,
                errors=["An unexpected error occurred"],
                message="Internal server error",
            ),
        )

    if not result.is_valid:
        logger.warning(f"Text parsing failed with errors: {', '.join(result.errors)}")
        metrics.parse_requests_total.labels(outcome="rejected").inc()
        return _envelope(
            status.HTTP_400_BAD_REQUEST,
            ParseResponse(
                success=False,
                data=result,
                errors=result.errors,
                message="Text parsing failed validation",
            ),
        )

    logger.info(
        f"Successfully parsed text. Found {len(result.xml_blocks)} XML blocks "
        f"and {len(result.tagged_fields)} tagged fields"
    )
    metrics.parse_requests_total.labels(outcome="success").inc()
    return _envelope(
        status.HTTP_200_OK,
        ParseResponse(success=True, data=result, message="Text parsed successfully"),
    )


@app.post("/api/v1/text/validate", response_model=ValidateResponse, tags=["Parsing"])
@app.post("/api/textparser/validate", response_model=ValidateResponse, include_in_schema=False)
def validate_text(request: ParseRequest) -> JSONResponse:
    """Check text structure without running the full parse.

    Args:
        request: Text to validate

    Returns:
        Response envelope with the validation outcome
    """
    logger.info(f"Validating text content of length: {len(request.content)}")

    invalid = _content_error(request.content)
    if invalid:
        metrics.validate_requests_total.labels(outcome="invalid").inc()
        return _envelope(
            status.HTTP_400_BAD_REQUEST,
            ValidateResponse(success=False, errors=[invalid], message="Invalid request"),
        )

    try:
        outcome = parsing_service.validate_content(request.content)
    except Exception:
        logger.exception("Unexpected error during text validation")
        metrics.validate_requests_total.labels(outcome="error").inc()
        return _envelope(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            ValidateResponse(
                success=False,
                errors=["An unexpected error occurred"],
                message="Internal server error",
            ),
        )

    logger.info(f"Validation completed. Valid: {outcome.is_valid}")
    metrics.validate_requests_total.labels(outcome="valid" if outcome.is_valid else "invalid").inc()
    return _envelope(
        status.HTTP_200_OK,
        ValidateResponse(
            success=True,
            data=outcome,
            message="Content is valid" if outcome.is_valid else "Content validation failed",
        ),
    )
