"""RFC 7807 exception handler for domain errors."""

from fastapi import Request
from fastapi.responses import JSONResponse
from structlog import get_logger

from multisig_custody.domain.errors.base import CategorizedError

logger = get_logger()

PROBLEM_MEDIA_TYPE = "application/problem+json"


async def categorized_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render a ``CategorizedError`` as a problem document."""
    if not isinstance(exc, CategorizedError):
        raise exc
    body = exc.to_rfc7807_dict()
    body["instance"] = request.url.path
    log = logger.bind(path=request.url.path, problem_type=body["type"])
    if exc.http_status >= 500:
        log.error("request_chain_error", detail=body["detail"])
    else:
        log.info("request_rejected", status=exc.http_status)
    return JSONResponse(
        status_code=exc.http_status,
        content=body,
        media_type=PROBLEM_MEDIA_TYPE,
    )
