from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from halodesk.api.routes import halopsa as halopsa_api
from halodesk.core.config import get_settings
from halodesk.core.logging import configure_logging, log_error, log_warning
from halodesk.services.halopsa.errors import (
    APIError,
    AuthenticationError,
    HaloConfigurationError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)

configure_logging()
settings = get_settings()

tags_metadata = [
    {
        "name": "HaloPSA",
        "description": "Connection checks, duplicate detection and ticket merging against HaloPSA.",
    },
]
app = FastAPI(
    title=settings.app_name,
    description="Dashboard API for working with tickets in a connected HaloPSA instance.",
    openapi_tags=tags_metadata,
)


@app.exception_handler(HaloConfigurationError)
async def _handle_configuration_error(request: Request, exc: HaloConfigurationError) -> JSONResponse:
    log_warning("HaloPSA is not configured", path=request.url.path, error=str(exc))
    return JSONResponse(
        {"detail": f"{exc}. Add the HaloPSA connection settings and try again."},
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
    )


@app.exception_handler(AuthenticationError)
async def _handle_authentication_error(request: Request, exc: AuthenticationError) -> JSONResponse:
    log_warning("HaloPSA authentication failed", path=request.url.path)
    return JSONResponse(
        {"detail": "HaloPSA rejected the connection credentials. Reconnect and try again."},
        status_code=status.HTTP_401_UNAUTHORIZED,
    )


@app.exception_handler(ValidationError)
async def _handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        {"detail": str(exc), "errors": exc.errors},
        status_code=422,
    )


@app.exception_handler(APIError)
async def _handle_api_error(request: Request, exc: APIError) -> JSONResponse:
    if isinstance(exc, RateLimitError):
        headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after is not None else None
        return JSONResponse(
            {
                "detail": "HaloPSA is rate limiting requests. Try again shortly.",
                "retry_after": exc.retry_after,
            },
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            headers=headers,
        )
    if isinstance(exc, NotFoundError):
        return JSONResponse({"detail": str(exc)}, status_code=status.HTTP_404_NOT_FOUND)
    log_error(
        "HaloPSA request failed",
        path=request.url.path,
        status=exc.status_code,
        error=str(exc),
    )
    return JSONResponse(
        {"detail": "HaloPSA returned an unexpected error.", "status_code": exc.status_code},
        status_code=status.HTTP_502_BAD_GATEWAY,
    )


app.include_router(halopsa_api.router)
