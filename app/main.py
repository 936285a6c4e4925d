from app.core.config import get_settings
from app.core.errors import IntegrityViolation, LandRegistryError
from app.core.logging import configure_logging
from app.core.middleware import RequestIdMiddleware
from app.api.v1.router import v1_router

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import logging

logger = logging.getLogger(__name__)


async def land_registry_error_handler(request: Request, exc: LandRegistryError) -> JSONResponse:
    rid = getattr(request.state, "request_id", None)
    if isinstance(exc, IntegrityViolation):
        logger.critical(
            "integrity violation on %s %s: %s",
            request.method,
            request.url.path,
            exc.message,
            extra={"request_id": rid},
        )
    else:
        logger.info(
            "%s on %s %s: %s",
            exc.code,
            request.method,
            request.url.path,
            exc.message,
            extra={"request_id": rid},
        )
    content = {"detail": exc.message, "code": exc.code}
    if getattr(exc, "retryable", False):
        content["retryable"] = True
    return JSONResponse(status_code=exc.status_code, content=content)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
    )
    # Middleware: Request ID
    app.add_middleware(RequestIdMiddleware, header_name=settings.request_id_header)

    # Domain errors -> typed JSON bodies
    app.add_exception_handler(LandRegistryError, land_registry_error_handler)

    # API v1
    app.include_router(v1_router, prefix=settings.api_prefix)

    return app


app = create_app()
