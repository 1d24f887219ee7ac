# cinefav/main.py
import logging
import time
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .config import Settings, get_settings
from .errors import CinefavError
from .movies import movies_router
from .movies.schemas import ErrorResponse, HealthStatus


logger = logging.getLogger(__name__)

CORS_METHODS = ["GET", "HEAD", "PUT", "PATCH", "POST", "DELETE"]


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def handle_domain_error(request: Request, exc: CinefavError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    payload = ErrorResponse(
        error_type=exc.error_type,
        message=exc.message,
        status_code=exc.status_code,
        path=request.url.path,
    )
    return JSONResponse(status_code=exc.status_code, content=payload.model_dump())


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Cinefav",
        description=(
            "Search a movie catalog and keep a persistent list of "
            "favorite titles."
        ),
        version=__version__,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_methods=CORS_METHODS,
        allow_headers=["*"],
        allow_credentials=True,
    )
    app.add_exception_handler(CinefavError, handle_domain_error)
    app.include_router(movies_router)

    started_at = time.monotonic()

    @app.get("/health", response_model=HealthStatus)
    def health_check() -> HealthStatus:
        return HealthStatus(
            timestamp=datetime.now(timezone.utc),
            uptime=round(time.monotonic() - started_at, 3),
            environment=settings.environment,
        )

    return app


app = create_app()
