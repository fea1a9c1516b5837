import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from brightpath.api.routes import api_router
from brightpath.core.config import get_settings
from brightpath.core.errors import (
    ConcurrentRegenerationConflict,
    ConstraintConflict,
    InvalidScheduleTransition,
    NotFound,
    ScheduleItemConflict,
)

logger = logging.getLogger(__name__)


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ConstraintConflict)
    async def constraint_conflict_handler(request: Request, exc: ConstraintConflict):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": str(exc), "conflicts": exc.to_detail()},
        )

    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    async def conflict_handler(request: Request, exc: Exception):
        logger.info(f"{request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})

    for error in (
        ConcurrentRegenerationConflict,
        InvalidScheduleTransition,
        ScheduleItemConflict,
    ):
        app.add_exception_handler(error, conflict_handler)


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="BrightPath",
        docs_url="/docs" if settings.environment == "development" else None,
        redoc_url="/redoc" if settings.environment == "development" else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_error_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()
