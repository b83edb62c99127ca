import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from pasteboard.api import routes, web
from pasteboard.api.auth import AuthService
from pasteboard.api.config import Settings, setup_logging, validate_runtime_config
from pasteboard.api.database import create_db_engine, create_session_factory, init_schema
from pasteboard.api.errors import AuthError, PasteboardError
from pasteboard.api.notes import NotesService

logger = logging.getLogger(__name__)


async def pasteboard_error_handler(request: Request, exc: PasteboardError) -> JSONResponse:
    """Render expected service errors as {"detail": message} with their status."""
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message}, headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.debug("Rejected request body for %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid request body"},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception in %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the Pasteboard application.

    The storage handle and the services are created here and attached to
    app.state; tables are created and expired sessions purged at startup,
    and the engine is disposed at shutdown.
    """
    settings = settings or Settings.from_env()
    validate_runtime_config(settings)
    setup_logging(settings.log_level)

    engine = create_db_engine(settings.database_url)
    session_factory = create_session_factory(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Pasteboard (database: %s)", engine.url.render_as_string(hide_password=True))
        init_schema(engine)
        purged = app.state.auth_service.purge_expired_sessions()
        if purged:
            logger.info("Purged %d expired sessions", purged)
        yield
        engine.dispose()
        logger.info("Database connection closed.")

    app = FastAPI(
        title="Pasteboard",
        description="Personal notes with server-rendered pages and a session-authenticated JSON API.",
        version="1.0.0",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "Health", "description": "Service health and status."},
            {"name": "Pages", "description": "Login, registration and home pages."},
            {"name": "Notes", "description": "CRUD operations for notes."},
        ],
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.auth_service = AuthService(session_factory, settings)
    app.state.notes_service = NotesService(session_factory)

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie="pasteboard.sid",
        max_age=settings.session_max_age,
        same_site="lax",
        https_only=settings.session_secure,
    )

    app.add_exception_handler(PasteboardError, pasteboard_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # PUBLIC_INTERFACE
    @app.get("/health", tags=["Health"], summary="Health Check")
    def health_check():
        """
        Health check endpoint.

        Returns:
            JSON object indicating service status.
        """
        return {"message": "Healthy"}

    app.include_router(web.router, tags=["Pages"])
    app.include_router(routes.router, prefix="/api", tags=["Notes"])
    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn; Ctrl-C shuts down through the lifespan."""
    settings: Settings = app.state.settings
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
