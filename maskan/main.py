"""
FastAPI application entry point.
Builds the application and its shared collaborators from one Settings object.
"""

from typing import Optional
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from pathlib import Path
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from pydantic import ValidationError as PydanticValidationError
import logging

from maskan.config import Settings, get_settings
from maskan.database import build_engine, build_session_factory, check_database_connection, create_tables
from maskan.middleware.request_gate import RequestGateMiddleware, REQUEST_ID_HEADER
from maskan.routers import auth_router, listings_router, profiles_router, notifications_router
from maskan.services.error_handler import ErrorHandlerService
from maskan.services.notifications import EmailSender, WhatsAppSender
from maskan.services.uploads import UploadPipeline
from maskan.storage import build_blob_store
from maskan.utils.auth import TokenService
from maskan.utils.exceptions import APIException

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Creates missing tables on startup; releases the blob store and engine on shutdown.
    """
    settings: Settings = app.state.settings
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    if await check_database_connection(app.state.engine):
        await create_tables(app.state.engine)
    else:
        logger.error("Failed to connect to database on startup")

    yield

    logger.info("Shutting down application")
    await app.state.blob_store.aclose()
    await app.state.engine.dispose()


def register_exception_handlers(app: FastAPI) -> None:
    """Route every error through ErrorHandlerService so all bodies share one shape."""

    @app.exception_handler(APIException)
    async def api_exception_handler(request: Request, exc: APIException):
        return ErrorHandlerService.handle_api_exception(exc, request)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return ErrorHandlerService.handle_validation_error(exc, request)

    @app.exception_handler(PydanticValidationError)
    async def pydantic_validation_exception_handler(request: Request, exc: PydanticValidationError):
        return ErrorHandlerService.handle_validation_error(exc, request)

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError):
        return ErrorHandlerService.handle_database_error(exc, request)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return ErrorHandlerService.handle_http_exception(exc, request)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        return ErrorHandlerService.handle_unexpected_error(exc, request)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Configuration to use; defaults to the cached environment settings

    Returns:
        Configured FastAPI instance with collaborators on ``app.state``
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="""
    Property listings for the MASKAN real-estate front-end.

    ## Features

    * **Accounts**: signup, login, bearer tokens, email verification and password reset
    * **Listings**: owner-scoped create, update and delete with image and PDF uploads
    * **Profiles**: agent and broker intake forms
    * **Notifications**: WhatsApp listing broadcasts

    ## Authentication

    Obtain a token from `/api/signup` or `/api/login` and send it as `Authorization: Bearer <token>`.
    """,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {"name": "Accounts", "description": "Account lifecycle and bearer tokens"},
            {"name": "Listings", "description": "Property listings and their media"},
            {"name": "Profiles", "description": "Agent and broker profiles"},
            {"name": "Notifications", "description": "WhatsApp broadcasts"},
            {"name": "Health", "description": "Service information and health checks"},
        ],
        lifespan=lifespan,
    )

    engine = build_engine(settings)
    blob_store = build_blob_store(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.token_service = TokenService(settings)
    app.state.blob_store = blob_store
    app.state.upload_pipeline = UploadPipeline(blob_store, settings)
    app.state.email_sender = EmailSender(settings)
    app.state.whatsapp_sender = WhatsAppSender(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
        expose_headers=[REQUEST_ID_HEADER],
    )
    app.add_middleware(
        RequestGateMiddleware,
        max_request_size=settings.max_request_size,
        enable_request_logging=not settings.is_testing,
    )

    app.include_router(auth_router, prefix=settings.api_prefix)
    app.include_router(listings_router, prefix=settings.api_prefix)
    app.include_router(profiles_router, prefix=settings.api_prefix)
    app.include_router(notifications_router, prefix=settings.api_prefix)

    register_exception_handlers(app)

    if settings.storage_backend == "local":
        upload_dir = Path(settings.upload_dir)
        upload_dir.mkdir(parents=True, exist_ok=True)
        app.mount("/uploads", StaticFiles(directory=upload_dir), name="uploads")

    @app.get("/", tags=["Health"])
    async def root():
        """Basic API information."""
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.app_version,
            "environment": settings.environment,
            "documentation": {"swagger_ui": "/docs", "redoc": "/redoc"},
            "apiPrefix": settings.api_prefix,
        }

    @app.get("/health", tags=["Health"])
    async def health_check():
        """
        Health check endpoint with database connectivity test.
        Used by Docker health checks and load balancers.
        """
        if not await check_database_connection(engine):
            raise HTTPException(status_code=503, detail="Database connection failed")
        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": settings.app_version,
            "database": "connected",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "maskan.main:app",
        host=get_settings().host,
        port=get_settings().port,
        reload=get_settings().debug
    )
