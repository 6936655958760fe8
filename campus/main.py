"""Campus progress & certification API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from campus.certificates.rendering import CertificateRenderer
from campus.certificates.router import router as certificates_router
from campus.certificates.service import CertificateService
from campus.config import get_settings
from campus.core.context import get_request_id
from campus.core.database import init_async_cassandra, shutdown_async_cassandra
from campus.core.logging import configure_structlog, get_logger
from campus.core.middleware import RequestContextMiddleware
from campus.courses.service import CourseService, ModuleService
from campus.exams.service import ExamService
from campus.health.router import router as health_router
from campus.progress.router import router as progress_router
from campus.progress.service import ProgressService
from campus.progress.store import ProgressStore
from campus.users.service import UserService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


# Application state for dependency injection
class AppState:
    """Application state container."""

    cassandra_session: Any = None
    user_service: UserService | None = None
    course_service: CourseService | None = None
    module_service: ModuleService | None = None
    exam_service: ExamService | None = None
    progress_service: ProgressService | None = None
    certificate_service: CertificateService | None = None


app_state = AppState()


def build_services(session: Any, keyspace: str) -> None:
    """Wire every service on top of one Cassandra session."""
    app_state.user_service = UserService(session=session, keyspace=keyspace)
    app_state.course_service = CourseService(session=session, keyspace=keyspace)
    app_state.module_service = ModuleService(session=session, keyspace=keyspace)
    app_state.exam_service = ExamService(session=session, keyspace=keyspace)
    logger.info("directory_services_initialized")

    app_state.progress_service = ProgressService(
        user_service=app_state.user_service,
        course_service=app_state.course_service,
        module_service=app_state.module_service,
        store=ProgressStore(session=session, keyspace=keyspace),
    )
    logger.info("progress_service_initialized")

    app_state.certificate_service = CertificateService(
        session=session,
        keyspace=keyspace,
        user_service=app_state.user_service,
        course_service=app_state.course_service,
        exam_service=app_state.exam_service,
        aggregator=app_state.progress_service.aggregator,
        renderer=CertificateRenderer(
            issuer_name=settings.certificate_issuer_name,
            template_dir=settings.certificate_template_dir,
            qr_scale=settings.certificate_qr_scale,
        ),
        public_base_url=settings.certificate_public_base_url,
        validation_path=settings.certificate_validation_path,
        qr_scale=settings.certificate_qr_scale,
    )
    logger.info(
        "certificate_service_initialized",
        public_base_url=settings.certificate_public_base_url,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Initialize Cassandra (async)
    try:
        app_state.cassandra_session = await init_async_cassandra()
        logger.info("cassandra_initialized")

        build_services(app_state.cassandra_session, settings.cassandra_keyspace)

        # Also set on app.state for dependency injection via request.app.state
        app.state.progress_service = app_state.progress_service
        app.state.certificate_service = app_state.certificate_service
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await shutdown_async_cassandra()


def _error_content(detail: Any, status_code: int, request_id: str | None) -> dict:
    """Error body; dict details (message, code, extras) are merged in."""
    content: dict[str, Any] = {
        "error": True,
        "status_code": status_code,
        "request_id": request_id,
    }
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        content["message"] = "Internal server error"
        if isinstance(detail, dict) and "code" in detail:
            content["code"] = detail["code"]
    elif isinstance(detail, dict):
        content.update(detail)
        content.setdefault("message", "Error")
    else:
        content["message"] = str(detail)
    return content


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Stack traces never reach responses; handlers below log them instead
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Progreso de cursos y certificados - API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=exc.status_code,
            content=_error_content(
                exc.detail, exc.status_code, _get_request_id_safe(request)
            ),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors with per-field details."""
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "message": "Validation error",
                "status_code": 422,
                "request_id": _get_request_id_safe(request),
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions.

        Details are logged internally, never returned.
        """
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "message": "An unexpected error occurred. Please try again later.",
                "status_code": 500,
                "request_id": _get_request_id_safe(request),
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(progress_router)
    app.include_router(certificates_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "Campus API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
