"""
AI Learning Platform API v1.0
Gamified lessons, XP and levels, and coin-metered AI tools
"""

from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from routes import ai, auth, blocks, learning, progress, users
from schemas.openapi_models import BILLING_RESPONSES, COMMON_RESPONSES, OpenAPIMetadata, OpenAPITags
from utils.error_handling import AppError
from utils.events import ExperienceChanged, event_bus, log_level_up
from utils.structured_logging import configure_logging, get_logger, log_request_middleware, LogCategory

# Configure structured logging system
configure_logging(level="INFO", json_output=True)
logger = get_logger("app")

app = FastAPI(
    title=OpenAPIMetadata.TITLE,
    description=OpenAPIMetadata.DESCRIPTION,
    version=OpenAPIMetadata.VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    openapi_tags=OpenAPITags.ALL,
)

# CORS configuration - Load from environment
origins = [origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With", "X-Correlation-ID", "Accept", "Origin"],
    expose_headers=["X-Correlation-ID", "X-Request-ID"],
)

event_bus.subscribe(ExperienceChanged, log_level_up)


# Structured logging middleware - adds correlation IDs and logs all requests
@app.middleware("http")
async def structured_logging_middleware(request: Request, call_next):
    return await log_request_middleware(request, call_next)


def _error_content(request: Request, status_code: int, error, detail) -> dict:
    return {
        "success": False,
        "error": error,
        "detail": detail,
        "status_code": status_code,
        "request_id": getattr(request.state, "request_id", None),
        "correlation_id": getattr(request.state, "correlation_id", None),
    }


# Global exception handlers
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Domain errors carry their own status code and structured detail"""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"{type(exc).__name__}: {exc.message}",
        category=LogCategory.ERROR,
        request_method=request.method,
        request_path=request.url.path,
        response_status=exc.status_code,
        user_id=getattr(request.state, "user_id", None),
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(request, exc.status_code, exc.message, exc.to_detail()),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(loc) for loc in error["loc"]), "message": error["msg"], "code": error["type"]}
        for error in exc.errors()
    ]

    logger.warning(
        "Validation error",
        category=LogCategory.ERROR,
        request_method=request.method,
        request_path=request.url.path,
        error_type="ValidationError",
        error_message=f"{len(errors)} validation errors",
        extra={"errors": errors},
    )

    return JSONResponse(status_code=422, content=_error_content(request, 422, "Validation Error", errors))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code >= 500:
        logger.error(
            f"HTTP {exc.status_code} error",
            category=LogCategory.ERROR,
            request_method=request.method,
            request_path=request.url.path,
            response_status=exc.status_code,
            error_message=str(exc.detail),
        )
    elif exc.status_code >= 400:
        logger.warning(
            f"HTTP {exc.status_code} client error",
            category=LogCategory.ERROR,
            request_method=request.method,
            request_path=request.url.path,
            response_status=exc.status_code,
            error_message=str(exc.detail),
        )

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_content(request, exc.status_code, exc.detail, exc.detail),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.critical(
        "Unexpected server error",
        category=LogCategory.ERROR,
        exception=exc,
        request_method=request.method,
        request_path=request.url.path,
        user_id=getattr(request.state, "user_id", None),
    )

    return JSONResponse(
        status_code=500,
        content=_error_content(
            request, 500, "Internal Server Error", "An unexpected error occurred. Please try again later."
        ),
    )


app.include_router(
    learning.router,
    prefix="/api/v1",
    tags=[OpenAPITags.LEARNING["name"]],
    responses=COMMON_RESPONSES,
)

app.include_router(
    progress.router,
    prefix="/api/v1/progress",
    tags=[OpenAPITags.PROGRESS["name"]],
    responses=COMMON_RESPONSES,
)

app.include_router(
    blocks.router,
    prefix="/api/v1/blocks",
    tags=[OpenAPITags.BLOCKS["name"]],
    responses={**COMMON_RESPONSES, **BILLING_RESPONSES},
)

app.include_router(
    ai.router,
    prefix="/api/v1/ai",
    tags=[OpenAPITags.AI["name"]],
    responses={**COMMON_RESPONSES, **BILLING_RESPONSES},
)

app.include_router(
    users.router,
    prefix="/api/v1/me",
    tags=[OpenAPITags.USERS["name"]],
    responses=COMMON_RESPONSES,
)

app.include_router(
    auth.router,
    prefix="/api/v1/auth",
    tags=[OpenAPITags.AUTH["name"]],
    responses=COMMON_RESPONSES,
)


@app.get(
    "/",
    tags=[OpenAPITags.SYSTEM["name"]],
    summary="API Information",
    description="API version, status and service endpoints",
)
async def root():
    return {
        "name": "AI Learning Platform API",
        "version": OpenAPIMetadata.VERSION,
        "status": "operational",
        "documentation": {"swagger": "/docs", "redoc": "/redoc", "openapi_spec": "/openapi.json"},
        "timestamp": datetime.utcnow().isoformat(),
        "services": {
            "learning": {"endpoint": "/api/v1/courses", "description": "Courses, learning paths and lessons"},
            "progress": {"endpoint": "/api/v1/progress", "description": "Lesson completion and rewards"},
            "blocks": {"endpoint": "/api/v1/blocks", "description": "Quiz answers, AI chat and graded tasks"},
            "ai": {"endpoint": "/api/v1/ai", "description": "Metered generation and evaluation"},
            "me": {"endpoint": "/api/v1/me", "description": "Coins, experience and levels"},
            "auth": {"endpoint": "/api/v1/auth", "description": "Email and Telegram login"},
        },
    }


@app.get(
    "/health",
    tags=[OpenAPITags.SYSTEM["name"]],
    summary="Health Check",
    description="Service health monitoring endpoint for uptime checks",
)
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": OpenAPIMetadata.VERSION,
    }
