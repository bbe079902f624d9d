from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from fastapi import APIRouter, FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from jose import JWTError
from starlette.concurrency import run_in_threadpool

from alleye.core.errors import AlleyeError
from alleye.core.logging import configure_logging, correlation_id_var, user_id_var
from alleye.core.security import decode_access_token, get_token_subject
from alleye.core.settings import get_app_settings
from alleye.db.models import Profile
from alleye.db.run_migrations import main as run_alembic
from alleye.db.seed import seed_all
from alleye.db.session import dispose_engine, get_session_maker
from alleye.schemas.common import ErrorInfo, ErrorResponse, MessageResponse
from alleye.services.profiles import ProfileService
from alleye.services.realtime import ADMIN_TABLES, broadcast_manager

# Routers
from alleye.api.routes.auth import router as auth_router
from alleye.api.routes.me import router as me_router
from alleye.api.routes.users import router as users_router
from alleye.api.routes.organizations import router as organizations_router
# Learning domain routers
from alleye.api.routes.content import admin_router as content_admin_router
from alleye.api.routes.content import router as content_router
from alleye.api.routes.playlists import assignments_router
from alleye.api.routes.playlists import router as playlists_router
from alleye.api.routes.videos import router as videos_router
from alleye.api.routes.progress import router as progress_router
from alleye.api.routes.news import router as news_router
from alleye.api.routes.qanda import router as qanda_router
from alleye.api.routes.analytics import router as analytics_router
from alleye.api.routes.reports import router as reports_router
from alleye.api.routes.recommendations import router as recommendations_router

settings = get_app_settings()

# Configure structured logging once at import
configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

WS_UNAUTHORIZED = 4401
WS_FORBIDDEN = 4403

openapi_tags = [
    {"name": "Health", "description": "Liveness check."},
    {"name": "Auth", "description": "Sign-up, login, refresh, logout and social sign-in via the hosted auth provider."},
    {"name": "Me", "description": "The caller's own profile and assignments."},
    {"name": "Users", "description": "User administration (admin; ciso/lead read their own organization)."},
    {"name": "Organizations", "description": "Organizations and their members."},
    {"name": "Content", "description": "Learner catalog and administrator content management."},
    {"name": "Playlists", "description": "Ordered collections of content."},
    {"name": "Assignments", "description": "Content and playlists assigned to individual users."},
    {"name": "Videos", "description": "Playable video URL resolution (signed storage URLs)."},
    {"name": "Progress", "description": "Start/complete content, quiz grading, points and badges."},
    {"name": "News", "description": "News and threat intelligence."},
    {"name": "Q&A", "description": "Learner questions and administrator answers."},
    {"name": "Analytics", "description": "Learner and administrator analytics."},
    {"name": "Reports", "description": "Exportable reports (CSV/Excel/PDF)."},
    {"name": "Recommendations", "description": "Personalized next-content suggestions."},
    {
        "name": "WebSocket",
        "description": "WebSocket usage, endpoints, and connection details.",
    },
]

app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    openapi_tags=openapi_tags,
)

# CORS - avoid wildcard with credentials
cors_allow_credentials = settings.CORS_ALLOW_CREDENTIALS
if settings.CORS_ORIGINS == ["*"] and cors_allow_credentials:
    logger.warning("CORS_ALLOW_CREDENTIALS=True with '*' origins is not permitted; disabling credentials.")
    cors_allow_credentials = False

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=cors_allow_credentials,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)


def _bearer_subject(request: Request) -> Optional[str]:
    auth = request.headers.get("Authorization") or ""
    scheme, _, token = auth.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return get_token_subject(token)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """
    Enrich request context with correlation_id and user_id for logging and error responses.
    Adds 'X-Correlation-ID' to every response.
    """
    corr = request.headers.get("X-Correlation-ID") or request.headers.get("X-Request-ID") or str(uuid4())
    user = _bearer_subject(request)
    token_corr = correlation_id_var.set(corr)
    token_user = user_id_var.set(user)
    request.state.correlation_id = corr
    request.state.user_id = user

    logger.info("Incoming request %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(token_corr)
        user_id_var.reset(token_user)

    response.headers["X-Correlation-ID"] = corr
    return response


def _build_error_response(
    request: Request,
    status_code: int,
    error_type: str,
    message: str,
    details: Any | None = None,
) -> JSONResponse:
    """Build a standardized ErrorResponse JSONResponse."""
    err = ErrorResponse(
        status=status_code,
        error=ErrorInfo(type=error_type, message=message, details=details),
        correlation_id=getattr(request.state, "correlation_id", None),
        user_id=getattr(request.state, "user_id", None),
        path=request.url.path,
        method=request.method,
        timestamp=datetime.now(tz=timezone.utc),
    )
    return JSONResponse(status_code=status_code, content=err.model_dump(mode="json"))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Render HTTPException with the standard error envelope."""
    detail = exc.detail if isinstance(exc.detail, str) else "HTTP Error"
    response = _build_error_response(
        request=request,
        status_code=exc.status_code,
        error_type="http_error",
        message=str(detail),
        details=None if isinstance(exc.detail, str) else exc.detail,
    )
    if exc.headers:
        response.headers.update(exc.headers)
    return response


def _jsonable_errors(exc: RequestValidationError) -> List[Dict[str, Any]]:
    # pydantic puts the raised exception object under ctx.error for custom validators
    out = []
    for err in exc.errors():
        err = dict(err)
        ctx = err.get("ctx")
        if isinstance(ctx, dict) and "error" in ctx:
            err["ctx"] = {**ctx, "error": str(ctx["error"])}
        out.append(err)
    return out


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Render request validation errors with a standard structure."""
    return _build_error_response(
        request=request,
        status_code=422,
        error_type="validation_error",
        message="Request validation failed",
        details=_jsonable_errors(exc),
    )

@app.exception_handler(AlleyeError)
async def domain_exception_handler(request: Request, exc: AlleyeError):
    """Map service-level errors to their HTTP status."""
    if exc.status_code >= 500:
        logger.error("%s: %s (%s)", exc.error_type, exc.message, exc.details)
    return _build_error_response(
        request=request,
        status_code=exc.status_code,
        error_type=exc.error_type,
        message=exc.message,
        details=exc.details,
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch-all handler to avoid leaking stack traces and to return a structured error."""
    logger.exception("Unhandled error processing request")
    return _build_error_response(
        request=request,
        status_code=500,
        error_type="internal_error",
        message="An unexpected error occurred",
        details=None,
    )


@app.on_event("startup")
async def on_startup() -> None:
    """
    Run migrations and optional seeding on service startup.

    Seeding is opt-in via settings.
    """
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        try:
            logger.info("Running Alembic migrations: upgrade head")
            # env.py drives its own event loop
            await run_in_threadpool(run_alembic, ["upgrade", "head"])
            logger.info("Migrations completed.")
        except (Exception, SystemExit) as exc:
            # run_alembic exits on failure; keep serving and let health checks report it
            logger.exception("Migration step failed: %s", exc)

    if settings.AUTO_SEED:
        try:
            logger.info("Running database seeding...")
            await seed_all()
            logger.info("Seeding completed.")
        except Exception as exc:
            logger.exception("Seeding step failed: %s", exc)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await dispose_engine()


# Build API v1 router and include sub-routers
api_v1 = APIRouter(prefix="/api/v1")


# PUBLIC_INTERFACE
@api_v1.get(
    "/health",
    response_model=MessageResponse,
    summary="Health Check",
    tags=["Health"],
)
def health_check() -> MessageResponse:
    """
    Basic liveness health check endpoint.

    Returns:
        MessageResponse: Simple confirmation that the service is running.
    """
    return MessageResponse(message="Healthy")


# PUBLIC_INTERFACE
@api_v1.get(
    "/websocket-info",
    response_model=Dict[str, Any],
    summary="WebSocket Usage Information",
    description="Connection details for the change-notification WebSocket endpoints.",
    tags=["WebSocket"],
)
def websocket_info() -> Dict[str, Any]:
    """Describe how to connect to WebSocket endpoints in this service."""
    return {
        "usage": (
            "Connect with a valid access token as a 'token' query parameter. "
            "The server pushes JSON envelopes { type: 'change', payload: { table, event_type, new, old }, at: ISO-8601 }. "
            "Send the text 'ping' to receive 'pong'."
        ),
        "security": {
            "token": "Access token issued by the auth provider (same token as the REST Authorization header).",
            "close_codes": {str(WS_UNAUTHORIZED): "missing or invalid token", str(WS_FORBIDDEN): "role not allowed"},
        },
        "endpoints": [
            {
                "path": "/ws/admin",
                "summary": "Change events of every administrator-facing table (admin only).",
                "query": ["token"],
                "tables": list(ADMIN_TABLES),
            },
            {
                "path": "/ws/me",
                "summary": "UPDATE events of the caller's own profile (points, badges, progress).",
                "query": ["token"],
                "tables": ["profiles"],
            },
        ],
        "notes": "WebSocket endpoints are not represented in OpenAPI schema; refer to this endpoint for usage.",
    }


# Include all routers under /api/v1
api_v1.include_router(auth_router)
api_v1.include_router(me_router)
api_v1.include_router(users_router)
api_v1.include_router(organizations_router)
api_v1.include_router(content_router)
api_v1.include_router(content_admin_router)
api_v1.include_router(playlists_router)
api_v1.include_router(assignments_router)
api_v1.include_router(videos_router)
api_v1.include_router(progress_router)
api_v1.include_router(news_router)
api_v1.include_router(qanda_router)
api_v1.include_router(analytics_router)
api_v1.include_router(reports_router)
api_v1.include_router(recommendations_router)

# Attach api_v1 to app
app.include_router(api_v1)


async def _authenticate_ws(websocket: WebSocket) -> Profile:
    """
    Resolve the profile behind the 'token' query parameter.

    Closes the (already accepted) socket with 4401 and raises WebSocketDisconnect
    when the token is missing or invalid.
    """
    token = websocket.query_params.get("token")
    try:
        if not token:
            raise JWTError("Missing token")
        claims = decode_access_token(token)
        UUID(claims.sub)
    except (JWTError, ValueError):
        await websocket.close(code=WS_UNAUTHORIZED)
        raise WebSocketDisconnect(code=WS_UNAUTHORIZED)

    async with get_session_maker()() as session:
        profile = await ProfileService(session).get_or_provision(claims)
    if not profile.is_active:
        await websocket.close(code=WS_FORBIDDEN)
        raise WebSocketDisconnect(code=WS_FORBIDDEN)
    return profile


async def _serve(websocket: WebSocket, topics: List[str]) -> None:
    """Subscribe to topics and answer pings until the client goes away."""
    await broadcast_manager.connect_many(topics, websocket)
    try:
        while True:
            msg = await websocket.receive_text()
            if msg and msg.strip().lower() == "ping":
                await websocket.send_text("pong")
            # other client messages are ignored
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("Error on websocket connection")
        await websocket.close()
    finally:
        await broadcast_manager.disconnect_many(topics, websocket)


# PUBLIC_INTERFACE
@app.websocket("/ws/admin")
async def ws_admin(websocket: WebSocket):
    """
    Change notifications for administrator dashboards.

    Security:
      - Query param 'token' must be a valid access token of an active admin profile.
    Messages:
      - Server -> Client: type='change' payload={table, event_type, new, old}
      - Client -> Server: 'ping' answered with 'pong'; other messages ignored.
    """
    await websocket.accept()
    try:
        profile = await _authenticate_ws(websocket)
    except WebSocketDisconnect:
        return
    if profile.role != "admin":
        await websocket.close(code=WS_FORBIDDEN)
        return
    await _serve(websocket, [broadcast_manager.table_topic(t) for t in ADMIN_TABLES])


# PUBLIC_INTERFACE
@app.websocket("/ws/me")
async def ws_me(websocket: WebSocket):
    """
    Updates of the caller's own profile (points, badges, progress).

    Security:
      - Query param 'token' must be a valid access token.
    """
    await websocket.accept()
    try:
        profile = await _authenticate_ws(websocket)
    except WebSocketDisconnect:
        return
    await _serve(websocket, [broadcast_manager.profile_topic(profile.id)])
