#!/usr/bin/env python3
"""
Mail Cleaner Web Application
FastAPI server that empties Gmail categories with WebSocket progress updates
"""

import asyncio
import html
import json
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Set

from fastapi import FastAPI, Header, Request, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from pydantic import BaseModel, Field

from mailcleaner import __version__
from mailcleaner.auth import authorization_url, exchange_code
from mailcleaner.cleaner import CategoryCleaner
from mailcleaner.config import Settings, configure_logging
from mailcleaner.errors import AuthError, CleanupInterrupted, ConfigError, GmailError
from mailcleaner.gmail_service import GmailClient
from mailcleaner.metrics import Metrics
from mailcleaner.models import Category, UNLIMITED_MAX_PER_CATEGORY
from mailcleaner.pacing import FixedDelayPacer


logger = logging.getLogger(__name__)

SERVICE_NAME = "mailcleaner"
REQUEST_ID_HEADER = "X-Request-ID"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
}

AUTH_SUCCESS_PAGE = """<!DOCTYPE html>
<html>
<head><title>Authentication Success - Mail Cleaner</title></head>
<body>
    <h2>Authentication Successful!</h2>
    <p>Welcome, {name}!</p>
    <p>Redirecting you to the application...</p>
    <script>
        const auth = {payload};
        localStorage.setItem('gmail_access_token', auth.access_token);
        localStorage.setItem('user_email', auth.user_email);
        localStorage.setItem('user_name', auth.user_name);
        localStorage.setItem('user_picture', auth.user_picture);
        localStorage.setItem('auth_expires_in', String(auth.expires_in));
        localStorage.setItem('auth_timestamp', Date.now().toString());
        setTimeout(() => {{ window.location.href = '/'; }}, 2000);
    </script>
</body>
</html>"""


class ConnectionManager:
    """Manage WebSocket connections"""

    def __init__(self):
        self.active_connections: Set[WebSocket] = set()

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.add(websocket)

    def disconnect(self, websocket: WebSocket):
        self.active_connections.discard(websocket)

    async def broadcast(self, message_type: str, data: Dict):
        """Broadcast message to all connected clients"""
        message = {"type": message_type, "data": data}
        disconnected = set()

        for connection in list(self.active_connections):
            try:
                await connection.send_text(json.dumps(message))
            except Exception as e:
                logger.debug(f"Dropping websocket client: {e}")
                disconnected.add(connection)

        # Remove disconnected clients
        for conn in disconnected:
            self.active_connections.discard(conn)


# Request models
class CleanRequest(BaseModel):
    categories: List[Category] = Field(..., min_length=1)
    max_per_category: int = Field(0, ge=0, le=UNLIMITED_MAX_PER_CATEGORY)


def _wants_json(request: Request) -> bool:
    """Frontend fetch calls get JSON; browser navigation gets HTML/redirects"""
    return (
        request.headers.get("x-requested-with") == "XMLHttpRequest"
        or request.headers.get("accept") == "application/json"
        or request.query_params.get("format") == "json"
    )


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def create_app(
    settings: Optional[Settings] = None,
    client_factory: Optional[Callable[[str], GmailClient]] = None,
    pacer_factory: Optional[Callable] = None
) -> FastAPI:
    """Build the FastAPI application"""
    settings = settings or Settings()

    app = FastAPI(title="Mail Cleaner", description="Empty Gmail categories and trash", version=__version__)
    app.state.settings = settings
    app.state.metrics = Metrics()
    app.state.manager = ConnectionManager()
    app.state.client_factory = client_factory or GmailClient.from_access_token
    app.state.pacer_factory = pacer_factory or (lambda: FixedDelayPacer(settings.rate_limit_delay))

    # === Middleware (registered innermost first) ===

    @app.middleware("http")
    async def log_and_measure(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start
        app.state.metrics.record_request(request.url.path, response.status_code, duration)
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"({duration * 1000:.1f}ms) request_id={getattr(request.state, 'request_id', '-')}"
        )
        return response

    @app.middleware("http")
    async def recover(request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            request_id = getattr(request.state, "request_id", None)
            logger.error(f"Unhandled error on {request.method} {request.url.path}: {e}", exc_info=True)
            app.state.metrics.record_request(request.url.path, 500, 0.0)
            return JSONResponse(
                status_code=500,
                content={"error": "internal server error", "request_id": request_id}
            )

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    @app.middleware("http")
    async def request_id(request: Request, call_next):
        request.state.request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request.state.request_id
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "invalid request", "details": jsonable_encoder(exc.errors())}
        )

    # === Routes ===

    @app.get("/")
    def root():
        return {
            "service": SERVICE_NAME,
            "login": "/auth/login",
            "clean": "/api/v1/clean"
        }

    @app.get("/auth/login")
    def login():
        """Redirect to Google's consent screen"""
        try:
            url = authorization_url(settings)
        except ConfigError as e:
            return JSONResponse(status_code=500, content={"error": str(e)})
        return RedirectResponse(url=url, status_code=307)

    @app.get("/auth/callback")
    def oauth_callback(request: Request, code: Optional[str] = None, error: Optional[str] = None):
        """Handle OAuth2 callback from Google"""
        wants_json = _wants_json(request)

        if error:
            if wants_json:
                return JSONResponse(status_code=400, content={"error": error})
            return RedirectResponse(url="/?error=" + error, status_code=307)

        if not code:
            if wants_json:
                return JSONResponse(status_code=400, content={
                    "error": "missing code",
                    "help": "This endpoint is called by Google after authorization. Start the flow at /auth/login"
                })
            return RedirectResponse(url="/?error=auth_failed", status_code=307)

        try:
            result = exchange_code(settings, code)
        except ConfigError as e:
            if wants_json:
                return JSONResponse(status_code=500, content={"error": str(e)})
            return RedirectResponse(url="/?error=server_error", status_code=307)
        except Exception as e:
            logger.error(f"Token exchange failed: {e}")
            if wants_json:
                return JSONResponse(status_code=400, content={"error": str(e)})
            return RedirectResponse(url="/?error=token_exchange_failed", status_code=307)

        if wants_json:
            return result.to_dict()

        page = AUTH_SUCCESS_PAGE.format(
            name=html.escape(result.user_name or result.user_email),
            payload=json.dumps(result.to_dict()).replace("</", "<\\/")
        )
        return HTMLResponse(content=page)

    @app.post("/api/v1/clean")
    async def clean(body: CleanRequest, x_access_token: Optional[str] = Header(None)):
        """Empty the requested categories for the token's mailbox"""
        if not x_access_token:
            return JSONResponse(status_code=401, content={
                "error": "missing X-Access-Token",
                "message": "Please re-authenticate with your Gmail account",
                "action": "reauth_required"
            })

        manager: ConnectionManager = app.state.manager
        metrics: Metrics = app.state.metrics

        try:
            client = app.state.client_factory(x_access_token)
        except Exception as e:
            logger.error(f"Could not build Gmail client: {e}")
            return JSONResponse(status_code=500, content={"error": str(e)})

        cleaner = CategoryCleaner(client, app.state.pacer_factory(), progress_callback=manager.broadcast)
        categories = [c.value for c in body.categories]
        run = cleaner.clean("me", categories, body.max_per_category)

        try:
            if settings.clean_timeout_seconds:
                summary = await asyncio.wait_for(run, timeout=settings.clean_timeout_seconds)
            else:
                summary = await run
        except AuthError as e:
            metrics.record_cleanup_failure()
            logger.warning(f"Cleanup rejected by Gmail: {e}")
            return JSONResponse(status_code=401, content={
                "error": "Authentication failed or insufficient permissions",
                "suggestion": "Please re-authenticate with the required Gmail scopes",
                "details": str(e)
            })
        except asyncio.TimeoutError:
            metrics.record_cleanup_failure()
            logger.error(f"Cleanup timed out after {settings.clean_timeout_seconds}s")
            return JSONResponse(status_code=504, content={"error": "cleanup timed out"})
        except (GmailError, CleanupInterrupted) as e:
            metrics.record_cleanup_failure()
            logger.error(f"Cleanup failed: {e}")
            return JSONResponse(status_code=500, content={"error": str(e)})

        metrics.record_cleanup(summary.total_deleted)
        return summary.to_response()

    # === Health ===

    @app.get("/health")
    def health_check():
        return {"status": "healthy", "timestamp": _now(), "version": __version__, "service": SERVICE_NAME}

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    @app.get("/ready")
    def ready():
        return {
            "status": "ready",
            "checks": {"oauth2": "ok" if settings.oauth_configured else "not_configured"}
        }

    @app.get("/live")
    def live():
        return {"status": "alive"}

    @app.get("/metrics")
    def metrics():
        return {"metrics": app.state.metrics.snapshot(), "timestamp": _now()}

    @app.get("/info")
    def info():
        return {
            "service": "Mail Cleaner",
            "version": __version__,
            "description": "Gmail category and trash cleanup service",
            "framework": "FastAPI",
            "categories": [c.value for c in Category],
            "features": [
                "OAuth2 Authentication",
                "Gmail API Integration",
                "Per-category cleanup with caps",
                "Permanent trash deletion",
                "WebSocket progress updates",
                "Request metrics"
            ]
        }

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """WebSocket endpoint for real-time cleanup progress"""
        manager: ConnectionManager = app.state.manager
        await manager.connect(websocket)
        try:
            while True:
                # Keep connection alive; client messages are ignored
                await websocket.receive_text()
        except WebSocketDisconnect:
            manager.disconnect(websocket)

    return app


_settings = Settings()
configure_logging(_settings.log_level)
logger.info(f"Starting Mail Cleaner with log level: {_settings.log_level}")

app = create_app(_settings)


def serve():
    """Run the API with uvicorn"""
    import uvicorn

    uvicorn.run("mailcleaner.main:app", host=_settings.host, port=_settings.port, log_level=_settings.log_level.lower())

# To run this application, use:
# uv run python -m uvicorn mailcleaner.main:app --reload
