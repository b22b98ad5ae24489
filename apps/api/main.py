import logging
import time
import uuid

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from packages.config import CORS_ORIGINS
from packages.error_reporting import init_error_reporting
from packages.logging_utils import setup_logging
from packages.metrics import inc, labelled, observe
from packages.request_context import request_id_var
from packages.store import StoreError
from .routes import activities as activities_routes
from .routes import diary as diary_routes
from .routes import health as health_routes
from .routes import metrics as metrics_routes

ROUTERS = (
    health_routes.router,
    activities_routes.router,
    diary_routes.router,
    metrics_routes.router,
)
# Unprefixed for local tools, /api for the web client, /api/v1 for pinned callers.
PREFIXES = ("", "/api", "/api/v1")

setup_logging()
init_error_reporting("activitylog-api", enable_fastapi=True)
logger = logging.getLogger("activitylog.api")


def error_response(status_code: int, code: str, message: str, details: dict | None = None) -> JSONResponse:
    """Every error leaves the API as {"error": {code, message, request_id[, details]}}."""
    error = {"code": code, "message": message, "request_id": request_id_var.get() or "-"}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error})


def create_app() -> FastAPI:
    api = FastAPI(title="Activity Log API")
    api.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    api.middleware("http")(track_request)
    api.add_exception_handler(HTTPException, on_http_error)
    api.add_exception_handler(StoreError, on_store_error)
    api.add_exception_handler(Exception, on_unexpected_error)
    for prefix in PREFIXES:
        for router in ROUTERS:
            api.include_router(router, prefix=prefix)
    return api


async def track_request(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    token = request_id_var.set(request_id)
    started = time.perf_counter()
    status = "ERR"
    try:
        response = await call_next(request)
        status = str(response.status_code)
        response.headers["x-request-id"] = request_id
        return response
    finally:
        elapsed = time.perf_counter() - started
        inc("http_requests_total")
        inc(labelled("http_requests_total", path=request.url.path, status=status))
        observe("http_request_duration_seconds", elapsed)
        logger.info("%s %s -> %s %.1fms", request.method, request.url.path, status, elapsed * 1000)
        request_id_var.reset(token)


async def on_http_error(request: Request, exc: HTTPException):
    if isinstance(exc.detail, str):
        return error_response(exc.status_code, f"http_{exc.status_code}", exc.detail)
    details = exc.detail if isinstance(exc.detail, dict) else None
    return error_response(exc.status_code, f"http_{exc.status_code}", "Request failed", details)


async def on_store_error(request: Request, exc: StoreError):
    logger.error("store_error %s %s: %s", request.method, request.url.path, exc)
    return error_response(502, "store_error", exc.message)


async def on_unexpected_error(request: Request, exc: Exception):
    logger.exception("unhandled_exception %s %s", request.method, request.url.path)
    return error_response(500, "internal_error", "Internal server error")


app = create_app()
