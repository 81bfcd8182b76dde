"""SafeGuard Radar API — FastAPI app serving alerts, weather, and location sharing."""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from portal.routers import alerts, contacts, health, live_locations, locations, weather
from portal.services import init_cache, shutdown_cache
from shared.config import get_settings, parse_list
from shared.database import dispose_engine
from shared.errors import AppError, StorageError, ValidationError

structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ],
)

logger = structlog.get_logger()

app = FastAPI(title="SafeGuard Radar", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=parse_list(get_settings().cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)

# --------------- Routers ---------------

app.include_router(health.router)
app.include_router(alerts.router)
app.include_router(weather.router)
app.include_router(locations.router)
app.include_router(live_locations.router)
app.include_router(contacts.router)

# --------------- Error envelope ---------------


def _field_message(error: dict) -> str:
    loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query")]
    field = ".".join(loc)
    return f"{field}: {error.get('msg', 'invalid value')}" if field else error.get("msg", "invalid value")


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [_field_message(e) for e in exc.errors()]
    return JSONResponse(status_code=400, content={"success": False, "errors": errors})


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, ValidationError):
        content = {"success": False, "errors": exc.errors}
    else:
        content = {"success": False, "error": exc.public_message}
    if isinstance(exc, StorageError):
        logger.error("request_storage_error", path=request.url.path, detail=exc.detail)
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request_unhandled_error", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error"},
    )


# --------------- Lifecycle ---------------


@app.on_event("startup")
async def startup() -> None:
    await init_cache()
    logger.info("radar_startup_complete")


@app.on_event("shutdown")
async def shutdown() -> None:
    await shutdown_cache()
    await dispose_engine()
