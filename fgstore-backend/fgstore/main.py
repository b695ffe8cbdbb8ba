import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from fgstore.core.observability import (
    database_exception_handler,
    http_exception_handler,
    log_event,
    request_logging_middleware,
    setup_observability,
    unhandled_exception_handler,
    validation_exception_handler,
)
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from fgstore.core.config import settings
from fgstore.db.session import engine
from fgstore.routers import dispatch, imports, inventory, locations, notifications, pricing, reports, requests, showrooms

app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    description=(
        "Backend API for the finished goods (FG) store.\n\n"
        "Swagger quick test flow:\n"
        "1. Obtain an access token from the identity service.\n"
        "2. Click **Authorize** and paste the bearer token.\n"
        "3. Test protected endpoints (`/requests`, `/dispatch`, `/inventory`, `/pricing`, `/reports`)."
    ),
    swagger_ui_parameters={
        "persistAuthorization": True,
        "displayRequestDuration": True,
        "defaultModelsExpandDepth": 1,
    },
    openapi_tags=[
        {"name": "health", "description": "Service status and quick links."},
        {"name": "requests", "description": "Sales requests from representatives, shops and distributors; approval and rejection."},
        {"name": "approval-history", "description": "Approved requests waiting for or completed by the FG store."},
        {"name": "dispatch", "description": "Batch allocation and dispatch of approved requests."},
        {"name": "notifications", "description": "In-app notifications for the signed-in user."},
        {"name": "showrooms", "description": "Direct showrooms and their managers."},
        {"name": "inventory", "description": "Bulk and packaged stock, movements and expiry."},
        {"name": "locations", "description": "FG storage locations and utilization."},
        {"name": "pricing", "description": "Current product prices, price history and analytics."},
        {"name": "imports", "description": "Spreadsheet product upload into inventory and pricing."},
        {"name": "reports", "description": "Dispatch reports, recipient summary and FG dashboard."},
    ],
)

setup_observability()
app.middleware("http")(request_logging_middleware)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(SQLAlchemyError, database_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

cors_origins = settings.cors_origins or ["http://localhost:3000"]
allow_all_origins = "*" in cors_origins
env_value = settings.env.lower().strip()
allow_origin_regex = settings.cors_origin_regex

if (
    not allow_origin_regex
    and env_value in {"dev", "development", "staging", "stage"}
):
    # Local web tooling uses dynamic localhost ports.
    allow_origin_regex = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all_origins else cors_origins,
    allow_origin_regex=allow_origin_regex,
    allow_credentials=not allow_all_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(requests.router)
app.include_router(requests.history_router)
app.include_router(dispatch.router)
app.include_router(notifications.router)
app.include_router(showrooms.router)
app.include_router(inventory.router)
app.include_router(locations.router)
app.include_router(pricing.router)
app.include_router(imports.router)
app.include_router(reports.router)


@app.get("/", tags=["health"])
def root():
    return {
        "app": settings.app_name,
        "docs": "/docs",
        "redoc": "/redoc",
        "health": "/health",
        "ready": "/ready",
    }


@app.get("/health", tags=["health"])
def health():
    return {"ok": True}


@app.get("/ready", tags=["health"])
def ready():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        log_event("readiness_check_failed", level=logging.WARNING, error=str(exc))
        return {"ok": False}
    return {"ok": True}
