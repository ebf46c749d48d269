"""
FastAPI Application Entry Point
AI Merchandising Co-Pilot - Python Backend
"""
from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse
import os
import logging
import json
import sys
import time
import uuid as _uuid
from pathlib import Path
from typing import Callable

from dependencies import build_services
from routers import (
    apply,
    bundles,
    campaigns,
    discounts,
    email,
    images,
    plan,
)
from services.bundle_images import IMAGE_SUBDIR
from settings import load_settings


# ---- Logging setup (JSON; good for Cloud Run) ----
class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "severity": record.levelname,
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
handler = logging.StreamHandler(sys.stdout)
handler.setFormatter(JsonFormatter())

root = logging.getLogger()
root.handlers = [handler]
root.setLevel(LOG_LEVEL)

logging.getLogger("uvicorn.access").setLevel(logging.INFO)
logging.getLogger("uvicorn.error").setLevel(logging.INFO)
# request lines from every outbound call
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

settings = load_settings()

app = FastAPI(
    title="AI Merchandising Co-Pilot API",
    description="AI-planned bundle campaigns on commercetools, Stripe and Klaviyo",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---- Request/Response logging middleware ----
class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable):
        request_id = request.headers.get("X-Request-Id") or str(_uuid.uuid4())
        start = time.time()
        request.state.request_id = request_id

        logger.info(
            f"REQ {request.method} {request.url.path} "
            f"ip={request.client.host if request.client else '-'} rid={request_id}"
        )
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(f"Uncaught exception in request pipeline rid={request_id}")
            raise

        dur_ms = int((time.time() - start) * 1000)
        logger.info(
            f"RES {request.method} {request.url.path} "
            f"status={response.status_code} durMs={dur_ms} rid={request_id}"
        )
        response.headers["X-Request-Id"] = request_id
        return response

app.add_middleware(RequestIDMiddleware)


@app.get("/")
async def root_info():
    return {"ok": True, "service": "ai-merchandising-copilot"}

@app.get("/healthz")
async def healthz():
    """Basic health check for load balancers."""
    return {"ok": True}


@app.get("/api/health")
async def api_health(request: Request):
    """Liveness plus which integrations are configured."""
    services = getattr(request.app.state, "services", None)
    return {
        "status": "healthy",
        "integrations": services.integration_status() if services else {},
        "timestamp": time.time(),
    }


# --- Error handlers ---
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.error(f"Validation error on {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "detail": jsonable_encoder(exc.errors())},
    )

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

# --- Routers ---
for module, tag in (
    (plan, "plan"),
    (bundles, "bundles"),
    (discounts, "discounts"),
    (images, "images"),
    (campaigns, "campaigns"),
    (email, "email"),
    (apply, "apply"),
):
    app.include_router(module.router, prefix="/api", tags=[tag])
    app.include_router(module.router, include_in_schema=False)

# --- Generated images ---
static_images = Path(settings.static_dir) / IMAGE_SUBDIR
static_images.mkdir(parents=True, exist_ok=True)
app.mount(f"/{IMAGE_SUBDIR}", StaticFiles(directory=str(static_images)), name=IMAGE_SUBDIR)

# --- Startup/shutdown ---
@app.on_event("startup")
async def startup():
    logger.info("Starting AI Merchandising Co-Pilot API...")
    app.state.services = build_services(settings)
    logger.info(f"✅ Integrations: {app.state.services.integration_status()}")

@app.on_event("shutdown")
async def shutdown():
    logger.info("Shutting down AI Merchandising Co-Pilot API...")
    services = getattr(app.state, "services", None)
    if services is not None:
        await services.aclose()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8080)),
        reload=os.getenv("NODE_ENV") != "production"
    )
