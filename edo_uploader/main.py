"""
EDO Uploader - FastAPI API

Uploads local documents to the Saby (СБИС) EDO service as drafts:
session authentication, single upload and batch upload.
"""
import time
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from edo_uploader.config import settings
from edo_uploader.routes import auth, upload
from edo_uploader.utils.logging_setup import configure_logging


configure_logging(settings.log_level)
log = logging.getLogger("edo.request")

# Create app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Uploads documents to Saby EDO (ЭДО) as drafts",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Latency and request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Logs latency for every request."""
    t0 = time.monotonic()
    response = await call_next(request)
    duration_ms = round((time.monotonic() - t0) * 1000)
    log.info(
        "http_request",
        extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        }
    )
    return response


# Routes
app.include_router(auth.router, prefix="/api", tags=["Auth"])
app.include_router(upload.router, prefix="/api", tags=["Upload"])


@app.get("/")
async def root():
    """Root endpoint - basic status only"""
    return {"status": "ok"}


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service_url": settings.service_url,
        "auth_url": settings.auth_url,
    }
