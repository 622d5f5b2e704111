"""
Certificate Issuance API

Main FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.middleware import ErrorHandlerMiddleware
from app.routes import batches, certificates, documents, layout, templates
from app.services import get_certificate_store
from app.services.expiry_scheduler import (
    get_scheduler_status,
    start_expiry_scheduler,
    stop_expiry_scheduler,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    start_expiry_scheduler()
    yield
    # Shutdown
    stop_expiry_scheduler()

app = FastAPI(
    title="Certificate Issuance API",
    description="Content-addressed certificate issuance and rendering",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Error handling middleware
app.add_middleware(ErrorHandlerMiddleware)

# Register routers
app.include_router(templates.router, prefix="/api", tags=["Templates"])
app.include_router(certificates.router, prefix="/api", tags=["Certificates"])
app.include_router(layout.router, prefix="/api", tags=["Layout"])
app.include_router(batches.router, prefix="/api", tags=["Batches"])
app.include_router(documents.router, prefix="/api", tags=["Documents"])


@app.get("/")
async def root():
    """Health check endpoint"""
    return {
        "status": "ok",
        "service": "Certificate Issuance API",
        "version": "1.0.0",
    }


@app.get("/health")
async def health_check():
    """
    Detailed health check endpoint.

    Returns service health, the active storage backend and the expiry
    scheduler state.
    """
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": "1.0.0",
        "storage": get_certificate_store().backend_name,
        "scheduler": get_scheduler_status(),
    }
