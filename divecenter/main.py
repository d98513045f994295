"""
Main FastAPI Application
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from pathlib import Path
import logging

from divecenter.core.config import settings
from divecenter.core.database import init_db
from divecenter.core.rate_limit import RateLimitMiddleware
from divecenter.api.v1 import (
    auth, dive_center, customers, bookings, equipment, baskets, invoices, payments, expenses, pricing, files
)

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Starting up...")
    init_db()
    logger.info("Database initialized")

    yield

    logger.info("Shutting down...")


# Create app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rate limiting middleware (must be after CORS)
app.add_middleware(RateLimitMiddleware)


# Exception handlers
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
    content = {"detail": "An unexpected error occurred"}
    if settings.DEBUG:
        content["error"] = str(exc)
    return JSONResponse(status_code=500, content=content)


# Health check
@app.get("/health")
async def health_check():
    return {"status": "healthy", "version": settings.APP_VERSION}


# Include routers
app.include_router(auth.router, prefix="/api/v1")
app.include_router(dive_center.router, prefix="/api/v1")
app.include_router(customers.router, prefix="/api/v1")
app.include_router(customers.groups_router, prefix="/api/v1")
app.include_router(bookings.router, prefix="/api/v1")
app.include_router(bookings.dives_router, prefix="/api/v1")
app.include_router(bookings.sites_router, prefix="/api/v1")
app.include_router(bookings.boats_router, prefix="/api/v1")
app.include_router(equipment.router, prefix="/api/v1")
app.include_router(equipment.items_router, prefix="/api/v1")
app.include_router(equipment.service_router, prefix="/api/v1")
app.include_router(baskets.router, prefix="/api/v1")
app.include_router(baskets.equipment_router, prefix="/api/v1")
app.include_router(invoices.router, prefix="/api/v1")
app.include_router(payments.router, prefix="/api/v1")
app.include_router(payments.methods_router, prefix="/api/v1")
app.include_router(expenses.router, prefix="/api/v1")
app.include_router(expenses.suppliers_router, prefix="/api/v1")
app.include_router(expenses.categories_router, prefix="/api/v1")
app.include_router(pricing.router, prefix="/api/v1")
app.include_router(pricing.items_router, prefix="/api/v1")
app.include_router(pricing.taxes_router, prefix="/api/v1")
app.include_router(files.router, prefix="/api/v1")

# Uploaded documents
Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
app.mount(settings.UPLOAD_URL_PREFIX, StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
