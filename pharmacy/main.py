import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .database import init_db
from .exception_handlers import register_exception_handlers
from .routers import (
    auth_router,
    customer_router,
    dashboard_router,
    order_router,
    product_router,
    setup_router,
)

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Inventory, customer and order management for a pharmacy",
    version=settings.VERSION,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(setup_router.router)
app.include_router(auth_router.router)
app.include_router(product_router.router)
app.include_router(customer_router.router)
app.include_router(order_router.router)
app.include_router(dashboard_router.router)


@app.on_event("startup")
def _startup() -> None:
    # Create database tables
    init_db()


@app.get("/")
def root():
    return {
        "service": settings.PROJECT_NAME,
        "status": "running",
        "version": settings.VERSION,
    }


@app.get("/health")
def health_check():
    return {
        "status": "healthy",
        "service": "pharmacy-service",
    }
