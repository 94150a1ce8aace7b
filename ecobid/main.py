"""
FastAPI application entry point
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import SQLAlchemyError

from ecobid.api import admin, bids, listings, settlement
from ecobid.core.config import get_settings
from ecobid.core.dependencies import get_auction_engine
from ecobid.core.logging_config import setup_logging
from ecobid.core.metrics import CONTENT_TYPE_LATEST, get_metrics
from ecobid.infrastructure.database import check_db_connection
from ecobid.infrastructure.redis_client import check_redis_connection
from ecobid.middleware.tracing import TracingMiddleware
from ecobid.services import ExpirySweeper
from ecobid.services.errors import AuctionError, ConcurrencyConflict

settings = get_settings()

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for startup and shutdown"""
    # Startup
    logger.info(f"🚀 Starting up {settings.APP_NAME}...")

    engine = get_auction_engine()

    sweeper = None
    if engine.settings.EXPIRY_SWEEP_ENABLED:
        logger.info("⏰ Starting expiry sweeper...")
        sweeper = ExpirySweeper(
            engine.finalization,
            interval_seconds=engine.settings.EXPIRY_SWEEP_INTERVAL_SECONDS,
            batch_size=engine.settings.EXPIRY_SWEEP_BATCH_SIZE,
        )
        await sweeper.start()

    app.state.sweeper = sweeper

    yield

    # Shutdown
    logger.info("🛑 Shutting down...")
    if sweeper:
        await sweeper.stop()
    engine.close()
    logger.info("✅ Cleanup complete")


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Auctions for recyclable waste lots with pickup verification and EcoPoints",
    lifespan=lifespan,
)


@app.exception_handler(AuctionError)
async def auction_error_handler(request: Request, exc: AuctionError):
    """Map engine errors to their HTTP status"""
    headers = None
    if isinstance(exc, ConcurrencyConflict):
        headers = {"Retry-After": "1"}

    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={"error": "ValidationError", "message": "Invalid request", "details": errors},
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    """Store outage: the transaction was rolled back and no event was emitted"""
    logger.error(f"❌ Database error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=503,
        content={"error": "StoreUnavailable", "message": "Storage is temporarily unavailable"},
        headers={"Retry-After": "5"},
    )


# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(TracingMiddleware)


# Health check endpoint
@app.get("/health", tags=["Health"])
def health_check():
    """Health check endpoint"""
    engine = get_auction_engine()
    backends = engine.settings

    checks = {}
    if backends.STORE_BACKEND == "sql":
        checks["database"] = "healthy" if check_db_connection() else "unavailable"
    if backends.NOTIFIER_BACKEND == "redis":
        checks["redis"] = "healthy" if check_redis_connection() else "unavailable"

    return {
        "status": "healthy" if all(v == "healthy" for v in checks.values()) else "degraded",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "store": backends.STORE_BACKEND,
        "notifier": backends.NOTIFIER_BACKEND,
        **checks,
    }


@app.get("/metrics", tags=["Health"])
def metrics():
    """Prometheus metrics"""
    return Response(content=get_metrics(), media_type=CONTENT_TYPE_LATEST)


@app.get("/", tags=["Root"])
def root():
    """Root endpoint"""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/health",
    }


# Include routers
app.include_router(listings.router, prefix="/api/v1")
app.include_router(bids.router, prefix="/api/v1")
app.include_router(settlement.router, prefix="/api/v1")
app.include_router(admin.router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "ecobid.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
