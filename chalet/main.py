from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
from slowapi.errors import RateLimitExceeded
import logging
import time
import uuid

from .config import settings
from .database import create_tables, SessionLocal
from .exceptions import BookingError
from .services.hold_scheduler import start_hold_scheduler, stop_hold_scheduler
from .services.inventory_store import InventoryStore
from .utils.logging_config import setup_logging, get_logger, set_request_context, clear_request_context
from .utils.rate_limiter import limiter

from .routers import rooms, availability, holds, pricing, bookings, blockages, christmas, health

logger = logging.getLogger(__name__)
request_logger = get_logger("chalet.requests")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    setup_logging(settings.log_level, json_format=settings.use_json_logs)

    logger.info(f"Starting chalet-booking ({settings.environment})")
    logger.info(f"CORS origins: {settings.cors_origins}")

    create_tables()

    db = SessionLocal()
    try:
        InventoryStore(db).seed_defaults()
    finally:
        db.close()

    if settings.hold_purge_enabled:
        start_hold_scheduler()

    yield

    logger.info("Shutting down chalet-booking")
    stop_hold_scheduler()


app = FastAPI(
    title="Chalet Booking API",
    description="Room availability, holds, pricing and bookings for a mountain chalet",
    version="1.0.0",
    lifespan=lifespan
)

# Rate limiter state
app.state.limiter = limiter


# ================================
# CORS MIDDLEWARE - MUST BE FIRST!
# ================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4())[:8])
        request.state.request_id = request_id
        set_request_context(request_id)
        start = time.time()
        try:
            response = await call_next(request)
            request_logger.api_request(
                request.method, request.url.path, response.status_code, round((time.time() - start) * 1000, 2)
            )
        finally:
            clear_request_context()
        response.headers["X-Request-ID"] = request_id
        return response


# Add other middleware AFTER CORS
app.add_middleware(RequestIdMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"error": "rate_limited", "detail": "Too many requests, try again later"}
    )


app.include_router(rooms.router)
app.include_router(availability.router)
app.include_router(holds.router)
app.include_router(pricing.router)
app.include_router(bookings.router)
app.include_router(blockages.router)
app.include_router(christmas.router)
app.include_router(health.router)


@app.get("/")
async def root():
    return {
        "message": "Chalet Booking API",
        "version": "1.0.0",
        "docs": "/docs",
        "status": "running",
    }
