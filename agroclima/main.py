"""
FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from agroclima.config import settings
from agroclima.middleware.error_handler import ErrorHandlerMiddleware, failure_body
from agroclima.api.v1.routers import climate, geocoding, varieties

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

# Rate limiter
limiter = Limiter(key_func=get_remote_address)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events using the modern FastAPI pattern.
    """
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Log level: {settings.log_level}")
    logger.info(
        f"Envelope: max_range_days={settings.max_range_days}, "
        f"historical_chunk_days={settings.historical_chunk_days}, "
        f"max_concurrent_chunks={settings.max_concurrent_chunks}"
    )
    logger.info(f"Rate limit: {settings.rate_limit_requests} requests/minute")

    yield

    # Shutdown
    from agroclima.infrastructure.geocoding_client import close_geocoding_client
    from agroclima.infrastructure.source_registry import close_source_registry
    logger.info("Shutting down application...")
    await close_source_registry()
    await close_geocoding_client()
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Agroclimatic data and pistachio variety suitability API

    ## Features

    - **Multi-source ingestion**: NASA POWER, ERA5, SIAR and AEMET daily
      series reconciled into one canonical record
    - **Historical mode**: Long ranges split into provider-sized chunks,
      fetched concurrently and merged by date
    - **Agronomic indicators**: Chill hours, growing degree days, frost
      incidence and evapotranspiration balance
    - **Variety recommendations**: Ranked pistachio varieties with a risk
      assessment and planting strategy
    - **Rate Limiting**: Protects the API from abuse
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Render malformed bodies in the common failure shape."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=failure_body("Invalid request body", debug={"errors": jsonable_encoder(exc.errors())}),
    )


# Add CORS middleware with configurable origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add global error handling middleware
app.add_middleware(ErrorHandlerMiddleware)

# Include routers
app.include_router(climate.router, prefix="/api/v1")
app.include_router(varieties.router, prefix="/api/v1")
app.include_router(geocoding.router, prefix="/api/v1")


@app.get("/", tags=["health"])
async def root():
    """
    Root endpoint for health check.

    Returns:
        Status message
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
    }


@app.get("/health", tags=["health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        Health status
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
    }
