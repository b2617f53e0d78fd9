"""FastAPI application: Metro Commute Guide"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from metro_commute.config import PlannerConfig, settings
from metro_commute.db import create_store
from metro_commute.exceptions import SpatialStoreError
from metro_commute.logging_config import setup_logger
from metro_commute.models.schemas import ErrorResponse, HealthResponse
from metro_commute.routers import routes_router
from metro_commute.services.osrm import OSRMClient
from metro_commute.services.planner import CommutePlanner

VERSION = "1.0.0"

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown"""
    setup_logger()
    logger.info(f"[Metro Commute API] environment: {settings.ENVIRONMENT}")
    logger.info(f"[Metro Commute API] spatial backend: {settings.SPATIAL_BACKEND}")

    store = create_store(settings)
    try:
        await store.initialize()
    except SpatialStoreError as e:
        # Served as 503 until the store is fixed
        logger.error(f"Spatial store initialization failed: {e}")

    routing_client = None
    if settings.ROUTING_ENABLED:
        routing_client = OSRMClient(settings.OSRM_SERVICE_URL, timeout=settings.ROUTING_TIMEOUT_SECONDS)

    app.state.store = store
    app.state.routing_client = routing_client
    app.state.planner = CommutePlanner(
        store,
        routing_client,
        PlannerConfig.from_settings(settings),
        seed=settings.RANDOM_SEED,
    )

    yield

    if routing_client is not None:
        await routing_client.close()
    await store.close()
    logger.info("[Metro Commute API] shutdown")


app = FastAPI(
    title="Metro Commute API",
    description="Multi-modal commute route planning (walk, jeepney, bus, drive)",
    version=VERSION,
    lifespan=lifespan
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(routes_router, tags=["routes"])


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Missing / non-numeric fields -> 400 {success: false, error}"""
    errors = exc.errors()
    fields = sorted({".".join(str(p) for p in err.get("loc", ())[1:]) for err in errors} - {""})
    message = f"Invalid or missing fields: {', '.join(fields)}" if fields else "Invalid request body"
    return JSONResponse(status_code=400, content=ErrorResponse(error=message).model_dump())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=str(exc.detail)).model_dump(),
        headers=getattr(exc, "headers", None),
    )


@app.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """
    Health check

    Spatial store and routing service status
    """
    store = request.app.state.store
    routing_client = request.app.state.routing_client

    store_ok = store.is_available()
    if routing_client is None:
        routing_status = "disabled"
    else:
        routing_status = "available" if await routing_client.is_available() else "unavailable"

    return HealthResponse(
        status="healthy" if store_ok else "degraded",
        version=VERSION,
        environment=settings.ENVIRONMENT,
        services={
            "spatial_store": "connected" if store_ok else "disconnected",
            "routing": routing_status,
        },
    )


@app.get("/")
async def root():
    return {
        "service": "Metro Commute API",
        "version": VERSION,
        "docs": "/docs"
    }
