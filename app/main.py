"""FastAPI application entrypoint: lifespan, routers, middleware."""

import random
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from sqlalchemy import text

from app.config import Settings, get_settings
from app.database import async_session_factory, engine
from app.engine.simulation import SensorSimulator, SimulationScheduler
from app.engine.thresholds import ThresholdProfile
from app.errors import ConfigurationError
from app.middleware.logging import RequestLoggingMiddleware, configure_structured_logging
from app.routes import alerts, crops, devices, ingest, readings, simulation, ws
from app.services.crop_service import CropService
from app.services.ingest_service import drain_background

logger = structlog.get_logger("hydrosense")

VERSION = "0.1.0"


async def _load_default_profile() -> ThresholdProfile | None:
    async with async_session_factory() as session:
        try:
            crop = await CropService(session).resolve_profile()
        except ConfigurationError:
            return None
        return ThresholdProfile.from_row(crop)


async def _build_simulation(settings: Settings) -> SimulationScheduler:
    rng = random.Random(settings.simulation_seed)
    simulator = SensorSimulator(
        await _load_default_profile(),
        rng=rng,
        alert_every_ticks=settings.simulation_alert_every_ticks,
        connection_check_every_ticks=settings.simulation_connection_check_every_ticks,
    )
    return SimulationScheduler(simulator, settings.simulation_tick_seconds)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application startup / shutdown lifecycle.

    Startup:
      1. Initialize structured logging
      2. Verify the database connection
      3. Connect to Redis (realtime channel)
      4. Start the sensor simulation scheduler when enabled

    Shutdown:
      1. Stop the simulation and wait for in-flight side effects
      2. Close Redis connection pool
      3. Dispose SQLAlchemy engine
    """
    settings = get_settings()
    configure_structured_logging(settings)
    logger.info(
        "hydrosense_starting",
        log_level=settings.log_level,
        simulation_enabled=settings.simulation_enabled,
        alert_suppress_repeats=settings.alert_suppress_repeats,
    )

    redis: Redis | None = None
    app.state.simulation = None
    try:
        async with engine.connect() as connection:
            await connection.execute(text("SELECT 1"))

        redis = Redis.from_url(settings.redis_url, decode_responses=True)
        await redis.ping()
        app.state.redis = redis

        if settings.simulation_enabled:
            scheduler = await _build_simulation(settings)
            scheduler.start()
            app.state.simulation = scheduler
    except Exception as exc:
        logger.exception("startup_failure", error=str(exc))
        raise

    yield

    logger.info("hydrosense_shutting_down")
    if app.state.simulation is not None:
        await app.state.simulation.stop()
    await drain_background()
    if redis is not None:
        await redis.aclose()
    await engine.dispose()


app = FastAPI(
    title="HydroSense API",
    description=(
        "Hydroponics monitoring and auto-control API: classifies sensor "
        "readings against crop threshold profiles, raises alerts, and drives "
        "pumps, fans, heaters, humidifiers, lights and pH dosing."
    ),
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS ────────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)


# ── Health checks ───────────────────────────────────────────────────────────
async def _run_readiness_checks(app: FastAPI) -> dict[str, dict[str, Any]]:
    checks: dict[str, dict[str, Any]] = {}
    try:
        async with engine.connect() as connection:
            await connection.execute(text("SELECT 1"))
        checks["database"] = {"ok": True, "message": "ok"}
    except Exception as exc:
        checks["database"] = {"ok": False, "message": str(exc)}

    redis_client = getattr(app.state, "redis", None)
    if redis_client is None:
        checks["redis"] = {"ok": False, "message": "not connected"}
    else:
        try:
            await redis_client.ping()
            checks["redis"] = {"ok": True, "message": "ok"}
        except Exception as exc:
            checks["redis"] = {"ok": False, "message": str(exc)}
    return checks


@app.get("/health", tags=["system"])
async def health_check() -> dict[str, str]:
    """Basic health check: verifies the API process is alive."""
    return {
        "status": "ok",
        "service": "hydrosense",
        "version": VERSION,
    }


@app.get("/health/ready", tags=["system"])
async def readiness_check() -> JSONResponse:
    """Readiness: database and Redis must both answer."""
    checks = await _run_readiness_checks(app)
    healthy = all(check["ok"] for check in checks.values())
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={"status": "ok" if healthy else "degraded", "checks": checks},
    )


# ── Router registration ────────────────────────────────────────────────────
app.include_router(ingest.router, prefix="/api/v1")
app.include_router(readings.router, prefix="/api/v1")
app.include_router(crops.router, prefix="/api/v1")
app.include_router(devices.router, prefix="/api/v1")
app.include_router(alerts.router, prefix="/api/v1")
app.include_router(simulation.router, prefix="/api/v1")
app.include_router(ws.router)
