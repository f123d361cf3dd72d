"""
Deliberation Analytics API Server

FastAPI application exposing the common ground engine.
Routes, services and middleware live in focused modules.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from analysis.semantic import create_semantic_analyzer
from config import config, get_logger
from database.db_postgres import Database
from deliberation.background import BackgroundTaskRunner
from deliberation.bridging import BridgingSuggester
from deliberation.detector import CommonGroundDetector
from deliberation.protocols import InMemoryAnalysisCache
from deliberation.synthesizer import PatternSynthesizer
from server.metrics import metrics
from server.middleware.logging import log_requests
from server.middleware.metrics import metrics_middleware
from server.routes import common_ground, monitoring
from server.services.common_ground import CommonGroundService

logger = get_logger(__name__)

SHUTDOWN_DRAIN_SECONDS = 30


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup the connection pool and background runner"""
    db = await Database.create()
    logger.info("initialized PostgreSQL database with async connection pool")

    runner = BackgroundTaskRunner(metrics=metrics)
    detector = CommonGroundDetector(
        synthesizer=PatternSynthesizer(),
        analyzer=create_semantic_analyzer(config),
        metrics=metrics,
        timeout_seconds=config.SEMANTIC_TIMEOUT_SECONDS,
    )

    app.state.db = db
    app.state.common_ground = CommonGroundService(
        store=db.common_ground,
        detector=detector,
        suggester=BridgingSuggester(db.common_ground),
        cache=InMemoryAnalysisCache(default_ttl_seconds=config.ANALYSIS_CACHE_TTL_SECONDS),
        runner=runner,
        metrics=metrics,
        cache_ttl_seconds=config.ANALYSIS_CACHE_TTL_SECONDS,
    )
    logger.info("common ground service ready", semantic_provider=detector.provider)

    yield

    # Let in-flight recomputations finish before the pool goes away
    await runner.drain(timeout=SHUTDOWN_DRAIN_SECONDS)
    await runner.cancel_all()

    try:
        await db.close()
        logger.info("closed PostgreSQL connection pool")
    except Exception as e:
        # Don't crash on shutdown - log and continue
        logger.error("error closing connection pool", error=str(e), exc_info=True)


app = FastAPI(title="deliberation analytics API", lifespan=lifespan)


# FastAPI middleware stack: last registered runs first
@app.middleware("http")
async def log_requests_middleware(request, call_next):
    return await log_requests(request, call_next)


@app.middleware("http")
async def metrics_middleware_wrapper(request, call_next):
    return await metrics_middleware(request, call_next)


app.include_router(monitoring.router)     # Prometheus metrics
app.include_router(common_ground.router)  # Common ground analytics


if __name__ == "__main__":
    import asyncio
    import sys

    import uvicorn

    logger.info("starting deliberation analytics API server")
    logger.info("configuration", config_summary=config.summary())

    if len(sys.argv) > 1 and sys.argv[1] == "--init-db":
        async def init_db():
            db = await Database.create()
            try:
                await db.init_schema()
            finally:
                await db.close()

        asyncio.run(init_db())
        sys.exit(0)

    uvicorn.run(
        app,
        host=config.API_HOST,
        port=config.API_PORT,
        access_log=False,  # Request logging handled by middleware
    )
