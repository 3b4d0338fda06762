from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fitscore.middleware.error_handlers import (
    ExceptionHandlerMiddleware,
    PerformanceMiddleware,
    register_exception_handlers,
)
from fitscore.models.settings import load_settings
from fitscore.routers import scoring
from fitscore.services.analysis_client import AnalysisClient, OllamaGenerationService
from fitscore.services.cleanup import DeferredDeletionQueue
from fitscore.services.db import PROFILES, SCORE_ANALYSES, create_client, get_database, init_indexes
from fitscore.services.document_store import DocumentStore
from fitscore.services.extractor import TextExtractor
from fitscore.services.orchestrator import ScoringOrchestrator
from fitscore.services.resolver import DocumentResolver
from fitscore.services.result_store import ProfileStore, ResultStore
from fitscore.utils.logging_config import configure_for_environment, get_logger

# Configure logging first
configure_for_environment()
logger = get_logger(__name__)

VERSION = "1.0.0"


def build_orchestrator(settings, db) -> ScoringOrchestrator:
    store = DocumentStore(settings.extraction.upload_dir)
    extractor = TextExtractor(store, settings.extraction)
    return ScoringOrchestrator(
        profiles=ProfileStore(db[PROFILES]),
        results=ResultStore(db[SCORE_ANALYSES]),
        extractor=extractor,
        resolver=DocumentResolver(extractor),
        analysis_client=AnalysisClient(
            OllamaGenerationService(settings.generation), timeout=settings.generation.timeout
        ),
        cleanup_queue=DeferredDeletionQueue(store, settings.cleanup_delay_seconds),
        settings=settings,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager"""
    logger.info("Score Analysis API starting up...")
    settings = load_settings()
    client = create_client(settings.mongo_details)
    db = get_database(client, settings.db_name)

    logger.info("Initializing database indexes...")
    if not await init_indexes(db):
        logger.info("Application will continue - history queries may be slower without indexes")

    app.state.orchestrator = build_orchestrator(settings, db)
    logger.info(f"Score Analysis API startup completed (model {settings.generation.model_name})")

    yield

    logger.info("Score Analysis API shutting down...")
    await app.state.orchestrator.cleanup_queue.drain()
    client.close()
    logger.info("Score Analysis API shutdown completed")


app = FastAPI(title="Score Analysis API", version=VERSION, lifespan=lifespan)

register_exception_handlers(app)

# Middleware runs LIFO; the exception handler is the outermost
app.add_middleware(PerformanceMiddleware, slow_request_threshold=30.0)
app.add_middleware(ExceptionHandlerMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
@app.head("/")
async def root():
    """Root endpoint - handles both GET and HEAD requests for health checks"""
    logger.debug("Root endpoint accessed")
    return {"message": "Welcome to the Score Analysis API", "version": VERSION, "status": "ok"}


@app.get("/health")
@app.head("/health")
async def health_check():
    return {"status": "healthy", "timestamp": datetime.utcnow().isoformat()}


app.include_router(scoring.router, prefix="/api/score", tags=["score-analysis"])

logger.info("Score Analysis API initialized successfully")
