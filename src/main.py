from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from api.api import api_router
from core.bridge import create_bridge
from core.config import configs
from core.logger import setup_logging
from core.storage import get_content_store, get_key_value_store
from core.transport import HttpTransport
from photoshare.config import PipelineConfig, UploadConfig
from photoshare.dedup import DuplicateDetector, IdentifierFetcher, SnapshotRegistry
from photoshare.token import TokenCache
from photoshare.upload import CompositeObserver, LoggingObserver, ProgressTracker, UploadCoordinator, UploadService

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("🔧 Initializing upload pipeline...")
    pipeline = PipelineConfig(upload=UploadConfig(device_id=configs.DEVICE_ID))

    bridge = create_bridge()
    transport = HttpTransport()
    content_store = get_content_store()

    token_cache = TokenCache(bridge, get_key_value_store(), pipeline.token)
    await token_cache.load()

    registry = SnapshotRegistry()
    fetcher = IdentifierFetcher(bridge, registry, pipeline.fetch)
    detector = DuplicateDetector(content_store, config=pipeline.detection)

    tracker = ProgressTracker()
    observer = CompositeObserver(LoggingObserver(), tracker)
    coordinator = UploadCoordinator(transport, content_store, observer, pipeline.upload)

    app.state.bridge = bridge
    app.state.content_store = content_store
    app.state.token_cache = token_cache
    app.state.snapshot_registry = registry
    app.state.fetcher = fetcher
    app.state.detector = detector
    app.state.progress_tracker = tracker
    app.state.upload_service = UploadService(token_cache, fetcher, detector, coordinator)
    logger.info(f"✅ Upload pipeline initialized (bridge: {configs.BRIDGE_MODE}, store: {configs.STORE_TYPE}).")
    yield
    # Shutdown
    logger.info("🛑 Shutting down upload pipeline...")
    await bridge.close()
    await transport.close()

app = FastAPI(
    title=configs.PROJECT_NAME,
    description="Duplicate-aware background photo uploads",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS (Allow all for development env)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api")
app.mount("/metrics", make_asgi_app())

@app.get("/")
async def root():
    return {"message": "PhotoShare Upload Worker Running"}

@app.get("/health")
async def health_check():
    return {"status": "ok"}
