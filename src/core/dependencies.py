from fastapi import Request

from core.bridge.base import Bridge
from core.storage.base import ContentStore
from photoshare.dedup.detector import DuplicateDetector
from photoshare.dedup.fetcher import IdentifierFetcher
from photoshare.dedup.snapshot import SnapshotRegistry
from photoshare.token.cache import TokenCache
from photoshare.upload.observers import ProgressTracker
from photoshare.upload.service import UploadService


def get_upload_service(request: Request) -> UploadService:
    return request.app.state.upload_service

def get_progress_tracker(request: Request) -> ProgressTracker:
    return request.app.state.progress_tracker

def get_token_cache(request: Request) -> TokenCache:
    return request.app.state.token_cache

def get_detector(request: Request) -> DuplicateDetector:
    return request.app.state.detector

def get_fetcher(request: Request) -> IdentifierFetcher:
    return request.app.state.fetcher

def get_snapshot_registry(request: Request) -> SnapshotRegistry:
    return request.app.state.snapshot_registry

def get_content_store(request: Request) -> ContentStore:
    return request.app.state.content_store

def get_bridge(request: Request) -> Bridge:
    return request.app.state.bridge
