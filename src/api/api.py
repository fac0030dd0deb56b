from api.endpoints import bridge, duplicates, token, uploads
from fastapi import APIRouter

api_router = APIRouter()
api_router.include_router(uploads.router, prefix="/uploads", tags=["Background Photo Uploads"])
api_router.include_router(duplicates.router, prefix="/duplicates", tags=["Duplicate Detection"])
api_router.include_router(token.router, prefix="/token", tags=["Access Token"])
api_router.include_router(bridge.router, prefix="/bridge", tags=["Host Bridge"])
