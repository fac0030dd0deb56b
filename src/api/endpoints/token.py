import logging
from fastapi import APIRouter, Depends

from core.dependencies import get_token_cache
from photoshare.token.cache import TokenCache

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("")
async def get_token_state(token_cache: TokenCache = Depends(get_token_cache)):
    """Token cache state. The token itself is never returned."""
    return token_cache.debug_info()


@router.delete("")
async def clear_token(token_cache: TokenCache = Depends(get_token_cache)):
    await token_cache.force_clear()
    return {"status": "cleared"}
