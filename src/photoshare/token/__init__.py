from .cache import CachedToken, TokenCache

__all__ = ["CachedToken", "TokenCache"]
