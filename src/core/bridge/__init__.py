from .base import ASYNC_STARTED, Bridge, BridgeError
from .callback import CallbackBridge, CommandOutbox
from .factory import create_bridge
from .http import HttpBridge

__all__ = ["ASYNC_STARTED", "Bridge", "BridgeError", "CallbackBridge", "CommandOutbox", "HttpBridge", "create_bridge"]
