import logging

from core.config import configs

from .base import Bridge
from .callback import CallbackBridge, Dispatch
from .http import HttpBridge

logger = logging.getLogger(__name__)


class BridgeFactory:
    @staticmethod
    def get_bridge(mode: str = "http", dispatch: Dispatch = None) -> Bridge:
        logger.info(f"Creating bridge of type: {mode}")
        if mode == "http":
            return HttpBridge()
        elif mode == "callback":
            return CallbackBridge(dispatch)
        else:
            raise ValueError(f"Unknown bridge mode: {mode}")


def create_bridge(dispatch: Dispatch = None) -> Bridge:
    return BridgeFactory.get_bridge(configs.BRIDGE_MODE, dispatch)
