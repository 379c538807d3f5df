from functools import lru_cache

from .clients.rightcode import RightCodeClient
from .config import ConfigurationStore, get_settings
from .services.bridge import BridgeService


@lru_cache
def get_configuration_store() -> ConfigurationStore:
    return ConfigurationStore(get_settings())


@lru_cache
def get_rightcode_client() -> RightCodeClient:
    return RightCodeClient(settings=get_settings())


@lru_cache
def get_bridge_service() -> BridgeService:
    return BridgeService(client=get_rightcode_client(), store=get_configuration_store())
