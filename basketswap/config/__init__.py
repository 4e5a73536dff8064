from .loader import config_from_env, load_config, load_yaml, validate_payload
from .schema import BasketSwapConfig, ParaSwapConfig, ZeroExConfig

__all__ = [
    "BasketSwapConfig",
    "ParaSwapConfig",
    "ZeroExConfig",
    "config_from_env",
    "load_config",
    "load_yaml",
    "validate_payload",
]
