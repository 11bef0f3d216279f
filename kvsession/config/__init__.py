from .provider import (
    ConfigProvider,
    EnvConfigProvider,
    SessionStoreConfig,
    YamlConfigProvider,
    load_config,
)

__all__ = [
    "ConfigProvider",
    "EnvConfigProvider",
    "SessionStoreConfig",
    "YamlConfigProvider",
    "load_config",
]
