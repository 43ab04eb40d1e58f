from infrastructure.config.env_defaults import EnvDefaultsProvider
from infrastructure.config.yaml_config_loader import ConfigFile, YamlConfigLoader

__all__ = [
    "ConfigFile",
    "EnvDefaultsProvider",
    "YamlConfigLoader",
]
