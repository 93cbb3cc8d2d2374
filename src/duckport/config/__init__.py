from duckport.config.settings import DuckportConfig, load_config

__all__ = ["DuckportConfig", "load_config"]
