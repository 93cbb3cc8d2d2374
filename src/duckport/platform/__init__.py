from duckport.platform.resolver import PlatformResolver

__all__ = ["PlatformResolver"]
