from duckport.backends.base import Backend
from duckport.backends.registry import available_backends, pick_backend, register_backend

__all__ = ["Backend", "available_backends", "pick_backend", "register_backend"]
