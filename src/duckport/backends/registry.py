# src/duckport/backends/registry.py
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Dict, List

from duckport.errors import InvalidSpecError

if TYPE_CHECKING:
    from .base import Backend


# Registry: backend name -> constructor
_BACKENDS: Dict[str, Callable[..., "Backend"]] = {}
_ORDER: List[str] = []


def register_backend(name: str):
    """
    Decorator to register a backend class under a stable name.
    The class must implement the Backend interface.
    """

    def deco(cls):
        if name in _BACKENDS:
            raise ValueError(f"Backend '{name}' is already registered.")
        _BACKENDS[name] = cls
        if name not in _ORDER:
            _ORDER.append(name)
        cls.name = name
        return cls

    return deco


def available_backends() -> List[str]:
    register_default_backends()
    return list(_ORDER)


def pick_backend(name: str, **kwargs: Any) -> "Backend":
    """Instantiate the backend registered as `name`."""
    register_default_backends()
    ctor = _BACKENDS.get((name or "").strip().lower())
    if ctor is None:
        raise InvalidSpecError(
            f"Unknown backend '{name}'. Available: {', '.join(_ORDER)}"
        )
    return ctor(**kwargs)


def register_default_backends() -> None:
    """
    Eagerly import built-in backends so their @register_backend decorators
    run and populate the registry.
    """
    from . import process  # noqa: F401
    from .native import backend  # noqa: F401
