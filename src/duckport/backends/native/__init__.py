from duckport.backends.native.backend import NativeBackend, NativeState
from duckport.backends.native.marshal import ResultMarshaler

__all__ = ["NativeBackend", "NativeState", "ResultMarshaler"]
