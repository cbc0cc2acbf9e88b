from .base import SearchBackend

__all__ = ["SearchBackend"]
