"""API routers for shortline."""

from shortline.api.routers import blobs, health, shorts, users

__all__ = ["blobs", "health", "shorts", "users"]
