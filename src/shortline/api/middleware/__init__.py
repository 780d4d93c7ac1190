"""HTTP middleware for shortline."""

from shortline.api.middleware.correlation import CorrelationMiddleware

__all__ = ["CorrelationMiddleware"]
