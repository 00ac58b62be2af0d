"""
Middleware components for request processing.
"""

from storecast.middleware.request_context import RequestContextMiddleware

__all__ = [
    "RequestContextMiddleware",
]
