"""API package exports."""

from tokenauth.api.auth import router as auth_router
from tokenauth.api.middleware import CorrelationIdMiddleware
from tokenauth.api.routes import router

__all__ = ["auth_router", "router", "CorrelationIdMiddleware"]
