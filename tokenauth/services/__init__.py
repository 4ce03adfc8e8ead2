"""Services package exports."""

from tokenauth.services.auth_service import AuthService
from tokenauth.services.logging_service import configure_logging, get_logger
from tokenauth.services.token_validation import TokenValidationGate

__all__ = [
    "AuthService",
    "TokenValidationGate",
    "configure_logging",
    "get_logger",
]
