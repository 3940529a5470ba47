# API Middleware
"""
Middleware components: CORS, request ID tracking and bearer authentication.
"""

from src.api.middleware.auth import AuthMiddleware
from src.api.middleware.cors import LetterCORSMiddleware, PreflightMiddleware, add_cors_middleware
from src.api.middleware.request_id import RequestIdMiddleware, get_request_id

__all__ = [
    "AuthMiddleware",
    "LetterCORSMiddleware",
    "PreflightMiddleware",
    "RequestIdMiddleware",
    "add_cors_middleware",
    "get_request_id",
]
