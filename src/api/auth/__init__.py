# API Authentication
"""
Caller authentication against the hosted identity service.
"""

from src.api.auth.identity_gateway import IdentityGateway

__all__ = ["IdentityGateway"]
