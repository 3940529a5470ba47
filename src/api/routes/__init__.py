# API Routes
"""
API route modules.
"""

from src.api.routes import admin, coupons, health, letters

__all__ = ["admin", "coupons", "health", "letters"]
