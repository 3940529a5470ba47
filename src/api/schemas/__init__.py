# API Schemas
"""
Request and response schemas for the letter service API.
"""

from src.api.schemas.common import ApiModel, Envelope, error_envelope

__all__ = ["ApiModel", "Envelope", "error_envelope"]
