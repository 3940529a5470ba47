# API Services
"""
Service components for API functionality.
"""

from src.api.services.pdf_generator import LetterPDFGenerator

__all__ = ["LetterPDFGenerator"]
