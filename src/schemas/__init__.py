"""
Pydantic Schemas for the Claims Engine.

This module exports the serializable output schemas.
"""

from src.schemas.validation_result import (
    ClaimValidationResponse,
    ValidationErrorItem,
    ValidationWarningItem,
)

__all__ = [
    "ClaimValidationResponse",
    "ValidationErrorItem",
    "ValidationWarningItem",
]
