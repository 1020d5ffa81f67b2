"""
Validation Result Schemas.

Source: ASC X12N 005010X222A1 / 005010X223A2 situational rules
Verified: 2025-12-19

Serializable form of ClaimValidationResult for callers outside the engine
(submission pipelines, operator tooling).
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.services.claim_validation import ClaimValidationResult, ValidationIssue


class ValidationErrorItem(BaseModel):
    """Blocking validation error."""

    code: str = Field(..., description="Stable error code")
    message: str = Field(..., description="Human-readable message")
    field: Optional[str] = Field(None, description="Path of the offending field")
    severity: str = Field("error", description="Always 'error'")
    category: Optional[str] = Field(None, description="Validation category")
    details: Optional[dict[str, Any]] = Field(None, description="Offending values")


class ValidationWarningItem(BaseModel):
    """Advisory validation warning."""

    code: str = Field(..., description="Stable warning code")
    message: str = Field(..., description="Human-readable message")
    field: Optional[str] = Field(None, description="Path of the offending field")
    category: Optional[str] = Field(None, description="Validation category")
    details: Optional[dict[str, Any]] = Field(None, description="Offending values")


class ClaimValidationResponse(BaseModel):
    """
    Validation output contract.

    Serialized with by_alias=True this renders as
    {isValid, errors, warnings, validatedAt}.
    """

    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(..., alias="isValid", description="False blocks formatting")
    errors: list[ValidationErrorItem] = Field(default_factory=list)
    warnings: list[ValidationWarningItem] = Field(default_factory=list)
    validated_at: Optional[datetime] = Field(None, alias="validatedAt")

    @classmethod
    def from_result(cls, result: ClaimValidationResult) -> "ClaimValidationResponse":
        """Build the response from a validator result."""
        return cls(
            is_valid=result.is_valid,
            errors=[ValidationErrorItem(**_issue_fields(issue)) for issue in result.errors],
            warnings=[ValidationWarningItem(**_issue_fields(issue)) for issue in result.warnings],
            validated_at=result.validated_at,
        )


def _issue_fields(issue: ValidationIssue) -> dict[str, Any]:
    return {
        "code": issue.code,
        "message": issue.message,
        "field": issue.field,
        "category": issue.category.value,
        "details": issue.details,
    }
