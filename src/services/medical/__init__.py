"""
Medical Code Services.
Source: CMS ICD-10-CM/PCS Official Guidelines, AMA CPT, CMS HCPCS Level II
Verified: 2025-12-19

Provides medical code and modifier format validation.
"""

from src.services.medical.code_validator import (
    CodeFinding,
    CodeFormatValidator,
    CodeValidationResult,
    get_code_validator,
)

__all__ = [
    "CodeFinding",
    "CodeFormatValidator",
    "CodeValidationResult",
    "get_code_validator",
]
