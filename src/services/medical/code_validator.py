"""
Medical Code Format Validation.
Source: CMS ICD-10-CM/PCS Official Guidelines, AMA CPT, CMS HCPCS Level II
Verified: 2025-12-19

Validates ICD-10-CM, ICD-10-PCS, CPT and HCPCS code formats and the
procedure modifier rules applied to claim service lines.
"""

import re
from typing import Optional

from pydantic import BaseModel, Field

from src.core.enums import CodeSystem


class CodeFinding(BaseModel):
    """A coded observation about a medical code or modifier set."""

    code: str
    message: str


class CodeValidationResult(BaseModel):
    """Result of medical code format validation."""

    code: str
    code_system: Optional[CodeSystem] = None
    is_valid: bool
    format_valid: bool
    error_message: Optional[str] = None
    warnings: list[CodeFinding] = Field(default_factory=list)


class CodeFormatValidator:
    """
    Validates medical code formats.

    Supports:
    - ICD-10-CM (diagnosis codes, decimal point optional)
    - ICD-10-PCS (7 character inpatient procedure codes)
    - CPT (5 digit procedure codes)
    - HCPCS Level II (letter A-V followed by 4 digits)
    """

    # Code format patterns
    CODE_PATTERNS = {
        CodeSystem.ICD10_CM: r"^[A-TV-Z]\d{2}[A-Z0-9]{0,4}$",
        CodeSystem.ICD10_PCS: r"^[0-9A-HJ-NP-Z]{7}$",
        CodeSystem.CPT: r"^\d{5}$",
        CodeSystem.HCPCS: r"^[A-V]\d{4}$",
    }

    # Codes payers routinely reject as primary or billable diagnoses
    REJECTED_DIAGNOSIS_CODES = frozenset({"Z000", "Z001", "T148", "T149"})

    MODIFIER_PATTERN = r"^[A-Z0-9]{2}$"
    MAX_MODIFIERS = 4

    MUTUALLY_EXCLUSIVE_MODIFIERS = (
        ("26", "TC"),  # Professional vs technical component
        ("LT", "RT"),  # Left vs right side
        ("50", "LT"),  # Bilateral vs left
        ("50", "RT"),  # Bilateral vs right
        ("51", "59"),  # Multiple procedures vs distinct service
        ("76", "77"),  # Repeat by same vs different physician
    )

    def normalize(self, code: str, code_system: CodeSystem) -> str:
        """Upper-case, trim and drop ICD-10-CM decimal points."""
        normalized = str(code).strip().upper()
        if code_system == CodeSystem.ICD10_CM:
            normalized = normalized.replace(".", "")
        return normalized

    def is_valid_format(self, code: str, code_system: CodeSystem) -> bool:
        """
        Check if code matches the expected format.

        Args:
            code: Code to check
            code_system: Code system to check against

        Returns:
            True if format is valid
        """
        if not code:
            return False
        normalized = self.normalize(code, code_system)
        if code_system == CodeSystem.ICD10_CM and not 3 <= len(normalized) <= 7:
            return False
        pattern = self.CODE_PATTERNS.get(code_system)
        return bool(pattern and re.fullmatch(pattern, normalized))

    def validate_diagnosis_code(
        self,
        code: str,
        code_system: CodeSystem = CodeSystem.ICD10_CM,
    ) -> CodeValidationResult:
        """
        Validate a diagnosis code and flag codes likely to be rejected.

        Args:
            code: The diagnosis code to validate
            code_system: ICD10_CM, or ICD10_PCS for ABJ qualified codes

        Returns:
            CodeValidationResult; warnings never affect is_valid
        """
        normalized = self.normalize(code, code_system)
        format_valid = self.is_valid_format(code, code_system)
        result = CodeValidationResult(
            code=normalized,
            code_system=code_system,
            is_valid=format_valid,
            format_valid=format_valid,
        )

        if not format_valid:
            result.error_message = f"Invalid {self._label(code_system)} format: {code}"
            return result

        if code_system == CodeSystem.ICD10_CM:
            if normalized in self.REJECTED_DIAGNOSIS_CODES:
                result.warnings.append(CodeFinding(
                    code="POTENTIALLY_REJECTED_CODE",
                    message=f"Diagnosis code {code} is commonly rejected by payers",
                ))
            if self.is_unspecified(normalized):
                result.warnings.append(CodeFinding(
                    code="UNSPECIFIED_CODE",
                    message=f"Diagnosis code {code} appears to be unspecified; a more specific code may be required",
                ))

        return result

    def validate_procedure_code(
        self,
        code: str,
        code_systems: tuple[CodeSystem, ...] = (CodeSystem.CPT, CodeSystem.HCPCS),
    ) -> CodeValidationResult:
        """
        Validate a procedure code against any of the accepted code systems.

        Args:
            code: CPT, HCPCS or ICD-10-PCS code
            code_systems: Accepted code systems, tried in order

        Returns:
            CodeValidationResult naming the first matching code system
        """
        for code_system in code_systems:
            if self.is_valid_format(code, code_system):
                return CodeValidationResult(
                    code=self.normalize(code, code_system),
                    code_system=code_system,
                    is_valid=True,
                    format_valid=True,
                )

        labels = "/".join(self._label(cs) for cs in code_systems)
        return CodeValidationResult(
            code=str(code).strip().upper() if code else "",
            is_valid=False,
            format_valid=False,
            error_message=f"Invalid {labels} format: {code}",
        )

    def is_unspecified(self, code: str) -> bool:
        """Heuristic: unspecified ICD-10-CM codes end in 9."""
        return len(code) >= 4 and code.endswith("9")

    def validate_modifiers(self, modifiers: Optional[list[str]]) -> list[CodeFinding]:
        """
        Validate the modifier list of one service line.

        Checks count, format, duplicates and mutually exclusive pairs. Every
        violated rule is reported.

        Args:
            modifiers: Modifiers in billing order

        Returns:
            List of findings, empty when the modifiers are acceptable
        """
        findings: list[CodeFinding] = []
        if not modifiers:
            return findings

        if len(modifiers) > self.MAX_MODIFIERS:
            findings.append(CodeFinding(
                code="TOO_MANY_MODIFIERS",
                message=f"Maximum {self.MAX_MODIFIERS} modifiers allowed per line, got {len(modifiers)}",
            ))

        normalized = [str(m).strip().upper() if m is not None else "" for m in modifiers]

        for original, modifier in zip(modifiers, normalized):
            if not re.fullmatch(self.MODIFIER_PATTERN, modifier):
                findings.append(CodeFinding(
                    code="INVALID_MODIFIER_FORMAT",
                    message=f"Invalid modifier format: {original}",
                ))

        if len(set(normalized)) != len(normalized):
            findings.append(CodeFinding(
                code="DUPLICATE_MODIFIERS",
                message="Duplicate modifiers are not allowed",
            ))

        present = set(normalized)
        for first, second in self.MUTUALLY_EXCLUSIVE_MODIFIERS:
            if first in present and second in present:
                findings.append(CodeFinding(
                    code="MUTUALLY_EXCLUSIVE_MODIFIERS",
                    message=f"Modifiers {first} and {second} cannot be used together",
                ))

        return findings

    @staticmethod
    def _label(code_system: CodeSystem) -> str:
        return {
            CodeSystem.ICD10_CM: "ICD-10-CM",
            CodeSystem.ICD10_PCS: "ICD-10-PCS",
            CodeSystem.CPT: "CPT",
            CodeSystem.HCPCS: "HCPCS",
        }[code_system]


# =============================================================================
# Factory Functions
# =============================================================================


_code_validator: Optional[CodeFormatValidator] = None


def get_code_validator() -> CodeFormatValidator:
    """Get singleton CodeFormatValidator instance."""
    global _code_validator
    if _code_validator is None:
        _code_validator = CodeFormatValidator()
    return _code_validator
