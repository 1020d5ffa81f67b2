"""
Claim Validation Service.

Provides pre-submission validation of 837 claims:
- Identifier validation (NPI, tax ID)
- Completeness of parties, addresses and identity fields
- Medical code and modifier validation
- Cross-field consistency (diagnosis pointers, frequency, statement period)
- Timely filing

Every check runs on every call so the caller sees the full defect list in
one pass. Data defects are reported as issues, never raised.

Source: ASC X12N 005010X222A1 / 005010X223A2 situational rules
Verified: 2025-12-19
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from src.core.enums import (
    ClaimFrequencyCode,
    CodeSystem,
    DiagnosisQualifier,
    Gender,
    ProcedureQualifier,
)
from src.services.edi.x12_base import enum_value, validate_npi
from src.services.edi.x12_837_models import (
    BillingProviderInfo,
    Claim837,
    DiagnosisInfo,
    DiagnosisSet,
    InstitutionalClaim,
    ProfessionalClaim,
)
from src.services.medical.code_validator import CodeFormatValidator, get_code_validator
from src.services.timely_filing import FilingStatus, TimelyFilingPolicy, as_date
from src.utils.logging import get_logger

logger = get_logger(__name__)

ZIP_CODE_PATTERN = r"\d{5}(-?\d{4})?"
STATE_PATTERN = r"[A-Za-z]{2}"
TAX_ID_PATTERN = r"\d{9}"
PLACE_OF_SERVICE_PATTERN = r"\d{2}"
REVENUE_CODE_PATTERN = r"\d{4}"

MAX_PATIENT_CONTROL_NUMBER_LENGTH = 20
HIGH_UNITS_THRESHOLD = 999
MIN_VALID_YEAR = 1900
MAX_DIAGNOSIS_POINTER = 12  # SV107 addresses at most 12 diagnoses


class ValidationSeverity(str, Enum):
    """Severity level of validation issues."""

    ERROR = "error"  # Blocks formatting and submission
    WARNING = "warning"  # Advisory only


class ValidationCategory(str, Enum):
    """Category of validation issue."""

    COMPLETENESS = "completeness"  # Missing required fields
    FORMAT = "format"  # Invalid data format
    IDENTIFIER = "identifier"  # NPI / tax ID
    MEDICAL_CODE = "medical_code"  # Diagnosis and procedure codes
    MODIFIER = "modifier"
    CROSS_FIELD = "cross_field"  # Consistency between fields
    TIMELY_FILING = "timely_filing"


@dataclass
class ValidationIssue:
    """Single validation issue."""

    code: str
    message: str
    severity: ValidationSeverity
    category: ValidationCategory
    field: Optional[str] = None
    details: Optional[dict] = None


@dataclass
class ClaimValidationResult:
    """Complete validation result."""

    is_valid: bool = True
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)
    validated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def add_issue(self, issue: ValidationIssue) -> None:
        """Add a validation issue."""
        if issue.severity == ValidationSeverity.ERROR:
            self.errors.append(issue)
            self.is_valid = False
        else:
            self.warnings.append(issue)

    def add_error(
        self,
        code: str,
        message: str,
        field: Optional[str] = None,
        category: ValidationCategory = ValidationCategory.COMPLETENESS,
        details: Optional[dict] = None,
    ) -> None:
        self.add_issue(ValidationIssue(
            code=code,
            message=message,
            severity=ValidationSeverity.ERROR,
            category=category,
            field=field,
            details=details,
        ))

    def add_warning(
        self,
        code: str,
        message: str,
        field: Optional[str] = None,
        category: ValidationCategory = ValidationCategory.CROSS_FIELD,
        details: Optional[dict] = None,
    ) -> None:
        self.add_issue(ValidationIssue(
            code=code,
            message=message,
            severity=ValidationSeverity.WARNING,
            category=category,
            field=field,
            details=details,
        ))

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    @property
    def error_codes(self) -> list[str]:
        return [issue.code for issue in self.errors]

    @property
    def warning_codes(self) -> list[str]:
        return [issue.code for issue in self.warnings]


# =============================================================================
# Value Helpers
# =============================================================================


def _to_decimal(value: Any) -> Optional[Decimal]:
    """Numeric value as Decimal, or None when it is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def _is_valid_date(value: Any, reference: date) -> bool:
    """A real date between 1900 and the year after the reference date."""
    if not isinstance(value, date):
        return False
    return MIN_VALID_YEAR <= value.year <= reference.year + 1


def _matches(pattern: str, value: Any) -> bool:
    return isinstance(value, str) and re.fullmatch(pattern, value) is not None


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


# =============================================================================
# Claim Validator
# =============================================================================


class Claim837Validator:
    """
    Validator for professional and institutional 837 claims.

    Validates:
    - Claim header fields and claim frequency rules
    - Provider identifiers and addresses
    - Subscriber, patient and payer identity fields
    - Diagnosis, procedure and revenue code formats
    - Service line modifiers, units, charges and diagnosis pointers
    - Timely filing against the payer's filing limit
    """

    def __init__(
        self,
        code_validator: Optional[CodeFormatValidator] = None,
        filing_policy: Optional[TimelyFilingPolicy] = None,
    ):
        """
        Initialize claim validator.

        Args:
            code_validator: Code format validator (shared instance by default)
            filing_policy: Timely filing limits (built-in table by default)
        """
        self.codes = code_validator or get_code_validator()
        self.filing_policy = filing_policy or TimelyFilingPolicy()

    def validate(
        self,
        claim: Claim837,
        submission_date: Optional[date] = None,
    ) -> ClaimValidationResult:
        """
        Validate a complete claim.

        Args:
            claim: Professional or institutional claim
            submission_date: Date the claim will be submitted (today by default)

        Returns:
            ClaimValidationResult with every error and warning found
        """
        submission_date = as_date(submission_date) or date.today()
        result = ClaimValidationResult()

        if isinstance(claim, ProfessionalClaim):
            self._validate_professional(claim, submission_date, result)
        elif isinstance(claim, InstitutionalClaim):
            self._validate_institutional(claim, submission_date, result)
        else:
            result.add_error(
                code="UNSUPPORTED_CLAIM_TYPE",
                message=f"Unsupported claim type: {type(claim).__name__}",
                field="claim",
            )

        logger.debug(
            f"Validated claim {self._claim_id(claim)}: "
            f"{result.error_count} errors, {result.warning_count} warnings"
        )
        return result

    def _validate_professional(
        self,
        claim: ProfessionalClaim,
        submission_date: date,
        result: ClaimValidationResult,
    ) -> None:
        self._validate_header(claim, result)
        self._validate_billing_provider(claim.billing_provider, result)
        self._validate_optional_npi(claim.rendering_provider, "rendering_provider", result)
        self._validate_optional_npi(claim.referring_provider, "referring_provider", result)
        self._validate_optional_npi(claim.service_facility, "service_facility", result)
        self._validate_subscriber(claim, result)
        self._validate_patient(claim, submission_date, result)
        self._validate_payer(claim, result)
        self._validate_diagnoses(claim.diagnoses, result)
        self._validate_service_lines(claim, submission_date, result)

        service_dates = [
            as_date(line.service_date)
            for line in claim.service_lines or []
            if line is not None and isinstance(line.service_date, date)
        ]
        earliest = min(service_dates) if service_dates else None
        self._validate_timely_filing(claim, earliest, submission_date, result)
        self._validate_total_charge_consistency(claim, result)

    def _validate_institutional(
        self,
        claim: InstitutionalClaim,
        submission_date: date,
        result: ClaimValidationResult,
    ) -> None:
        self._validate_header(claim, result)
        self._validate_billing_provider(claim.billing_provider, result)
        self._validate_optional_npi(claim.attending_provider, "attending_provider", result)
        self._validate_optional_npi(claim.operating_provider, "operating_provider", result)
        self._validate_optional_npi(claim.other_operating_provider, "other_operating_provider", result)
        self._validate_optional_npi(claim.rendering_provider, "rendering_provider", result)
        self._validate_optional_npi(claim.referring_provider, "referring_provider", result)
        self._validate_optional_npi(claim.service_facility, "service_facility", result)
        self._validate_subscriber(claim, result)
        self._validate_patient(claim, submission_date, result)
        self._validate_payer(claim, result)
        self._validate_diagnoses(claim.diagnoses, result)
        self._validate_institutional_diagnoses(claim.diagnoses, result)
        self._validate_statement_period(claim, result)
        self._validate_revenue_lines(claim, submission_date, result)
        self._validate_icd_procedures(claim, result)

        earliest = as_date(claim.statement_from_date) if isinstance(claim.statement_from_date, date) else None
        if earliest is None:
            line_dates = [
                as_date(line.service_date)
                for line in claim.revenue_lines or []
                if line is not None and isinstance(line.service_date, date)
            ]
            earliest = min(line_dates) if line_dates else None
        self._validate_timely_filing(claim, earliest, submission_date, result)
        self._validate_total_charge_consistency(claim, result)

    # =========================================================================
    # Header Validation
    # =========================================================================

    def _validate_header(self, claim: Claim837, result: ClaimValidationResult) -> None:
        """Validate claim header fields."""
        header = claim.header
        if header is None:
            result.add_error(
                code="MISSING_CLAIM_HEADER",
                message="Claim header is required",
                field="header",
            )
            return

        pcn = header.patient_control_number
        if _is_blank(pcn):
            result.add_error(
                code="MISSING_PATIENT_CONTROL_NUMBER",
                message="Patient control number is required",
                field="header.patient_control_number",
            )
        elif len(str(pcn)) > MAX_PATIENT_CONTROL_NUMBER_LENGTH:
            result.add_error(
                code="PATIENT_CONTROL_NUMBER_TOO_LONG",
                message=f"Patient control number cannot exceed {MAX_PATIENT_CONTROL_NUMBER_LENGTH} characters",
                field="header.patient_control_number",
                category=ValidationCategory.FORMAT,
            )

        total = _to_decimal(header.total_charge_amount)
        if total is None:
            result.add_error(
                code="MISSING_TOTAL_CHARGE",
                message="Total charge amount is required",
                field="header.total_charge_amount",
            )
        elif total < 0:
            result.add_error(
                code="NEGATIVE_TOTAL_CHARGE",
                message="Total charge amount cannot be negative",
                field="header.total_charge_amount",
                category=ValidationCategory.FORMAT,
            )

        if ClaimFrequencyCode.requires_original(header.claim_frequency_code):
            if _is_blank(header.original_claim_number):
                result.add_error(
                    code="MISSING_ORIGINAL_CLAIM_NUMBER",
                    message="Original claim number is required for replacement or void claims",
                    field="header.original_claim_number",
                    category=ValidationCategory.CROSS_FIELD,
                )

    # =========================================================================
    # Provider Validation
    # =========================================================================

    def _validate_billing_provider(
        self,
        provider: Optional[BillingProviderInfo],
        result: ClaimValidationResult,
    ) -> None:
        """Validate billing provider identifiers and address."""
        if provider is None:
            result.add_error(
                code="MISSING_PROVIDER",
                message="Billing provider information is required",
                field="billing_provider",
            )
            return

        self._validate_npi(provider.npi, "billing_provider.npi", result)

        if _is_blank(provider.tax_id):
            result.add_error(
                code="MISSING_TAX_ID",
                message="Billing provider tax ID is required",
                field="billing_provider.tax_id",
            )
        elif not _matches(TAX_ID_PATTERN, str(provider.tax_id).replace("-", "")):
            result.add_error(
                code="INVALID_TAX_ID",
                message="Tax ID must be 9 digits",
                field="billing_provider.tax_id",
                category=ValidationCategory.IDENTIFIER,
            )

        self._validate_address(provider, "billing_provider", result)

    def _validate_optional_npi(self, provider: Any, path: str, result: ClaimValidationResult) -> None:
        """Validate the NPI of a provider that is present; facility NPI may be omitted."""
        if provider is None:
            return
        npi = getattr(provider, "npi", None)
        if path == "service_facility" and _is_blank(npi):
            return
        self._validate_npi(npi, f"{path}.npi", result)

    def _validate_npi(self, npi: Any, path: str, result: ClaimValidationResult) -> None:
        if _is_blank(npi):
            result.add_error(
                code="MISSING_NPI",
                message="NPI is required",
                field=path,
            )
        elif not validate_npi(npi):
            result.add_error(
                code="INVALID_NPI",
                message=f"Invalid NPI: {npi}",
                field=path,
                category=ValidationCategory.IDENTIFIER,
            )

    def _validate_address(self, party: Any, prefix: str, result: ClaimValidationResult) -> None:
        """Validate street, city, state and ZIP of a party."""
        if _is_blank(party.address1):
            result.add_error(
                code="MISSING_ADDRESS",
                message="Address is required",
                field=f"{prefix}.address1",
            )

        if _is_blank(party.city):
            result.add_error(
                code="MISSING_CITY",
                message="City is required",
                field=f"{prefix}.city",
            )

        if _is_blank(party.state):
            result.add_error(
                code="MISSING_STATE",
                message="State is required",
                field=f"{prefix}.state",
            )
        elif not _matches(STATE_PATTERN, party.state):
            result.add_error(
                code="INVALID_STATE",
                message="State must be 2-letter code",
                field=f"{prefix}.state",
                category=ValidationCategory.FORMAT,
            )

        if _is_blank(party.zip_code):
            result.add_error(
                code="MISSING_ZIP_CODE",
                message="ZIP code is required",
                field=f"{prefix}.zip_code",
            )
        elif not _matches(ZIP_CODE_PATTERN, party.zip_code):
            result.add_error(
                code="INVALID_ZIP_CODE",
                message="ZIP code must be 5 or 9 digits",
                field=f"{prefix}.zip_code",
                category=ValidationCategory.FORMAT,
            )

    # =========================================================================
    # Subscriber / Patient / Payer Validation
    # =========================================================================

    def _validate_subscriber(self, claim: Claim837, result: ClaimValidationResult) -> None:
        subscriber = claim.subscriber
        if subscriber is None:
            result.add_error(
                code="MISSING_SUBSCRIBER",
                message="Subscriber information is required",
                field="subscriber",
            )
            return

        if _is_blank(subscriber.member_id):
            result.add_error(
                code="MISSING_MEMBER_ID",
                message="Subscriber member ID is required",
                field="subscriber.member_id",
            )
        if _is_blank(subscriber.first_name):
            result.add_error(
                code="MISSING_SUBSCRIBER_FIRST_NAME",
                message="Subscriber first name is required",
                field="subscriber.first_name",
            )
        if _is_blank(subscriber.last_name):
            result.add_error(
                code="MISSING_SUBSCRIBER_LAST_NAME",
                message="Subscriber last name is required",
                field="subscriber.last_name",
            )

    def _validate_patient(
        self,
        claim: Claim837,
        submission_date: date,
        result: ClaimValidationResult,
    ) -> None:
        patient = claim.patient
        if patient is None:
            result.add_error(
                code="MISSING_PATIENT",
                message="Patient information is required",
                field="patient",
            )
            return

        if _is_blank(patient.first_name):
            result.add_error(
                code="MISSING_PATIENT_FIRST_NAME",
                message="Patient first name is required",
                field="patient.first_name",
            )
        if _is_blank(patient.last_name):
            result.add_error(
                code="MISSING_PATIENT_LAST_NAME",
                message="Patient last name is required",
                field="patient.last_name",
            )

        if patient.date_of_birth is None:
            result.add_error(
                code="MISSING_PATIENT_DOB",
                message="Patient date of birth is required",
                field="patient.date_of_birth",
            )
        elif not _is_valid_date(patient.date_of_birth, submission_date):
            result.add_error(
                code="INVALID_PATIENT_DOB",
                message="Invalid patient date of birth",
                field="patient.date_of_birth",
                category=ValidationCategory.FORMAT,
            )

        gender = enum_value(patient.gender)
        if _is_blank(gender):
            result.add_error(
                code="MISSING_PATIENT_GENDER",
                message="Patient gender is required",
                field="patient.gender",
            )
        elif gender not in {g.value for g in Gender}:
            result.add_error(
                code="INVALID_PATIENT_GENDER",
                message=f"Patient gender must be M, F or U, got {gender}",
                field="patient.gender",
                category=ValidationCategory.FORMAT,
            )

        self._validate_address(patient, "patient", result)

    def _validate_payer(self, claim: Claim837, result: ClaimValidationResult) -> None:
        payer = claim.payer
        if payer is None:
            result.add_error(
                code="MISSING_PAYER",
                message="Payer information is required",
                field="payer",
            )
            return

        if _is_blank(payer.payer_id):
            result.add_error(
                code="MISSING_PAYER_ID",
                message="Payer ID is required",
                field="payer.payer_id",
            )
        if _is_blank(payer.name):
            result.add_error(
                code="MISSING_PAYER_NAME",
                message="Payer name is required",
                field="payer.name",
            )
        if _is_blank(enum_value(payer.claim_filing_indicator)):
            result.add_error(
                code="MISSING_CLAIM_FILING_INDICATOR",
                message="Claim filing indicator is required",
                field="payer.claim_filing_indicator",
            )

    # =========================================================================
    # Diagnosis Validation
    # =========================================================================

    def _validate_diagnoses(self, diagnoses: Optional[DiagnosisSet], result: ClaimValidationResult) -> None:
        """Validate principal and secondary diagnoses."""
        if diagnoses is None or diagnoses.principal is None:
            result.add_error(
                code="MISSING_DIAGNOSIS",
                message="Principal diagnosis is required",
                field="diagnoses.principal",
                category=ValidationCategory.MEDICAL_CODE,
            )
        else:
            self._validate_diagnosis(diagnoses.principal, "diagnoses.principal", result)

        if diagnoses is None:
            return
        for i, diagnosis in enumerate(diagnoses.secondary or []):
            self._validate_diagnosis(diagnosis, f"diagnoses.secondary[{i}]", result)

    def _validate_institutional_diagnoses(
        self,
        diagnoses: Optional[DiagnosisSet],
        result: ClaimValidationResult,
    ) -> None:
        """Validate admitting, reason-for-visit and external cause diagnoses."""
        if diagnoses is None:
            return
        if diagnoses.admitting is not None:
            self._validate_diagnosis(diagnoses.admitting, "diagnoses.admitting", result)
        for i, diagnosis in enumerate(diagnoses.patient_reason_for_visit or []):
            self._validate_diagnosis(diagnosis, f"diagnoses.patient_reason_for_visit[{i}]", result)
        for i, diagnosis in enumerate(diagnoses.external_cause or []):
            self._validate_diagnosis(diagnosis, f"diagnoses.external_cause[{i}]", result)

    def _validate_diagnosis(
        self,
        diagnosis: Optional[DiagnosisInfo],
        path: str,
        result: ClaimValidationResult,
    ) -> None:
        if diagnosis is None or _is_blank(diagnosis.code):
            result.add_error(
                code="MISSING_DIAGNOSIS_CODE",
                message="Diagnosis code is required",
                field=f"{path}.code",
                category=ValidationCategory.MEDICAL_CODE,
            )
            return

        try:
            code_system = DiagnosisQualifier(enum_value(diagnosis.qualifier)).code_system
        except ValueError:
            result.add_error(
                code="INVALID_DIAGNOSIS_QUALIFIER",
                message=f"Unknown diagnosis qualifier: {diagnosis.qualifier}",
                field=f"{path}.qualifier",
                category=ValidationCategory.MEDICAL_CODE,
            )
            return

        check = self.codes.validate_diagnosis_code(diagnosis.code, code_system)
        if not check.format_valid:
            result.add_error(
                code="INVALID_PROCEDURE_FORMAT" if code_system == CodeSystem.ICD10_PCS else "INVALID_DIAGNOSIS_FORMAT",
                message=check.error_message or f"Invalid diagnosis code: {diagnosis.code}",
                field=f"{path}.code",
                category=ValidationCategory.MEDICAL_CODE,
            )
            return

        for finding in check.warnings:
            result.add_warning(
                code=finding.code,
                message=finding.message,
                field=f"{path}.code",
                category=ValidationCategory.MEDICAL_CODE,
            )

    # =========================================================================
    # Service Line Validation
    # =========================================================================

    def _validate_service_lines(
        self,
        claim: ProfessionalClaim,
        submission_date: date,
        result: ClaimValidationResult,
    ) -> None:
        """Validate professional service lines."""
        lines = claim.service_lines or []
        if not lines:
            result.add_error(
                code="NO_SERVICE_LINES",
                message="At least one service line is required",
                field="service_lines",
            )
            return

        diagnosis_count = len(claim.diagnoses.pointer_targets) if claim.diagnoses is not None else 0

        for i, line in enumerate(lines):
            path = f"service_lines[{i}]"
            if line is None:
                result.add_error(
                    code="MISSING_PROCEDURE_CODE",
                    message=f"Service line {i + 1} is empty",
                    field=path,
                )
                continue

            self._validate_procedure_code(line.code, line.qualifier, f"{path}.code", result)
            self._validate_modifiers(line.modifiers, f"{path}.modifiers", result)
            self._validate_charge(line.charge_amount, f"{path}.charge_amount", result)
            self._validate_units(line.units, f"{path}.units", result)
            self._validate_service_date(line.service_date, f"{path}.service_date", submission_date, result)
            self._validate_pointers(line.diagnosis_pointers, diagnosis_count, f"{path}.diagnosis_pointers", result)

            if _is_blank(line.place_of_service) and _is_blank(claim.header.place_of_service if claim.header else None):
                result.add_error(
                    code="MISSING_PLACE_OF_SERVICE",
                    message="Place of service is required",
                    field=f"{path}.place_of_service",
                )
            elif not _is_blank(line.place_of_service) and not _matches(PLACE_OF_SERVICE_PATTERN, line.place_of_service):
                result.add_error(
                    code="INVALID_PLACE_OF_SERVICE",
                    message="Place of service must be 2-digit code",
                    field=f"{path}.place_of_service",
                    category=ValidationCategory.FORMAT,
                )

            if line.rendering_provider is not None:
                self._validate_npi(line.rendering_provider.npi, f"{path}.rendering_provider.npi", result)

    def _validate_procedure_code(
        self,
        code: Any,
        qualifier: Any,
        path: str,
        result: ClaimValidationResult,
    ) -> None:
        if _is_blank(code):
            result.add_error(
                code="MISSING_PROCEDURE_CODE",
                message="Procedure code is required",
                field=path,
                category=ValidationCategory.MEDICAL_CODE,
            )
            return

        try:
            code_systems = ProcedureQualifier(enum_value(qualifier)).code_systems
        except ValueError:
            result.add_error(
                code="INVALID_PROCEDURE_QUALIFIER",
                message=f"Unknown procedure qualifier: {qualifier}",
                field=path,
                category=ValidationCategory.MEDICAL_CODE,
            )
            return
        if not code_systems:
            return
        check = self.codes.validate_procedure_code(code, code_systems)
        if not check.format_valid:
            result.add_error(
                code="INVALID_PROCEDURE_FORMAT",
                message=check.error_message or f"Invalid procedure code: {code}",
                field=path,
                category=ValidationCategory.MEDICAL_CODE,
            )

    def _validate_modifiers(self, modifiers: Any, path: str, result: ClaimValidationResult) -> None:
        for finding in self.codes.validate_modifiers(list(modifiers or [])):
            result.add_error(
                code=finding.code,
                message=finding.message,
                field=path,
                category=ValidationCategory.MODIFIER,
            )

    def _validate_charge(self, charge: Any, path: str, result: ClaimValidationResult) -> None:
        amount = _to_decimal(charge)
        if amount is None:
            result.add_error(
                code="MISSING_CHARGE_AMOUNT",
                message="Charge amount is required",
                field=path,
            )
        elif amount < 0:
            result.add_error(
                code="NEGATIVE_CHARGE",
                message="Charge amount cannot be negative",
                field=path,
                category=ValidationCategory.FORMAT,
            )
        elif amount == 0:
            result.add_warning(
                code="ZERO_CHARGE",
                message="Service line has zero charge",
                field=path,
            )

    def _validate_units(self, units: Any, path: str, result: ClaimValidationResult) -> None:
        quantity = _to_decimal(units)
        if quantity is None or quantity < 1:
            result.add_error(
                code="INVALID_UNITS",
                message="Units must be at least 1",
                field=path,
                category=ValidationCategory.FORMAT,
            )
        elif quantity > HIGH_UNITS_THRESHOLD:
            result.add_warning(
                code="HIGH_UNITS",
                message=f"Unusually high unit count: {units}",
                field=path,
            )

    def _validate_service_date(
        self,
        service_date: Any,
        path: str,
        submission_date: date,
        result: ClaimValidationResult,
    ) -> None:
        if service_date is None:
            result.add_error(
                code="MISSING_SERVICE_DATE",
                message="Service date is required",
                field=path,
            )
        elif not _is_valid_date(service_date, submission_date):
            result.add_error(
                code="INVALID_SERVICE_DATE",
                message="Invalid service date",
                field=path,
                category=ValidationCategory.FORMAT,
            )

    def _validate_pointers(
        self,
        pointers: Any,
        diagnosis_count: int,
        path: str,
        result: ClaimValidationResult,
    ) -> None:
        """Every pointer must address an existing diagnosis (1-based, at most 12)."""
        if not pointers:
            result.add_error(
                code="MISSING_DIAGNOSIS_POINTERS",
                message="At least one diagnosis pointer is required",
                field=path,
                category=ValidationCategory.CROSS_FIELD,
            )
            return

        addressable = min(diagnosis_count, MAX_DIAGNOSIS_POINTER)
        for pointer in pointers:
            valid = isinstance(pointer, int) and not isinstance(pointer, bool) and 1 <= pointer <= addressable
            if not valid:
                result.add_error(
                    code="INVALID_DIAGNOSIS_POINTER",
                    message=f"Diagnosis pointer {pointer} is out of range (1-{addressable})",
                    field=path,
                    category=ValidationCategory.CROSS_FIELD,
                    details={"pointer": pointer, "diagnosis_count": diagnosis_count},
                )

    # =========================================================================
    # Institutional Validation
    # =========================================================================

    def _validate_statement_period(self, claim: InstitutionalClaim, result: ClaimValidationResult) -> None:
        if claim.statement_from_date is None:
            result.add_error(
                code="MISSING_STATEMENT_FROM_DATE",
                message="Statement from date is required for institutional claims",
                field="statement_from_date",
            )
        if claim.statement_through_date is None:
            result.add_error(
                code="MISSING_STATEMENT_THROUGH_DATE",
                message="Statement through date is required for institutional claims",
                field="statement_through_date",
            )
        if (
            isinstance(claim.statement_from_date, date)
            and isinstance(claim.statement_through_date, date)
            and as_date(claim.statement_from_date) > as_date(claim.statement_through_date)
        ):
            result.add_error(
                code="INVALID_STATEMENT_PERIOD",
                message="Statement from date cannot be after statement through date",
                field="statement_through_date",
                category=ValidationCategory.CROSS_FIELD,
            )

    def _validate_revenue_lines(
        self,
        claim: InstitutionalClaim,
        submission_date: date,
        result: ClaimValidationResult,
    ) -> None:
        """Validate institutional revenue code lines."""
        lines = claim.revenue_lines or []
        if not lines:
            result.add_error(
                code="NO_REVENUE_LINES",
                message="At least one revenue line is required",
                field="revenue_lines",
            )
            return

        for i, line in enumerate(lines):
            path = f"revenue_lines[{i}]"
            if line is None:
                result.add_error(
                    code="MISSING_REVENUE_CODE",
                    message=f"Revenue line {i + 1} is empty",
                    field=path,
                )
                continue

            if _is_blank(line.revenue_code):
                result.add_error(
                    code="MISSING_REVENUE_CODE",
                    message="Revenue code is required",
                    field=f"{path}.revenue_code",
                )
            elif not _matches(REVENUE_CODE_PATTERN, line.revenue_code):
                result.add_error(
                    code="INVALID_REVENUE_CODE",
                    message="Revenue code must be 4 digits",
                    field=f"{path}.revenue_code",
                    category=ValidationCategory.FORMAT,
                )

            if not _is_blank(line.procedure_code):
                self._validate_procedure_code(line.procedure_code, line.qualifier, f"{path}.procedure_code", result)
            self._validate_modifiers(line.modifiers, f"{path}.modifiers", result)
            self._validate_charge(line.charge_amount, f"{path}.charge_amount", result)
            self._validate_units(line.units, f"{path}.units", result)
            if line.service_date is None:
                result.add_error(
                    code="MISSING_SERVICE_DATE",
                    message="Service date is required",
                    field=f"{path}.service_date",
                )
            elif not _is_valid_date(line.service_date, submission_date):
                result.add_error(
                    code="INVALID_SERVICE_DATE",
                    message="Invalid service date",
                    field=f"{path}.service_date",
                    category=ValidationCategory.FORMAT,
                )

        if not any(line is not None and line.is_total_line for line in lines):
            result.add_warning(
                code="MISSING_TOTAL_REVENUE_LINE",
                message="No total charge line (revenue code 0001) found",
                field="revenue_lines",
            )

    def _validate_icd_procedures(self, claim: InstitutionalClaim, result: ClaimValidationResult) -> None:
        """ICD-10-PCS principal and other procedure codes."""
        procedures = []
        if claim.principal_procedure is not None:
            procedures.append(("principal_procedure", claim.principal_procedure))
        for i, procedure in enumerate(claim.other_procedures or []):
            procedures.append((f"other_procedures[{i}]", procedure))

        for path, procedure in procedures:
            if procedure is None or _is_blank(procedure.code):
                result.add_error(
                    code="MISSING_PROCEDURE_CODE",
                    message="Procedure code is required",
                    field=f"{path}.code",
                    category=ValidationCategory.MEDICAL_CODE,
                )
            elif not self.codes.is_valid_format(procedure.code, CodeSystem.ICD10_PCS):
                result.add_error(
                    code="INVALID_PROCEDURE_FORMAT",
                    message=f"Invalid ICD-10-PCS format: {procedure.code}",
                    field=f"{path}.code",
                    category=ValidationCategory.MEDICAL_CODE,
                )

    # =========================================================================
    # Timely Filing and Totals
    # =========================================================================

    def _validate_timely_filing(
        self,
        claim: Claim837,
        earliest_service_date: Optional[date],
        submission_date: date,
        result: ClaimValidationResult,
    ) -> None:
        """Compare the earliest service date against the payer's filing limit."""
        if earliest_service_date is None:
            return

        indicator = claim.payer.claim_filing_indicator if claim.payer is not None else None
        check = self.filing_policy.evaluate(earliest_service_date, submission_date, indicator)
        details = {
            "limit_days": check.limit_days,
            "elapsed_days": check.elapsed_days,
            "filing_indicator": check.filing_indicator,
        }

        if check.status == FilingStatus.EXCEEDED:
            result.add_error(
                code="TIMELY_FILING_EXCEEDED",
                message=(
                    f"Claim exceeds timely filing limit of {check.limit_days} days "
                    f"({check.elapsed_days} days since service)"
                ),
                field="service_date",
                category=ValidationCategory.TIMELY_FILING,
                details=details,
            )
        elif check.status == FilingStatus.APPROACHING_DEADLINE:
            result.add_warning(
                code="APPROACHING_FILING_DEADLINE",
                message=f"Claim is approaching timely filing deadline ({check.days_remaining} days remaining)",
                field="service_date",
                category=ValidationCategory.TIMELY_FILING,
                details=details,
            )
        elif check.status == FilingStatus.FUTURE_SERVICE:
            result.add_warning(
                code="FUTURE_SERVICE_DATE",
                message="Service date is in the future",
                field="service_date",
                category=ValidationCategory.TIMELY_FILING,
                details=details,
            )

    def _validate_total_charge_consistency(self, claim: Claim837, result: ClaimValidationResult) -> None:
        """Header total should equal the sum of the line charges."""
        if claim.header is None:
            return
        total = _to_decimal(claim.header.total_charge_amount)
        if isinstance(claim, ProfessionalClaim):
            lines = [line for line in claim.service_lines or [] if line is not None]
        else:
            lines = [line for line in claim.revenue_lines or [] if line is not None and not line.is_total_line]
        charges = [_to_decimal(line.charge_amount) for line in lines]
        if total is None or not charges or any(charge is None for charge in charges):
            return

        line_total = sum(charges, Decimal("0"))
        if line_total != total:
            result.add_warning(
                code="TOTAL_CHARGE_MISMATCH",
                message=f"Total charge {total} does not equal sum of line charges {line_total}",
                field="header.total_charge_amount",
                details={"total_charge": str(total), "line_total": str(line_total)},
            )

    @staticmethod
    def _claim_id(claim: Any) -> str:
        header = getattr(claim, "header", None)
        return getattr(header, "claim_id", None) or "<unknown>"


# =============================================================================
# Factory Functions
# =============================================================================


def get_claim_validator(
    code_validator: Optional[CodeFormatValidator] = None,
    filing_policy: Optional[TimelyFilingPolicy] = None,
) -> Claim837Validator:
    """Get claim validator instance."""
    return Claim837Validator(code_validator=code_validator, filing_policy=filing_policy)


def validate_claim(claim: Claim837, submission_date: Optional[date] = None) -> ClaimValidationResult:
    """Validate a claim with the default code validator and filing table."""
    return Claim837Validator().validate(claim, submission_date=submission_date)
