"""
EDI Service - Orchestrates X12 837 claim submission.

Source: ASC X12N 005010X222A1 / 005010X223A2
Verified: 2025-12-19

Provides high-level EDI operations:
- Validate 837 claims before submission
- Generate 837P/837I interchanges for valid claims
- Fill envelope metadata from settings when the caller omits it
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from src.core.config import ClaimsEngineSettings, get_claims_engine_settings
from src.services.claim_validation import (
    Claim837Validator,
    ClaimValidationResult,
    ValidationIssue,
)
from src.services.edi.x12_837_generator import (
    X12837Generator,
    create_default_functional_group_info,
    create_default_interchange_info,
)
from src.services.edi.x12_837_models import (
    Claim837,
    FunctionalGroupInfo,
    InterchangeInfo,
    TransactionSetInfo,
)
from src.services.edi.x12_base import TransactionType, X12FormatError
from src.services.timely_filing import TimelyFilingPolicy
from src.utils.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# Enums and Models
# =============================================================================


class EDITransactionStatus(str, Enum):
    """837 submission status."""

    REJECTED = "rejected"  # Validation failed, nothing generated
    GENERATED = "generated"  # Interchange produced
    FAILED = "failed"  # Structural fault while formatting


@dataclass
class EDI837Result:
    """Result of 837 validation and generation."""

    transaction_id: str
    claim_id: str
    transaction_type: Optional[TransactionType]
    status: EDITransactionStatus
    content: str = ""
    control_number: str = ""
    validation: Optional[ClaimValidationResult] = None
    errors: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def is_generated(self) -> bool:
        return self.status == EDITransactionStatus.GENERATED

    @property
    def warnings(self) -> List[ValidationIssue]:
        return list(self.validation.warnings) if self.validation else []


# =============================================================================
# Service
# =============================================================================


class EDIService:
    """
    EDI Service for X12 837 claim submission.

    Handles:
    - Pre-submission validation
    - 837P/837I generation
    - Envelope defaults from ClaimsEngineSettings

    Usage:
        service = EDIService()
        result = service.generate_837(claim)
        if result.is_generated:
            send(result.content)
        else:
            print(result.errors)
    """

    def __init__(
        self,
        settings: Optional[ClaimsEngineSettings] = None,
        validator: Optional[Claim837Validator] = None,
        generator: Optional[X12837Generator] = None,
    ):
        """
        Initialize EDI service.

        Args:
            settings: Engine settings (process settings by default)
            validator: Claim validator (filing limits from settings by default)
            generator: 837 generator (delimiters from settings by default)
        """
        self.settings = settings or get_claims_engine_settings()
        self.validator = validator or Claim837Validator(
            filing_policy=TimelyFilingPolicy.with_overrides(
                self.settings.TIMELY_FILING_LIMITS,
                default_limit_days=self.settings.DEFAULT_FILING_LIMIT_DAYS,
                warning_ratio=self.settings.FILING_DEADLINE_WARNING_RATIO,
            ),
        )
        self.generator = generator or X12837Generator(
            delimiters=self.settings.delimiters,
            include_line_breaks=self.settings.INCLUDE_LINE_BREAKS,
        )

    def validate_837(
        self,
        claim: Claim837,
        submission_date: Optional[date] = None,
    ) -> ClaimValidationResult:
        """
        Validate a claim without generating anything.

        Args:
            claim: Professional or institutional claim
            submission_date: Submission date for timely filing (today by default)

        Returns:
            ClaimValidationResult with every error and warning
        """
        return self.validator.validate(claim, submission_date=submission_date)

    def generate_837(
        self,
        claim: Claim837,
        interchange: Optional[InterchangeInfo] = None,
        functional_group: Optional[FunctionalGroupInfo] = None,
        transaction_set: Optional[TransactionSetInfo] = None,
        submission_date: Optional[date] = None,
        skip_validation: bool = False,
    ) -> EDI837Result:
        """
        Validate and generate an X12 837 interchange.

        Invalid claims are returned as REJECTED with one error string per
        validation error; formatting is not attempted.

        Args:
            claim: Professional or institutional claim
            interchange: ISA metadata (built from settings when omitted)
            functional_group: GS metadata (built from settings when omitted)
            transaction_set: ST metadata (control number 0001 when omitted)
            submission_date: Submission date for timely filing
            skip_validation: Format without validating (caller already validated)

        Returns:
            EDI837Result with generated content or errors
        """
        transaction_id = str(uuid4())
        claim_id = self._claim_id(claim)
        claim_type = getattr(claim, "claim_type", None)
        transaction_type = TransactionType.for_claim_type(claim_type) if claim_type else None

        validation: Optional[ClaimValidationResult] = None
        if not skip_validation:
            validation = self.validate_837(claim, submission_date=submission_date)
            if not validation.is_valid:
                logger.warning(f"Claim {claim_id} rejected with {validation.error_count} validation errors")
                return EDI837Result(
                    transaction_id=transaction_id,
                    claim_id=claim_id,
                    transaction_type=transaction_type,
                    status=EDITransactionStatus.REJECTED,
                    validation=validation,
                    errors=[f"{issue.code}: {issue.message}" for issue in validation.errors],
                )

        try:
            interchange = interchange or self._default_interchange(claim)
            functional_group = functional_group or self._default_functional_group(claim, interchange)
            content = self.generator.generate(claim, interchange, functional_group, transaction_set)
        except X12FormatError as e:
            logger.error(f"Structural fault formatting claim {claim_id}: {e}")
            return EDI837Result(
                transaction_id=transaction_id,
                claim_id=claim_id,
                transaction_type=transaction_type,
                status=EDITransactionStatus.FAILED,
                validation=validation,
                errors=[str(e)],
            )

        logger.info(
            f"Generated {transaction_type.value if transaction_type else '837'} for claim {claim_id} "
            f"(ISA {interchange.interchange_control_number})"
        )
        return EDI837Result(
            transaction_id=transaction_id,
            claim_id=claim_id,
            transaction_type=transaction_type,
            status=EDITransactionStatus.GENERATED,
            content=content,
            control_number=interchange.interchange_control_number,
            validation=validation,
        )

    def _default_interchange(self, claim: Claim837) -> InterchangeInfo:
        payer = getattr(claim, "payer", None)
        return create_default_interchange_info(
            sender_id=self.settings.SENDER_ID,
            receiver_id=getattr(payer, "payer_id", None) or "",
            usage_indicator=self.settings.USAGE_INDICATOR,
            sender_id_qualifier=self.settings.SENDER_ID_QUALIFIER,
            receiver_id_qualifier=self.settings.RECEIVER_ID_QUALIFIER,
            acknowledgment_requested=self.settings.ACKNOWLEDGMENT_REQUESTED,
        )

    def _default_functional_group(self, claim: Claim837, interchange: InterchangeInfo) -> FunctionalGroupInfo:
        return create_default_functional_group_info(
            application_sender_code=self.settings.application_sender_code,
            application_receiver_code=interchange.receiver_id,
            claim_type=claim.claim_type,
            timestamp=datetime.combine(interchange.interchange_date, interchange.interchange_time),
        )

    @staticmethod
    def _claim_id(claim: Claim837) -> str:
        header = getattr(claim, "header", None)
        return getattr(header, "claim_id", None) or ""


# =============================================================================
# Factory Function
# =============================================================================


_edi_service: Optional[EDIService] = None


def get_edi_service() -> EDIService:
    """
    Get or create EDI service instance.

    Returns:
        EDIService instance
    """
    global _edi_service

    if _edi_service is None:
        _edi_service = EDIService()

    return _edi_service
