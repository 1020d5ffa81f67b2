"""
EDI Services - X12 837 Claim Generation.

Source: ASC X12N 005010X222A1 (837P) and 005010X223A2 (837I)
Verified: 2025-12-19

Provides:
- X12 segment building with configurable delimiters
- 837 claim data model
- 837P/837I generation

Submission orchestration (validation then generation) lives in
src.services.edi.edi_service.
"""

from src.services.edi.x12_base import (
    MissingClaimComponentError,
    SegmentID,
    TransactionType,
    X12Error,
    X12FormatError,
    validate_npi,
)
from src.services.edi.segment_builder import (
    DEFAULT_DELIMITERS,
    SegmentBuilder,
    X12Delimiters,
    sanitize_element,
)
from src.services.edi.x12_837_models import (
    BillingProviderInfo,
    Claim837,
    ClaimHeader,
    DiagnosisInfo,
    DiagnosisSet,
    FunctionalGroupInfo,
    InstitutionalClaim,
    InstitutionalProcedure,
    InterchangeInfo,
    OccurrenceCode,
    OccurrenceSpanCode,
    PatientInfo,
    PayerInfo,
    ProcedureInfo,
    ProfessionalClaim,
    ProviderInfo,
    ReferringProviderInfo,
    RelatedCause,
    RevenueCodeLine,
    ServiceFacilityInfo,
    SubscriberInfo,
    TransactionSetInfo,
    ValueCode,
)
from src.services.edi.x12_837_generator import (
    X12837Generator,
    create_default_functional_group_info,
    create_default_interchange_info,
    format_institutional_claim,
    format_professional_claim,
    generate_patient_control_number,
)

__all__ = [
    # Base
    "MissingClaimComponentError",
    "SegmentID",
    "TransactionType",
    "X12Error",
    "X12FormatError",
    "validate_npi",
    # Segment Builder
    "DEFAULT_DELIMITERS",
    "SegmentBuilder",
    "X12Delimiters",
    "sanitize_element",
    # Models
    "BillingProviderInfo",
    "Claim837",
    "ClaimHeader",
    "DiagnosisInfo",
    "DiagnosisSet",
    "FunctionalGroupInfo",
    "InstitutionalClaim",
    "InstitutionalProcedure",
    "InterchangeInfo",
    "OccurrenceCode",
    "OccurrenceSpanCode",
    "PatientInfo",
    "PayerInfo",
    "ProcedureInfo",
    "ProfessionalClaim",
    "ProviderInfo",
    "ReferringProviderInfo",
    "RelatedCause",
    "RevenueCodeLine",
    "ServiceFacilityInfo",
    "SubscriberInfo",
    "TransactionSetInfo",
    "ValueCode",
    # Generator
    "X12837Generator",
    "create_default_functional_group_info",
    "create_default_interchange_info",
    "format_institutional_claim",
    "format_professional_claim",
    "generate_patient_control_number",
]
