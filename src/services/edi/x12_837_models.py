"""
X12 837 Claim Data Model.

Source: ASC X12N 005010X222A1 / 005010X223A2 Implementation Guides
Verified: 2025-12-19

Immutable records describing a professional or institutional claim and
the envelope metadata it is transmitted under. The engine reads these
objects and never mutates them.
"""

from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal
from typing import List, Optional, Union

from src.core.enums import (
    ClaimFilingIndicator,
    ClaimFrequencyCode,
    ClaimType,
    DiagnosisQualifier,
    EntityType,
    Gender,
    InstitutionalProcedureQualifier,
    ProcedureQualifier,
    RelatedCauseCode,
    RelationshipCode,
    ReleaseOfInformationCode,
    UnitType,
    UsageIndicator,
)


# =============================================================================
# Parties
# =============================================================================


@dataclass(frozen=True)
class ProviderInfo:
    """
    Provider identification.

    Used for rendering, attending, operating and other operating
    providers (Loops 2310x / 2420A).
    """

    npi: str
    entity_type: EntityType = EntityType.PERSON
    name: str = ""  # Organization name
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    middle_name: Optional[str] = None
    suffix: Optional[str] = None
    tax_id: Optional[str] = None
    taxonomy_code: Optional[str] = None

    # Address
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None

    @property
    def display_name(self) -> str:
        """Last name for persons, organization name otherwise."""
        if self.entity_type == EntityType.PERSON and self.last_name:
            return self.last_name
        return self.name

    @property
    def has_address(self) -> bool:
        return bool(self.address1)


@dataclass(frozen=True)
class BillingProviderInfo(ProviderInfo):
    """
    Billing provider.

    Maps to Loop 2010AA. Also supplies the submitter contact for Loop
    1000A and the optional pay-to address for Loop 2010AB.
    """

    entity_type: EntityType = EntityType.ORGANIZATION

    # Submitter contact (PER)
    contact_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    # Pay-to address
    pay_to_address1: Optional[str] = None
    pay_to_address2: Optional[str] = None
    pay_to_city: Optional[str] = None
    pay_to_state: Optional[str] = None
    pay_to_zip_code: Optional[str] = None

    @property
    def has_pay_to_address(self) -> bool:
        return bool(self.pay_to_address1)


@dataclass(frozen=True)
class ReferringProviderInfo:
    """Referring provider (NM1*DN)."""

    npi: str
    last_name: str
    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    suffix: Optional[str] = None


@dataclass(frozen=True)
class ServiceFacilityInfo:
    """Service facility location (NM1*77)."""

    name: str
    address1: str
    city: str
    state: str
    zip_code: str
    npi: Optional[str] = None
    address2: Optional[str] = None


@dataclass(frozen=True)
class SubscriberInfo:
    """
    Insured subscriber.

    Maps to Loop 2000B / 2010BA.
    """

    member_id: str
    first_name: str
    last_name: str
    middle_name: Optional[str] = None
    suffix: Optional[str] = None
    group_number: Optional[str] = None
    group_name: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None

    # Address
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None

    @property
    def has_address(self) -> bool:
        return bool(self.address1)


@dataclass(frozen=True)
class PatientInfo:
    """
    Patient.

    Maps to Loop 2000C / 2010CA when the patient is not the subscriber.
    """

    first_name: str
    last_name: str
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    relationship_to_subscriber: RelationshipCode = RelationshipCode.SELF
    middle_name: Optional[str] = None
    suffix: Optional[str] = None
    account_number: Optional[str] = None

    # Address
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None

    @property
    def is_subscriber(self) -> bool:
        """Patient is the subscriber (relationship 18); no patient HL."""
        relationship = self.relationship_to_subscriber
        return getattr(relationship, "value", relationship) == RelationshipCode.SELF.value


@dataclass(frozen=True)
class PayerInfo:
    """
    Destination payer.

    Maps to Loop 2010BB and the 1000B receiver.
    """

    payer_id: str
    name: str
    claim_filing_indicator: Optional[ClaimFilingIndicator] = None
    responsibility_sequence: str = "P"  # SBR01: P, S, T

    # Address
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None

    @property
    def has_address(self) -> bool:
        return bool(self.address1)


# =============================================================================
# Diagnoses
# =============================================================================


@dataclass(frozen=True)
class DiagnosisInfo:
    """One diagnosis code with its HI qualifier."""

    code: str
    qualifier: DiagnosisQualifier = DiagnosisQualifier.ABK
    present_on_admission: Optional[str] = None  # Y, N, U, W (837I)


@dataclass(frozen=True)
class DiagnosisSet:
    """
    Diagnoses on a claim.

    Service line pointers index into principal followed by secondary,
    starting at 1.
    """

    principal: Optional[DiagnosisInfo]
    secondary: List[DiagnosisInfo] = field(default_factory=list)

    # Institutional only
    admitting: Optional[DiagnosisInfo] = None
    patient_reason_for_visit: List[DiagnosisInfo] = field(default_factory=list)
    external_cause: List[DiagnosisInfo] = field(default_factory=list)

    @property
    def pointer_targets(self) -> List[DiagnosisInfo]:
        """Diagnoses addressable by service line pointers, in pointer order."""
        targets = [self.principal] if self.principal is not None else []
        return targets + list(self.secondary or [])


# =============================================================================
# Service Lines
# =============================================================================


@dataclass(frozen=True)
class ProcedureInfo:
    """
    Professional service line.

    Maps to Loop 2400 (SV1) in X12 837P.
    """

    code: str
    charge_amount: Optional[Decimal]
    units: Union[Decimal, int, None]
    service_date: Optional[date]
    diagnosis_pointers: List[int] = field(default_factory=list)
    place_of_service: Optional[str] = None
    qualifier: ProcedureQualifier = ProcedureQualifier.HCPCS
    modifiers: List[str] = field(default_factory=list)
    unit_type: UnitType = UnitType.UNIT
    service_end_date: Optional[date] = None
    description: Optional[str] = None

    # Indicators (SV109, SV111, SV112)
    emergency_indicator: bool = False
    epsdt_indicator: bool = False
    family_planning_indicator: bool = False

    # Line references
    line_item_control_number: Optional[str] = None
    rendering_provider: Optional[ProviderInfo] = None

    # Drug identification (Loop 2410)
    ndc_code: Optional[str] = None
    ndc_quantity: Optional[Decimal] = None
    ndc_unit: Optional[str] = None  # F2, GR, ME, ML, UN


@dataclass(frozen=True)
class RevenueCodeLine:
    """
    Institutional service line.

    Maps to Loop 2400 (SV2) in X12 837I.
    """

    revenue_code: str
    charge_amount: Optional[Decimal]
    units: Union[Decimal, int, None]
    service_date: Optional[date] = None
    service_end_date: Optional[date] = None
    procedure_code: Optional[str] = None
    qualifier: ProcedureQualifier = ProcedureQualifier.HCPCS
    modifiers: List[str] = field(default_factory=list)
    unit_type: UnitType = UnitType.UNIT
    unit_rate: Optional[Decimal] = None
    non_covered_charges: Optional[Decimal] = None
    description: Optional[str] = None
    line_item_control_number: Optional[str] = None

    @property
    def is_total_line(self) -> bool:
        """Revenue code 0001 carries the claim total."""
        return self.revenue_code == "0001"


# =============================================================================
# Institutional Code Sets
# =============================================================================


@dataclass(frozen=True)
class InstitutionalProcedure:
    """ICD-10-PCS procedure (HI BBR / BBQ)."""

    code: str
    procedure_date: date
    qualifier: InstitutionalProcedureQualifier = InstitutionalProcedureQualifier.OTHER


@dataclass(frozen=True)
class OccurrenceCode:
    """Occurrence code with date (HI BH)."""

    code: str
    occurrence_date: date


@dataclass(frozen=True)
class OccurrenceSpanCode:
    """Occurrence span code with from/through dates (HI BI)."""

    code: str
    from_date: date
    through_date: date


@dataclass(frozen=True)
class ValueCode:
    """Value code with amount (HI BE)."""

    code: str
    amount: Decimal


@dataclass(frozen=True)
class RelatedCause:
    """Related causes for CLM11 (accident or employment)."""

    codes: List[RelatedCauseCode]
    state: Optional[str] = None  # Auto accident state
    country: Optional[str] = None


# =============================================================================
# Claim
# =============================================================================


@dataclass(frozen=True)
class ClaimHeader:
    """
    Claim level information.

    Maps to CLM and the Loop 2300 dates and references.
    """

    claim_id: str  # BHT03 originator reference
    patient_control_number: str
    total_charge_amount: Optional[Decimal]
    claim_frequency_code: ClaimFrequencyCode = ClaimFrequencyCode.ORIGINAL
    original_claim_number: Optional[str] = None
    release_of_information: ReleaseOfInformationCode = ReleaseOfInformationCode.YES
    provider_signature_on_file: bool = True
    provider_accept_assignment: bool = True
    benefits_assignment_certification: bool = True

    # References
    prior_authorization_number: Optional[str] = None
    referral_number: Optional[str] = None
    medical_record_number: Optional[str] = None
    clia_number: Optional[str] = None

    # Professional
    place_of_service: Optional[str] = None
    related_causes: Optional[RelatedCause] = None
    delay_reason_code: Optional[str] = None
    onset_date: Optional[date] = None
    initial_treatment_date: Optional[date] = None
    last_seen_date: Optional[date] = None
    accident_date: Optional[date] = None
    last_menstrual_period_date: Optional[date] = None

    # Institutional
    facility_type_code: Optional[str] = None
    admission_date: Optional[date] = None
    admission_hour: Optional[time] = None
    admission_type_code: Optional[str] = None
    admission_source_code: Optional[str] = None
    discharge_hour: Optional[time] = None
    patient_status_code: Optional[str] = None


@dataclass(frozen=True)
class ProfessionalClaim:
    """Professional claim rendered as 837P."""

    header: ClaimHeader
    billing_provider: BillingProviderInfo
    subscriber: SubscriberInfo
    patient: PatientInfo
    payer: PayerInfo
    diagnoses: DiagnosisSet
    service_lines: List[ProcedureInfo] = field(default_factory=list)
    rendering_provider: Optional[ProviderInfo] = None
    referring_provider: Optional[ReferringProviderInfo] = None
    service_facility: Optional[ServiceFacilityInfo] = None

    claim_type = ClaimType.PROFESSIONAL


@dataclass(frozen=True)
class InstitutionalClaim:
    """Institutional claim rendered as 837I."""

    header: ClaimHeader
    billing_provider: BillingProviderInfo
    subscriber: SubscriberInfo
    patient: PatientInfo
    payer: PayerInfo
    diagnoses: DiagnosisSet
    revenue_lines: List[RevenueCodeLine] = field(default_factory=list)
    statement_from_date: Optional[date] = None
    statement_through_date: Optional[date] = None

    # Providers
    attending_provider: Optional[ProviderInfo] = None
    operating_provider: Optional[ProviderInfo] = None
    other_operating_provider: Optional[ProviderInfo] = None
    rendering_provider: Optional[ProviderInfo] = None
    referring_provider: Optional[ReferringProviderInfo] = None
    service_facility: Optional[ServiceFacilityInfo] = None

    # Code sets
    principal_procedure: Optional[InstitutionalProcedure] = None
    other_procedures: List[InstitutionalProcedure] = field(default_factory=list)
    condition_codes: List[str] = field(default_factory=list)
    occurrence_codes: List[OccurrenceCode] = field(default_factory=list)
    occurrence_span_codes: List[OccurrenceSpanCode] = field(default_factory=list)
    value_codes: List[ValueCode] = field(default_factory=list)
    drg_code: Optional[str] = None

    claim_type = ClaimType.INSTITUTIONAL


Claim837 = Union[ProfessionalClaim, InstitutionalClaim]


# =============================================================================
# Envelope Metadata
# =============================================================================


@dataclass(frozen=True)
class InterchangeInfo:
    """ISA / IEA interchange envelope."""

    sender_id: str
    receiver_id: str
    interchange_control_number: str  # 9 digits
    interchange_date: date
    interchange_time: time
    sender_id_qualifier: str = "ZZ"
    receiver_id_qualifier: str = "ZZ"
    version: str = "00501"
    acknowledgment_requested: bool = True
    usage_indicator: UsageIndicator = UsageIndicator.PRODUCTION


@dataclass(frozen=True)
class FunctionalGroupInfo:
    """GS / GE functional group envelope."""

    application_sender_code: str
    application_receiver_code: str
    group_control_number: str
    group_date: date
    group_time: time
    functional_identifier_code: str = "HC"
    responsible_agency_code: str = "X"
    version: Optional[str] = None  # Defaults to the claim's convention


@dataclass(frozen=True)
class TransactionSetInfo:
    """ST / SE transaction set header."""

    transaction_set_control_number: str  # 4 to 9 digits
    implementation_convention: Optional[str] = None
