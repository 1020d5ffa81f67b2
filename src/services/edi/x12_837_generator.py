"""
X12 837 Claim Generator.

Source: ASC X12N 005010X222A1 (837P) and 005010X223A2 (837I)
Verified: 2025-12-19

Renders professional and institutional claims as X12 837 transactions.

Structure:
- ISA/GS/ST: envelope, functional group and transaction headers
- BHT: beginning of hierarchical transaction
- 1000A/1000B: submitter and receiver
- 2000A/2010AA/2010AB: billing provider hierarchy
- 2000B/2010BA/2010BB: subscriber hierarchy and payer
- 2000C/2010CA: patient hierarchy (only when patient is not the subscriber)
- 2300/2310x: claim information and claim level providers
- 2400: one loop per service or revenue line
- SE/GE/IEA: trailers
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, Iterator, List, Optional, Sequence
from uuid import uuid4

from src.core.enums import ClaimFrequencyCode, ClaimType, EntityType, UsageIndicator
from src.services.edi.segment_builder import SegmentBuilder, X12Delimiters
from src.services.edi.x12_837_models import (
    BillingProviderInfo,
    Claim837,
    ClaimHeader,
    DiagnosisInfo,
    FunctionalGroupInfo,
    InstitutionalClaim,
    InterchangeInfo,
    PatientInfo,
    PayerInfo,
    ProcedureInfo,
    ProfessionalClaim,
    ProviderInfo,
    ReferringProviderInfo,
    RevenueCodeLine,
    ServiceFacilityInfo,
    SubscriberInfo,
    TransactionSetInfo,
)
from src.services.edi.x12_base import (
    MissingClaimComponentError,
    SegmentID,
    TransactionType,
    X12FormatError,
    enum_value,
    format_x12_amount,
    format_x12_date,
    format_x12_date_range,
    format_x12_quantity,
    format_x12_short_date,
    format_x12_time,
    format_zip_code,
    pad_control_number,
)
from src.utils.logging import get_logger

logger = get_logger(__name__)


# HI composites per segment
PROFESSIONAL_DIAGNOSES_PER_HI = 11
SECONDARY_DIAGNOSES_PER_HI = 11
REASON_FOR_VISIT_PER_HI = 3
HI_COMPOSITE_LIMIT = 12

DEFAULT_PLACE_OF_SERVICE = "11"  # Office
DEFAULT_TRANSACTION_SET_CONTROL_NUMBER = "0001"


class Composite(tuple):
    """Component values rendered as one composite element."""

    def __new__(cls, *values: Any) -> "Composite":
        return super().__new__(cls, values)


def _chunks(items: Sequence[Any], size: int) -> Iterator[Sequence[Any]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


# =============================================================================
# Render Context
# =============================================================================


@dataclass
class _RenderContext:
    """
    Per-call accumulator for one transaction.

    segment_count covers ST through SE; envelope segments (ISA, GS, GE,
    IEA) are emitted uncounted.
    """

    delimiters: X12Delimiters
    line_break: bool
    segments: List[str] = field(default_factory=list)
    segment_count: int = 0
    hl_counter: int = 0

    def builder(self, segment_id: str) -> SegmentBuilder:
        return SegmentBuilder(segment_id, self.delimiters, self.line_break)

    def emit_builder(self, builder: SegmentBuilder, counted: bool = True) -> None:
        self.segments.append(builder.build())
        if counted:
            self.segment_count += 1

    def emit(self, segment_id: str, *elements: Any, counted: bool = True) -> None:
        builder = self.builder(segment_id)
        for element in elements:
            if isinstance(element, Composite):
                builder.add_component(*element)
            else:
                builder.add(element)
        self.emit_builder(builder, counted=counted)

    def next_hl_id(self) -> int:
        self.hl_counter += 1
        return self.hl_counter

    def render(self) -> str:
        return "".join(self.segments)


# =============================================================================
# Generator
# =============================================================================


class X12837Generator:
    """
    Generates X12 837P and 837I claim transactions.

    The generator holds only delimiter configuration; every call builds
    its own counters, so one instance can serve concurrent callers. Input
    is assumed to have passed Claim837Validator. Missing nested structures
    raise MissingClaimComponentError before anything is rendered.

    Usage:
        generator = X12837Generator()
        content = generator.generate(
            claim,
            interchange=InterchangeInfo(...),
            functional_group=FunctionalGroupInfo(...),
        )
    """

    def __init__(
        self,
        delimiters: Optional[X12Delimiters] = None,
        include_line_breaks: Optional[bool] = None,
    ):
        if delimiters is None or include_line_breaks is None:
            from src.core.config import get_claims_engine_settings

            settings = get_claims_engine_settings()
            delimiters = delimiters or settings.delimiters
            if include_line_breaks is None:
                include_line_breaks = settings.INCLUDE_LINE_BREAKS
        self.delimiters = delimiters
        self.include_line_breaks = include_line_breaks

    def generate(
        self,
        claim: Claim837,
        interchange: InterchangeInfo,
        functional_group: FunctionalGroupInfo,
        transaction_set: Optional[TransactionSetInfo] = None,
    ) -> str:
        """
        Generate an 837 transaction for either claim variant.

        Args:
            claim: ProfessionalClaim or InstitutionalClaim
            interchange: ISA envelope metadata
            functional_group: GS envelope metadata
            transaction_set: ST metadata (control number 0001 when omitted)

        Returns:
            X12 837 content string
        """
        if isinstance(claim, ProfessionalClaim):
            return self.format_professional_claim(claim, interchange, functional_group, transaction_set)
        if isinstance(claim, InstitutionalClaim):
            return self.format_institutional_claim(claim, interchange, functional_group, transaction_set)
        raise X12FormatError(f"Unsupported claim type: {type(claim).__name__}")

    def format_professional_claim(
        self,
        claim: ProfessionalClaim,
        interchange: InterchangeInfo,
        functional_group: FunctionalGroupInfo,
        transaction_set: Optional[TransactionSetInfo] = None,
    ) -> str:
        """
        Generate an X12 837P professional claim.

        Returns:
            X12 837P content string
        """
        self._require_common(claim, interchange, functional_group)
        self._require_lines(claim.service_lines, "service_lines")

        transaction = TransactionType.CLAIM_837P
        ctx = self._new_context()
        st_control = self._build_header_segments(ctx, claim.header, interchange, functional_group, transaction, transaction_set)

        self._build_loop_1000a(ctx, claim.billing_provider)
        self._build_loop_1000b(ctx, claim.payer)
        billing_hl = self._build_loop_2000a(ctx, claim.billing_provider, transaction)
        subscriber_hl = self._build_loop_2000b(ctx, claim.subscriber, claim.payer, claim.patient, billing_hl)
        if not claim.patient.is_subscriber:
            self._build_loop_2000c(ctx, claim.patient, subscriber_hl)

        self._build_loop_2300_professional(ctx, claim)

        for line_number, line in enumerate(claim.service_lines, start=1):
            self._build_loop_2400_professional(ctx, line, line_number)

        return self._finish(ctx, claim.header, interchange, functional_group, st_control, transaction)

    def format_institutional_claim(
        self,
        claim: InstitutionalClaim,
        interchange: InterchangeInfo,
        functional_group: FunctionalGroupInfo,
        transaction_set: Optional[TransactionSetInfo] = None,
    ) -> str:
        """
        Generate an X12 837I institutional claim.

        Returns:
            X12 837I content string
        """
        self._require_common(claim, interchange, functional_group)
        self._require_lines(claim.revenue_lines, "revenue_lines")
        self._require_statement_period(claim)

        transaction = TransactionType.CLAIM_837I
        ctx = self._new_context()
        st_control = self._build_header_segments(ctx, claim.header, interchange, functional_group, transaction, transaction_set)

        self._build_loop_1000a(ctx, claim.billing_provider)
        self._build_loop_1000b(ctx, claim.payer)
        billing_hl = self._build_loop_2000a(ctx, claim.billing_provider, transaction)
        subscriber_hl = self._build_loop_2000b(ctx, claim.subscriber, claim.payer, claim.patient, billing_hl)
        if not claim.patient.is_subscriber:
            self._build_loop_2000c(ctx, claim.patient, subscriber_hl)

        self._build_loop_2300_institutional(ctx, claim)

        for line_number, line in enumerate(claim.revenue_lines, start=1):
            self._build_loop_2400_institutional(ctx, line, line_number)

        return self._finish(ctx, claim.header, interchange, functional_group, st_control, transaction)

    # =========================================================================
    # Structural Checks
    # =========================================================================

    def _require_common(
        self,
        claim: Claim837,
        interchange: Optional[InterchangeInfo],
        functional_group: Optional[FunctionalGroupInfo],
    ) -> None:
        if interchange is None:
            raise MissingClaimComponentError("interchange", segment_id=SegmentID.ISA.value)
        if functional_group is None:
            raise MissingClaimComponentError("functional_group", segment_id=SegmentID.GS.value)
        if claim.header is None:
            raise MissingClaimComponentError("header", loop_id="2300", segment_id=SegmentID.CLM.value)
        if claim.billing_provider is None:
            raise MissingClaimComponentError("billing_provider", loop_id="2010AA")
        if claim.subscriber is None:
            raise MissingClaimComponentError("subscriber", loop_id="2010BA")
        if claim.payer is None:
            raise MissingClaimComponentError("payer", loop_id="2010BB")
        if claim.patient is None:
            raise MissingClaimComponentError("patient", loop_id="2000C")
        if claim.diagnoses is None:
            raise MissingClaimComponentError("diagnoses", loop_id="2300", segment_id=SegmentID.HI.value)
        if claim.diagnoses.principal is None:
            raise MissingClaimComponentError("diagnoses.principal", loop_id="2300", segment_id=SegmentID.HI.value)

    def _require_statement_period(self, claim: InstitutionalClaim) -> None:
        """DTP*434 is required on every 837I and needs both dates."""
        if claim.statement_from_date is None:
            raise MissingClaimComponentError("statement_from_date", loop_id="2300", segment_id=SegmentID.DTP.value)
        if claim.statement_through_date is None:
            raise MissingClaimComponentError("statement_through_date", loop_id="2300", segment_id=SegmentID.DTP.value)

    def _require_lines(self, lines: Optional[Sequence[Any]], name: str) -> None:
        if lines is None:
            raise MissingClaimComponentError(name, loop_id="2400")
        for index, line in enumerate(lines):
            if line is None:
                raise MissingClaimComponentError(f"{name}[{index}]", loop_id="2400")

    def _new_context(self) -> _RenderContext:
        return _RenderContext(delimiters=self.delimiters, line_break=self.include_line_breaks)

    # =========================================================================
    # Envelope
    # =========================================================================

    def _build_header_segments(
        self,
        ctx: _RenderContext,
        header: ClaimHeader,
        interchange: InterchangeInfo,
        functional_group: FunctionalGroupInfo,
        transaction: TransactionType,
        transaction_set: Optional[TransactionSetInfo],
    ) -> str:
        """Emit ISA, GS, ST and BHT. Returns the ST control number."""
        self._build_isa(ctx, interchange)

        # GS - Functional Group Header
        ctx.emit(
            SegmentID.GS.value,
            functional_group.functional_identifier_code,  # HC = Health Care Claim
            functional_group.application_sender_code,
            functional_group.application_receiver_code,
            format_x12_date(functional_group.group_date),
            format_x12_time(functional_group.group_time),
            functional_group.group_control_number,
            functional_group.responsible_agency_code,  # X = ASC X12
            functional_group.version or transaction.implementation_convention,
            counted=False,
        )

        st_control = DEFAULT_TRANSACTION_SET_CONTROL_NUMBER
        convention = transaction.implementation_convention
        if transaction_set is not None:
            st_control = transaction_set.transaction_set_control_number or st_control
            convention = transaction_set.implementation_convention or convention

        # ST - Transaction Set Header
        ctx.emit(SegmentID.ST.value, "837", st_control, convention)

        # BHT - Beginning of Hierarchical Transaction
        ctx.emit(
            SegmentID.BHT.value,
            "0019",  # Information Source, Subscriber, Dependent
            "00",  # Original
            header.claim_id,  # Originator application transaction identifier
            format_x12_date(functional_group.group_date),
            format_x12_time(functional_group.group_time),
            "CH",  # Chargeable
        )
        return st_control

    def _build_isa(self, ctx: _RenderContext, interchange: InterchangeInfo) -> None:
        """Build ISA segment. Fixed-width fields keep their padding."""
        builder = ctx.builder(SegmentID.ISA.value)
        builder.add("00")  # Authorization Info Qualifier
        builder.add_fixed("", 10)  # Authorization Info
        builder.add("00")  # Security Info Qualifier
        builder.add_fixed("", 10)  # Security Info
        builder.add_fixed(interchange.sender_id_qualifier, 2)
        builder.add_fixed(interchange.sender_id, 15)
        builder.add_fixed(interchange.receiver_id_qualifier, 2)
        builder.add_fixed(interchange.receiver_id, 15)
        builder.add(format_x12_short_date(interchange.interchange_date))  # YYMMDD
        builder.add(format_x12_time(interchange.interchange_time))  # HHMM
        builder.add_raw(self.delimiters.repetition)  # Repetition Separator
        builder.add_fixed(interchange.version, 5)  # 00501
        builder.add(pad_control_number(interchange.interchange_control_number, 9))
        builder.add("1" if interchange.acknowledgment_requested else "0")
        builder.add(enum_value(interchange.usage_indicator))  # P=Production, T=Test
        builder.add_raw(self.delimiters.component)  # Component Element Separator
        ctx.emit_builder(builder, counted=False)

    def _finish(
        self,
        ctx: _RenderContext,
        header: ClaimHeader,
        interchange: InterchangeInfo,
        functional_group: FunctionalGroupInfo,
        st_control: str,
        transaction: TransactionType,
    ) -> str:
        """Emit SE, GE and IEA and render the transaction."""
        # SE - Transaction Set Trailer (counts ST through SE)
        ctx.emit(SegmentID.SE.value, ctx.segment_count + 1, st_control)

        # GE - Functional Group Trailer
        ctx.emit(SegmentID.GE.value, "1", functional_group.group_control_number, counted=False)

        # IEA - Interchange Control Trailer
        ctx.emit(
            SegmentID.IEA.value,
            "1",
            pad_control_number(interchange.interchange_control_number, 9),
            counted=False,
        )

        logger.debug(
            f"Generated {transaction.value} for claim {header.claim_id}: "
            f"{ctx.segment_count} segments, ISA {interchange.interchange_control_number}"
        )
        return ctx.render()

    # =========================================================================
    # Submitter / Receiver
    # =========================================================================

    def _build_loop_1000a(self, ctx: _RenderContext, provider: BillingProviderInfo) -> None:
        """Loop 1000A - Submitter Name."""
        ctx.emit(SegmentID.NM1.value, "41", *self._name_elements(provider), "46", provider.npi)

        # PER - Submitter EDI Contact
        per = ["IC", provider.contact_name or provider.display_name]
        if provider.phone:
            per.extend(["TE", provider.phone])
        if provider.email:
            per.extend(["EM", provider.email])
        ctx.emit(SegmentID.PER.value, *per)

    def _build_loop_1000b(self, ctx: _RenderContext, payer: PayerInfo) -> None:
        """Loop 1000B - Receiver Name."""
        ctx.emit(SegmentID.NM1.value, "40", EntityType.ORGANIZATION, payer.name, "", "", "", "", "46", payer.payer_id)

    # =========================================================================
    # Billing Provider Hierarchy
    # =========================================================================

    def _build_loop_2000a(
        self,
        ctx: _RenderContext,
        provider: BillingProviderInfo,
        transaction: TransactionType,
    ) -> int:
        """Loop 2000A - Billing Provider Hierarchical Level. Returns its HL ID."""
        hl_id = ctx.next_hl_id()
        ctx.emit(SegmentID.HL.value, hl_id, "", "20", "1")

        if provider.taxonomy_code:
            ctx.emit(SegmentID.PRV.value, "BI", "PXC", provider.taxonomy_code)

        # Loop 2010AA - Billing Provider Name
        entity_type = provider.entity_type
        if transaction == TransactionType.CLAIM_837I:
            entity_type = EntityType.ORGANIZATION
        ctx.emit(
            SegmentID.NM1.value,
            "85",
            *self._name_elements(provider, entity_type=entity_type),
            "XX",
            provider.npi,
        )
        self._build_address(ctx, provider.address1, provider.address2, provider.city, provider.state, provider.zip_code)
        ctx.emit(SegmentID.REF.value, "EI", (provider.tax_id or "").replace("-", ""))

        # Loop 2010AB - Pay-to Address
        if provider.has_pay_to_address:
            ctx.emit(SegmentID.NM1.value, "87", EntityType.ORGANIZATION)
            self._build_address(
                ctx,
                provider.pay_to_address1,
                provider.pay_to_address2,
                provider.pay_to_city,
                provider.pay_to_state,
                provider.pay_to_zip_code,
            )
        return hl_id

    # =========================================================================
    # Subscriber / Patient Hierarchy
    # =========================================================================

    def _build_loop_2000b(
        self,
        ctx: _RenderContext,
        subscriber: SubscriberInfo,
        payer: PayerInfo,
        patient: PatientInfo,
        parent_hl: int,
    ) -> int:
        """Loop 2000B - Subscriber Hierarchical Level. Returns its HL ID."""
        has_patient_level = not patient.is_subscriber
        hl_id = ctx.next_hl_id()
        ctx.emit(SegmentID.HL.value, hl_id, parent_hl, "22", "1" if has_patient_level else "0")

        # SBR - Subscriber Information
        ctx.emit(
            SegmentID.SBR.value,
            payer.responsibility_sequence,  # P=Primary
            "" if has_patient_level else "18",  # Individual relationship, only when self
            subscriber.group_number,
            subscriber.group_name,
            "",  # Insurance type code (Medicare secondary only)
            "",
            "",
            "",
            payer.claim_filing_indicator,
        )

        # Loop 2010BA - Subscriber Name
        ctx.emit(
            SegmentID.NM1.value,
            "IL",
            EntityType.PERSON,
            subscriber.last_name,
            subscriber.first_name,
            subscriber.middle_name,
            "",
            subscriber.suffix,
            "MI",  # Member identification number
            subscriber.member_id,
        )
        if subscriber.has_address:
            self._build_address(
                ctx, subscriber.address1, subscriber.address2, subscriber.city, subscriber.state, subscriber.zip_code
            )
        if subscriber.date_of_birth:
            ctx.emit(SegmentID.DMG.value, "D8", format_x12_date(subscriber.date_of_birth), subscriber.gender)

        # Loop 2010BB - Payer Name
        ctx.emit(SegmentID.NM1.value, "PR", EntityType.ORGANIZATION, payer.name, "", "", "", "", "PI", payer.payer_id)
        if payer.has_address:
            self._build_address(ctx, payer.address1, payer.address2, payer.city, payer.state, payer.zip_code)
        return hl_id

    def _build_loop_2000c(self, ctx: _RenderContext, patient: PatientInfo, parent_hl: int) -> None:
        """Loop 2000C - Patient Hierarchical Level and Loop 2010CA."""
        hl_id = ctx.next_hl_id()
        ctx.emit(SegmentID.HL.value, hl_id, parent_hl, "23", "0")
        ctx.emit(SegmentID.PAT.value, patient.relationship_to_subscriber)

        ctx.emit(
            SegmentID.NM1.value,
            "QC",
            EntityType.PERSON,
            patient.last_name,
            patient.first_name,
            patient.middle_name,
            "",
            patient.suffix,
        )
        if patient.address1:
            self._build_address(ctx, patient.address1, patient.address2, patient.city, patient.state, patient.zip_code)
        ctx.emit(SegmentID.DMG.value, "D8", format_x12_date(patient.date_of_birth), patient.gender)

    # =========================================================================
    # Loop 2300 - Professional
    # =========================================================================

    def _build_loop_2300_professional(self, ctx: _RenderContext, claim: ProfessionalClaim) -> None:
        """Loop 2300 - Claim Information (837P) with Loops 2310A-C."""
        header = claim.header
        place_of_service = header.place_of_service
        if not place_of_service:
            place_of_service = next(
                (line.place_of_service for line in claim.service_lines if line.place_of_service),
                DEFAULT_PLACE_OF_SERVICE,
            )

        clm = [
            header.patient_control_number,
            format_x12_amount(header.total_charge_amount),
            "",
            "",
            Composite(place_of_service, "B", header.claim_frequency_code),  # B = place of service codes
            header.provider_signature_on_file,
            "A" if header.provider_accept_assignment else "C",
            header.benefits_assignment_certification,
            header.release_of_information,
        ]
        clm.extend(self._claim_trailing_elements(header))
        ctx.emit(SegmentID.CLM.value, *clm)

        # DTP - Claim Dates
        for qualifier, value in (
            ("431", header.onset_date),  # Onset of current illness
            ("454", header.initial_treatment_date),
            ("304", header.last_seen_date),
            ("439", header.accident_date),
            ("484", header.last_menstrual_period_date),
        ):
            if value:
                ctx.emit(SegmentID.DTP.value, qualifier, "D8", format_x12_date(value))

        self._build_claim_references(ctx, header, include_clia=True)

        # HI - Principal Diagnosis, then secondary diagnoses in batches
        principal = claim.diagnoses.principal
        ctx.emit(SegmentID.HI.value, self._diagnosis_composite(principal, principal.qualifier))
        for batch in _chunks(list(claim.diagnoses.secondary or []), PROFESSIONAL_DIAGNOSES_PER_HI):
            ctx.emit(SegmentID.HI.value, *[self._diagnosis_composite(d, d.qualifier) for d in batch])

        # Loop 2310A - Referring Provider
        if claim.referring_provider:
            self._build_referring_provider(ctx, claim.referring_provider)

        # Loop 2310B - Rendering Provider
        if claim.rendering_provider:
            self._build_named_provider(ctx, "82", claim.rendering_provider, prv_code="PE")

        # Loop 2310C - Service Facility Location
        if claim.service_facility:
            self._build_service_facility(ctx, claim.service_facility)

    # =========================================================================
    # Loop 2300 - Institutional
    # =========================================================================

    def _build_loop_2300_institutional(self, ctx: _RenderContext, claim: InstitutionalClaim) -> None:
        """Loop 2300 - Claim Information (837I) with Loops 2310A-F."""
        header = claim.header
        clm = [
            header.patient_control_number,
            format_x12_amount(header.total_charge_amount),
            "",
            "",
            Composite(header.facility_type_code, "A", header.claim_frequency_code),  # A = UB-04 bill type
            "",  # CLM06 not used on 837I
            "A" if header.provider_accept_assignment else "C",
            header.benefits_assignment_certification,
            header.release_of_information,
        ]
        clm.extend(self._claim_trailing_elements(header, include_related_causes=False))
        ctx.emit(SegmentID.CLM.value, *clm)

        # DTP - Statement Period, Admission, Discharge
        ctx.emit(
            SegmentID.DTP.value,
            "434",
            "RD8",
            format_x12_date_range(claim.statement_from_date, claim.statement_through_date),
        )
        if header.admission_date:
            if header.admission_hour:
                ctx.emit(
                    SegmentID.DTP.value,
                    "435",
                    "DT",
                    format_x12_date(header.admission_date) + format_x12_time(header.admission_hour),
                )
            else:
                ctx.emit(SegmentID.DTP.value, "435", "D8", format_x12_date(header.admission_date))
        if header.discharge_hour:
            ctx.emit(SegmentID.DTP.value, "096", "TM", format_x12_time(header.discharge_hour))

        # CL1 - Institutional Claim Code
        if header.admission_type_code or header.admission_source_code or header.patient_status_code:
            ctx.emit(
                SegmentID.CL1.value,
                header.admission_type_code,
                header.admission_source_code,
                header.patient_status_code,
            )

        self._build_claim_references(ctx, header, include_clia=False)
        self._build_institutional_hi(ctx, claim)

        # Loops 2310A-F - Claim Level Providers
        if claim.attending_provider:
            self._build_named_provider(ctx, "71", claim.attending_provider, prv_code="AT")
        if claim.operating_provider:
            self._build_named_provider(ctx, "72", claim.operating_provider)
        if claim.other_operating_provider:
            self._build_named_provider(ctx, "ZZ", claim.other_operating_provider)
        if claim.rendering_provider:
            self._build_named_provider(ctx, "82", claim.rendering_provider)
        if claim.service_facility:
            self._build_service_facility(ctx, claim.service_facility)
        if claim.referring_provider:
            self._build_referring_provider(ctx, claim.referring_provider)

    def _build_institutional_hi(self, ctx: _RenderContext, claim: InstitutionalClaim) -> None:
        """HI segments grouped by code category, in implementation guide order."""
        diagnoses = claim.diagnoses

        # Principal (BK) and admitting (BJ) diagnoses
        ctx.emit(SegmentID.HI.value, self._diagnosis_composite(diagnoses.principal, "BK", with_poa=True))
        if diagnoses.admitting:
            ctx.emit(SegmentID.HI.value, self._diagnosis_composite(diagnoses.admitting, "BJ"))

        self._emit_hi_batches(
            ctx,
            [self._diagnosis_composite(d, "PR") for d in diagnoses.patient_reason_for_visit or []],
            REASON_FOR_VISIT_PER_HI,
        )
        self._emit_hi_batches(
            ctx,
            [self._diagnosis_composite(d, "BN", with_poa=True) for d in diagnoses.external_cause or []],
            HI_COMPOSITE_LIMIT,
        )

        if claim.drg_code:
            ctx.emit(SegmentID.HI.value, Composite("DR", claim.drg_code))

        self._emit_hi_batches(
            ctx,
            [self._diagnosis_composite(d, "BF", with_poa=True) for d in diagnoses.secondary or []],
            SECONDARY_DIAGNOSES_PER_HI,
        )

        # ICD-10-PCS procedures
        if claim.principal_procedure:
            procedure = claim.principal_procedure
            ctx.emit(
                SegmentID.HI.value,
                Composite(procedure.qualifier, procedure.code, "D8", format_x12_date(procedure.procedure_date)),
            )
        self._emit_hi_batches(
            ctx,
            [
                Composite(p.qualifier, p.code, "D8", format_x12_date(p.procedure_date))
                for p in claim.other_procedures or []
            ],
            HI_COMPOSITE_LIMIT,
        )

        # Occurrence spans, occurrences, values and conditions
        self._emit_hi_batches(
            ctx,
            [
                Composite("BI", o.code, "RD8", format_x12_date_range(o.from_date, o.through_date))
                for o in claim.occurrence_span_codes or []
            ],
            HI_COMPOSITE_LIMIT,
        )
        self._emit_hi_batches(
            ctx,
            [Composite("BH", o.code, "D8", format_x12_date(o.occurrence_date)) for o in claim.occurrence_codes or []],
            HI_COMPOSITE_LIMIT,
        )
        self._emit_hi_batches(
            ctx,
            [Composite("BE", v.code, "", "", format_x12_amount(v.amount)) for v in claim.value_codes or []],
            HI_COMPOSITE_LIMIT,
        )
        self._emit_hi_batches(
            ctx,
            [Composite("BG", code) for code in claim.condition_codes or []],
            HI_COMPOSITE_LIMIT,
        )

    # =========================================================================
    # Loop 2300 - Shared
    # =========================================================================

    def _claim_trailing_elements(self, header: ClaimHeader, include_related_causes: bool = True) -> List[Any]:
        """CLM10 through CLM20: related causes and delay reason."""
        elements: List[Any] = [""] * 11  # CLM10 .. CLM20
        causes = header.related_causes
        if include_related_causes and causes and causes.codes:
            codes = list(causes.codes)[:3]
            codes += [""] * (3 - len(codes))
            elements[1] = Composite(*codes, causes.state, causes.country)
        if header.delay_reason_code:
            elements[10] = header.delay_reason_code
        return elements

    def _build_claim_references(self, ctx: _RenderContext, header: ClaimHeader, include_clia: bool) -> None:
        """REF segments for Loop 2300 in implementation guide order."""
        references = [
            ("9F", header.referral_number),
            ("G1", header.prior_authorization_number),
        ]
        if ClaimFrequencyCode.requires_original(header.claim_frequency_code):
            references.append(("F8", header.original_claim_number))  # Payer claim control number
        if include_clia:
            references.append(("X4", header.clia_number))
        references.append(("EA", header.medical_record_number))

        for qualifier, value in references:
            if value:
                ctx.emit(SegmentID.REF.value, qualifier, value)

    def _diagnosis_composite(self, diagnosis: DiagnosisInfo, qualifier: Any, with_poa: bool = False) -> Composite:
        """HI composite; HI0n-9 carries the present-on-admission indicator."""
        code = (diagnosis.code or "").replace(".", "").strip().upper()
        if with_poa and diagnosis.present_on_admission:
            return Composite(qualifier, code, "", "", "", "", "", "", diagnosis.present_on_admission)
        return Composite(qualifier, code)

    def _emit_hi_batches(self, ctx: _RenderContext, composites: List[Composite], size: int) -> None:
        for batch in _chunks(composites, size):
            ctx.emit(SegmentID.HI.value, *batch)

    # =========================================================================
    # Loop 2310 / 2420 Providers
    # =========================================================================

    def _build_named_provider(
        self,
        ctx: _RenderContext,
        entity_code: str,
        provider: ProviderInfo,
        prv_code: Optional[str] = None,
    ) -> None:
        """NM1 for a claim or line level provider, with PRV when a taxonomy is known."""
        ctx.emit(SegmentID.NM1.value, entity_code, *self._name_elements(provider), "XX", provider.npi)
        if prv_code and provider.taxonomy_code:
            ctx.emit(SegmentID.PRV.value, prv_code, "PXC", provider.taxonomy_code)

    def _build_referring_provider(self, ctx: _RenderContext, provider: ReferringProviderInfo) -> None:
        ctx.emit(
            SegmentID.NM1.value,
            "DN",
            EntityType.PERSON,
            provider.last_name,
            provider.first_name,
            provider.middle_name,
            "",
            provider.suffix,
            "XX",
            provider.npi,
        )

    def _build_service_facility(self, ctx: _RenderContext, facility: ServiceFacilityInfo) -> None:
        ctx.emit(
            SegmentID.NM1.value,
            "77",
            EntityType.ORGANIZATION,
            facility.name,
            "",
            "",
            "",
            "",
            "XX" if facility.npi else "",
            facility.npi,
        )
        self._build_address(ctx, facility.address1, facility.address2, facility.city, facility.state, facility.zip_code)

    # =========================================================================
    # Loop 2400 - Service Lines
    # =========================================================================

    def _build_loop_2400_professional(self, ctx: _RenderContext, line: ProcedureInfo, line_number: int) -> None:
        """Loop 2400 - Service Line (SV1) with Loops 2410 and 2420A."""
        ctx.emit(SegmentID.LX.value, line_number)

        ctx.emit(
            SegmentID.SV1.value,
            self._procedure_composite(line.qualifier, line.code, line.modifiers, line.description),
            format_x12_amount(line.charge_amount),
            line.unit_type,
            format_x12_quantity(line.units),
            line.place_of_service,
            "",
            Composite(*(line.diagnosis_pointers or [])),
            "",
            "Y" if line.emergency_indicator else "",
            "",
            "Y" if line.epsdt_indicator else "",
            "Y" if line.family_planning_indicator else "",
        )

        self._build_service_date(ctx, line.service_date, line.service_end_date)

        if line.line_item_control_number:
            ctx.emit(SegmentID.REF.value, "6R", line.line_item_control_number)

        # Loop 2410 - Drug Identification
        if line.ndc_code:
            ctx.emit(SegmentID.LIN.value, "", "N4", line.ndc_code)
            ctx.emit(
                SegmentID.CTP.value,
                "",
                "",
                "",
                format_x12_quantity(line.ndc_quantity),
                line.ndc_unit,
            )

        # Loop 2420A - Rendering Provider
        if line.rendering_provider:
            self._build_named_provider(ctx, "82", line.rendering_provider, prv_code="PE")

    def _build_loop_2400_institutional(self, ctx: _RenderContext, line: RevenueCodeLine, line_number: int) -> None:
        """Loop 2400 - Service Line (SV2)."""
        ctx.emit(SegmentID.LX.value, line_number)

        procedure = ""
        if line.procedure_code:
            procedure = self._procedure_composite(line.qualifier, line.procedure_code, line.modifiers, line.description)

        ctx.emit(
            SegmentID.SV2.value,
            line.revenue_code,
            procedure,
            format_x12_amount(line.charge_amount),
            line.unit_type,
            format_x12_quantity(line.units),
            format_x12_amount(line.unit_rate),
            format_x12_amount(line.non_covered_charges),
        )

        self._build_service_date(ctx, line.service_date, line.service_end_date)

        if line.line_item_control_number:
            ctx.emit(SegmentID.REF.value, "6R", line.line_item_control_number)

    def _procedure_composite(
        self,
        qualifier: Any,
        code: str,
        modifiers: Optional[Iterable[str]],
        description: Optional[str] = None,
    ) -> Composite:
        """Qualifier:code:modifiers, description in the seventh component."""
        mods = [m.strip().upper() if isinstance(m, str) else m for m in modifiers or []]
        components: List[Any] = [qualifier, (code or "").strip().upper(), *mods]
        if description:
            components.extend([""] * (4 - len(mods)))
            components.append(description)
        return Composite(*components)

    def _build_service_date(self, ctx: _RenderContext, start: Optional[date], end: Optional[date]) -> None:
        """DTP*472 as D8, or RD8 for a multi-day span."""
        if not start:
            return
        if end and end != start:
            ctx.emit(SegmentID.DTP.value, "472", "RD8", format_x12_date_range(start, end))
        else:
            ctx.emit(SegmentID.DTP.value, "472", "D8", format_x12_date(start))

    # =========================================================================
    # Shared Elements
    # =========================================================================

    def _name_elements(self, provider: ProviderInfo, entity_type: Optional[EntityType] = None) -> List[Any]:
        """NM102 through NM107 for a provider."""
        entity_type = entity_type or provider.entity_type
        if enum_value(entity_type) == EntityType.PERSON.value and provider.last_name:
            return [
                EntityType.PERSON,
                provider.last_name,
                provider.first_name,
                provider.middle_name,
                "",
                provider.suffix,
            ]
        return [EntityType.ORGANIZATION, provider.name, "", "", "", ""]

    def _build_address(
        self,
        ctx: _RenderContext,
        address1: Optional[str],
        address2: Optional[str],
        city: Optional[str],
        state: Optional[str],
        zip_code: Optional[str],
    ) -> None:
        """N3 and N4."""
        ctx.emit(SegmentID.N3.value, address1, address2)
        ctx.emit(SegmentID.N4.value, city, state, format_zip_code(zip_code))


# =============================================================================
# Envelope Helpers
# =============================================================================


def generate_interchange_control_number() -> str:
    """Generate a 9-digit interchange control number (ISA13)."""
    return str(uuid4().int)[:9]


def generate_group_control_number() -> str:
    """Generate a group control number (GS06)."""
    return str(uuid4().int)[:9]


def generate_patient_control_number(prefix: str = "PCN") -> str:
    """Generate a patient control number of at most 20 characters (CLM01)."""
    stamp = datetime.now().strftime("%y%m%d%H%M%S")
    return f"{prefix}{stamp}{uuid4().hex[:4].upper()}"[:20]


def create_default_interchange_info(
    sender_id: str,
    receiver_id: str,
    usage_indicator: UsageIndicator = UsageIndicator.TEST,
    sender_id_qualifier: str = "ZZ",
    receiver_id_qualifier: str = "ZZ",
    acknowledgment_requested: bool = True,
    control_number: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> InterchangeInfo:
    """
    Build ISA metadata with a random control number and the current time.

    Production callers should pass persisted, monotonic control numbers.
    """
    timestamp = timestamp or datetime.now()
    return InterchangeInfo(
        sender_id=sender_id,
        receiver_id=receiver_id,
        interchange_control_number=control_number or generate_interchange_control_number(),
        interchange_date=timestamp.date(),
        interchange_time=timestamp.time(),
        sender_id_qualifier=sender_id_qualifier,
        receiver_id_qualifier=receiver_id_qualifier,
        acknowledgment_requested=acknowledgment_requested,
        usage_indicator=usage_indicator,
    )


def create_default_functional_group_info(
    application_sender_code: str,
    application_receiver_code: str,
    claim_type: ClaimType = ClaimType.PROFESSIONAL,
    control_number: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> FunctionalGroupInfo:
    """Build GS metadata for a health care claim group (HC / X / version)."""
    timestamp = timestamp or datetime.now()
    return FunctionalGroupInfo(
        application_sender_code=application_sender_code,
        application_receiver_code=application_receiver_code,
        group_control_number=control_number or generate_group_control_number(),
        group_date=timestamp.date(),
        group_time=timestamp.time(),
        version=TransactionType.for_claim_type(claim_type).implementation_convention,
    )


def format_professional_claim(
    claim: ProfessionalClaim,
    interchange: InterchangeInfo,
    functional_group: FunctionalGroupInfo,
    transaction_set: Optional[TransactionSetInfo] = None,
    delimiters: Optional[X12Delimiters] = None,
    include_line_breaks: Optional[bool] = None,
) -> str:
    """Render an 837P with a one-off generator."""
    generator = X12837Generator(delimiters=delimiters, include_line_breaks=include_line_breaks)
    return generator.format_professional_claim(claim, interchange, functional_group, transaction_set)


def format_institutional_claim(
    claim: InstitutionalClaim,
    interchange: InterchangeInfo,
    functional_group: FunctionalGroupInfo,
    transaction_set: Optional[TransactionSetInfo] = None,
    delimiters: Optional[X12Delimiters] = None,
    include_line_breaks: Optional[bool] = None,
) -> str:
    """Render an 837I with a one-off generator."""
    generator = X12837Generator(delimiters=delimiters, include_line_breaks=include_line_breaks)
    return generator.format_institutional_claim(claim, interchange, functional_group, transaction_set)
