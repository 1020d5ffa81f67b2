"""
Pytest Configuration and Fixtures.
Shared claim and envelope fixtures for all test modules.
"""

from datetime import date, time
from decimal import Decimal

import pytest

from src.core.config import reset_claims_engine_settings
from src.core.enums import (
    ClaimFilingIndicator,
    DiagnosisQualifier,
    Gender,
    InstitutionalProcedureQualifier,
    RelationshipCode,
    UsageIndicator,
)
from src.services.edi.segment_builder import DEFAULT_DELIMITERS
from src.services.edi.x12_837_generator import X12837Generator
from src.services.edi.x12_837_models import (
    BillingProviderInfo,
    ClaimHeader,
    DiagnosisInfo,
    DiagnosisSet,
    FunctionalGroupInfo,
    InstitutionalClaim,
    InstitutionalProcedure,
    InterchangeInfo,
    PatientInfo,
    PayerInfo,
    ProcedureInfo,
    ProfessionalClaim,
    ProviderInfo,
    RevenueCodeLine,
    SubscriberInfo,
)


SUBMISSION_DATE = date(2025, 3, 1)
SERVICE_DATE = date(2025, 2, 15)

BILLING_NPI = "1234567893"
RENDERING_NPI = "1987654328"
ATTENDING_NPI = "1245319599"


@pytest.fixture(autouse=True)
def fresh_settings():
    """Drop cached settings around every test."""
    reset_claims_engine_settings()
    yield
    reset_claims_engine_settings()


# =============================================================================
# Parties
# =============================================================================


@pytest.fixture
def billing_provider():
    """Organization billing provider with submitter contact."""
    return BillingProviderInfo(
        npi=BILLING_NPI,
        name="ACME MEDICAL GROUP",
        tax_id="12-3456789",
        taxonomy_code="207Q00000X",
        address1="123 MAIN ST",
        city="SPRINGFIELD",
        state="IL",
        zip_code="62701-1234",
        contact_name="JANE BILLER",
        phone="2175551234",
    )


@pytest.fixture
def subscriber():
    return SubscriberInfo(
        member_id="MEM123456",
        first_name="JOHN",
        last_name="DOE",
        group_number="GRP001",
        date_of_birth=date(1980, 1, 15),
        gender=Gender.MALE,
        address1="456 OAK AVE",
        city="SPRINGFIELD",
        state="IL",
        zip_code="62704",
    )


@pytest.fixture
def self_patient():
    """Patient who is the subscriber (relationship 18)."""
    return PatientInfo(
        first_name="JOHN",
        last_name="DOE",
        date_of_birth=date(1980, 1, 15),
        gender=Gender.MALE,
        relationship_to_subscriber=RelationshipCode.SELF,
        address1="456 OAK AVE",
        city="SPRINGFIELD",
        state="IL",
        zip_code="62704",
    )


@pytest.fixture
def dependent_patient():
    """Child of the subscriber."""
    return PatientInfo(
        first_name="JANE",
        last_name="DOE",
        date_of_birth=date(2012, 6, 1),
        gender=Gender.FEMALE,
        relationship_to_subscriber=RelationshipCode.CHILD,
        address1="456 OAK AVE",
        city="SPRINGFIELD",
        state="IL",
        zip_code="62704",
    )


@pytest.fixture
def payer():
    """Commercial payer (90 day filing limit)."""
    return PayerInfo(
        payer_id="PAYER01",
        name="ACME HEALTH PLAN",
        claim_filing_indicator=ClaimFilingIndicator.COMMERCIAL,
    )


@pytest.fixture
def rendering_provider():
    return ProviderInfo(npi=RENDERING_NPI, first_name="ALICE", last_name="SMITH", taxonomy_code="207Q00000X")


# =============================================================================
# Claims
# =============================================================================


@pytest.fixture
def service_line(rendering_provider):
    """Office visit, one unit, pointing at the principal diagnosis."""
    return ProcedureInfo(
        code="99213",
        charge_amount=Decimal("120.00"),
        units=1,
        service_date=SERVICE_DATE,
        diagnosis_pointers=[1],
        place_of_service="11",
        rendering_provider=rendering_provider,
    )


@pytest.fixture
def professional_claim(billing_provider, subscriber, self_patient, payer, service_line):
    """Valid single-line professional claim for a self-insured patient."""
    return ProfessionalClaim(
        header=ClaimHeader(
            claim_id="CLM001",
            patient_control_number="PCN001",
            total_charge_amount=Decimal("120.00"),
        ),
        billing_provider=billing_provider,
        subscriber=subscriber,
        patient=self_patient,
        payer=payer,
        diagnoses=DiagnosisSet(principal=DiagnosisInfo(code="E119", qualifier=DiagnosisQualifier.ABK)),
        service_lines=[service_line],
    )


@pytest.fixture
def institutional_claim(billing_provider, subscriber, self_patient, payer):
    """Valid inpatient claim with a total line and a principal procedure."""
    return InstitutionalClaim(
        header=ClaimHeader(
            claim_id="ICLM001",
            patient_control_number="IPCN001",
            total_charge_amount=Decimal("1500.00"),
            facility_type_code="11",
            admission_date=date(2025, 2, 10),
            admission_hour=time(8, 30),
            admission_type_code="1",
            admission_source_code="7",
            patient_status_code="01",
        ),
        billing_provider=billing_provider,
        subscriber=subscriber,
        patient=self_patient,
        payer=payer,
        diagnoses=DiagnosisSet(
            principal=DiagnosisInfo(code="I21.4", present_on_admission="Y"),
            secondary=[DiagnosisInfo(code="E785", qualifier=DiagnosisQualifier.ABF)],
            admitting=DiagnosisInfo(code="R0789"),
        ),
        revenue_lines=[
            RevenueCodeLine(
                revenue_code="0450",
                charge_amount=Decimal("1000.00"),
                units=1,
                service_date=date(2025, 2, 10),
            ),
            RevenueCodeLine(
                revenue_code="0300",
                charge_amount=Decimal("500.00"),
                units=2,
                service_date=date(2025, 2, 11),
                procedure_code="80053",
            ),
            RevenueCodeLine(
                revenue_code="0001",
                charge_amount=Decimal("1500.00"),
                units=1,
                service_date=date(2025, 2, 10),
            ),
        ],
        statement_from_date=date(2025, 2, 10),
        statement_through_date=date(2025, 2, 12),
        attending_provider=ProviderInfo(
            npi=ATTENDING_NPI,
            first_name="ROBERT",
            last_name="JONES",
            taxonomy_code="207RC0000X",
        ),
        principal_procedure=InstitutionalProcedure(
            code="02703ZZ",
            procedure_date=date(2025, 2, 10),
            qualifier=InstitutionalProcedureQualifier.PRINCIPAL,
        ),
    )


# =============================================================================
# Envelope
# =============================================================================


@pytest.fixture
def interchange():
    return InterchangeInfo(
        sender_id="SUBMITTER01",
        receiver_id="PAYER01",
        interchange_control_number="123456789",
        interchange_date=SUBMISSION_DATE,
        interchange_time=time(12, 0),
        usage_indicator=UsageIndicator.TEST,
    )


@pytest.fixture
def functional_group():
    return FunctionalGroupInfo(
        application_sender_code="SUBMITTER01",
        application_receiver_code="PAYER01",
        group_control_number="1",
        group_date=SUBMISSION_DATE,
        group_time=time(12, 0),
    )


@pytest.fixture
def generator():
    """Generator with default delimiters and no line breaks."""
    return X12837Generator(delimiters=DEFAULT_DELIMITERS, include_line_breaks=False)


@pytest.fixture
def submission_date():
    """Fixed submission date 14 days after the professional service date."""
    return SUBMISSION_DATE
