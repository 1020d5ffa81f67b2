"""
Core Enumerations for the X12 837 Claims Engine.
Source: ASC X12N 005010X222A1 / 005010X223A2 Implementation Guides
Verified: 2025-12-19
"""

from enum import Enum


# =============================================================================
# Claim Variant Enums
# =============================================================================


class ClaimType(str, Enum):
    """Claim variants rendered by the engine."""

    PROFESSIONAL = "professional"  # 837P / CMS-1500
    INSTITUTIONAL = "institutional"  # 837I / UB-04


class ClaimFrequencyCode(str, Enum):
    """CLM05-3 claim frequency type code."""

    ORIGINAL = "1"
    CORRECTED = "6"
    REPLACEMENT = "7"  # Requires original claim number
    VOID = "8"  # Requires original claim number

    @property
    def requires_original_claim(self) -> bool:
        """Replacement and void claims must reference the payer's claim number."""
        return self in (ClaimFrequencyCode.REPLACEMENT, ClaimFrequencyCode.VOID)

    @classmethod
    def requires_original(cls, code: object) -> bool:
        """Same check for a member or its raw X12 code; unknown codes never require one."""
        try:
            return cls(getattr(code, "value", code)).requires_original_claim
        except ValueError:
            return False


class ReleaseOfInformationCode(str, Enum):
    """CLM09 release of information code."""

    YES = "Y"
    INFORMED_CONSENT = "I"
    NO = "N"


class UsageIndicator(str, Enum):
    """ISA15 interchange usage indicator."""

    PRODUCTION = "P"
    TEST = "T"
    INFORMATION = "I"


# =============================================================================
# Party Enums
# =============================================================================


class EntityType(str, Enum):
    """NM102 entity type qualifier."""

    PERSON = "1"
    ORGANIZATION = "2"


class Gender(str, Enum):
    """DMG03 gender code."""

    MALE = "M"
    FEMALE = "F"
    UNKNOWN = "U"


class RelationshipCode(str, Enum):
    """Patient relationship to subscriber (SBR02 / PAT01)."""

    SELF = "18"
    SPOUSE = "01"
    CHILD = "19"
    EMPLOYEE = "20"
    UNKNOWN = "21"
    ORGAN_DONOR = "39"
    CADAVER_DONOR = "40"
    LIFE_PARTNER = "53"
    OTHER = "G8"


class ClaimFilingIndicator(str, Enum):
    """SBR09 claim filing indicator code. Drives the timely filing limit."""

    SELF_PAY = "09"
    PPO = "12"
    POS = "13"
    EPO = "14"
    INDEMNITY = "15"
    HMO_MEDICARE_RISK = "16"
    DENTAL_MAINTENANCE = "17"
    AUTO_MEDICAL = "AM"
    BLUE_CROSS_BLUE_SHIELD = "BL"
    CHAMPUS = "CH"
    COMMERCIAL = "CI"
    DISABILITY = "DS"
    FEDERAL_EMPLOYEES = "FI"
    HMO = "HM"
    LIABILITY_MEDICAL = "LM"
    MEDICARE_PART_A = "MA"
    MEDICARE_PART_B = "MB"
    MEDICAID = "MC"
    OTHER_FEDERAL = "OF"
    TITLE_V = "TV"
    VETERANS_AFFAIRS = "VA"
    WORKERS_COMPENSATION = "WC"
    MUTUALLY_DEFINED = "ZZ"


# =============================================================================
# Code Qualifier Enums
# =============================================================================


class CodeSystem(str, Enum):
    """Medical code systems checked by the code format validator."""

    ICD10_CM = "icd10_cm"  # Diagnoses
    ICD10_PCS = "icd10_pcs"  # Inpatient procedures
    CPT = "cpt"
    HCPCS = "hcpcs"


class DiagnosisQualifier(str, Enum):
    """HI composite code list qualifiers for diagnoses."""

    ABK = "ABK"  # ICD-10-CM principal
    ABF = "ABF"  # ICD-10-CM other
    ABJ = "ABJ"  # ICD-10 admitting / PCS
    BK = "BK"  # Institutional principal
    BJ = "BJ"  # Institutional admitting
    BF = "BF"  # Institutional other
    PR = "PR"  # Patient reason for visit
    BN = "BN"  # External cause of injury

    @property
    def code_system(self) -> CodeSystem:
        """Code system the qualified code must conform to."""
        return DIAGNOSIS_CODE_SYSTEMS[self]


DIAGNOSIS_CODE_SYSTEMS: dict[DiagnosisQualifier, CodeSystem] = {
    DiagnosisQualifier.ABK: CodeSystem.ICD10_CM,
    DiagnosisQualifier.ABF: CodeSystem.ICD10_CM,
    DiagnosisQualifier.ABJ: CodeSystem.ICD10_PCS,
    DiagnosisQualifier.BK: CodeSystem.ICD10_CM,
    DiagnosisQualifier.BJ: CodeSystem.ICD10_CM,
    DiagnosisQualifier.BF: CodeSystem.ICD10_CM,
    DiagnosisQualifier.PR: CodeSystem.ICD10_CM,
    DiagnosisQualifier.BN: CodeSystem.ICD10_CM,
}


class ProcedureQualifier(str, Enum):
    """SV101-1 / SV202-1 product or service ID qualifier."""

    HCPCS = "HC"  # CPT and HCPCS Level II
    HIEC = "IV"  # Home infusion EDI coalition
    EXPERIMENTAL = "ER"  # Jurisdiction specific
    NDC = "N4"  # National Drug Code 5-4-2
    ABC = "AD"  # American Dental Association

    @property
    def code_systems(self) -> tuple[CodeSystem, ...]:
        """Code systems accepted for the qualifier; empty means unchecked."""
        return PROCEDURE_CODE_SYSTEMS[self]


PROCEDURE_CODE_SYSTEMS: dict[ProcedureQualifier, tuple[CodeSystem, ...]] = {
    ProcedureQualifier.HCPCS: (CodeSystem.CPT, CodeSystem.HCPCS),
    ProcedureQualifier.HIEC: (),
    ProcedureQualifier.EXPERIMENTAL: (),
    ProcedureQualifier.NDC: (),
    ProcedureQualifier.ABC: (),
}


class InstitutionalProcedureQualifier(str, Enum):
    """HI qualifiers for ICD-10-PCS procedures on 837I."""

    PRINCIPAL = "BBR"
    OTHER = "BBQ"


class UnitType(str, Enum):
    """SV103 / SV204 unit or basis for measurement code."""

    UNIT = "UN"
    MINUTES = "MJ"


class RelatedCauseCode(str, Enum):
    """CLM11 related causes code."""

    AUTO_ACCIDENT = "AA"
    EMPLOYMENT = "EM"
    OTHER_ACCIDENT = "OA"
