"""
X12 EDI Base Definitions for 837 Claim Rendering.

Source: ASC X12N 005010X222A1 / 005010X223A2 Implementation Guides
Verified: 2025-12-19

Provides core X12 building blocks:
- Transaction and segment identifiers
- Typed errors for structural faults
- Date, time, amount and identifier utilities
"""

from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional, Union

from src.core.enums import ClaimType


# =============================================================================
# Enums
# =============================================================================


class TransactionType(str, Enum):
    """X12 837 transaction variants."""

    CLAIM_837P = "837P"  # Professional Claims
    CLAIM_837I = "837I"  # Institutional Claims

    @classmethod
    def for_claim_type(cls, claim_type: ClaimType) -> "TransactionType":
        """Transaction variant rendered for a claim type."""
        if claim_type == ClaimType.INSTITUTIONAL:
            return cls.CLAIM_837I
        return cls.CLAIM_837P

    @property
    def implementation_convention(self) -> str:
        """ST03 / GS08 implementation convention reference."""
        return IMPLEMENTATION_CONVENTIONS[self]


IMPLEMENTATION_CONVENTIONS: dict[TransactionType, str] = {
    TransactionType.CLAIM_837P: "005010X222A1",
    TransactionType.CLAIM_837I: "005010X223A2",
}


class SegmentID(str, Enum):
    """X12 segment identifiers emitted in an 837."""

    # Envelope
    ISA = "ISA"  # Interchange Control Header
    IEA = "IEA"  # Interchange Control Trailer
    GS = "GS"  # Functional Group Header
    GE = "GE"  # Functional Group Trailer
    ST = "ST"  # Transaction Set Header
    SE = "SE"  # Transaction Set Trailer

    # Header
    BHT = "BHT"  # Beginning of Hierarchical Transaction

    # Hierarchical
    HL = "HL"  # Hierarchical Level

    # Names and Identification
    NM1 = "NM1"  # Individual or Organizational Name
    N3 = "N3"  # Party Location (Address)
    N4 = "N4"  # Geographic Location
    REF = "REF"  # Reference Information
    PER = "PER"  # Administrative Communications Contact
    PRV = "PRV"  # Provider Information

    # Dates
    DTP = "DTP"  # Date/Time Period
    DMG = "DMG"  # Demographic Information

    # Claim
    CLM = "CLM"  # Claim Information
    CL1 = "CL1"  # Institutional Claim Code
    HI = "HI"  # Health Care Information Codes
    SBR = "SBR"  # Subscriber Information
    PAT = "PAT"  # Patient Information

    # Service Line
    LX = "LX"  # Service Line Number
    SV1 = "SV1"  # Professional Service
    SV2 = "SV2"  # Institutional Service
    LIN = "LIN"  # Drug Identification
    CTP = "CTP"  # Drug Quantity


# =============================================================================
# Exceptions
# =============================================================================


class X12Error(Exception):
    """Base class for X12 engine errors."""

    pass


class X12FormatError(X12Error):
    """Structural fault raised while rendering an X12 transaction."""

    def __init__(
        self,
        message: str,
        loop_id: Optional[str] = None,
        segment_id: Optional[str] = None,
    ):
        self.message = message
        self.loop_id = loop_id
        self.segment_id = segment_id
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [self.message]
        if self.loop_id:
            parts.append(f"Loop: {self.loop_id}")
        if self.segment_id:
            parts.append(f"Segment: {self.segment_id}")
        return " | ".join(parts)


class MissingClaimComponentError(X12FormatError):
    """A required nested claim structure is absent."""

    def __init__(
        self,
        component: str,
        loop_id: Optional[str] = None,
        segment_id: Optional[str] = None,
    ):
        self.component = component
        super().__init__(
            f"Required claim component missing: {component}",
            loop_id=loop_id,
            segment_id=segment_id,
        )


# =============================================================================
# Utility Functions
# =============================================================================


def enum_value(value: Any) -> Any:
    """Unwrap an Enum member to its value, leaving other values untouched."""
    if isinstance(value, Enum):
        return value.value
    return value


def format_x12_date(d: Optional[date]) -> str:
    """Format date as X12 CCYYMMDD."""
    if d is None:
        return ""
    return d.strftime("%Y%m%d")


def format_x12_short_date(d: Optional[date]) -> str:
    """Format date as X12 YYMMDD (ISA09)."""
    if d is None:
        return ""
    return d.strftime("%y%m%d")


def format_x12_date_range(start: Optional[date], end: Optional[date]) -> str:
    """Format a date span as X12 RD8 (CCYYMMDD-CCYYMMDD)."""
    return f"{format_x12_date(start)}-{format_x12_date(end)}"


def format_x12_time(t: Union[datetime, time, None]) -> str:
    """Format time as X12 HHMM."""
    if t is None:
        return ""
    return t.strftime("%H%M")


def format_x12_amount(amount: Union[Decimal, float, int, str, None]) -> str:
    """Format amount for X12 (2 decimal places)."""
    if amount is None:
        return ""
    try:
        value = Decimal(str(amount))
        return str(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return str(amount)


def format_x12_quantity(quantity: Union[Decimal, float, int, str, None]) -> str:
    """Format a unit count, dropping a zero fractional part."""
    if quantity is None:
        return ""
    try:
        value = Decimal(str(quantity))
    except InvalidOperation:
        return str(quantity)
    if value == value.to_integral_value():
        return str(value.to_integral_value())
    return str(value.normalize())


def format_zip_code(zip_code: Optional[str]) -> str:
    """Strip the ZIP+4 hyphen (N403)."""
    if not zip_code:
        return ""
    return zip_code.replace("-", "")


def pad_control_number(value: Union[str, int], width: int) -> str:
    """Left-pad a control number with zeros to the envelope width."""
    return str(value).strip().zfill(width)


def validate_npi(npi: Optional[str]) -> bool:
    """
    Validate NPI using Luhn algorithm.

    NPI is a 10-digit identifier for healthcare providers whose first
    digit is 1 or 2. The check digit is computed over the number with
    the card issuer prefix 80840.
    """
    if not isinstance(npi, str) or len(npi) != 10:
        return False

    if not (npi.isascii() and npi.isdigit()):
        return False

    if npi[0] not in ("1", "2"):
        return False

    # Apply Luhn algorithm with healthcare prefix (80840)
    prefix = "80840"
    full_number = prefix + npi

    total = 0
    for i, digit in enumerate(reversed(full_number)):
        d = int(digit)
        if i % 2 == 0:
            total += d
        else:
            doubled = d * 2
            total += doubled if doubled < 10 else doubled - 9

    return total % 10 == 0
