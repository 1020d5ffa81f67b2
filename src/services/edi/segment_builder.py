"""
X12 Segment Builder.

Source: ASC X12N 005010X222A1 Appendix B - Delimiters
Verified: 2025-12-19

Assembles one segment at a time from ordered elements. Values are
normalized through sanitize_element so a stray delimiter in claim data
can never split an element or terminate a segment early.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from src.services.edi.x12_base import SegmentID, format_x12_date


@dataclass(frozen=True)
class X12Delimiters:
    """Separator characters for one interchange."""

    element: str = "*"
    segment: str = "~"
    component: str = ":"
    repetition: str = "^"

    @property
    def reserved(self) -> tuple[str, str, str, str]:
        """Characters that may not appear inside element data."""
        return (self.segment, self.element, self.component, self.repetition)


DEFAULT_DELIMITERS = X12Delimiters()


def sanitize_element(value: Optional[str], delimiters: X12Delimiters = DEFAULT_DELIMITERS) -> str:
    """
    Normalize free text for use as an X12 element value.

    Removes every reserved delimiter character and trims surrounding
    whitespace.

    Args:
        value: Raw text (None is treated as empty)
        delimiters: Delimiters in effect for the interchange

    Returns:
        Text safe to place between element separators
    """
    if value is None:
        return ""
    text = str(value)
    for char in delimiters.reserved:
        text = text.replace(char, "")
    return text.strip()


def _stringify(value: Any, delimiters: X12Delimiters) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        return "Y" if value else "N"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, date):
        return format_x12_date(value)
    return sanitize_element(value, delimiters)


class SegmentBuilder:
    """
    Builds a single X12 segment.

    Example:
        >>> SegmentBuilder("NM1").add("85").add("2").add("ACME CLINIC").build()
        'NM1*85*2*ACME CLINIC~'
    """

    def __init__(
        self,
        segment_id: str,
        delimiters: X12Delimiters = DEFAULT_DELIMITERS,
        line_break: bool = False,
    ):
        self.segment_id = segment_id.value if isinstance(segment_id, SegmentID) else segment_id
        self.delimiters = delimiters
        self.line_break = line_break
        self._elements: list[str] = []

    def add(self, value: Any = None) -> "SegmentBuilder":
        """Append one element. None renders as an empty element."""
        self._elements.append(_stringify(value, self.delimiters))
        return self

    def add_empty(self, count: int = 1) -> "SegmentBuilder":
        """Append placeholder elements."""
        self._elements.extend([""] * count)
        return self

    def add_component(self, *values: Any) -> "SegmentBuilder":
        """Append a composite element, dropping trailing empty sub-values."""
        parts = [_stringify(v, self.delimiters) for v in values]
        while parts and parts[-1] == "":
            parts.pop()
        self._elements.append(self.delimiters.component.join(parts))
        return self

    def add_fixed(self, value: Any, width: int) -> "SegmentBuilder":
        """Append a fixed-width element, space padded or truncated."""
        text = _stringify(value, self.delimiters)
        self._elements.append(text.ljust(width)[:width])
        return self

    def add_raw(self, value: str) -> "SegmentBuilder":
        """Append a value verbatim, bypassing sanitization (ISA11, ISA16)."""
        self._elements.append(value)
        return self

    @property
    def elements(self) -> list[str]:
        """Elements added so far."""
        return list(self._elements)

    def build(self) -> str:
        """Render the segment with trailing empty elements removed."""
        elements = list(self._elements)
        while elements and elements[-1] == "":
            elements.pop()
        text = self.delimiters.element.join([self.segment_id, *elements])
        text += self.delimiters.segment
        if self.line_break:
            text += "\n"
        return text
