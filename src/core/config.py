"""
Claims Engine Configuration
Settings for X12 837 rendering and pre-submission validation.
Source: ASC X12N 005010X222A1 Section 2.2 - Delimiters
Verified: 2025-12-19
"""

from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.core.enums import UsageIndicator
from src.services.edi.segment_builder import X12Delimiters


class ClaimsEngineSettings(BaseSettings):
    """
    Claims engine configuration settings.

    Every field can be overridden with a CLAIMS_ prefixed environment variable
    or an entry in .env.
    Source: https://docs.pydantic.dev/latest/concepts/pydantic_settings/
    Verified: 2025-12-19
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="CLAIMS_",  # All claims settings prefixed with CLAIMS_
    )

    # =========================================================================
    # X12 Delimiters
    # =========================================================================
    ELEMENT_SEPARATOR: str = Field(
        default="*",
        description="Data element separator",
    )
    SEGMENT_TERMINATOR: str = Field(
        default="~",
        description="Segment terminator",
    )
    COMPONENT_SEPARATOR: str = Field(
        default=":",
        description="Component element separator (ISA16)",
    )
    REPETITION_SEPARATOR: str = Field(
        default="^",
        description="Repetition separator (ISA11)",
    )
    INCLUDE_LINE_BREAKS: bool = Field(
        default=True,
        description="Append a newline after each segment terminator",
    )

    # =========================================================================
    # Envelope Defaults
    # =========================================================================
    USAGE_INDICATOR: UsageIndicator = Field(
        default=UsageIndicator.TEST,
        description="ISA15 usage indicator for generated interchanges",
    )
    SENDER_ID: str = Field(
        default="SUBMITTER",
        description="ISA06 interchange sender ID",
    )
    SENDER_ID_QUALIFIER: str = Field(
        default="ZZ",
        description="ISA05 interchange sender ID qualifier",
    )
    RECEIVER_ID_QUALIFIER: str = Field(
        default="ZZ",
        description="ISA07 interchange receiver ID qualifier",
    )
    APPLICATION_SENDER_CODE: Optional[str] = Field(
        default=None,
        description="GS02 application sender code (defaults to SENDER_ID)",
    )
    ACKNOWLEDGMENT_REQUESTED: bool = Field(
        default=True,
        description="Request a TA1 interchange acknowledgment (ISA14)",
    )

    # =========================================================================
    # Timely Filing
    # =========================================================================
    TIMELY_FILING_LIMITS: dict[str, int] = Field(
        default_factory=dict,
        description="Per filing indicator overrides of the filing limit in days",
    )
    DEFAULT_FILING_LIMIT_DAYS: int = Field(
        default=365,
        gt=0,
        description="Filing limit for indicators without a table entry",
    )
    FILING_DEADLINE_WARNING_RATIO: float = Field(
        default=0.9,
        gt=0.0,
        le=1.0,
        description="Share of the filing limit after which a warning is raised",
    )

    # =========================================================================
    # Logging
    # =========================================================================
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    LOG_JSON: bool = Field(
        default=False,
        description="Emit JSON log lines",
    )
    LOG_FILE: Optional[str] = Field(
        default=None,
        description="Optional rotating log file path",
    )

    # =========================================================================
    # Validators
    # =========================================================================
    @field_validator(
        "ELEMENT_SEPARATOR",
        "SEGMENT_TERMINATOR",
        "COMPONENT_SEPARATOR",
        "REPETITION_SEPARATOR",
    )
    @classmethod
    def validate_separator(cls, v: str) -> str:
        """Separators are single non-alphanumeric characters."""
        if len(v) != 1 or v.isalnum() or v.isspace():
            raise ValueError(f"Separator must be a single special character, got {v!r}")
        return v

    @field_validator("TIMELY_FILING_LIMITS")
    @classmethod
    def validate_filing_limits(cls, v: dict[str, int]) -> dict[str, int]:
        """Normalize indicator keys and reject non-positive limits."""
        limits = {}
        for indicator, days in v.items():
            if days <= 0:
                raise ValueError(f"Filing limit for {indicator} must be positive")
            limits[indicator.strip().upper()] = days
        return limits

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level name."""
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @model_validator(mode="after")
    def validate_distinct_separators(self) -> "ClaimsEngineSettings":
        """The four delimiters must all differ."""
        separators = [
            self.ELEMENT_SEPARATOR,
            self.SEGMENT_TERMINATOR,
            self.COMPONENT_SEPARATOR,
            self.REPETITION_SEPARATOR,
        ]
        if len(set(separators)) != len(separators):
            raise ValueError("Element, segment, component and repetition separators must differ")
        return self

    @property
    def delimiters(self) -> X12Delimiters:
        """Configured delimiters as a value object."""
        return X12Delimiters(
            element=self.ELEMENT_SEPARATOR,
            segment=self.SEGMENT_TERMINATOR,
            component=self.COMPONENT_SEPARATOR,
            repetition=self.REPETITION_SEPARATOR,
        )

    @property
    def application_sender_code(self) -> str:
        """GS02, falling back to the interchange sender ID."""
        return self.APPLICATION_SENDER_CODE or self.SENDER_ID

    @property
    def is_production(self) -> bool:
        """Check if interchanges are flagged for production."""
        return self.USAGE_INDICATOR == UsageIndicator.PRODUCTION


# Singleton instance
_claims_engine_settings: Optional[ClaimsEngineSettings] = None


def get_claims_engine_settings() -> ClaimsEngineSettings:
    """
    Get cached claims engine settings instance.

    Returns:
        ClaimsEngineSettings instance
    """
    global _claims_engine_settings
    if _claims_engine_settings is None:
        _claims_engine_settings = ClaimsEngineSettings()
    return _claims_engine_settings


def reset_claims_engine_settings() -> None:
    """Drop the cached instance so the next access re-reads the environment."""
    global _claims_engine_settings
    _claims_engine_settings = None
