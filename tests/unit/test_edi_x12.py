"""
Unit Tests for X12 837 Generation.

Source: ASC X12N 005010X222A1 / 005010X223A2
Verified: 2025-12-19

Tests:
- Segment builder and delimiter sanitization
- X12 formatting utilities and NPI check digit
- 837P/837I generation, loop ordering and SE counts
- Structural faults
"""

from dataclasses import FrozenInstanceError, replace
from datetime import date, time
from decimal import Decimal

import pytest

from src.core.enums import (
    ClaimFrequencyCode,
    ClaimType,
    DiagnosisQualifier,
    RelatedCauseCode,
)
from src.services.edi.segment_builder import (
    DEFAULT_DELIMITERS,
    SegmentBuilder,
    X12Delimiters,
    sanitize_element,
)
from src.services.edi.x12_837_generator import (
    X12837Generator,
    create_default_functional_group_info,
    create_default_interchange_info,
    format_institutional_claim,
    format_professional_claim,
    generate_interchange_control_number,
    generate_patient_control_number,
)
from src.services.edi.x12_837_models import (
    DiagnosisInfo,
    DiagnosisSet,
    OccurrenceCode,
    ProcedureInfo,
    RelatedCause,
    ServiceFacilityInfo,
    TransactionSetInfo,
    ValueCode,
)
from src.services.edi.x12_base import (
    MissingClaimComponentError,
    TransactionType,
    X12FormatError,
    format_x12_amount,
    format_x12_date,
    format_x12_date_range,
    format_x12_quantity,
    format_x12_short_date,
    format_x12_time,
    format_zip_code,
    pad_control_number,
    validate_npi,
)


def split_segments(content: str, terminator: str = "~") -> list[str]:
    """Split rendered X12 into segments without terminators."""
    return [segment.strip() for segment in content.split(terminator) if segment.strip()]


def counted_segments(segments: list[str]) -> int:
    """Segments from ST through SE inclusive."""
    start = next(i for i, s in enumerate(segments) if s.startswith("ST*"))
    end = next(i for i, s in enumerate(segments) if s.startswith("SE*"))
    return end - start + 1


# =============================================================================
# Segment Builder
# =============================================================================


class TestSegmentBuilder:
    """Tests for SegmentBuilder."""

    def test_build_simple_segment(self):
        """Test elements are joined with the element separator."""
        segment = SegmentBuilder("NM1").add("85").add("2").add("ACME CLINIC").build()
        assert segment == "NM1*85*2*ACME CLINIC~"

    def test_trailing_empty_elements_trimmed(self):
        """Test trailing empty elements are dropped."""
        segment = SegmentBuilder("N3").add("123 MAIN ST").add(None).add("").build()
        assert segment == "N3*123 MAIN ST~"

    def test_interior_empty_elements_kept(self):
        """Test empty placeholders between values are kept."""
        segment = SegmentBuilder("HL").add("1").add_empty().add("20").add("1").build()
        assert segment == "HL*1**20*1~"

    def test_add_empty_count(self):
        """Test add_empty appends several placeholders."""
        segment = SegmentBuilder("NM1").add("40").add_empty(3).add("46").build()
        assert segment == "NM1*40****46~"

    def test_composite_trims_trailing_components(self):
        """Test trailing empty components are dropped."""
        segment = SegmentBuilder("SV1").add_component("HC", "99213", "", "").build()
        assert segment == "SV1*HC:99213~"

    def test_composite_with_modifiers(self):
        """Test composite keeps interior components."""
        segment = SegmentBuilder("SV1").add_component("HC", "99213", "25", "59").build()
        assert segment == "SV1*HC:99213:25:59~"

    def test_reserved_characters_removed(self):
        """Test delimiter characters in data never split the segment."""
        segment = SegmentBuilder("NM1").add("A*B~C:D^E").build()
        assert segment == "NM1*ABCDE~"

    def test_fixed_width_pads_and_truncates(self):
        """Test fixed width elements are space padded or truncated."""
        builder = SegmentBuilder("ISA").add_fixed("ZZ", 5).add_fixed("TOOLONGVALUE", 3)
        assert builder.elements == ["ZZ   ", "TOO"]

    def test_raw_value_bypasses_sanitization(self):
        """Test add_raw keeps delimiter characters."""
        segment = SegmentBuilder("ISA").add("P").add_raw(":").build()
        assert segment == "ISA*P*:~"

    def test_value_types(self):
        """Test booleans, decimals, ints and dates render as X12 text."""
        builder = SegmentBuilder("X").add(True).add(False).add(Decimal("1.50")).add(3).add(date(2025, 2, 15))
        assert builder.elements == ["Y", "N", "1.50", "3", "20250215"]

    def test_enum_value_rendered(self):
        """Test enum members render as their values."""
        segment = SegmentBuilder("DMG").add(ClaimFrequencyCode.REPLACEMENT).build()
        assert segment == "DMG*7~"

    def test_line_break(self):
        """Test optional newline after the terminator."""
        segment = SegmentBuilder("LX", line_break=True).add("1").build()
        assert segment == "LX*1~\n"

    def test_custom_delimiters(self):
        """Test builder honors configured delimiters."""
        delimiters = X12Delimiters(element="|", segment="'", component=">", repetition="!")
        segment = SegmentBuilder("SV1", delimiters).add_component("HC", "99213").add("A|B'C").build()
        assert segment == "SV1|HC>99213|ABC'"

    def test_sanitize_element(self):
        """Test sanitize_element strips reserved characters and whitespace."""
        assert sanitize_element("  DOE*JOHN~  ") == "DOEJOHN"
        assert sanitize_element(None) == ""
        assert sanitize_element("NO CHANGE", DEFAULT_DELIMITERS) == "NO CHANGE"


# =============================================================================
# Utilities
# =============================================================================


class TestX12Utilities:
    """Tests for X12 utility functions."""

    def test_format_x12_date(self):
        """Test date formatting."""
        assert format_x12_date(date(2025, 2, 15)) == "20250215"
        assert format_x12_date(None) == ""

    def test_format_x12_short_date(self):
        """Test ISA date formatting."""
        assert format_x12_short_date(date(2025, 3, 1)) == "250301"

    def test_format_x12_date_range(self):
        """Test RD8 formatting."""
        assert format_x12_date_range(date(2025, 2, 10), date(2025, 2, 12)) == "20250210-20250212"

    def test_format_x12_time(self):
        """Test HHMM formatting."""
        assert format_x12_time(time(8, 5)) == "0805"
        assert format_x12_time(None) == ""

    def test_format_x12_amount(self):
        """Test amounts render with two decimals."""
        assert format_x12_amount(Decimal("120")) == "120.00"
        assert format_x12_amount(Decimal("10.005")) == "10.01"
        assert format_x12_amount(75.5) == "75.50"
        assert format_x12_amount(None) == ""

    def test_format_x12_quantity(self):
        """Test whole unit counts drop the fraction."""
        assert format_x12_quantity(Decimal("2.0")) == "2"
        assert format_x12_quantity(1) == "1"
        assert format_x12_quantity(Decimal("1.5")) == "1.5"

    def test_format_zip_code(self):
        """Test ZIP+4 hyphen removal."""
        assert format_zip_code("62701-1234") == "627011234"
        assert format_zip_code("62704") == "62704"
        assert format_zip_code(None) == ""

    def test_pad_control_number(self):
        """Test control numbers are zero padded."""
        assert pad_control_number("42", 9) == "000000042"
        assert pad_control_number(123456789, 9) == "123456789"

    @pytest.mark.parametrize("npi", ["1234567893", "1987654328", "1245319599", "1000000004", "2345678900"])
    def test_valid_npi(self, npi):
        """Test NPIs with a correct check digit."""
        assert validate_npi(npi) is True

    @pytest.mark.parametrize("npi", ["1234567890", "3234567893", "123456789", "12345678930", "123456789A", "", None])
    def test_invalid_npi(self, npi):
        """Test malformed NPIs and wrong check digits."""
        assert validate_npi(npi) is False

    def test_transaction_type_conventions(self):
        """Test implementation convention per claim type."""
        assert TransactionType.for_claim_type(ClaimType.PROFESSIONAL).implementation_convention == "005010X222A1"
        assert TransactionType.for_claim_type(ClaimType.INSTITUTIONAL).implementation_convention == "005010X223A2"


# =============================================================================
# 837P Generation
# =============================================================================


class TestProfessionalGeneration:
    """Tests for 837P generation."""

    def test_full_professional_claim(self, generator, professional_claim, interchange, functional_group):
        """Test complete 837P output for a self-insured patient."""
        content = generator.format_professional_claim(professional_claim, interchange, functional_group)
        segments = split_segments(content)

        assert segments[1:] == [
            "GS*HC*SUBMITTER01*PAYER01*20250301*1200*1*X*005010X222A1",
            "ST*837*0001*005010X222A1",
            "BHT*0019*00*CLM001*20250301*1200*CH",
            "NM1*41*2*ACME MEDICAL GROUP*****46*1234567893",
            "PER*IC*JANE BILLER*TE*2175551234",
            "NM1*40*2*ACME HEALTH PLAN*****46*PAYER01",
            "HL*1**20*1",
            "PRV*BI*PXC*207Q00000X",
            "NM1*85*2*ACME MEDICAL GROUP*****XX*1234567893",
            "N3*123 MAIN ST",
            "N4*SPRINGFIELD*IL*627011234",
            "REF*EI*123456789",
            "HL*2*1*22*0",
            "SBR*P*18*GRP001******CI",
            "NM1*IL*1*DOE*JOHN****MI*MEM123456",
            "N3*456 OAK AVE",
            "N4*SPRINGFIELD*IL*62704",
            "DMG*D8*19800115*M",
            "NM1*PR*2*ACME HEALTH PLAN*****PI*PAYER01",
            "CLM*PCN001*120.00***11:B:1*Y*A*Y*Y",
            "HI*ABK:E119",
            "LX*1",
            "SV1*HC:99213*120.00*UN*1*11**1",
            "DTP*472*D8*20250215",
            "NM1*82*1*SMITH*ALICE****XX*1987654328",
            "PRV*PE*PXC*207Q00000X",
            "SE*26*0001",
            "GE*1*1",
            "IEA*1*123456789",
        ]

    def test_isa_segment_fixed_width(self, generator, professional_claim, interchange, functional_group):
        """Test ISA is 106 characters with padded IDs."""
        content = generator.format_professional_claim(professional_claim, interchange, functional_group)
        isa = content[:content.index("~") + 1]

        expected = (
            "ISA*00*" + " " * 10 + "*00*" + " " * 10
            + "*ZZ*" + "SUBMITTER01".ljust(15)
            + "*ZZ*" + "PAYER01".ljust(15)
            + "*250301*1200*^*00501*123456789*1*T*:~"
        )
        assert isa == expected
        assert len(isa) == 106

    def test_self_patient_has_no_patient_level(self, generator, professional_claim, interchange, functional_group):
        """Test subscriber-is-patient claims stop at the subscriber HL."""
        segments = split_segments(generator.format_professional_claim(professional_claim, interchange, functional_group))

        assert [s for s in segments if s.startswith("HL*")] == ["HL*1**20*1", "HL*2*1*22*0"]
        assert not any(s.startswith("PAT*") or s.startswith("NM1*QC") for s in segments)

    def test_dependent_patient_level(
        self, generator, professional_claim, dependent_patient, interchange, functional_group
    ):
        """Test dependent patients get HL 23, PAT and NM1*QC."""
        claim = replace(professional_claim, patient=dependent_patient)
        segments = split_segments(generator.format_professional_claim(claim, interchange, functional_group))

        assert [s for s in segments if s.startswith("HL*")] == ["HL*1**20*1", "HL*2*1*22*1", "HL*3*2*23*0"]
        assert "SBR*P**GRP001******CI" in segments
        patient_hl = segments.index("HL*3*2*23*0")
        assert segments[patient_hl + 1:patient_hl + 6] == [
            "PAT*19",
            "NM1*QC*1*DOE*JANE",
            "N3*456 OAK AVE",
            "N4*SPRINGFIELD*IL*62704",
            "DMG*D8*20120601*F",
        ]
        assert patient_hl < segments.index("CLM*PCN001*120.00***11:B:1*Y*A*Y*Y")

    def test_se_count_matches_emitted_segments(
        self, generator, professional_claim, dependent_patient, interchange, functional_group
    ):
        """Test SE01 equals the ST through SE segment count."""
        for claim in (professional_claim, replace(professional_claim, patient=dependent_patient)):
            segments = split_segments(generator.format_professional_claim(claim, interchange, functional_group))
            se = next(s for s in segments if s.startswith("SE*"))
            assert int(se.split("*")[1]) == counted_segments(segments)

    def test_secondary_diagnoses_chunked(self, generator, professional_claim, interchange, functional_group):
        """Test principal HI then secondary diagnoses eleven per HI."""
        secondary = [DiagnosisInfo(code=f"J45{i:02d}", qualifier=DiagnosisQualifier.ABF) for i in range(12)]
        claim = replace(
            professional_claim,
            diagnoses=DiagnosisSet(principal=DiagnosisInfo(code="E11.9"), secondary=secondary),
        )
        segments = split_segments(generator.format_professional_claim(claim, interchange, functional_group))
        hi = [s for s in segments if s.startswith("HI*")]

        assert hi[0] == "HI*ABK:E119"
        assert len(hi) == 3
        assert len(hi[1].split("*")) == 12
        assert hi[2] == "HI*ABF:J4511"

    def test_replacement_claim_reference(self, generator, professional_claim, interchange, functional_group):
        """Test replacement claims carry frequency 7 and REF*F8."""
        header = replace(
            professional_claim.header,
            claim_frequency_code=ClaimFrequencyCode.REPLACEMENT,
            original_claim_number="ORIG123",
            prior_authorization_number="AUTH9",
        )
        claim = replace(professional_claim, header=header)
        segments = split_segments(generator.format_professional_claim(claim, interchange, functional_group))

        assert "CLM*PCN001*120.00***11:B:7*Y*A*Y*Y" in segments
        assert segments.index("REF*G1*AUTH9") < segments.index("REF*F8*ORIG123") < segments.index("HI*ABK:E119")

    def test_original_claim_has_no_f8(self, generator, professional_claim, interchange, functional_group):
        """Test REF*F8 is omitted for original claims."""
        header = replace(professional_claim.header, original_claim_number="ORIG123")
        content = generator.format_professional_claim(
            replace(professional_claim, header=header), interchange, functional_group
        )
        assert "REF*F8" not in content

    def test_related_causes(self, generator, professional_claim, interchange, functional_group):
        """Test CLM11 related causes with accident state."""
        header = replace(
            professional_claim.header,
            related_causes=RelatedCause(codes=[RelatedCauseCode.AUTO_ACCIDENT], state="IL"),
            accident_date=date(2025, 2, 14),
        )
        segments = split_segments(
            generator.format_professional_claim(replace(professional_claim, header=header), interchange, functional_group)
        )

        assert "CLM*PCN001*120.00***11:B:1*Y*A*Y*Y**AA:::IL" in segments
        assert "DTP*439*D8*20250214" in segments

    def test_place_of_service_from_header(self, generator, professional_claim, interchange, functional_group):
        """Test CLM05-1 prefers the header place of service."""
        header = replace(professional_claim.header, place_of_service="22")
        content = generator.format_professional_claim(
            replace(professional_claim, header=header), interchange, functional_group
        )
        assert "***22:B:1*" in content

    def test_service_line_details(self, generator, professional_claim, service_line, interchange, functional_group):
        """Test modifiers, description, date span, line control number and NDC."""
        line = replace(
            service_line,
            modifiers=["25"],
            description="OFFICE VISIT",
            service_end_date=date(2025, 2, 16),
            line_item_control_number="LINE1",
            ndc_code="00002143380",
            ndc_quantity=Decimal("2"),
            ndc_unit="UN",
            emergency_indicator=True,
        )
        segments = split_segments(
            generator.format_professional_claim(
                replace(professional_claim, service_lines=[line]), interchange, functional_group
            )
        )

        assert "SV1*HC:99213:25::::OFFICE VISIT*120.00*UN*1*11**1**Y" in segments
        assert "DTP*472*RD8*20250215-20250216" in segments
        assert "REF*6R*LINE1" in segments
        assert segments.index("LIN**N4*00002143380") + 1 == segments.index("CTP****2*UN")

    def test_codes_upper_cased(self, generator, professional_claim, service_line, interchange, functional_group):
        """Test lower-case diagnosis, procedure and modifier codes render upper-case."""
        diagnoses = replace(
            professional_claim.diagnoses,
            principal=DiagnosisInfo(code="z00.00"),
            secondary=[DiagnosisInfo(code=" i10 ", qualifier=DiagnosisQualifier.ABF)],
        )
        line = replace(service_line, code="j1100", modifiers=["lt", " 59"])
        segments = split_segments(
            generator.format_professional_claim(
                replace(professional_claim, diagnoses=diagnoses, service_lines=[line]), interchange, functional_group
            )
        )

        assert "HI*ABK:Z0000" in segments
        assert "HI*ABF:I10" in segments
        assert "SV1*HC:J1100:LT:59*120.00*UN*1*11**1" in segments

    def test_multiple_lines_numbered(self, generator, professional_claim, service_line, interchange, functional_group):
        """Test LX numbering follows line order."""
        second = replace(service_line, code="85025", charge_amount=Decimal("30.00"), rendering_provider=None)
        claim = replace(professional_claim, service_lines=[service_line, second])
        segments = split_segments(generator.format_professional_claim(claim, interchange, functional_group))

        assert [s for s in segments if s.startswith("LX*")] == ["LX*1", "LX*2"]
        assert segments[-4] == "DTP*472*D8*20250215"

    def test_claim_level_providers(
        self, generator, professional_claim, rendering_provider, interchange, functional_group
    ):
        """Test referring, rendering and facility loops follow HI."""
        facility = ServiceFacilityInfo(
            name="ACME SURGERY CENTER", address1="9 ELM ST", city="SPRINGFIELD", state="IL", zip_code="62702"
        )
        claim = replace(professional_claim, rendering_provider=rendering_provider, service_facility=facility)
        segments = split_segments(generator.format_professional_claim(claim, interchange, functional_group))

        hi = segments.index("HI*ABK:E119")
        rendering = segments.index("NM1*82*1*SMITH*ALICE****XX*1987654328")
        facility_index = segments.index("NM1*77*2*ACME SURGERY CENTER")
        assert hi < rendering < facility_index < segments.index("LX*1")
        assert segments[facility_index + 1:facility_index + 3] == ["N3*9 ELM ST", "N4*SPRINGFIELD*IL*62702"]

    def test_delimiters_in_data_sanitized(self, generator, professional_claim, interchange, functional_group):
        """Test names containing delimiters cannot break segments."""
        billing = replace(professional_claim.billing_provider, name="ACME*MEDICAL~GROUP")
        content = generator.format_professional_claim(
            replace(professional_claim, billing_provider=billing), interchange, functional_group
        )
        assert "NM1*85*2*ACMEMEDICALGROUP*****XX*1234567893~" in content

    def test_output_is_deterministic(self, generator, professional_claim, interchange, functional_group):
        """Test identical inputs give identical output."""
        first = generator.format_professional_claim(professional_claim, interchange, functional_group)
        second = generator.format_professional_claim(professional_claim, interchange, functional_group)
        assert first == second

    def test_transaction_set_control_number(self, generator, professional_claim, interchange, functional_group):
        """Test ST02 and SE02 use the supplied control number."""
        content = generator.format_professional_claim(
            professional_claim, interchange, functional_group, TransactionSetInfo(transaction_set_control_number="1234")
        )
        assert "ST*837*1234*005010X222A1~" in content
        assert "SE*26*1234~" in content

    def test_line_breaks(self, professional_claim, interchange, functional_group):
        """Test each segment ends with a newline when enabled."""
        generator = X12837Generator(delimiters=DEFAULT_DELIMITERS, include_line_breaks=True)
        content = generator.format_professional_claim(professional_claim, interchange, functional_group)
        assert content.count("~\n") == content.count("~")
        assert content.endswith("IEA*1*123456789~\n")

    def test_custom_delimiters(self, professional_claim, interchange, functional_group):
        """Test ISA11, ISA16 and separators follow the configured delimiters."""
        delimiters = X12Delimiters(element="|", segment="'", component=">", repetition="!")
        generator = X12837Generator(delimiters=delimiters, include_line_breaks=False)
        content = generator.format_professional_claim(professional_claim, interchange, functional_group)
        segments = split_segments(content, terminator="'")

        assert segments[0].endswith("|!|00501|123456789|1|T|>")
        assert "SV1|HC>99213|120.00|UN|1|11||1" in segments

    def test_generate_dispatch(self, generator, professional_claim, institutional_claim, interchange, functional_group):
        """Test generate picks the variant from the claim type."""
        assert "005010X222A1" in generator.generate(professional_claim, interchange, functional_group)
        assert "005010X223A2" in generator.generate(institutional_claim, interchange, functional_group)

    def test_module_level_formatter(self, professional_claim, interchange, functional_group):
        """Test convenience function renders the same content."""
        content = format_professional_claim(
            professional_claim, interchange, functional_group, delimiters=DEFAULT_DELIMITERS, include_line_breaks=False
        )
        assert content.startswith("ISA*00*")
        assert "SE*26*0001~" in content


# =============================================================================
# 837I Generation
# =============================================================================


class TestInstitutionalGeneration:
    """Tests for 837I generation."""

    @pytest.fixture
    def segments(self, generator, institutional_claim, interchange, functional_group):
        content = generator.format_institutional_claim(institutional_claim, interchange, functional_group)
        return split_segments(content)

    def test_headers(self, segments):
        """Test institutional convention in GS and ST."""
        assert segments[1].endswith("*X*005010X223A2")
        assert segments[2] == "ST*837*0001*005010X223A2"

    def test_claim_segment(self, segments):
        """Test CLM05 bill type composite and blank CLM06."""
        assert "CLM*IPCN001*1500.00***11:A:1**A*Y*Y" in segments

    def test_dates_and_cl1(self, segments):
        """Test statement period, admission date-time and CL1."""
        clm = segments.index("CLM*IPCN001*1500.00***11:A:1**A*Y*Y")
        assert segments[clm + 1:clm + 4] == [
            "DTP*434*RD8*20250210-20250212",
            "DTP*435*DT*202502100830",
            "CL1*1*7*01",
        ]

    def test_hi_order(self, segments):
        """Test principal, admitting, other diagnoses then principal procedure."""
        hi = [s for s in segments if s.startswith("HI*")]
        assert hi == [
            "HI*BK:I214" + ":" * 7 + "Y",
            "HI*BJ:R0789",
            "HI*BF:E785",
            "HI*BBR:02703ZZ:D8:20250210",
        ]

    def test_attending_provider(self, segments):
        """Test attending provider loop with PRV*AT."""
        attending = segments.index("NM1*71*1*JONES*ROBERT****XX*1245319599")
        assert segments[attending + 1] == "PRV*AT*PXC*207RC0000X"
        assert segments.index("HI*BBR:02703ZZ:D8:20250210") < attending < segments.index("LX*1")

    def test_revenue_lines(self, segments):
        """Test SV2 per revenue line with optional procedure composite."""
        assert [s for s in segments if s.startswith("SV2*")] == [
            "SV2*0450**1000.00*UN*1",
            "SV2*0300*HC:80053*500.00*UN*2",
            "SV2*0001**1500.00*UN*1",
        ]
        assert [s for s in segments if s.startswith("LX*")] == ["LX*1", "LX*2", "LX*3"]

    def test_billing_provider_is_organization(self, segments):
        """Test 2010AA entity type is always 2 on 837I."""
        assert "NM1*85*2*ACME MEDICAL GROUP*****XX*1234567893" in segments

    def test_se_count(self, segments):
        """Test SE01 equals the ST through SE segment count."""
        se = next(s for s in segments if s.startswith("SE*"))
        assert int(se.split("*")[1]) == counted_segments(segments)

    def test_code_set_groups(self, generator, institutional_claim, interchange, functional_group):
        """Test DRG, condition and value codes render in their own HI segments."""
        claim = replace(
            institutional_claim,
            drg_code="280",
            condition_codes=["01", "02"],
            occurrence_codes=[OccurrenceCode(code="11", occurrence_date=date(2025, 2, 9))],
            value_codes=[ValueCode(code="80", amount=Decimal("2"))],
        )
        segments = split_segments(generator.format_institutional_claim(claim, interchange, functional_group))
        hi = [s for s in segments if s.startswith("HI*")]

        assert hi[-4:] == [
            "HI*BBR:02703ZZ:D8:20250210",
            "HI*BH:11:D8:20250209",
            "HI*BE:80:::2.00",
            "HI*BG:01*BG:02",
        ]
        assert "HI*DR:280" in hi
        assert hi.index("HI*DR:280") < hi.index("HI*BF:E785")

    def test_module_level_formatter(self, institutional_claim, interchange, functional_group):
        """Test convenience function renders 837I."""
        content = format_institutional_claim(
            institutional_claim, interchange, functional_group, delimiters=DEFAULT_DELIMITERS, include_line_breaks=False
        )
        assert "ST*837*0001*005010X223A2~" in content


# =============================================================================
# Structural Faults
# =============================================================================


class TestStructuralFaults:
    """Tests for missing nested structures."""

    @pytest.mark.parametrize(
        "field_name",
        ["header", "billing_provider", "subscriber", "patient", "payer", "diagnoses"],
    )
    def test_missing_component_raises(self, generator, professional_claim, interchange, functional_group, field_name):
        """Test absent required structures raise before rendering."""
        claim = replace(professional_claim, **{field_name: None})
        with pytest.raises(MissingClaimComponentError) as exc_info:
            generator.format_professional_claim(claim, interchange, functional_group)
        assert field_name in str(exc_info.value)

    def test_missing_principal_diagnosis(self, generator, professional_claim, interchange, functional_group):
        """Test a diagnosis set without principal raises."""
        claim = replace(professional_claim, diagnoses=DiagnosisSet(principal=None))
        with pytest.raises(MissingClaimComponentError, match="diagnoses.principal"):
            generator.format_professional_claim(claim, interchange, functional_group)

    def test_missing_service_line(self, generator, professional_claim, interchange, functional_group):
        """Test a None service line raises."""
        claim = replace(professional_claim, service_lines=[None])
        with pytest.raises(MissingClaimComponentError, match=r"service_lines\[0\]"):
            generator.format_professional_claim(claim, interchange, functional_group)

    def test_missing_revenue_lines(self, generator, institutional_claim, interchange, functional_group):
        """Test a None revenue line list raises."""
        claim = replace(institutional_claim, revenue_lines=None)
        with pytest.raises(MissingClaimComponentError, match="revenue_lines"):
            generator.format_institutional_claim(claim, interchange, functional_group)

    @pytest.mark.parametrize(
        "cleared, component",
        [
            (("statement_from_date", "statement_through_date"), "statement_from_date"),
            (("statement_from_date",), "statement_from_date"),
            (("statement_through_date",), "statement_through_date"),
        ],
    )
    def test_missing_statement_dates(
        self, generator, institutional_claim, interchange, functional_group, cleared, component
    ):
        """Test an 837I without a full statement period raises instead of dropping DTP*434."""
        claim = replace(institutional_claim, **{name: None for name in cleared})
        with pytest.raises(MissingClaimComponentError) as exc_info:
            generator.format_institutional_claim(claim, interchange, functional_group)

        assert exc_info.value.component == component
        assert exc_info.value.loop_id == "2300"
        assert "Loop: 2300" in str(exc_info.value)
        assert "Segment: DTP" in str(exc_info.value)

    def test_missing_envelope(self, generator, professional_claim, functional_group):
        """Test missing interchange metadata raises."""
        with pytest.raises(MissingClaimComponentError, match="interchange"):
            generator.format_professional_claim(professional_claim, None, functional_group)

    def test_error_context(self, generator, professional_claim, interchange, functional_group):
        """Test fault message carries loop context."""
        claim = replace(professional_claim, billing_provider=None)
        with pytest.raises(X12FormatError) as exc_info:
            generator.format_professional_claim(claim, interchange, functional_group)
        assert exc_info.value.loop_id == "2010AA"
        assert exc_info.value.component == "billing_provider"
        assert "Loop: 2010AA" in str(exc_info.value)

    def test_unsupported_claim_type(self, generator, interchange, functional_group):
        """Test generate rejects unknown claim objects."""
        with pytest.raises(X12FormatError, match="Unsupported claim type"):
            generator.generate(object(), interchange, functional_group)


# =============================================================================
# Envelope Helpers
# =============================================================================


class TestEnvelopeHelpers:
    """Tests for control number and envelope defaults."""

    def test_interchange_control_number(self):
        """Test 9-digit interchange control numbers."""
        number = generate_interchange_control_number()
        assert len(number) == 9
        assert number.isdigit()

    def test_patient_control_number(self):
        """Test patient control numbers fit CLM01."""
        number = generate_patient_control_number("PCN")
        assert number.startswith("PCN")
        assert len(number) <= 20

    def test_default_interchange(self):
        """Test default ISA metadata."""
        info = create_default_interchange_info("SENDER", "RECEIVER")
        assert info.sender_id == "SENDER"
        assert info.receiver_id == "RECEIVER"
        assert len(info.interchange_control_number) == 9

    def test_default_functional_group_version(self):
        """Test GS08 follows the claim type."""
        professional = create_default_functional_group_info("S", "R")
        institutional = create_default_functional_group_info("S", "R", claim_type=ClaimType.INSTITUTIONAL)
        assert professional.version == "005010X222A1"
        assert institutional.version == "005010X223A2"
        assert professional.functional_identifier_code == "HC"

    def test_default_envelope_renders(self, generator, professional_claim):
        """Test a claim renders with generated envelope metadata."""
        interchange = create_default_interchange_info("SENDER", "PAYER01")
        group = create_default_functional_group_info("SENDER", "PAYER01")
        content = generator.format_professional_claim(professional_claim, interchange, group)
        assert content.endswith(f"IEA*1*{interchange.interchange_control_number}~")


# =============================================================================
# Data Models
# =============================================================================


class TestDataModels:
    """Tests for claim model helpers."""

    def test_pointer_targets(self):
        """Test pointer targets are principal then secondary."""
        principal = DiagnosisInfo(code="E119")
        other = DiagnosisInfo(code="I10", qualifier=DiagnosisQualifier.ABF)
        diagnoses = DiagnosisSet(principal=principal, secondary=[other])
        assert diagnoses.pointer_targets == [principal, other]
        assert DiagnosisSet(principal=None, secondary=[other]).pointer_targets == [other]

    def test_patient_is_subscriber(self, self_patient, dependent_patient):
        """Test relationship 18 marks the subscriber."""
        assert self_patient.is_subscriber is True
        assert dependent_patient.is_subscriber is False
        assert replace(self_patient, relationship_to_subscriber="18").is_subscriber is True

    def test_models_are_immutable(self, service_line):
        """Test claim records cannot be mutated."""
        with pytest.raises(FrozenInstanceError):
            service_line.code = "99214"

    def test_procedure_defaults(self):
        """Test professional line defaults."""
        line = ProcedureInfo(code="99213", charge_amount=Decimal("1"), units=1, service_date=date(2025, 1, 1))
        assert line.qualifier.value == "HC"
        assert line.unit_type.value == "UN"
        assert line.modifiers == []
