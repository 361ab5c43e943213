"""Tests for lifecycle.core.mappers module.

Tests the pure mapping layer:
- Covenant and obligation mapping (types, defaults, review flags)
- Compliance calendar generation
- ESG KPI inference
- Deal term and trading facility mapping
- DD checklist generation
"""

from datetime import date

import pytest

from lifecycle.core.mappers import (
    fiscal_year_end_date,
    format_amount,
    generate_compliance_events,
    generate_dd_checklist,
    infer_improvement_direction,
    infer_kpi_category,
    infer_unit_of_measure,
    map_covenant,
    map_esg_provision,
    map_facility_to_deal_terms,
    map_facility_to_trading,
    map_obligation,
    needs_review,
)
from lifecycle.pydantic_models.extraction_models import (
    ExtractedCovenant,
    ExtractedESG,
    ExtractedFacility,
    ExtractedObligation,
    KPITarget,
)

TODAY = date(2025, 6, 15)


def _obligation(**kwargs):
    defaults = {"obligation_type": "compliance_certificate", "frequency": "quarterly", "confidence": 0.9}
    defaults.update(kwargs)
    return map_obligation(ExtractedObligation(**defaults), 0.8)


# =============================================================================
# Review flag tests
# =============================================================================


class TestNeedsReview:
    """Tests for the review decision."""

    def test_below_threshold(self):
        assert needs_review(0.79, 0.8)

    def test_at_threshold_is_fine(self):
        assert not needs_review(0.8, 0.8)

    def test_flag_wins(self):
        assert needs_review(0.99, 0.8, flagged=True)


class TestFormatAmount:
    def test_whole_amount(self):
        assert format_amount(250_000_000) == "250,000,000"

    def test_fractional_amount(self):
        assert format_amount(1234.5) == "1,234.50"


# =============================================================================
# Covenant tests
# =============================================================================


class TestMapCovenant:
    """Tests for map_covenant."""

    def test_basic_mapping(self, sample_covenants):
        mapped = map_covenant(sample_covenants[0], 0.8, TODAY)
        assert mapped.covenant_type == "leverage_ratio"
        assert mapped.name == "Maximum Leverage Ratio"
        assert mapped.threshold_type == "maximum"
        assert mapped.testing_frequency == "quarterly"
        assert mapped.threshold_schedule[0].effective_from == TODAY
        assert mapped.threshold_schedule[0].threshold_value == 3.5
        assert mapped.requires_review is False

    def test_low_confidence_needs_review(self, sample_covenants):
        assert map_covenant(sample_covenants[1], 0.8, TODAY).requires_review is True

    def test_threshold_controls_review(self, sample_covenants):
        assert map_covenant(sample_covenants[1], 0.5, TODAY).requires_review is False

    def test_capex_renamed(self):
        covenant = ExtractedCovenant(covenant_type="capex_limit", covenant_name="Capex", confidence=0.9)
        assert map_covenant(covenant, 0.8, TODAY).covenant_type == "capex"

    def test_unknown_type_and_frequency_fall_back(self):
        covenant = ExtractedCovenant(
            covenant_type="tangible_net_worth_plus",
            covenant_name="Odd",
            testing_frequency="monthly",
            confidence=0.9,
        )
        mapped = map_covenant(covenant, 0.8, TODAY)
        assert mapped.covenant_type == "other"
        assert mapped.testing_frequency == "quarterly"

    def test_missing_threshold_value_has_no_schedule(self):
        covenant = ExtractedCovenant(covenant_name="No number", confidence=0.9)
        mapped = map_covenant(covenant, 0.8, TODAY)
        assert mapped.threshold_schedule is None
        assert mapped.threshold_type == "maximum"


# =============================================================================
# Obligation tests
# =============================================================================


class TestMapObligation:
    """Tests for map_obligation."""

    def test_defaults(self):
        mapped = _obligation()
        assert mapped.deadline_days == 90
        assert mapped.recipient_roles == ["Agent"]
        assert mapped.requires_certification is True
        assert mapped.requires_audit is False
        assert mapped.name == "compliance_certificate Reporting"

    def test_annual_financials(self):
        mapped = _obligation(obligation_type="annual_financials", frequency="annual", deadline_days=120)
        assert mapped.obligation_type == "annual_audited_financials"
        assert mapped.requires_audit is True
        assert mapped.deadline_days == 120

    def test_on_occurrence_becomes_on_event(self):
        assert _obligation(frequency="on_occurrence").frequency == "on_event"

    def test_unknown_frequency_is_quarterly(self):
        assert _obligation(frequency="fortnightly").frequency == "quarterly"

    def test_flagged_obligation_needs_review(self):
        assert _obligation(requires_review=True).requires_review is True


# =============================================================================
# Compliance calendar tests
# =============================================================================


class TestComplianceCalendar:
    """Tests for generate_compliance_events."""

    def test_quarterly_periods(self):
        events = generate_compliance_events([_obligation(deadline_days=45)], "12-31", 2025)
        assert [e.reference_period_end for e in events] == [
            date(2025, 3, 31), date(2025, 6, 30), date(2025, 9, 30), date(2025, 12, 31),
        ]
        assert [e.reference_period_start for e in events] == [
            date(2025, 1, 1), date(2025, 4, 1), date(2025, 7, 1), date(2025, 10, 1),
        ]
        assert events[0].deadline_date == date(2025, 5, 15)
        assert events[0].grace_deadline_date == date(2025, 5, 20)
        assert all(e.status == "upcoming" for e in events)

    def test_annual_uses_longer_grace(self):
        events = generate_compliance_events(
            [_obligation(obligation_type="annual_financials", frequency="annual", deadline_days=120)],
            "12-31", 2025,
        )
        assert len(events) == 1
        assert events[0].reference_period_start == date(2025, 1, 1)
        assert events[0].deadline_date == date(2026, 4, 30)
        assert events[0].grace_deadline_date == date(2026, 5, 10)

    def test_non_calendar_fiscal_year(self):
        events = generate_compliance_events([_obligation(frequency="semi_annual")], "06-30", 2025)
        assert [e.reference_period_end for e in events] == [date(2024, 12, 31), date(2025, 6, 30)]
        assert events[0].reference_period_start == date(2024, 7, 1)

    def test_events_point_at_their_obligation(self):
        obligations = [
            _obligation(obligation_type="annual_financials", frequency="annual"),
            _obligation(obligation_type="audit_report", frequency="annual"),
        ]
        events = generate_compliance_events(obligations, "12-31", 2025)
        assert [e.obligation_type for e in events] == ["annual_audited_financials"] * 2
        assert [e.obligation_index for e in events] == [0, 1]

    def test_monthly_has_twelve_events(self):
        assert len(generate_compliance_events([_obligation(frequency="monthly")], "12-31", 2025)) == 12

    @pytest.mark.parametrize("frequency", ["one_time", "on_event"])
    def test_unscheduled_obligations_produce_nothing(self, frequency):
        assert generate_compliance_events([_obligation(frequency=frequency)], "12-31", 2025) == []

    def test_fiscal_year_end_clamped(self):
        assert fiscal_year_end_date("02-29", 2025) == date(2025, 2, 28)
        assert fiscal_year_end_date("02-29", 2024) == date(2024, 2, 29)


# =============================================================================
# ESG tests
# =============================================================================


class TestESGInference:
    """Tests for KPI category/unit/direction inference."""

    @pytest.mark.parametrize("name,category", [
        ("Scope 1 GHG emissions", "environmental_emissions"),
        ("Renewable electricity share", "environmental_energy"),
        ("Water withdrawal", "environmental_water"),
        ("Waste recycled", "environmental_waste"),
        ("Gender diversity in management", "social_workforce"),
        ("Lost time injury rate", "social_health_safety"),
        ("Board independence", "governance_board"),
        ("Customer satisfaction", "other"),
    ])
    def test_category(self, name, category):
        assert infer_kpi_category(name) == category

    def test_unit_from_definition(self):
        assert infer_unit_of_measure("Scope 1 emissions", "Absolute tonnes CO2 equivalent") == "tCO2e"
        assert infer_unit_of_measure("Renewable share", "percentage of total") == "%"
        assert infer_unit_of_measure("Trees planted") == "units"

    def test_direction(self):
        assert infer_improvement_direction("Carbon intensity") == "decrease"
        assert infer_improvement_direction("Renewable share") == "increase"


class TestMapESGProvision:
    """Tests for map_esg_provision."""

    def test_no_kpi_name_is_skipped(self):
        provision = ExtractedESG(provision_type="green_use_of_proceeds", confidence=0.9)
        assert map_esg_provision(provision, 0.8, TODAY) is None

    def test_sustainability_linked_kpi(self, sample_extraction):
        kpi = map_esg_provision(sample_extraction.esg_provisions[0], 0.8, TODAY)
        assert kpi.is_core_kpi is True
        assert kpi.baseline_year == 2024
        assert kpi.baseline_value == 120_000
        assert kpi.requires_external_verification is True
        assert [t.target_year for t in kpi.targets] == [2026, 2027]
        assert kpi.targets[1].margin_adjustment_bps == -5.0
        assert kpi.requires_review is False

    def test_unparseable_target_dates(self):
        provision = ExtractedESG(
            provision_type="reporting",
            kpi_name="Energy use",
            kpi_targets=[
                KPITarget(date="FY 2030", target_value=1),
                KPITarget(date="end of facility", target_value=2),
            ],
            confidence=0.9,
        )
        kpi = map_esg_provision(provision, 0.8, TODAY)
        assert [t.target_year for t in kpi.targets] == [2030, 2027]
        assert kpi.baseline_year is None


# =============================================================================
# Deals and trading tests
# =============================================================================


class TestDealTerms:
    """Tests for map_facility_to_deal_terms."""

    def test_full_facility(self, sample_facility):
        terms = {t.term_key: t for t in map_facility_to_deal_terms(sample_facility)}
        assert len(terms) == 10
        assert terms["total_commitments"].current_value_text == "EUR 250,000,000"
        assert terms["initial_margin"].current_value_text == "175 bps"
        assert terms["governing_law"].category == "Legal"

    def test_empty_facility(self):
        assert map_facility_to_deal_terms(ExtractedFacility()) == []


class TestTradingFacility:
    """Tests for map_facility_to_trading."""

    def test_mapping(self, sample_facility):
        trade = map_facility_to_trading(sample_facility, TODAY)
        assert trade.borrower_name == "Acme Holdings Ltd"
        assert trade.transferability == "consent_required"
        assert trade.current_status == "performing"
        assert trade.maturity_date == "2029-03-01"

    def test_defaults(self):
        trade = map_facility_to_trading(ExtractedFacility(facility_name="Bare"), TODAY)
        assert trade.borrower_name == "Unknown Borrower"
        assert trade.currency == "USD"
        assert trade.total_commitments == 0
        assert trade.maturity_date == "2026-06-15"

    def test_nameless_facility(self):
        assert map_facility_to_trading(ExtractedFacility(), TODAY) is None


class TestDDChecklist:
    """Tests for generate_dd_checklist."""

    def test_full_checklist(self, sample_extraction):
        items = generate_dd_checklist(
            sample_extraction.facility,
            sample_extraction.covenants,
            sample_extraction.obligations,
            sample_extraction.events_of_default,
        )
        assert len(items) == 12
        assert [i.display_order for i in items] == list(range(12))
        names = [i.item_name for i in items]
        assert "Maximum Leverage Ratio Test Results" in names
        assert "Minimum Interest Cover Test Results" in names
        assert "Events of Default Status" in names

    def test_minimal_checklist(self):
        items = generate_dd_checklist(None, [], [], [])
        assert [i.item_name for i in items] == [
            "Facility Agreement Verification",
            "Credit Agreement (Execution Copy)",
            "Assignment Provisions Review",
            "Consent Requirements",
            "Agent Confirmation",
        ]
