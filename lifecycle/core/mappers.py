"""Mapping functions from extracted facts to module record shapes.

Each mapper is pure: given extraction models (and the run's confidence
threshold where review flags matter) it returns the record a downstream
module will write. No I/O, no store access.

Mappers:
- map_covenant / map_obligation: compliance schema
- map_esg_provision: ESG KPI with targets
- map_facility_to_deal_terms: deal-room term rows
- map_facility_to_trading: trade facility record
- generate_dd_checklist: trading due-diligence checklist
- generate_compliance_events: compliance calendar for one fiscal year
"""

import calendar
import re
from datetime import date, timedelta

from lifecycle.core.config import (
    ComplianceDefaults,
    DEFAULT_CURRENCY,
    TradingDefaults,
)
from lifecycle.pydantic_models.cascade_models import (
    ComplianceEvent,
    DDChecklistItem,
    DealTerm,
    MappedCovenant,
    MappedKPI,
    MappedKPITarget,
    MappedObligation,
    ThresholdStep,
    TradeFacility,
)
from lifecycle.pydantic_models.extraction_models import (
    ExtractedCovenant,
    ExtractedESG,
    ExtractedEvent,
    ExtractedFacility,
    ExtractedObligation,
)


COVENANT_TYPES: dict[str, str] = {
    "leverage_ratio": "leverage_ratio",
    "interest_coverage": "interest_coverage",
    "debt_service_coverage": "debt_service_coverage",
    "net_worth": "net_worth",
    "current_ratio": "current_ratio",
    "capex_limit": "capex",
    "minimum_liquidity": "minimum_liquidity",
    "fixed_charge_coverage": "fixed_charge_coverage",
    "other": "other",
}

COVENANT_FREQUENCIES = ("quarterly", "semi_annual", "annual")

OBLIGATION_TYPES: dict[str, str] = {
    "annual_financials": "annual_audited_financials",
    "quarterly_financials": "quarterly_financials",
    "compliance_certificate": "compliance_certificate",
    "budget": "annual_budget",
    "audit_report": "annual_audited_financials",
    "event_notice": "other",
    "other": "other",
}

OBLIGATION_FREQUENCIES: dict[str, str] = {
    "annual": "annual",
    "semi_annual": "semi_annual",
    "quarterly": "quarterly",
    "monthly": "monthly",
    "one_time": "one_time",
    "on_occurrence": "on_event",
    "on_event": "on_event",
    "other": "quarterly",
}

# Covenant types that get their own DD checklist line.
CRITICAL_COVENANT_TYPES = ("leverage_ratio", "interest_coverage")


def needs_review(confidence: float, threshold: float, flagged: bool = False) -> bool:
    """True when a record must go to a human before it is relied on."""
    return flagged or confidence < threshold


def format_amount(amount: float) -> str:
    """Render an amount with thousands separators: 250000000 -> '250,000,000'."""
    if float(amount).is_integer():
        return f"{amount:,.0f}"
    return f"{amount:,.2f}"


# Compliance

def map_covenant(
    covenant: ExtractedCovenant,
    confidence_threshold: float,
    today: date | None = None,
) -> MappedCovenant:
    """Map an extracted covenant to the compliance covenant schema."""
    today = today or date.today()

    threshold_type = "minimum" if (covenant.threshold_type or "").lower() == "minimum" else "maximum"

    schedule = None
    if covenant.threshold_value is not None:
        schedule = [ThresholdStep(effective_from=today, threshold_value=covenant.threshold_value)]

    frequency = covenant.testing_frequency or "quarterly"
    if frequency not in COVENANT_FREQUENCIES:
        frequency = "quarterly"

    return MappedCovenant(
        covenant_type=COVENANT_TYPES.get(covenant.covenant_type, "other"),
        name=covenant.covenant_name,
        description=covenant.raw_text or None,
        numerator_definition=covenant.numerator_definition or None,
        denominator_definition=covenant.denominator_definition or None,
        threshold_type=threshold_type,
        threshold_schedule=schedule,
        testing_frequency=frequency,
        clause_reference=covenant.clause_reference or None,
        confidence=covenant.confidence,
        requires_review=needs_review(covenant.confidence, confidence_threshold, covenant.requires_review),
    )


def map_obligation(obligation: ExtractedObligation, confidence_threshold: float) -> MappedObligation:
    """Map an extracted reporting obligation to the compliance schema."""
    kind = obligation.obligation_type
    return MappedObligation(
        obligation_type=OBLIGATION_TYPES.get(kind, "other"),
        name=obligation.description or f"{kind} Reporting",
        description=obligation.raw_text or None,
        frequency=OBLIGATION_FREQUENCIES.get(obligation.frequency or "quarterly", "quarterly"),
        deadline_days=obligation.deadline_days or ComplianceDefaults.DEADLINE_DAYS,
        recipient_roles=[obligation.recipient_role] if obligation.recipient_role else list(ComplianceDefaults.RECIPIENT_ROLES),
        requires_certification=kind == "compliance_certificate",
        requires_audit=kind in ("annual_financials", "audit_report"),
        clause_reference=obligation.clause_reference or None,
        confidence=obligation.confidence,
        requires_review=needs_review(obligation.confidence, confidence_threshold, obligation.requires_review),
    )


def _month_end(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def _shift_month_end(anchor: date, months_back: int) -> date:
    """Month-end ``months_back`` months before ``anchor``'s month."""
    index = anchor.year * 12 + (anchor.month - 1) - months_back
    return _month_end(index // 12, index % 12 + 1)


PERIOD_MONTHS: dict[str, int] = {
    "monthly": 1,
    "quarterly": 3,
    "semi_annual": 6,
    "annual": 12,
}


def fiscal_year_end_date(fiscal_year_end: str, year: int) -> date:
    """Resolve 'MM-DD' to a date in ``year``, clamping Feb 29 style overflow."""
    month, day = (int(part) for part in fiscal_year_end.split("-"))
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def generate_compliance_events(
    obligations: list[MappedObligation],
    fiscal_year_end: str,
    year: int,
) -> list[ComplianceEvent]:
    """Lay out one fiscal year of reporting deadlines.

    Periodic obligations get one event per period of the fiscal year ending
    on ``fiscal_year_end`` in ``year``. One-time and event-driven obligations
    have no calendar and produce nothing.
    """
    fy_end = fiscal_year_end_date(fiscal_year_end, year)
    prior_fy_end = fiscal_year_end_date(fiscal_year_end, year - 1)
    events: list[ComplianceEvent] = []

    for index, obligation in enumerate(obligations):
        step = PERIOD_MONTHS.get(obligation.frequency)
        if step is None:
            continue

        grace_days = (
            ComplianceDefaults.ANNUAL_GRACE_DAYS
            if obligation.frequency == "annual"
            else ComplianceDefaults.PERIODIC_GRACE_DAYS
        )

        period_start = prior_fy_end + timedelta(days=1)
        for months_back in range(12 - step, -1, -step):
            period_end = fy_end if months_back == 0 else _shift_month_end(fy_end, months_back)
            deadline = period_end + timedelta(days=obligation.deadline_days)
            events.append(ComplianceEvent(
                obligation_index=index,
                obligation_type=obligation.obligation_type,
                obligation_name=obligation.name,
                reference_period_start=period_start,
                reference_period_end=period_end,
                deadline_date=deadline,
                grace_deadline_date=deadline + timedelta(days=grace_days),
            ))
            period_start = period_end + timedelta(days=1)

    return events


# ESG

_CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("environmental_emissions", ("carbon", "emission", "ghg", "co2")),
    ("environmental_energy", ("energy", "renewable", "electricity")),
    ("environmental_water", ("water", "effluent")),
    ("environmental_waste", ("waste", "recycl")),
    ("social_workforce", ("diversity", "gender", "employee")),
    ("social_health_safety", ("safety", "injury", "accident")),
    ("governance_board", ("board", "governance")),
)

_UNIT_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("%", ("ratio", "percentage", "%")),
    ("tCO2e", ("tco2", "tonnes co2", "carbon")),
    ("MWh", ("mwh", "megawatt")),
    ("kWh", ("kwh", "kilowatt")),
    ("m³", ("cubic", "m3", "water")),
    ("tonnes", ("tonnes", "tons")),
)

_DECREASING_KEYWORDS = (
    "emission",
    "carbon",
    "waste",
    "injury",
    "accident",
    "water consumption",
    "energy consumption",
)


def infer_kpi_category(kpi_name: str) -> str:
    lowered = kpi_name.lower()
    for category, keywords in _CATEGORY_KEYWORDS:
        if any(k in lowered for k in keywords):
            return category
    return "other"


def infer_unit_of_measure(kpi_name: str, definition: str | None = None) -> str:
    text = f"{kpi_name} {definition or ''}".lower()
    for unit, keywords in _UNIT_KEYWORDS:
        if any(k in text for k in keywords):
            return unit
    return "units"


def infer_improvement_direction(kpi_name: str) -> str:
    lowered = kpi_name.lower()
    if any(k in lowered for k in _DECREASING_KEYWORDS):
        return "decrease"
    return "increase"


def _target_year(raw_date: str, index: int, today: date) -> int:
    try:
        return date.fromisoformat(raw_date[:10]).year
    except ValueError:
        match = re.search(r"\b(19|20)\d{2}\b", raw_date)
        if match:
            return int(match.group(0))
    return today.year + index + 1


def map_esg_provision(
    provision: ExtractedESG,
    confidence_threshold: float,
    today: date | None = None,
) -> MappedKPI | None:
    """Map an ESG provision to a KPI, or None when it names no KPI."""
    if not provision.kpi_name:
        return None
    today = today or date.today()

    targets = [
        MappedKPITarget(
            target_year=_target_year(target.date, index, today),
            target_value=target.target_value,
            margin_adjustment_bps=target.margin_adjustment or None,
        )
        for index, target in enumerate(provision.kpi_targets)
    ]

    has_baseline = provision.kpi_baseline is not None
    return MappedKPI(
        kpi_name=provision.kpi_name,
        kpi_category=infer_kpi_category(provision.kpi_name),
        unit_of_measure=infer_unit_of_measure(provision.kpi_name, provision.kpi_definition),
        measurement_methodology=provision.kpi_definition or None,
        baseline_year=today.year - 1 if has_baseline else None,
        baseline_value=provision.kpi_baseline if has_baseline else None,
        improvement_direction=infer_improvement_direction(provision.kpi_name),
        is_core_kpi=provision.provision_type == "sustainability_linked_margin",
        requires_external_verification=provision.verification_required,
        clause_reference=provision.clause_reference or None,
        targets=targets,
        confidence=provision.confidence,
        requires_review=needs_review(provision.confidence, confidence_threshold, provision.requires_review),
    )


# Deals

def _term(key: str, label: str, description: str, value_type: str, value, text: str, category: str) -> DealTerm:
    return DealTerm(
        term_key=key,
        term_label=label,
        term_description=description,
        value_type=value_type,
        current_value=value,
        current_value_text=text,
        category=category,
    )


def map_facility_to_deal_terms(facility: ExtractedFacility) -> list[DealTerm]:
    """One deal-room term per facility field the extraction found."""
    terms: list[DealTerm] = []
    currency = facility.currency or DEFAULT_CURRENCY

    if facility.facility_name:
        terms.append(_term("facility_name", "Facility Name", "The name of the facility",
                           "text", facility.facility_name, facility.facility_name, "General"))
    if facility.facility_type:
        terms.append(_term("facility_type", "Facility Type", "Type of credit facility",
                           "selection", facility.facility_type, facility.facility_type, "General"))

    if facility.total_commitments is not None:
        terms.append(_term("total_commitments", "Total Commitments", "Total facility commitment amount",
                           "currency_amount", facility.total_commitments,
                           f"{currency} {format_amount(facility.total_commitments)}", "Financial Terms"))
    if facility.currency:
        terms.append(_term("currency", "Currency", "Facility currency",
                           "selection", facility.currency, facility.currency, "Financial Terms"))

    if facility.interest_rate_type:
        terms.append(_term("interest_rate_type", "Interest Rate Type",
                           "Type of interest rate (fixed, floating, hybrid)",
                           "selection", facility.interest_rate_type, facility.interest_rate_type, "Pricing"))
    if facility.base_rate:
        terms.append(_term("base_rate", "Base Rate", "Reference rate for floating interest",
                           "selection", facility.base_rate, facility.base_rate, "Pricing"))
    if facility.margin_initial is not None:
        terms.append(_term("initial_margin", "Initial Margin", "Initial margin over base rate (bps)",
                           "number", facility.margin_initial, f"{facility.margin_initial:g} bps", "Pricing"))

    if facility.effective_date:
        terms.append(_term("effective_date", "Effective Date", "Date the facility becomes effective",
                           "date", facility.effective_date, facility.effective_date, "Key Dates"))
    if facility.maturity_date:
        terms.append(_term("maturity_date", "Maturity Date", "Final maturity date of the facility",
                           "date", facility.maturity_date, facility.maturity_date, "Key Dates"))

    if facility.governing_law:
        terms.append(_term("governing_law", "Governing Law", "Jurisdiction governing the agreement",
                           "selection", facility.governing_law, facility.governing_law, "Legal"))

    return terms


# Trading

def map_facility_to_trading(facility: ExtractedFacility, today: date | None = None) -> TradeFacility | None:
    """Trade facility record, or None without a facility name to key it on."""
    if not facility.facility_name:
        return None
    today = today or date.today()

    borrower = facility.borrowers[0].name if facility.borrowers else TradingDefaults.UNKNOWN_BORROWER
    maturity = facility.maturity_date or (
        today + timedelta(days=TradingDefaults.MATURITY_FALLBACK_DAYS)
    ).isoformat()

    return TradeFacility(
        facility_name=facility.facility_name,
        facility_reference=facility.facility_reference or None,
        borrower_name=borrower,
        total_commitments=facility.total_commitments or 0,
        currency=facility.currency or DEFAULT_CURRENCY,
        maturity_date=maturity,
        transferability=TradingDefaults.TRANSFERABILITY,
        current_status=TradingDefaults.STATUS,
    )


def generate_dd_checklist(
    facility: ExtractedFacility | None,
    covenants: list[ExtractedCovenant],
    obligations: list[ExtractedObligation],
    events_of_default: list[ExtractedEvent],
) -> list[DDChecklistItem]:
    """Build the due-diligence checklist a buyer works through for this loan."""
    rows: list[tuple[str, str, str, str, str, bool]] = []

    rows.append(("facility_status", "Facility Agreement Verification",
                 "Verify existence and terms of the facility agreement",
                 "document_review", "both", True))
    if facility and facility.maturity_date:
        rows.append(("facility_status", "Maturity Date Confirmation",
                     f"Confirm facility maturity date: {facility.maturity_date}",
                     "document_review", "buyer", True))
    if facility and facility.total_commitments:
        currency = facility.currency or DEFAULT_CURRENCY
        rows.append(("facility_status", "Commitment Amount Verification",
                     f"Verify total commitments: {currency} {format_amount(facility.total_commitments)}",
                     "seller_provided", "buyer", True))

    if covenants:
        rows.append(("covenant_compliance", "Current Covenant Compliance Status",
                     f"Review compliance status for {len(covenants)} financial covenants",
                     "seller_provided", "buyer", True))
        for covenant in covenants:
            if covenant.covenant_type in CRITICAL_COVENANT_TYPES:
                rows.append(("covenant_compliance", f"{covenant.covenant_name} Test Results",
                             f"Review most recent test results for {covenant.covenant_name}",
                             "seller_provided", "buyer", True))

    rows.append(("documentation", "Credit Agreement (Execution Copy)",
                 "Obtain executed copy of the credit agreement",
                 "seller_provided", "both", True))
    if obligations:
        rows.append(("documentation", "Recent Compliance Certificates",
                     "Review last four compliance certificates",
                     "seller_provided", "buyer", False))

    rows.append(("transferability", "Assignment Provisions Review",
                 "Review assignment and transfer provisions in credit agreement",
                 "document_review", "both", True))
    rows.append(("transferability", "Consent Requirements",
                 "Identify any required consents for assignment",
                 "document_review", "both", True))

    if events_of_default:
        rows.append(("legal_regulatory", "Events of Default Status",
                     "Confirm no existing events of default",
                     "seller_provided", "buyer", True))

    rows.append(("operational", "Agent Confirmation",
                 "Confirm identity of administrative agent and wire instructions",
                 "external", "both", True))

    return [
        DDChecklistItem(
            category=category,
            item_name=name,
            item_description=description,
            data_source=source,
            required_for=required_for,
            is_critical=critical,
            display_order=order,
        )
        for order, (category, name, description, source, required_for, critical) in enumerate(rows)
    ]
