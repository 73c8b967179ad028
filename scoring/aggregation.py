"""Roll collections of monthly records up into dashboard summaries."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Literal, Mapping, Sequence

from .levels import SCORE_LEVELS, ScoreLevel, round_half_up, score_color, score_level, score_percentage
from .models import DivisionTarget, Employee, EmployeeKPIData, PayrollEntry

PayrollStatus = Literal["green", "yellow", "orange", "red"]

# (field, label) pairs shown on the division overview.
DIVISION_METRICS: tuple[tuple[str, str], ...] = (
    ("productivityRate", "Productivity Rate"),
    ("prebookRate", "Prebook Rate"),
    ("firstTimeRetentionRate", "First-Time Retention"),
    ("repeatRetentionRate", "Repeat Retention"),
    ("retailPercentage", "Retail %"),
    ("newClients", "New Clients"),
    ("averageTicket", "Average Ticket"),
    ("serviceSalesPerHour", "Sales per Hour"),
    ("clientsRetailPercentage", "Clients Retail %"),
    ("hoursSold", "Hours Sold"),
    ("happinessScore", "Happiness Score"),
    ("netCashPercentage", "Net Cash %"),
)


def _get(record: Any, name: str, default: Any = None) -> Any:
    if isinstance(record, Mapping):
        return record.get(name, default)
    return getattr(record, name, default)


def _number(record: Any, name: str) -> float:
    value = _get(record, name, 0)
    return float(value) if value is not None else 0.0


def _month_key(month: str | int | None) -> str | None:
    if month is None:
        return None
    try:
        return f"{int(month):02d}"
    except (TypeError, ValueError):
        # Unparseable stored months never match a numeric filter.
        return str(month)


def _year(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


# ----------------------------------------------------------------------
# Generic filter / reduce
# ----------------------------------------------------------------------
def filter_records(
    records: Iterable[Any],
    *,
    month: str | int | None = None,
    year: int | None = None,
    division_id: str | None = None,
    location_id: str | None = None,
    location_field: str = "locationId",
) -> list[Any]:
    """
    Keep records for the selected period and dimension. None (or "all") means no filter on that axis.
    """
    want_month = _month_key(month)
    out = []
    for r in records:
        if want_month is not None and _month_key(_get(r, "month")) != want_month:
            continue
        if year is not None and _year(_get(r, "year")) != int(year):
            continue
        if division_id not in (None, "all") and _get(r, "divisionId") != division_id:
            continue
        if location_id not in (None, "all") and _get(r, location_field) != location_id:
            continue
        out.append(r)
    return out


def revenue_total(
    records: Iterable[Any],
    price_field: str = "averageTicket",
    count_field: str = "newClients",
) -> float:
    return sum(_number(r, price_field) * _number(r, count_field) for r in records)


def mean_rate(records: Iterable[Any], rate_field: str) -> float:
    """
    Flat arithmetic mean of a rate field; 0 for no records.

    Not weighted by hours or volume, so a part-timer's rate counts as much as a full-timer's.
    """
    values = [_number(r, rate_field) for r in records]
    if not values:
        return 0.0
    return sum(values) / len(values)


def percent_of_goal(actual: float, goal: float) -> int:
    return score_percentage(actual, goal)


# Volume metrics add up across a team; every other metric is a rate and is averaged.
SUMMED_METRICS = frozenset({"newClients", "hoursSold"})


def division_actuals(
    records: Sequence[Any],
    metrics: Sequence[tuple[str, str]] = DIVISION_METRICS,
) -> dict[str, float]:
    """Collapse one period's employee KPI records into division-level actuals."""
    out: dict[str, float] = {}
    for key, _ in metrics:
        if key in SUMMED_METRICS:
            out[key] = sum(_number(r, key) for r in records)
        else:
            out[key] = mean_rate(records, key)
    return out


# ----------------------------------------------------------------------
# Scores
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class MetricScore:
    key: str
    label: str
    value: float
    target: float
    score: int
    level: ScoreLevel
    color: str


def score_metrics(
    actual: EmployeeKPIData | Mapping[str, Any],
    target: DivisionTarget | Mapping[str, Any],
    metrics: Sequence[tuple[str, str]] = DIVISION_METRICS,
) -> list[MetricScore]:
    scored = []
    for key, label in metrics:
        value = _number(actual, key)
        goal = _number(target, key)
        level = score_level(value, goal)
        scored.append(
            MetricScore(
                key=key,
                label=label,
                value=value,
                target=goal,
                score=score_percentage(value, goal),
                level=level,
                color=score_color(level),
            )
        )
    return scored


@dataclass(frozen=True)
class EmployeePerformance:
    employee_id: str
    score: int
    level: ScoreLevel
    data: EmployeeKPIData | None = None


def employee_composite_score(kpi: EmployeeKPIData | Mapping[str, Any]) -> tuple[int, ScoreLevel]:
    """Average of productivity, retail %, happiness (x10 to a percentage) and attendance."""
    avg = (
        _number(kpi, "productivityRate")
        + _number(kpi, "retailPercentage")
        + _number(kpi, "happinessScore") * 10
        + _number(kpi, "attendanceRate")
    ) / 4
    return round_half_up(avg), score_level(avg, 100)


def rank_employee_performance(
    employees: Iterable[Employee],
    kpi_records: Iterable[EmployeeKPIData],
    *,
    month: str | int,
    year: int,
) -> list[EmployeePerformance]:
    """Composite score per employee for one month, best first. Employees without data score 0 (poor)."""
    by_employee = {
        r.employeeId: r for r in filter_records(kpi_records, month=month, year=year)
    }
    ranked = []
    for emp in employees:
        data = by_employee.get(emp.id)
        if data is None:
            ranked.append(EmployeePerformance(employee_id=emp.id, score=0, level="poor"))
            continue
        score, level = employee_composite_score(data)
        ranked.append(EmployeePerformance(employee_id=emp.id, score=score, level=level, data=data))
    ranked.sort(key=lambda p: p.score, reverse=True)
    return ranked


def level_distribution(levels: Iterable[ScoreLevel]) -> dict[ScoreLevel, int]:
    counts: dict[ScoreLevel, int] = {lvl: 0 for lvl in SCORE_LEVELS}
    for lvl in levels:
        counts[lvl] += 1
    return counts


# ----------------------------------------------------------------------
# Payroll
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class PayrollTargets:
    """Payroll-to-revenue ceilings (percent). Lower is better; anything above `warning` is poor."""

    excellent: float = 18
    good: float = 25
    warning: float = 30


def payroll_to_revenue_percent(total_pay: float, total_revenue: float) -> float:
    return (total_pay / total_revenue) * 100 if total_revenue > 0 else 0.0


def payroll_level(percent: float, targets: PayrollTargets = PayrollTargets()) -> ScoreLevel:
    if percent <= targets.excellent:
        return "excellent"
    if percent <= targets.good:
        return "good"
    if percent <= targets.warning:
        return "warning"
    return "poor"


_PAYROLL_STATUS: dict[ScoreLevel, PayrollStatus] = {
    "excellent": "green",
    "good": "yellow",
    "warning": "orange",
    "poor": "red",
}


def payroll_status(percent: float, targets: PayrollTargets = PayrollTargets()) -> PayrollStatus:
    return _PAYROLL_STATUS[payroll_level(percent, targets)]


def _entry_percent(entry: PayrollEntry) -> float:
    if entry.payrollToRevenuePercent is not None:
        return entry.payrollToRevenuePercent
    return payroll_to_revenue_percent(entry.totalPay, entry.totalRevenue)


@dataclass
class PayrollSummary:
    total_payroll: float
    total_revenue: float
    payroll_percent: float
    profit_margin: float
    team_size: int
    distribution: dict[ScoreLevel, int] = field(default_factory=dict)


def summarize_payroll(
    entries: Sequence[PayrollEntry],
    targets: PayrollTargets = PayrollTargets(),
) -> PayrollSummary:
    total_payroll = sum(e.totalPay for e in entries)
    total_revenue = sum(e.totalRevenue for e in entries)
    return PayrollSummary(
        total_payroll=total_payroll,
        total_revenue=total_revenue,
        payroll_percent=payroll_to_revenue_percent(total_payroll, total_revenue),
        profit_margin=((total_revenue - total_payroll) / total_revenue) * 100 if total_revenue > 0 else 0.0,
        team_size=len(entries),
        distribution=level_distribution(payroll_level(_entry_percent(e), targets) for e in entries),
    )


@dataclass
class DivisionPayrollSummary:
    division_id: str
    team_size: int
    total_payroll: float
    total_revenue: float
    payroll_percent: float
    profit_margin: float


def division_payroll_rollup(
    entries: Sequence[PayrollEntry],
    division_ids: Sequence[str] | None = None,
) -> list[DivisionPayrollSummary]:
    """
    Per-division payroll totals, in `division_ids` order (first appearance when omitted).
    Divisions without entries are dropped.
    """
    if division_ids is None:
        division_ids = list(dict.fromkeys(e.divisionId for e in entries if e.divisionId))

    rollup = []
    for division_id in division_ids:
        members = [e for e in entries if e.divisionId == division_id]
        if not members:
            continue
        summary = summarize_payroll(members)
        rollup.append(
            DivisionPayrollSummary(
                division_id=division_id,
                team_size=summary.team_size,
                total_payroll=summary.total_payroll,
                total_revenue=summary.total_revenue,
                payroll_percent=summary.payroll_percent,
                profit_margin=summary.profit_margin,
            )
        )
    return rollup


# ----------------------------------------------------------------------
# Projections and goals
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class ProjectionInputs:
    service_sales_per_hour: float = 224
    estimated_productivity: float = 85
    monthly_scheduled_hours: float = 160
    retail_percentage: float = 20
    team_size: int = 1
    monthly_target: float = 0


@dataclass(frozen=True)
class ProjectionResult:
    effective_hours: float  # per employee
    projected_service_revenue: float
    projected_retail_revenue: float
    total_projected_revenue: float
    revenue_per_employee: int
    team_size: int
    goal_vs_actual: int


def project_revenue(inputs: ProjectionInputs) -> ProjectionResult:
    """
    Sales projection: scheduled hours x productivity gives effective hours, x sales/hour gives service
    revenue, and retail is a percentage on top of service.
    """
    team_size = max(int(inputs.team_size), 0)
    total_scheduled = inputs.monthly_scheduled_hours * team_size
    effective_hours = round_half_up(total_scheduled * (inputs.estimated_productivity / 100))
    service = effective_hours * inputs.service_sales_per_hour
    retail = round_half_up(service * (inputs.retail_percentage / 100))
    total = service + retail
    return ProjectionResult(
        effective_hours=round_half_up(effective_hours / team_size * 10) / 10 if team_size else 0.0,
        projected_service_revenue=service,
        projected_retail_revenue=retail,
        total_projected_revenue=total,
        revenue_per_employee=round_half_up(total / team_size) if team_size else 0,
        team_size=team_size,
        goal_vs_actual=percent_of_goal(total, inputs.monthly_target) if inputs.monthly_target > 0 else 0,
    )


@dataclass(frozen=True)
class YtdProgress:
    ytd_actual: float
    annual_goal: float
    prorated_goal: float
    percent_of_annual: int
    percent_of_prorated: int
    level: ScoreLevel


def ytd_progress(
    monthly_actuals: Mapping[int | str, float],
    annual_goal: float,
    through_month: int,
) -> YtdProgress:
    """
    Year-to-date actuals against an annual goal. The prorated goal assumes the goal is spread evenly
    over twelve months; the level compares YTD actuals with that prorated goal.
    """
    if not 1 <= through_month <= 12:
        raise ValueError("through_month must be between 1 and 12")

    ytd = sum(float(v) for m, v in monthly_actuals.items() if 1 <= int(m) <= through_month)
    prorated = annual_goal * through_month / 12
    return YtdProgress(
        ytd_actual=ytd,
        annual_goal=annual_goal,
        prorated_goal=prorated,
        percent_of_annual=percent_of_goal(ytd, annual_goal),
        percent_of_prorated=percent_of_goal(ytd, prorated),
        level=score_level(ytd, prorated),
    )
