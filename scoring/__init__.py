from __future__ import annotations

from .aggregation import (
    DIVISION_METRICS,
    MetricScore,
    PayrollTargets,
    ProjectionInputs,
    division_payroll_rollup,
    employee_composite_score,
    filter_records,
    level_distribution,
    mean_rate,
    payroll_status,
    payroll_to_revenue_percent,
    percent_of_goal,
    project_revenue,
    rank_employee_performance,
    revenue_total,
    score_metrics,
    summarize_payroll,
    ytd_progress,
)
from .formatting import format_currency, format_number, format_percentage
from .levels import SCORE_LEVELS, ScoreLevel, score_color, score_level, score_percentage

__all__ = [
    "DIVISION_METRICS",
    "MetricScore",
    "PayrollTargets",
    "ProjectionInputs",
    "SCORE_LEVELS",
    "ScoreLevel",
    "division_payroll_rollup",
    "employee_composite_score",
    "filter_records",
    "format_currency",
    "format_number",
    "format_percentage",
    "level_distribution",
    "mean_rate",
    "payroll_status",
    "payroll_to_revenue_percent",
    "percent_of_goal",
    "project_revenue",
    "rank_employee_performance",
    "revenue_total",
    "score_color",
    "score_level",
    "score_metrics",
    "score_percentage",
    "summarize_payroll",
    "ytd_progress",
]
