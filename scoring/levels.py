from __future__ import annotations

import logging
import math
from typing import Literal

logger = logging.getLogger(__name__)

ScoreLevel = Literal["excellent", "good", "warning", "poor"]

SCORE_LEVELS: tuple[ScoreLevel, ...] = ("excellent", "good", "warning", "poor")

EXCELLENT_THRESHOLD = 95
GOOD_THRESHOLD = 80
WARNING_THRESHOLD = 60

SCORE_COLORS: dict[ScoreLevel, str] = {
    "excellent": "#16a34a",
    "good": "#84cc16",
    "warning": "#d97706",
    "poor": "#dc2626",
}


def round_half_up(value: float) -> int:
    """Round like JavaScript's Math.round: halves go toward positive infinity."""
    return int(math.floor(value + 0.5))


def _ratio_percent(actual: float, target: float) -> float | None:
    if target == 0:
        logger.debug("SCORE: zero target (actual=%s), scoring as 0%%", actual)
        return None
    percentage = (actual / target) * 100
    if not math.isfinite(percentage):
        logger.warning("SCORE: non-finite ratio (actual=%s, target=%s), scoring as 0%%", actual, target)
        return None
    return percentage


def score_level(actual: float, target: float) -> ScoreLevel:
    """
    Classify actual vs target on fixed 95/80/60 percent cut points.

    A zero target, or a ratio that is not a finite number, scores "poor", matching score_percentage's 0.
    """
    percentage = _ratio_percent(actual, target)
    if percentage is None:
        return "poor"
    if percentage >= EXCELLENT_THRESHOLD:
        return "excellent"
    if percentage >= GOOD_THRESHOLD:
        return "good"
    if percentage >= WARNING_THRESHOLD:
        return "warning"
    return "poor"


def score_percentage(actual: float, target: float) -> int:
    """Rounded actual/target percentage. Not clamped: over-achievement exceeds 100.
    Zero targets and non-finite ratios give 0."""
    percentage = _ratio_percent(actual, target)
    if percentage is None:
        return 0
    return round_half_up(percentage)


def score_color(level: ScoreLevel) -> str:
    return SCORE_COLORS[level]
