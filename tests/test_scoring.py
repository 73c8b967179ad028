from __future__ import annotations

import pytest

from scoring import format_currency, format_number, format_percentage, score_color, score_level, score_percentage
from scoring.levels import round_half_up


@pytest.mark.parametrize(
    "actual, expected",
    [
        (150, "excellent"),
        (95, "excellent"),
        (94.99, "good"),
        (80, "good"),
        (79.99, "warning"),
        (60, "warning"),
        (59.99, "poor"),
        (0, "poor"),
        (-10, "poor"),
    ],
)
def test_score_level_thresholds(actual, expected):
    assert score_level(actual, 100) == expected


def test_score_level_scales_with_target():
    assert score_level(48, 50) == "excellent"
    assert score_level(42, 50) == "good"
    assert score_level(35, 50) == "warning"
    assert score_level(25, 50) == "poor"


def test_score_percentage_rounds_and_does_not_clamp():
    assert score_percentage(150, 100) == 150
    assert score_percentage(1, 3) == 33
    assert score_percentage(2, 3) == 67
    assert score_percentage(-20, 100) == -20


def test_score_percentage_halves_round_up():
    assert score_percentage(1, 8) == 13
    assert score_percentage(-1, 8) == -12
    assert round_half_up(2.5) == 3
    assert round_half_up(-2.5) == -2


def test_zero_target_scores_zero_and_poor():
    assert score_percentage(50, 0) == 0
    assert score_level(50, 0) == "poor"
    assert score_level(0, 0) == "poor"


def test_score_colors():
    assert score_color("excellent") == "#16a34a"
    assert score_color("good") == "#84cc16"
    assert score_color("warning") == "#d97706"
    assert score_color("poor") == "#dc2626"


def test_format_currency():
    assert format_currency(1234.5) == "$1,235"
    assert format_currency(0) == "$0"
    assert format_currency(-1234.4) == "-$1,234"
    assert format_currency(1_000_000) == "$1,000,000"
    assert format_currency(-0.4) == "$0"


def test_format_percentage():
    assert format_percentage(12.34) == "12.3%"
    assert format_percentage(0.25) == "0.3%"
    assert format_percentage(150) == "150.0%"
    assert format_percentage(float("nan")) == "NaN%"


def test_format_number():
    assert format_number(1000) == "1,000"
    assert format_number(1234567.891) == "1,234,567.891"
    assert format_number(0.5) == "0.5"
    assert format_number(-2500.25) == "-2,500.25"
    assert format_number(2.0004) == "2"
    assert format_number(-0.0001) == "0"
    assert format_number(float("inf")) == "∞"


@pytest.mark.parametrize(
    "actual, target",
    [(float("inf"), 100), (1e308, 1e-10), (float("nan"), 100), (-1e308, 1e-10)],
)
def test_non_finite_ratio_scores_zero_and_poor(actual, target):
    assert score_percentage(actual, target) == 0
    assert score_level(actual, target) == "poor"
