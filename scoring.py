"""Rule-based performance score, rank tiers and driving insights.

All thresholds, points, reasons, tier colors and insight messages are plain
data (``ScoringRules`` and ``INSIGHT_RULES``). The functions that apply them
are pure: same averages in, same result out.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Sequence, Tuple

from aggregation import BaseAverages


@dataclass(frozen=True)
class Band:
    """Award ``points`` when the value passes ``threshold``."""

    threshold: float
    points: int
    reason: str


@dataclass(frozen=True)
class CategoryRule:
    """Ordered bands for one category plus the fallback when none match.

    ``lower_is_better`` flips the comparison from ``value > threshold`` to
    ``value < threshold``. Comparisons are strict.
    """

    bands: Tuple[Band, ...]
    fallback_points: int
    fallback_reason: str
    lower_is_better: bool = False

    def evaluate(self, value: float) -> Tuple[int, str]:
        for band in self.bands:
            passed = value < band.threshold if self.lower_is_better else value > band.threshold
            if passed:
                return band.points, band.reason
        return self.fallback_points, self.fallback_reason


@dataclass(frozen=True)
class RankTier:
    name: str
    min_points: int
    color: str


@dataclass(frozen=True)
class CategoryScore:
    points: int
    reason: str


@dataclass(frozen=True)
class PerformanceScore:
    points: int
    rank: str
    color: str
    breakdown: Dict[str, CategoryScore] = field(default_factory=dict)


SPEED_RULE = CategoryRule(
    bands=(
        Band(180, 30, "Elite pace"),
        Band(150, 25, "Strong pace"),
        Band(120, 15, "Solid pace"),
    ),
    fallback_points=5,
    fallback_reason="Pace needs work",
)

RPM_RULE = CategoryRule(
    bands=(
        Band(7500, 20, "Optimal RPM range"),
        Band(8500, 15, "Acceptable RPM"),
    ),
    fallback_points=5,
    fallback_reason="Engine over-revving",
    lower_is_better=True,
)

FUEL_RULE = CategoryRule(
    bands=(
        Band(60, 25, "Excellent fuel reserve"),
        Band(50, 20, "Good fuel management"),
        Band(30, 10, "Fuel running low"),
    ),
    fallback_points=5,
    fallback_reason="Critical fuel level",
)

TEMPERATURE_RULE = CategoryRule(
    bands=(
        Band(180, 25, "Excellent thermal management"),
        Band(200, 20, "Temperature under control"),
        Band(220, 10, "Running hot"),
    ),
    fallback_points=5,
    fallback_reason="Overheating risk",
    lower_is_better=True,
)

# Highest tier first; the first tier whose minimum is reached wins.
RANK_TIERS: Tuple[RankTier, ...] = (
    RankTier("Platinum", 85, "#3b82f6"),
    RankTier("Gold", 70, "#eab308"),
    RankTier("Silver", 50, "#9ca3af"),
    RankTier("Bronze", 0, "#c2410c"),
)


@dataclass(frozen=True)
class ScoringRules:
    speed: CategoryRule = SPEED_RULE
    rpm: CategoryRule = RPM_RULE
    fuel: CategoryRule = FUEL_RULE
    temperature: CategoryRule = TEMPERATURE_RULE
    tiers: Tuple[RankTier, ...] = RANK_TIERS


DEFAULT_RULES = ScoringRules()


def rank_for_points(points: int, tiers: Sequence[RankTier] = RANK_TIERS) -> RankTier:
    """Return the tier for a total; lower bounds are inclusive."""

    for tier in tiers:
        if points >= tier.min_points:
            return tier
    return tiers[-1]


def score_performance(
    averages: BaseAverages, rules: ScoringRules = DEFAULT_RULES
) -> PerformanceScore:
    """Combine four thresholded sub-scores into a 20-100 total and a tier."""

    breakdown: Dict[str, CategoryScore] = {}
    for category, rule, value in (
        ("speed", rules.speed, averages.avg_speed),
        ("rpm", rules.rpm, averages.avg_rpm),
        ("fuel", rules.fuel, averages.avg_fuel),
        ("temperature", rules.temperature, averages.avg_temp),
    ):
        points, reason = rule.evaluate(value)
        breakdown[category] = CategoryScore(points=points, reason=reason)

    total = sum(item.points for item in breakdown.values())
    tier = rank_for_points(total, rules.tiers)
    return PerformanceScore(points=total, rank=tier.name, color=tier.color, breakdown=breakdown)


# ---------------------------------------------------------------------------
# Insights
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class InsightRule:
    name: str
    matches: Callable[[BaseAverages], bool]
    message: str


# Checked in this order; every rule that matches adds its message.
INSIGHT_RULES: Tuple[InsightRule, ...] = (
    InsightRule(
        "temperature_high",
        lambda a: a.avg_temp > 200,
        "Engine temperature is running high. Consider a cool-down lap.",
    ),
    InsightRule(
        "temperature_critical",
        lambda a: a.avg_temp > 220,
        "Critical engine temperature! Inspect the cooling system before the next session.",
    ),
    InsightRule(
        "speed_low",
        lambda a: a.avg_speed < 100,
        "Average speed is low. Work on corner exits and straight-line acceleration.",
    ),
    InsightRule(
        "speed_high",
        lambda a: a.avg_speed > 180,
        "Outstanding average speed. Keep the momentum through the corners.",
    ),
    InsightRule(
        "fuel_low",
        lambda a: a.avg_fuel < 40,
        "Fuel level is getting low. Plan the next pit stop.",
    ),
    InsightRule(
        "fuel_critical",
        lambda a: a.avg_fuel < 20,
        "Critical fuel level! Pit immediately.",
    ),
    InsightRule(
        "rpm_high",
        lambda a: a.avg_rpm > 7500,
        "RPM is consistently high. Shift up earlier to protect the engine.",
    ),
    InsightRule(
        "rpm_critical",
        lambda a: a.avg_rpm > 8500,
        "Critical RPM levels! Risk of engine damage.",
    ),
    InsightRule(
        "thermal_rpm_excellent",
        lambda a: a.avg_temp < 180 and a.avg_rpm < 7500,
        "Excellent thermal management and RPM control.",
    ),
    InsightRule(
        "fuel_good",
        lambda a: a.avg_fuel > 60,
        "Good fuel efficiency. Reserves are healthy.",
    ),
)

OPTIMAL_PERFORMANCE_MESSAGE = "All systems nominal. Performance is optimal."


def generate_insights(
    averages: BaseAverages, rules: Sequence[InsightRule] = INSIGHT_RULES
) -> List[str]:
    """Return the messages of every matching rule, or the optimal fallback."""

    insights = [rule.message for rule in rules if rule.matches(averages)]
    if not insights:
        insights.append(OPTIMAL_PERFORMANCE_MESSAGE)
    return insights
