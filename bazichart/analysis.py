"""
Element / yin-yang distributions and narrative pattern tags for a chart.

Everything here is a pure function of the chart: results are recomputed
on every read instead of being stored next to it.
"""

from enum import Enum
from typing import Iterable, Optional

from bazichart.bazi import Chart, Element, GodCategory, Pillar, Polarity, TenGod

STRONG_THRESHOLD = 40
MAX_STAR_PATTERNS = 3
FALLBACK_PATTERN = "Balanced Constitution Pattern"

# ten-god category → pattern tag, in evaluation order
CATEGORY_PATTERNS = [
    (GodCategory.WEALTH, "Wealth Star Pattern"),
    (GodCategory.RESOURCE, "Academic Achievement Pattern"),
    (GodCategory.OFFICER, "Authority Pattern"),
    (GodCategory.OUTPUT, "Creative Expression Pattern"),
]


# ============================================================
# DISTRIBUTIONS
# ============================================================

def to_percentages(counts: dict) -> dict:
    """
    Convert counts to integer percentages that sum to exactly 100.

    Each bucket gets round(count/total*100); the difference to 100 is then
    settled one point at a time on the buckets with the largest fractional
    remainder. All-zero counts stay all zero.
    """
    total = sum(counts.values())
    if total <= 0:
        return {key: 0 for key in counts}

    exact = {key: count / total * 100 for key, count in counts.items()}
    result = {key: round(value) for key, value in exact.items()}
    diff = 100 - sum(result.values())
    if diff:
        step = 1 if diff > 0 else -1
        # adding: biggest remainder first; removing: the most over-rounded first
        order = sorted(exact, key=lambda k: (exact[k] - result[k]) * step, reverse=True)
        for key in order[:abs(diff)]:
            result[key] += step
    return result


def element_distribution(pillars: Iterable[Pillar], include_hidden: bool = False) -> dict:
    """
    Percentage of each element across the pillars' stems.

    One tally per pillar; with include_hidden each hidden stem adds a tally
    too. Returns {"wood": .., "fire": .., "earth": .., "metal": .., "water": ..}.
    """
    counts = {e.value: 0 for e in Element}
    for pillar in pillars:
        counts[pillar.stem.element.value] += 1
        if include_hidden:
            for hidden in pillar.hidden_stems:
                counts[hidden.element.value] += 1
    return to_percentages(counts)


def yin_yang_distribution(pillars: Iterable[Pillar]) -> dict:
    """Yin/yang percentages of the pillar stems; 50/50 when there is nothing to count."""
    counts = {Polarity.YIN.value: 0, Polarity.YANG.value: 0}
    for pillar in pillars:
        counts[pillar.stem.polarity.value] += 1
    if not sum(counts.values()):
        return {"yin": 50, "yang": 50}
    return to_percentages(counts)


# ============================================================
# PATTERN RULES
# ============================================================

def strong_element_rule(elements: dict, **_) -> list[str]:
    return [f"Strong {name.capitalize()} Element Pattern"
            for name, pct in elements.items() if pct > STRONG_THRESHOLD]


def missing_element_rule(elements: dict, **_) -> list[str]:
    # An empty distribution carries no information about missing elements
    if not sum(elements.values()):
        return []
    return [f"Missing {name.capitalize()} Element"
            for name, pct in elements.items() if pct == 0]


def deity_star_rule(elements: dict, deity_stars=(), **_) -> list[str]:
    return [f"{star} Pattern" for star in list(deity_stars)[:MAX_STAR_PATTERNS]]


def ten_god_rule(elements: dict, ten_gods=(), **_) -> list[str]:
    categories = {god.category for god in ten_gods}
    return [tag for category, tag in CATEGORY_PATTERNS if category in categories]


PATTERN_RULES = [
    strong_element_rule,
    missing_element_rule,
    deity_star_rule,
    ten_god_rule,
]


def evaluate_patterns(elements: dict, ten_gods: Iterable[TenGod] = (),
                      deity_stars: Iterable[str] = ()) -> list[str]:
    """
    Run every rule independently and union the tags in rule order.

    Falls back to a single balanced tag when no rule fires.
    """
    ten_gods = list(ten_gods)
    deity_stars = list(deity_stars)
    patterns = []
    for rule in PATTERN_RULES:
        for tag in rule(elements, ten_gods=ten_gods, deity_stars=deity_stars):
            if tag not in patterns:
                patterns.append(tag)
    return patterns or [FALLBACK_PATTERN]


class PatternKind(Enum):
    POSITIVE = "positive"
    ATTENTION = "attention"
    NEUTRAL = "neutral"


def classify_pattern(tag: str) -> PatternKind:
    if "Missing" in tag:
        return PatternKind.ATTENTION
    if any(word in tag for word in ("Strong", "Star", "Achievement")):
        return PatternKind.POSITIVE
    return PatternKind.NEUTRAL


# ============================================================
# CHART-LEVEL ANALYSIS
# ============================================================

def analyze_chart(chart: Optional[Chart]) -> dict:
    """Distributions and patterns for a chart, as returned to clients."""
    pillars = chart.pillars if chart is not None else ()
    elements = element_distribution(pillars)
    return {
        "elements": elements,
        "yinYang": yin_yang_distribution(pillars),
        "patterns": evaluate_patterns(
            elements,
            ten_gods=chart.ten_gods if chart is not None else (),
            deity_stars=chart.deity_stars if chart is not None else (),
        ),
    }


def display_pillars(chart: Chart) -> dict:
    """Compact per-pillar view used by the chart widgets."""
    return {
        p.position: {
            "heavenlyStem": p.stem.chinese,
            "earthlyBranch": p.branch.chinese,
            "element": p.stem.element.value,
        }
        for p in chart.pillars
    }
