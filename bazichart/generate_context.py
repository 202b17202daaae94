"""
Generate the chat context for the AI collaborator.

Takes a chart in its wire shape (Chart.to_dict(), as the client sends it
back with chat requests) and produces the structured text the model is
prompted with, plus the annual pillar of the year being asked about.

Usage:
    python -m bazichart.generate_context --chart chart.json --question "Career?"
"""

import argparse
import json
from datetime import datetime
from typing import Optional

from bazichart.bazi import BRANCH_BY_CHINESE, POSITIONS, STEM_BY_CHINESE, ten_god, year_pillar

SYSTEM_PROMPT = """You are an expert BaZi (Chinese astrology) consultant with deep knowledge of:
- Four Pillars of Destiny (四柱命理)
- Five Elements Theory (五行)
- Yin-Yang Balance (陰陽)
- Heavenly Stems and Earthly Branches (天干地支)
- Ten Gods System (十神)
- Deity Stars and Special Configurations (神煞)
- Luck Cycles and Timing (大运流年)

The chart below was computed from solar terms and the sexagenary day count,
so you can reference its stems, branches, Ten Gods and deity stars directly.

Provide insightful, personalized guidance based on the user's chart.
Be specific, helpful, and culturally respectful. Use both Chinese terms and English explanations.
Reference specific elements from their chart (stems, branches, ten gods, deity stars).
Keep responses concise but meaningful (2-3 paragraphs maximum)."""


def require_chart_data(chart_data) -> dict:
    """Check that a client-supplied chart has all four pillars; raise ValueError otherwise."""
    if not isinstance(chart_data, dict):
        raise ValueError("Chart data must be an object")
    pillars = chart_data.get("fourPillars")
    if not isinstance(pillars, dict):
        raise ValueError("Chart data has no four pillars")
    for pos in POSITIONS:
        pillar = pillars.get(pos)
        if not isinstance(pillar, dict):
            raise ValueError(f"Chart data is missing the {pos} pillar")
        if pillar.get("heavenlyStem") not in STEM_BY_CHINESE:
            raise ValueError(f"Unknown heavenly stem in the {pos} pillar")
        if pillar.get("earthlyBranch") not in BRANCH_BY_CHINESE:
            raise ValueError(f"Unknown earthly branch in the {pos} pillar")
        hidden = pillar.get("hiddenStems")
        if hidden is not None and not (
                isinstance(hidden, list) and all(isinstance(h, dict) for h in hidden)):
            raise ValueError(f"Hidden stems of the {pos} pillar must be a list of objects")

    for key in ("deityStars", "emptyBranches"):
        values = chart_data.get(key)
        if values is not None and not (
                isinstance(values, list) and all(isinstance(v, str) for v in values)):
            raise ValueError(f"{key} must be a list of strings")

    cycles = chart_data.get("luckCycles")
    if cycles is not None:
        if not isinstance(cycles, list):
            raise ValueError("luckCycles must be a list")
        for cycle in cycles:
            if not isinstance(cycle, dict):
                raise ValueError("Each luck cycle must be an object")
            age = cycle.get("age")
            if isinstance(age, bool) or not isinstance(age, int):
                raise ValueError("Each luck cycle needs an integer age")

    solar = chart_data.get("solarCalendar")
    if solar is not None:
        if not isinstance(solar, str) or not solar[:4].isdigit():
            raise ValueError("solarCalendar must start with a four-digit year")
    return chart_data


def compute_year_context(chart_data: dict, year: int) -> dict:
    """Annual pillar for `year`, its Ten God against the natal Day Master, and the active luck cycle."""
    ap = year_pillar(year)
    day_master = STEM_BY_CHINESE[chart_data["fourPillars"]["day"]["heavenlyStem"]]

    birth_year = None
    solar = chart_data.get("solarCalendar")
    if solar:
        birth_year = int(str(solar)[:4])

    current_cycle = {}
    if birth_year is not None:
        age = year - birth_year
        for cycle in chart_data.get("luckCycles") or []:
            if cycle.get("age", 0) <= age < cycle.get("age", 0) + 10:
                current_cycle = cycle
                break

    return {
        "year": year,
        "annual_pillar": ap.chinese,
        "annual_pillar_description": str(ap),
        "annual_ten_god": ten_god(day_master, ap.stem).label,
        "current_luck_cycle": current_cycle,
    }


def _pillar_line(name: str, pillar: dict) -> str:
    return (f"- {name} Pillar: {pillar['heavenlyStem']}{pillar['earthlyBranch']} "
            f"({pillar.get('fiveElements', '')}, {pillar.get('yinYang', '')}, "
            f"Na Yin: {pillar.get('nayin', '')}{', void' if pillar.get('empty') else ''})")


def format_chart_for_ai(chart_data: dict) -> str:
    """Render a chart as the structured analysis block of the prompt."""
    pillars = chart_data["fourPillars"]
    lines = [
        "BaZi Chart Analysis:",
        "",
        "Basic Information:",
        f"- Gender: {chart_data.get('gender', '')}",
        f"- Solar Calendar: {chart_data.get('solarCalendar', '')}",
        f"- Eight Characters: {chart_data.get('eightCharacters', '')}",
        f"- Zodiac Animal: {chart_data.get('zodiac', '')}",
        f"- Day Master: {chart_data.get('dayMaster', '')}",
        "",
        "Four Pillars Detail:",
    ]
    lines += [_pillar_line(pos.capitalize(), pillars[pos]) for pos in POSITIONS]

    lines += ["", "Ten Gods Relationships:"]
    lines += [f"- {pos.capitalize()}: {pillars[pos].get('tenGods', '')}" for pos in POSITIONS]

    lines += ["", "Hidden Stems:"]
    for pos in POSITIONS:
        hidden = pillars[pos].get("hiddenStems") or []
        rendered = ", ".join(
            f"{h.get('stem', '')} ({h['tenGod']})" if h.get("tenGod") else h.get("stem", "")
            for h in hidden if isinstance(h, dict)
        )
        lines.append(f"- {pos.capitalize()}: {rendered}")

    cycles = chart_data.get("luckCycles") or []
    lines += [
        "",
        "Additional Elements:",
        f"- Deity Stars: {', '.join(chart_data.get('deityStars') or [])}",
        f"- Empty Branches: {', '.join(chart_data.get('emptyBranches') or [])}",
        "- Luck Cycles: " + ", ".join(
            f"age {c.get('age')} {c.get('heavenlyStem', '')}{c.get('earthlyBranch', '')}"
            for c in cycles
        ),
    ]
    return "\n".join(lines)


def build_chat_context(chart_data: dict, message: str, year: Optional[int] = None) -> str:
    """
    Assemble the prompt body for one chat turn: chart block, current-year
    context and the user's question.
    """
    require_chart_data(chart_data)
    year_ctx = compute_year_context(chart_data, year or datetime.now().year)
    cycle = year_ctx["current_luck_cycle"]
    cycle_text = (f"{cycle.get('heavenlyStem', '')}{cycle.get('earthlyBranch', '')} "
                  f"({cycle.get('period', '')})" if cycle else "not started")

    return f"""
{format_chart_for_ai(chart_data)}

Current Year ({year_ctx['year']}):
- Annual Pillar: {year_ctx['annual_pillar']} {year_ctx['annual_pillar_description']}
- Annual Ten God: {year_ctx['annual_ten_god']}
- Current Luck Cycle: {cycle_text}

User Question: {message}

Please provide analysis based on the BaZi calculations above. You can confidently reference specific Ten Gods, Deity Stars, and luck cycles.
""".strip()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Print the AI chat context for a saved chart")
    parser.add_argument("--chart", required=True, help="Path to a chart JSON file (Chart.to_dict())")
    parser.add_argument("--question", required=True, help="User question")
    parser.add_argument("--year", type=int, help="Year to read (default: current year)")
    args = parser.parse_args()

    with open(args.chart, encoding="utf-8") as f:
        data = json.load(f)
    print(build_chat_context(data, args.question, args.year))
