"""
Calendar utilities for BaZi calculations.
Handles Julian Day conversion, solar term (Jie) lookups,
Sun longitude at an instant and LMT correction.

All instants passed to this module are naive or UTC datetimes that
already represent Universal Time. Converting civil time to UT happens
once, in create_chart.ReferenceInstant.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import swisseph as swe

logger = logging.getLogger(__name__)


def configure_ephemeris(path: Optional[str] = None) -> None:
    """
    Point Swiss Ephemeris at data files when they are available.

    Without data files swisseph falls back to the built-in Moshier
    ephemeris, which is precise to well under a minute for solar terms.
    """
    path = path or os.getenv("SWEPH_PATH")
    if path:
        swe.set_ephe_path(path)
        logger.info("Swiss Ephemeris path set to %s", path)


def julian_day(moment: datetime) -> float:
    """Julian Day (UT) for a naive/UTC datetime."""
    hours = moment.hour + moment.minute / 60.0 + moment.second / 3600.0
    return swe.julday(moment.year, moment.month, moment.day, hours)


def julian_day_number(year: int, month: int, day: int) -> int:
    """
    Integer Julian Day Number of a civil date.

    The JDN changes at noon, so evaluating at 12:00 yields the exact integer.
    """
    return int(swe.julday(year, month, day, 12.0))


def sun_longitude(moment: datetime) -> float:
    """Sun's apparent ecliptic longitude (degrees) at a UT instant."""
    xx, _ = swe.calc_ut(julian_day(moment), swe.SUN)
    return xx[0] % 360.0


def lmt_correction(longitude: float, standard_meridian: float = 120.0) -> float:
    """
    Minutes between Local Mean Time and the zone's standard clock.

    Every degree east of the standard meridian puts the Sun four minutes
    ahead; negative values mean the local sun runs behind the clock.
    Nanning (108.37°E) on China Standard Time is about -46.5 minutes.
    """
    return (longitude - standard_meridian) * 4.0


def apply_lmt(clock_time: datetime, longitude: float,
              standard_meridian: float = 120.0) -> datetime:
    """Shift a standard-time clock reading to Local Mean Time."""
    return clock_time + timedelta(minutes=lmt_correction(longitude, standard_meridian))


# ============================================================
# SOLAR TERMS (节气)
# ============================================================
#
# BaZi months are bounded by the 12 Jie terms, each the moment the Sun
# reaches a fixed ecliptic longitude. Li Chun (315°) opens the Tiger
# month and the BaZi year.

LI_CHUN_LONGITUDE = 315.0


@dataclass(frozen=True)
class JieTerm:
    longitude: float
    name: str
    branch_index: int  # month branch the term opens


JIE_TERMS = [
    JieTerm(285.0, "Xiao Han", 1),
    JieTerm(315.0, "Li Chun", 2),
    JieTerm(345.0, "Jing Zhe", 3),
    JieTerm(15.0, "Qing Ming", 4),
    JieTerm(45.0, "Li Xia", 5),
    JieTerm(75.0, "Mang Zhong", 6),
    JieTerm(105.0, "Xiao Shu", 7),
    JieTerm(135.0, "Li Qiu", 8),
    JieTerm(165.0, "Bai Lu", 9),
    JieTerm(195.0, "Han Lu", 10),
    JieTerm(225.0, "Li Dong", 11),
    JieTerm(255.0, "Da Xue", 0),
]


@dataclass(frozen=True)
class JieCrossing:
    term: JieTerm
    jd: float


def li_chun(year: int) -> float:
    """Julian Day (UT) of Li Chun, the start of the BaZi year, in a Gregorian year."""
    return swe.solcross_ut(LI_CHUN_LONGITUDE, swe.julday(year, 1, 1, 0), 0)


def month_branch_index(sun_lon: float) -> int:
    """
    Map the Sun's ecliptic longitude to the BaZi month branch index.

    Months are 30° wide starting at Li Chun (315° → Yin, index 2);
    Xiao Han (285°) opens the Chou month (index 1).
    """
    month_num = int(((sun_lon - LI_CHUN_LONGITUDE) % 360) // 30)
    return (month_num + 2) % 12


def find_jie_dates(year: int) -> list[JieCrossing]:
    """Jie crossings falling inside one Gregorian year, earliest first."""
    start = swe.julday(year, 1, 1, 0)
    end = swe.julday(year + 1, 1, 1, 0)
    crossings = (JieCrossing(term, swe.solcross_ut(term.longitude, start, 0))
                 for term in JIE_TERMS)
    return sorted((c for c in crossings if c.jd < end), key=lambda c: c.jd)


def find_nearest_jie(birth_jd: float, year: int, forward: bool) -> float:
    """
    Julian Day of the Jie right after (forward) or at/before the birth.

    Neighbouring years are scanned too so births near New Year still find
    their boundary.
    """
    crossings = [c.jd for y in (year - 1, year, year + 1) for c in find_jie_dates(y)]
    crossings.sort()
    if forward:
        candidates = [jd for jd in crossings if jd > birth_jd]
        if candidates:
            return candidates[0]
    else:
        candidates = [jd for jd in crossings if jd <= birth_jd]
        if candidates:
            return candidates[-1]
    direction = "next" if forward else "previous"
    raise ValueError(f"No {direction} Jie around JD {birth_jd}")
