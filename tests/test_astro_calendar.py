from datetime import datetime

import pytest
import swisseph as swe

from bazichart.astro_calendar import (
    apply_lmt,
    find_jie_dates,
    find_nearest_jie,
    julian_day,
    julian_day_number,
    li_chun,
    lmt_correction,
    month_branch_index,
    sun_longitude,
)


def test_julian_day_number():
    assert julian_day_number(1949, 10, 1) == 2433191
    assert julian_day_number(2000, 1, 1) == 2451545


def test_li_chun_1990():
    assert swe.julday(1990, 2, 3, 0) < li_chun(1990) < swe.julday(1990, 2, 5, 0)
    assert sun_longitude(datetime(1990, 2, 6)) > 315.0


@pytest.mark.parametrize("lon,branch", [
    (315.0, 2), (344.9, 2), (345.0, 3), (14.9, 3), (285.0, 1), (300.0, 1), (270.0, 0),
])
def test_month_branch_index(lon, branch):
    assert month_branch_index(lon) == branch


def test_jie_dates_cover_the_year():
    crossings = find_jie_dates(1990)
    assert len(crossings) == 12
    assert crossings[0].term.name == "Xiao Han"
    assert crossings[1].term.name == "Li Chun"
    assert [c.jd for c in crossings] == sorted(c.jd for c in crossings)


def test_nearest_jie_brackets_birth():
    birth = julian_day(datetime(1990, 1, 1))
    before = find_nearest_jie(birth, 1990, forward=False)
    after = find_nearest_jie(birth, 1990, forward=True)
    # Da Xue (Dec 1989) and Xiao Han (Jan 1990)
    assert before < birth < after
    assert after - before < 31


def test_lmt():
    assert lmt_correction(108.37) == pytest.approx(-46.52)
    assert apply_lmt(datetime(2000, 1, 1, 12, 0), 105.0) == datetime(2000, 1, 1, 11, 0)
