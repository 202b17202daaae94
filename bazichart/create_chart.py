"""
Chart creation library.
Turns raw birth data (client datetime string, birthplace text, gender)
into a BaZi Chart.

Timezone handling happens exactly once, in normalize_birth_time():
the birth date/time is read as wall clock at the birthplace, and the
resulting ReferenceInstant carries that wall clock tagged as UTC together
with the true Universal Time. The pillar deriver reads the wall clock for
day and hour pillars and the UT only for solar-term boundaries, so no
stage ever applies the zone offset a second time.

Usage from Python:
    service = ChartService(TimezoneResolver())
    chart = service.calculate("1990-03-15T10:30", "Singapore", "male")
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from bazichart.astro_calendar import apply_lmt
from bazichart.bazi import Chart, compute_chart, validate_birth
from bazichart.errors import ExternalServiceUnavailable, ValidationError
from bazichart.timezones import FALLBACK_TIMEZONE, ResolvedLocation, TimezoneResolver

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = (
    "Accurate analysis unavailable: the BaZi calculation could not be completed. "
    "Please try again later."
)


@dataclass(frozen=True)
class ReferenceInstant:
    """
    Normalized birth moment.

    solar_datetime is the birthplace wall clock tagged as UTC; it is NOT the
    UTC moment of birth. universal_time is the real UT moment.
    """
    solar_datetime: datetime
    universal_time: datetime
    timezone: str
    utc_offset: timedelta
    dst_active: bool = False
    solar_time_correction_minutes: float = 0.0

    @property
    def wall_clock(self) -> datetime:
        return self.solar_datetime.replace(tzinfo=None)

    def isoformat(self) -> str:
        return self.solar_datetime.strftime("%Y-%m-%dT%H:%M:%S.000Z")


def parse_client_datetime(value: str) -> tuple[date, time]:
    """
    Extract the wall-clock date and time from a client ISO datetime string.

    Any offset suffix is ignored: the form captures the clock reading at the
    birthplace, which is what the chart needs.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Birth date is required")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1]
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValueError(f"Birth date {value!r} is not an ISO datetime") from None
    return parsed.date(), time(parsed.hour, parsed.minute)


def _zone(tz_name: str) -> tuple[ZoneInfo, str]:
    try:
        return ZoneInfo(tz_name), tz_name
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, using %s", tz_name, FALLBACK_TIMEZONE)
        return ZoneInfo(FALLBACK_TIMEZONE), FALLBACK_TIMEZONE


def normalize_birth_time(birth_date: date, birth_time: time, tz_name: str,
                         longitude: Optional[float] = None,
                         true_solar_time: bool = False) -> ReferenceInstant:
    """
    Combine local date, local time and timezone into a ReferenceInstant.

    With true_solar_time and a known longitude, the wall clock is first
    taken back to standard time (DST stripped) and then shifted by the
    Local Mean Time correction against the zone's standard meridian.
    """
    zone, tz_name = _zone(tz_name)
    wall = datetime.combine(birth_date, birth_time)
    local_dt = wall.replace(tzinfo=zone)

    utc_offset = local_dt.utcoffset() or timedelta(0)
    dst = local_dt.dst() or timedelta(0)
    universal_time = local_dt.astimezone(timezone.utc).replace(tzinfo=None)

    correction = 0.0
    if true_solar_time and longitude is not None:
        standard_offset = utc_offset - dst
        standard_meridian = standard_offset.total_seconds() / 3600 * 15
        corrected = apply_lmt(wall - dst, longitude, standard_meridian)
        correction = (corrected - wall).total_seconds() / 60
        wall = corrected

    instant = ReferenceInstant(
        solar_datetime=wall.replace(tzinfo=timezone.utc),
        universal_time=universal_time,
        timezone=tz_name,
        utc_offset=utc_offset,
        dst_active=dst > timedelta(0),
        solar_time_correction_minutes=round(correction, 1),
    )
    logger.debug("Birth %s %s in %s → solar datetime %s (UT %s)",
                 birth_date, birth_time, tz_name, instant.isoformat(),
                 universal_time.isoformat())
    return instant


class ChartService:
    """
    Runs the chart pipeline up to the finished Chart.

    The calendrical calculation runs on the service's own thread pool so
    callers get a bounded wait: a timeout or ephemeris failure raises
    ExternalServiceUnavailable and nothing is stored.
    """

    def __init__(self, resolver: TimezoneResolver, timeout: float = 10.0,
                 true_solar_time: bool = False, max_workers: int = 4):
        self.resolver = resolver
        self.timeout = timeout
        self.true_solar_time = true_solar_time
        self._executor = ThreadPoolExecutor(max_workers=max_workers,
                                            thread_name_prefix="bazi-chart")

    def prepare(self, birth_date: str, birth_place: str) -> tuple[ReferenceInstant, ResolvedLocation]:
        try:
            local_date, local_time = parse_client_datetime(birth_date)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        location = self.resolver.resolve(birth_place)
        instant = normalize_birth_time(
            local_date, local_time, location.timezone,
            longitude=location.longitude,
            true_solar_time=self.true_solar_time,
        )
        return instant, location

    def calculate(self, birth_date: str, birth_place: str, gender: str) -> Chart:
        instant, location = self.prepare(birth_date, birth_place)
        logger.info("Calculating chart for %s at %r (%s, %s)", instant.isoformat(),
                    birth_place, location.timezone, location.source)
        return self.calculate_instant(instant, gender)

    def calculate_instant(self, instant: ReferenceInstant, gender: str) -> Chart:
        try:
            validate_birth(instant.wall_clock, gender)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        future = self._executor.submit(compute_chart, instant.wall_clock,
                                       instant.universal_time, gender)
        try:
            return future.result(timeout=self.timeout)
        except FuturesTimeout:
            future.cancel()
            logger.error("Chart calculation timed out after %ss", self.timeout)
            raise ExternalServiceUnavailable(UNAVAILABLE_MESSAGE) from None
        except Exception as e:
            logger.exception("Chart calculation failed")
            raise ExternalServiceUnavailable(UNAVAILABLE_MESSAGE) from e

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
