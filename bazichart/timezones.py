"""
Birthplace → timezone resolution.

Birthplace text is typed free-form, so resolution never fails:
1. substring match against a curated table of common places
2. geocoder lookup (OpenStreetMap Nominatim via geopy), coordinates → IANA
   zone via timezonefinder
3. UTC fallback, logged as a warning
"""

import logging
from dataclasses import dataclass
from typing import Optional

from geopy.exc import GeopyError
from geopy.geocoders import Nominatim
from timezonefinder import TimezoneFinder

logger = logging.getLogger(__name__)

FALLBACK_TIMEZONE = "UTC"

# (substring, timezone, latitude, longitude). Checked in order, so more
# specific names must come before the regions that contain them.
KNOWN_PLACES = [
    ("san jose", "America/Los_Angeles", 37.3382, -121.8863),
    ("san francisco", "America/Los_Angeles", 37.7749, -122.4194),
    ("los angeles", "America/Los_Angeles", 34.0522, -118.2437),
    ("seattle", "America/Los_Angeles", 47.6062, -122.3321),
    ("vancouver", "America/Vancouver", 49.2827, -123.1207),
    ("california", "America/Los_Angeles", 36.7783, -119.4179),
    ("new york", "America/New_York", 40.7128, -74.0060),
    ("boston", "America/New_York", 42.3601, -71.0589),
    ("toronto", "America/Toronto", 43.6532, -79.3832),
    ("chicago", "America/Chicago", 41.8781, -87.6298),
    ("singapore", "Asia/Singapore", 1.3521, 103.8198),
    ("kuala lumpur", "Asia/Kuala_Lumpur", 3.1390, 101.6869),
    ("beijing", "Asia/Shanghai", 39.9042, 116.4074),
    ("shanghai", "Asia/Shanghai", 31.2304, 121.4737),
    ("guangzhou", "Asia/Shanghai", 23.1291, 113.2644),
    ("shenzhen", "Asia/Shanghai", 22.5431, 114.0579),
    ("hong kong", "Asia/Hong_Kong", 22.3193, 114.1694),
    ("macau", "Asia/Macau", 22.1987, 113.5439),
    ("taipei", "Asia/Taipei", 25.0330, 121.5654),
    ("tokyo", "Asia/Tokyo", 35.6762, 139.6503),
    ("seoul", "Asia/Seoul", 37.5665, 126.9780),
    ("bangkok", "Asia/Bangkok", 13.7563, 100.5018),
    ("sydney", "Australia/Sydney", -33.8688, 151.2093),
    ("melbourne", "Australia/Melbourne", -37.8136, 144.9631),
    ("london", "Europe/London", 51.5074, -0.1278),
    ("paris", "Europe/Paris", 48.8566, 2.3522),
    ("berlin", "Europe/Berlin", 52.5200, 13.4050),
]


@dataclass(frozen=True)
class ResolvedLocation:
    timezone: str
    source: str  # "table", "geocoder" or "fallback"
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def is_fallback(self) -> bool:
        return self.source == "fallback"


def match_known_place(place: str) -> Optional[ResolvedLocation]:
    normalized = place.strip().lower()
    if not normalized:
        return None
    for key, tz_name, lat, lon in KNOWN_PLACES:
        if key in normalized:
            return ResolvedLocation(tz_name, "table", lat, lon)
    return None


class TimezoneResolver:
    """
    Resolves free-text birthplaces. Built once at startup and shared; the
    table and TimezoneFinder are read-only after construction.

    Pass geocoder=None to disable network lookups (tests, offline use).
    """

    def __init__(self, geocoder=None, timeout: float = 5.0):
        self.geocoder = geocoder
        self.timeout = timeout
        self._tf = TimezoneFinder() if geocoder is not None else None

    @classmethod
    def with_nominatim(cls, user_agent: str = "bazichart", timeout: float = 5.0):
        return cls(Nominatim(user_agent=user_agent), timeout=timeout)

    def resolve(self, place: str) -> ResolvedLocation:
        place = place or ""
        known = match_known_place(place)
        if known:
            return known

        located = self._geocode(place)
        if located:
            return located

        logger.warning("Could not find timezone for %r, falling back to %s",
                       place, FALLBACK_TIMEZONE)
        return ResolvedLocation(FALLBACK_TIMEZONE, "fallback")

    def _geocode(self, place: str) -> Optional[ResolvedLocation]:
        if self.geocoder is None or not place.strip():
            return None
        try:
            loc = self.geocoder.geocode(place, timeout=self.timeout)
        except GeopyError as e:
            logger.warning("Geocoder lookup failed for %r: %s", place, e)
            return None
        if not loc:
            return None

        lat, lon = float(loc.latitude), float(loc.longitude)
        tz_name = self._tf.timezone_at(lat=lat, lng=lon)
        if tz_name is None:
            logger.warning("No timezone at (%s, %s) for %r", lat, lon, place)
            return None
        logger.debug("Geocoded %r to (%s, %s) in %s", place, lat, lon, tz_name)
        return ResolvedLocation(tz_name, "geocoder", lat, lon)


def resolve_timezone(place: str, resolver: Optional[TimezoneResolver] = None) -> str:
    """IANA timezone name for a birthplace, using the offline table when no resolver is given."""
    return (resolver or TimezoneResolver()).resolve(place).timezone
