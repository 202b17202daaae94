"""
Command line entry point.

Usage:
    python -m bazichart.run chart --birth-date 1990-03-15 --birth-time 10:30 \
        --place Singapore --gender male [--offline] [--true-solar-time]
    python -m bazichart.run serve [--host 127.0.0.1] [--port 8000]
"""

import argparse
import json
import logging

from bazichart.analysis import analyze_chart
from bazichart.astro_calendar import configure_ephemeris
from bazichart.config import load_settings
from bazichart.create_chart import ChartService
from bazichart.errors import BaziError
from bazichart.timezones import TimezoneResolver


def compute_chart_payload(args, settings) -> dict:
    if args.offline or not settings.geocoder_enabled:
        resolver = TimezoneResolver()
    else:
        resolver = TimezoneResolver.with_nominatim(settings.geocoder_user_agent)

    service = ChartService(resolver, timeout=settings.chart_timeout_seconds,
                           true_solar_time=args.true_solar_time or settings.true_solar_time)
    try:
        instant, location = service.prepare(f"{args.birth_date}T{args.birth_time}", args.place)
        chart = service.calculate_instant(instant, args.gender)
    finally:
        service.close()

    return {
        "location": {
            "place": args.place,
            "timezone": location.timezone,
            "source": location.source,
        },
        "solar_datetime": instant.isoformat(),
        "universal_time": instant.universal_time.isoformat(),
        "solar_time_correction_minutes": instant.solar_time_correction_minutes,
        "chart": chart.to_dict(),
        **analyze_chart(chart),
    }


def main():
    parser = argparse.ArgumentParser(description="BaZi Four Pillars charts.")
    sub = parser.add_subparsers(dest="command", required=True)

    chart_p = sub.add_parser("chart", help="Compute a chart and print it as JSON")
    chart_p.add_argument("--birth-date", required=True, dest="birth_date", help="YYYY-MM-DD")
    chart_p.add_argument("--birth-time", required=True, dest="birth_time", help="HH:MM, local clock")
    chart_p.add_argument("--place", required=True)
    chart_p.add_argument("--gender", required=True, choices=["male", "female"])
    chart_p.add_argument("--offline", action="store_true", help="Skip the geocoder lookup")
    chart_p.add_argument("--true-solar-time", action="store_true", dest="true_solar_time")

    serve_p = sub.add_parser("serve", help="Run the HTTP API")
    serve_p.add_argument("--host", default="127.0.0.1")
    serve_p.add_argument("--port", type=int, default=8000)

    args = parser.parse_args()
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        import uvicorn
        uvicorn.run("bazichart.api:create_app", factory=True,
                    host=args.host, port=args.port, log_level=settings.log_level.lower())
        return

    configure_ephemeris(settings.sweph_path)
    try:
        result = compute_chart_payload(args, settings)
    except BaziError as e:
        parser.exit(1, f"error: {e.message}\n")
    print(json.dumps(result, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
