import argparse
import sys

from skyquality import __version__
from skyquality.cli.commands import (
    run_convert,
    run_doctor,
    run_filter,
    run_night,
    run_siqs,
)

LOG_LEVELS = ["debug", "info", "warn", "error"]


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="Path to config.toml (default ~/.config/skyquality/config.toml)")
    parser.add_argument("--log-level", dest="log_level", choices=LOG_LEVELS, help="Enable logging at this level")
    parser.add_argument("--json", action="store_true", help="Output result as JSON")


def _add_location(parser: argparse.ArgumentParser, required: bool = False) -> None:
    parser.add_argument("--lat", dest="latitude_deg", type=float, required=required, help="Latitude in degrees")
    parser.add_argument("--lon", dest="longitude_deg", type=float, required=required, help="Longitude in degrees")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="skyquality")
    parser.add_argument("--version", action="store_true", help="Show version and exit")

    subparsers = parser.add_subparsers(dest="command")

    doctor_parser = subparsers.add_parser("doctor", help="Check config and providers")
    _add_common(doctor_parser)

    night_parser = subparsers.add_parser("night", help="Astronomical night window for a place and date")
    _add_common(night_parser)
    _add_location(night_parser)
    night_parser.add_argument("--date", help="Evening date, YYYY-MM-DD (default today, UTC)")

    convert_parser = subparsers.add_parser("convert", help="Convert between Bortle, SQM and NELM")
    _add_common(convert_parser)
    source = convert_parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--bortle", type=float, help="Bortle class, 1-9")
    source.add_argument("--sqm", type=float, help="Sky brightness in mag/arcsec²")
    source.add_argument("--brightness", type=float, help="8-bit sky brightness sample, 0-255")

    siqs_parser = subparsers.add_parser("siqs", help="Compute the sky quality score")
    _add_common(siqs_parser)
    _add_location(siqs_parser)
    siqs_parser.add_argument("--date", help="Evening date, YYYY-MM-DD (default today, UTC)")
    siqs_parser.add_argument("--verbose", action="store_true", help="Show sources and sample counts")

    filter_parser = subparsers.add_parser("filter", help="Filter a JSON list of candidate locations")
    _add_common(filter_parser)
    filter_parser.add_argument("--in", dest="input_path", required=True, help="Candidate JSON file")
    filter_parser.add_argument(
        "--mode", choices=["certified", "calculated"], default="calculated", help="Which candidates to keep"
    )
    _add_location(filter_parser)
    filter_parser.add_argument(
        "--radius", dest="radius_km", type=float, default=0.0, help="Search radius in km (0 disables)"
    )
    filter_parser.add_argument("--thin", action="store_true", help="Drop spots too close to a better one")
    filter_parser.add_argument("--sort", action="store_true", help="Sort certified first, then by SIQS")

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"skyquality {__version__}")
        return 0

    if args.command == "doctor":
        return run_doctor(args)

    if args.command == "night":
        return run_night(args)

    if args.command == "convert":
        return run_convert(args)

    if args.command == "siqs":
        return run_siqs(args)

    if args.command == "filter":
        return run_filter(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
