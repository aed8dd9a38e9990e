import asyncio
import datetime
import json
import logging
import sys
from pathlib import Path

from skyquality import astro, filters, formatters, lightpollution
from skyquality.config import load_config
from skyquality.errors import ConfigError, ProviderError
from skyquality.providers import (
    get_geocoding_provider,
    get_light_pollution_provider,
    get_weather_provider,
)
from skyquality.service import SkyQualityService
from skyquality.types import (
    FilterMode,
    GeoCoordinate,
    LocationCandidate,
    sanitize_coordinate,
)


def _json_envelope(command: str, ok: bool, data=None, error=None) -> dict:
    return {
        "ok": ok,
        "command": command,
        "timestamp_utc": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "data": data,
        "error": error,
    }


def _init_logging(level: str | None) -> None:
    if not level:
        return
    level_map = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warn": logging.WARNING,
        "error": logging.ERROR,
    }
    logging.basicConfig(level=level_map.get(level, logging.INFO))


def _config_path_from_args(args) -> Path | None:
    if args is None:
        return None
    path = getattr(args, "config", None)
    return Path(path) if path else None


def _print_error(command: str, args, code: str, message: str) -> None:
    if getattr(args, "json", False):
        payload = _json_envelope(
            command=command,
            ok=False,
            data=None,
            error={"code": code, "message": message, "details": None},
        )
        print(json.dumps(payload, indent=2))
    else:
        print(message, file=sys.stderr)


def _print_ok(command: str, args, data, text: str) -> None:
    if getattr(args, "json", False):
        payload = _json_envelope(command=command, ok=True, data=data, error=None)
        print(json.dumps(payload, indent=2))
    else:
        print(text)


def _parse_date_arg(value: str | None) -> datetime.date | None:
    if not value:
        return None
    return datetime.date.fromisoformat(value)


def _coordinate_from_args(args, config=None) -> GeoCoordinate:
    lat = getattr(args, "latitude_deg", None)
    lon = getattr(args, "longitude_deg", None)
    if lat is None and lon is None and config is not None:
        lat, lon = config.site_latitude_deg, config.site_longitude_deg
    if lat is None or lon is None:
        raise ValueError("Both --lat and --lon are required (or set [site] in the config)")
    return sanitize_coordinate(lat, lon)


def run_doctor(args=None) -> int:
    _init_logging(getattr(args, "log_level", None))

    def check_config():
        try:
            load_config(_config_path_from_args(args))
            return {"ok": True, "detail": "loaded (defaults applied if missing)"}
        except (ConfigError, OSError, ValueError) as e:
            return {"ok": False, "detail": f"invalid config: {e}"}

    checks = {"config": check_config()}
    if checks["config"]["ok"]:
        config = load_config(_config_path_from_args(args))
        for label, factory in (
            (f"weather ({config.weather_provider})", get_weather_provider),
            (f"geocoding ({config.geocoding_provider})", get_geocoding_provider),
            (f"light pollution ({config.light_pollution_provider})", get_light_pollution_provider),
        ):
            try:
                checks[label] = factory(config).is_available()
            except (ConfigError, ValueError) as e:
                checks[label] = {"ok": False, "detail": str(e)}

    ok = all(c["ok"] for c in checks.values())

    if getattr(args, "json", False):
        payload = _json_envelope(
            command="doctor",
            ok=ok,
            data={"checks": checks},
            error=None
            if ok
            else {
                "code": "doctor_failed",
                "message": "one or more checks failed",
                "details": None,
            },
        )
        print(json.dumps(payload, indent=2))
    else:
        print("Sky Quality Doctor Report")
        print("=========================")
        for name, result in checks.items():
            status = "OK" if result["ok"] else "MISSING"
            print(f"{name:28} : {status} ({result['detail']})")
        if ok:
            print("\nReady.")
        else:
            print("\nSome components are missing or not configured.")

    return 0 if ok else 1


def run_night(args) -> int:
    _init_logging(getattr(args, "log_level", None))
    try:
        config = load_config(_config_path_from_args(args))
        coordinate = _coordinate_from_args(args, config)
        date = _parse_date_arg(args.date) or datetime.datetime.now(datetime.timezone.utc).date()
    except (OSError, ValueError, ConfigError) as e:
        _print_error("night", args, "invalid_input", str(e))
        return 2
    window = astro.compute_night_window(coordinate, date)
    _print_ok("night", args, formatters.to_data(window), f"Astronomical night: {formatters.format_window(window)}")
    return 0


def run_convert(args) -> int:
    _init_logging(getattr(args, "log_level", None))
    if args.bortle is not None:
        bortle = float(args.bortle)
    elif args.sqm is not None:
        bortle = lightpollution.mpsas_to_bortle(args.sqm)
    elif args.brightness is not None:
        bortle = lightpollution.brightness_to_bortle(args.brightness)
    else:
        _print_error("convert", args, "invalid_input", "One of --bortle, --sqm or --brightness is required")
        return 2
    estimate = lightpollution.estimate_from_bortle(bortle)
    if estimate.bortle_scale is None:
        _print_error("convert", args, "invalid_input", f"Not a usable value: {bortle}")
        return 2
    data = formatters.to_data(estimate)
    if args.sqm is not None:
        data["input_sqm"] = args.sqm
    if args.brightness is not None:
        data["input_sqm"] = round(lightpollution.raw_brightness_to_mpsas(args.brightness), 2)
    _print_ok("convert", args, data, formatters.format_estimate(estimate))
    return 0


async def _compute(config, coordinate, date):
    service = SkyQualityService(config)
    try:
        return await service.compute_siqs(coordinate, date)
    finally:
        await service.close()


def run_siqs(args) -> int:
    _init_logging(getattr(args, "log_level", None))
    try:
        config = load_config(_config_path_from_args(args))
        coordinate = _coordinate_from_args(args, config)
        date = _parse_date_arg(args.date)
    except (OSError, ValueError, ConfigError) as e:
        _print_error("siqs", args, "invalid_input", str(e))
        return 2
    try:
        result = asyncio.run(_compute(config, coordinate, date))
    except ProviderError as e:
        _print_error("siqs", args, "provider_error", f"could not compute SIQS: {e}")
        return 3
    _print_ok("siqs", args, formatters.to_data(result), formatters.format_siqs(result, verbose=args.verbose))
    return 0


def _load_candidates(path: Path) -> list[LocationCandidate]:
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    if not isinstance(raw, list):
        raise ValueError("Candidate file must contain a JSON list")
    candidates = []
    for idx, item in enumerate(raw):
        try:
            candidates.append(
                LocationCandidate(
                    id=str(item.get("id", idx)),
                    name=str(item.get("name", "")),
                    coordinate=GeoCoordinate(float(item["latitude"]), float(item["longitude"])),
                    certification=item.get("certification") or None,
                    is_dark_sky_reserve=bool(item.get("is_dark_sky_reserve", False)),
                    siqs=item.get("siqs"),
                )
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ValueError(f"Invalid candidate at index {idx}: {e}") from e
    return candidates


async def _filter(config, candidates, reference, radius_km, mode):
    service = SkyQualityService(config)
    try:
        return await service.filter_locations(candidates, reference, radius_km, mode)
    finally:
        await service.close()


def run_filter(args) -> int:
    _init_logging(getattr(args, "log_level", None))
    try:
        config = load_config(_config_path_from_args(args))
        candidates = _load_candidates(Path(args.input_path))
        reference = None
        if args.latitude_deg is not None or args.longitude_deg is not None:
            reference = _coordinate_from_args(args)
        mode = FilterMode(args.mode)
    except (OSError, ValueError, ConfigError) as e:
        _print_error("filter", args, "invalid_input", str(e))
        return 2
    result = asyncio.run(_filter(config, candidates, reference, args.radius_km, mode))
    if args.thin:
        result = filters.thin_by_min_distance(result, config.filter_min_distance_km)
    if args.sort:
        result = filters.sort_by_quality_and_distance(result)
    _print_ok("filter", args, formatters.to_data(result), formatters.format_candidates(result))
    return 0
