import datetime
import json
from dataclasses import asdict, is_dataclass
from typing import Iterable

from .types import AstronomicalNightWindow, LightPollutionEstimate, LocationCandidate, SiqsResult


def to_data(obj):
    """Plain JSON-ready structure for a result dataclass (or list of them)."""
    if is_dataclass(obj) and not isinstance(obj, type):
        data = asdict(obj)
        if isinstance(obj, AstronomicalNightWindow):
            data["is_zero_length"] = obj.is_zero_length
            data["duration_s"] = obj.duration.total_seconds()
        return json.loads(json.dumps(data, default=_default))
    if isinstance(obj, (list, tuple)):
        return [to_data(o) for o in obj]
    return obj


def format_json(obj) -> str:
    return json.dumps(to_data(obj), indent=2)


def format_siqs(result: SiqsResult, verbose: bool = False) -> str:
    lines: list[str] = []
    lines.append("Sky Quality (SIQS)")
    lines.append("==================")
    verdict = "viable" if result.is_viable else "not viable"
    lines.append(f"Score: {result.score:.2f} / 10 ({verdict})")
    window = result.metadata.night_window
    if window is not None:
        lines.append(f"Night: {format_window(window)}")
    if not result.factors:
        lines.append("")
        lines.append("No factors available.")
        return "\n".join(lines)

    lines.append("")
    name_w = max(len(f.name) for f in result.factors)
    for factor in result.factors:
        lines.append(f"  {_pad(factor.name, name_w)}  {factor.score:5.2f}  {factor.description}")
    if verbose:
        lines.append("")
        lines.append(f"Cloud samples in window: {result.metadata.cloud_samples}")
        used = [name for name, present in result.metadata.sources if present]
        lines.append("Sources: " + (", ".join(used) if used else "none"))
        lines.append(f"Calculated: {_utc(result.metadata.calculated_at_utc)}")
    return "\n".join(lines)


def format_window(window: AstronomicalNightWindow) -> str:
    if window.is_zero_length:
        return f"none (sun stays above -18° around {_utc(window.start_utc)})"
    hours = window.duration.total_seconds() / 3600.0
    return f"{_utc(window.start_utc)} → {_utc(window.end_utc)} ({hours:.1f} h)"


def format_estimate(estimate: LightPollutionEstimate) -> str:
    if estimate.bortle_scale is None:
        return "Unknown light pollution"
    return f"Bortle {estimate.bortle_scale:g}  SQM {estimate.sqm:.2f} mag/arcsec²  NELM {estimate.nelm:.2f}"


def format_candidates(candidates: Iterable[LocationCandidate]) -> str:
    candidates = list(candidates)
    if not candidates:
        return "No locations."
    lines = []
    name_w = min(40, max(len(c.name) for c in candidates))
    for idx, c in enumerate(candidates, start=1):
        parts = [f"{idx:>2}.", _pad(_truncate(c.name, name_w), name_w)]
        parts.append(f"{c.coordinate.latitude_deg:8.4f} {c.coordinate.longitude_deg:9.4f}")
        if c.distance_km is not None:
            parts.append(f"{c.distance_km:7.1f} km")
        if c.is_certified:
            parts.append(c.certification or "dark sky reserve")
        lines.append("  ".join(parts))
    return "\n".join(lines)


def _utc(dt: datetime.datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return dt.astimezone(datetime.timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def _default(value):
    if isinstance(value, (datetime.datetime, datetime.date)):
        return value.isoformat()
    if isinstance(value, datetime.timedelta):
        return value.total_seconds()
    return str(value)


def _truncate(text: str, width: int) -> str:
    if len(text) <= width:
        return text
    if width <= 1:
        return text[:width]
    return text[: width - 1] + "…"


def _pad(text: str, width: int) -> str:
    return text.ljust(width)
