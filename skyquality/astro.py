import datetime
import math

from skyquality.types import AstronomicalNightWindow, GeoCoordinate

ASTRONOMICAL_TWILIGHT_DEG = -18.0
SAMPLE_CADENCE_MIN = 10
REFINE_TOLERANCE_S = 1.0


def _as_utc(dt: datetime.datetime) -> datetime.datetime:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return dt.astimezone(datetime.timezone.utc)


def _to_julian_date(dt: datetime.datetime) -> float:
    dt = _as_utc(dt)
    year = dt.year
    month = dt.month
    day = dt.day + (dt.hour + (dt.minute + (dt.second + dt.microsecond / 1e6) / 60.0) / 60.0) / 24.0
    if month <= 2:
        year -= 1
        month += 12
    a = math.floor(year / 100)
    b = 2 - a + math.floor(a / 4)
    jd = math.floor(365.25 * (year + 4716)) + math.floor(30.6001 * (month + 1)) + day + b - 1524.5
    return jd


def _normalize_angle_rad(angle: float) -> float:
    return angle % (2.0 * math.pi)


def _gmst_rad(dt: datetime.datetime) -> float:
    d = _to_julian_date(dt) - 2451545.0
    gmst_hours = 18.697374558 + 24.06570982441908 * d
    return _normalize_angle_rad(math.radians((gmst_hours % 24.0) * 15.0))


def sun_ra_dec_rad(dt: datetime.datetime) -> tuple[float, float]:
    n = _to_julian_date(dt) - 2451545.0
    l = math.radians((280.460 + 0.9856474 * n) % 360.0)
    g = math.radians((357.528 + 0.9856003 * n) % 360.0)
    lam = l + math.radians(1.915) * math.sin(g) + math.radians(0.020) * math.sin(2 * g)
    eps = math.radians(23.439 - 0.0000004 * n)
    ra = math.atan2(math.cos(eps) * math.sin(lam), math.cos(lam))
    dec = math.asin(math.sin(eps) * math.sin(lam))
    return _normalize_angle_rad(ra), dec


def moon_ra_dec_rad(dt: datetime.datetime) -> tuple[float, float]:
    n = _to_julian_date(dt) - 2451545.0
    l = math.radians((218.316 + 13.176396 * n) % 360.0)
    m = math.radians((134.963 + 13.064993 * n) % 360.0)
    f = math.radians((93.272 + 13.229350 * n) % 360.0)
    lam = l + math.radians(6.289) * math.sin(m)
    beta = math.radians(5.128) * math.sin(f)
    eps = math.radians(23.439 - 0.0000004 * n)
    sin_dec = math.sin(beta) * math.cos(eps) + math.cos(beta) * math.sin(eps) * math.sin(lam)
    dec = math.asin(max(-1.0, min(1.0, sin_dec)))
    y = math.sin(lam) * math.cos(eps) - math.tan(beta) * math.sin(eps)
    x = math.cos(lam)
    return _normalize_angle_rad(math.atan2(y, x)), dec


def altitude_rad(ra_rad: float, dec_rad: float, lat_rad: float, lon_deg: float, dt: datetime.datetime) -> float:
    lst = _normalize_angle_rad(_gmst_rad(dt) + math.radians(lon_deg))
    ha = _normalize_angle_rad(lst - ra_rad)
    sin_alt = math.sin(dec_rad) * math.sin(lat_rad) + math.cos(dec_rad) * math.cos(lat_rad) * math.cos(ha)
    return math.asin(max(-1.0, min(1.0, sin_alt)))


def sun_altitude_deg(coordinate: GeoCoordinate, dt: datetime.datetime) -> float:
    ra, dec = sun_ra_dec_rad(dt)
    return math.degrees(
        altitude_rad(ra, dec, math.radians(coordinate.latitude_deg), coordinate.longitude_deg, dt)
    )


def angular_separation_rad(ra1: float, dec1: float, ra2: float, dec2: float) -> float:
    cos_sep = math.sin(dec1) * math.sin(dec2) + math.cos(dec1) * math.cos(dec2) * math.cos(ra1 - ra2)
    return math.acos(max(-1.0, min(1.0, cos_sep)))


def moon_illumination_fraction(dt: datetime.datetime) -> float:
    ra_sun, dec_sun = sun_ra_dec_rad(dt)
    ra_moon, dec_moon = moon_ra_dec_rad(dt)
    elong = angular_separation_rad(ra_sun, dec_sun, ra_moon, dec_moon)
    return (1.0 - math.cos(elong)) / 2.0


def _solar_noon_utc(coordinate: GeoCoordinate, date: datetime.date) -> datetime.datetime:
    noon = datetime.datetime(date.year, date.month, date.day, 12, tzinfo=datetime.timezone.utc)
    return noon - datetime.timedelta(hours=coordinate.longitude_deg / 15.0)


def _sample_times(
    start: datetime.datetime,
    end: datetime.datetime,
    cadence_min: int,
) -> list[datetime.datetime]:
    total_min = (end - start).total_seconds() / 60.0
    if total_min <= cadence_min:
        return [start, end]
    steps = max(1, math.ceil(total_min / cadence_min))
    delta = (end - start) / steps
    return [start + delta * i for i in range(steps + 1)]


def _refine_crossing(
    coordinate: GeoCoordinate,
    before: datetime.datetime,
    after: datetime.datetime,
    threshold_deg: float,
) -> datetime.datetime:
    # Bisect until the bracket is within tolerance; `before` and `after`
    # sit on opposite sides of the threshold.
    before_dark = sun_altitude_deg(coordinate, before) <= threshold_deg
    while (after - before).total_seconds() > REFINE_TOLERANCE_S:
        mid = before + (after - before) / 2
        if (sun_altitude_deg(coordinate, mid) <= threshold_deg) == before_dark:
            before = mid
        else:
            after = mid
    return after.replace(microsecond=0)


def compute_night_window(
    coordinate: GeoCoordinate,
    date: datetime.date,
    threshold_deg: float = ASTRONOMICAL_TWILIGHT_DEG,
) -> AstronomicalNightWindow:
    """Astronomical night starting on the evening of ``date`` at ``coordinate``.

    The search spans local solar noon to the following solar noon. When the
    sun never sinks below the threshold the window is zero-length at solar
    midnight; when it never rises above it the whole span is night.
    """
    if isinstance(date, datetime.datetime):
        date = _as_utc(date).date()
    span_start = _solar_noon_utc(coordinate, date)
    span_end = span_start + datetime.timedelta(days=1)
    samples = _sample_times(span_start, span_end, SAMPLE_CADENCE_MIN)
    dark = [sun_altitude_deg(coordinate, t) <= threshold_deg for t in samples]

    if not any(dark):
        midnight = span_start + datetime.timedelta(hours=12)
        return AstronomicalNightWindow(start_utc=midnight, end_utc=midnight)
    if all(dark):
        return AstronomicalNightWindow(start_utc=span_start, end_utc=span_end)

    start = span_start if dark[0] else None
    end = None
    for i in range(1, len(samples)):
        if start is None:
            if dark[i]:
                start = _refine_crossing(coordinate, samples[i - 1], samples[i], threshold_deg)
        elif not dark[i]:
            end = _refine_crossing(coordinate, samples[i - 1], samples[i], threshold_deg)
            break
    if end is None:
        end = span_end
    return AstronomicalNightWindow(start_utc=start, end_utc=end)
