import math

from skyquality.types import LightPollutionEstimate

# Lower MPSAS boundary of Bortle classes 1..9, plus the floor of class 9.
# Class 1 interpolates up to 22.20.
_CLASS_BOUNDARIES = (22.00, 21.89, 21.69, 20.49, 19.50, 18.94, 18.38, 17.80, 17.00)
_DARKEST_MPSAS = 22.20

BRIGHTNESS_MPSAS_MIN = 16.0
BRIGHTNESS_MPSAS_SPAN = 6.0
_BRIGHTNESS_GAMMA = 0.92


def _clamp_bortle(bortle: float) -> float:
    return max(1.0, min(9.0, float(bortle)))


def _band(bortle: int) -> tuple[float, float]:
    lower = _CLASS_BOUNDARIES[bortle - 1]
    upper = _DARKEST_MPSAS if bortle == 1 else _CLASS_BOUNDARIES[bortle - 2]
    return lower, upper


def bortle_to_mpsas(bortle: float) -> float:
    # Interpolates inside band floor(b), so an integer class sits on the
    # darker boundary of its band: 1 -> 22.20, 2 -> 22.00, 9 -> 17.80.
    b = _clamp_bortle(bortle)
    band = int(math.floor(b))
    lower, upper = _band(band)
    return lower + (upper - lower) * (band + 1 - b)


def mpsas_to_bortle(mpsas: float) -> int:
    for bortle, boundary in enumerate(_CLASS_BOUNDARIES[:8], start=1):
        if mpsas >= boundary:
            return bortle
    return 9


def raw_brightness_to_mpsas(brightness: float) -> float:
    """Map an 8-bit sky brightness sample onto roughly 16..22 MPSAS.

    This is an empirical approximation of what a sky quality meter would
    read, not a physical calibration. A saturated sample (255) returns the
    brightest value, 16.0.
    """
    inverted = 255.0 - max(0.0, min(255.0, float(brightness)))
    if inverted <= 0:
        return BRIGHTNESS_MPSAS_MIN
    log_factor = math.log(inverted + 1.0) / math.log(256.0)
    return BRIGHTNESS_MPSAS_MIN + (log_factor ** _BRIGHTNESS_GAMMA) * BRIGHTNESS_MPSAS_SPAN


def brightness_to_bortle(brightness: float) -> int:
    return mpsas_to_bortle(raw_brightness_to_mpsas(brightness))


def mpsas_to_nelm(mpsas: float) -> float:
    return 7.93 - 5.0 * math.log10(10 ** (4.316 - mpsas / 5.0) + 1.0)


def nelm_to_mpsas(nelm: float) -> float:
    # The relation saturates at NELM 7.93; keep the log argument positive.
    nelm = min(nelm, 7.92)
    return 5.0 * (4.316 - math.log10(10 ** ((7.93 - nelm) / 5.0) - 1.0))


def bortle_to_nelm(bortle: float) -> float:
    return mpsas_to_nelm(bortle_to_mpsas(bortle))


def estimate_from_bortle(bortle: float | None) -> LightPollutionEstimate:
    if bortle is None or not math.isfinite(bortle):
        return LightPollutionEstimate()
    b = _clamp_bortle(bortle)
    sqm = bortle_to_mpsas(b)
    return LightPollutionEstimate(
        bortle_scale=b,
        sqm=round(sqm, 2),
        nelm=round(mpsas_to_nelm(sqm), 2),
    )
