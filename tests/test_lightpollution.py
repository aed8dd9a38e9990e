import math

import pytest

from skyquality.lightpollution import (
    bortle_to_mpsas,
    bortle_to_nelm,
    brightness_to_bortle,
    estimate_from_bortle,
    mpsas_to_bortle,
    mpsas_to_nelm,
    nelm_to_mpsas,
    raw_brightness_to_mpsas,
)


def test_bortle_input_is_clamped():
    assert bortle_to_mpsas(0) == bortle_to_mpsas(1)
    assert bortle_to_mpsas(-3.5) == bortle_to_mpsas(1)
    assert bortle_to_mpsas(12) == bortle_to_mpsas(9)


@pytest.mark.parametrize(
    "bortle, mpsas",
    [(1, 22.20), (1.5, 22.10), (2, 22.00), (3, 21.89), (4, 21.69), (4.5, 21.09), (8, 18.38), (9, 17.80)],
)
def test_integer_class_sits_on_darker_band_boundary(bortle, mpsas):
    assert bortle_to_mpsas(bortle) == pytest.approx(mpsas)


@pytest.mark.parametrize("band", range(1, 9))
def test_fractional_value_stays_inside_its_band(band):
    for frac in (0.25, 0.5, 0.75):
        assert mpsas_to_bortle(bortle_to_mpsas(band + frac)) == band


def test_darker_class_has_higher_mpsas():
    values = [bortle_to_mpsas(b / 2.0) for b in range(2, 19)]
    assert values == sorted(values, reverse=True)


def test_mpsas_to_bortle_extremes():
    assert mpsas_to_bortle(22.1) == 1
    assert mpsas_to_bortle(16.0) == 9
    assert mpsas_to_bortle(21.0) == 4


def test_saturated_brightness_is_brightest_sky():
    assert raw_brightness_to_mpsas(255) == 16.0
    assert raw_brightness_to_mpsas(300) == 16.0
    assert brightness_to_bortle(255) == 9


def test_black_sample_is_darkest_sky():
    assert raw_brightness_to_mpsas(0) == pytest.approx(22.0)
    assert brightness_to_bortle(0) == 1


def test_brighter_sample_gives_lower_mpsas():
    values = [raw_brightness_to_mpsas(b) for b in range(0, 256, 15)]
    assert values == sorted(values, reverse=True)


def test_nelm_relation_inverts():
    for mpsas in (18.0, 20.0, 21.5):
        assert nelm_to_mpsas(mpsas_to_nelm(mpsas)) == pytest.approx(mpsas, abs=1e-6)
    assert bortle_to_nelm(1) > bortle_to_nelm(9)


def test_estimate_propagates_unknown():
    for value in (None, math.nan, math.inf):
        estimate = estimate_from_bortle(value)
        assert estimate.bortle_scale is None
        assert estimate.sqm is None
        assert estimate.nelm is None


def test_estimate_from_bortle_fills_sqm_and_nelm():
    estimate = estimate_from_bortle(4)
    assert estimate.bortle_scale == 4.0
    assert estimate.sqm == pytest.approx(21.69)
    assert 5.5 < estimate.nelm < 7.5
    assert estimate_from_bortle(15).bortle_scale == 9.0
