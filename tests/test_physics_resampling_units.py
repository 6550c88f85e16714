from __future__ import annotations

import numpy as np
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from isetlite.physics import angle_scale_factor, interpolate_wave, unit_scale_factor


def test_linear_spectrum_interpolates_exactly():
    old = np.arange(400.0, 701.0, 10.0)
    new = np.array([405.0, 512.5, 699.0])
    cube = np.broadcast_to(old, (2, 3, old.size)).copy()

    out = interpolate_wave(old, new, cube)

    assert out.shape == (2, 3, 3)
    np.testing.assert_allclose(out, np.broadcast_to(new, (2, 3, 3)))


def test_outside_old_range_is_zero():
    old = np.array([400.0, 500.0, 600.0])
    new = np.array([350.0, 450.0, 650.0])
    cube = np.ones((1, 1, 3))

    out = interpolate_wave(old, new, cube)

    np.testing.assert_array_equal(out[0, 0], [0.0, 1.0, 0.0])


def test_float32_precision_is_preserved():
    old = np.array([400.0, 500.0])
    cube = np.ones((2, 2, 2), dtype=np.float32)
    out = interpolate_wave(old, np.array([450.0]), cube)
    assert out.dtype == np.float32


def test_single_old_sample_only_matches_itself():
    out = interpolate_wave(np.array([550.0]), np.array([540.0, 550.0]), np.full((1, 1, 1), 3.0))
    np.testing.assert_array_equal(out[0, 0], [0.0, 3.0])


def test_mismatched_cube_rejected():
    with pytest.raises(ValueError):
        interpolate_wave(np.array([400.0, 500.0]), np.array([450.0]), np.ones((1, 1, 3)))


@settings(max_examples=50, deadline=None)
@given(
    st.lists(
        st.floats(min_value=0.0, max_value=1e6, allow_nan=False, allow_infinity=False),
        min_size=31,
        max_size=31,
    )
)
def test_resampling_on_same_grid_is_identity(values):
    wave = np.arange(400.0, 701.0, 10.0)
    cube = np.asarray(values, dtype=np.float64).reshape(1, 1, -1)
    np.testing.assert_allclose(interpolate_wave(wave, wave, cube), cube)


@pytest.mark.parametrize(
    "unit, factor",
    [
        (None, 1.0),
        ("m", 1.0),
        ("cm", 1e2),
        ("mm", 1e3),
        ("um", 1e6),
        ("microns", 1e6),
        ("nm", 1e9),
        ("km", 1e-3),
        (" MM ", 1e3),
    ],
)
def test_unit_scale_factor(unit, factor):
    assert unit_scale_factor(unit) == factor


def test_unknown_unit_rejected():
    with pytest.raises(ValueError):
        unit_scale_factor("parsec")


@pytest.mark.parametrize(
    "unit, factor", [("deg", 1.0), ("min", 60.0), ("sec", 3600.0), ("radians", np.pi / 180)]
)
def test_angle_scale_factor(unit, factor):
    assert angle_scale_factor(unit) == pytest.approx(factor)
