"""Pytest configuration and shared fixtures for the isetlite test suite."""

from __future__ import annotations

from collections.abc import Callable

import numpy as np
import pytest

from isetlite.oi import OpticalImage
from isetlite.scene import Scene

WAVE_NM = np.arange(400.0, 701.0, 10.0)


def _uniform_oi(
    value: float = 10.0,
    *,
    rows: int = 8,
    cols: int = 8,
    wave: np.ndarray = WAVE_NM,
    fov_deg: float = 2.0,
    distance_m: float = 0.004,
    name: str = "uniform",
) -> OpticalImage:
    photons = np.full((rows, cols, len(wave)), value, dtype=np.float64)
    return OpticalImage(name, wave=wave, photons=photons, fov_deg=fov_deg, distance_m=distance_m)


@pytest.fixture
def make_oi() -> Callable[..., OpticalImage]:
    """Factory for optical images with uniform photons."""

    return _uniform_oi


@pytest.fixture
def uniform_oi() -> OpticalImage:
    return _uniform_oi(1e15)


@pytest.fixture
def sloped_oi() -> OpticalImage:
    """Optical image whose spectrum rises linearly with wavelength."""

    spectrum = np.linspace(1.0, 3.0, WAVE_NM.size) * 1e15
    photons = np.broadcast_to(spectrum, (6, 5, WAVE_NM.size)).copy()
    return OpticalImage("sloped", wave=WAVE_NM, photons=photons, fov_deg=2.0, distance_m=0.004)


@pytest.fixture
def companion_scene() -> Scene:
    photons = np.ones((10, 12, WAVE_NM.size))
    return Scene("companion", wave=WAVE_NM, photons=photons, fov_deg=4.0, distance_m=1.2)
