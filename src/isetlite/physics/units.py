"""Spatial and angular unit scale factors.

Geometric getters return values in metres by default. A trailing unit token
selects another spatial scale; the natural-unit result is multiplied by the
factor returned here (squared for areas).
"""

from __future__ import annotations

import numpy as np

__all__ = [
    "angle_scale_factor",
    "normalize_unit",
    "unit_scale_factor",
]

_SPATIAL_UNITS: dict[str, float] = {
    "nm": 1e9,
    "nanometer": 1e9,
    "nanometers": 1e9,
    "um": 1e6,
    "µm": 1e6,
    "micron": 1e6,
    "microns": 1e6,
    "micrometer": 1e6,
    "micrometers": 1e6,
    "mm": 1e3,
    "millimeter": 1e3,
    "millimeters": 1e3,
    "cm": 1e2,
    "centimeter": 1e2,
    "centimeters": 1e2,
    "m": 1.0,
    "meter": 1.0,
    "meters": 1.0,
    "km": 1e-3,
    "kilometer": 1e-3,
    "kilometers": 1e-3,
}

_ANGULAR_UNITS: dict[str, float] = {
    "deg": 1.0,
    "degree": 1.0,
    "degrees": 1.0,
    "min": 60.0,
    "arcmin": 60.0,
    "sec": 3600.0,
    "arcsec": 3600.0,
    "rad": np.pi / 180.0,
    "radian": np.pi / 180.0,
    "radians": np.pi / 180.0,
}


def normalize_unit(unit: str) -> str:
    return unit.strip().lower().replace(" ", "")


def unit_scale_factor(unit: str | None) -> float:
    """Return the factor converting metres to ``unit``.

    ``None`` and ``"m"`` give 1; ``"mm"`` gives 1e3; ``"um"``/``"microns"``
    give 1e6; ``"nm"`` gives 1e9.
    """

    if unit is None:
        return 1.0
    token = normalize_unit(str(unit))
    try:
        return _SPATIAL_UNITS[token]
    except KeyError:
        msg = f"Unsupported spatial unit: {unit!r}"
        raise ValueError(msg) from None


def angle_scale_factor(unit: str | None) -> float:
    """Return the factor converting degrees to ``unit``."""

    if unit is None:
        return 1.0
    token = normalize_unit(str(unit))
    try:
        return _ANGULAR_UNITS[token]
    except KeyError:
        msg = f"Unknown angular unit: {unit!r}"
        raise ValueError(msg) from None
