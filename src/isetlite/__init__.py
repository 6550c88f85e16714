"""isetlite: spectral optical-image simulation core.

Scenes (spectral radiance) are turned into optical images (spectral irradiance
at the sensor plane) whose photon data, photometric summaries and geometry are
exposed through typed methods and a string-keyed ``oi_get``/``oi_set`` adapter.
Two optical images can be composited over time with :class:`OISequence`.
"""

from __future__ import annotations

import importlib
from typing import Any

from .errors import (
    ConstructionError,
    InvalidRegionError,
    IsetError,
    MissingValueError,
    UnknownParameterError,
    UnsupportedPrecisionError,
)
from .version import __version__
from .wavelengths import SpectralSamples

__all__ = [
    "__version__",
    "ConstructionError",
    "InvalidRegionError",
    "IsetError",
    "MissingValueError",
    "SpectralSamples",
    "UnknownParameterError",
    "UnsupportedPrecisionError",
    "config",
    "data",
    "oi",
    "optics",
    "physics",
    "scene",
    "utils",
]

_SUBMODULES = {"config", "data", "oi", "optics", "physics", "scene", "utils"}


def __getattr__(name: str) -> Any:
    if name in _SUBMODULES:
        module = importlib.import_module(f"{__name__}.{name}")
        globals()[name] = module
        return module
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
