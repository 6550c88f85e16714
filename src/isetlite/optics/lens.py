"""Lens pigment model.

The lens stores a unit optical-density spectrum on its own native sampling and
a scalar density multiplier. Its *working* wavelength grid can be changed at
will; the stored density data are never altered, only re-interpolated.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

import numpy as np

from isetlite.errors import MissingValueError, UnknownParameterError
from isetlite.params import build_alias_index, resolve_alias
from isetlite.wavelengths import DEFAULT_WAVE_NM, SpectralSamples

logger = logging.getLogger(__name__)

__all__ = ["Lens", "UNIT_DENSITY_WAVE_NM", "UNIT_DENSITY"]

# Approximate lens pigment optical density at 10 nm steps, normalised so that
# density 1.0 corresponds to a young adult lens.
UNIT_DENSITY_WAVE_NM = np.arange(380.0, 711.0, 10.0)
UNIT_DENSITY = np.array(
    [
        2.52, 2.06, 1.76, 1.40, 1.04, 0.77, 0.58, 0.46, 0.37, 0.29,
        0.23, 0.17, 0.12, 0.08, 0.05, 0.03, 0.02, 0.01, 0.005, 0.0,
        0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0,
        0.0, 0.0, 0.0, 0.0,
    ]
)

_ALIASES: dict[str, tuple[str, ...]] = {
    "name": (),
    "wave": ("wavelength", "wavelengths"),
    "density": ("peakdensity",),
    "unit_density": ("unitdensity", "spectraldensity"),
    "absorbance": ("opticaldensity", "absorbancespectrum"),
    "absorptance": ("absorption",),
    "transmittance": ("transmission",),
}
_INDEX = build_alias_index(_ALIASES)


class Lens:
    """Lens pigment with a settable working wavelength grid."""

    def __init__(
        self,
        *,
        name: str = "lens",
        wave: SpectralSamples | np.ndarray | None = None,
        density: float = 0.0,
    ) -> None:
        self.name = name
        self._samples = SpectralSamples.from_any(DEFAULT_WAVE_NM if wave is None else wave)
        self._density_wave = UNIT_DENSITY_WAVE_NM.copy()
        self._unit_density = UNIT_DENSITY.copy()
        self.density = float(density)

    @property
    def wave(self) -> np.ndarray:
        return self._samples.wave

    @wave.setter
    def wave(self, value: SpectralSamples | np.ndarray) -> None:
        self._samples = SpectralSamples.from_any(value)

    @property
    def density(self) -> float:
        return self._density

    @density.setter
    def density(self, value: float) -> None:
        value = float(value)
        if not np.isfinite(value) or value < 0:
            raise ValueError("Lens density must be a finite, non-negative number")
        self._density = value

    @property
    def unit_density(self) -> np.ndarray:
        """Unit density interpolated to the working wavelengths (0 outside the table)."""

        return np.interp(
            self._samples.nm, self._density_wave, self._unit_density, left=0.0, right=0.0
        )

    @property
    def absorbance(self) -> np.ndarray:
        return self.unit_density * self._density

    @property
    def transmittance(self) -> np.ndarray:
        return 10.0 ** (-self.absorbance)

    @property
    def absorptance(self) -> np.ndarray:
        return 1.0 - self.transmittance

    def set_unit_density(self, wave_nm: np.ndarray, density: np.ndarray) -> None:
        wave = SpectralSamples.from_any(wave_nm).nm
        values = np.asarray(density, dtype=np.float64).ravel()
        if values.shape != wave.shape:
            raise ValueError("Unit density must have one value per wavelength")
        self._density_wave = wave.copy()
        self._unit_density = values

    def get(self, param: str, *args: Any) -> Any:
        key = resolve_alias(_INDEX, param)
        if key is None:
            raise UnknownParameterError(param, owner="lens")
        if key == "unit_density":
            return self.unit_density
        return getattr(self, key)

    def set(self, param: str, *args: Any) -> "Lens":
        if not args:
            raise MissingValueError(f"lens set {param!r} requires a value")
        value = args[0]
        key = resolve_alias(_INDEX, param)
        if key in ("name", "wave", "density"):
            setattr(self, key, value)
        elif key == "unit_density":
            if len(args) < 2:
                raise MissingValueError("unit density requires wavelengths and densities")
            self.set_unit_density(args[0], args[1])
        else:
            raise UnknownParameterError(param, owner="lens")
        return self

    def copy(self) -> "Lens":
        return copy.deepcopy(self)

    def __repr__(self) -> str:
        return f"Lens(name={self.name!r}, density={self._density}, nwave={self._samples.count})"
