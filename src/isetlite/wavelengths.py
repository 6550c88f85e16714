"""Wavelength sampling shared by scenes and optical images.

All spectral entities in :mod:`isetlite` carry a :class:`SpectralSamples`
instance. Samples are always expressed in nanometres and stored as a flat,
strictly increasing ``float64`` array, whatever shape the caller used.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

import numpy as np

logger = logging.getLogger(__name__)

_NM_UNITS: set[str] = {"nm", "nanometer", "nanometers", "nanometre", "nanometres"}
_MICRON_UNITS: set[str] = {
    "um",
    "µm",
    "micron",
    "microns",
    "micrometer",
    "micrometers",
    "micrometre",
    "micrometres",
}
_ANGSTROM_UNITS: set[str] = {"angstrom", "angstroms", "å", "a"}

DEFAULT_WAVE_NM = np.arange(400.0, 701.0, 10.0)
"""Default 400:10:700 nm sampling used when an entity is created without one."""

__all__ = [
    "DEFAULT_WAVE_NM",
    "SpectralSamples",
    "check_monotonic",
    "find_wave_index",
    "to_nm",
    "wavelength_equal",
]


def _normalize_unit(unit: str | None) -> str | None:
    if unit is None:
        return None
    return unit.strip().lower().replace(" ", "")


def to_nm(values: np.ndarray | Iterable[float], from_units: str | None) -> np.ndarray:
    """Convert wavelength values to nanometres.

    Parameters
    ----------
    values:
        Array-like wavelength values.
    from_units:
        Unit label describing ``values``. ``None`` means nanometres; micrometre
        and Ångström spellings are also accepted.
    """

    arr = np.asarray(values, dtype=np.float64)
    unit = _normalize_unit(from_units)

    if unit is None or unit in _NM_UNITS:
        return arr.copy()
    if unit in _MICRON_UNITS:
        return arr * 1e3
    if unit in _ANGSTROM_UNITS:
        return arr * 0.1

    msg = f"Unsupported wavelength units: {from_units!r}"
    raise ValueError(msg)


def check_monotonic(wavelength_nm: np.ndarray, *, strict: bool = True, eps: float = 0.0) -> None:
    """Validate that a wavelength grid is monotonic increasing.

    Raises
    ------
    ValueError
        If the array is not (strictly) increasing within the provided
        tolerance ``eps``.
    """

    arr = np.asarray(wavelength_nm, dtype=np.float64)
    if arr.ndim != 1:
        raise ValueError("Wavelength grid must be a 1-D array")
    if arr.size <= 1:
        return

    diffs = np.diff(arr)
    if strict:
        if np.any(diffs <= eps):
            raise ValueError("Wavelengths must be strictly increasing")
    else:
        if np.any(diffs < -eps):
            raise ValueError("Wavelengths must be non-decreasing")


def wavelength_equal(a_nm: np.ndarray, b_nm: np.ndarray) -> bool:
    """Return ``True`` when two wavelength grids are structurally identical."""

    a_arr = np.asarray(a_nm, dtype=np.float64).ravel()
    b_arr = np.asarray(b_nm, dtype=np.float64).ravel()
    if a_arr.shape != b_arr.shape:
        return False
    return bool(np.array_equal(a_arr, b_arr))


def find_wave_index(wave_nm: np.ndarray, requested: float | Iterable[float]) -> np.ndarray:
    """Return the indices of the samples nearest to ``requested`` wavelengths.

    Each requested value resolves to its nearest sample (no interpolation).
    Indices are returned in ascending order without duplicates, so a request
    for ``[500, 501]`` on a 10 nm grid yields a single plane.
    """

    wave = np.asarray(wave_nm, dtype=np.float64).ravel()
    if wave.size == 0:
        raise ValueError("Cannot index an empty wavelength grid")
    targets = np.atleast_1d(np.asarray(requested, dtype=np.float64)).ravel()
    if targets.size == 0:
        raise ValueError("At least one wavelength must be requested")

    nearest = np.abs(wave[np.newaxis, :] - targets[:, np.newaxis]).argmin(axis=1)
    return np.unique(nearest)


@dataclass(frozen=True, eq=False)
class SpectralSamples:
    """Wavelength axis of a spectral entity, in nanometres."""

    nm: np.ndarray

    def __post_init__(self) -> None:
        a = np.array(self.nm, dtype=np.float64).ravel()
        if a.size == 0:
            raise ValueError("Wavelength samples must contain at least one entry")
        if not np.all(np.isfinite(a)):
            raise ValueError("Wavelength samples must be finite")
        if np.any(a <= 0):
            raise ValueError("Wavelength samples must be positive")
        check_monotonic(a)
        a.setflags(write=False)
        object.__setattr__(self, "nm", a)

    @classmethod
    def from_any(
        cls, values: float | Iterable[float] | np.ndarray, units: str | None = None
    ) -> "SpectralSamples":
        """Create samples from scalars or arrays expressed in nm, µm or Å."""

        if isinstance(values, SpectralSamples):
            return values
        return cls(to_nm(np.atleast_1d(np.asarray(values, dtype=np.float64)), units))

    @classmethod
    def default(cls) -> "SpectralSamples":
        return cls(DEFAULT_WAVE_NM)

    @property
    def wave(self) -> np.ndarray:
        """Wavelength samples (nm) as a fresh writable array."""

        return self.nm.copy()

    @property
    def count(self) -> int:
        return int(self.nm.shape[0])

    @property
    def bin_width(self) -> float:
        """Spacing between the first two samples, or 1 for a single sample."""

        if self.count > 1:
            return float(self.nm[1] - self.nm[0])
        return 1.0

    def equals(self, other: "SpectralSamples | np.ndarray | Iterable[float]") -> bool:
        other_nm = other.nm if isinstance(other, SpectralSamples) else other
        return wavelength_equal(self.nm, np.asarray(other_nm, dtype=np.float64))

    def contains_range(self, other: "SpectralSamples") -> bool:
        """True when ``other`` lies strictly inside this sampling range."""

        return bool(self.nm[0] < other.nm[0] and self.nm[-1] > other.nm[-1])

    def index_of(self, requested: float | Iterable[float]) -> np.ndarray:
        return find_wave_index(self.nm, requested)

    def replace(
        self, new: "SpectralSamples | np.ndarray | Iterable[float]"
    ) -> tuple["SpectralSamples", bool]:
        """Return ``(samples, changed)``; unchanged samples are returned as-is."""

        candidate = new if isinstance(new, SpectralSamples) else SpectralSamples.from_any(new)
        if self.equals(candidate):
            return self, False
        logger.debug(
            "Replacing wavelength samples %s-%s nm (%d) with %s-%s nm (%d)",
            self.nm[0],
            self.nm[-1],
            self.count,
            candidate.nm[0],
            candidate.nm[-1],
            candidate.count,
        )
        return candidate, True

    def __len__(self) -> int:
        return self.count

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SpectralSamples):
            return NotImplemented
        return self.equals(other)

    def __hash__(self) -> int:
        return hash(self.nm.tobytes())
