"""Photon irradiance cube with cached photometric summaries.

:class:`RadiometricArray` stores the ``(rows, cols, nwave)`` photon cube of a
scene or optical image together with the wavelength samples it is indexed by.
Illuminance and mean illuminance are expensive to derive, so they are held in
:class:`DerivedValue` slots that every photon write invalidates explicitly.
"""

from __future__ import annotations

import copy
import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from typing import Generic, TypeVar

import numpy as np

from isetlite.errors import InvalidRegionError, UnsupportedPrecisionError
from isetlite.physics.colorimetry import (
    LUMINOUS_EFFICACY,
    illuminance_from_photons,
    xyz_from_energy,
)
from isetlite.physics.noise import DEFAULT_POISSON_CRITERION, photon_noise
from isetlite.physics.quanta import quanta_to_energy
from isetlite.wavelengths import SpectralSamples

logger = logging.getLogger(__name__)

T = TypeVar("T")

_PRECISIONS: dict[int, type[np.floating]] = {32: np.float32, 64: np.float64}

__all__ = ["DerivedValue", "RadiometricArray"]


class DerivedValue(Generic[T]):
    """A memoised value that is computed on first read and explicitly invalidated."""

    __slots__ = ("_value",)

    def __init__(self) -> None:
        self._value: T | None = None

    @property
    def is_set(self) -> bool:
        return self._value is not None

    def get(self, compute: Callable[[], T]) -> T:
        if self._value is None:
            self._value = compute()
        return self._value

    def peek(self) -> T | None:
        return self._value

    def set(self, value: T | None) -> None:
        self._value = value

    def invalidate(self) -> None:
        self._value = None


def _check_precision(bit_depth: int) -> type[np.floating]:
    try:
        return _PRECISIONS[int(bit_depth)]
    except (KeyError, TypeError, ValueError):
        raise UnsupportedPrecisionError(
            f"Unsupported bit depth {bit_depth!r}; expected 32 or 64"
        ) from None


class RadiometricArray:
    """Photon data ``(rows, cols, nwave)`` plus derived photometric caches.

    Parameters
    ----------
    samples:
        Wavelength samples indexing the last axis.
    photons:
        Optional initial photon cube; must be floating point.
    bit_depth:
        Storage precision, 32 (float32) or 64 (float64).
    strict_non_negative:
        When true, photon writes containing negative values are rejected.
    efficacy:
        Luminous efficacy (lm/W) used for illuminance and XYZ.
    """

    def __init__(
        self,
        samples: SpectralSamples | None = None,
        photons: np.ndarray | None = None,
        *,
        bit_depth: int = 32,
        strict_non_negative: bool = False,
        efficacy: float = LUMINOUS_EFFICACY,
    ) -> None:
        self._samples = samples if samples is not None else SpectralSamples.default()
        self._dtype = _check_precision(bit_depth)
        self._bit_depth = int(bit_depth)
        self.strict_non_negative = bool(strict_non_negative)
        self.efficacy = float(efficacy)
        self._photons: np.ndarray | None = None
        self.illuminance_cache: DerivedValue[np.ndarray] = DerivedValue()
        self.mean_illuminance_cache: DerivedValue[float] = DerivedValue()
        self._lock = threading.RLock()
        if photons is not None:
            self.set_photons(photons)

    # ---------- Basic properties ----------

    @property
    def lock(self) -> threading.RLock:
        """Re-entrant lock guarding photon reads, writes and cache updates."""

        return self._lock

    @property
    def samples(self) -> SpectralSamples:
        return self._samples

    @property
    def wave(self) -> np.ndarray:
        return self._samples.wave

    @property
    def has_data(self) -> bool:
        return self._photons is not None

    @property
    def shape(self) -> tuple[int, int, int] | None:
        if self._photons is None:
            return None
        rows, cols, nwave = self._photons.shape
        return int(rows), int(cols), int(nwave)

    @property
    def rows(self) -> int | None:
        return None if self._photons is None else int(self._photons.shape[0])

    @property
    def cols(self) -> int | None:
        return None if self._photons is None else int(self._photons.shape[1])

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(self._dtype)

    @property
    def bit_depth(self) -> int:
        """Storage precision of photon data: 32 or 64."""

        return self._bit_depth

    @bit_depth.setter
    def bit_depth(self, value: int) -> None:
        dtype = _check_precision(value)
        with self._lock:
            self._bit_depth = int(value)
            self._dtype = dtype
            if self._photons is not None:
                self._photons = self._photons.astype(dtype)

    def _require_data(self) -> np.ndarray:
        if self._photons is None:
            raise ValueError("No photon data")
        return self._photons

    # ---------- Photons ----------

    def get_photons(self, wave_subset: float | Iterable[float] | None = None) -> np.ndarray:
        """Return the photon cube (float64 copy).

        When ``wave_subset`` is given, the planes nearest to the requested
        wavelengths are returned as a ``(rows, cols, k)`` cube.
        """

        with self._lock:
            photons = self._require_data()
            if wave_subset is None:
                return photons.astype(np.float64, copy=True)
            idx = self._samples.index_of(wave_subset)
            return photons[:, :, idx].astype(np.float64, copy=True)

    def _validate_values(self, values: np.ndarray) -> np.ndarray:
        arr = np.asarray(values)
        if not np.issubdtype(arr.dtype, np.floating):
            raise TypeError(f"Photons must be floating point (single or double), got {arr.dtype}")
        if self.strict_non_negative and np.any(arr < 0):
            raise ValueError("Photon values must be non-negative")
        return arr

    def set_photons(
        self,
        values: np.ndarray,
        wave_subset: float | Iterable[float] | None = None,
    ) -> None:
        """Write photons and invalidate the illuminance caches.

        Without ``wave_subset`` the whole cube is replaced and must have one
        plane per wavelength sample. With ``wave_subset`` only the nearest
        planes are written; the spatial size must match the existing data.
        """

        arr = self._validate_values(values)
        with self._lock:
            if wave_subset is None:
                if arr.ndim == 2 and self._samples.count == 1:
                    arr = arr[:, :, np.newaxis]
                if arr.ndim != 3:
                    raise ValueError("Photon data must be 3-D (rows, cols, nwave)")
                if arr.shape[2] != self._samples.count:
                    msg = (
                        f"Photon data has {arr.shape[2]} wavelength planes but there are "
                        f"{self._samples.count} wavelength samples"
                    )
                    raise ValueError(msg)
                self._photons = np.array(arr, dtype=self._dtype, copy=True)
            else:
                photons = self._require_data()
                idx = self._samples.index_of(wave_subset)
                if arr.ndim == 2:
                    arr = arr[:, :, np.newaxis]
                expected = (photons.shape[0], photons.shape[1], idx.size)
                if arr.shape != expected:
                    raise ValueError(f"Photon plane shape {arr.shape} does not match {expected}")
                photons[:, :, idx] = arr.astype(self._dtype)
            self.invalidate()

    def invalidate(self) -> None:
        """Clear the illuminance and mean-illuminance caches."""

        with self._lock:
            self.illuminance_cache.invalidate()
            self.mean_illuminance_cache.invalidate()

    def replace_wave(self, samples: SpectralSamples, photons: np.ndarray | None) -> None:
        """Swap the wavelength axis together with matching photon data."""

        with self._lock:
            previous = self._samples
            self._samples = samples
            if photons is None:
                self._photons = None
                self.invalidate()
                return
            try:
                self.set_photons(photons)
            except (TypeError, ValueError):
                self._samples = previous
                raise

    @property
    def data_max(self) -> float | None:
        with self._lock:
            return None if self._photons is None else float(np.max(self._photons))

    @property
    def data_min(self) -> float | None:
        with self._lock:
            return None if self._photons is None else float(np.min(self._photons))

    # ---------- Derived quantities ----------

    def _compute_illuminance(self) -> np.ndarray:
        photons = self._require_data()
        return illuminance_from_photons(photons, self._samples.nm, efficacy=self.efficacy)

    def get_illuminance(self) -> np.ndarray:
        """Illuminance map (lux), computed lazily and cached until the next write."""

        with self._lock:
            return self.illuminance_cache.get(self._compute_illuminance)

    def set_illuminance(self, value: np.ndarray | None) -> None:
        """Store an illuminance map directly; ``None`` clears the cache."""

        with self._lock:
            if value is None:
                self.invalidate()
                return
            illum = np.asarray(value, dtype=np.float64)
            if self._photons is not None and illum.shape != self._photons.shape[:2]:
                raise ValueError("Illuminance map must match the photon spatial size")
            self.illuminance_cache.set(illum)
            self.mean_illuminance_cache.invalidate()

    def get_mean_illuminance(self) -> float:
        with self._lock:
            return self.mean_illuminance_cache.get(
                lambda: float(np.mean(self.get_illuminance()))
            )

    def set_mean_illuminance(self, target_lux: float) -> None:
        """Scale every photon by ``target / current`` mean illuminance."""

        target = float(target_lux)
        with self._lock:
            current = self.get_mean_illuminance()
            if current == target:
                return
            if current == 0.0:
                raise ValueError("Cannot rescale photons with zero mean illuminance")
            photons = self._require_data()
            self._photons = (photons.astype(np.float64) * (target / current)).astype(self._dtype)
            self.invalidate()
            self.illuminance_cache.set(self._compute_illuminance())
            logger.debug("Rescaled photons from %.6g to %.6g lux", current, target)

    def get_energy(self) -> np.ndarray:
        """Energy cube from the quanta-energy relation, float64."""

        with self._lock:
            return quanta_to_energy(self._samples.nm, self._require_data())

    def get_xyz(self) -> np.ndarray:
        """CIE XYZ image ``(rows, cols, 3)``."""

        with self._lock:
            return xyz_from_energy(self.get_energy(), self._samples.nm, efficacy=self.efficacy)

    # ---------- Regions of interest ----------

    def _roi_index(self, locs: Sequence[Sequence[int]] | np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        photons = self._require_data()
        arr = np.asarray(locs)
        if arr.size == 0:
            raise InvalidRegionError("Region of interest is empty")
        arr = np.atleast_2d(arr)
        if arr.ndim != 2 or arr.shape[1] != 2:
            raise InvalidRegionError("Region locations must be (row, col) pairs")
        if not np.issubdtype(arr.dtype, np.integer):
            if not np.all(np.equal(np.mod(arr, 1), 0)):
                raise InvalidRegionError("Region locations must be integer pixel indices")
            arr = arr.astype(np.int64)
        rows, cols = arr[:, 0], arr[:, 1]
        if np.any(rows < 0) or np.any(cols < 0):
            raise InvalidRegionError("Region locations must be non-negative")
        if np.any(rows >= photons.shape[0]) or np.any(cols >= photons.shape[1]):
            raise InvalidRegionError(f"Region exceeds image size {photons.shape[:2]}")
        return rows, cols

    def roi_photons(self, locs: Sequence[Sequence[int]] | np.ndarray) -> np.ndarray:
        """Photon spectra at ``locs`` as an ``(n_locs, nwave)`` array."""

        with self._lock:
            rows, cols = self._roi_index(locs)
            return self._require_data()[rows, cols, :].astype(np.float64)

    def roi_mean_photons(self, locs: Sequence[Sequence[int]] | np.ndarray) -> np.ndarray:
        return self.roi_photons(locs).mean(axis=0)

    def roi_energy(self, locs: Sequence[Sequence[int]] | np.ndarray) -> np.ndarray:
        return quanta_to_energy(self._samples.nm, self.roi_photons(locs))

    def roi_mean_energy(self, locs: Sequence[Sequence[int]] | np.ndarray) -> np.ndarray:
        return self.roi_energy(locs).mean(axis=0)

    # ---------- Noise ----------

    def photons_noise(
        self,
        *,
        sample_area_m2: float,
        integration_time_s: float,
        rng: np.random.Generator | int | None = None,
        poisson_criterion: float = DEFAULT_POISSON_CRITERION,
    ) -> np.ndarray:
        """Noisy photon counts for one pixel area and integration time."""

        if sample_area_m2 <= 0 or integration_time_s <= 0:
            raise ValueError("Collection area and integration time must be positive")
        with self._lock:
            counts = self._require_data().astype(np.float64) * sample_area_m2 * integration_time_s
        return photon_noise(counts, rng=rng, poisson_criterion=poisson_criterion)

    def energy_noise(
        self,
        *,
        sample_area_m2: float,
        integration_time_s: float,
        rng: np.random.Generator | int | None = None,
        poisson_criterion: float = DEFAULT_POISSON_CRITERION,
    ) -> np.ndarray:
        noisy = self.photons_noise(
            sample_area_m2=sample_area_m2,
            integration_time_s=integration_time_s,
            rng=rng,
            poisson_criterion=poisson_criterion,
        )
        return quanta_to_energy(self._samples.nm, noisy)

    def copy(self) -> "RadiometricArray":
        with self._lock:
            clone = copy.copy(self)
            clone._photons = None if self._photons is None else self._photons.copy()
            clone.illuminance_cache = DerivedValue()
            clone.mean_illuminance_cache = DerivedValue()
            illum = self.illuminance_cache.peek()
            if illum is not None:
                clone.illuminance_cache.set(illum.copy())
            clone.mean_illuminance_cache.set(self.mean_illuminance_cache.peek())
            clone._lock = threading.RLock()
            return clone
