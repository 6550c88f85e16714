"""Temporal compositing of a fixed and a modulated optical image.

An :class:`OISequence` holds two optical images with identical spatial support
and produces, on demand, one composite frame per sample of its modulation
function. Frames are recomputed from the two base photon cubes every time they
are requested and never stored.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np

from isetlite.errors import ConstructionError
from isetlite.oi.compute import oi_compute
from isetlite.oi.optical_image import OpticalImage

if TYPE_CHECKING:
    from isetlite.scene import Scene

logger = logging.getLogger(__name__)

__all__ = [
    "COMPOSERS",
    "Composer",
    "Composition",
    "ModulationRegion",
    "OISequence",
    "compose_add",
    "compose_blend",
    "compose_xor",
    "ois_from_scenes",
]

SPATIAL_SUPPORT_DECIMALS = 7
DEFAULT_SAMPLE_INTERVAL_S = 0.001


class Composition(str, Enum):
    ADD = "add"
    BLEND = "blend"
    XOR = "xor"

    @classmethod
    def parse(cls, value: "Composition | str") -> "Composition":
        if isinstance(value, Composition):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            options = ", ".join(c.value for c in cls)
            raise ConstructionError(
                f"Unknown composition {value!r}; expected one of {options}"
            ) from None


@dataclass(frozen=True, slots=True)
class ModulationRegion:
    """Disk, centred on the image, where the modulation is applied.

    ``radius_um`` of ``None`` or NaN means the whole frame.
    """

    radius_um: float | None = None

    @property
    def whole_frame(self) -> bool:
        return self.radius_um is None or math.isnan(self.radius_um)

    def mask(self, support_um: np.ndarray) -> np.ndarray:
        """Float ``(rows, cols)`` mask, 1 inside the region and 0 outside."""

        if self.whole_frame:
            return np.ones(support_um.shape[:2], dtype=np.float64)
        radius = np.hypot(support_um[..., 0], support_um[..., 1])
        return (radius <= self.radius_um).astype(np.float64)


Composer = Callable[[np.ndarray, np.ndarray, float, np.ndarray], np.ndarray]
"""``composer(fixed, modulated, weight, mask) -> photons``; mask is ``(rows, cols)``."""


def compose_add(fixed: np.ndarray, modulated: np.ndarray, weight: float, mask: np.ndarray) -> np.ndarray:
    return fixed + (weight * mask)[..., np.newaxis] * modulated


def compose_blend(fixed: np.ndarray, modulated: np.ndarray, weight: float, mask: np.ndarray) -> np.ndarray:
    w = (weight * mask)[..., np.newaxis]
    return fixed * (1.0 - w) + modulated * w


def compose_xor(fixed: np.ndarray, modulated: np.ndarray, weight: float, mask: np.ndarray) -> np.ndarray:
    # Hard spatial switch: weighted modulated image inside, fixed image outside.
    inside = (mask > 0)[..., np.newaxis]
    return np.where(inside, weight * modulated, fixed)


COMPOSERS: dict[Composition, Composer] = {
    Composition.ADD: compose_add,
    Composition.BLEND: compose_blend,
    Composition.XOR: compose_xor,
}


def _expand_time_axis(time_axis: float | Sequence[float] | np.ndarray, n: int) -> np.ndarray:
    axis = np.array(time_axis, dtype=np.float64, ndmin=1).ravel()
    if axis.size == 1:
        return axis[0] * np.arange(n, dtype=np.float64)
    if axis.size != n:
        raise ConstructionError(
            f"Time axis has {axis.size} samples but the modulation function has {n}"
        )
    if np.any(np.diff(axis) < 0):
        raise ConstructionError("Time axis must be non-decreasing")
    return axis


def _check_spatial_support(fixed: OpticalImage, modulated: OpticalImage) -> np.ndarray:
    fixed_support = np.round(fixed.spatial_support("um"), SPATIAL_SUPPORT_DECIMALS)
    modulated_support = np.round(modulated.spatial_support("um"), SPATIAL_SUPPORT_DECIMALS)
    if fixed_support.shape != modulated_support.shape:
        raise ConstructionError(
            "Mismatch between spatial dimensions of the fixed and modulated optical images: "
            f"{fixed_support.shape[:2]} vs {modulated_support.shape[:2]}"
        )
    if not np.array_equal(fixed_support, modulated_support):
        raise ConstructionError(
            "Mismatch between spatial support of the fixed and modulated optical images"
        )
    return fixed_support


class OISequence:
    """Lazy sequence of composite optical images.

    Parameters
    ----------
    oi_fixed, oi_modulated:
        Background and modulated optical images. Both must hold photon data on
        the same wavelength samples and share their spatial support (to 7
        decimals in microns). They are copied on construction.
    time_axis:
        One timestamp (s) per modulation sample, or a single step ``dt``
        expanded to ``dt * [0, 1, ..., N-1]``.
    modulation_function:
        Per-frame weight applied to the modulated image.
    composition:
        ``"add"``, ``"blend"`` or ``"xor"``.
    modulation_region:
        Region restricting the modulation; the whole frame by default.
    composer:
        Optional callable overriding the compositing rule of ``composition``.
    """

    def __init__(
        self,
        oi_fixed: OpticalImage,
        oi_modulated: OpticalImage,
        time_axis: float | Sequence[float] | np.ndarray,
        modulation_function: Sequence[float] | np.ndarray,
        *,
        composition: Composition | str = Composition.ADD,
        modulation_region: ModulationRegion | float | None = None,
        composer: Composer | None = None,
    ) -> None:
        modulation = np.array(modulation_function, dtype=np.float64, ndmin=1).ravel()
        if modulation.size == 0:
            raise ConstructionError("Modulation function must not be empty")
        if not oi_fixed.data.has_data or not oi_modulated.data.has_data:
            raise ConstructionError("Both optical images must hold photon data")
        if not oi_fixed.spectrum.equals(oi_modulated.spectrum):
            raise ConstructionError(
                "Fixed and modulated optical images have different wavelength samples"
            )

        self._time_axis = _expand_time_axis(time_axis, modulation.size)
        self._modulation = modulation
        self._composition = Composition.parse(composition)
        if modulation_region is None or isinstance(modulation_region, ModulationRegion):
            self._region = modulation_region or ModulationRegion()
        else:
            self._region = ModulationRegion(float(modulation_region))
        self._composer = composer or COMPOSERS[self._composition]

        support_um = _check_spatial_support(oi_fixed, oi_modulated)
        self._fixed = oi_fixed.copy()
        self._modulated = oi_modulated.copy()
        self._photons_fixed = self._fixed.data.get_photons()
        self._photons_modulated = self._modulated.data.get_photons()
        self._mask = self._region.mask(support_um)
        for array in (self._time_axis, self._modulation, self._photons_fixed,
                      self._photons_modulated, self._mask):
            array.setflags(write=False)

        logger.debug(
            "Built OISequence: %d frames, composition=%s, region=%s",
            self.length,
            self._composition.value,
            "whole frame" if self._region.whole_frame else f"{self._region.radius_um} um",
        )

    def __repr__(self) -> str:
        return (
            f"OISequence(length={self.length}, composition={self._composition.value!r}, "
            f"radius_um={self._region.radius_um})"
        )

    # ---------- Queries ----------

    @property
    def oi_fixed(self) -> OpticalImage:
        return self._fixed.copy()

    @property
    def oi_modulated(self) -> OpticalImage:
        return self._modulated.copy()

    @property
    def time_axis(self) -> np.ndarray:
        return self._time_axis.copy()

    @property
    def modulation_function(self) -> np.ndarray:
        return self._modulation.copy()

    @property
    def composition(self) -> Composition:
        return self._composition

    @property
    def modulation_region(self) -> ModulationRegion:
        return self._region

    @property
    def modulation_mask(self) -> np.ndarray:
        return self._mask.copy()

    @property
    def length(self) -> int:
        return int(self._modulation.size)

    def __len__(self) -> int:
        return self.length

    def time_step(self) -> float:
        if self._time_axis.size < 2:
            raise ValueError("A single-frame sequence has no time step")
        return float(self._time_axis[1] - self._time_axis[0])

    def duration(self, stimulus_sampling_interval: float | None = None) -> float:
        """Time covered by the frames: last minus first timestamp plus one step."""

        if stimulus_sampling_interval is None:
            if self._time_axis.size < 2:
                raise ValueError("Sampling interval required for a single-frame sequence")
            stimulus_sampling_interval = self.time_step()
        return float(self._time_axis[-1] - self._time_axis[0] + stimulus_sampling_interval)

    def max_eye_movements_num_given_integration_time(
        self,
        integration_time: float,
        *,
        stimulus_sampling_interval: float | None = None,
    ) -> int:
        """Number of eye-position samples of ``integration_time`` fitting in the sequence."""

        if integration_time <= 0:
            raise ValueError("Integration time must be positive")
        if self._time_axis.size < 2 and stimulus_sampling_interval is None:
            return 1
        ratio = self.duration(stimulus_sampling_interval) / integration_time
        # 1e-9 absorbs binary rounding in ratios such as 0.005 / 0.001.
        return int(math.floor(ratio + 1e-9))

    # ---------- Frames ----------

    def frame_photons(self, index: int) -> np.ndarray:
        if not 0 <= index < self.length:
            raise IndexError(f"Frame index {index} out of range for {self.length} frames")
        weight = float(self._modulation[index])
        return self._composer(self._photons_fixed, self._photons_modulated, weight, self._mask)

    def frame_at_index(self, index: int) -> OpticalImage:
        """Composite optical image for time sample ``index`` (0-based)."""

        photons = self.frame_photons(index)
        frame = self._fixed.copy()
        frame.name = f"{self._fixed.name}-frame{index}"
        frame.set_photons(photons)
        return frame

    def frames(self) -> Iterator[OpticalImage]:
        for index in range(self.length):
            yield self.frame_at_index(index)

    def __getitem__(self, index: int) -> OpticalImage:
        return self.frame_at_index(index)

    def __iter__(self) -> Iterator[OpticalImage]:
        return self.frames()


def ois_from_scenes(
    oi: OpticalImage,
    scenes: Sequence[Scene],
    composition: Composition | str,
    modulation: Sequence[float] | np.ndarray,
    sample_times: Sequence[float] | np.ndarray | None = None,
    *,
    modulation_region: ModulationRegion | float | None = None,
) -> tuple[OISequence, tuple[OpticalImage, OpticalImage]]:
    """Compute optical images for two scenes and wrap them in an :class:`OISequence`.

    ``scenes[0]`` becomes the fixed image and ``scenes[1]`` the modulated one.
    Sample times default to ``0.001 * [0, 1, ..., N-1]`` seconds.
    """

    if len(scenes) != 2:
        raise ValueError(f"Exactly two scenes are required, got {len(scenes)}")
    weights = np.atleast_1d(np.asarray(modulation, dtype=np.float64)).ravel()
    if sample_times is None:
        sample_times = DEFAULT_SAMPLE_INTERVAL_S * np.arange(weights.size)

    fixed = oi_compute(oi, scenes[0])
    modulated = oi_compute(oi, scenes[1])
    sequence = OISequence(
        fixed,
        modulated,
        sample_times,
        weights,
        composition=composition,
        modulation_region=modulation_region,
    )
    return sequence, (fixed, modulated)
