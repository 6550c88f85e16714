"""Spectral radiance scenes used as companions and inputs to optical images.

A :class:`Scene` carries the same spectral machinery as an optical image (a
:class:`~isetlite.data.radiometry.RadiometricArray` over
:class:`~isetlite.wavelengths.SpectralSamples`) but its photons are radiance
(photons/s/sr/m^2/nm) and its photometric summary is luminance (cd/m^2).
"""

from __future__ import annotations

import copy
import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np

from isetlite.config import SimulationConfig, default_config
from isetlite.data.radiometry import RadiometricArray
from isetlite.wavelengths import SpectralSamples

logger = logging.getLogger(__name__)

__all__ = ["HarmonicParams", "Scene", "scene_harmonic", "scene_uniform"]

DEFAULT_SCENE_DISTANCE_M = 1.2


class Scene:
    """Spectral radiance image with a field of view and viewing distance."""

    type = "scene"

    def __init__(
        self,
        name: str = "scene",
        *,
        wave: SpectralSamples | Iterable[float] | None = None,
        photons: np.ndarray | None = None,
        fov_deg: float | None = None,
        distance_m: float = DEFAULT_SCENE_DISTANCE_M,
        config: SimulationConfig | None = None,
    ) -> None:
        self.config = config or default_config()
        samples = SpectralSamples.from_any(wave if wave is not None else self.config.wave_nm)
        self.name = name
        self.data = RadiometricArray(
            samples,
            bit_depth=self.config.photons.bit_depth,
            strict_non_negative=self.config.photons.strict_non_negative,
            efficacy=self.config.colorimetry.luminous_efficacy,
        )
        self.fov = float(fov_deg if fov_deg is not None else self.config.geometry.fov_deg)
        self.distance = float(distance_m)
        if photons is not None:
            self.data.set_photons(photons)

    @property
    def wave(self) -> np.ndarray:
        return self.data.wave

    @property
    def samples(self) -> SpectralSamples:
        return self.data.samples

    @property
    def rows(self) -> int | None:
        return self.data.rows

    @property
    def cols(self) -> int | None:
        return self.data.cols

    @property
    def size(self) -> tuple[int, int] | None:
        if not self.data.has_data:
            return None
        return self.data.rows, self.data.cols

    @property
    def photons(self) -> np.ndarray:
        return self.data.get_photons()

    @photons.setter
    def photons(self, values: np.ndarray) -> None:
        self.data.set_photons(values)

    @property
    def width(self) -> float:
        """Scene width in metres at the viewing distance."""

        return 2.0 * self.distance * math.tan(math.radians(self.fov) / 2.0)

    @property
    def luminance(self) -> np.ndarray:
        """Luminance map (cd/m^2), the radiance analogue of illuminance."""

        return self.data.get_illuminance()

    @property
    def mean_luminance(self) -> float:
        return self.data.get_mean_illuminance()

    def set_mean_luminance(self, target: float) -> None:
        self.data.set_mean_illuminance(target)

    def copy(self) -> "Scene":
        clone = copy.copy(self)
        clone.data = self.data.copy()
        clone.config = self.config.model_copy(deep=True)
        return clone

    def __repr__(self) -> str:
        return (
            f"Scene(name={self.name!r}, size={self.size}, nwave={self.data.samples.count}, "
            f"fov={self.fov}, distance={self.distance})"
        )


def scene_uniform(
    size: int | tuple[int, int] = 32,
    *,
    wave: SpectralSamples | Iterable[float] | None = None,
    mean_luminance: float = 100.0,
    fov_deg: float | None = None,
    distance_m: float = DEFAULT_SCENE_DISTANCE_M,
    config: SimulationConfig | None = None,
) -> Scene:
    """Uniform equal-photon scene scaled to ``mean_luminance`` cd/m^2."""

    rows, cols = (size, size) if isinstance(size, int) else size
    scene = Scene(
        "uniform",
        wave=wave,
        fov_deg=fov_deg,
        distance_m=distance_m,
        config=config,
    )
    scene.photons = np.ones((rows, cols, scene.samples.count), dtype=np.float64)
    scene.set_mean_luminance(mean_luminance)
    return scene


@dataclass(slots=True)
class HarmonicParams:
    """Sinusoidal grating parameters; ``freq`` is in cycles per image."""

    freq: float = 1.0
    contrast: float = 1.0
    phase: float = math.pi / 2
    angle: float = 0.0
    gabor_flag: float = 0.0
    rows: int = 64
    cols: int = 64


def harmonic_image(params: HarmonicParams) -> np.ndarray:
    """Grating ``1 + c*cos(2*pi*f*(cos(a)x + sin(a)y) + phase)`` on a unit image."""

    x = np.arange(params.cols) / params.cols
    y = np.arange(params.rows) / params.rows
    xx, yy = np.meshgrid(x, y)
    argument = 2.0 * np.pi * params.freq * (
        np.cos(params.angle) * xx + np.sin(params.angle) * yy
    ) + params.phase
    modulation = params.contrast * np.cos(argument)
    if params.gabor_flag:
        sigma = params.gabor_flag * params.cols
        xc = (np.arange(params.cols) - (params.cols - 1) / 2.0)[np.newaxis, :]
        yc = (np.arange(params.rows) - (params.rows - 1) / 2.0)[:, np.newaxis]
        window = np.exp(-(xc**2 + yc**2) / (2.0 * sigma**2))
        modulation = modulation * window / window.max()
    return 1.0 + modulation


def scene_harmonic(
    params: HarmonicParams | None = None,
    *,
    wave: SpectralSamples | Iterable[float] | None = None,
    mean_luminance: float = 100.0,
    fov_deg: float = 1.0,
    distance_m: float = DEFAULT_SCENE_DISTANCE_M,
    config: SimulationConfig | None = None,
) -> Scene:
    """Harmonic (grating or Gabor) scene under an equal-photon illuminant."""

    params = params or HarmonicParams()
    image = harmonic_image(params)
    image[image == 0] = 1e-4
    image = image / (2.0 * image.max())

    scene = Scene("harmonic", wave=wave, fov_deg=fov_deg, distance_m=distance_m, config=config)
    nwave = scene.samples.count
    scene.photons = np.repeat(image[:, :, np.newaxis], nwave, axis=2)
    scene.set_mean_luminance(mean_luminance)
    logger.debug(
        "Built harmonic scene freq=%s contrast=%s size=%sx%s",
        params.freq,
        params.contrast,
        params.rows,
        params.cols,
    )
    return scene
