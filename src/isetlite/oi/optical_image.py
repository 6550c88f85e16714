"""The optical image: spectral irradiance at the sensor plane.

:class:`OpticalImage` binds a :class:`~isetlite.data.radiometry.RadiometricArray`
to an owned :class:`~isetlite.optics.Optics` block and the geometric primitives
(field of view, focal-plane distance). Width, height, area and every resolution
are *derived* from ``rows``, ``cols``, ``fov`` and ``distance`` on each call and
are never stored.

Geometric getters that need a size take an optional companion ``scene``; with
neither photon data nor a scene the configured defaults are used and a warning
is logged.
"""

from __future__ import annotations

import copy
import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import numpy as np

from isetlite.config import SimulationConfig, default_config
from isetlite.data.radiometry import RadiometricArray
from isetlite.optics import Lens, Optics
from isetlite.physics.quanta import energy_to_quanta
from isetlite.physics.resampling import interpolate_wave
from isetlite.physics.units import angle_scale_factor, normalize_unit, unit_scale_factor
from isetlite.wavelengths import SpectralSamples

if TYPE_CHECKING:
    from isetlite.scene import Scene

logger = logging.getLogger(__name__)

__all__ = [
    "DIFFUSER_METHODS",
    "Diffuser",
    "OpticalImage",
    "PSFStruct",
    "SPD_OPERATIONS",
    "pad_size",
]

DIFFUSER_METHODS: tuple[str, ...] = ("skip", "blur", "birefringent")

SPD_OPERATIONS: dict[str, tuple[str, ...]] = {
    "multiply": ("*", "times", "multiply"),
    "divide": ("/", "divide"),
    "add": ("+", "add", "sum", "plus"),
    "subtract": ("-", "subtract", "minus"),
}

_CYCLES_PER_DEGREE = {"cyclesperdegree", "cpd", "degrees", "deg"}

Locations = Sequence[Sequence[int]] | np.ndarray


@dataclass(slots=True)
class PSFStruct:
    """Precomputed shift-variant point spread functions.

    ``psf`` is indexed ``(angle, image height, wavelength)`` and each element
    holds one 2-D kernel; image heights are in metres.
    """

    psf: np.ndarray | None = None
    sample_angles: np.ndarray | None = None
    image_heights: np.ndarray | None = None
    optics_name: str | None = None
    wavelength: np.ndarray | None = None

    @property
    def angle_step(self) -> float | None:
        if self.sample_angles is None or len(self.sample_angles) < 2:
            return None
        return float(self.sample_angles[1] - self.sample_angles[0])

    @property
    def kernel_size(self) -> tuple[int, ...] | None:
        if self.psf is None or np.size(self.psf) == 0:
            return None
        first = np.asarray(self.psf).flat[0]
        return tuple(np.shape(first))


@dataclass(slots=True)
class Diffuser:
    """Sensor cover-glass diffuser; ``blur`` is a Gaussian FWHM in metres."""

    method: str = "skip"
    blur: float | None = None


def pad_size(n: int) -> int:
    """Border added on each side by the irradiance computation: round(n / 8), halves up."""

    return int(math.floor(n / 8.0 + 0.5))


def _unit_frequency_list(n: int) -> np.ndarray:
    # Zero-centred normalised frequencies, 0 at index ceil((n + 1) / 2) - 1.
    mid = math.ceil((n + 1) / 2) - 1
    c = np.arange(n, dtype=np.float64) - mid
    peak = np.max(np.abs(c))
    return c / peak if peak > 0 else c


class OpticalImage:
    """Spectral irradiance image and its optics."""

    type = "opticalimage"

    def __init__(
        self,
        name: str = "opticalimage",
        *,
        wave: SpectralSamples | Iterable[float] | None = None,
        photons: np.ndarray | None = None,
        optics: Optics | None = None,
        fov_deg: float | None = None,
        distance_m: float | None = None,
        config: SimulationConfig | None = None,
    ) -> None:
        self.config = config or default_config()
        samples = SpectralSamples.from_any(wave if wave is not None else self.config.wave_nm)
        self.name = name
        self.filename: str | None = None
        self.consistency = False
        self.data = RadiometricArray(
            samples,
            bit_depth=self.config.photons.bit_depth,
            strict_non_negative=self.config.photons.strict_non_negative,
            efficacy=self.config.colorimetry.luminous_efficacy,
        )
        self.optics = optics if optics is not None else Optics(lens=Lens(wave=samples))
        self.optics.lens.wave = samples
        self._fov: float | None = None
        self._distance: float | None = None
        self.diffuser = Diffuser()
        self.psf: PSFStruct | None = None
        self._depth_map: np.ndarray | None = None
        if fov_deg is not None:
            self.set_fov(fov_deg)
        if distance_m is not None:
            self.set_distance(distance_m)
        if photons is not None:
            self.set_photons(photons)

    def __repr__(self) -> str:
        shape = self.data.shape
        return (
            f"OpticalImage(name={self.name!r}, shape={shape}, "
            f"wave={self.data.samples.nm[0]:g}-{self.data.samples.nm[-1]:g} nm)"
        )

    # ------------------------------------------------------------------
    # Size
    # ------------------------------------------------------------------

    def rows(self, scene: Scene | None = None) -> int:
        if self.data.has_data:
            return int(self.data.rows)
        if scene is not None and scene.rows is not None:
            return int(scene.rows)
        logger.warning(
            "No optical image or scene data; assuming %d rows", self.config.geometry.rows
        )
        return self.config.geometry.rows

    def cols(self, scene: Scene | None = None) -> int:
        if self.data.has_data:
            return int(self.data.cols)
        if scene is not None and scene.cols is not None:
            return int(scene.cols)
        logger.warning(
            "No optical image or scene data; assuming %d cols", self.config.geometry.cols
        )
        return self.config.geometry.cols

    def size(self, scene: Scene | None = None) -> tuple[int, int]:
        return self.rows(scene), self.cols(scene)

    def aspect_ratio(self, scene: Scene | None = None) -> float:
        rows, cols = self.size(scene)
        return rows / cols

    def center_pixel(self, scene: Scene | None = None) -> tuple[int, int]:
        """Zero-based (row, col) index of the centre sample."""

        rows, cols = self.size(scene)
        return rows // 2, cols // 2

    # ------------------------------------------------------------------
    # Geometric primitives
    # ------------------------------------------------------------------

    def fov(self, scene: Scene | None = None) -> float:
        """Horizontal field of view in degrees."""

        if self._fov is not None:
            return self._fov
        if scene is not None:
            return float(scene.fov)
        logger.warning("Arbitrary optical image angle: %g deg", self.config.geometry.fov_deg)
        return float(self.config.geometry.fov_deg)

    def set_fov(self, value: float) -> None:
        value = float(value)
        if not 0.0 < value < 180.0:
            raise ValueError(f"Field of view must lie in (0, 180) degrees, got {value}")
        self._fov = value

    @property
    def has_fov(self) -> bool:
        return self._fov is not None

    def distance(self, unit: str | None = None, scene: Scene | None = None) -> float:
        """Lens to focal-plane distance.

        A stored distance is returned as-is. Otherwise the optics' thin-lens
        image distance for ``scene.distance`` is used, which is the focal
        length when there is no scene.
        """

        if self._distance is not None:
            value = self._distance
        else:
            value = self.optics.image_distance(None if scene is None else scene.distance)
        return value * unit_scale_factor(unit)

    def set_distance(self, value: float) -> None:
        value = float(value)
        if not np.isfinite(value) or value <= 0:
            raise ValueError(f"Focal-plane distance must be positive, got {value}")
        self._distance = value

    @property
    def has_distance(self) -> bool:
        return self._distance is not None

    # ------------------------------------------------------------------
    # Derived geometry
    # ------------------------------------------------------------------

    def width(self, unit: str | None = None, scene: Scene | None = None) -> float:
        d = self.distance(scene=scene)
        return 2.0 * d * math.tan(math.radians(self.fov(scene)) / 2.0) * unit_scale_factor(unit)

    def sample_size(self, unit: str | None = None, scene: Scene | None = None) -> float:
        return self.width(scene=scene) / self.cols(scene) * unit_scale_factor(unit)

    def height(self, unit: str | None = None, scene: Scene | None = None) -> float:
        return self.sample_size(scene=scene) * self.rows(scene) * unit_scale_factor(unit)

    def height_width(self, unit: str | None = None, scene: Scene | None = None) -> tuple[float, float]:
        return self.height(unit, scene), self.width(unit, scene)

    def diagonal(self, unit: str | None = None, scene: Scene | None = None) -> float:
        return math.hypot(self.height(scene=scene), self.width(scene=scene)) * unit_scale_factor(unit)

    def area(self, unit: str | None = None, scene: Scene | None = None) -> float:
        return self.height(scene=scene) * self.width(scene=scene) * unit_scale_factor(unit) ** 2

    def vfov(self, scene: Scene | None = None) -> float:
        h = self.height(scene=scene)
        d = self.distance(scene=scene)
        return math.degrees(2.0 * math.atan(0.5 * h / d))

    def dfov(self, scene: Scene | None = None) -> float:
        return math.hypot(self.fov(scene), self.vfov(scene))

    def sample_spacing(self, unit: str | None = None, scene: Scene | None = None) -> tuple[float, float]:
        """``(width, height)`` spacing per sample.

        Without photon data the size is the scene size padded as the irradiance
        computation would pad it.
        """

        if self.data.has_data:
            rows, cols = self.data.rows, self.data.cols
        elif scene is not None and scene.size is not None:
            srows, scols = scene.size
            rows = srows + 2 * pad_size(srows)
            cols = scols + 2 * pad_size(scols)
        else:
            raise ValueError("No scene or optical image data")
        factor = unit_scale_factor(unit)
        return (
            self.width(scene=scene) / cols * factor,
            self.height(scene=scene) / rows * factor,
        )

    def h_spatial_resolution(self, unit: str | None = None, scene: Scene | None = None) -> float:
        return self.height(scene=scene) / self.rows(scene) * unit_scale_factor(unit)

    def w_spatial_resolution(self, unit: str | None = None, scene: Scene | None = None) -> float:
        return self.width(scene=scene) / self.cols(scene) * unit_scale_factor(unit)

    def spatial_resolution(self, unit: str | None = None, scene: Scene | None = None) -> tuple[float, float]:
        """``(height, width)`` distance per sample."""

        return self.h_spatial_resolution(unit, scene), self.w_spatial_resolution(unit, scene)

    def distance_per_degree(self, unit: str | None = None, scene: Scene | None = None) -> float:
        return self.width(unit, scene) / self.fov(scene)

    def degrees_per_distance(self, unit: str | None = None, scene: Scene | None = None) -> float:
        return 1.0 / self.distance_per_degree(unit or "m", scene)

    def spatial_support(self, unit: str | None = None, scene: Scene | None = None) -> np.ndarray:
        """Sample positions ``(rows, cols, 2)``; ``[..., 0]`` is x, ``[..., 1]`` is y."""

        h_res, w_res = self.spatial_resolution(unit, scene)
        rows, cols = self.size(scene)
        x = w_res * np.arange(1, cols + 1)
        y = h_res * np.arange(1, rows + 1)
        xx, yy = np.meshgrid(x - x.mean(), y - y.mean())
        return np.stack([xx, yy], axis=-1)

    def h_angular_resolution(self, scene: Scene | None = None) -> float:
        """Degrees per sample along the rows."""

        ratio = self.h_spatial_resolution(scene=scene) / self.distance(scene=scene)
        return math.degrees(2.0 * math.atan(ratio / 2.0))

    def w_angular_resolution(self, scene: Scene | None = None) -> float:
        ratio = self.w_spatial_resolution(scene=scene) / self.distance(scene=scene)
        return math.degrees(2.0 * math.atan(ratio / 2.0))

    def angular_resolution(self, scene: Scene | None = None) -> tuple[float, float]:
        return self.h_angular_resolution(scene), self.w_angular_resolution(scene)

    def angular_support(self, unit: str | None = None, scene: Scene | None = None) -> np.ndarray:
        """Angular sample positions ``(rows, cols, 2)`` in ``deg``, ``min``, ``sec`` or ``rad``."""

        h_deg, w_deg = self.angular_resolution(scene)
        rows, cols = self.size(scene)
        x = w_deg * np.arange(1, cols + 1)
        y = h_deg * np.arange(1, rows + 1)
        factor = angle_scale_factor(unit)
        xx, yy = np.meshgrid((x - x.mean()) * factor, (y - y.mean()) * factor)
        return np.stack([xx, yy], axis=-1)

    def frequency_resolution(
        self, unit: str | None = None, scene: Scene | None = None
    ) -> dict[str, np.ndarray]:
        """Frequency samples ``{"fx": ..., "fy": ...}``.

        The default unit is cycles per degree; a spatial unit gives cycles per
        that unit.
        """

        rows, cols = self.size(scene)
        if unit is None or normalize_unit(unit) in _CYCLES_PER_DEGREE:
            max_fx = (cols / 2.0) / self.fov(scene)
            max_fy = (rows / 2.0) / self.vfov(scene)
        else:
            max_fx = (cols / 2.0) / self.width(unit, scene)
            max_fy = (rows / 2.0) / self.height(unit, scene)
        return {
            "fx": _unit_frequency_list(cols) * max_fx,
            "fy": _unit_frequency_list(rows) * max_fy,
        }

    def max_frequency_resolution(self, unit: str | None = None, scene: Scene | None = None) -> float:
        res = self.frequency_resolution(unit, scene)
        return float(max(res["fx"].max(), res["fy"].max()))

    def frequency_support(self, unit: str | None = None, scene: Scene | None = None) -> np.ndarray:
        res = self.frequency_resolution(unit, scene)
        fx, fy = np.meshgrid(res["fx"], res["fy"])
        return np.stack([fx, fy], axis=-1)

    def frequency_support_col(self, unit: str | None = None, scene: Scene | None = None) -> np.ndarray:
        fx = self.frequency_resolution(unit, scene)["fx"]
        return fx[int(np.flatnonzero(fx == 0)[0]):]

    def frequency_support_row(self, unit: str | None = None, scene: Scene | None = None) -> np.ndarray:
        fy = self.frequency_resolution(unit, scene)["fy"]
        return fy[int(np.flatnonzero(fy == 0)[0]):]

    # ------------------------------------------------------------------
    # Spectral axis
    # ------------------------------------------------------------------

    @property
    def spectrum(self) -> SpectralSamples:
        return self.data.samples

    @property
    def wave(self) -> np.ndarray:
        return self.data.wave

    @property
    def nwave(self) -> int:
        return self.data.samples.count

    @property
    def bin_width(self) -> float:
        return self.data.samples.bin_width

    def set_wave(self, new: SpectralSamples | Iterable[float]) -> bool:
        """Replace the wavelength samples and reconcile the photon data.

        Returns ``False`` when ``new`` equals the current samples (nothing is
        touched). A new range strictly inside the old one is linearly
        resampled and the previous mean illuminance restored; any other range
        zero-fills the photons.
        """

        with self.data.lock:
            old = self.data.samples
            samples, changed = old.replace(new)
            if not changed:
                return False

            self.optics.lens.wave = samples
            if not self.data.has_data:
                self.data.replace_wave(samples, None)
                return True

            if old.contains_range(samples):
                logger.debug("Interpolating optical image photon data")
                previous_mean = self.data.get_mean_illuminance()
                photons = interpolate_wave(old.nm, samples.nm, self.data.get_photons())
                self.data.replace_wave(samples, photons)
                self._restore_mean_illuminance(previous_mean)
            else:
                logger.warning(
                    "Wavelength range %g-%g nm is not inside %g-%g nm; photon data set to zero",
                    samples.nm[0],
                    samples.nm[-1],
                    old.nm[0],
                    old.nm[-1],
                )
                rows, cols = self.data.rows, self.data.cols
                self.data.replace_wave(samples, np.zeros((rows, cols, samples.count)))
            return True

    def interpolate_wave(self, new: SpectralSamples | Iterable[float]) -> None:
        """Resample photons onto ``new`` (zero outside the old range) keeping mean illuminance."""

        samples = SpectralSamples.from_any(new)
        with self.data.lock:
            if not self.data.has_data:
                raise ValueError("No photon data to interpolate")
            old = self.data.samples
            previous_mean = self.data.get_mean_illuminance()
            photons = interpolate_wave(old.nm, samples.nm, self.data.get_photons())
            self.optics.lens.wave = samples
            self.data.replace_wave(samples, photons)
            self._restore_mean_illuminance(previous_mean)

    def _restore_mean_illuminance(self, previous_mean: float) -> None:
        self.data.set_illuminance(self.data.get_illuminance())
        if self.data.get_mean_illuminance() == 0.0 and previous_mean != 0.0:
            logger.warning("Resampled photons have zero illuminance; mean illuminance not restored")
            return
        self.data.set_mean_illuminance(previous_mean)

    # ------------------------------------------------------------------
    # Photon data
    # ------------------------------------------------------------------

    def photons(self, wave_subset: float | Iterable[float] | None = None) -> np.ndarray | None:
        if not self.data.has_data:
            return None
        return self.data.get_photons(wave_subset)

    def set_photons(
        self, values: np.ndarray, wave_subset: float | Iterable[float] | None = None
    ) -> None:
        """Write photons; a depth map of the previous spatial size is dropped."""

        self.data.set_photons(values, wave_subset)
        if self._depth_map is not None and self._depth_map.shape != self.data.shape[:2]:
            logger.debug("Photon size changed; dropping %s depth map", self._depth_map.shape)
            self._depth_map = None

    def energy(self, wave_subset: float | Iterable[float] | None = None) -> np.ndarray | None:
        if not self.data.has_data:
            return None
        energy = self.data.get_energy()
        if wave_subset is None:
            return energy
        return energy[:, :, self.data.samples.index_of(wave_subset)]

    def illuminance(self) -> np.ndarray | None:
        if not self.data.has_data:
            return None
        return self.data.get_illuminance()

    def set_illuminance(self, value: np.ndarray | None) -> None:
        self.data.set_illuminance(value)

    def mean_illuminance(self) -> float | None:
        if not self.data.has_data:
            return None
        return self.data.get_mean_illuminance()

    def set_mean_illuminance(self, lux: float) -> None:
        self.data.set_mean_illuminance(lux)

    def xyz(self) -> np.ndarray | None:
        if not self.data.has_data:
            return None
        return self.data.get_xyz()

    def roi_photons(self, locs: Locations) -> np.ndarray:
        return self.data.roi_photons(locs)

    def roi_mean_photons(self, locs: Locations) -> np.ndarray:
        return self.data.roi_mean_photons(locs)

    def roi_energy(self, locs: Locations) -> np.ndarray:
        return self.data.roi_energy(locs)

    def roi_mean_energy(self, locs: Locations) -> np.ndarray:
        return self.data.roi_mean_energy(locs)

    def _noise_settings(
        self, integration_time_s: float | None, scene: Scene | None
    ) -> dict[str, float]:
        dx, dy = self.sample_spacing(scene=scene)
        t = self.config.noise.integration_time_s if integration_time_s is None else integration_time_s
        return {
            "sample_area_m2": dx * dy,
            "integration_time_s": float(t),
            "poisson_criterion": self.config.noise.poisson_criterion,
        }

    def photons_noise(
        self,
        *,
        integration_time_s: float | None = None,
        rng: np.random.Generator | int | None = None,
        scene: Scene | None = None,
    ) -> np.ndarray:
        """Poisson photon counts per sample for one integration period."""

        if rng is None:
            rng = self.config.noise.seed
        return self.data.photons_noise(rng=rng, **self._noise_settings(integration_time_s, scene))

    def energy_noise(
        self,
        *,
        integration_time_s: float | None = None,
        rng: np.random.Generator | int | None = None,
        scene: Scene | None = None,
    ) -> np.ndarray:
        if rng is None:
            rng = self.config.noise.seed
        return self.data.energy_noise(rng=rng, **self._noise_settings(integration_time_s, scene))

    @property
    def data_max(self) -> float | None:
        return self.data.data_max

    @property
    def data_min(self) -> float | None:
        return self.data.data_min

    @property
    def bit_depth(self) -> int:
        return self.data.bit_depth

    @bit_depth.setter
    def bit_depth(self, value: int) -> None:
        self.data.bit_depth = value

    def spd_scale(self, spd: np.ndarray | float, op: str = "multiply") -> None:
        """Combine the energy of every pixel with a per-wavelength ``spd``.

        ``op`` is one of multiply, divide, add or subtract (or their symbol).
        The result is written back as photons.
        """

        operation = None
        token = str(op).strip().lower()
        for name, aliases in SPD_OPERATIONS.items():
            if token in aliases:
                operation = name
                break
        if operation is None:
            raise ValueError(f"Unknown SPD operation: {op!r}")

        energy = self.data.get_energy()
        values = np.broadcast_to(np.asarray(spd, dtype=np.float64).ravel(), (self.nwave,))
        values = values.reshape(1, 1, self.nwave)
        if operation == "multiply":
            energy = energy * values
        elif operation == "divide":
            energy = energy / values
        elif operation == "add":
            energy = energy + values
        else:
            energy = energy - values
        self.set_photons(energy_to_quanta(self.data.samples.nm, energy))

    # ------------------------------------------------------------------
    # Optics forwarding
    # ------------------------------------------------------------------

    def optics_get(self, param: str | None = None, *args: Any) -> Any:
        if not param:
            return self.optics
        return self.optics.get(param, *args)

    def optics_set(self, param: str | None, *args: Any) -> None:
        if not param:
            if not args or not isinstance(args[0], Optics):
                raise TypeError("optics must be an Optics instance")
            self.optics = args[0]
            return
        self.optics.set(param, *args)

    def lens_get(self, param: str | None = None, *args: Any) -> Any:
        if not param or param == "pigment":
            return self.optics.lens
        return self.optics.lens.get(param, *args)

    def lens_set(self, param: str | None, *args: Any) -> None:
        if not param or param == "pigment":
            if not args or not isinstance(args[0], Lens):
                raise TypeError("lens must be a Lens instance")
            self.optics.lens = args[0]
            return
        self.optics.lens.set(param, *args)

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    @property
    def depth_map(self) -> np.ndarray | None:
        """Per-pixel scene depth in metres, if any."""

        return self._depth_map

    def set_depth_map(self, value: np.ndarray | None) -> None:
        if value is None:
            self._depth_map = None
            return
        depth = np.asarray(value, dtype=np.float64)
        if depth.ndim != 2:
            raise ValueError("Depth map must be a 2-D (rows, cols) array")
        if self.data.has_data and depth.shape != (self.data.rows, self.data.cols):
            raise ValueError(
                f"Depth map shape {depth.shape} does not match image size "
                f"{(self.data.rows, self.data.cols)}"
            )
        self._depth_map = depth.copy()

    def logical_depth_map(self) -> np.ndarray | None:
        if self._depth_map is None:
            return None
        return self._depth_map != 0

    def set_diffuser_method(self, method: str) -> None:
        token = str(method).strip().lower()
        if token not in DIFFUSER_METHODS:
            raise ValueError(f"Unknown diffuser method {method!r}; expected one of {DIFFUSER_METHODS}")
        self.diffuser.method = token

    def diffuser_blur(self, unit: str | None = None) -> float | None:
        if self.diffuser.blur is None:
            return None
        return self.diffuser.blur * unit_scale_factor(unit)

    def set_diffuser_blur(self, value: float) -> None:
        value = float(value)
        if value < 0:
            raise ValueError("Diffuser blur must be non-negative")
        self.diffuser.blur = value

    def psf_struct(self, create: bool = False) -> PSFStruct | None:
        if self.psf is None and create:
            self.psf = PSFStruct()
        return self.psf

    # ------------------------------------------------------------------

    def copy(self) -> "OpticalImage":
        """Deep copy with independent photon data, optics and caches."""

        clone = copy.copy(self)
        clone.data = self.data.copy()
        clone.optics = self.optics.copy()
        clone.config = self.config.model_copy(deep=True)
        clone.diffuser = Diffuser(self.diffuser.method, self.diffuser.blur)
        clone.psf = copy.deepcopy(self.psf)
        clone._depth_map = None if self._depth_map is None else self._depth_map.copy()
        return clone

