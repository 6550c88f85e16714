"""Scene radiance to optical-image irradiance.

Only the ``skip`` optics model is computed here: the optics are treated as a
perfect thin lens, so irradiance is radiance scaled by the camera equation

    E = pi / (1 + 4 N^2 (1 + |m|)^2) * L

with f-number ``N`` and magnification ``m`` (0 for a scene at infinity), then
attenuated by the lens transmittance. The result is padded by ``round(size/8)``
samples on each side with the mean irradiance of every wavelength plane and the
field of view is widened to cover the padding.
"""

from __future__ import annotations

import logging
import math

import numpy as np

from isetlite.oi.optical_image import OpticalImage, pad_size
from isetlite.scene import Scene

logger = logging.getLogger(__name__)

__all__ = ["camera_equation_factor", "oi_compute", "pad_photons"]


def camera_equation_factor(fnumber: float, magnification: float = 0.0) -> float:
    return math.pi / (1.0 + 4.0 * fnumber**2 * (1.0 + abs(magnification)) ** 2)


def pad_photons(photons: np.ndarray, pad_rows: int, pad_cols: int) -> np.ndarray:
    """Pad the spatial axes with the per-wavelength mean of ``photons``."""

    if pad_rows == 0 and pad_cols == 0:
        return photons
    rows, cols, nwave = photons.shape
    fill = photons.reshape(-1, nwave).mean(axis=0)
    out = np.empty((rows + 2 * pad_rows, cols + 2 * pad_cols, nwave), dtype=photons.dtype)
    out[...] = fill
    out[pad_rows:pad_rows + rows, pad_cols:pad_cols + cols, :] = photons
    return out


def oi_compute(oi: OpticalImage, scene: Scene, *, pad: bool = True) -> OpticalImage:
    """Return a new optical image computed from ``scene`` through ``oi``'s optics.

    ``oi`` itself is left untouched; its optics, name-independent metadata and
    configuration are carried over to the result.
    """

    optics = oi.optics
    if optics.model != "skip":
        raise NotImplementedError(
            f"Optics model {optics.model!r} is not computed here; only 'skip' is supported"
        )
    if not scene.data.has_data:
        raise ValueError("Scene has no photon data")

    result = oi.copy()
    result.name = scene.name
    result.data.replace_wave(scene.samples, None)
    result.optics.lens.wave = scene.samples

    magnification = result.optics.magnification(scene.distance)
    factor = camera_equation_factor(result.optics.fnumber, magnification)
    transmittance = result.optics.transmittance.reshape(1, 1, -1)
    irradiance = scene.data.get_photons() * factor * transmittance

    rows, cols = scene.size
    pad_rows, pad_cols = (pad_size(rows), pad_size(cols)) if pad else (0, 0)
    irradiance = pad_photons(irradiance, pad_rows, pad_cols)

    half_angle = math.radians(scene.fov) / 2.0
    fov = math.degrees(2.0 * math.atan((cols + 2 * pad_cols) / cols * math.tan(half_angle)))
    result.set_fov(fov)
    result.set_distance(result.optics.image_distance(scene.distance))
    result.set_photons(irradiance)
    result.consistency = True

    logger.debug(
        "Computed %s: factor=%.4g, padded %dx%d -> %dx%d, fov=%.4g deg",
        result.name,
        factor,
        rows,
        cols,
        rows + 2 * pad_rows,
        cols + 2 * pad_cols,
        fov,
    )
    return result
