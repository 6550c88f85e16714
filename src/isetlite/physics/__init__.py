"""User-facing entry points for the physics layer.

* Quanta/energy conversions (:mod:`.quanta`).
* CIE luminosity, XYZ and illuminance (:mod:`.colorimetry`).
* Photon noise (:mod:`.noise`).
* Wavelength resampling of spectral cubes (:mod:`.resampling`).
* Spatial and angular unit scale factors (:mod:`.units`).
"""

from .colorimetry import (
    LUMINOUS_EFFICACY,
    illuminance_from_photons,
    luminosity,
    xyz_color_matching,
    xyz_from_energy,
)
from .noise import DEFAULT_POISSON_CRITERION, photon_noise, poisson_samples
from .quanta import C, H, energy_to_quanta, quanta_to_energy
from .resampling import interpolate_wave, rgb_to_xw, xw_to_rgb
from .units import angle_scale_factor, unit_scale_factor

__all__ = [
    "C",
    "DEFAULT_POISSON_CRITERION",
    "H",
    "LUMINOUS_EFFICACY",
    "angle_scale_factor",
    "energy_to_quanta",
    "illuminance_from_photons",
    "interpolate_wave",
    "luminosity",
    "photon_noise",
    "poisson_samples",
    "quanta_to_energy",
    "rgb_to_xw",
    "unit_scale_factor",
    "xw_to_rgb",
    "xyz_color_matching",
    "xyz_from_energy",
]
