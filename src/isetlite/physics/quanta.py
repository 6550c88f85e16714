"""Photon (quanta) and energy conversions.

The simulation pipeline carries irradiance as photon rates per wavelength
band. Radiometric and photometric quantities are obtained through the
quanta-energy relation ``E = h·c/λ · N`` applied plane by plane along the
last (wavelength) axis.
"""

from __future__ import annotations

import numpy as np

__all__ = [
    "C",
    "H",
    "energy_to_quanta",
    "quanta_to_energy",
]

# ---------------------------------------------------------------------------
# Physical constants in SI units (float64 for stability).
H: float = 6.626_070_15e-34
"""Planck constant (J·s)."""

C: float = 2.997_924_58e8
"""Speed of light in vacuum (m/s)."""

_NM_TO_M: float = 1e-9


def _photon_energy(wavelength_nm: np.ndarray) -> np.ndarray:
    """Energy in joules carried by one photon at each wavelength."""

    wl = np.asarray(wavelength_nm, dtype=np.float64).ravel()
    if np.any(wl <= 0):
        raise ValueError("Wavelengths must be strictly positive")
    return (H * C) / (wl * _NM_TO_M)


def _check_last_axis(values: np.ndarray, wave: np.ndarray) -> None:
    if values.ndim == 0 or values.shape[-1] != wave.shape[0]:
        msg = (
            f"Last dimension of data ({values.shape[-1] if values.ndim else 0}) must match "
            f"the number of wavelength samples ({wave.shape[0]})"
        )
        raise ValueError(msg)


def quanta_to_energy(wavelength_nm: np.ndarray, photons: np.ndarray) -> np.ndarray:
    """Convert photon counts to energy along the last axis.

    Parameters
    ----------
    wavelength_nm:
        Wavelength samples in nanometres.
    photons:
        Photon data with wavelength as the trailing axis, e.g. ``(rows, cols,
        nwave)`` or ``(n, nwave)``.

    Returns
    -------
    np.ndarray
        Energy with the same shape as ``photons``, in float64.
    """

    wave = np.asarray(wavelength_nm, dtype=np.float64).ravel()
    values = np.asarray(photons, dtype=np.float64)
    _check_last_axis(values, wave)
    return values * _photon_energy(wave)


def energy_to_quanta(wavelength_nm: np.ndarray, energy: np.ndarray) -> np.ndarray:
    """Inverse of :func:`quanta_to_energy`."""

    wave = np.asarray(wavelength_nm, dtype=np.float64).ravel()
    values = np.asarray(energy, dtype=np.float64)
    _check_last_axis(values, wave)
    return values / _photon_energy(wave)
