"""Wavelength resampling of spectral image data."""

from __future__ import annotations

import numpy as np

from isetlite.wavelengths import check_monotonic

__all__ = ["interpolate_wave", "xw_to_rgb", "rgb_to_xw"]


def rgb_to_xw(cube: np.ndarray) -> tuple[np.ndarray, tuple[int, ...]]:
    """Flatten the leading (spatial) axes so the result is ``(pixels, nwave)``."""

    values = np.asarray(cube)
    if values.ndim < 1:
        raise ValueError("cube must have a trailing wavelength axis")
    lead = values.shape[:-1]
    return values.reshape(-1, values.shape[-1]), lead


def xw_to_rgb(xw: np.ndarray, lead: tuple[int, ...]) -> np.ndarray:
    """Inverse of :func:`rgb_to_xw`."""

    values = np.asarray(xw)
    return values.reshape(*lead, values.shape[-1])


def interpolate_wave(
    old_wave_nm: np.ndarray, new_wave_nm: np.ndarray, cube: np.ndarray
) -> np.ndarray:
    """Linearly resample ``cube`` along its last axis from ``old`` to ``new``.

    The cube is flattened to a (wavelength, pixel) matrix and each pixel's
    spectrum is interpolated independently. Query wavelengths outside the old
    range evaluate to zero. Floating inputs keep their precision; anything
    else is promoted to float64.
    """

    old = np.asarray(old_wave_nm, dtype=np.float64).ravel()
    new = np.asarray(new_wave_nm, dtype=np.float64).ravel()
    check_monotonic(old)
    values = np.asarray(cube)
    if values.shape[-1] != old.size:
        msg = (
            f"cube has {values.shape[-1]} wavelength planes but {old.size} "
            "wavelength samples were given"
        )
        raise ValueError(msg)

    out_dtype = values.dtype if np.issubdtype(values.dtype, np.floating) else np.float64
    xw, lead = rgb_to_xw(values.astype(np.float64, copy=False))
    wx = xw.T  # (nwave, pixels)

    if old.size == 1:
        hits = new == old[0]
        out = np.zeros((new.size, wx.shape[1]), dtype=np.float64)
        out[hits] = wx[0]
    else:
        idx = np.clip(np.searchsorted(old, new, side="right") - 1, 0, old.size - 2)
        x0 = old[idx]
        x1 = old[idx + 1]
        t = ((new - x0) / (x1 - x0))[:, np.newaxis]
        out = wx[idx] * (1.0 - t) + wx[idx + 1] * t
        outside = (new < old[0]) | (new > old[-1])
        out[outside] = 0.0

    return xw_to_rgb(out.T, lead).astype(out_dtype, copy=False)
