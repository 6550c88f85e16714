"""Photon (shot) noise.

Photon arrivals are Poisson distributed. Counts with a small mean are drawn
from the exact Poisson distribution; above ``poisson_criterion`` the normal
approximation ``N(λ, λ)``, rounded and clipped at zero, is used because it is
much cheaper for large images.
"""

from __future__ import annotations

import logging

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_POISSON_CRITERION: float = 15.0

__all__ = [
    "DEFAULT_POISSON_CRITERION",
    "photon_noise",
    "poisson_samples",
]


def _as_rng(rng: np.random.Generator | int | None) -> np.random.Generator:
    if isinstance(rng, np.random.Generator):
        return rng
    return np.random.default_rng(rng)


def photon_noise(
    counts: np.ndarray,
    *,
    rng: np.random.Generator | int | None = None,
    poisson_criterion: float = DEFAULT_POISSON_CRITERION,
) -> np.ndarray:
    """Return a noisy realisation of the mean photon ``counts``.

    Parameters
    ----------
    counts:
        Mean photon counts (not rates). Must be non-negative and finite.
    rng:
        A NumPy generator or a seed.
    poisson_criterion:
        Means strictly below this value are drawn from the exact Poisson
        distribution.
    """

    mean = np.asarray(counts, dtype=np.float64)
    if np.any(~np.isfinite(mean)):
        raise ValueError("Photon counts must be finite")
    if np.any(mean < 0):
        raise ValueError("Photon counts must be non-negative")

    generator = _as_rng(rng)
    noisy = np.empty_like(mean)

    small = mean < poisson_criterion
    if np.any(small):
        noisy[small] = generator.poisson(mean[small]).astype(np.float64)

    large = ~small
    if np.any(large):
        lam = mean[large]
        approx = np.rint(lam + np.sqrt(lam) * generator.standard_normal(lam.shape))
        noisy[large] = np.clip(approx, 0.0, None)

    logger.debug(
        "Photon noise on %d samples (%d exact Poisson)", mean.size, int(np.count_nonzero(small))
    )
    return noisy


def poisson_samples(
    lam: float,
    size: int | tuple[int, ...],
    *,
    rng: np.random.Generator | int | None = None,
    poisson_criterion: float = DEFAULT_POISSON_CRITERION,
) -> np.ndarray:
    """Draw ``size`` samples with mean ``lam`` using the photon noise model."""

    if lam < 0 or not np.isfinite(lam):
        raise ValueError("lam must be a non-negative finite number")
    return photon_noise(np.full(size, float(lam)), rng=rng, poisson_criterion=poisson_criterion)
