"""Spectral image data containers."""

from .radiometry import DerivedValue, RadiometricArray

__all__ = ["DerivedValue", "RadiometricArray"]
