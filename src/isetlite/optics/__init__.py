"""Optics collaborators owned by an optical image."""

from .lens import Lens
from .optics import OPTICS_MODELS, Optics

__all__ = ["Lens", "OPTICS_MODELS", "Optics"]
