"""Optical images, their string accessors and temporal sequences."""

from .accessors import oi_get, oi_set
from .compute import oi_compute
from .optical_image import Diffuser, OpticalImage, PSFStruct
from .sequence import Composition, ModulationRegion, OISequence, ois_from_scenes

__all__ = [
    "Composition",
    "Diffuser",
    "ModulationRegion",
    "OISequence",
    "OpticalImage",
    "PSFStruct",
    "oi_compute",
    "oi_get",
    "oi_set",
    "ois_from_scenes",
]
