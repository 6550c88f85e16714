"""Thin-lens optics parameter block owned by an optical image."""

from __future__ import annotations

import copy
import logging
from typing import Any

import numpy as np

from isetlite.errors import MissingValueError, UnknownParameterError
from isetlite.optics.lens import Lens
from isetlite.params import build_alias_index, param_format, resolve_alias
from isetlite.physics.units import unit_scale_factor

logger = logging.getLogger(__name__)

__all__ = ["Optics", "OPTICS_MODELS"]

OPTICS_MODELS: tuple[str, ...] = ("skip", "diffractionlimited", "shiftinvariant", "raytrace")

_INFINITE_DISTANCE_M = 1e10

_ALIASES: dict[str, tuple[str, ...]] = {
    "name": (),
    "type": (),
    "model": ("opticsmodel", "computemethod"),
    "fnumber": ("f#", "fnum"),
    "focal_length": ("focallength", "flength"),
    "aperture_diameter": ("aperturediameter", "diameter", "pupildiameter"),
    "offaxis_method": ("offaxis", "offaxismethod", "cos4thflag"),
    "image_distance": ("imagedistance", "focalplanedistance"),
    "magnification": ("mag",),
    "transmittance": ("transmission",),
    "wave": ("wavelength",),
    "lens": ("lenspigment",),
}
_INDEX = build_alias_index(_ALIASES)
_SPATIAL = {"focal_length", "aperture_diameter", "image_distance"}


def _lens_param(param: str) -> str | None:
    """Return the lens parameter named by ``lens<rest>``, or ``None``."""

    flat = param_format(param)
    if flat.startswith("lens") and flat not in _INDEX:
        return flat[len("lens"):]
    return None


def _model_name(value: str) -> str:
    model = param_format(value)
    if model not in OPTICS_MODELS:
        raise ValueError(f"Unknown optics model {value!r}; expected one of {OPTICS_MODELS}")
    return model


class Optics:
    """Optics parameters: f-number, focal length, model and the owned :class:`Lens`."""

    type = "optics"

    def __init__(
        self,
        *,
        name: str = "default",
        model: str = "skip",
        fnumber: float = 4.0,
        focal_length: float = 0.0039,
        offaxis_method: str = "cos4th",
        lens: Lens | None = None,
    ) -> None:
        self.name = name
        self.model = _model_name(model)
        self.fnumber = float(fnumber)
        self.focal_length = float(focal_length)
        self.offaxis_method = offaxis_method
        self.lens = lens if lens is not None else Lens()
        if self.fnumber <= 0 or self.focal_length <= 0:
            raise ValueError("f-number and focal length must be positive")

    @property
    def aperture_diameter(self) -> float:
        return self.focal_length / self.fnumber

    def image_distance(self, scene_distance: float | None = None) -> float:
        """Thin-lens image distance (m) for an object at ``scene_distance`` (m).

        ``None`` or an infinite distance places the image at the focal length.
        """

        f = self.focal_length
        if scene_distance is None or not np.isfinite(scene_distance):
            return f
        if scene_distance <= f:
            raise ValueError(
                f"Scene distance {scene_distance} m must exceed the focal length {f} m"
            )
        return 1.0 / (1.0 / f - 1.0 / scene_distance)

    def magnification(self, scene_distance: float | None = None) -> float:
        if scene_distance is None or scene_distance >= _INFINITE_DISTANCE_M:
            return 0.0
        return -self.image_distance(scene_distance) / scene_distance

    @property
    def transmittance(self) -> np.ndarray:
        return self.lens.transmittance

    @property
    def wave(self) -> np.ndarray:
        return self.lens.wave

    def get(self, param: str, *args: Any) -> Any:
        lens_param = _lens_param(param)
        if lens_param is not None:
            return self.lens.get(lens_param, *args)
        key = resolve_alias(_INDEX, param)
        if key is None:
            raise UnknownParameterError(param, owner="optics")
        if key in ("image_distance", "magnification"):
            distance = args[0] if args else None
            value = getattr(self, key)(distance)
            unit = args[1] if len(args) > 1 else None
        else:
            value = getattr(self, key)
            unit = args[0] if args else None
        if key in _SPATIAL and unit is not None:
            value = value * unit_scale_factor(unit)
        return value

    def set(self, param: str, *args: Any) -> "Optics":
        if not args:
            raise MissingValueError(f"optics set {param!r} requires a value")
        lens_param = _lens_param(param)
        if lens_param is not None:
            self.lens.set(lens_param, *args)
            return self
        value = args[0]
        key = resolve_alias(_INDEX, param)
        if key == "model":
            self.model = _model_name(value)
        elif key in ("fnumber", "focal_length"):
            value = float(value)
            if value <= 0:
                raise ValueError(f"{key} must be positive")
            setattr(self, key, value)
        elif key in ("name", "offaxis_method"):
            setattr(self, key, value)
        elif key == "lens":
            if not isinstance(value, Lens):
                raise TypeError("optics lens must be a Lens instance")
            self.lens = value
        elif key == "wave":
            self.lens.wave = value
        else:
            # Derived quantities and unknown names are both rejected here.
            raise UnknownParameterError(param, owner="optics")
        return self

    def copy(self) -> "Optics":
        return copy.deepcopy(self)

    def __repr__(self) -> str:
        return (
            f"Optics(name={self.name!r}, model={self.model!r}, fnumber={self.fnumber}, "
            f"focal_length={self.focal_length})"
        )
