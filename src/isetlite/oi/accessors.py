"""String-keyed ``oi_get`` / ``oi_set`` adapter over :class:`OpticalImage`.

Parameter names are case, space, underscore and dash insensitive
(``"Mean Illuminance"`` == ``"mean_illuminance"``). Names starting with
``optics`` or ``lens`` are forwarded to the owned optics or lens block. Only
the names listed here are recognised; everything else raises
:class:`~isetlite.errors.UnknownParameterError`.

Examples
--------
>>> oi_get(oi, "width", "mm")
>>> oi_set(oi, "fov", 5)
>>> oi_get(oi, "optics f number")
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import numpy as np

from isetlite.data.radiometry import RadiometricArray
from isetlite.errors import MissingValueError, UnknownParameterError
from isetlite.oi.optical_image import OpticalImage, PSFStruct
from isetlite.params import build_alias_index, resolve_alias, split_namespace
from isetlite.physics.units import unit_scale_factor

if TYPE_CHECKING:
    from isetlite.scene import Scene

__all__ = ["GET_PARAMETERS", "SET_PARAMETERS", "describe_parameter", "oi_get", "oi_set"]

_MISSING: Any = object()

_GET_ALIASES: dict[str, tuple[str, ...]] = {
    "type": (),
    "name": ("oiname",),
    "filename": (),
    "consistency": ("computationalconsistency",),
    "rows": ("row", "nrows", "nrow"),
    "cols": ("col", "ncols", "ncol"),
    "size": (),
    "sample_spacing": (),
    "sample_size": (),
    "distance": ("imagedistance", "focalplanedistance"),
    "fov": ("wangular", "widthangular", "hfov", "horizontalfieldofview"),
    "vfov": ("hangular", "heightangular", "verticalfieldofview"),
    "dfov": ("dangular", "diagonalangular", "diagonalfieldofview"),
    "aspect_ratio": (),
    "psf_struct": ("shiftvariantstructure",),
    "sv_psf": ("sampledrtpsf", "shiftvariantpsf"),
    "rt_psf_size": (),
    "psf_sample_angles": (),
    "psf_angle_step": (),
    "psf_image_heights": (),
    "psf_optics_name": ("raytraceopticsname",),
    "psf_wavelength": (),
    "diffuser_method": (),
    "diffuser_blur": (),
    "data": (),
    "photons": ("cphotons",),
    "roi_photons": (),
    "roi_mean_photons": (),
    "photons_noise": ("photonswithnoise",),
    "energy_noise": ("energywithnoise",),
    "data_max": ("dmax",),
    "data_min": ("dmin",),
    "bit_depth": ("compressbitdepth",),
    "energy": (),
    "roi_energy": (),
    "roi_mean_energy": (),
    "mean_illuminance": ("meanillum",),
    "illuminance": ("illum",),
    "xyz": ("dataxyz",),
    "spectrum": ("wavespectrum",),
    "bin_width": (),
    "wave": ("datawave", "photonswave", "photonswavelength", "wavelength"),
    "nwave": ("nwaves",),
    "height": (),
    "width": (),
    "diagonal": ("diagonalsize",),
    "height_width": ("heightandwidth",),
    "area": ("areameterssquared",),
    "center_pixel": ("centerpoint",),
    "h_spatial_resolution": ("heightspatialresolution", "hres"),
    "w_spatial_resolution": ("widthspatialresolution", "wres"),
    "spatial_resolution": ("distancepersample", "distpersamp"),
    "distance_per_degree": ("distperdeg",),
    "degrees_per_distance": ("degperdist",),
    "spatial_support": ("spatialsamplingpositions",),
    "angular_support": ("angularsamplingpositions",),
    "h_angular_resolution": ("heightangularresolution",),
    "w_angular_resolution": ("widthangularresolution",),
    "angular_resolution": ("degperpixel", "degpersample", "degreepersample", "degreeperpixel"),
    "frequency_resolution": ("freqres",),
    "max_frequency_resolution": ("maxfreqres",),
    "frequency_support": ("fsupportxy", "fsupport2d", "fsupport"),
    "frequency_support_col": ("fsupportx",),
    "frequency_support_row": ("fsupporty",),
    "depth_map": (),
    "logical_depth_map": (),
}

_SET_ALIASES: dict[str, tuple[str, ...]] = {
    "name": ("oiname",),
    "type": (),
    "filename": (),
    "consistency": ("computationalconsistency",),
    "distance": (),
    "fov": ("wangular", "widthangular", "hfov", "horizontalfieldofview"),
    "data": ("datastructure",),
    "photons": (),
    "bit_depth": (),
    "illuminance": ("illum",),
    "mean_illuminance": ("meanillum",),
    "wave": ("datawave", "datawavelength", "wavelength"),
    "diffuser_method": (),
    "diffuser_blur": (),
    "psf_struct": ("shiftvariantstructure",),
    "sv_psf": ("sampledrtpsf", "shiftvariantpsf"),
    "psf_sample_angles": ("psfanglestep",),
    "psf_optics_name": ("raytraceopticsname",),
    "psf_image_heights": (),
    "psf_wavelength": (),
    "depth_map": (),
}

_GET_INDEX = build_alias_index(_GET_ALIASES)
_SET_INDEX = build_alias_index(_SET_ALIASES)

GET_PARAMETERS: tuple[str, ...] = tuple(_GET_ALIASES)
SET_PARAMETERS: tuple[str, ...] = tuple(_SET_ALIASES)

# Getters of the form ``method(unit, scene)``.
_UNIT_GETTERS = frozenset(
    {
        "angular_support",
        "area",
        "degrees_per_distance",
        "diagonal",
        "distance",
        "distance_per_degree",
        "frequency_resolution",
        "frequency_support",
        "frequency_support_col",
        "frequency_support_row",
        "h_spatial_resolution",
        "height",
        "height_width",
        "max_frequency_resolution",
        "sample_size",
        "sample_spacing",
        "spatial_resolution",
        "spatial_support",
        "w_spatial_resolution",
        "width",
    }
)

# Getters of the form ``method(scene)``.
_SCENE_GETTERS = frozenset(
    {
        "angular_resolution",
        "aspect_ratio",
        "center_pixel",
        "cols",
        "dfov",
        "fov",
        "h_angular_resolution",
        "rows",
        "size",
        "vfov",
        "w_angular_resolution",
    }
)

_ATTRIBUTES = frozenset(
    {
        "bin_width",
        "bit_depth",
        "consistency",
        "data",
        "data_max",
        "data_min",
        "depth_map",
        "filename",
        "name",
        "nwave",
        "spectrum",
        "type",
        "wave",
    }
)


def _first(args: tuple[Any, ...]) -> Any:
    return args[0] if args else None


def _require_locs(key: str, args: tuple[Any, ...]) -> Any:
    if not args:
        raise MissingValueError(f"{key} requires a list of (row, col) locations")
    return args[0]


def _psf_field(oi: OpticalImage, name: str) -> Any:
    psf = oi.psf
    return None if psf is None else getattr(psf, name)


_SPECIAL_GETTERS: dict[str, Callable[[OpticalImage, tuple[Any, ...], "Scene | None"], Any]] = {
    "photons": lambda oi, args, scene: oi.photons(_first(args)),
    "energy": lambda oi, args, scene: oi.energy(_first(args)),
    "illuminance": lambda oi, args, scene: oi.illuminance(),
    "mean_illuminance": lambda oi, args, scene: oi.mean_illuminance(),
    "xyz": lambda oi, args, scene: oi.xyz(),
    "roi_photons": lambda oi, args, scene: oi.roi_photons(_require_locs("roi_photons", args)),
    "roi_mean_photons": lambda oi, args, scene: oi.roi_mean_photons(
        _require_locs("roi_mean_photons", args)
    ),
    "roi_energy": lambda oi, args, scene: oi.roi_energy(_require_locs("roi_energy", args)),
    "roi_mean_energy": lambda oi, args, scene: oi.roi_mean_energy(
        _require_locs("roi_mean_energy", args)
    ),
    "photons_noise": lambda oi, args, scene: oi.photons_noise(
        integration_time_s=_first(args), scene=scene
    ),
    "energy_noise": lambda oi, args, scene: oi.energy_noise(
        integration_time_s=_first(args), scene=scene
    ),
    "logical_depth_map": lambda oi, args, scene: oi.logical_depth_map(),
    "diffuser_method": lambda oi, args, scene: oi.diffuser.method,
    "diffuser_blur": lambda oi, args, scene: oi.diffuser_blur(_first(args)),
    "psf_struct": lambda oi, args, scene: oi.psf,
    "sv_psf": lambda oi, args, scene: _psf_field(oi, "psf"),
    "rt_psf_size": lambda oi, args, scene: _psf_field(oi, "kernel_size"),
    "psf_sample_angles": lambda oi, args, scene: _psf_field(oi, "sample_angles"),
    "psf_angle_step": lambda oi, args, scene: _psf_field(oi, "angle_step"),
    "psf_image_heights": lambda oi, args, scene: _psf_image_heights(oi, _first(args)),
    "psf_optics_name": lambda oi, args, scene: _psf_field(oi, "optics_name"),
    "psf_wavelength": lambda oi, args, scene: _psf_field(oi, "wavelength"),
}


def _psf_image_heights(oi: OpticalImage, unit: str | None) -> np.ndarray | None:
    heights = _psf_field(oi, "image_heights")
    if heights is None:
        return None
    return np.asarray(heights, dtype=np.float64) * unit_scale_factor(unit)


def oi_get(oi: OpticalImage, param: str, *args: Any, scene: Scene | None = None) -> Any:
    """Read an optical-image parameter by name.

    Parameters
    ----------
    oi:
        Optical image to query.
    param:
        Parameter name, e.g. ``"mean illuminance"``, ``"width"`` or
        ``"optics fnumber"``.
    *args:
        Extra arguments: a unit for geometric getters, a wavelength subset for
        ``photons``/``energy``, locations for the ROI getters.
    scene:
        Optional companion scene used when the optical image has no data.
    """

    namespace, rest = split_namespace(param)
    if namespace == "optics":
        return oi.optics_get(rest, *args)
    if namespace == "lens":
        return oi.lens_get(rest, *args)

    key = _GET_INDEX.get(rest)
    if key is None:
        raise UnknownParameterError(param)
    if key in _UNIT_GETTERS:
        return getattr(oi, key)(_first(args), scene)
    if key in _SCENE_GETTERS:
        return getattr(oi, key)(scene)
    if key in _ATTRIBUTES:
        return getattr(oi, key)
    return _SPECIAL_GETTERS[key](oi, args, scene)


def _ensure_psf(oi: OpticalImage) -> PSFStruct:
    if oi.psf is None:
        oi.psf = PSFStruct()
    return oi.psf


def oi_set(oi: OpticalImage, param: str, value: Any = _MISSING, *args: Any) -> OpticalImage:
    """Write an optical-image parameter by name and return ``oi``.

    Derived quantities (``width``, ``height``, ``area``, ``energy``, ...) are
    not settable and raise :class:`~isetlite.errors.UnknownParameterError`.
    """

    if value is _MISSING:
        raise MissingValueError(f"oi_set {param!r} requires a value")

    namespace, rest = split_namespace(param)
    if namespace == "optics":
        oi.optics_set("" if rest == "structure" else rest, value, *args)
        return oi
    if namespace == "lens":
        oi.lens_set(rest, value, *args)
        return oi

    key = _SET_INDEX.get(rest)
    if key is None:
        raise UnknownParameterError(param)

    if key in ("name", "type", "filename"):
        setattr(oi, key, value)
    elif key == "consistency":
        oi.consistency = bool(value)
    elif key == "distance":
        oi.set_distance(value)
    elif key == "fov":
        oi.set_fov(value)
    elif key == "data":
        if not isinstance(value, RadiometricArray):
            raise TypeError("oi data must be a RadiometricArray")
        oi.data = value
    elif key == "photons":
        oi.set_photons(value, _first(args))
    elif key == "bit_depth":
        oi.bit_depth = value
    elif key == "illuminance":
        oi.set_illuminance(value)
    elif key == "mean_illuminance":
        oi.set_mean_illuminance(value)
    elif key == "wave":
        oi.set_wave(value)
    elif key == "diffuser_method":
        oi.set_diffuser_method(value)
    elif key == "diffuser_blur":
        oi.set_diffuser_blur(value)
    elif key == "psf_struct":
        if value is not None and not isinstance(value, PSFStruct):
            raise TypeError("psf struct must be a PSFStruct")
        oi.psf = value
    elif key == "sv_psf":
        _ensure_psf(oi).psf = value
    elif key == "psf_sample_angles":
        _ensure_psf(oi).sample_angles = np.asarray(value, dtype=np.float64)
    elif key == "psf_optics_name":
        _ensure_psf(oi).optics_name = value
    elif key == "psf_image_heights":
        _ensure_psf(oi).image_heights = np.asarray(value, dtype=np.float64)
    elif key == "psf_wavelength":
        _ensure_psf(oi).wavelength = np.asarray(value, dtype=np.float64)
    elif key == "depth_map":
        oi.set_depth_map(value)
    return oi


def describe_parameter(param: str) -> str:
    """Return the canonical name ``param`` resolves to for reading."""

    namespace, rest = split_namespace(param)
    if namespace is not None:
        return f"{namespace}.{rest}" if rest else namespace
    key = resolve_alias(_GET_INDEX, rest)
    if key is None:
        raise UnknownParameterError(param)
    return key
