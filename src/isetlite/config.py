"""Configuration schema for optical-image simulations.

Session-wide defaults (image size, field of view, noise integration time) live
here and are passed explicitly to the objects that need them.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = [
    "ColorimetryConfig",
    "GeometryDefaults",
    "NoiseConfig",
    "PhotonConfig",
    "SimulationConfig",
    "default_config",
    "load_config",
]


class GeometryDefaults(BaseModel):
    """Fallbacks used when an optical image has no data and no companion scene."""

    model_config = ConfigDict(extra="forbid")

    rows: int = Field(128, gt=0, description="Row count assumed without data or scene")
    cols: int = Field(128, gt=0, description="Column count assumed without data or scene")
    fov_deg: float = Field(10.0, gt=0.0, lt=180.0, description="Horizontal field of view (deg)")


class NoiseConfig(BaseModel):
    """Photon noise settings used by the ``photons noise`` accessors."""

    model_config = ConfigDict(extra="forbid")

    integration_time_s: float = Field(
        0.050, gt=0.0, description="Integration time converting photon rates to counts"
    )
    poisson_criterion: float = Field(
        15.0, ge=0.0, description="Means below this are drawn from the exact Poisson law"
    )
    seed: int | None = Field(None, description="Seed for the noise generator")


class PhotonConfig(BaseModel):
    """Storage policy for photon data."""

    model_config = ConfigDict(extra="forbid")

    bit_depth: Literal[32, 64] = Field(32, description="Storage precision of photon data")
    strict_non_negative: bool = Field(
        False, description="Reject photon writes containing negative values"
    )


class ColorimetryConfig(BaseModel):
    """Photometric constants."""

    model_config = ConfigDict(extra="forbid")

    luminous_efficacy: float = Field(683.0, gt=0.0, description="lm/W")


class SimulationConfig(BaseModel):
    """Top-level configuration shared by scenes, optical images and sequences."""

    model_config = ConfigDict(extra="forbid")

    geometry: GeometryDefaults = Field(default_factory=GeometryDefaults)
    noise: NoiseConfig = Field(default_factory=NoiseConfig)
    photons: PhotonConfig = Field(default_factory=PhotonConfig)
    colorimetry: ColorimetryConfig = Field(default_factory=ColorimetryConfig)
    wave_nm: list[float] = Field(
        default_factory=lambda: [float(w) for w in range(400, 701, 10)],
        description="Default wavelength samples (nm)",
    )

    @field_validator("wave_nm")
    @classmethod
    def _wave_increasing(cls, value: list[float]) -> list[float]:
        if not value:
            raise ValueError("wave_nm must not be empty")
        if any(b <= a for a, b in zip(value, value[1:])):
            raise ValueError("wave_nm must be strictly increasing")
        return value

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "SimulationConfig":
        return cls.model_validate(dict(data or {}))


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, Mapping):
        raise TypeError(f"Expected mapping in {path}, found {type(data)}")
    return dict(data)


def load_config(path: str | Path) -> SimulationConfig:
    """Load a :class:`SimulationConfig` from a YAML file."""

    return SimulationConfig.from_mapping(_load_yaml(Path(path)))


def default_config() -> SimulationConfig:
    """Return a new default configuration; callers never share one instance."""

    return SimulationConfig()
