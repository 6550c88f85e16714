from __future__ import annotations

import os
from collections.abc import Callable
from functools import wraps
from importlib import metadata
from pathlib import Path
from typing import Any

import typer
import yaml

from .config import SimulationConfig, default_config, load_config
from .errors import IsetError
from .oi import OpticalImage, oi_compute, oi_get, ois_from_scenes
from .oi.accessors import describe_parameter
from .scene import scene_uniform
from .utils.logging import FrameTimer, get_logger
from .version import __version__

_DEBUG_ENV = "ISETLITE_DEBUG"
_COMPONENTS = (
    "Spectral samples and wavelength resampling",
    "Photon irradiance cubes with cached illuminance",
    "Optical image geometry, optics and lens accessors",
    "OISequence temporal compositing (add, blend, xor)",
)

app = typer.Typer(add_completion=False)
_LOG = get_logger(__name__)


def _debug_enabled() -> bool:
    return os.getenv(_DEBUG_ENV, "").lower() in {"1", "true", "yes", "on"}


def _echo_error(message: str) -> None:
    typer.echo(f"Error: {message}", err=True)


def _log_cli_exception(exc: Exception, context: str) -> None:
    if _debug_enabled():
        _LOG.exception("%s", exc)
    else:
        _LOG.error("%s failed: %s", context, exc)


def handle_cli_exceptions(func: Callable[..., Any]) -> Callable[..., Any]:
    """Provide consistent logging and user-friendly errors for CLI commands."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except (typer.BadParameter, typer.Exit, KeyboardInterrupt):
            raise
        except (
            FileNotFoundError,
            OSError,
            yaml.YAMLError,
            IsetError,
            ValueError,
            TypeError,
        ) as exc:
            _log_cli_exception(exc, func.__name__)
            _echo_error(str(exc))
        except Exception as exc:  # pragma: no cover - handled by debug path
            if _debug_enabled():
                raise
            _LOG.exception("Unexpected error while running %s: %s", func.__name__, exc)
            _echo_error(f"Unexpected error. Re-run with {_DEBUG_ENV}=1 for a traceback.")

        raise typer.Exit(code=1)

    return wrapper


def _package_version() -> str:
    try:
        return metadata.version("isetlite")
    except metadata.PackageNotFoundError:
        return __version__


def _print_version() -> None:
    typer.echo(f"isetlite version: {_package_version()}")
    typer.echo("Components:")
    for component in _COMPONENTS:
        typer.echo(f"  - {component}")


def _resolve_config(path: Path | None) -> SimulationConfig:
    return default_config() if path is None else load_config(path)


def _print_geometry(oi: OpticalImage) -> None:
    rows, cols = oi.size()
    typer.echo(f"Name: {oi.name}")
    typer.echo(f"Size: {rows} x {cols} samples, {oi.nwave} wavelengths")
    typer.echo(f"Spectral range: {oi.wave[0]:.1f}-{oi.wave[-1]:.1f} nm (bin {oi.bin_width:g} nm)")
    typer.echo(f"Field of view: {oi.fov():.4f} x {oi.vfov():.4f} deg")
    typer.echo(f"Focal-plane distance: {oi.distance('mm'):.4f} mm")
    typer.echo(f"Width x height: {oi.width('mm'):.4f} x {oi.height('mm'):.4f} mm")
    typer.echo(f"Sample size: {oi.sample_size('um'):.4f} um")
    typer.echo(f"Mean illuminance: {oi.mean_illuminance():.4f} lux")


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version information and exit.",
        is_eager=True,
    ),
) -> None:
    if version:
        _print_version()
        raise typer.Exit()


@app.command("version")  # type: ignore[misc]
def version_command() -> None:
    """Print version and component details."""

    _print_version()


@app.command()  # type: ignore[misc]
@handle_cli_exceptions
def describe(
    size: int = typer.Option(32, "--size", min=1, help="Scene rows and columns."),
    fov: float = typer.Option(1.0, "--fov", help="Scene horizontal field of view (deg)."),
    luminance: float = typer.Option(100.0, "--luminance", help="Scene mean luminance (cd/m^2)."),
    param: list[str] = typer.Option(
        [], "--param", "-p", help="Extra oi_get parameter to print; repeatable."
    ),
    config: Path | None = typer.Option(None, "--config", "-c", help="YAML configuration."),
) -> None:
    """Compute a uniform optical image and print its geometry and illuminance."""

    cfg = _resolve_config(config)
    scene = scene_uniform(size, mean_luminance=luminance, fov_deg=fov, config=cfg)
    oi = oi_compute(OpticalImage(config=cfg), scene)
    _print_geometry(oi)
    for name in param:
        typer.echo(f"{describe_parameter(name)}: {oi_get(oi, name)}")


@app.command()  # type: ignore[misc]
@handle_cli_exceptions
def sequence(
    composition: str = typer.Option("add", "--composition", help="add, blend or xor."),
    frames: int = typer.Option(5, "--frames", min=1, help="Number of frames."),
    size: int = typer.Option(16, "--size", min=1, help="Scene rows and columns."),
    background: float = typer.Option(50.0, "--background", help="Fixed scene luminance."),
    pedestal: float = typer.Option(100.0, "--pedestal", help="Modulated scene luminance."),
    radius_um: float | None = typer.Option(
        None, "--radius-um", help="Modulation region radius (microns); whole frame if omitted."
    ),
    config: Path | None = typer.Option(None, "--config", "-c", help="YAML configuration."),
) -> None:
    """Build a fixed/modulated pair and report per-frame mean illuminance."""

    cfg = _resolve_config(config)
    scenes = [
        scene_uniform(size, mean_luminance=background, fov_deg=1.0, config=cfg),
        scene_uniform(size, mean_luminance=pedestal, fov_deg=1.0, config=cfg),
    ]
    weights = [i / max(frames - 1, 1) for i in range(frames)]
    seq, _ = ois_from_scenes(
        OpticalImage(config=cfg),
        scenes,
        composition,
        weights,
        modulation_region=radius_um,
    )

    timer = FrameTimer()
    timer.start()
    for index, frame in enumerate(seq.frames()):
        typer.echo(
            f"frame {index}: t={seq.time_axis[index] * 1e3:.1f} ms "
            f"weight={seq.modulation_function[index]:.3f} "
            f"mean illuminance={frame.mean_illuminance():.4f} lux"
        )
    timer.log(_LOG, timer.stop(len(seq)), prefix=f"sequence[{seq.composition.value}]")
