"""Exception types raised by the optical-image data model."""

from __future__ import annotations

__all__ = [
    "ConstructionError",
    "InvalidRegionError",
    "IsetError",
    "MissingValueError",
    "UnknownParameterError",
    "UnsupportedPrecisionError",
]


class IsetError(Exception):
    """Base class for all isetlite errors."""


class ConstructionError(IsetError, ValueError):
    """An object was built from inconsistent inputs."""


class UnknownParameterError(IsetError, KeyError):
    """An accessor was called with a parameter name it does not recognise."""

    def __init__(self, name: str, owner: str = "oi") -> None:
        self.name = name
        self.owner = owner
        super().__init__(f"Unknown {owner} parameter: {name!r}")

    def __str__(self) -> str:
        return str(self.args[0])


class MissingValueError(IsetError, ValueError):
    """A set-style accessor was invoked without its required value."""


class UnsupportedPrecisionError(IsetError, ValueError):
    """The bit-depth field was given something other than 32 or 64."""


class InvalidRegionError(IsetError, ValueError):
    """A region of interest was empty or fell outside the image."""
