"""Parameter-name normalisation for the string accessor layer."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping

__all__ = [
    "NAMESPACES",
    "build_alias_index",
    "param_format",
    "resolve_alias",
    "split_namespace",
]

_STRIP = re.compile(r"[\s_\-]+")

NAMESPACES: tuple[str, ...] = ("optics", "lens")


def param_format(name: str) -> str:
    """Lower-case ``name`` and drop spaces, underscores and dashes.

    ``"Mean Illuminance"``, ``"mean_illuminance"`` and ``"meanilluminance"``
    all normalise to ``"meanilluminance"``.
    """

    if not isinstance(name, str):
        raise TypeError(f"Parameter names must be strings, got {type(name).__name__}")
    return _STRIP.sub("", name.strip().lower())


def split_namespace(name: str) -> tuple[str | None, str]:
    """Split a leading ``optics``/``lens`` token off a parameter name.

    Returns ``(namespace, rest)`` with ``rest`` already normalised; the
    namespace is ``None`` when the name is not prefixed. A space-separated
    first token wins over a glued prefix, so ``"optics f number"`` and
    ``"opticsfnumber"`` both give ``("optics", "fnumber")``.
    """

    stripped = name.strip().lower()
    head, _, tail = stripped.partition(" ")
    if head in NAMESPACES:
        return head, param_format(tail)
    flat = param_format(stripped)
    for namespace in NAMESPACES:
        if flat.startswith(namespace):
            return namespace, flat[len(namespace):]
    return None, flat


def build_alias_index(aliases: Mapping[str, Iterable[str]]) -> dict[str, str]:
    """Invert ``{canonical: (alias, ...)}`` into ``{alias: canonical}``."""

    index: dict[str, str] = {}
    for canonical, names in aliases.items():
        index[param_format(canonical)] = canonical
        for alias in names:
            key = param_format(alias)
            if key in index and index[key] != canonical:
                raise ValueError(f"Alias {alias!r} maps to both {index[key]!r} and {canonical!r}")
            index[key] = canonical
    return index


def resolve_alias(index: Mapping[str, str], name: str) -> str | None:
    return index.get(param_format(name))
