"""Environment helpers shared by the packaging and publishing commands."""

from __future__ import annotations

import typing as typ

__all__ = ["coerce_bool", "env_flag"]

_FALSE_VALUES = frozenset({"", "false", "0", "no", "off"})
_TRUE_VALUES = frozenset({"true", "1", "yes", "on"})


def coerce_bool(value: object) -> bool:
    """Return ``value`` as a strict boolean.

    Examples
    --------
    >>> coerce_bool(" YES ")
    True
    >>> coerce_bool("0")
    False
    """
    if isinstance(value, bool):
        return value
    if not isinstance(value, str):
        message = f"Cannot interpret {value!r} as a boolean"
        raise TypeError(message)
    normalised = value.strip().lower()
    if normalised in _FALSE_VALUES:
        return False
    if normalised in _TRUE_VALUES:
        return True
    message = f"Cannot interpret {value!r} as a boolean"
    raise ValueError(message)


def env_flag(environ: typ.Mapping[str, str], name: str) -> bool:
    """Return the boolean toggle stored under ``name``; unset means ``False``."""
    return coerce_bool(environ.get(name, ""))
