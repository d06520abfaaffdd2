"""Runtime configuration for the rotation library."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, fields, replace
from typing import Iterator

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rot3Config:
    """Library-wide switches.

    check_preconditions: validate the unit-axis precondition of the
        Rodrigues map. Off by default.
    unit_axis_tol: tolerance on |axis|^2 - 1 when checks are enabled.
    default_mode: chart used by retract/local_coordinates when no mode
        is passed ("EXPMAP", "CAYLEY" or "SLOW_CAYLEY").
    """

    check_preconditions: bool = False
    unit_axis_tol: float = 1e-9
    default_mode: str = "EXPMAP"


_config = Rot3Config()


def get_config() -> Rot3Config:
    return _config


def configure(**kwargs) -> Rot3Config:
    """Replace fields of the active configuration, returning the previous one."""
    global _config
    known = {f.name for f in fields(Rot3Config)}
    unknown = set(kwargs) - known
    if unknown:
        raise TypeError(f"Unknown configuration keys: {sorted(unknown)}")

    previous = _config
    _config = replace(_config, **kwargs)
    log.debug("Rot3 configuration changed: %s", _config)
    return previous


@contextmanager
def override(**kwargs) -> Iterator[Rot3Config]:
    """Temporarily apply configuration changes inside a with-block."""
    previous = configure(**kwargs)
    try:
        yield _config
    finally:
        configure(**{f.name: getattr(previous, f.name) for f in fields(Rot3Config)})
