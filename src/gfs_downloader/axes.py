"""Coordinate axes of the output array: forecast hour × level × variable.

Every table here is built once at import time and checked so that forward
and inverse lookups agree; a failed check aborts the import.
"""

from __future__ import annotations

import itertools

from gfs_downloader.variables import DatasetVariant, Level, Variable

MAX_HOUR = 192
HOUR_STEP = 3

HOURS = tuple(range(0, MAX_HOUR + 1, HOUR_STEP))

LEVELS_PGRB2 = tuple(
    Level(mb)
    for mb in (
        10, 20, 30, 50, 70, 100, 150, 200, 250, 300, 350, 400,
        450, 500, 550, 600, 650, 700, 750, 800, 850, 900, 925,
        950, 975, 1000,
    )
)

LEVELS_PGRB2B = tuple(
    Level(mb)
    for mb in (
        1, 2, 3, 5, 7, 125, 175, 225, 275, 325, 375, 425,
        475, 525, 575, 625, 675, 725, 775, 825, 875,
    )
)

# Level sorts descending by pressure
LEVELS = tuple(sorted(LEVELS_PGRB2 + LEVELS_PGRB2B))

VARIABLES = (Variable.HEIGHT, Variable.U_WIND, Variable.V_WIND)

SHAPE = (len(HOURS), len(LEVELS), len(VARIABLES))

_LEVEL_INDEX = {level: idx for idx, level in enumerate(LEVELS)}
_VARIABLE_INDEX = {variable: idx for idx, variable in enumerate(VARIABLES)}


def hour_index(hour: int) -> int:
    """Index of a forecast hour (a multiple of 3 in [0, 192])."""
    if hour % HOUR_STEP != 0 or not 0 <= hour <= MAX_HOUR:
        raise ValueError(f"Forecast hour {hour} not on the axis (0..{MAX_HOUR} step {HOUR_STEP})")
    return hour // HOUR_STEP


def level_index(level: Level) -> int:
    try:
        return _LEVEL_INDEX[level]
    except KeyError:
        raise ValueError(f"Level {level} not on the axis") from None


def variable_index(variable: Variable) -> int:
    return _VARIABLE_INDEX[variable]


def hour_at(idx: int) -> int:
    return HOURS[idx]


def level_at(idx: int) -> Level:
    return LEVELS[idx]


def variable_at(idx: int) -> Variable:
    return VARIABLES[idx]


def index(hour: int, level: Level, variable: Variable) -> tuple[int, int, int]:
    """Position of one field in an array of shape ``SHAPE``."""
    return hour_index(hour), level_index(level), variable_index(variable)


def levels_for(variant: DatasetVariant) -> tuple[Level, ...]:
    """Levels published in the given product file."""
    if variant is DatasetVariant.PGRB2:
        return LEVELS_PGRB2
    if variant is DatasetVariant.PGRB2B:
        return LEVELS_PGRB2B
    raise ValueError(f"Unknown dataset variant {variant!r}")


_EXPECTED = {
    variant: frozenset(itertools.product(VARIABLES, levels_for(variant)))
    for variant in DatasetVariant
}


def expected_coordinates(variant: DatasetVariant) -> frozenset[tuple[Variable, Level]]:
    """All (variable, level) pairs that one index of ``variant`` must contain."""
    return _EXPECTED[variant]


def _check_tables() -> None:
    """Raise RuntimeError unless every table round-trips through its lookups."""
    for idx, hour in enumerate(HOURS):
        if hour_index(hour) != idx or hour_at(idx) != hour:
            raise RuntimeError(f"hour axis inconsistent at {hour}")
    for idx, level in enumerate(LEVELS):
        if level_index(level) != idx or level_at(idx) != level:
            raise RuntimeError(f"level axis inconsistent at {level}")
    for idx, variable in enumerate(VARIABLES):
        if variable_index(variable) != idx or variable_at(idx) != variable:
            raise RuntimeError(f"variable axis inconsistent at {variable}")
    if not set(LEVELS_PGRB2).isdisjoint(LEVELS_PGRB2B):
        raise RuntimeError("pgrb2 and pgrb2b level tables overlap")
    if len(LEVELS) != len(_LEVEL_INDEX):
        raise RuntimeError("level axis has repeated entries")


_check_tables()
