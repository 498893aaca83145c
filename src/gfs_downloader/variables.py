"""Domain types and name mappings for GFS pressure-level fields."""

from __future__ import annotations

import datetime
import functools
from dataclasses import dataclass
from enum import Enum

# ── Forecast cycles ──────────────────────────────────────────────────────

CYCLE_HOURS = (0, 6, 12, 18)


@dataclass(frozen=True)
class ForecastTime:
    """One model run: a calendar date plus a cycle hour (00/06/12/18 UTC).

    Args:
        date: Cycle date.
        hour: Cycle start hour, one of 0, 6, 12, 18.
    """

    date: datetime.date
    hour: int

    def __post_init__(self):
        if self.hour not in CYCLE_HOURS:
            raise ValueError(f"Invalid cycle hour {self.hour}. Must be one of: {list(CYCLE_HOURS)}")

    @classmethod
    def parse(cls, s: str) -> "ForecastTime":
        """Parse the 10-digit ``YYYYMMDDHH`` form used by index files."""
        if len(s) != 10 or not s.isdigit():
            raise ValueError(f"Malformed forecast time {s!r}")
        date = datetime.datetime.strptime(s[:8], "%Y%m%d").date()
        return cls(date, int(s[8:]))

    def __str__(self) -> str:
        return f"{self.date:%Y%m%d}{self.hour:02d}"


# ── Variables ────────────────────────────────────────────────────────────


class Variable(Enum):
    """Tracked physical variables, valued by their index mnemonic."""

    HEIGHT = "HGT"
    U_WIND = "UGRD"
    V_WIND = "VGRD"

    @property
    def mnemonic(self) -> str:
        return self.value

    @property
    def short_name(self) -> str:
        """ecCodes ``shortName`` of the variable."""
        return GRIB_SHORT_NAMES[self]

    @classmethod
    def from_mnemonic(cls, mnemonic: str) -> "Variable":
        try:
            return cls(mnemonic)
        except ValueError:
            raise ValueError(f"Unknown variable mnemonic {mnemonic!r}") from None

    @classmethod
    def from_short_name(cls, short_name: str) -> "Variable":
        for variable, name in GRIB_SHORT_NAMES.items():
            if name == short_name:
                return variable
        raise ValueError(f"Unknown GRIB shortName {short_name!r}")

    def __str__(self) -> str:
        return self.value


GRIB_SHORT_NAMES = {
    Variable.HEIGHT: "gh",
    Variable.U_WIND: "u",
    Variable.V_WIND: "v",
}


# ── Pressure levels ──────────────────────────────────────────────────────


@functools.total_ordering
@dataclass(frozen=True)
class Level:
    """A pressure level in millibars.

    Levels sort by descending pressure, so the level nearest the ground
    comes first.
    """

    mb: int

    def __post_init__(self):
        if not isinstance(self.mb, int) or isinstance(self.mb, bool):
            raise TypeError(f"Level expects an int number of millibars, got {self.mb!r}")

    def __lt__(self, other):
        if not isinstance(other, Level):
            return NotImplemented
        return self.mb > other.mb

    def __str__(self) -> str:
        return f"{self.mb} mb"


# ── Dataset variants ─────────────────────────────────────────────────────


class DatasetVariant(Enum):
    """The two GFS pressure-level products, covering disjoint level sets."""

    PGRB2 = "pgrb2"
    PGRB2B = "pgrb2b"

    def __str__(self) -> str:
        return self.value
