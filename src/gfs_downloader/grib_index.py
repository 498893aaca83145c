"""Parser for the ``.idx`` sidecar files published next to each GRIB2 file.

Each record is one line of seven colon-separated fields, the last empty::

    15:1207405:d=2015080106:HGT:500 mb:159 hour fcst:

Records for variables or levels that are not tracked are skipped. A record's
byte length is the distance to the next record's offset, so every recognised
record needs a well-formed successor.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from gfs_downloader.errors import IndexParseError
from gfs_downloader.variables import ForecastTime, Level, Variable

logger = logging.getLogger(__name__)

_FCST_TIME_PREFIX = "d="
_LEVEL_SUFFIX = " mb"
_HOUR_SUFFIX = " hour fcst"
_ANALYSIS = "anl"


@dataclass(frozen=True)
class IndexLine:
    """One recognised record, before its length is known."""

    idx: int
    offset: int
    fcst_time: ForecastTime
    variable: Variable
    level: Level
    hour: int


@dataclass(frozen=True)
class MessageDescriptor:
    """Location and identity of one GRIB message inside the full file."""

    offset: int
    length: int
    fcst_time: ForecastTime
    variable: Variable
    level: Level
    hour: int

    @property
    def end(self) -> int:
        return self.offset + self.length

    def __str__(self) -> str:
        return (
            f"{self.fcst_time} {self.variable} {self.level} {self.hour} "
            f"({self.offset};{self.length})"
        )


def _drop_suffix(s: str, suffix: str) -> str:
    if not s.endswith(suffix):
        raise ValueError(f"expected suffix {suffix!r} in {s!r}")
    return s[: -len(suffix)]


def parse_fcst_time(s: str) -> ForecastTime:
    """Parse ``d=YYYYMMDDHH``."""
    if len(s) != len(_FCST_TIME_PREFIX) + 10 or not s.startswith(_FCST_TIME_PREFIX):
        raise ValueError(f"malformed forecast time {s!r}")
    return ForecastTime.parse(s[len(_FCST_TIME_PREFIX):])


def parse_variable(s: str) -> Variable:
    return Variable.from_mnemonic(s)


def parse_level(s: str) -> Level:
    """Parse ``"<int> mb"``."""
    return Level(int(_drop_suffix(s, _LEVEL_SUFFIX)))


def parse_hour(s: str) -> int:
    """Parse ``"anl"`` (hour 0) or ``"<int> hour fcst"`` (a multiple of 3)."""
    if s == _ANALYSIS:
        return 0
    hour = int(_drop_suffix(s, _HOUR_SUFFIX))
    if hour % 3 != 0:
        raise ValueError(f"hour {hour} is not a multiple of 3")
    return hour


def parse_line(fields: list[str]) -> IndexLine:
    """Fully parse one record.

    Raises:
        ValueError: The record is not one this package tracks.
    """
    if len(fields) != 7 or fields[6] != "":
        raise ValueError(f"malformed line ({len(fields)} fields)")
    idx, offset, fcst_time, variable, level, hour, _ = fields
    return IndexLine(
        idx=int(idx),
        offset=int(offset),
        fcst_time=parse_fcst_time(fcst_time),
        variable=parse_variable(variable),
        level=parse_level(level),
        hour=parse_hour(hour),
    )


def parse_idx_offset(fields: list[str]) -> tuple[int, int]:
    """Recover only the sequence number and offset of a record."""
    if len(fields) < 2:
        raise IndexParseError(f"malformed line {':'.join(fields)!r}")
    try:
        return int(fields[0]), int(fields[1])
    except ValueError as err:
        raise IndexParseError(f"malformed line {':'.join(fields)!r}") from err


def parse(index: str) -> list[MessageDescriptor]:
    """Parse a whole index into message descriptors, in file order.

    Args:
        index: Raw index text.

    Returns:
        One descriptor per recognised record.

    Raises:
        IndexParseError: The successor of a recognised record is malformed,
            out of sequence or does not start after it, or a recognised
            record is the last line of the file.
    """
    lines = [line.split(":") for line in index.splitlines()]
    messages = []

    for pos, fields in enumerate(lines):
        try:
            line = parse_line(fields)
        except ValueError:
            continue

        if pos + 1 == len(lines):
            raise IndexParseError(
                f"record {line.idx} ({line.variable} {line.level}) is the last line; "
                "its length cannot be computed"
            )

        next_idx, next_offset = parse_idx_offset(lines[pos + 1])
        length = next_offset - line.offset
        if next_idx != line.idx + 1 or length <= 0:
            raise IndexParseError(f"line after {line.idx} made no sense")

        messages.append(
            MessageDescriptor(
                offset=line.offset,
                length=length,
                fcst_time=line.fcst_time,
                variable=line.variable,
                level=line.level,
                hour=line.hour,
            )
        )

    logger.debug("Parsed %d of %d index lines", len(messages), len(lines))
    return messages
