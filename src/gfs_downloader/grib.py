"""Decode single GRIB2 messages with ecCodes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np

from gfs_downloader.errors import GribDecodeError
from gfs_downloader.variables import Level, Variable

logger = logging.getLogger(__name__)

_ISOBARIC = "isobaricInhPa"


@dataclass(frozen=True)
class Layout:
    """Grid geometry of a message; two messages on the same grid compare equal."""

    grid_type: str
    ni: int
    nj: int
    lat_first: float
    lon_first: float
    lat_last: float
    lon_last: float
    scanning_mode: int


# GFS 0.5° global grid, north to south, 0 to 359.5 E
GFS_0P50_LAYOUT = Layout(
    grid_type="regular_ll",
    ni=720,
    nj=361,
    lat_first=90.0,
    lon_first=0.0,
    lat_last=-90.0,
    lon_last=359.5,
    scanning_mode=0,
)


@dataclass(frozen=True)
class GribMessage:
    """One decoded message, plus the raw bytes it was decoded from."""

    variable: Variable
    level: Level
    hour: int
    layout: Layout
    values: np.ndarray = field(repr=False, compare=False)
    data: bytes = field(repr=False, compare=False)


def _layout(gid) -> Layout:
    import eccodes

    return Layout(
        grid_type=eccodes.codes_get(gid, "gridType"),
        ni=eccodes.codes_get(gid, "Ni"),
        nj=eccodes.codes_get(gid, "Nj"),
        lat_first=eccodes.codes_get(gid, "latitudeOfFirstGridPointInDegrees"),
        lon_first=eccodes.codes_get(gid, "longitudeOfFirstGridPointInDegrees"),
        lat_last=eccodes.codes_get(gid, "latitudeOfLastGridPointInDegrees"),
        lon_last=eccodes.codes_get(gid, "longitudeOfLastGridPointInDegrees"),
        scanning_mode=eccodes.codes_get(gid, "scanningMode"),
    )


def decode_message(data: bytes) -> GribMessage:
    """Decode the raw bytes of exactly one GRIB message.

    Raises:
        GribDecodeError: The bytes are not a GRIB message, or describe a
            field this package does not track.
    """
    import eccodes

    try:
        gid = eccodes.codes_new_from_message(data)
    except eccodes.CodesInternalError as err:
        raise GribDecodeError(f"not a GRIB message: {err}") from err

    try:
        type_of_level = eccodes.codes_get(gid, "typeOfLevel")
        if type_of_level != _ISOBARIC:
            raise GribDecodeError(f"unexpected typeOfLevel {type_of_level!r}")
        variable = Variable.from_short_name(eccodes.codes_get(gid, "shortName"))
        level = Level(int(eccodes.codes_get(gid, "level")))
        hour = int(eccodes.codes_get(gid, "step"))
        layout = _layout(gid)
        values = eccodes.codes_get_values(gid).reshape(layout.nj, layout.ni)
    except eccodes.CodesInternalError as err:
        raise GribDecodeError(f"cannot decode GRIB message: {err}") from err
    except ValueError as err:
        raise GribDecodeError(str(err)) from err
    finally:
        eccodes.codes_release(gid)

    logger.debug("Decoded %s %s %d (%d bytes)", variable, level, hour, len(data))
    return GribMessage(
        variable=variable,
        level=level,
        hour=hour,
        layout=layout,
        values=values,
        data=data,
    )
