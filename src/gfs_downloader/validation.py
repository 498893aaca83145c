"""Completeness checks for parsed indexes."""

from __future__ import annotations

import logging
from typing import Iterable

from gfs_downloader import axes
from gfs_downloader.errors import (
    DuplicateMessageError,
    ForecastMismatchError,
    MissingMessagesError,
)
from gfs_downloader.grib_index import MessageDescriptor
from gfs_downloader.variables import DatasetVariant, ForecastTime, Level, Variable

logger = logging.getLogger(__name__)


def check_index_has_all_messages(
    messages: Iterable[MessageDescriptor],
    *,
    expect_variant: DatasetVariant,
    expect_fcst_time: ForecastTime,
    expect_hour: int,
) -> dict[tuple[Variable, Level], MessageDescriptor]:
    """Check that an index describes exactly the expected coordinate grid.

    Entries for (variable, level) pairs outside the variant's grid are
    ignored.

    Args:
        messages: Descriptors from :func:`gfs_downloader.grib_index.parse`.
        expect_variant: Product file the index belongs to.
        expect_fcst_time: Cycle the index must describe.
        expect_hour: Forecast hour the index must describe.

    Returns:
        Mapping from every expected (variable, level) pair to its descriptor.

    Raises:
        ForecastMismatchError: An entry has another cycle or forecast hour.
        DuplicateMessageError: An expected pair appears more than once.
        MissingMessagesError: Some expected pairs are absent.
    """
    expected = axes.expected_coordinates(expect_variant)
    present: dict[tuple[Variable, Level], MessageDescriptor] = {}

    for msg in messages:
        if msg.fcst_time != expect_fcst_time or msg.hour != expect_hour:
            raise ForecastMismatchError(
                f"Index (fcst time, hour) = ({msg.fcst_time}, {msg.hour}); "
                f"expected ({expect_fcst_time}, {expect_hour})"
            )
        key = (msg.variable, msg.level)
        if key in present:
            raise DuplicateMessageError(
                f"Duplicate message in index ({msg.variable}, {msg.level})"
            )
        if key not in expected:
            continue
        present[key] = msg

    if len(present) != len(expected):
        raise MissingMessagesError(expected.difference(present))

    logger.debug(
        "Index %s %s f%03d has all %d messages",
        expect_fcst_time, expect_variant, expect_hour, len(present),
    )
    return present
