"""Shared fixtures: a synthetic GFS archive served through httpx.MockTransport."""

from __future__ import annotations

import datetime
import re
from collections import Counter

import httpx
import numpy as np
import pytest

from gfs_downloader import axes
from gfs_downloader.grib import GFS_0P50_LAYOUT, GribMessage
from gfs_downloader.urls import GfsUrls
from gfs_downloader.variables import DatasetVariant, ForecastTime, Level, Variable

MESSAGE_LENGTH = 64

# Records the archive publishes that this package does not track
UNRELATED = [
    ("PRMSL", "mean sea level"),
    ("TMP", "500 mb"),
    ("HGT", "0.4 mb"),
    ("UGRD", "10 m above ground"),
]


def hour_desc(hour: int) -> str:
    return "anl" if hour == 0 else f"{hour} hour fcst"


def build_index(fcst_time, hour, records, start_idx=1, start_offset=0, length=MESSAGE_LENGTH):
    """Index text for ``records``, a list of (mnemonic, level description)."""
    lines = []
    for pos, (variable, level) in enumerate(records):
        offset = start_offset + pos * length
        lines.append(
            f"{start_idx + pos}:{offset}:d={fcst_time}:{variable}:{level}:{hour_desc(hour)}:"
        )
    return "\n".join(lines) + "\n"


def expected_records(variant):
    return [
        (variable.mnemonic, str(level))
        for level in axes.levels_for(variant)
        for variable in axes.VARIABLES
    ]


def fake_decoder(data: bytes) -> GribMessage:
    """Decode the ``MNEMONIC|mb|hour`` payloads served by :class:`FakeArchive`."""
    mnemonic, mb, hour = data.rstrip(b" ").decode().split("|")
    return GribMessage(
        variable=Variable.from_mnemonic(mnemonic),
        level=Level(int(mb)),
        hour=int(hour),
        layout=GFS_0P50_LAYOUT,
        values=np.zeros((2, 2)),
        data=data,
    )


class FakeArchive:
    """One GFS forecast file and its index, served over a mock transport.

    Every message body is the text ``MNEMONIC|mb|hour`` padded to
    ``MESSAGE_LENGTH`` bytes, so :func:`fake_decoder` can recover it.
    """

    def __init__(self, fcst_time, variant, hour, records=None, urls=None):
        self.fcst_time = fcst_time
        self.variant = variant
        self.hour = hour
        self.urls = urls or GfsUrls("https://archive.test/")
        records = list(records if records is not None else UNRELATED[:2] + expected_records(variant))
        records.append(UNRELATED[0])
        self.index_text = build_index(fcst_time, hour, records)
        self.body = b"".join(self._payload(variable, level) for variable, level in records)
        self.requests = Counter()
        self.failures = Counter()

    def _payload(self, variable, level):
        mb = level.split(" ")[0]
        text = f"{variable}|{mb}|{self.hour}".encode()
        return text.ljust(MESSAGE_LENGTH, b" ")

    def fail_next(self, url, times=1):
        self.failures[url] += times

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests[url] += 1
        if self.failures[url] > 0:
            self.failures[url] -= 1
            return httpx.Response(503)

        if url == self.urls.index_file(self.fcst_time, self.variant, self.hour):
            content = self.index_text.encode()
        elif url == self.urls.grib_file(self.fcst_time, self.variant, self.hour):
            content = self.body
        else:
            return httpx.Response(404)

        match = re.fullmatch(r"bytes=(\d+)-(\d+)", request.headers.get("Range", ""))
        if match is None:
            return httpx.Response(200, content=content)
        start, stop = int(match.group(1)), int(match.group(2)) + 1
        return httpx.Response(206, content=content[start:stop])

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def sample_fcst_time() -> ForecastTime:
    """Sample forecast cycle (2015-08-01 06Z)."""
    return ForecastTime(datetime.date(2015, 8, 1), 6)


@pytest.fixture
def archive(sample_fcst_time: ForecastTime) -> FakeArchive:
    """Archive holding a complete pgrb2 file for forecast hour 6."""
    return FakeArchive(sample_fcst_time, DatasetVariant.PGRB2, 6)
