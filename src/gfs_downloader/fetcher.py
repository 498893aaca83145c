"""GribFetcher: index and message downloads through the gate and retry driver."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from tqdm import tqdm

from gfs_downloader import axes, grib_index
from gfs_downloader.errors import ContentMismatchError
from gfs_downloader.grib import GFS_0P50_LAYOUT, GribMessage, Layout, decode_message
from gfs_downloader.grib_index import MessageDescriptor
from gfs_downloader.retry import INITIAL_BACKOFF, MAX_BACKOFF, with_retries
from gfs_downloader.throttle import Throttle
from gfs_downloader.transport import ExactRange, FirstBytes, RangeClient
from gfs_downloader.urls import GfsUrls
from gfs_downloader.validation import check_index_has_all_messages
from gfs_downloader.variables import DatasetVariant, ForecastTime, Level, Variable

logger = logging.getLogger(__name__)

INDEX_TIMEOUT = 10.0
MESSAGE_TIMEOUT = 60.0
INDEX_MAX_BYTES = 32 * 1024


class GribFetcher:
    """Fetch validated indexes and verified messages for GFS forecast files.

    Every HTTP request goes through one :class:`Throttle`, and every fetch is
    retried by :func:`gfs_downloader.retry.with_retries` until it succeeds or
    the caller's ``interrupt`` event fires.

    Args:
        urls: URL builder; NOMADS 0.5° by default.
        client: Range client; one is created, and closed by :meth:`aclose`,
            if omitted.
        throttle: Admission gate shared by all requests.
        decoder: Turns message bytes into a :class:`GribMessage`.
        expected_layout: Grid every downloaded message must be on.
        index_timeout: Seconds allowed per index attempt.
        message_timeout: Seconds allowed per message attempt.
        index_max_bytes: Byte cap on index downloads.
        initial_backoff: First retry delay in seconds.
        max_backoff: Cap on the retry delay in seconds.

    Example::

        async with GribFetcher() as fetcher:
            interrupt = asyncio.Event()
            index = await fetcher.get_index(
                ForecastTime(date(2024, 1, 15), 0), DatasetVariant.PGRB2, 6,
                interrupt=interrupt,
            )
    """

    def __init__(
        self,
        urls: Optional[GfsUrls] = None,
        client: Optional[RangeClient] = None,
        throttle: Optional[Throttle] = None,
        decoder: Callable[[bytes], GribMessage] = decode_message,
        expected_layout: Layout = GFS_0P50_LAYOUT,
        index_timeout: float = INDEX_TIMEOUT,
        message_timeout: float = MESSAGE_TIMEOUT,
        index_max_bytes: int = INDEX_MAX_BYTES,
        initial_backoff: float = INITIAL_BACKOFF,
        max_backoff: float = MAX_BACKOFF,
    ):
        self.urls = urls or GfsUrls()
        self._owns_client = client is None
        self.client = client or RangeClient()
        self.throttle = throttle or Throttle()
        self.decoder = decoder
        self.expected_layout = expected_layout
        self.index_timeout = index_timeout
        self.message_timeout = message_timeout
        self.index_max_bytes = index_max_bytes
        self.initial_backoff = initial_backoff
        self.max_backoff = max_backoff

    async def __aenter__(self) -> "GribFetcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client:
            await self.client.aclose()

    async def _throttled_download(self, url, byte_range, interrupt) -> bytes:
        return await self.throttle.enqueue(
            lambda: self.client.get(url, byte_range=byte_range, interrupt=interrupt)
        )

    async def _with_retries(self, f, *, name, attempt_timeout, interrupt):
        return await with_retries(
            f,
            name=name,
            attempt_timeout=attempt_timeout,
            interrupt=interrupt,
            initial_backoff=self.initial_backoff,
            max_backoff=self.max_backoff,
        )

    async def get_index(
        self,
        fcst_time: ForecastTime,
        variant: DatasetVariant,
        hour: int,
        *,
        interrupt: asyncio.Event,
    ) -> dict[tuple[Variable, Level], MessageDescriptor]:
        """Download, parse and validate the index of one forecast file.

        Args:
            fcst_time: Forecast cycle.
            variant: Product file.
            hour: Forecast hour.
            interrupt: External cancellation signal.

        Returns:
            Descriptor of every expected (variable, level) pair.

        Raises:
            ValueError: ``hour`` is not on the forecast-hour axis.
            Interrupted: ``interrupt`` fired before a valid index arrived.
        """
        axes.hour_index(hour)
        url = self.urls.index_file(fcst_time, variant, hour)

        async def attempt(interrupt):
            raw = await self._throttled_download(
                url, FirstBytes(self.index_max_bytes), interrupt
            )
            messages = grib_index.parse(raw.decode("ascii", errors="replace"))
            return check_index_has_all_messages(
                messages,
                expect_variant=variant,
                expect_fcst_time=fcst_time,
                expect_hour=hour,
            )

        index = await self._with_retries(
            attempt,
            name=f"IDX {fcst_time} {variant} {hour}",
            attempt_timeout=self.index_timeout,
            interrupt=interrupt,
        )
        logger.info("Index %s %s f%03d: %d messages", fcst_time, variant, hour, len(index))
        return index

    def check_message(self, msg: MessageDescriptor, message: GribMessage) -> None:
        """Compare a decoded message with its index entry.

        Raises:
            ContentMismatchError: Variable, hour, level or layout differ.
        """
        claimed = (msg.variable, msg.hour, msg.level, self.expected_layout)
        actual = (message.variable, message.hour, message.level, message.layout)
        if actual != claimed:
            raise ContentMismatchError(
                f"GRIB message contents did not match index: got {actual[:3]}, "
                f"index says {claimed[:3]} ({msg.offset};{msg.length})"
                + ("" if message.layout == self.expected_layout else f"; layout {message.layout}")
            )

    async def get_message(
        self,
        msg: MessageDescriptor,
        variant: DatasetVariant,
        *,
        interrupt: asyncio.Event,
    ) -> GribMessage:
        """Download one message's byte range and verify it against the index.

        Args:
            msg: Index entry to fetch.
            variant: Product file the entry comes from.
            interrupt: External cancellation signal.

        Raises:
            ValueError: ``msg.hour`` is not on the forecast-hour axis.
            Interrupted: ``interrupt`` fired before a verified message arrived.
        """
        axes.hour_index(msg.hour)
        url = self.urls.grib_file(msg.fcst_time, variant, msg.hour)

        async def attempt(interrupt):
            data = await self._throttled_download(
                url, ExactRange(msg.offset, msg.length), interrupt
            )
            message = self.decoder(data)
            self.check_message(msg, message)
            return message

        return await self._with_retries(
            attempt,
            name=str(msg),
            attempt_timeout=self.message_timeout,
            interrupt=interrupt,
        )

    async def get_cycle_hour(
        self,
        fcst_time: ForecastTime,
        variant: DatasetVariant,
        hour: int,
        *,
        interrupt: asyncio.Event,
        show_progress: bool = True,
    ) -> dict[tuple[Variable, Level], GribMessage]:
        """Fetch every expected message of one forecast file.

        Returns:
            Verified messages keyed by (variable, level), in axis order.

        Raises:
            ValueError: ``hour`` is not on the forecast-hour axis.
            Interrupted: ``interrupt`` fired before everything arrived.
        """
        index = await self.get_index(fcst_time, variant, hour, interrupt=interrupt)

        async def fetch(key, msg):
            return key, await self.get_message(msg, variant, interrupt=interrupt)

        tasks = [asyncio.ensure_future(fetch(key, msg)) for key, msg in index.items()]
        results = {}
        try:
            with tqdm(
                total=len(tasks),
                desc=f"GFS {fcst_time} {variant} f{hour:03d}",
                unit="msg",
                leave=False,
                disable=not show_progress,
            ) as progress:
                for next_done in asyncio.as_completed(tasks):
                    key, message = await next_done
                    results[key] = message
                    progress.update(1)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        logger.info("Fetched %d messages for %s %s f%03d", len(results), fcst_time, variant, hour)
        return dict(
            sorted(
                results.items(),
                key=lambda item: (axes.level_index(item[0][1]), axes.variable_index(item[0][0])),
            )
        )
