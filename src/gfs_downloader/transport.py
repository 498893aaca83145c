"""HTTP byte-range downloads with cooperative cancellation."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Union

import httpx

from gfs_downloader.errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120.0


@dataclass(frozen=True)
class FirstBytes:
    """The whole resource, which must not exceed ``max_len`` bytes."""

    max_len: int

    def header(self) -> str:
        return f"bytes=0-{self.max_len - 1}"


@dataclass(frozen=True)
class ExactRange:
    """Exactly ``length`` bytes starting at ``offset``."""

    offset: int
    length: int

    def header(self) -> str:
        return f"bytes={self.offset}-{self.offset + self.length - 1}"


ByteRange = Union[FirstBytes, ExactRange]


class RangeClient:
    """Issue ranged GET requests over a shared ``httpx.AsyncClient``.

    Every call is a fresh request; partial bodies are never resumed.

    Args:
        client: Client to use. One is created, and owned, if omitted.
        timeout: Network timeout for a created client, in seconds.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = DEFAULT_TIMEOUT):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def get(
        self,
        url: str,
        *,
        byte_range: ByteRange,
        interrupt: Optional[asyncio.Event] = None,
    ) -> bytes:
        """Download ``byte_range`` of ``url``.

        The body is read in chunks; ``interrupt`` is checked between them.

        Raises:
            TransportError: HTTP error status, network failure, a body of the
                wrong size, or ``interrupt`` observed mid-download.
        """
        headers = {"Range": byte_range.header()}
        chunks = []
        received = 0
        try:
            async with self._client.stream("GET", url, headers=headers) as resp:
                resp.raise_for_status()
                if isinstance(byte_range, ExactRange) and resp.status_code != 206:
                    raise TransportError(
                        f"{url}: server ignored range {byte_range.header()} (status {resp.status_code})"
                    )
                async for chunk in resp.aiter_bytes():
                    if interrupt is not None and interrupt.is_set():
                        raise TransportError(f"{url}: download abandoned")
                    received += len(chunk)
                    if isinstance(byte_range, FirstBytes) and received > byte_range.max_len:
                        raise TransportError(f"{url}: body exceeds {byte_range.max_len} bytes")
                    chunks.append(chunk)
        except httpx.HTTPError as err:
            raise TransportError(f"{url}: {err}") from err

        data = b"".join(chunks)
        if isinstance(byte_range, ExactRange) and len(data) != byte_range.length:
            raise TransportError(f"{url}: expected {byte_range.length} bytes, got {len(data)}")
        logger.debug("GET %s [%s] -> %d bytes", url, byte_range.header(), len(data))
        return data

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
