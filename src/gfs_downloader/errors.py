"""Exception hierarchy for index parsing, validation and message fetching."""

from __future__ import annotations


class GribFetchError(Exception):
    """Base class for every failure raised by gfs-downloader."""


class IndexParseError(GribFetchError):
    """The index text is corrupt: re-ordered, overlapping or truncated."""


class IndexValidationError(GribFetchError):
    """The parsed index does not describe the expected coordinate grid."""


class ForecastMismatchError(IndexValidationError):
    """An index entry belongs to a different cycle or forecast hour."""


class DuplicateMessageError(IndexValidationError):
    """The same (variable, level) pair appears twice in one index."""


class MissingMessagesError(IndexValidationError):
    """Some expected (variable, level) pairs are absent from the index."""

    def __init__(self, missing):
        self.missing = sorted(missing, key=lambda key: (key[0].value, key[1]))
        names = ", ".join(f"{variable} {level}" for variable, level in self.missing)
        super().__init__(f"{len(self.missing)} messages missing from index: {names}")


class ContentMismatchError(GribFetchError):
    """A downloaded message disagrees with what the index claimed."""


class GribDecodeError(GribFetchError):
    """Downloaded bytes are not a decodable GRIB message."""


class TransportError(GribFetchError):
    """Network or HTTP failure while fetching a byte range."""


class AttemptTimeout(GribFetchError):
    """A single attempt did not finish within its timeout."""


class Interrupted(GribFetchError):
    """The external cancellation signal fired; no further retries."""
