"""gfs-downloader: fetch selected GFS pressure-level fields by HTTP byte range."""

from gfs_downloader._version import __version__
from gfs_downloader.errors import GribFetchError, Interrupted
from gfs_downloader.fetcher import GribFetcher
from gfs_downloader.grib_index import MessageDescriptor
from gfs_downloader.throttle import Throttle
from gfs_downloader.urls import GfsUrls
from gfs_downloader.variables import DatasetVariant, ForecastTime, Level, Variable

__all__ = [
    "__version__",
    "DatasetVariant",
    "ForecastTime",
    "GfsUrls",
    "GribFetchError",
    "GribFetcher",
    "Interrupted",
    "Level",
    "MessageDescriptor",
    "Throttle",
    "Variable",
]
