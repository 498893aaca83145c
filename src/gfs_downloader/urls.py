"""URLs of GFS product files and their indexes."""

from __future__ import annotations

from gfs_downloader.variables import DatasetVariant, ForecastTime

NOMADS_URL = "https://nomads.ncep.noaa.gov/pub/data/nccf/com/gfs/prod/"
AWS_URL = "https://noaa-gfs-bdp-pds.s3.amazonaws.com/"

DEFAULT_RESOLUTION = "0p50"


class GfsUrls:
    """Build GRIB and index URLs for one archive.

    Args:
        base_url: Archive root holding the ``gfs.YYYYMMDD`` directories.
        resolution: Grid resolution tag in file names, e.g. ``0p50``.
    """

    def __init__(self, base_url: str = NOMADS_URL, resolution: str = DEFAULT_RESOLUTION):
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.resolution = resolution

    def forecast_dir(self, fcst_time: ForecastTime) -> str:
        return f"{self.base_url}gfs.{fcst_time.date:%Y%m%d}/{fcst_time.hour:02d}/atmos/"

    def grib_file(self, fcst_time: ForecastTime, variant: DatasetVariant, hour: int) -> str:
        suffix = "b" if variant is DatasetVariant.PGRB2B else ""
        return (
            self.forecast_dir(fcst_time)
            + f"gfs.t{fcst_time.hour:02d}z.pgrb2{suffix}.{self.resolution}.f{hour:03d}"
        )

    def index_file(self, fcst_time: ForecastTime, variant: DatasetVariant, hour: int) -> str:
        return self.grib_file(fcst_time, variant, hour) + ".idx"
