"""Tests for the .idx parser."""

from __future__ import annotations

import pytest

from conftest import UNRELATED, build_index, expected_records
from gfs_downloader import grib_index
from gfs_downloader.errors import IndexParseError
from gfs_downloader.variables import DatasetVariant, Level, Variable


class TestFieldParsers:
    """Test the per-field parsers."""

    def test_parse_hour_analysis(self):
        assert grib_index.parse_hour("anl") == 0

    def test_parse_hour_forecast(self):
        assert grib_index.parse_hour("159 hour fcst") == 159

    @pytest.mark.parametrize("s", ["4 hour fcst", "6 hour acc fcst", "0-6 hour acc fcst", "hour fcst"])
    def test_parse_hour_rejects(self, s):
        with pytest.raises(ValueError):
            grib_index.parse_hour(s)

    def test_parse_level(self):
        assert grib_index.parse_level("500 mb") == Level(500)

    @pytest.mark.parametrize("s", ["0.4 mb", "mean sea level", "500 Pa", "2 m above ground"])
    def test_parse_level_rejects(self, s):
        with pytest.raises(ValueError):
            grib_index.parse_level(s)

    def test_parse_fcst_time(self):
        fcst_time = grib_index.parse_fcst_time("d=2015080106")
        assert str(fcst_time) == "2015080106"

    @pytest.mark.parametrize("s", ["2015080106", "d=201508010", "x=2015080106", "d=2015080103"])
    def test_parse_fcst_time_rejects(self, s):
        with pytest.raises(ValueError):
            grib_index.parse_fcst_time(s)

    def test_parse_line(self):
        line = grib_index.parse_line("15:1207405:d=2015080106:HGT:500 mb:159 hour fcst:".split(":"))
        assert line.idx == 15
        assert line.offset == 1207405
        assert line.variable is Variable.HEIGHT
        assert line.level == Level(500)
        assert line.hour == 159

    def test_parse_line_requires_trailing_empty_field(self):
        with pytest.raises(ValueError, match="malformed"):
            grib_index.parse_line("15:1207405:d=2015080106:HGT:500 mb:159 hour fcst".split(":"))


class TestParse:
    """Test whole-index parsing."""

    def test_lengths_from_successor_offsets(self, sample_fcst_time):
        """Each length is the distance to the next record's offset."""
        text = (
            "1:0:d=2015080106:HGT:500 mb:6 hour fcst:\n"
            "2:100:d=2015080106:UGRD:500 mb:6 hour fcst:\n"
            "3:250:d=2015080106:TMP:500 mb:6 hour fcst:\n"
        )
        messages = grib_index.parse(text)
        assert [(m.offset, m.length) for m in messages] == [(0, 100), (100, 150)]
        assert messages[0].fcst_time == sample_fcst_time
        assert messages[1].variable is Variable.U_WIND

    def test_offsets_reconstruct(self, sample_fcst_time):
        """(offset, length) pairs should chain back to the record offsets."""
        records = expected_records(DatasetVariant.PGRB2) + [UNRELATED[0]]
        text = build_index(sample_fcst_time, 6, records, start_idx=7, start_offset=1234, length=500)
        messages = sorted(grib_index.parse(text), key=lambda m: m.offset)

        assert len(messages) == len(records) - 1
        assert [m.offset for m in messages] == [1234 + 500 * i for i in range(len(messages))]
        for msg, successor in zip(messages, messages[1:]):
            assert msg.end == successor.offset

    def test_unrecognised_lines_skipped(self, sample_fcst_time):
        """Unknown variables, non-mb levels and odd lines are ignored."""
        text = build_index(sample_fcst_time, 6, UNRELATED + [("HGT", "500 mb")] + UNRELATED)
        messages = grib_index.parse(text)
        assert len(messages) == 1
        assert messages[0].variable is Variable.HEIGHT

    def test_malformed_lines_skipped(self):
        """A bad timestamp or field count drops only that line."""
        text = (
            "1:0:d=2015080106:TMP:500 mb:6 hour fcst:\n"
            "2:100:d=20150801:HGT:500 mb:6 hour fcst:\n"
            "3:200:d=2015080106:HGT:700 mb:6 hour fcst::\n"
            "4:300:d=2015080106:HGT:850 mb:6 hour fcst:\n"
            "5:400:d=20150801:UGRD:850 mb:6 hour fcst:\n"
            "6:450:d=2015080106:TMP:850 mb:6 hour fcst:\n"
        )
        messages = grib_index.parse(text)
        assert [(m.offset, m.length) for m in messages] == [(300, 100)]
        assert messages[0].level == Level(850)

    def test_empty_index(self):
        assert grib_index.parse("") == []

    def test_sequence_gap_fails(self):
        """Sequence numbers 5, 6, 8 mean a record went missing."""
        text = (
            "5:0:d=2015080106:HGT:500 mb:6 hour fcst:\n"
            "6:100:d=2015080106:UGRD:500 mb:6 hour fcst:\n"
            "8:200:d=2015080106:TMP:500 mb:6 hour fcst:\n"
        )
        with pytest.raises(IndexParseError, match="made no sense"):
            grib_index.parse(text)

    @pytest.mark.parametrize("next_offset", [100, 50])
    def test_non_positive_length_fails(self, next_offset):
        text = (
            "1:100:d=2015080106:HGT:500 mb:6 hour fcst:\n"
            f"2:{next_offset}:d=2015080106:TMP:500 mb:6 hour fcst:\n"
        )
        with pytest.raises(IndexParseError):
            grib_index.parse(text)

    def test_wanted_record_on_last_line_fails(self):
        """There is no successor to compute the last record's length from."""
        text = (
            "1:0:d=2015080106:TMP:500 mb:6 hour fcst:\n"
            "2:100:d=2015080106:HGT:500 mb:6 hour fcst:\n"
        )
        with pytest.raises(IndexParseError, match="last line"):
            grib_index.parse(text)

    def test_unwanted_record_on_last_line_is_fine(self):
        text = (
            "1:0:d=2015080106:HGT:500 mb:6 hour fcst:\n"
            "2:100:d=2015080106:TMP:500 mb:6 hour fcst:\n"
        )
        assert len(grib_index.parse(text)) == 1

    def test_malformed_successor_fails(self):
        """The successor needs at least a sequence number and an offset."""
        text = (
            "1:0:d=2015080106:HGT:500 mb:6 hour fcst:\n"
            "garbage\n"
        )
        with pytest.raises(IndexParseError, match="malformed"):
            grib_index.parse(text)

    def test_gap_between_unwanted_records_is_ignored(self):
        """Sequence numbers are only checked after recognised records."""
        text = (
            "1:0:d=2015080106:TMP:500 mb:6 hour fcst:\n"
            "5:100:d=2015080106:HGT:500 mb:6 hour fcst:\n"
            "6:200:d=2015080106:TMP:500 mb:6 hour fcst:\n"
        )
        assert len(grib_index.parse(text)) == 1

    def test_descriptor_str(self):
        msg = grib_index.parse(
            "1:0:d=2015080106:HGT:500 mb:anl:\n2:10:d=2015080106:TMP:500 mb:anl:\n"
        )[0]
        assert str(msg) == "2015080106 HGT 500 mb 0 (0;10)"
