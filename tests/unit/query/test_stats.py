"""
Tests for the statistics aggregator.
"""

from typing import Callable

from src.meteorstack.core.records import Meteorite
from src.meteorstack.core.stats import compute_stats, round_half_up


class TestComputeStats:

    def test_reference_dataset(self, make_record: Callable[..., Meteorite]) -> None:
        records = [
            make_record(year="1880", mass="21"),
            make_record(year="1999", mass="5"),
            make_record(year="bad", mass="0"),
        ]
        stats = compute_stats(records)

        assert stats.meteorites_count == 3
        assert stats.years == [1880, 1999]
        assert stats.min_year == 1880
        assert stats.max_year == 1999
        assert stats.avg_mass_g == 13.0
        assert stats.min_mass_g == 5.0
        assert stats.max_mass_g == 21.0

    def test_empty_collection(self) -> None:
        stats = compute_stats([])
        assert stats.meteorites_count == 0
        assert stats.years == []
        assert stats.min_year is None
        assert stats.avg_mass_g is None
        assert stats.recclasses_distribution == {}

    def test_no_positive_mass_gives_null_average(self, make_record: Callable[..., Meteorite]) -> None:
        stats = compute_stats([make_record(mass="0"), make_record(mass="-3"), make_record(mass="x")])
        assert stats.avg_mass_g is None
        assert stats.min_mass_g is None
        assert stats.max_mass_g is None

    def test_average_rounded_to_two_places(self, make_record: Callable[..., Meteorite]) -> None:
        stats = compute_stats([make_record(mass="1"), make_record(mass="1"), make_record(mass="2")])
        assert stats.avg_mass_g == 1.33

    def test_years_distinct_and_sorted(self, make_record: Callable[..., Meteorite]) -> None:
        stats = compute_stats([
            make_record(year="1999"),
            make_record(year="1880-01-01T00:00:00.000"),
            make_record(year="1999"),
        ])
        assert stats.years == [1880, 1999]

    def test_recclass_distribution(self, make_record: Callable[..., Meteorite]) -> None:
        stats = compute_stats([
            make_record(recclass="H6"),
            make_record(recclass="L5"),
            make_record(recclass=" L5 "),
            make_record(recclass="Iron"),
            make_record(recclass="L6"),
            make_record(recclass="L6"),
            make_record(recclass=""),
        ])
        assert stats.recclasses == ["H6", "Iron", "L5", "L6"]
        assert list(stats.recclasses_distribution.items()) == [
            ("L5", 2), ("L6", 2), ("H6", 1), ("Iron", 1),
        ]

    def test_fall_counts_and_geolocation(self, sample_records) -> None:
        stats = compute_stats(sample_records)
        assert stats.fell_count == 2
        assert stats.found_count == 1
        assert stats.geolocated_count == 3

    def test_geolocation_needs_both_coordinates(self, make_record: Callable[..., Meteorite]) -> None:
        stats = compute_stats([
            make_record(latitude="1", longitude="2"),
            make_record(latitude="1"),
            make_record(latitude="x", longitude="2"),
        ])
        assert stats.geolocated_count == 1


def test_round_half_up() -> None:
    assert round_half_up(0.125) == 0.13
    assert round_half_up(13.0) == 13.0
    assert round_half_up(2.004) == 2.0
