"""
Tests for random sampling.
"""

import random
from typing import Callable, List, Optional

import pytest

from src.meteorstack.core.records import Meteorite
from src.meteorstack.core.sampler import resolve_count, sample


@pytest.fixture
def population(make_record: Callable[..., Meteorite]) -> List[Meteorite]:
    return [make_record(id=str(i)) for i in range(50)]


class TestResolveCount:

    @pytest.mark.parametrize("requested", [None, "", "0", "-4", "abc"])
    def test_falls_back_to_default(self, requested: Optional[str]) -> None:
        assert resolve_count(requested, default=100, maximum=1000) == (100, False)

    def test_within_bounds(self) -> None:
        assert resolve_count("7", default=100, maximum=1000) == (7, False)

    def test_above_maximum_is_clamped_and_flagged(self) -> None:
        assert resolve_count("5000", default=100, maximum=1000) == (1000, True)

    def test_leading_digits_are_used(self) -> None:
        assert resolve_count("12abc", default=100, maximum=1000) == (12, False)


class TestSample:

    def test_subset_without_duplicates(self, population: List[Meteorite]) -> None:
        result = sample(population, "20", default=10, maximum=30, rng=random.Random(7))
        assert result.count == 20
        assert len({m.id for m in result.meteorites}) == 20
        assert all(m in population for m in result.meteorites)
        assert result.truncated is False

    def test_never_more_than_available(self, population: List[Meteorite]) -> None:
        result = sample(population, "0", default=100, maximum=1000)
        assert result.count == 50
        assert sorted(m.id for m in result.meteorites) == sorted(m.id for m in population)

    def test_truncation_flag(self, population: List[Meteorite]) -> None:
        result = sample(population, "500", default=10, maximum=30)
        assert result.count == 30
        assert result.truncated is True

    def test_source_not_mutated(self, population: List[Meteorite]) -> None:
        before = list(population)
        sample(population, "10", default=10, maximum=30, rng=random.Random(1))
        assert population == before

    def test_seeded_rng_is_reproducible(self, population: List[Meteorite]) -> None:
        first = sample(population, "10", default=10, maximum=30, rng=random.Random(42))
        second = sample(population, "10", default=10, maximum=30, rng=random.Random(42))
        assert [m.id for m in first.meteorites] == [m.id for m in second.meteorites]

    def test_empty_population(self) -> None:
        result = sample((), "5", default=10, maximum=30)
        assert result.count == 0
        assert result.meteorites == []
