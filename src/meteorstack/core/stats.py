"""
Summary statistics over a meteorite collection.
"""

from collections import Counter
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional

from .records import Meteorite


@dataclass
class MeteoriteStats:
    """Aggregates served by /stats."""
    meteorites_count: int = 0
    years: List[int] = field(default_factory=list)
    min_year: Optional[int] = None
    max_year: Optional[int] = None
    min_mass_g: Optional[float] = None
    max_mass_g: Optional[float] = None
    avg_mass_g: Optional[float] = None
    recclasses: List[str] = field(default_factory=list)
    recclasses_distribution: Dict[str, int] = field(default_factory=dict)
    geolocated_count: int = 0
    fell_count: int = 0
    found_count: int = 0


def round_half_up(value: float, places: int = 2) -> float:
    """Round half up on the exact stored value (0.125 -> 0.13)."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def compute_stats(records: Iterable[Meteorite]) -> MeteoriteStats:
    """
    Aggregate a collection in a single pass.

    Unparsable years and masses are left out of the year and mass figures
    but the record still counts towards meteorites_count.
    """
    stats = MeteoriteStats()
    years = set()
    total_mass = 0.0
    mass_count = 0
    recclass_counts: Counter = Counter()

    for m in records:
        stats.meteorites_count += 1

        if m.year_value is not None:
            years.add(m.year_value)

        mass = m.mass_value
        if mass is not None and mass > 0:
            if stats.min_mass_g is None or mass < stats.min_mass_g:
                stats.min_mass_g = mass
            if stats.max_mass_g is None or mass > stats.max_mass_g:
                stats.max_mass_g = mass
            total_mass += mass
            mass_count += 1

        if m.recclass:
            # Counter keeps first-seen order, most_common() sorts stably
            recclass_counts[m.recclass.strip()] += 1

        fall = (m.fall or "").strip().lower()
        if fall == "fell":
            stats.fell_count += 1
        elif fall == "found":
            stats.found_count += 1

        if m.is_geolocated:
            stats.geolocated_count += 1

    stats.years = sorted(years)
    if stats.years:
        stats.min_year = stats.years[0]
        stats.max_year = stats.years[-1]
    if mass_count:
        stats.avg_mass_g = round_half_up(total_mass / mass_count)
    stats.recclasses = sorted(recclass_counts)
    stats.recclasses_distribution = dict(recclass_counts.most_common())

    return stats
