"""
Uniform random sampling of a meteorite collection.
"""

import random
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .records import Meteorite, parse_leading_int


@dataclass
class SampleResult:
    """Sampled records and whether the requested count was cut down."""
    meteorites: List[Meteorite]
    count: int
    truncated: bool


def resolve_count(requested: Optional[str], default: int, maximum: int) -> Tuple[int, bool]:
    """
    Turn the raw count parameter into the number of records to return.

    Absent, non-numeric, zero or negative counts fall back to the default.
    Counts above the maximum are clamped and flagged.
    """
    parsed = parse_leading_int(requested) if requested is not None else None
    if parsed is None or parsed <= 0:
        return min(default, maximum), False
    if parsed > maximum:
        return maximum, True
    return parsed, False


def sample(
    records: Sequence[Meteorite],
    requested: Optional[str],
    default: int,
    maximum: int,
    rng: Optional[random.Random] = None,
) -> SampleResult:
    """Shuffle a working copy (Fisher-Yates) and keep the first `count` records."""
    rng = rng or random
    count, truncated = resolve_count(requested, default, maximum)

    shuffled = list(records)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]

    picked = shuffled[:count]
    return SampleResult(meteorites=picked, count=len(picked), truncated=truncated)
