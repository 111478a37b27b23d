"""
Meteorite records as loaded from the remote store.

Numeric fields arrive as text. They are parsed once, when the record is
built, and kept next to the raw text. Anything that does not parse is
stored as None, never as zero.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")

RAW_FIELDS = ("id", "name", "recclass", "mass", "fall", "year", "latitude", "longitude")


def parse_leading_int(value: Optional[str]) -> Optional[int]:
    """Parse the integer prefix of a text value ("1880-01-01" -> 1880)."""
    if value is None:
        return None
    match = _LEADING_INT.match(value)
    if not match:
        return None
    return int(match.group(1))


def parse_leading_float(value: Optional[str]) -> Optional[float]:
    """Parse the decimal prefix of a text value ("21.5 g" -> 21.5)."""
    if value is None:
        return None
    match = _LEADING_FLOAT.match(value)
    if not match:
        return None
    number = float(match.group(1))
    if not math.isfinite(number):
        return None
    return number


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


@dataclass(frozen=True)
class Meteorite:
    """
    One immutable meteorite record.

    Raw fields keep the exact text served by the store; the parsed
    fields are derived from them once at construction.
    """
    id: Optional[str]
    name: Optional[str]
    recclass: Optional[str]
    mass: Optional[str]
    fall: Optional[str]
    year: Optional[str]
    latitude: Optional[str]
    longitude: Optional[str]

    year_value: Optional[int] = field(init=False, repr=False, compare=False)
    mass_value: Optional[float] = field(init=False, repr=False, compare=False)
    latitude_value: Optional[float] = field(init=False, repr=False, compare=False)
    longitude_value: Optional[float] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # frozen dataclass, so derived fields go through object.__setattr__
        object.__setattr__(self, "year_value", parse_leading_int(self.year))
        object.__setattr__(self, "mass_value", parse_leading_float(self.mass))
        object.__setattr__(self, "latitude_value", parse_leading_float(self.latitude))
        object.__setattr__(self, "longitude_value", parse_leading_float(self.longitude))

    @property
    def is_geolocated(self) -> bool:
        return self.latitude_value is not None and self.longitude_value is not None

    @classmethod
    def from_payload(cls, key: Optional[str], payload: Mapping[str, Any]) -> "Meteorite":
        """Build a record from one value of the store's keyed map."""
        values = {name: _as_text(payload.get(name)) for name in RAW_FIELDS}
        if values["id"] is None and key is not None:
            values["id"] = str(key)
        return cls(**values)

    def to_dict(self) -> Dict[str, Optional[str]]:
        """Wire representation: the raw text fields only."""
        return {name: getattr(self, name) for name in RAW_FIELDS}


def records_from_store(data: Mapping[str, Any]) -> Tuple[Meteorite, ...]:
    """Convert the keyed map returned by the store into records, keeping store order."""
    records = []
    skipped = 0
    for key, payload in data.items():
        if not isinstance(payload, Mapping):
            skipped += 1
            continue
        records.append(Meteorite.from_payload(key, payload))

    if skipped:
        logger.warning("Skipped malformed store entries", skipped=skipped)

    return tuple(records)
