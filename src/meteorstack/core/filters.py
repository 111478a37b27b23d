"""
Filter engine for meteorite collections.

Each filter is a pure narrowing pass that keeps input order. Filters
compose by running one after the other (logical AND).
"""

import math
import unicodedata
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from .exceptions import ValidationError
from .records import Meteorite

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class GeoCircle:
    """Search area: a center point and a radius in kilometers."""
    latitude: float
    longitude: float
    radius_km: float


@dataclass(frozen=True)
class FilterSpec:
    """
    Optional predicates of a search. A None field means no constraint.
    """
    recclass: Optional[str] = None
    fall: Optional[str] = None
    name: Optional[str] = None
    year: Optional[float] = None
    min_year: Optional[float] = None
    max_year: Optional[float] = None
    mass: Optional[float] = None
    min_mass: Optional[float] = None
    max_mass: Optional[float] = None
    geo: Optional[GeoCircle] = None


def normalize_string(value: str) -> str:
    """Strip accents and case: "Ćeské Vrbné" -> "ceske vrbne"."""
    decomposed = unicodedata.normalize("NFD", value.strip())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()


def haversine(latitude_1: float, longitude_1: float, latitude_2: float, longitude_2: float) -> float:
    """Great-circle distance in kilometers between two points."""
    d_lat = math.radians(latitude_2 - latitude_1)
    d_lon = math.radians(longitude_2 - longitude_1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(latitude_1)) * math.cos(math.radians(latitude_2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def parse_number(value: Optional[str], param: str) -> Optional[float]:
    """
    Parse a numeric query parameter. Blank means absent.

    Raises ValidationError when the value is not a finite number.
    """
    if value is None or not value.strip():
        return None
    try:
        number = float(value.strip())
    except ValueError:
        raise ValidationError(f"Query parameter '{param}' must be a number.", details={"param": param})
    if not math.isfinite(number):
        raise ValidationError(f"Query parameter '{param}' must be a finite number.", details={"param": param})
    return number


def build_geo_circle(
    center_lat: Optional[str],
    center_lon: Optional[str],
    radius: Optional[str],
    min_radius: float,
    max_radius: float,
    strict: bool = True,
) -> Optional[GeoCircle]:
    """
    Validate the geographic triple of a search.

    With no geo parameter at all there is no geo filter. Otherwise all three
    must be valid: strict mode raises ValidationError, lenient mode drops
    the geo filter.
    """
    raw = [center_lat, center_lon, radius]
    if all(value is None or not value.strip() for value in raw):
        return None

    lat = _lenient_float(center_lat)
    lon = _lenient_float(center_lon)
    rad = _lenient_float(radius)

    valid = (
        lat is not None and -90 <= lat <= 90
        and lon is not None and -180 <= lon <= 180
        and rad is not None and rad > 0 and min_radius <= rad <= max_radius
    )
    if not valid:
        if strict:
            raise ValidationError(
                "Missing or invalid location parameters: center_lat (-90..90), center_long (-180..180) "
                f"and radius ({min_radius:g}..{max_radius:g} km) are required together."
            )
        return None

    return GeoCircle(latitude=lat, longitude=lon, radius_km=rad)


def _lenient_float(value: Optional[str]) -> Optional[float]:
    if value is None or not value.strip():
        return None
    try:
        number = float(value.strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def filter_by_date(
    records: Iterable[Meteorite],
    year: Optional[float] = None,
    min_year: Optional[float] = None,
    max_year: Optional[float] = None,
) -> List[Meteorite]:
    """Keep records by year. An exact year overrides the bounds."""
    records = list(records)
    if year is None and min_year is None and max_year is None:
        return records

    dated = [m for m in records if m.year_value is not None]
    if year is not None:
        return [m for m in dated if m.year_value == year]
    if min_year is not None:
        dated = [m for m in dated if m.year_value >= min_year]
    if max_year is not None:
        dated = [m for m in dated if m.year_value <= max_year]
    return dated


def filter_by_mass(
    records: Iterable[Meteorite],
    mass: Optional[float] = None,
    min_mass: Optional[float] = None,
    max_mass: Optional[float] = None,
) -> List[Meteorite]:
    """Keep records by mass in grams. Exact and bounds apply independently."""
    results = list(records)
    if mass is not None:
        results = [m for m in results if m.mass_value is not None and m.mass_value == mass]
    if min_mass is not None:
        results = [m for m in results if m.mass_value is not None and m.mass_value >= min_mass]
    if max_mass is not None:
        results = [m for m in results if m.mass_value is not None and m.mass_value <= max_mass]
    return results


def filter_by_location(records: Iterable[Meteorite], geo: Optional[GeoCircle]) -> List[Meteorite]:
    """Keep geolocated records within the circle (haversine distance)."""
    records = list(records)
    if geo is None:
        return records

    return [
        m for m in records
        if m.is_geolocated
        and haversine(geo.latitude, geo.longitude, m.latitude_value, m.longitude_value) <= geo.radius_km
    ]


def filter_by_category(records: Iterable[Meteorite], attribute: str, value: Optional[str]) -> List[Meteorite]:
    """Case-insensitive equality on a categorical field."""
    records = list(records)
    if value is None:
        return records

    wanted = value.strip().casefold()
    return [
        m for m in records
        if getattr(m, attribute) is not None and getattr(m, attribute).strip().casefold() == wanted
    ]


def filter_by_name(records: Iterable[Meteorite], fragment: Optional[str]) -> List[Meteorite]:
    """Case and accent insensitive substring match on the name."""
    records = list(records)
    if fragment is None:
        return records

    wanted = normalize_string(fragment)
    return [m for m in records if m.name is not None and wanted in normalize_string(m.name)]


def find_by_id(records: Sequence[Meteorite], record_id: str) -> Optional[Meteorite]:
    wanted = record_id.strip()
    return next((m for m in records if m.id and m.id == wanted), None)


def find_by_name(records: Sequence[Meteorite], name: str) -> Optional[Meteorite]:
    """Exact name lookup, ignoring case and accents."""
    wanted = normalize_string(name)
    return next((m for m in records if m.name and normalize_string(m.name) == wanted), None)


def apply_filters(records: Iterable[Meteorite], spec: FilterSpec) -> List[Meteorite]:
    """Run every filter set in the FilterSpec, cheapest first."""
    results = filter_by_category(records, "recclass", spec.recclass)
    results = filter_by_category(results, "fall", spec.fall)
    results = filter_by_name(results, spec.name)
    results = filter_by_date(results, spec.year, spec.min_year, spec.max_year)
    results = filter_by_mass(results, spec.mass, spec.min_mass, spec.max_mass)
    results = filter_by_location(results, spec.geo)
    return results
