"""
Response models for the meteorite endpoints.

Successful responses are wrapped in a ``success`` envelope.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..core.records import Meteorite
from ..core.stats import MeteoriteStats


class MeteoriteOut(BaseModel):
    """A meteorite record as stored, every field kept as text."""

    id: Optional[str] = Field(default=None, description="Record identifier")
    name: Optional[str] = Field(default=None, description="Meteorite name")
    recclass: Optional[str] = Field(default=None, description="Classification")
    mass: Optional[str] = Field(default=None, description="Mass in grams")
    fall: Optional[str] = Field(default=None, description="Fell or Found")
    year: Optional[str] = Field(default=None, description="Year of fall or find")
    latitude: Optional[str] = Field(default=None, description="Latitude in degrees")
    longitude: Optional[str] = Field(default=None, description="Longitude in degrees")

    @classmethod
    def from_record(cls, record: Meteorite) -> "MeteoriteOut":
        return cls(**record.to_dict())


class FallCounts(BaseModel):
    fell: int
    found: int


class StatsPayload(BaseModel):
    """Aggregate statistics of the whole dataset."""

    meteorites_count: int
    years: List[int]
    min_year: Optional[int]
    max_year: Optional[int]
    min_mass_g: Optional[float]
    max_mass_g: Optional[float]
    avg_mass_g: Optional[float]
    recclasses: List[str]
    recclasses_distribution: Dict[str, int] = Field(description="Classification counts, most frequent first")
    geolocated_count: int
    fall_counts: FallCounts

    @classmethod
    def from_stats(cls, stats: MeteoriteStats) -> "StatsPayload":
        return cls(
            meteorites_count=stats.meteorites_count,
            years=stats.years,
            min_year=stats.min_year,
            max_year=stats.max_year,
            min_mass_g=stats.min_mass_g,
            max_mass_g=stats.max_mass_g,
            avg_mass_g=stats.avg_mass_g,
            recclasses=stats.recclasses,
            recclasses_distribution=stats.recclasses_distribution,
            geolocated_count=stats.geolocated_count,
            fall_counts=FallCounts(fell=stats.fell_count, found=stats.found_count),
        )


class StatsResponse(BaseModel):
    success: StatsPayload


class MeteoriteListPayload(BaseModel):
    """Records returned by /random and /search."""

    count: int
    meteorites: List[MeteoriteOut]
    note: Optional[str] = Field(default=None, description="Informational notice, only present when relevant")


class MeteoriteListResponse(BaseModel):
    success: MeteoriteListPayload


class MeteoritePayload(BaseModel):
    meteorite: MeteoriteOut


class MeteoriteResponse(BaseModel):
    success: MeteoritePayload


class ErrorResponse(BaseModel):
    """
    Standard error response model.
    """

    error: str = Field(description="Human-readable error message")
