"""
Meteorite dataset endpoints.

- GET /stats  - aggregate statistics
- GET /random - uniformly sampled records
- GET /get    - one record by id or name
- GET /search - compound filter query

Every endpoint here is gated by both rate limits.
"""

from typing import Optional, Tuple

import structlog
from fastapi import APIRouter, Depends, Query, Request

from ..config import get_settings
from ..core.auth import admit_caller
from ..core.cache import DatasetCache
from ..core.exceptions import DataUnavailableError, NotFoundError, ValidationError
from ..core.filters import (
    FilterSpec,
    apply_filters,
    build_geo_circle,
    find_by_id,
    find_by_name,
    parse_number,
)
from ..core.records import Meteorite
from ..core.sampler import sample
from ..core.stats import compute_stats
from ..models.meteorite import (
    ErrorResponse,
    MeteoriteListPayload,
    MeteoriteListResponse,
    MeteoriteOut,
    MeteoritePayload,
    MeteoriteResponse,
    StatsPayload,
    StatsResponse,
)

logger = structlog.get_logger(__name__)

router = APIRouter()

GATED_RESPONSES = {
    403: {"model": ErrorResponse, "description": "Caller identity could not be derived"},
    429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
    500: {"model": ErrorResponse, "description": "Service misconfigured"},
}

NO_RESULTS_NOTE = "No results found for the given criteria."


def get_dataset_cache(request: Request) -> DatasetCache:
    """Dependency to get the dataset cache from app state."""
    return request.app.state.dataset_cache


def trimmed(value: Optional[str]) -> Optional[str]:
    """Blank query parameters count as absent."""
    if value is None:
        return None
    value = value.strip()
    return value or None


async def load_meteorites(cache: DatasetCache) -> Tuple[Meteorite, ...]:
    """Load the dataset, failing the request when there is none."""
    meteorites = await cache.get()
    if not meteorites:
        raise DataUnavailableError()
    return meteorites


@router.get(
    "/stats",
    response_model=StatsResponse,
    responses={**GATED_RESPONSES, 404: {"model": ErrorResponse, "description": "No data available"}},
    summary="Dataset statistics",
)
async def get_stats(
    caller_key: str = Depends(admit_caller),
    cache: DatasetCache = Depends(get_dataset_cache),
) -> StatsResponse:
    """Counts, year and mass ranges, classification distribution and fall counts."""
    meteorites = await load_meteorites(cache)
    stats = compute_stats(meteorites)

    logger.debug("Stats computed", caller=caller_key[:8] + "...", records=stats.meteorites_count)

    return StatsResponse(success=StatsPayload.from_stats(stats))


@router.get(
    "/random",
    response_model=MeteoriteListResponse,
    response_model_exclude_unset=True,
    responses={**GATED_RESPONSES, 404: {"model": ErrorResponse, "description": "No data available"}},
    summary="Random meteorites",
)
async def get_random(
    count: Optional[str] = Query(None, description="Number of records, clamped to the configured maximum"),
    caller_key: str = Depends(admit_caller),
    cache: DatasetCache = Depends(get_dataset_cache),
) -> MeteoriteListResponse:
    """Uniformly sampled records, without duplicates."""
    settings = get_settings()
    meteorites = await load_meteorites(cache)

    result = sample(
        meteorites,
        requested=trimmed(count),
        default=settings.query.default_random_meteorites,
        maximum=settings.query.max_random_meteorites,
    )

    payload = MeteoriteListPayload(
        count=result.count,
        meteorites=[MeteoriteOut.from_record(m) for m in result.meteorites],
    )
    if result.truncated:
        payload.note = (
            "Requested count exceeded max limit. "
            f"Returned {settings.query.max_random_meteorites} items."
        )

    logger.debug(
        "Random sample served",
        caller=caller_key[:8] + "...",
        count=result.count,
        truncated=result.truncated,
    )

    return MeteoriteListResponse(success=payload)


@router.get(
    "/get",
    response_model=MeteoriteResponse,
    responses={
        **GATED_RESPONSES,
        400: {"model": ErrorResponse, "description": "Neither or both of id and name given"},
        404: {"model": ErrorResponse, "description": "No matching meteorite"},
    },
    summary="Meteorite by id or name",
)
async def get_meteorite(
    id: Optional[str] = Query(None, description="Exact record id"),
    name: Optional[str] = Query(None, description="Name, ignoring case and accents"),
    caller_key: str = Depends(admit_caller),
    cache: DatasetCache = Depends(get_dataset_cache),
) -> MeteoriteResponse:
    """Look up exactly one meteorite by `id` or by `name`."""
    record_id = trimmed(id)
    record_name = trimmed(name)

    if not record_id and not record_name:
        raise ValidationError("Please provide either 'id' or 'name' as a query parameter.")
    if record_id and record_name:
        raise ValidationError("Please provide either 'id' or 'name', not both.")

    meteorites = await load_meteorites(cache)

    if record_id:
        result = find_by_id(meteorites, record_id)
    else:
        result = find_by_name(meteorites, record_name)

    if result is None:
        raise NotFoundError()

    logger.debug("Meteorite lookup matched", caller=caller_key[:8] + "...", id=result.id)

    return MeteoriteResponse(success=MeteoritePayload(meteorite=MeteoriteOut.from_record(result)))


@router.get(
    "/search",
    response_model=MeteoriteListResponse,
    response_model_exclude_unset=True,
    responses={
        **GATED_RESPONSES,
        400: {"model": ErrorResponse, "description": "Malformed parameters or invalid location"},
        404: {"model": ErrorResponse, "description": "No data available"},
    },
    summary="Search meteorites",
)
async def search_meteorites(
    request: Request,
    recclass: Optional[str] = Query(None, description="Classification, case-insensitive"),
    fall: Optional[str] = Query(None, description="Fell or Found, case-insensitive"),
    name: Optional[str] = Query(None, description="Name fragment, ignoring case and accents"),
    year: Optional[str] = Query(None, description="Exact year, overrides minYear/maxYear"),
    min_year: Optional[str] = Query(None, alias="minYear"),
    max_year: Optional[str] = Query(None, alias="maxYear"),
    mass: Optional[str] = Query(None, description="Exact mass in grams"),
    min_mass: Optional[str] = Query(None, alias="minMass"),
    max_mass: Optional[str] = Query(None, alias="maxMass"),
    center_lat: Optional[str] = Query(None, description="Latitude of the search center"),
    center_long: Optional[str] = Query(None, description="Longitude of the search center"),
    radius: Optional[str] = Query(None, description="Search radius in km"),
    caller_key: str = Depends(admit_caller),
    cache: DatasetCache = Depends(get_dataset_cache),
) -> MeteoriteListResponse:
    """
    Compound search. All given filters must match.

    Location filtering needs center_lat, center_long and radius together.
    """
    settings = get_settings()

    spec = FilterSpec(
        recclass=trimmed(recclass),
        fall=trimmed(fall),
        name=trimmed(name),
        year=parse_number(year, "year"),
        min_year=parse_number(min_year, "minYear"),
        max_year=parse_number(max_year, "maxYear"),
        mass=parse_number(mass, "mass"),
        min_mass=parse_number(min_mass, "minMass"),
        max_mass=parse_number(max_mass, "maxMass"),
        geo=build_geo_circle(
            center_lat,
            center_long,
            radius,
            min_radius=settings.query.min_radius,
            max_radius=settings.query.max_radius,
            strict=settings.query.strict_geo,
        ),
    )

    meteorites = await load_meteorites(cache)
    results = apply_filters(meteorites, spec)[:settings.query.max_returned_search_results]

    metrics = getattr(request.app.state, "metrics", None)
    if metrics is not None:
        metrics.record_search(len(results))

    logger.debug("Search completed", caller=caller_key[:8] + "...", results=len(results))

    payload = MeteoriteListPayload(
        count=len(results),
        meteorites=[MeteoriteOut.from_record(m) for m in results],
    )
    if not results:
        payload.note = NO_RESULTS_NOTE

    return MeteoriteListResponse(success=payload)
