"""
Pydantic data models package.

Contains the response models of the public API.
"""

from .meteorite import (
    ErrorResponse,
    MeteoriteListPayload,
    MeteoriteListResponse,
    MeteoriteOut,
    MeteoritePayload,
    MeteoriteResponse,
    StatsPayload,
    StatsResponse,
)

__all__ = [
    "ErrorResponse",
    "MeteoriteListPayload",
    "MeteoriteListResponse",
    "MeteoriteOut",
    "MeteoritePayload",
    "MeteoriteResponse",
    "StatsPayload",
    "StatsResponse",
]
