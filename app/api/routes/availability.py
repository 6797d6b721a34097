"""
Availability API Endpoints.

Group booking searches: concurrent stylists, mixed services, and back-to-back
visits with a single stylist. Every endpoint answers 200 with a structured
success/failure body.
"""

import logging
from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app.core.scheduling.engine import AvailabilityEngine, get_availability_engine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Availability"])

TimePreference = Literal["morning", "afternoon", "any"]


class AvailabilityRequest(BaseModel):
    """Fields shared by every availability search."""

    services: list[str] = Field(
        ...,
        min_length=1,
        description="One service per guest (alias or service id)",
        examples=[["haircut", "skin_fade"]],
    )
    date_start: Optional[date] = Field(default=None, description="First day to search")
    date_end: Optional[date] = Field(default=None, description="Last day to search")
    specific_date: Optional[date] = Field(
        default=None,
        description="Search a single day; overrides date_start/date_end",
    )
    time_preference: Optional[TimePreference] = Field(
        default=None,
        description="morning (before 12:00) or afternoon (from 12:00)",
    )
    location_id: Optional[str] = Field(
        default=None,
        description="Salon location; defaults to the configured location",
    )


class MultiAvailabilityRequest(AvailabilityRequest):
    """Concurrent search request."""

    preferred_stylist: Optional[str] = Field(
        default=None,
        description="Stylist id or name to seat with guest 1 when free",
    )


class StylistAvailabilityRequest(AvailabilityRequest):
    """Same-stylist search request."""

    stylist: str = Field(
        ...,
        min_length=1,
        description="Stylist id, name, nickname or alias",
        examples=["Maria"],
    )


@router.post(
    "/find-multi-availability",
    summary="Find concurrent stylists",
    description="Start instants where every guest gets a different stylist at the same time.",
)
async def find_multi_availability(
    request: MultiAvailabilityRequest,
    engine: AvailabilityEngine = Depends(get_availability_engine),
) -> dict:
    date_range = engine.date_range(request.specific_date, request.date_start, request.date_end)
    response = await engine.find_concurrent(
        services=request.services,
        date_range=date_range,
        time_preference=request.time_preference,
        preferred_stylist=request.preferred_stylist,
        location_id=request.location_id,
    )
    return response.to_dict()


@router.post(
    "/find-group-availability",
    summary="Find group availability for different services",
    description=(
        "Per-service availability plus same-time and back-to-back pairings "
        "(within 30 minutes) across any stylists."
    ),
)
async def find_group_availability(
    request: AvailabilityRequest,
    engine: AvailabilityEngine = Depends(get_availability_engine),
) -> dict:
    date_range = engine.date_range(request.specific_date, request.date_start, request.date_end)
    response = await engine.find_group(
        services=request.services,
        date_range=date_range,
        time_preference=request.time_preference,
        location_id=request.location_id,
    )
    return response.to_dict()


@router.post(
    "/find-stylist-availability",
    summary="Find back-to-back visits with one stylist",
    description="Back-to-back openings (within 10 minutes) in one stylist's schedule.",
)
async def find_stylist_availability(
    request: StylistAvailabilityRequest,
    engine: AvailabilityEngine = Depends(get_availability_engine),
) -> dict:
    date_range = engine.date_range(request.specific_date, request.date_start, request.date_end)
    response = await engine.find_for_stylist(
        stylist=request.stylist,
        services=request.services,
        date_range=date_range,
        time_preference=request.time_preference,
        location_id=request.location_id,
    )
    return response.to_dict()
