"""
Availability Engine - Main Orchestrator.

Validates a request, resolves services and stylists, runs the aggregator and
the matcher, and shapes the result. Every outcome, including failures, comes
back as an EngineResponse; nothing is raised past this module.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Awaitable, Callable, Optional, Sequence
from zoneinfo import ZoneInfo

from app.config import Settings, get_settings
from app.core.scheduling.aggregator import AvailabilityAggregator, AvailabilityIndex
from app.core.scheduling.directory import ProviderDirectory, get_provider_directory
from app.core.scheduling.errors import InvalidRequestError, UnknownProviderError
from app.core.scheduling.formatting import format_slot_full
from app.core.scheduling.matcher import (
    AFTERNOON,
    MORNING,
    filter_by_time_preference,
    find_back_to_back_pairs,
    find_concurrent_matches,
    find_same_time_pairs,
)
from app.core.scheduling.models import DateRange, Provider, Slot
from app.core.scheduling.services import ServiceResolver, get_service_resolver
from app.infra.meevo import MeevoAuthError

logger = logging.getLogger(__name__)

TIME_PREFERENCES = {None, "any", MORNING, AFTERNOON}

GENERIC_FAILURE = "Unable to reach the scheduling system. Please try again shortly."


@dataclass
class EngineResponse:
    """Structured success/failure result for one request."""

    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        result: dict[str, Any] = {"success": self.success}
        if self.error:
            result["error"] = self.error
        result.update(self.data)
        if self.message:
            result["message"] = self.message
        return result


def resolve_date_range(
    specific_date: Optional[date] = None,
    date_start: Optional[date] = None,
    date_end: Optional[date] = None,
    today: Optional[date] = None,
    default_days: int = 3,
) -> DateRange:
    """Pick the search range from request fields.

    A specific date wins, then an explicit start/end pair, then today
    through today + default_days.
    """
    if specific_date:
        return DateRange(start=specific_date, end=specific_date)
    if date_start and date_end:
        return DateRange(start=date_start, end=date_end)
    today = today or date.today()
    return DateRange(start=today, end=today + timedelta(days=default_days))


class AvailabilityEngine:
    """
    Runs the three matching modes.

    Coordinates:
    - Service resolution (before any upstream call)
    - Roster lookup
    - Availability aggregation
    - Matching and response shaping
    """

    def __init__(
        self,
        directory: Optional[ProviderDirectory] = None,
        resolver: Optional[ServiceResolver] = None,
        aggregator: Optional[AvailabilityAggregator] = None,
        settings: Optional[Settings] = None,
    ):
        """Initialize engine with optional dependencies.

        Args:
            directory: Provider directory
            resolver: Service resolver
            aggregator: Availability aggregator
            settings: Application settings
        """
        self.settings = settings or get_settings()
        self._directory = directory
        self._resolver = resolver
        self._aggregator = aggregator

    def _get_directory(self) -> ProviderDirectory:
        if self._directory is None:
            self._directory = get_provider_directory()
        return self._directory

    def _get_resolver(self) -> ServiceResolver:
        if self._resolver is None:
            self._resolver = get_service_resolver()
        return self._resolver

    def _get_aggregator(self) -> AvailabilityAggregator:
        if self._aggregator is None:
            self._aggregator = AvailabilityAggregator()
        return self._aggregator

    def today(self) -> date:
        """Current date at the business location."""
        return datetime.now(ZoneInfo(self.settings.location_timezone)).date()

    def date_range(
        self,
        specific_date: Optional[date] = None,
        date_start: Optional[date] = None,
        date_end: Optional[date] = None,
    ) -> DateRange:
        return resolve_date_range(
            specific_date=specific_date,
            date_start=date_start,
            date_end=date_end,
            today=self.today(),
            default_days=self.settings.default_search_days,
        )

    # === Public operations ===

    async def find_concurrent(
        self,
        services: Sequence[str],
        date_range: DateRange,
        time_preference: Optional[str] = None,
        preferred_stylist: Optional[str] = None,
        location_id: Optional[str] = None,
    ) -> EngineResponse:
        """Find instants where every guest can start at once with distinct stylists."""
        return await self._guard(
            "concurrent",
            lambda: self._find_concurrent(
                services, date_range, time_preference, preferred_stylist, location_id
            ),
        )

    async def find_group(
        self,
        services: Sequence[str],
        date_range: DateRange,
        time_preference: Optional[str] = None,
        location_id: Optional[str] = None,
    ) -> EngineResponse:
        """Per-service availability plus same-time and back-to-back pairs."""
        return await self._guard(
            "group",
            lambda: self._find_group(services, date_range, time_preference, location_id),
        )

    async def find_for_stylist(
        self,
        stylist: str,
        services: Sequence[str],
        date_range: DateRange,
        time_preference: Optional[str] = None,
        location_id: Optional[str] = None,
    ) -> EngineResponse:
        """Back-to-back pairs within one named stylist's schedule."""
        return await self._guard(
            "stylist",
            lambda: self._find_for_stylist(
                stylist, services, date_range, time_preference, location_id
            ),
        )

    # === Internals ===

    async def _guard(
        self,
        mode: str,
        call: Callable[[], Awaitable[EngineResponse]],
    ) -> EngineResponse:
        try:
            return await call()
        except UnknownProviderError as e:
            logger.info(f"[{mode}] {e}")
            return EngineResponse(
                success=False,
                error=str(e),
                data={"available_stylists": [p.to_dict() for p in e.roster]},
            )
        except InvalidRequestError as e:
            logger.info(f"[{mode}] Rejected request: {e}")
            return EngineResponse(success=False, error=str(e))
        except MeevoAuthError as e:
            logger.error(f"[{mode}] Upstream authentication failed: {e}")
            return EngineResponse(success=False, error=GENERIC_FAILURE)
        except Exception as e:
            logger.error(f"[{mode}] Error finding availability: {e}", exc_info=True)
            return EngineResponse(success=False, error=GENERIC_FAILURE)

    def _validate(self, services: Sequence[str], time_preference: Optional[str]) -> list[str]:
        """Resolve services and check the time preference. No upstream calls."""
        if time_preference not in TIME_PREFERENCES:
            raise InvalidRequestError(
                f"time_preference must be one of: morning, afternoon, any (got {time_preference!r})"
            )
        return self._get_resolver().resolve_all(list(services or []))

    async def _find_concurrent(
        self,
        services: Sequence[str],
        date_range: DateRange,
        time_preference: Optional[str],
        preferred_stylist: Optional[str],
        location_id: Optional[str],
    ) -> EngineResponse:
        service_ids = self._validate(services, time_preference)
        guest_count = len(service_ids)

        directory = self._get_directory()
        roster = await directory.list_active_providers(location_id)

        preferred: Optional[Provider] = None
        if preferred_stylist:
            preferred = directory.match(preferred_stylist, roster)
            if preferred is None:
                raise UnknownProviderError(preferred_stylist, roster)

        logger.info(
            f"Finding concurrent availability for {guest_count} guests | "
            f"services={service_ids} range={date_range.start}..{date_range.end} "
            f"stylists={len(roster)}"
        )

        index = await self._get_aggregator().aggregate(roster, service_ids, date_range, location_id)
        matches = find_concurrent_matches(
            index,
            preferred_provider_id=preferred.id if preferred else None,
            time_preference=time_preference,
            exhaustive=self.settings.exhaustive_assignment,
        )

        data: dict[str, Any] = {"guest_count": guest_count, "date_range": date_range.to_dict()}

        if not matches:
            return EngineResponse(
                success=True,
                message=f"No concurrent availability found for {guest_count} guests in the date range",
                data={"found": False, **data},
            )

        earliest = matches[0]
        logger.info(f"Found {len(matches)} concurrent slots; earliest {earliest.start.isoformat()}")

        return EngineResponse(
            success=True,
            message=(
                f"Found {len(matches)} time slots where {guest_count} guests can be seen "
                f"at the same time. Earliest: {format_slot_full(earliest.start)}"
            ),
            data={
                "found": True,
                **data,
                "earliest_slot": earliest.to_dict(),
                "total_concurrent_slots": len(matches),
                "all_slots": [m.to_dict() for m in matches[: self.settings.max_ranked_matches]],
            },
        )

    def _per_service(
        self,
        index: AvailabilityIndex,
        service_ids: Sequence[str],
        time_preference: Optional[str],
    ) -> list[list[Slot]]:
        cap = self.settings.max_slots_per_service
        return [
            filter_by_time_preference(index.slots_for_service(service_id), time_preference)[:cap]
            for service_id in service_ids
        ]

    @staticmethod
    def _availability_by_service(labels: Sequence[str], per_service: Sequence[list[Slot]]) -> dict:
        return {
            label: [slot.to_dict() for slot in slots]
            for label, slots in zip(labels, per_service)
        }

    async def _find_group(
        self,
        services: Sequence[str],
        date_range: DateRange,
        time_preference: Optional[str],
        location_id: Optional[str],
    ) -> EngineResponse:
        service_ids = self._validate(services, time_preference)
        labels = [self._get_resolver().label(s) for s in services]

        roster = await self._get_directory().list_active_providers(location_id)
        logger.info(
            f"Finding group availability for {len(service_ids)} services | "
            f"services={labels} range={date_range.start}..{date_range.end} stylists={len(roster)}"
        )

        index = await self._get_aggregator().aggregate(roster, service_ids, date_range, location_id)
        per_service = self._per_service(index, service_ids, time_preference)

        same_time = []
        back_to_back = []
        if len(per_service) >= 2:
            seed = self.settings.pair_seed_limit
            same_time = find_same_time_pairs(per_service[0], per_service[1], seed_limit=seed)
            back_to_back = find_back_to_back_pairs(
                per_service[0],
                per_service[1],
                max_gap_minutes=self.settings.group_max_gap_minutes,
                seed_limit=seed,
            )

        logger.info(
            f"Found {len(same_time)} same-time options, {len(back_to_back)} back-to-back options"
        )

        limit = self.settings.max_pair_options
        pair_labels = (labels[0], labels[1]) if len(labels) >= 2 else (labels[0], labels[0])

        if len(service_ids) == 1:
            message = f"Found {len(per_service[0])} openings for {labels[0]}"
        elif same_time:
            message = (
                f"Found {len(same_time)} same-time slots and "
                f"{len(back_to_back)} back-to-back options"
            )
        elif back_to_back:
            message = f"No same-time slots available. Found {len(back_to_back)} back-to-back options"
        else:
            message = "No compatible slots found for these services"

        return EngineResponse(
            success=True,
            message=message,
            data={
                "services_searched": labels,
                "date_range": date_range.to_dict(),
                "same_time_available": bool(same_time),
                "same_time_options": [p.to_dict(*pair_labels) for p in same_time[:limit]],
                "back_to_back_available": bool(back_to_back),
                "back_to_back_options": [p.to_dict(*pair_labels) for p in back_to_back[:limit]],
                "availability_by_service": self._availability_by_service(labels, per_service),
            },
        )

    async def _find_for_stylist(
        self,
        stylist: str,
        services: Sequence[str],
        date_range: DateRange,
        time_preference: Optional[str],
        location_id: Optional[str],
    ) -> EngineResponse:
        service_ids = self._validate(services, time_preference)
        if not stylist or not stylist.strip():
            raise InvalidRequestError("stylist is required")
        labels = [self._get_resolver().label(s) for s in services]

        provider = await self._get_directory().find(stylist, location_id)
        logger.info(
            f"Finding back-to-back availability with {provider.display_name} | "
            f"services={labels} range={date_range.start}..{date_range.end}"
        )

        index = await self._get_aggregator().aggregate([provider], service_ids, date_range, location_id)
        per_service = self._per_service(index, service_ids, time_preference)

        back_to_back = []
        if len(per_service) >= 2:
            back_to_back = find_back_to_back_pairs(
                per_service[0],
                per_service[1],
                max_gap_minutes=self.settings.same_provider_max_gap_minutes,
                seed_limit=self.settings.pair_seed_limit,
            )

        name = provider.display_name
        if len(service_ids) == 1:
            message = f"Found {len(per_service[0])} openings for {labels[0]} with {name}"
        elif back_to_back:
            message = f"Found {len(back_to_back)} back-to-back options with {name}"
        else:
            message = f"No back-to-back slots found with {name} for these services"

        pair_labels = (labels[0], labels[1]) if len(labels) >= 2 else (labels[0], labels[0])
        limit = self.settings.max_pair_options

        return EngineResponse(
            success=True,
            message=message,
            data={
                "stylist": provider.to_dict(),
                "services_searched": labels,
                "date_range": date_range.to_dict(),
                "back_to_back_available": bool(back_to_back),
                "back_to_back_options": [p.to_dict(*pair_labels) for p in back_to_back[:limit]],
                "availability_by_service": self._availability_by_service(labels, per_service),
            },
        )


# Singleton
_engine: Optional[AvailabilityEngine] = None


def get_availability_engine() -> AvailabilityEngine:
    """Get singleton AvailabilityEngine."""
    global _engine
    if _engine is None:
        _engine = AvailabilityEngine()
    return _engine
