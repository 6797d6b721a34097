"""
Availability Aggregator.

Fans the Window Scanner out across the roster for each requested service and
indexes every opening by start instant. No filtering or ranking happens
here.
"""

import logging
from datetime import datetime
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Sequence

from app.core.scheduling.models import DateRange, Provider, Slot
from app.core.scheduling.scanner import WindowScanner, gather_or_cancel

logger = logging.getLogger(__name__)


class AvailabilityIndex:
    """
    Read-only map of start instant -> openings at that instant.

    Also keeps the per-service opening lists, each in time order, for the
    group modes that pair services rather than intersect them.
    """

    def __init__(self, service_ids: Sequence[str], slots: Iterable[Slot]):
        """Build the index.

        Args:
            service_ids: Requested service ids, one per guest position
            slots: Openings from the scanner, any order
        """
        self.service_ids: tuple[str, ...] = tuple(service_ids)

        by_instant: dict[datetime, list[Slot]] = {}
        by_service: dict[str, list[Slot]] = {service_id: [] for service_id in self.service_ids}
        for slot in slots:
            by_instant.setdefault(slot.start, []).append(slot)
            by_service.setdefault(slot.service_id, []).append(slot)

        self._by_instant: Mapping[datetime, tuple[Slot, ...]] = MappingProxyType(
            {instant: tuple(entries) for instant, entries in by_instant.items()}
        )
        self._by_service: Mapping[str, tuple[Slot, ...]] = MappingProxyType(
            {
                service_id: tuple(sorted(entries, key=lambda s: s.start))
                for service_id, entries in by_service.items()
            }
        )

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._by_instant.values())

    def instants(self) -> list[datetime]:
        """All start instants, ascending."""
        return sorted(self._by_instant)

    def at(self, instant: datetime) -> tuple[Slot, ...]:
        """Openings starting at instant, in aggregation order."""
        return self._by_instant.get(instant, ())

    def providers_at(self, instant: datetime) -> dict[str, list[Slot]]:
        """Openings at instant grouped by provider id, in first-seen order."""
        grouped: dict[str, list[Slot]] = {}
        for slot in self.at(instant):
            grouped.setdefault(slot.provider.id, []).append(slot)
        return grouped

    def slots_for_service(self, service_id: str) -> tuple[Slot, ...]:
        """All openings for one service, ascending by start."""
        return self._by_service.get(service_id, ())


class AvailabilityAggregator:
    """Collects openings for every provider and requested service."""

    def __init__(self, scanner: Optional[WindowScanner] = None):
        self._scanner = scanner

    def _get_scanner(self) -> WindowScanner:
        if self._scanner is None:
            self._scanner = WindowScanner()
        return self._scanner

    async def aggregate(
        self,
        providers: Sequence[Provider],
        service_ids: Sequence[str],
        date_range: DateRange,
        location_id: Optional[str] = None,
    ) -> AvailabilityIndex:
        """Scan every provider for every requested service.

        Services are scanned one after another; within a service all
        providers (and all their windows) are scanned concurrently. A service
        requested by several guests is scanned once.

        Raises:
            MeevoAuthError: If no access token can be obtained
        """
        scanner = self._get_scanner()
        collected: list[Slot] = []

        for service_id in dict.fromkeys(service_ids):
            results = await gather_or_cancel(
                scanner.scan(provider, service_id, date_range, location_id)
                for provider in providers
            )
            openings = [slot for provider_slots in results for slot in provider_slots]
            logger.debug(
                f"Service {service_id}: {len(openings)} openings across {len(providers)} providers"
            )
            collected.extend(openings)

        return AvailabilityIndex(service_ids, collected)
