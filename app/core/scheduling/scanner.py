"""
Window Scanner.

Recovers every opening a provider has for one service over a date range,
despite the scan endpoint returning only K openings per call. One query is
issued per day and discovery window, all at once; results are merged,
deduplicated by (provider, service, start) and returned in time order.

A window that fails contributes nothing. It never fails the scan. An
authentication failure does: the remaining queries are cancelled and the
error is raised.
"""

import asyncio
import logging
from typing import Awaitable, Iterable, Optional, Sequence, TypeVar
from zoneinfo import ZoneInfo

import httpx

from app.config import Settings, get_settings
from app.core.scheduling.models import DateRange, DiscoveryWindow, Provider, Slot
from app.core.scheduling.windows import build_discovery_windows
from app.infra.meevo import MeevoClient, get_meevo_client

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def gather_or_cancel(calls: Iterable[Awaitable[T]]) -> list[T]:
    """Run calls concurrently and wait for all of them.

    If one raises, the others are cancelled and awaited before the error
    propagates, so no request outlives the batch.
    """
    tasks = [asyncio.ensure_future(call) for call in calls]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def merge_slots(batches: Sequence[Sequence[Slot]]) -> list[Slot]:
    """Flatten, keep the first slot per key, and sort by start."""
    seen: set = set()
    merged: list[Slot] = []
    for batch in batches:
        for slot in batch:
            if slot.key in seen:
                continue
            seen.add(slot.key)
            merged.append(slot)
    merged.sort(key=lambda s: s.start)
    return merged


class WindowScanner:
    """Scans one (provider, service, date range) across the window cover."""

    def __init__(
        self,
        client: Optional[MeevoClient] = None,
        windows: Optional[Sequence[DiscoveryWindow]] = None,
        settings: Optional[Settings] = None,
    ):
        """Initialize scanner.

        Args:
            client: Upstream client (defaults to the shared client)
            windows: Discovery window cover (defaults to settings)
            settings: Application settings
        """
        self.settings = settings or get_settings()
        self._client = client
        self.windows = list(windows) if windows is not None else build_discovery_windows(
            self.settings.discovery_day_start,
            self.settings.discovery_day_end,
            self.settings.discovery_window_hours,
            self.settings.discovery_window_step_hours,
        )
        self.tz = ZoneInfo(self.settings.location_timezone)

    def _get_client(self) -> MeevoClient:
        if self._client is None:
            self._client = get_meevo_client()
        return self._client

    async def scan(
        self,
        provider: Provider,
        service_id: str,
        date_range: DateRange,
        location_id: Optional[str] = None,
    ) -> list[Slot]:
        """Return all openings for a provider and service, time ordered.

        Raises:
            MeevoAuthError: If no access token can be obtained
        """
        # The per-call cap spans the whole queried range, so each query covers one day
        batches = await gather_or_cancel(
            self._scan_window(provider, service_id, DateRange(day, day), window, location_id)
            for day in date_range.days()
            for window in self.windows
        )
        return merge_slots(batches)

    async def _scan_window(
        self,
        provider: Provider,
        service_id: str,
        date_range: DateRange,
        window: DiscoveryWindow,
        location_id: Optional[str],
    ) -> list[Slot]:
        try:
            openings = await self._get_client().scan_openings(
                service_id=service_id,
                employee_id=provider.id,
                date_range=date_range,
                window=window,
                location_id=location_id,
            )
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(
                f"Error scanning {provider.display_name} ({window.label}) "
                f"for service {service_id}: {e}"
            )
            return []

        if len(openings) >= self.settings.scan_result_cap:
            logger.debug(
                f"Window {window.label} saturated for {provider.display_name} "
                f"({len(openings)} openings)"
            )

        slots: list[Slot] = []
        for opening in openings:
            try:
                slots.append(Slot.from_opening(opening, provider, service_id, self.tz))
            except (KeyError, ValueError, TypeError) as e:
                logger.debug(f"Skipping malformed opening for {provider.display_name}: {e}")
        return slots
