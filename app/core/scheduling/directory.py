"""
Provider Directory.

Supplies the bookable roster for a location, cached for an hour. Placeholder
and inactive employees are filtered out here so the scanner never sees them.
"""

import logging
from types import MappingProxyType
from typing import Mapping, Optional

import httpx

from app.config import Settings, get_settings
from app.core.scheduling.errors import UnknownProviderError
from app.core.scheduling.models import Provider
from app.core.scheduling.services import normalize_alias
from app.infra.cache import ExpiringValue
from app.infra.meevo import MeevoClient, get_meevo_client

logger = logging.getLogger(__name__)


class ProviderDirectory:
    """
    Roster lookup with a per-location expiring cache.

    On a failed refresh the last known roster is served, even if expired.
    """

    def __init__(
        self,
        client: Optional[MeevoClient] = None,
        settings: Optional[Settings] = None,
        aliases: Optional[Mapping[str, str]] = None,
    ):
        self.settings = settings or get_settings()
        self._client = client
        self._caches: dict[str, ExpiringValue[tuple[Provider, ...]]] = {}
        alias_source = aliases if aliases is not None else self.settings.provider_aliases
        self._aliases: Mapping[str, str] = MappingProxyType(
            {normalize_alias(alias): provider_id for alias, provider_id in alias_source.items()}
        )

    def _get_client(self) -> MeevoClient:
        if self._client is None:
            self._client = get_meevo_client()
        return self._client

    def _cache_for(self, location_id: str) -> ExpiringValue[tuple[Provider, ...]]:
        if location_id not in self._caches:
            self._caches[location_id] = ExpiringValue()
        return self._caches[location_id]

    def is_bookable(self, employee: dict) -> bool:
        """Active status and not a placeholder account."""
        if employee.get("objectState") != self.settings.active_employee_state:
            return False
        first_name = (employee.get("firstName") or "").strip().lower()
        return first_name not in self.settings.excluded_employee_names_list

    async def list_active_providers(self, location_id: Optional[str] = None) -> list[Provider]:
        """Return the bookable roster for a location.

        Raises:
            MeevoAuthError: If no access token can be obtained
        """
        location_id = location_id or self.settings.meevo_location_id
        cache = self._cache_for(location_id)

        cached = cache.get()
        if cached is not None:
            logger.debug(
                f"Using cached roster ({len(cached)} active) for location {location_id}, "
                f"expires in {cache.seconds_remaining():.0f}s"
            )
            return list(cached)

        logger.info(f"Fetching active employees for location {location_id}")
        try:
            employees = await self._get_client().list_employees(location_id)
        except (httpx.HTTPError, ValueError) as e:
            stale = cache.peek()
            logger.error(
                f"Roster fetch failed for location {location_id}: {e}; "
                f"serving {'stale' if stale is not None else 'empty'} roster"
            )
            return list(stale or [])

        providers = [Provider.from_employee(e) for e in employees if self.is_bookable(e)]
        cache.set(tuple(providers), self.settings.roster_cache_ttl_seconds)
        logger.info(f"Cached {len(providers)} active employees for location {location_id}")
        return providers

    def refresh(self, location_id: Optional[str] = None) -> None:
        """Force the next lookup for a location to refetch."""
        location_id = location_id or self.settings.meevo_location_id
        self._cache_for(location_id).invalidate()

    async def find(self, reference: str, location_id: Optional[str] = None) -> Provider:
        """Resolve a stylist reference (id, alias, name or nickname).

        Raises:
            UnknownProviderError: If nobody on the roster matches
            MeevoAuthError: If no access token can be obtained
        """
        roster = await self.list_active_providers(location_id)
        match = self.match(reference, roster)
        if match is None:
            raise UnknownProviderError(reference, roster)
        return match

    def match(self, reference: str, roster: list[Provider]) -> Optional[Provider]:
        """Find a provider in a roster snapshot."""
        reference = (reference or "").strip()
        if not reference:
            return None

        by_id = {p.id: p for p in roster}
        if reference in by_id:
            return by_id[reference]

        key = normalize_alias(reference)
        aliased = self._aliases.get(key)
        if aliased in by_id:
            return by_id[aliased]

        for provider in roster:
            names = {normalize_alias(provider.name)}
            if provider.nickname:
                names.add(normalize_alias(provider.nickname))
            if key in names:
                return provider
        return None


# Singleton
_directory: Optional[ProviderDirectory] = None


def get_provider_directory() -> ProviderDirectory:
    """Get singleton ProviderDirectory."""
    global _directory
    if _directory is None:
        _directory = ProviderDirectory()
    return _directory
