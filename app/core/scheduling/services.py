"""
Service Resolver.

Maps what a caller says ("Skin Fade", "beard_trim") to the upstream service
id. The alias table is built once and never mutated.
"""

import logging
import re
from types import MappingProxyType
from typing import Mapping, Optional, Sequence

from app.config import get_settings
from app.core.scheduling.errors import InvalidRequestError, UnknownServiceError

logger = logging.getLogger(__name__)

# Canonical service ids are GUIDs and are passed through untouched
_SERVICE_ID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)
_SEPARATORS = re.compile(r"[\s_]+")


def normalize_alias(token: str) -> str:
    """Lowercase, trim, and collapse underscores/whitespace to single spaces."""
    return _SEPARATORS.sub(" ", token.strip().lower()).strip()


def service_label(token: str) -> str:
    """Human-readable label for a requested service token."""
    return normalize_alias(token)


def is_service_id(token: str) -> bool:
    return bool(_SERVICE_ID_PATTERN.match(token.strip()))


class ServiceResolver:
    """Immutable alias table lookup."""

    def __init__(self, aliases: Mapping[str, str]):
        """Build the lookup table.

        Args:
            aliases: alias -> service id; keys are normalized on load
        """
        table = {normalize_alias(alias): service_id for alias, service_id in aliases.items()}
        self._aliases: Mapping[str, str] = MappingProxyType(table)
        logger.debug(f"Service resolver loaded {len(table)} aliases")

    @property
    def aliases(self) -> Mapping[str, str]:
        return self._aliases

    def label(self, token: str) -> str:
        return service_label(token)

    def resolve(self, token: Optional[str]) -> Optional[str]:
        """Resolve one token to a service id, or None if unknown."""
        if not token or not token.strip():
            return None
        if is_service_id(token):
            return token.strip()
        return self._aliases.get(normalize_alias(token))

    def resolve_all(self, tokens: Sequence[str]) -> list[str]:
        """Resolve a service request, one id per guest, in order.

        Raises:
            InvalidRequestError: If tokens is empty
            UnknownServiceError: If any token is unknown
        """
        if not tokens:
            raise InvalidRequestError("services array required with at least 1 service")

        resolved = [self.resolve(token) for token in tokens]
        unknown = [token for token, service_id in zip(tokens, resolved) if service_id is None]
        if unknown:
            raise UnknownServiceError(unknown)
        return resolved


# Singleton
_resolver: Optional[ServiceResolver] = None


def get_service_resolver() -> ServiceResolver:
    """Get singleton ServiceResolver built from settings."""
    global _resolver
    if _resolver is None:
        _resolver = ServiceResolver(get_settings().service_aliases)
    return _resolver
