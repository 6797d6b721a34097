"""
Scheduling Module

Availability scanning and multi-party slot matching for group bookings.

Components (leaves first):
    services.ServiceResolver       - service alias -> service id
    directory.ProviderDirectory    - cached bookable roster
    scanner.WindowScanner          - windowed, deduplicated opening scan
    aggregator.AvailabilityAggregator - per-instant availability index
    matcher                        - concurrent / group / same-stylist matching
    engine.AvailabilityEngine      - request orchestration and result shapes

Usage:
    from app.core.scheduling.engine import get_availability_engine

    engine = get_availability_engine()
    date_range = engine.date_range(specific_date=date(2026, 1, 21))
    response = await engine.find_concurrent(["haircut", "fade"], date_range)
    print(response.to_dict())

The engine, aggregator, scanner and directory import the upstream client, so
only the dependency-free pieces are re-exported here.
"""

from app.core.scheduling.models import (
    DateRange,
    DiscoveryWindow,
    Provider,
    Slot,
)
from app.core.scheduling.errors import (
    InvalidRequestError,
    SchedulingError,
    UnknownProviderError,
    UnknownServiceError,
)
from app.core.scheduling.services import ServiceResolver, get_service_resolver
from app.core.scheduling.windows import build_discovery_windows

__all__ = [
    # Models
    "DateRange",
    "DiscoveryWindow",
    "Provider",
    "Slot",
    # Errors
    "InvalidRequestError",
    "SchedulingError",
    "UnknownProviderError",
    "UnknownServiceError",
    # Lookup
    "ServiceResolver",
    "get_service_resolver",
    "build_discovery_windows",
]
