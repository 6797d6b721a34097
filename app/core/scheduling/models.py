"""Request-scoped data types for availability scanning and matching."""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Iterator, Optional
from zoneinfo import ZoneInfo

from app.core.scheduling.formatting import format_instant


def parse_instant(value: str, tz: ZoneInfo) -> datetime:
    """Parse an upstream ISO timestamp into an aware datetime in tz.

    Naive timestamps are taken to be local to the business location.

    Raises:
        ValueError: If value is not an ISO 8601 timestamp
    """
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=tz)
    return parsed.astimezone(tz)


@dataclass(frozen=True)
class Provider:
    """A bookable stylist."""

    id: str
    name: str
    nickname: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.nickname or self.name

    @classmethod
    def from_employee(cls, data: dict) -> "Provider":
        """Create from a Meevo employee record."""
        first_name = (data.get("firstName") or "").strip()
        nickname = (data.get("nickName") or "").strip() or None
        return cls(
            id=str(data.get("id", "")),
            name=first_name or nickname or "",
            nickname=nickname,
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.display_name}


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of calendar days. Empty when end precedes start."""

    start: date
    end: date

    @property
    def is_empty(self) -> bool:
        return self.end < self.start

    def days(self) -> Iterator[date]:
        day = self.start
        while day <= self.end:
            yield day
            day += timedelta(days=1)

    def to_dict(self) -> dict:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass(frozen=True)
class DiscoveryWindow:
    """Time-of-day sub-range for one discovery query."""

    start: time
    end: time

    @property
    def label(self) -> str:
        return f"{self.start:%H:%M}-{self.end:%H:%M}"


@dataclass(frozen=True)
class Slot:
    """One opening a provider can perform for one service."""

    provider: Provider
    service_id: str
    start: datetime
    end: datetime
    price: Optional[float] = None
    service_name: Optional[str] = None

    @property
    def key(self) -> tuple[str, str, datetime]:
        """Identity used for deduplication."""
        return (self.provider.id, self.service_id, self.start)

    @classmethod
    def from_opening(
        cls,
        data: dict[str, Any],
        provider: Provider,
        service_id: str,
        tz: ZoneInfo,
    ) -> "Slot":
        """Create from a Meevo serviceOpenings entry.

        Raises:
            KeyError: If startTime or endTime is missing
            ValueError: If a timestamp or price is malformed
        """
        price = data.get("employeePrice")
        return cls(
            provider=provider,
            service_id=service_id,
            start=parse_instant(data["startTime"], tz),
            end=parse_instant(data["endTime"], tz),
            price=float(price) if price is not None else None,
            service_name=data.get("serviceName"),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary, including presentation fields."""
        result = {
            "time": self.start.isoformat(),
            "end_time": self.end.isoformat(),
            "stylist_id": self.provider.id,
            "stylist_name": self.provider.display_name,
            "service_id": self.service_id,
            "service_name": self.service_name,
            "price": self.price,
        }
        result.update(format_instant(self.start))
        return result
