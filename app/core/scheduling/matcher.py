"""
Multi-Party Matcher.

Three ways of seating a group:

- Concurrent: N guests, N distinct stylists, same start instant.
- Group: two services with free choice of stylist, either starting together
  on different stylists or back to back within 30 minutes.
- Same stylist: one named stylist serving guests one after another, back to
  back within 10 minutes.

Everything here is a pure function of the availability it is handed.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Mapping, Optional, Sequence

from app.core.scheduling.aggregator import AvailabilityIndex
from app.core.scheduling.formatting import format_instant
from app.core.scheduling.models import Slot

MORNING = "morning"
AFTERNOON = "afternoon"
NOON_HOUR = 12


def matches_time_preference(instant: datetime, preference: Optional[str]) -> bool:
    """Morning is before 12:00 local, afternoon from 12:00 local."""
    if preference == MORNING:
        return instant.hour < NOON_HOUR
    if preference == AFTERNOON:
        return instant.hour >= NOON_HOUR
    return True


def filter_by_time_preference(slots: Iterable[Slot], preference: Optional[str]) -> list[Slot]:
    return [slot for slot in slots if matches_time_preference(slot.start, preference)]


@dataclass(frozen=True)
class Assignment:
    """One guest seated with one stylist."""

    guest_number: int
    slot: Slot

    def to_dict(self) -> dict:
        return {
            "guest_number": self.guest_number,
            "stylist_id": self.slot.provider.id,
            "stylist_name": self.slot.provider.display_name,
            "service_id": self.slot.service_id,
            "service_name": self.slot.service_name,
            "end_time": self.slot.end.isoformat(),
            "price": self.slot.price,
        }


@dataclass(frozen=True)
class MatchedSlot:
    """A start instant at which every guest has a distinct stylist."""

    start: datetime
    assignments: tuple[Assignment, ...]

    @property
    def total_price(self) -> float:
        return sum(a.slot.price or 0 for a in self.assignments)

    @property
    def provider_ids(self) -> list[str]:
        return [a.slot.provider.id for a in self.assignments]

    def to_dict(self) -> dict:
        result = {"start_time": self.start.isoformat()}
        result.update(format_instant(self.start))
        result["assignments"] = [a.to_dict() for a in self.assignments]
        result["total_price"] = self.total_price
        return result


@dataclass(frozen=True)
class SameTimePair:
    """Two services starting together on different stylists."""

    first: Slot
    second: Slot

    @property
    def start(self) -> datetime:
        return self.first.start

    def to_dict(self, first_label: str, second_label: str) -> dict:
        result = {"time": self.start.isoformat()}
        result.update(format_instant(self.start))
        result["guest1"] = _guest_dict(self.first, first_label)
        result["guest2"] = _guest_dict(self.second, second_label)
        return result


@dataclass(frozen=True)
class BackToBackPair:
    """Second service starting shortly after the first one ends."""

    first: Slot
    second: Slot

    @property
    def gap_minutes(self) -> int:
        return round(_gap_minutes(self.first, self.second))

    def to_dict(self, first_label: str, second_label: str) -> dict:
        return {
            "guest1": _guest_dict(self.first, first_label),
            "guest2": _guest_dict(self.second, second_label),
            "gap_minutes": self.gap_minutes,
        }


def _guest_dict(slot: Slot, label: str) -> dict:
    result = {"service": label}
    result.update(slot.to_dict())
    return result


def _gap_minutes(first: Slot, second: Slot) -> float:
    return (second.start - first.end).total_seconds() / 60


# === Concurrent mode ===


def _first_fit(
    by_provider: Mapping[str, Sequence[Slot]],
    service_id: str,
    used: set[str],
) -> Optional[Slot]:
    for provider_id, slots in by_provider.items():
        if provider_id in used:
            continue
        for slot in slots:
            if slot.service_id == service_id:
                return slot
    return None


def _augmenting_match(
    by_provider: Mapping[str, Sequence[Slot]],
    service_ids: Sequence[str],
    positions: Sequence[int],
    excluded: set[str],
) -> Optional[dict[int, Slot]]:
    """Bipartite guest/stylist matching by augmenting paths.

    Returns position -> slot covering every position, or None if no such
    assignment exists.
    """
    candidates: dict[int, list[Slot]] = {}
    for position in positions:
        options = []
        for provider_id, slots in by_provider.items():
            if provider_id in excluded:
                continue
            slot = next((s for s in slots if s.service_id == service_ids[position]), None)
            if slot is not None:
                options.append(slot)
        candidates[position] = options

    owner: dict[str, int] = {}
    chosen: dict[int, Slot] = {}

    def try_assign(position: int, visited: set[str]) -> bool:
        for slot in candidates[position]:
            provider_id = slot.provider.id
            if provider_id in visited:
                continue
            visited.add(provider_id)
            if provider_id not in owner or try_assign(owner[provider_id], visited):
                owner[provider_id] = position
                chosen[position] = slot
                return True
        return False

    for position in positions:
        if not try_assign(position, set()):
            return None
    return chosen


def assign_guests(
    by_provider: Mapping[str, Sequence[Slot]],
    service_ids: Sequence[str],
    preferred_provider_id: Optional[str] = None,
    exhaustive: bool = False,
) -> Optional[list[Assignment]]:
    """Seat every guest with a distinct stylist at one instant.

    The preferred stylist, when free, takes guest 1 first: their opening
    for guest 1's service if they have one, otherwise whatever they offer.
    Remaining guests go in list order to the first unused stylist offering
    their service. If that leaves someone out and exhaustive is set, a full
    bipartite matching is tried with the preferred seating kept.

    Args:
        by_provider: Openings at the instant, grouped by provider id
        service_ids: One service id per guest
        preferred_provider_id: Stylist to seat with guest 1 when free
        exhaustive: Retry with bipartite matching when first-fit fails

    Returns:
        One assignment per guest, ordered by guest, or None
    """
    guest_count = len(service_ids)
    if guest_count == 0 or len(by_provider) < guest_count:
        return None

    seated: dict[int, Slot] = {}
    used: set[str] = set()

    if preferred_provider_id and by_provider.get(preferred_provider_id):
        offered = by_provider[preferred_provider_id]
        seated[0] = next((s for s in offered if s.service_id == service_ids[0]), offered[0])
        used.add(preferred_provider_id)

    remaining = [position for position in range(guest_count) if position not in seated]
    pinned = set(used)

    complete = True
    for position in remaining:
        slot = _first_fit(by_provider, service_ids[position], used)
        if slot is None:
            complete = False
            break
        seated[position] = slot
        used.add(slot.provider.id)

    if not complete:
        if not exhaustive:
            return None
        matching = _augmenting_match(by_provider, service_ids, remaining, pinned)
        if matching is None:
            return None
        for position in remaining:
            seated[position] = matching[position]

    return [Assignment(guest_number=position + 1, slot=seated[position]) for position in range(guest_count)]


def find_concurrent_matches(
    index: AvailabilityIndex,
    preferred_provider_id: Optional[str] = None,
    time_preference: Optional[str] = None,
    exhaustive: bool = False,
) -> list[MatchedSlot]:
    """Every instant where all requested guests can start together.

    Returns:
        Matches ascending by start instant
    """
    matches: list[MatchedSlot] = []
    for instant in index.instants():
        if not matches_time_preference(instant, time_preference):
            continue
        assignments = assign_guests(
            index.providers_at(instant),
            index.service_ids,
            preferred_provider_id=preferred_provider_id,
            exhaustive=exhaustive,
        )
        if assignments is None:
            continue
        matches.append(MatchedSlot(start=instant, assignments=tuple(assignments)))
    return matches


# === Group and same-stylist modes ===


def find_same_time_pairs(
    first_slots: Sequence[Slot],
    second_slots: Sequence[Slot],
    seed_limit: int = 10,
) -> list[SameTimePair]:
    """Pairs starting at the same instant with different stylists.

    Only the earliest seed_limit openings of the first service are tried.
    """
    pairs: list[SameTimePair] = []
    for first in first_slots[:seed_limit]:
        for second in second_slots:
            if first.start == second.start and first.provider.id != second.provider.id:
                pairs.append(SameTimePair(first=first, second=second))
    return pairs


def find_back_to_back_pairs(
    first_slots: Sequence[Slot],
    second_slots: Sequence[Slot],
    max_gap_minutes: int,
    seed_limit: int = 10,
) -> list[BackToBackPair]:
    """Pairs where the second service starts 0..max_gap_minutes after the first ends.

    Stylists are unconstrained. Only the earliest seed_limit openings of the
    first service are tried.

    Returns:
        Pairs ordered by the first service's start
    """
    pairs: list[BackToBackPair] = []
    for first in first_slots[:seed_limit]:
        for second in second_slots:
            gap = _gap_minutes(first, second)
            if 0 <= gap <= max_gap_minutes:
                pairs.append(BackToBackPair(first=first, second=second))
    pairs.sort(key=lambda p: p.first.start)
    return pairs
