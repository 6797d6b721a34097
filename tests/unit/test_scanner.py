"""Tests for the windowed opening scanner."""

import asyncio
from datetime import date, datetime, timedelta

import httpx
import pytest

from app.core.scheduling.models import DateRange, Provider
from app.core.scheduling.scanner import WindowScanner, gather_or_cancel, merge_slots
from app.infra.meevo import MeevoAuthError

SERVICE = "f9160450-0b51-4ddc-bcc7-ac150103d5c0"
DAY = date(2026, 1, 21)


class CappedUpstream:
    """Scan endpoint stand-in: openings inside the window, earliest first, at most K."""

    def __init__(self, starts: list[datetime], cap: int = 8, failing_windows=()):
        self.starts = sorted(starts)
        self.cap = cap
        self.failing_windows = set(failing_windows)
        self.calls: list[str] = []
        self.ranges: list[DateRange] = []

    async def scan_openings(self, service_id, employee_id, date_range, window, location_id=None):
        self.calls.append(window.label)
        self.ranges.append(date_range)
        if window.label in self.failing_windows:
            raise httpx.ConnectError("connection reset")
        inside = [
            s
            for s in self.starts
            if date_range.start <= s.date() <= date_range.end
            and window.start <= s.time() < window.end
        ]
        return [
            {
                "startTime": s.isoformat(),
                "endTime": (s + timedelta(minutes=30)).isoformat(),
                "employeePrice": 35,
                "serviceName": "Haircut Standard",
            }
            for s in inside[: self.cap]
        ]


def grid(first: str, last: str, every_minutes: int, day: date = DAY) -> list[datetime]:
    start = datetime.fromisoformat(f"{day}T{first}")
    end = datetime.fromisoformat(f"{day}T{last}")
    starts = []
    while start <= end:
        starts.append(start)
        start += timedelta(minutes=every_minutes)
    return starts


class TestWindowScanner:
    """Test WindowScanner against a K-capped upstream."""

    @pytest.fixture
    def provider(self):
        return Provider(id="e1", name="Maria")

    @pytest.fixture
    def day(self):
        return DateRange(start=DAY, end=DAY)

    def scanner_for(self, upstream, settings):
        return WindowScanner(client=upstream, settings=settings)

    @pytest.mark.asyncio
    async def test_recovers_full_day_beyond_single_call_cap(self, provider, day, test_settings):
        """Test 64 openings are found although each call returns at most 8."""
        starts = grid("06:00", "21:45", 15)
        upstream = CappedUpstream(starts)

        slots = await self.scanner_for(upstream, test_settings).scan(provider, SERVICE, day)

        assert len(upstream.calls) == 15
        assert [s.start.replace(tzinfo=None) for s in slots] == starts

    @pytest.mark.asyncio
    async def test_dense_run_across_window_seam(self, provider, day, test_settings):
        """Test ten openings straddling 10:00 are all found."""
        starts = grid("09:30", "10:15", 5)
        upstream = CappedUpstream(starts)

        slots = await self.scanner_for(upstream, test_settings).scan(provider, SERVICE, day)

        assert [s.start.replace(tzinfo=None) for s in slots] == starts

    @pytest.mark.asyncio
    async def test_multi_day_range_scanned_day_by_day(self, provider, test_settings):
        """Test four full days of openings are all found, one day per query."""
        days = [DAY + timedelta(days=offset) for offset in range(4)]
        starts = [s for d in days for s in grid("06:00", "21:45", 15, day=d)]
        upstream = CappedUpstream(starts)
        date_range = DateRange(start=days[0], end=days[-1])

        slots = await self.scanner_for(upstream, test_settings).scan(provider, SERVICE, date_range)

        assert len(slots) == 256
        assert [s.start.replace(tzinfo=None) for s in slots] == starts
        assert len(upstream.calls) == 4 * 15
        assert all(r.start == r.end for r in upstream.ranges)
        assert {r.start for r in upstream.ranges} == set(days)

    @pytest.mark.asyncio
    async def test_auth_failure_cancels_other_windows(self, provider, day, test_settings):
        """Test a token failure aborts the scan and cancels in-flight windows."""
        cancelled = []

        class AuthFailingUpstream:
            async def scan_openings(self, **kwargs):
                if kwargs["window"].label == "06:00-08:00":
                    raise MeevoAuthError("invalid_client")
                try:
                    await asyncio.sleep(60)
                except asyncio.CancelledError:
                    cancelled.append(kwargs["window"].label)
                    raise
                return []

        with pytest.raises(MeevoAuthError):
            await self.scanner_for(AuthFailingUpstream(), test_settings).scan(provider, SERVICE, day)

        assert len(cancelled) == 14

    @pytest.mark.asyncio
    async def test_overlapping_windows_deduplicated(self, provider, day, test_settings):
        """Test an opening seen by two windows is reported once, and rescans agree."""
        upstream = CappedUpstream(grid("09:00", "09:45", 15))
        scanner = self.scanner_for(upstream, test_settings)

        first = await scanner.scan(provider, SERVICE, day)
        second = await scanner.scan(provider, SERVICE, day)

        assert len(first) == 4
        assert len({s.key for s in first}) == 4
        assert first == second

    @pytest.mark.asyncio
    async def test_failed_window_contributes_nothing(self, provider, day, test_settings):
        """Test one failing window does not fail the scan."""
        starts = grid("06:00", "21:45", 15)
        upstream = CappedUpstream(starts, failing_windows={"12:00-14:00"})

        slots = await self.scanner_for(upstream, test_settings).scan(provider, SERVICE, day)

        # 12:00-14:00 is also covered by its neighbours
        assert [s.start.replace(tzinfo=None) for s in slots] == starts

    @pytest.mark.asyncio
    async def test_all_windows_failing_returns_empty(self, provider, day, test_settings):
        windows = {f"{h:02d}:00-{h + 2:02d}:00" for h in range(6, 21)}
        upstream = CappedUpstream(grid("09:00", "10:00", 15), failing_windows=windows)

        assert await self.scanner_for(upstream, test_settings).scan(provider, SERVICE, day) == []

    @pytest.mark.asyncio
    async def test_empty_range_makes_no_calls(self, provider, test_settings):
        upstream = CappedUpstream(grid("09:00", "10:00", 15))
        empty = DateRange(start=DAY, end=DAY - timedelta(days=1))

        assert await self.scanner_for(upstream, test_settings).scan(provider, SERVICE, empty) == []
        assert upstream.calls == []

    @pytest.mark.asyncio
    async def test_slots_carry_provider_service_and_price(self, provider, day, test_settings):
        upstream = CappedUpstream(grid("10:00", "10:00", 15))

        [slot] = await self.scanner_for(upstream, test_settings).scan(provider, SERVICE, day)

        assert slot.provider == provider
        assert slot.service_id == SERVICE
        assert slot.price == 35.0
        assert slot.service_name == "Haircut Standard"
        assert slot.start.tzinfo is not None
        assert slot.end - slot.start == timedelta(minutes=30)

    @pytest.mark.asyncio
    async def test_malformed_opening_skipped(self, provider, day, test_settings):
        """Test an opening without a start time is dropped."""

        class BrokenUpstream:
            async def scan_openings(self, **kwargs):
                if kwargs["window"].label != "09:00-11:00":
                    return []
                return [
                    {"endTime": "2026-01-21T09:30:00"},
                    {"startTime": "2026-01-21T10:00:00", "endTime": "2026-01-21T10:30:00"},
                ]

        slots = await self.scanner_for(BrokenUpstream(), test_settings).scan(provider, SERVICE, day)

        assert len(slots) == 1
        assert slots[0].start.hour == 10


class TestMergeSlots:
    """Test merge_slots."""

    def test_first_occurrence_kept_and_sorted(self, make_provider, make_slot):
        maria = make_provider("e1", "Maria")
        early = make_slot(maria, SERVICE, "2026-01-21T09:00", price=30.0)
        late = make_slot(maria, SERVICE, "2026-01-21T11:00")
        duplicate = make_slot(maria, SERVICE, "2026-01-21T09:00", price=99.0)

        merged = merge_slots([[late, early], [duplicate]])

        assert merged == [early, late]
        assert merged[0].price == 30.0

    def test_same_start_different_provider_kept(self, make_provider, make_slot):
        a = make_slot(make_provider("e1"), SERVICE, "2026-01-21T09:00")
        b = make_slot(make_provider("e2"), SERVICE, "2026-01-21T09:00")

        assert len(merge_slots([[a], [b]])) == 2


class TestGatherOrCancel:
    """Test gather_or_cancel."""

    @pytest.mark.asyncio
    async def test_results_in_call_order(self):
        async def value(n, delay):
            await asyncio.sleep(delay)
            return n

        assert await gather_or_cancel([value(1, 0.02), value(2, 0), value(3, 0.01)]) == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_siblings_cancelled_on_failure(self):
        cancelled = []

        async def fail():
            raise RuntimeError("boom")

        async def slow(name):
            try:
                await asyncio.sleep(60)
            except asyncio.CancelledError:
                cancelled.append(name)
                raise

        with pytest.raises(RuntimeError):
            await gather_or_cancel([fail(), slow("a"), slow("b")])

        assert sorted(cancelled) == ["a", "b"]
