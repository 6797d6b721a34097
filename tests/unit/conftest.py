"""Shared fixtures for scheduling unit tests."""

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from app.config import Settings
from app.core.scheduling.models import Provider, Slot

PHOENIX = ZoneInfo("America/Phoenix")


@pytest.fixture
def test_settings():
    """Settings with credentials and no .env lookup."""
    return Settings(
        _env_file=None,
        meevo_client_id="client-id",
        meevo_client_secret="client-secret",
        app_env="development",
    )


@pytest.fixture
def make_provider():
    """Factory for providers: make_provider("p1", "Maria")."""

    def _make(provider_id: str, name: str = None, nickname: str = None) -> Provider:
        return Provider(id=provider_id, name=name or provider_id, nickname=nickname)

    return _make


@pytest.fixture
def make_slot():
    """Factory for slots in the Phoenix time zone.

    make_slot(provider, HAIRCUT, "2026-01-21T10:00", minutes=30, price=35.0)
    """

    def _make(
        provider: Provider,
        service_id: str,
        start: str,
        minutes: int = 30,
        price: float = None,
        service_name: str = None,
    ) -> Slot:
        start_at = datetime.fromisoformat(start).replace(tzinfo=PHOENIX)
        return Slot(
            provider=provider,
            service_id=service_id,
            start=start_at,
            end=start_at + timedelta(minutes=minutes),
            price=price,
            service_name=service_name,
        )

    return _make
