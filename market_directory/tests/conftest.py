from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from market_directory.analytics.store import clear_events
from market_directory.search.engine import SearchEngine
from market_directory.search.store import DataFrameStore

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _market(
    id: str,
    name: str,
    city: str = "Frankfurt",
    postal_code: str | None = None,
    is_premium: bool = False,
    is_active: bool = True,
    days_old: int = 10,
    about_text: str | None = None,
) -> dict:
    return {
        "id": id,
        "name": name,
        "city": city,
        "postal_code": postal_code,
        "about_text": about_text,
        "is_active": is_active,
        "is_premium": is_premium,
        "created_at": NOW - timedelta(days=days_old),
    }


def _offer(
    id: str,
    market_id: str,
    product_name: str,
    description: str | None = None,
    status: str = "live",
    expires_in_days: int = 7,
    days_old: int = 1,
    price: str = "1,99 €",
) -> dict:
    return {
        "id": id,
        "market_id": market_id,
        "product_name": product_name,
        "description": description,
        "price": price,
        "status": status,
        "expires_at": NOW + timedelta(days=expires_in_days),
        "created_at": NOW - timedelta(days=days_old),
    }


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_market():
    return _market


@pytest.fixture
def make_offer():
    return _offer


@pytest.fixture
def make_engine():
    def _build(markets: list[dict], offers: list[dict] | None = None, **kwargs) -> SearchEngine:
        store = DataFrameStore.from_records(markets, offers)
        return SearchEngine(store, clock=lambda: NOW, **kwargs)

    return _build


@pytest.fixture(autouse=True)
def _reset_events():
    clear_events()
    yield
    clear_events()
