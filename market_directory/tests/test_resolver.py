from __future__ import annotations

import time
from unittest.mock import MagicMock

from market_directory.search.config import SearchConfig
from market_directory.search.errors import StoreUnavailable
from market_directory.search.normalizer import build_intent
from market_directory.search.resolver import (
    MARKET_BY_CITY,
    MARKET_BY_NAME,
    MARKET_BY_POSTAL,
    OFFER_BY_TEXT,
    LocalityResolver,
)
from market_directory.search.store import DataFrameStore


class FlakyStore:
    """Delegates to a real store but fails the named lookups."""

    def __init__(self, inner: DataFrameStore, failing: set[str], delay: float = 0.0):
        self.inner = inner
        self.failing = failing
        self.delay = delay

    def _maybe_fail(self, method: str) -> None:
        if method in self.failing:
            if self.delay:
                time.sleep(self.delay)
                return
            raise StoreUnavailable(method, "connection reset")

    def markets_by_postal_prefix(self, prefix, **kwargs):
        self._maybe_fail("markets_by_postal_prefix")
        return self.inner.markets_by_postal_prefix(prefix, **kwargs)

    def markets_by_city(self, city, **kwargs):
        self._maybe_fail("markets_by_city")
        return self.inner.markets_by_city(city, **kwargs)

    def markets_by_name(self, text, **kwargs):
        self._maybe_fail("markets_by_name")
        return self.inner.markets_by_name(text, **kwargs)

    def offers_by_text(self, text, **kwargs):
        self._maybe_fail("offers_by_text")
        return self.inner.offers_by_text(text, **kwargs)


def _store(make_market, make_offer):
    return DataFrameStore.from_records(
        [
            make_market("m1", "Honig Haus", postal_code="60311"),
            make_market("m2", "Bazar", postal_code="60200"),
        ],
        [make_offer("o1", "m2", "Waldhonig")],
    )


def test_plan_postal_with_query(now):
    resolver = LocalityResolver(MagicMock())
    plan = resolver.plan(build_intent("honig", "Frankfurt", "60311"), now)
    assert set(plan) == {MARKET_BY_POSTAL, MARKET_BY_NAME, OFFER_BY_TEXT}


def test_plan_city_only(now):
    resolver = LocalityResolver(MagicMock())
    assert set(resolver.plan(build_intent(city="Frankfurt"), now)) == {MARKET_BY_CITY}


def test_plan_respects_search_type(now):
    resolver = LocalityResolver(MagicMock())
    markets_only = resolver.plan(build_intent("honig", search_type="markets"), now)
    offers_only = resolver.plan(build_intent("honig", search_type="offers"), now)
    assert set(markets_only) == {MARKET_BY_NAME}
    assert set(offers_only) == {OFFER_BY_TEXT}


def test_plan_without_criteria_is_empty(now):
    assert LocalityResolver(MagicMock()).plan(build_intent(), now) == {}


def test_plan_passes_locality_to_text_lookups(now):
    store = MagicMock()
    resolver = LocalityResolver(store)
    plan = resolver.plan(build_intent("honig", city="Frankfurt"), now)
    plan[OFFER_BY_TEXT]()
    kwargs = store.offers_by_text.call_args.kwargs
    assert kwargs["city"] == "Frankfurt"
    assert kwargs["postal_prefix"] is None


def test_resolve_collects_all_lookups(make_market, make_offer, now):
    resolver = LocalityResolver(_store(make_market, make_offer))
    candidates = resolver.resolve(build_intent("honig", plz="60311"), now)
    assert [m.id for m in candidates.postal_markets] == ["m1", "m2"]
    assert [m.id for m in candidates.name_markets] == ["m1"]
    assert [o.id for o in candidates.text_offers] == ["o1"]
    assert candidates.failed == []


def test_failed_lookup_degrades_to_empty(make_market, make_offer, now):
    store = FlakyStore(_store(make_market, make_offer), {"offers_by_text"})
    candidates = LocalityResolver(store).resolve(build_intent("honig", plz="60311"), now)
    assert candidates.text_offers == []
    assert candidates.failed == [OFFER_BY_TEXT]
    assert [m.id for m in candidates.postal_markets] == ["m1", "m2"]
    assert not candidates.all_failed


def test_unexpected_exception_is_a_failed_lookup(make_market, make_offer, now):
    store = MagicMock()
    store.markets_by_city.side_effect = RuntimeError("boom")
    candidates = LocalityResolver(store).resolve(build_intent(city="Frankfurt"), now)
    assert candidates.failed == [MARKET_BY_CITY]
    assert candidates.all_failed


def test_slow_lookup_past_deadline_is_failed(make_market, make_offer, now):
    store = FlakyStore(_store(make_market, make_offer), {"markets_by_name"}, delay=1.0)
    resolver = LocalityResolver(store, SearchConfig(lookup_timeout=0.2))
    started = time.monotonic()
    candidates = resolver.resolve(build_intent("honig", plz="60311"), now)
    assert time.monotonic() - started < 0.9
    assert candidates.failed == [MARKET_BY_NAME]
    assert [o.id for o in candidates.text_offers] == ["o1"]


def test_post_fetch_filter_drops_invisible_offers(make_market, make_offer, now):
    inner = _store(make_market, make_offer)
    visible = inner.offers_by_text("honig", now=now, limit=50)
    hidden = visible[0].model_copy(update={"id": "o2", "market": None})
    store = MagicMock()
    store.offers_by_text.return_value = visible + [hidden]
    store.markets_by_name.return_value = []
    candidates = LocalityResolver(store).resolve(build_intent("honig"), now)
    assert [o.id for o in candidates.text_offers] == ["o1"]
