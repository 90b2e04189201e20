"""
Market directory listings outside the tiered search.

Responsibilities:
- Browse all active markets with query/city/premium/new filters.
- List the cities that have markets, for the location dropdown.
- Serve search-bar suggestions for markets and offers.
- Pick the featured markets and offers for the landing page.
"""
from __future__ import annotations

from datetime import datetime, timedelta

from ..analytics.store import EVENT_SUGGEST, record_event
from .config import DEFAULT_SEARCH_CONFIG, SearchConfig
from .models import CityOption, FeaturedResponse, Market, SuggestionMode, Suggestions
from .normalizer import clean_input, normalize_text
from .ranker import rank_markets
from .store import SortOrder, Store


def list_markets(
    store: Store,
    *,
    now: datetime,
    query: str | None = None,
    city: str | None = None,
    premium_only: bool = False,
    new_only: bool = False,
    new_days: int = DEFAULT_SEARCH_CONFIG.directory_new_days,
) -> list[Market]:
    """Active markets matching every given filter, premium first then newest."""
    markets = store.active_markets()

    needle = normalize_text(query)
    if needle:
        markets = [
            m for m in markets
            if needle in normalize_text(m.name)
            or needle in normalize_text(m.city)
            or (m.postal_code is not None and needle in m.postal_code)
        ]

    wanted_city = clean_input(city)
    if wanted_city is not None:
        markets = [m for m in markets if m.city == wanted_city]

    if premium_only:
        markets = [m for m in markets if m.is_premium]

    if new_only:
        cutoff = now - timedelta(days=new_days)
        markets = [m for m in markets if m.created_at >= cutoff]

    return rank_markets(markets)


def available_cities(store: Store) -> list[CityOption]:
    """Cities with at least one postal-coded market, labelled "<plz> <city>"."""
    first_postal: dict[str, str] = {}
    for market in store.active_markets():
        if market.city and market.postal_code and market.city not in first_postal:
            first_postal[market.city] = market.postal_code

    return [
        CityOption(city=city, postal_code=plz, label=f"{plz} {city}")
        for city, plz in sorted(first_postal.items())
    ]


def suggest(
    store: Store,
    mode: SuggestionMode | str,
    text: str | None,
    *,
    now: datetime,
    config: SearchConfig = DEFAULT_SEARCH_CONFIG,
) -> Suggestions:
    mode = SuggestionMode(mode)
    value = clean_input(text)
    result = Suggestions(mode=mode)
    if value is None or len(value) < config.suggestion_min_length:
        return result

    if mode == SuggestionMode.markets:
        result.markets = store.markets_by_name(
            value, limit=config.suggestion_limit, order=SortOrder.premium_first,
        )
    else:
        result.offers = store.offers_by_text(
            value, now=now, limit=config.suggestion_limit, order=SortOrder.newest_first,
        )

    record_event(EVENT_SUGGEST, {
        "mode": mode.value,
        "text": value,
        "results": len(result.markets) + len(result.offers),
    })
    return result


def featured(
    store: Store,
    *,
    now: datetime,
    config: SearchConfig = DEFAULT_SEARCH_CONFIG,
) -> FeaturedResponse:
    premium = [m for m in store.active_markets(order=SortOrder.name) if m.is_premium]
    return FeaturedResponse(
        premium_markets=premium,
        newest_markets=store.active_markets(
            order=SortOrder.newest_first, limit=config.featured_limit,
        ),
        latest_offers=store.live_offers(now=now, limit=config.featured_limit),
    )
