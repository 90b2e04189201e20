from __future__ import annotations

from dataclasses import dataclass, field

from .models import Market, MarketSummary, Offer, SearchIntent, TierName
from .normalizer import normalize_text
from .resolver import Candidates


@dataclass
class TierBucket:
    name: TierName
    markets: list[Market] = field(default_factory=list)
    offers: list[Offer] = field(default_factory=list)


@dataclass
class Partition:
    exact_locality: TierBucket = field(default_factory=lambda: TierBucket(TierName.exact_locality))
    expanded_region: TierBucket = field(default_factory=lambda: TierBucket(TierName.expanded_region))
    name_match: TierBucket = field(default_factory=lambda: TierBucket(TierName.name_match))
    detached_offers: TierBucket = field(default_factory=lambda: TierBucket(TierName.detached_offers))

    def buckets(self) -> list[TierBucket]:
        return [self.exact_locality, self.expanded_region, self.name_match, self.detached_offers]


def matches_exact(postal_code: str | None, city: str | None, intent: SearchIntent) -> bool:
    """Exact postal code for postal searches, otherwise the city scope.

    The city scope is the same case-insensitive containment the city lookup
    uses, so "Frankfurt" covers "Frankfurt am Main".
    """
    if intent.uses_postal:
        return postal_code is not None and postal_code == intent.postal_code
    if intent.city is not None:
        return normalize_text(intent.city) in normalize_text(city)
    return False


def matches_region(postal_code: str | None, intent: SearchIntent) -> bool:
    if not intent.uses_postal or postal_code is None:
        return False
    return postal_code.startswith(intent.region_prefix) and postal_code != intent.postal_code


def _locality_of(market: Market | MarketSummary | None) -> tuple[str | None, str | None]:
    if market is None:
        return None, None
    return market.postal_code, market.city


def partition(intent: SearchIntent, candidates: Candidates) -> Partition:
    """
    Split raw candidates into mutually exclusive tiers.

    Priority is exact locality, expanded region, name match, detached
    offers; an id placed in an earlier tier is skipped by every later one.
    Market ids and offer ids are deduplicated independently.
    """
    result = Partition()
    placed_markets: set[str] = set()
    placed_offers: set[str] = set()

    # Tiers 1-2 are decided by locality criteria, whichever lookup found the market.
    for market in candidates.locality_markets + candidates.name_markets:
        if market.id in placed_markets:
            continue
        if matches_exact(market.postal_code, market.city, intent):
            result.exact_locality.markets.append(market)
            placed_markets.add(market.id)
        elif matches_region(market.postal_code, intent):
            result.expanded_region.markets.append(market)
            placed_markets.add(market.id)

    exact_ids = {m.id for m in result.exact_locality.markets}
    region_ids = {m.id for m in result.expanded_region.markets}

    for market in candidates.name_markets:
        if market.id in placed_markets:
            continue
        result.name_match.markets.append(market)
        placed_markets.add(market.id)

    for offer in candidates.text_offers:
        if offer.id in placed_offers:
            continue
        postal_code, city = _locality_of(offer.market)
        if offer.market_id in exact_ids or matches_exact(postal_code, city, intent):
            result.exact_locality.offers.append(offer)
        elif offer.market_id in region_ids or matches_region(postal_code, intent):
            result.expanded_region.offers.append(offer)
        elif intent.has_locality:
            # Outside the requested locality: not a result at all.
            continue
        else:
            result.detached_offers.offers.append(offer)
        placed_offers.add(offer.id)

    return result
