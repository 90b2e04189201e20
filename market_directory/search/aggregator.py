from __future__ import annotations

from .models import ResultTier, SearchResult, TierName
from .partitioner import Partition


def empty_result(failed_lookups: list[str] | None = None) -> SearchResult:
    return aggregate(Partition(), failed_lookups)


def aggregate(parts: Partition, failed_lookups: list[str] | None = None) -> SearchResult:
    """Fold ranked tiers into the response: per-tier lists, counts and totals."""
    tiers = {
        bucket.name: ResultTier(name=bucket.name, markets=bucket.markets, offers=bucket.offers)
        for bucket in parts.buckets()
    }
    total_markets = sum(len(t.markets) for t in tiers.values())
    total_offers = sum(len(t.offers) for t in tiers.values())
    total_results = total_markets + total_offers

    return SearchResult(
        exact_locality=tiers[TierName.exact_locality],
        expanded_region=tiers[TierName.expanded_region],
        name_match=tiers[TierName.name_match],
        detached_offers=tiers[TierName.detached_offers],
        total_markets=total_markets,
        total_offers=total_offers,
        total_results=total_results,
        has_results=total_results > 0,
        failed_lookups=list(failed_lookups or []),
    )
