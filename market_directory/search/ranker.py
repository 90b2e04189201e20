from __future__ import annotations

from .models import Market, Offer
from .partitioner import Partition


def rank_markets(markets: list[Market]) -> list[Market]:
    """Premium first, then newest first.

    Both passes are stable sorts, so markets with equal keys keep the order
    the store returned them in.
    """
    by_recency = sorted(markets, key=lambda m: m.created_at, reverse=True)
    return sorted(by_recency, key=lambda m: not m.is_premium)


def rank_offers(offers: list[Offer]) -> list[Offer]:
    # Offers carry no premium flag.
    return sorted(offers, key=lambda o: o.created_at, reverse=True)


def rank_partition(parts: Partition) -> Partition:
    ranked = Partition()
    for source, target in zip(parts.buckets(), ranked.buckets()):
        target.markets = rank_markets(source.markets)
        target.offers = rank_offers(source.offers)
    return ranked

