from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from .config import DEFAULT_SEARCH_CONFIG, SearchConfig
from .models import Market, Offer, SearchIntent, SearchType
from .store import SortOrder, Store

logger = logging.getLogger(__name__)

MARKET_BY_POSTAL = "market_by_postal"
MARKET_BY_CITY = "market_by_city"
MARKET_BY_NAME = "market_by_name"
OFFER_BY_TEXT = "offer_by_text"


@dataclass
class Candidates:
    """Raw lookup output: unranked and possibly overlapping."""

    postal_markets: list[Market] = field(default_factory=list)
    city_markets: list[Market] = field(default_factory=list)
    name_markets: list[Market] = field(default_factory=list)
    text_offers: list[Offer] = field(default_factory=list)
    issued: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def locality_markets(self) -> list[Market]:
        return self.postal_markets or self.city_markets

    @property
    def all_failed(self) -> bool:
        return bool(self.issued) and len(self.failed) == len(self.issued)


_TARGETS = {
    MARKET_BY_POSTAL: "postal_markets",
    MARKET_BY_CITY: "city_markets",
    MARKET_BY_NAME: "name_markets",
    OFFER_BY_TEXT: "text_offers",
}


class LocalityResolver:
    """Runs the tiered store lookups for one intent, concurrently.

    A lookup that raises or misses the deadline yields an empty candidate
    set and is reported in ``Candidates.failed``; siblings are unaffected.
    """

    def __init__(self, store: Store, config: SearchConfig = DEFAULT_SEARCH_CONFIG) -> None:
        self.store = store
        self.config = config

    def plan(self, intent: SearchIntent, now: datetime) -> dict[str, Callable[[], list]]:
        """Return the lookups this intent needs, keyed by lookup name."""
        cfg = self.config
        lookups: dict[str, Callable[[], list]] = {}

        postal_prefix = intent.region_prefix if intent.uses_postal else None
        city = None if intent.uses_postal else intent.city

        if postal_prefix is not None:
            lookups[MARKET_BY_POSTAL] = lambda: self.store.markets_by_postal_prefix(
                postal_prefix, limit=cfg.market_limit, order=SortOrder.premium_first,
            )
        elif city is not None:
            lookups[MARKET_BY_CITY] = lambda: self.store.markets_by_city(
                city, limit=cfg.market_limit, order=SortOrder.premium_first,
            )

        if intent.query is not None:
            query = intent.query
            if intent.search_type != SearchType.offers:
                lookups[MARKET_BY_NAME] = lambda: self.store.markets_by_name(
                    query,
                    postal_prefix=postal_prefix,
                    city=city,
                    limit=cfg.name_limit,
                    order=SortOrder.premium_first,
                )
            if intent.search_type != SearchType.markets:
                lookups[OFFER_BY_TEXT] = lambda: self.store.offers_by_text(
                    query,
                    now=now,
                    postal_prefix=postal_prefix,
                    city=city,
                    limit=cfg.offer_limit,
                    order=SortOrder.newest_first,
                )

        return lookups

    def resolve(self, intent: SearchIntent, now: datetime) -> Candidates:
        lookups = self.plan(intent, now)
        candidates = Candidates(issued=list(lookups))
        if not lookups:
            return candidates

        executor = ThreadPoolExecutor(
            max_workers=min(self.config.max_workers, len(lookups)),
            thread_name_prefix="lookup",
        )
        try:
            futures: dict[str, Future] = {
                name: executor.submit(fn) for name, fn in lookups.items()
            }
            wait(futures.values(), timeout=self.config.lookup_timeout)

            for name, future in futures.items():
                if not future.done():
                    future.cancel()
                    logger.warning(
                        "Lookup %s exceeded %.1fs deadline, treating as empty",
                        name, self.config.lookup_timeout,
                    )
                    candidates.failed.append(name)
                    continue
                try:
                    rows = future.result()
                except Exception:
                    logger.warning("Lookup %s failed, treating as empty", name, exc_info=True)
                    candidates.failed.append(name)
                    continue
                setattr(candidates, _TARGETS[name], list(rows))
        finally:
            # Do not block on a lookup that is still running past its deadline.
            executor.shutdown(wait=False, cancel_futures=True)

        # Post-fetch join filter for stores that cannot filter on the owning market.
        candidates.text_offers = [
            offer for offer in candidates.text_offers if offer.is_search_visible(now)
        ]
        return candidates
