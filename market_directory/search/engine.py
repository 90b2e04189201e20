from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable

from ..analytics.store import EVENT_SEARCH, record_event
from .aggregator import aggregate, empty_result
from .cache import SearchCache
from .config import DEFAULT_SEARCH_CONFIG, SearchConfig
from .errors import EngineUnavailable
from .models import SearchIntent, SearchResult, SearchType
from .normalizer import build_intent
from .partitioner import partition
from .ranker import rank_partition
from .resolver import LocalityResolver
from .store import Store

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _first_expiry(result: SearchResult) -> datetime | None:
    """Earliest offer expiry in the result; the result is stale from then on."""
    expiries = [offer.expires_at for tier in result.tiers() for offer in tier.offers]
    return min(expiries, default=None)


class SearchEngine:
    """
    Stateless regional search over an injected ``Store``.

    Normalizer -> LocalityResolver -> partition -> rank -> aggregate. Safe to
    share between threads; nothing request-scoped is kept on the instance.
    """

    def __init__(
        self,
        store: Store,
        config: SearchConfig = DEFAULT_SEARCH_CONFIG,
        cache: SearchCache | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.config = config
        self.cache = cache
        self.clock = clock
        self._resolver = LocalityResolver(store, config)

    def search(
        self,
        query: str | None = None,
        city: str | None = None,
        postal_code: str | None = None,
        search_type: SearchType | str = SearchType.all,
    ) -> SearchResult:
        start_time = time.time()
        intent = build_intent(
            query, city, postal_code,
            search_type=search_type,
            strict=self.config.strict_postal_codes,
        )

        if not intent.has_criteria:
            result = empty_result()
            self._record(intent, result, start_time, outcome="no_criteria")
            return result

        now = self.clock()
        if self.cache is not None:
            cached = self.cache.get(intent, now=now)
            if cached is not None:
                self._record(intent, cached, start_time, cache_hit=True)
                return cached.model_copy(deep=True)

        candidates = self._resolver.resolve(intent, now)
        if candidates.all_failed:
            logger.error(
                "Search unavailable, every lookup failed: %s", ", ".join(candidates.failed)
            )
            self._record(intent, None, start_time, outcome="unavailable",
                         failed_lookups=candidates.failed)
            raise EngineUnavailable(candidates.failed)

        ranked = rank_partition(partition(intent, candidates))
        result = aggregate(ranked, failed_lookups=candidates.failed)

        if self.cache is not None and not result.partial:
            self.cache.set(intent, result.model_copy(deep=True), valid_until=_first_expiry(result))

        self._record(intent, result, start_time)
        return result

    def _record(
        self,
        intent: SearchIntent,
        result: SearchResult | None,
        start_time: float,
        outcome: str = "ok",
        cache_hit: bool = False,
        failed_lookups: list[str] | None = None,
    ) -> None:
        elapsed_ms = round((time.time() - start_time) * 1000, 1)
        data = {
            "query": intent.query,
            "city": intent.city,
            "postal_code": intent.postal_code,
            "region_prefix": intent.region_prefix,
            "search_type": intent.search_type.value,
            "outcome": outcome,
            "response_time_ms": elapsed_ms,
            "cache_hit": cache_hit,
            "total_results": 0,
            "tier_counts": {},
            "failed_lookups": list(failed_lookups or []),
            "partial": False,
        }
        if result is not None:
            data.update({
                "total_results": result.total_results,
                "tier_counts": {t.name.value: t.count for t in result.tiers()},
                "failed_lookups": list(result.failed_lookups),
                "partial": result.partial,
            })
        record_event(EVENT_SEARCH, data)
