from __future__ import annotations

from ..data_ingestion.config import DEFAULT_INGESTION_CONFIG
from .cache import SearchCache
from .config import DEFAULT_SEARCH_CONFIG
from .engine import SearchEngine
from .store import DataFrameStore

_store: DataFrameStore | None = None
_engine: SearchEngine | None = None


def _load() -> DataFrameStore:
    return DataFrameStore.from_csv(
        DEFAULT_INGESTION_CONFIG.markets_path,
        DEFAULT_INGESTION_CONFIG.offers_path,
    )


def get_store() -> DataFrameStore:
    """Return the in-memory market/offer store, loading it on first call."""
    global _store
    if _store is None:
        _store = _load()
    return _store


def get_engine() -> SearchEngine:
    """Return the process-wide engine over the default store."""
    global _engine
    if _engine is None:
        cache = (
            SearchCache(ttl=DEFAULT_SEARCH_CONFIG.cache_ttl)
            if DEFAULT_SEARCH_CONFIG.cache_enabled
            else None
        )
        _engine = SearchEngine(get_store(), DEFAULT_SEARCH_CONFIG, cache=cache)
    return _engine
