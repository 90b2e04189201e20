from __future__ import annotations

from fastapi import Depends, FastAPI, HTTPException, Query

from .analytics.aggregator import compute_analytics
from .analytics.store import get_events
from .search.data_store import get_engine
from .search.directory import available_cities, featured, list_markets, suggest
from .search.engine import SearchEngine
from .search.errors import EngineUnavailable, InputError
from .search.models import (
    FeaturedResponse,
    Market,
    SearchResult,
    SearchType,
    SuggestionMode,
    Suggestions,
)

app = FastAPI(title="Market Directory Search API", version="1.0.0")


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/metadata")
def metadata(engine: SearchEngine = Depends(get_engine)) -> dict:
    cities = available_cities(engine.store)
    return {
        "cities": [c.model_dump() for c in cities],
        "search_types": [t.value for t in SearchType],
    }


@app.get("/search", response_model=SearchResult)
def search(
    q: str | None = Query(default=None, max_length=200),
    city: str | None = Query(default=None, max_length=100),
    plz: str | None = Query(default=None, max_length=10),
    type: SearchType = Query(default=SearchType.all),
    engine: SearchEngine = Depends(get_engine),
) -> SearchResult:
    try:
        return engine.search(query=q, city=city, postal_code=plz, search_type=type)
    except InputError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except EngineUnavailable as exc:
        raise HTTPException(status_code=503, detail="Search is temporarily unavailable") from exc


@app.get("/suggest", response_model=Suggestions)
def suggestions(
    mode: SuggestionMode,
    q: str | None = Query(default=None, max_length=200),
    engine: SearchEngine = Depends(get_engine),
) -> Suggestions:
    return suggest(engine.store, mode, q, now=engine.clock(), config=engine.config)


@app.get("/markets", response_model=list[Market])
def markets(
    q: str | None = Query(default=None, max_length=200),
    city: str | None = Query(default=None, max_length=100),
    premium_only: bool = False,
    new_only: bool = False,
    engine: SearchEngine = Depends(get_engine),
) -> list[Market]:
    return list_markets(
        engine.store,
        now=engine.clock(),
        query=q,
        city=city,
        premium_only=premium_only,
        new_only=new_only,
        new_days=engine.config.directory_new_days,
    )


@app.get("/featured", response_model=FeaturedResponse)
def featured_listing(engine: SearchEngine = Depends(get_engine)) -> FeaturedResponse:
    return featured(engine.store, now=engine.clock(), config=engine.config)


# ── Operator endpoints ───────────────────────────────────────────────────


@app.get("/analytics")
def analytics() -> dict:
    return compute_analytics(get_events())


@app.get("/cache/stats")
def cache_stats(engine: SearchEngine = Depends(get_engine)) -> dict:
    if engine.cache is None:
        return {"enabled": False}
    return {"enabled": True, **engine.cache.stats()}
