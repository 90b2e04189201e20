from __future__ import annotations

from collections import Counter
from typing import Any

from .store import EVENT_SEARCH, EVENT_SUGGEST


def _rate(part: int, total: int) -> float:
    return round(part / total * 100, 1) if total else 0.0


def _top(counter: Counter[str], n: int = 10) -> list[dict[str, Any]]:
    return [{"name": name, "count": count} for name, count in counter.most_common(n)]


def compute_analytics(events: list[dict[str, Any]]) -> dict[str, Any]:
    searches = [e for e in events if e["type"] == EVENT_SEARCH]
    suggests = [e for e in events if e["type"] == EVENT_SUGGEST]
    total = len(searches)

    # Average response time
    times = [s["response_time_ms"] for s in searches if "response_time_ms" in s]
    avg_time = round(sum(times) / len(times), 1) if times else 0.0

    city_counter: Counter[str] = Counter()
    region_counter: Counter[str] = Counter()
    query_counter: Counter[str] = Counter()
    type_counter: Counter[str] = Counter()
    for s in searches:
        if s.get("city"):
            city_counter[s["city"].lower()] += 1
        if s.get("region_prefix"):
            region_counter[s["region_prefix"]] += 1
        if s.get("query"):
            query_counter[s["query"].lower()] += 1
        type_counter[s.get("search_type", "all")] += 1

    # Criteria usage rates
    criteria_counts = {"query": 0, "city": 0, "postal_code": 0}
    for s in searches:
        for key in criteria_counts:
            if s.get(key):
                criteria_counts[key] += 1

    no_criteria = sum(1 for s in searches if s.get("outcome") == "no_criteria")
    unavailable = sum(1 for s in searches if s.get("outcome") == "unavailable")
    zero_results = sum(
        1 for s in searches if s.get("outcome") == "ok" and s.get("total_results", 0) == 0
    )
    partial = sum(1 for s in searches if s.get("partial"))

    failed_counter: Counter[str] = Counter()
    for s in searches:
        for name in s.get("failed_lookups", []) or []:
            failed_counter[name] += 1

    cache_hits = sum(1 for s in searches if s.get("cache_hit"))

    return {
        "total_searches": total,
        "total_suggestions": len(suggests),
        "avg_response_time_ms": avg_time,
        "top_cities": _top(city_counter),
        "top_regions": _top(region_counter),
        "top_queries": _top(query_counter),
        "search_types": dict(type_counter),
        "criteria_usage": {k: _rate(v, total) for k, v in criteria_counts.items()},
        "outcomes": {
            "no_criteria": no_criteria,
            "zero_results": zero_results,
            "unavailable": unavailable,
            "zero_result_rate": _rate(zero_results, total),
        },
        "degraded": {
            "partial": partial,
            "partial_rate": _rate(partial, total),
            "failed_lookups": dict(failed_counter),
        },
        "cache_stats": {
            "hits": cache_hits,
            "misses": total - cache_hits,
            "hit_rate": _rate(cache_hits, total),
        },
    }
