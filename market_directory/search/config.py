from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# Region grouping follows German postal codes: the first two digits.
REGION_PREFIX_LENGTH = 2


@dataclass(frozen=True)
class SearchConfig:
    market_limit: int = 50
    name_limit: int = 20
    offer_limit: int = 50
    suggestion_limit: int = 5
    suggestion_min_length: int = 2
    featured_limit: int = 6
    directory_new_days: int = 30
    lookup_timeout: float = float(os.getenv("SEARCH_LOOKUP_TIMEOUT", "5.0"))
    max_workers: int = 4
    strict_postal_codes: bool = _env_bool("SEARCH_STRICT_POSTAL", False)
    cache_enabled: bool = _env_bool("SEARCH_CACHE_ENABLED", True)
    cache_ttl: int = int(os.getenv("SEARCH_CACHE_TTL", "300"))


DEFAULT_SEARCH_CONFIG = SearchConfig()
