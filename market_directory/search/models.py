from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

_POSTAL_RE = re.compile(r"^[0-9]{5}$")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _check_postal_code(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if not _POSTAL_RE.match(value):
        raise ValueError(f"postal code must be exactly 5 digits, got {value!r}")
    return value


# ── Store records ────────────────────────────────────────────────────────


class Market(BaseModel):
    id: str = Field(..., min_length=1)
    name: str
    city: str = ""
    postal_code: str | None = None
    about_text: str | None = None
    is_active: bool = True
    is_premium: bool = False
    created_at: datetime
    slug: str | None = None
    location: str | None = None
    logo_url: str | None = None
    header_url: str | None = None

    @field_validator("postal_code")
    @classmethod
    def check_postal_code_format(cls, value: str | None) -> str | None:
        return _check_postal_code(value)

    @field_validator("created_at")
    @classmethod
    def created_at_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


class MarketSummary(BaseModel):
    """The owning market as joined onto an offer row."""

    id: str
    name: str = ""
    city: str = ""
    postal_code: str | None = None
    is_active: bool = True

    @field_validator("postal_code")
    @classmethod
    def check_postal_code_format(cls, value: str | None) -> str | None:
        return _check_postal_code(value)


class OfferStatus(str, Enum):
    draft = "draft"
    live = "live"
    expired = "expired"


class Offer(BaseModel):
    id: str = Field(..., min_length=1)
    market_id: str
    product_name: str
    description: str | None = None
    price: str = ""
    original_price: str | None = None
    image_url: str | None = None
    status: OfferStatus = OfferStatus.draft
    expires_at: datetime
    created_at: datetime
    market: MarketSummary | None = None

    @field_validator("expires_at", "created_at")
    @classmethod
    def timestamps_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)

    def is_search_visible(self, now: datetime) -> bool:
        """Live, not yet expired, and owned by an active market."""
        return (
            self.status == OfferStatus.live
            and self.expires_at > now
            and self.market is not None
            and self.market.is_active
        )


# ── Search intent ────────────────────────────────────────────────────────


class SearchType(str, Enum):
    all = "all"
    markets = "markets"
    offers = "offers"


class SearchIntent(BaseModel):
    model_config = ConfigDict(frozen=True)

    query: str | None = None
    city: str | None = None
    postal_code: str | None = None
    region_prefix: str | None = None
    search_type: SearchType = SearchType.all

    @property
    def uses_postal(self) -> bool:
        """Postal searches need a region prefix; shorter codes fall back to city."""
        return self.region_prefix is not None

    @property
    def has_locality(self) -> bool:
        return self.uses_postal or self.city is not None

    @property
    def has_criteria(self) -> bool:
        return (
            self.query is not None
            or self.city is not None
            or self.postal_code is not None
        )


# ── Results ──────────────────────────────────────────────────────────────


class TierName(str, Enum):
    exact_locality = "exact_locality"
    expanded_region = "expanded_region"
    name_match = "name_match"
    detached_offers = "detached_offers"


TIER_ORDER: tuple[TierName, ...] = (
    TierName.exact_locality,
    TierName.expanded_region,
    TierName.name_match,
    TierName.detached_offers,
)


class ResultTier(BaseModel):
    name: TierName
    markets: list[Market] = Field(default_factory=list)
    offers: list[Offer] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def count(self) -> int:
        return len(self.markets) + len(self.offers)


class SearchResult(BaseModel):
    exact_locality: ResultTier
    expanded_region: ResultTier
    name_match: ResultTier
    detached_offers: ResultTier
    total_markets: int
    total_offers: int
    total_results: int
    has_results: bool
    failed_lookups: list[str] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def partial(self) -> bool:
        return bool(self.failed_lookups)

    def tiers(self) -> list[ResultTier]:
        return [getattr(self, name.value) for name in TIER_ORDER]


class SuggestionMode(str, Enum):
    markets = "markets"
    offers = "offers"


class Suggestions(BaseModel):
    mode: SuggestionMode
    markets: list[Market] = Field(default_factory=list)
    offers: list[Offer] = Field(default_factory=list)


class CityOption(BaseModel):
    city: str
    postal_code: str
    label: str


class FeaturedResponse(BaseModel):
    premium_markets: list[Market]
    newest_markets: list[Market]
    latest_offers: list[Offer]
