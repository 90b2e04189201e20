from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import pandas as pd

from .models import Market, MarketSummary, Offer

MARKET_COLUMNS: list[str] = [
    "id",
    "name",
    "city",
    "postal_code",
    "about_text",
    "is_active",
    "is_premium",
    "created_at",
    "slug",
    "location",
    "logo_url",
    "header_url",
]

OFFER_COLUMNS: list[str] = [
    "id",
    "market_id",
    "product_name",
    "description",
    "price",
    "original_price",
    "image_url",
    "status",
    "expires_at",
    "created_at",
]

_MARKET_TEXT_COLUMNS = ("name", "city", "postal_code", "about_text", "slug", "location", "logo_url", "header_url")
_OFFER_TEXT_COLUMNS = ("product_name", "description", "price", "original_price", "image_url", "status")


class SortOrder(str, Enum):
    premium_first = "premium_first"
    newest_first = "newest_first"
    name = "name"


@runtime_checkable
class Store(Protocol):
    """Read-only market/offer record store consumed by the engine.

    Every market lookup only returns active markets. ``offers_by_text`` only
    returns live offers that expire after ``now`` and carry their owning
    market as ``Offer.market``.
    """

    def markets_by_postal_prefix(
        self, prefix: str, *, limit: int, order: SortOrder = SortOrder.premium_first,
    ) -> list[Market]:
        ...

    def markets_by_city(
        self, city: str, *, limit: int, order: SortOrder = SortOrder.premium_first,
    ) -> list[Market]:
        ...

    def markets_by_name(
        self,
        text: str,
        *,
        postal_prefix: str | None = None,
        city: str | None = None,
        limit: int,
        order: SortOrder = SortOrder.premium_first,
    ) -> list[Market]:
        ...

    def offers_by_text(
        self,
        text: str,
        *,
        now: datetime,
        postal_prefix: str | None = None,
        city: str | None = None,
        limit: int,
        order: SortOrder = SortOrder.newest_first,
    ) -> list[Offer]:
        ...

    def active_markets(self, *, order: SortOrder | None = None, limit: int | None = None) -> list[Market]:
        ...

    def live_offers(self, *, now: datetime, limit: int | None = None) -> list[Offer]:
        ...


# ── pandas-backed store ──────────────────────────────────────────────────


def _lower(series: pd.Series) -> pd.Series:
    # Same normalisation as normalizer.normalize_text, vectorised.
    return series.fillna("").astype(str).str.strip().str.lower()


def _to_bool(value: Any, default: bool = False) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "t")
    if pd.isna(value):
        return default
    return bool(value)


def _clean(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.to_pydatetime()
    if isinstance(value, float) and pd.isna(value):
        return None
    return value


def _text_or_none(value: Any) -> str | None:
    value = _clean(value)
    if value is None:
        return None
    value = str(value)
    return value if value.strip() else None


def _prepare_markets(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    for col in MARKET_COLUMNS:
        if col not in df.columns:
            df[col] = pd.NA
    df = df[MARKET_COLUMNS].reset_index(drop=True)

    df["id"] = df["id"].astype(str)
    for col in _MARKET_TEXT_COLUMNS:
        df[col] = df[col].astype("string").fillna("").astype(object)
    # CSV round-trips can drop leading zeros, e.g. 01067 -> 1067
    postal = df["postal_code"].str.strip().str.replace(r"\.0$", "", regex=True)
    postal = postal.where(~postal.str.fullmatch(r"[0-9]{1,4}"), postal.str.zfill(5))
    df["postal_code"] = postal.where(postal.str.fullmatch(r"[0-9]{5}"), "")
    df["is_active"] = df["is_active"].apply(_to_bool, default=True).astype(bool)
    df["is_premium"] = df["is_premium"].apply(_to_bool).astype(bool)
    df["created_at"] = pd.to_datetime(df["created_at"], utc=True, errors="coerce")

    df["name_lower"] = _lower(df["name"])
    df["city_lower"] = _lower(df["city"])
    return df


def _prepare_offers(df: pd.DataFrame, markets: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    for col in OFFER_COLUMNS:
        if col not in df.columns:
            df[col] = pd.NA
    df = df[OFFER_COLUMNS].reset_index(drop=True)

    df["id"] = df["id"].astype(str)
    df["market_id"] = df["market_id"].astype(str)
    for col in _OFFER_TEXT_COLUMNS:
        df[col] = df[col].astype("string").fillna("").astype(object)
    df["status"] = df["status"].str.strip().str.lower()
    df["expires_at"] = pd.to_datetime(df["expires_at"], utc=True, errors="coerce")
    df["created_at"] = pd.to_datetime(df["created_at"], utc=True, errors="coerce")

    df["product_lower"] = _lower(df["product_name"])
    df["description_lower"] = _lower(df["description"])

    joined = markets.drop_duplicates("id")[["id", "name", "city", "postal_code", "is_active", "city_lower"]].rename(
        columns=lambda c: f"market_{c}"
    )
    # Left join keeps offer order; orphans get empty market columns.
    df = df.merge(joined, how="left", on="market_id", sort=False)
    df["market_found"] = df["market_name"].notna()
    df["market_is_active"] = df["market_is_active"].apply(_to_bool).astype(bool)
    df["market_city_lower"] = df["market_city_lower"].fillna("")
    df["market_postal_code"] = df["market_postal_code"].fillna("")
    return df


def _order(df: pd.DataFrame, order: SortOrder | None) -> pd.DataFrame:
    if order == SortOrder.premium_first:
        return df.sort_values("is_premium", ascending=False, kind="stable")
    if order == SortOrder.newest_first:
        return df.sort_values("created_at", ascending=False, kind="stable", na_position="last")
    if order == SortOrder.name:
        return df.sort_values("name_lower", kind="stable")
    return df


def _head(df: pd.DataFrame, limit: int | None) -> pd.DataFrame:
    return df if limit is None else df.head(limit)


class DataFrameStore:
    """In-memory ``Store`` over a markets frame and an offers frame.

    Row order of the frames is the store's natural query order; all sorts are
    stable so equal keys keep it.
    """

    def __init__(self, markets: pd.DataFrame, offers: pd.DataFrame | None = None) -> None:
        self._markets = _prepare_markets(markets)
        if offers is None:
            offers = pd.DataFrame(columns=OFFER_COLUMNS)
        self._offers = _prepare_offers(offers, self._markets)

    @classmethod
    def from_csv(cls, markets_path: Path, offers_path: Path | None = None) -> "DataFrameStore":
        markets = pd.read_csv(markets_path, dtype={"id": str, "postal_code": str})
        offers = None
        if offers_path is not None and offers_path.exists():
            offers = pd.read_csv(offers_path, dtype={"id": str, "market_id": str})
        return cls(markets, offers)

    @classmethod
    def from_records(
        cls,
        markets: list[dict[str, Any]],
        offers: list[dict[str, Any]] | None = None,
    ) -> "DataFrameStore":
        offers_df = pd.DataFrame(offers, columns=OFFER_COLUMNS) if offers else None
        return cls(pd.DataFrame(markets, columns=MARKET_COLUMNS), offers_df)

    # ── row conversion ──

    @staticmethod
    def _market(row: dict[str, Any]) -> Market:
        return Market(
            id=row["id"],
            name=row["name"],
            city=row["city"],
            postal_code=_text_or_none(row["postal_code"]),
            about_text=_text_or_none(row["about_text"]),
            is_active=row["is_active"],
            is_premium=row["is_premium"],
            created_at=_clean(row["created_at"]),
            slug=_text_or_none(row["slug"]),
            location=_text_or_none(row["location"]),
            logo_url=_text_or_none(row["logo_url"]),
            header_url=_text_or_none(row["header_url"]),
        )

    @staticmethod
    def _offer(row: dict[str, Any]) -> Offer:
        market = None
        if row["market_found"]:
            market = MarketSummary(
                id=row["market_id"],
                name=_text_or_none(row["market_name"]) or "",
                city=_text_or_none(row["market_city"]) or "",
                postal_code=_text_or_none(row["market_postal_code"]),
                is_active=row["market_is_active"],
            )
        return Offer(
            id=row["id"],
            market_id=row["market_id"],
            product_name=row["product_name"],
            description=_text_or_none(row["description"]),
            price=row["price"],
            original_price=_text_or_none(row["original_price"]),
            image_url=_text_or_none(row["image_url"]),
            status=row["status"] or "draft",
            expires_at=_clean(row["expires_at"]),
            created_at=_clean(row["created_at"]),
            market=market,
        )

    def _markets_out(self, df: pd.DataFrame) -> list[Market]:
        return [self._market(r) for r in df.to_dict("records")]

    def _offers_out(self, df: pd.DataFrame) -> list[Offer]:
        return [self._offer(r) for r in df.to_dict("records")]

    # ── filters ──

    def _active(self) -> pd.DataFrame:
        # Rows without a timestamp cannot be ranked; drop them before any limit.
        df = self._markets
        return df[df["is_active"] & df["created_at"].notna()]

    @staticmethod
    def _locality_mask(
        postal: pd.Series, city_lower: pd.Series, postal_prefix: str | None, city: str | None,
    ) -> pd.Series:
        if postal_prefix is not None:
            return postal.str.startswith(postal_prefix)
        if city is not None:
            return city_lower.str.contains(city.strip().lower(), regex=False)
        return pd.Series(True, index=postal.index)

    def markets_by_postal_prefix(
        self, prefix: str, *, limit: int, order: SortOrder = SortOrder.premium_first,
    ) -> list[Market]:
        df = self._active()
        df = df[df["postal_code"].str.startswith(prefix)]
        return self._markets_out(_head(_order(df, order), limit))

    def markets_by_city(
        self, city: str, *, limit: int, order: SortOrder = SortOrder.premium_first,
    ) -> list[Market]:
        df = self._active()
        df = df[df["city_lower"].str.contains(city.strip().lower(), regex=False)]
        return self._markets_out(_head(_order(df, order), limit))

    def markets_by_name(
        self,
        text: str,
        *,
        postal_prefix: str | None = None,
        city: str | None = None,
        limit: int,
        order: SortOrder = SortOrder.premium_first,
    ) -> list[Market]:
        df = self._active()
        mask = df["name_lower"].str.contains(text.strip().lower(), regex=False)
        mask &= self._locality_mask(df["postal_code"], df["city_lower"], postal_prefix, city)
        return self._markets_out(_head(_order(df[mask], order), limit))

    def offers_by_text(
        self,
        text: str,
        *,
        now: datetime,
        postal_prefix: str | None = None,
        city: str | None = None,
        limit: int,
        order: SortOrder = SortOrder.newest_first,
    ) -> list[Offer]:
        df = self._visible_offers(now)
        needle = text.strip().lower()
        mask = df["product_lower"].str.contains(needle, regex=False) | df[
            "description_lower"
        ].str.contains(needle, regex=False)
        mask &= self._locality_mask(df["market_postal_code"], df["market_city_lower"], postal_prefix, city)
        return self._offers_out(_head(_order(df[mask], order), limit))

    def _visible_offers(self, now: datetime) -> pd.DataFrame:
        df = self._offers
        ts = pd.Timestamp(now)
        ts = ts.tz_localize("UTC") if ts.tzinfo is None else ts.tz_convert("UTC")
        mask = (
            (df["status"] == "live")
            & (df["expires_at"] > ts)
            & df["created_at"].notna()
            & df["market_is_active"]
        )
        return df[mask]

    def active_markets(self, *, order: SortOrder | None = None, limit: int | None = None) -> list[Market]:
        return self._markets_out(_head(_order(self._active(), order), limit))

    def live_offers(self, *, now: datetime, limit: int | None = None) -> list[Offer]:
        df = _order(self._visible_offers(now), SortOrder.newest_first)
        return self._offers_out(_head(df, limit))
