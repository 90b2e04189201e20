from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List

import pandas as pd

from ..search.store import MARKET_COLUMNS, OFFER_COLUMNS
from .config import DEFAULT_INGESTION_CONFIG, IngestionConfig

logger = logging.getLogger(__name__)

_POSTAL_RE = re.compile(r"^[0-9]{5}$")
_STATUSES = {"draft", "live", "expired"}


def _normalize_postal_code(value: object) -> str | None:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    raw = str(value).strip()
    # Numeric exports lose leading zeros and may gain a float suffix
    if raw.endswith(".0"):
        raw = raw[:-2]
    if raw.isdigit() and len(raw) < 5:
        raw = raw.zfill(5)
    if not _POSTAL_RE.match(raw):
        return None
    return raw


def _normalize_status(value: object) -> str:
    raw = str(value).strip().lower() if value is not None and not pd.isna(value) else ""
    return raw if raw in _STATUSES else "draft"


def _normalize_flag(value: object) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "t")
    if value is None or pd.isna(value):
        return False
    return bool(value)


def _first_present(df: pd.DataFrame, columns: List[str]) -> str | None:
    for col in columns:
        if col in df.columns:
            return col
    return None


def normalize_markets(raw: pd.DataFrame) -> pd.DataFrame:
    """Map a raw ``markets`` export onto the canonical market columns."""
    aliases = {
        "id": ["id", "market_id"],
        "name": ["name", "market_name"],
        "city": ["city", "ort"],
        "postal_code": ["postal_code", "zip_code", "plz"],
        "about_text": ["about_text", "about", "description"],
        "is_active": ["is_active", "active"],
        "is_premium": ["is_premium", "premium"],
        "created_at": ["created_at", "inserted_at"],
        "slug": ["slug"],
        "location": ["location", "address"],
        "logo_url": ["logo_url"],
        "header_url": ["header_url"],
    }

    canonical = pd.DataFrame(index=raw.index)
    for target, candidates in aliases.items():
        col = _first_present(raw, candidates)
        canonical[target] = raw[col] if col else pd.NA

    canonical["id"] = canonical["id"].astype(str)
    canonical["name"] = canonical["name"].fillna("").astype(str).str.strip()
    canonical["city"] = canonical["city"].fillna("").astype(str).str.strip()

    postal = canonical["postal_code"].apply(_normalize_postal_code)
    dropped = int((canonical["postal_code"].notna() & postal.isna()).sum())
    if dropped:
        logger.warning("Cleared %d malformed postal codes", dropped)
    canonical["postal_code"] = postal

    active = canonical["is_active"]
    canonical["is_active"] = active.apply(_normalize_flag).where(active.notna(), True)
    canonical["is_premium"] = canonical["is_premium"].apply(_normalize_flag)
    canonical["created_at"] = pd.to_datetime(canonical["created_at"], utc=True, errors="coerce")

    missing = canonical["created_at"].isna() | (canonical["name"] == "")
    if missing.any():
        logger.warning("Dropped %d markets without name or created_at", int(missing.sum()))
    return canonical.loc[~missing, MARKET_COLUMNS].reset_index(drop=True)


def normalize_offers(raw: pd.DataFrame) -> pd.DataFrame:
    """Map a raw ``offers`` export onto the canonical offer columns."""
    aliases = {
        "id": ["id", "offer_id"],
        "market_id": ["market_id"],
        "product_name": ["product_name", "name", "title"],
        "description": ["description"],
        "price": ["price"],
        "original_price": ["original_price"],
        "image_url": ["image_url"],
        "status": ["status"],
        "expires_at": ["expires_at"],
        "created_at": ["created_at", "inserted_at"],
    }

    canonical = pd.DataFrame(index=raw.index)
    for target, candidates in aliases.items():
        col = _first_present(raw, candidates)
        canonical[target] = raw[col] if col else pd.NA

    canonical["id"] = canonical["id"].astype(str)
    canonical["market_id"] = canonical["market_id"].astype(str)
    canonical["product_name"] = canonical["product_name"].fillna("").astype(str).str.strip()
    canonical["price"] = canonical["price"].fillna("").astype(str)
    canonical["status"] = canonical["status"].apply(_normalize_status)
    canonical["expires_at"] = pd.to_datetime(canonical["expires_at"], utc=True, errors="coerce")
    canonical["created_at"] = pd.to_datetime(canonical["created_at"], utc=True, errors="coerce")

    missing = (
        canonical["expires_at"].isna()
        | canonical["created_at"].isna()
        | (canonical["product_name"] == "")
    )
    if missing.any():
        logger.warning("Dropped %d offers without product name or timestamps", int(missing.sum()))
    return canonical.loc[~missing, OFFER_COLUMNS].reset_index(drop=True)


def run_ingestion(config: IngestionConfig = DEFAULT_INGESTION_CONFIG) -> Path:
    """
    Execute the ingestion pipeline.

    Steps:
    - Read raw market and offer exports (offers are optional).
    - Map raw fields into the canonical Market/Offer schema.
    - Persist cleaned data as CSV for the search store.
    """
    config.processed_data_dir.mkdir(parents=True, exist_ok=True)

    raw_markets = pd.read_csv(config.raw_markets_path, dtype=str)
    markets = normalize_markets(raw_markets)
    markets.to_csv(config.markets_path, index=False)

    if config.raw_offers_path.exists():
        raw_offers = pd.read_csv(config.raw_offers_path, dtype=str)
        offers = normalize_offers(raw_offers)
    else:
        offers = pd.DataFrame(columns=OFFER_COLUMNS)
    offers.to_csv(config.offers_path, index=False)

    logger.info("Ingested %d markets and %d offers", len(markets), len(offers))
    return config.markets_path


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    path = run_ingestion()
    print(f"Ingestion complete. Processed data saved to: {path}")
