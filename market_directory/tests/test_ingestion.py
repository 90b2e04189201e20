from pathlib import Path

import pandas as pd

from market_directory.data_ingestion.config import IngestionConfig
from market_directory.data_ingestion.ingest import normalize_markets, normalize_offers, run_ingestion
from market_directory.search.store import MARKET_COLUMNS, OFFER_COLUMNS, DataFrameStore


def _write_raw(raw_dir: Path) -> None:
    raw_dir.mkdir(parents=True)
    pd.DataFrame([
        {"id": "m1", "name": "Oliven Handel", "city": "Frankfurt am Main", "zip_code": "60311",
         "is_premium": "true", "is_active": "true", "created_at": "2025-03-01T09:00:00Z"},
        {"id": "m2", "name": "Sachsen Markt", "city": "Dresden", "zip_code": "1067",
         "is_premium": "false", "is_active": "false", "created_at": "2025-04-01T09:00:00Z"},
        {"id": "m3", "name": "Kaputt", "city": "Berlin", "zip_code": "ABCDE",
         "is_premium": "", "is_active": "", "created_at": "2025-05-01T09:00:00Z"},
        {"id": "m4", "name": "", "city": "Berlin", "zip_code": "10115",
         "is_premium": "", "is_active": "true", "created_at": "2025-05-01T09:00:00Z"},
    ]).to_csv(raw_dir / "markets.csv", index=False)
    pd.DataFrame([
        {"id": "o1", "market_id": "m1", "product_name": "Kalamata Oliven", "price": "3,49 €",
         "status": "LIVE", "expires_at": "2099-01-01T00:00:00Z", "created_at": "2025-08-01T00:00:00Z"},
        {"id": "o2", "market_id": "m1", "product_name": "Feta", "price": "2,99 €",
         "status": "unknown", "expires_at": "2099-01-01T00:00:00Z", "created_at": "2025-08-01T00:00:00Z"},
        {"id": "o3", "market_id": "m1", "product_name": "Brot", "price": "1 €",
         "status": "live", "expires_at": "", "created_at": "2025-08-01T00:00:00Z"},
    ]).to_csv(raw_dir / "offers.csv", index=False)


def test_run_ingestion_writes_canonical_files(tmp_path: Path):
    cfg = IngestionConfig(
        raw_data_dir=tmp_path / "raw",
        processed_data_dir=tmp_path / "processed",
    )
    _write_raw(cfg.raw_data_dir)

    output_path = run_ingestion(config=cfg)

    assert output_path.is_file(), "Processed markets CSV should be created"
    markets = pd.read_csv(cfg.markets_path, dtype={"postal_code": str})
    offers = pd.read_csv(cfg.offers_path)
    assert list(markets.columns) == MARKET_COLUMNS
    assert list(offers.columns) == OFFER_COLUMNS
    assert list(markets["id"]) == ["m1", "m2", "m3"]
    assert list(offers["id"]) == ["o1", "o2"]

    store = DataFrameStore.from_csv(cfg.markets_path, cfg.offers_path)
    assert [m.id for m in store.markets_by_postal_prefix("60", limit=5)] == ["m1"]


def test_normalize_markets_cleans_fields():
    raw = pd.DataFrame([
        {"id": "m1", "name": " A ", "zip_code": "1067", "created_at": "2025-01-01"},
        {"id": "m2", "name": "B", "zip_code": "6031x", "is_active": "false", "created_at": "2025-01-01"},
    ])
    out = normalize_markets(raw)
    assert out.loc[0, "name"] == "A"
    assert out.loc[0, "postal_code"] == "01067"
    assert out.loc[0, "is_active"]
    assert pd.isna(out.loc[1, "postal_code"])
    assert not out.loc[1, "is_active"]


def test_normalize_offers_defaults_unknown_status_to_draft():
    raw = pd.DataFrame([
        {"id": "o1", "market_id": "m1", "name": "Honig", "status": "archived",
         "expires_at": "2099-01-01", "created_at": "2025-01-01"},
    ])
    out = normalize_offers(raw)
    assert out.loc[0, "product_name"] == "Honig"
    assert out.loc[0, "status"] == "draft"
