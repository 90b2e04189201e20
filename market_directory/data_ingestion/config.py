from dataclasses import dataclass
from pathlib import Path

_DATA_DIR = Path(__file__).resolve().parent.parent / "data"


@dataclass(frozen=True)
class IngestionConfig:
    """
    Locations of the raw exports and the processed CSVs.
    """

    raw_data_dir: Path = _DATA_DIR / "raw"
    processed_data_dir: Path = _DATA_DIR / "processed"
    markets_filename: str = "markets.csv"
    offers_filename: str = "offers.csv"

    @property
    def raw_markets_path(self) -> Path:
        return self.raw_data_dir / self.markets_filename

    @property
    def raw_offers_path(self) -> Path:
        return self.raw_data_dir / self.offers_filename

    @property
    def markets_path(self) -> Path:
        return self.processed_data_dir / self.markets_filename

    @property
    def offers_path(self) -> Path:
        return self.processed_data_dir / self.offers_filename


DEFAULT_INGESTION_CONFIG = IngestionConfig()
