"""Configuration management via environment variables.

Reads from .env file (via pydantic-settings) with sensible defaults.
All values can be overridden via environment variables, e.g.

    LOAD_FACTOR_TOLERANCE_PTS=1.5
    CROSS_SOURCE_TOLERANCE_PCT=10
    MAX_WORKERS=8
"""

from decimal import Decimal

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    log_level: str = "INFO"

    # Fiscal-year column resolution
    header_scan_rows: int = 3
    adjacent_cell_window: int = 2

    # Loose "label ... number" text patterns: max characters between the two
    text_match_window: int = 50

    # Consistency validation (advisory only)
    load_factor_tolerance_pts: Decimal = Decimal("2.0")
    cargo_load_factor_tolerance_pts: Decimal = Decimal("2.0")
    cross_source_tolerance_pct: Decimal = Decimal("20")
    revenue_per_passenger_min: Decimal = Decimal("50")
    revenue_per_passenger_max: Decimal = Decimal("1000")

    # Per-year worker pool
    max_workers: int = 4

    external_aggregate_enabled: bool = True

    # .env files often carry quotes and trailing spaces around values
    @field_validator("log_level", mode="before")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip().strip('"').strip("'").strip().upper()
        return v

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


_config: Settings | None = None


def get_config() -> Settings:
    """Get or create the shared Settings singleton."""
    global _config
    if _config is None:
        _config = Settings()
    return _config
