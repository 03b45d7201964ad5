"""
Stock Ledger Configuration
Core settings for the stock ledger reconciliation service
"""
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings"""

    # Application Info
    APP_NAME: str = "Stock Ledger Reconciliation API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Database Configuration
    DATABASE_URL: str = "postgresql://stock_ledger@localhost:5432/stock_ledger"
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 20

    # CORS
    CORS_ORIGINS: list = [
        "http://localhost:3000",
        "http://localhost:5173",  # Vite dev server
    ]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = False
    LOG_DIR: Path = Path("logs")
    LOG_FILE: str = "app.log"
    ERROR_LOG_FILE: str = "error.log"

    # Numeric Precision
    QUANTITY_DECIMAL_PLACES: int = 3
    RATIO_DECIMAL_PLACES: int = 2

    # Batch Processing
    BATCH_SIZE: int = 1000

    # API Configuration
    API_V1_STR: str = "/api/v1"
    DOCS_URL: str = "/docs"
    OPENAPI_URL: str = "/openapi.json"

    # Reconciliation Business Rules
    # Provisional defaults carried over from the ERP front-end; every value
    # is overridable from the environment.
    INTEGRITY_EPSILON: Decimal = Decimal("0.01")
    BUFFER_DAYS: int = 30
    CRITICAL_STOCK_FRACTION: Decimal = Decimal("0.5")
    URGENCY_CRITICAL_DAYS: Decimal = Decimal("1")
    URGENCY_HIGH_DAYS: Decimal = Decimal("7")
    URGENCY_MEDIUM_DAYS: Decimal = Decimal("30")
    CONSUMPTION_WINDOW_DAYS: int = 30
    TURNOVER_WINDOW_DAYS: int = 90
    TURNOVER_FAST_RATIO: Decimal = Decimal("2.0")
    TURNOVER_MEDIUM_RATIO: Decimal = Decimal("0.5")
    DEFAULT_UNIT_COST: Decimal = Decimal("100")
    # ABC cut-offs are cumulative shares of stock value, in percent
    ABC_A_CUTOFF: Decimal = Decimal("80")
    ABC_B_CUTOFF: Decimal = Decimal("95")
    DEAD_STOCK_MIN_DAYS: int = 90
    DEAD_STOCK_REVIEW_DAYS: int = 120
    DEAD_STOCK_LIQUIDATE_DAYS: int = 180
    DEAD_STOCK_DISPOSE_DAYS: int = 365

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)

    @field_validator("LOG_DIR", mode="before")
    @classmethod
    def coerce_log_dir(cls, v):
        """Accept plain strings for the log directory"""
        return Path(v) if isinstance(v, str) else v

    @field_validator("CONSUMPTION_WINDOW_DAYS", "TURNOVER_WINDOW_DAYS", "BATCH_SIZE")
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        """Windows and batch sizes are divisors and page sizes"""
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @field_validator("INTEGRITY_EPSILON", "BUFFER_DAYS", "DEFAULT_UNIT_COST",
                     "ABC_A_CUTOFF", "ABC_B_CUTOFF")
    @classmethod
    def must_not_be_negative(cls, v):
        if v < 0:
            raise ValueError("must not be negative")
        return v


def _default(name: str):
    return Settings.model_fields[name].default


@dataclass(frozen=True)
class BusinessRules:
    """
    Business constants used by the reconciliation calculations

    Built once from Settings and handed to the pure calculation functions,
    so none of them read global configuration. Field defaults are the
    Settings defaults.
    """
    integrity_epsilon: Decimal = _default("INTEGRITY_EPSILON")
    buffer_days: int = _default("BUFFER_DAYS")
    critical_stock_fraction: Decimal = _default("CRITICAL_STOCK_FRACTION")
    urgency_critical_days: Decimal = _default("URGENCY_CRITICAL_DAYS")
    urgency_high_days: Decimal = _default("URGENCY_HIGH_DAYS")
    urgency_medium_days: Decimal = _default("URGENCY_MEDIUM_DAYS")
    consumption_window_days: int = _default("CONSUMPTION_WINDOW_DAYS")
    turnover_window_days: int = _default("TURNOVER_WINDOW_DAYS")
    turnover_fast_ratio: Decimal = _default("TURNOVER_FAST_RATIO")
    turnover_medium_ratio: Decimal = _default("TURNOVER_MEDIUM_RATIO")
    default_unit_cost: Decimal = _default("DEFAULT_UNIT_COST")
    abc_a_cutoff: Decimal = _default("ABC_A_CUTOFF")
    abc_b_cutoff: Decimal = _default("ABC_B_CUTOFF")
    dead_stock_min_days: int = _default("DEAD_STOCK_MIN_DAYS")
    dead_stock_review_days: int = _default("DEAD_STOCK_REVIEW_DAYS")
    dead_stock_liquidate_days: int = _default("DEAD_STOCK_LIQUIDATE_DAYS")
    dead_stock_dispose_days: int = _default("DEAD_STOCK_DISPOSE_DAYS")
    quantity_places: int = _default("QUANTITY_DECIMAL_PLACES")
    ratio_places: int = _default("RATIO_DECIMAL_PLACES")

    @classmethod
    def from_settings(cls, source: Optional[Settings] = None) -> "BusinessRules":
        """Build the rule set from application settings"""
        s = source or settings
        return cls(
            integrity_epsilon=s.INTEGRITY_EPSILON,
            buffer_days=s.BUFFER_DAYS,
            critical_stock_fraction=s.CRITICAL_STOCK_FRACTION,
            urgency_critical_days=s.URGENCY_CRITICAL_DAYS,
            urgency_high_days=s.URGENCY_HIGH_DAYS,
            urgency_medium_days=s.URGENCY_MEDIUM_DAYS,
            consumption_window_days=s.CONSUMPTION_WINDOW_DAYS,
            turnover_window_days=s.TURNOVER_WINDOW_DAYS,
            turnover_fast_ratio=s.TURNOVER_FAST_RATIO,
            turnover_medium_ratio=s.TURNOVER_MEDIUM_RATIO,
            default_unit_cost=s.DEFAULT_UNIT_COST,
            abc_a_cutoff=s.ABC_A_CUTOFF,
            abc_b_cutoff=s.ABC_B_CUTOFF,
            dead_stock_min_days=s.DEAD_STOCK_MIN_DAYS,
            dead_stock_review_days=s.DEAD_STOCK_REVIEW_DAYS,
            dead_stock_liquidate_days=s.DEAD_STOCK_LIQUIDATE_DAYS,
            dead_stock_dispose_days=s.DEAD_STOCK_DISPOSE_DAYS,
            quantity_places=s.QUANTITY_DECIMAL_PLACES,
            ratio_places=s.RATIO_DECIMAL_PLACES,
        )

    @property
    def quantity_quantum(self) -> Decimal:
        return Decimal(1).scaleb(-self.quantity_places)

    @property
    def ratio_quantum(self) -> Decimal:
        return Decimal(1).scaleb(-self.ratio_places)


# Global settings instance
settings = Settings()

# Rules for callers that do not pass their own; follows environment overrides
DEFAULT_RULES = BusinessRules.from_settings(settings)
