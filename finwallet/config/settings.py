"""
Configuration Management for the wallet engine

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All thresholds used by the allocation, budget and alert
rules live here. Nothing in the engines hard-codes a number that a product
owner might want to tune.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Thresholds for the ledger, goal, budget and alert engines."""

    model_config = SettingsConfigDict(
        env_prefix="FINWALLET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Transaction ingestion rules
    large_transaction_threshold: Decimal = Field(
        default=Decimal("1000"),
        gt=0,
        description="Amount at or above which a transaction_large alert fires"
    )
    spending_pattern_threshold: Decimal = Field(
        default=Decimal("2000"),
        gt=0,
        description="Cumulative category spend above which spending_pattern fires"
    )
    spending_pattern_min_count: int = Field(
        default=3,
        ge=1,
        description="Minimum number of expenses in a category for spending_pattern"
    )
    saving_streak_ratio: Decimal = Field(
        default=Decimal("0.7"),
        gt=0,
        le=1,
        description="Month expenses must stay below income * ratio for saving_streak"
    )
    saving_streak_days: int = Field(
        default=30,
        ge=1,
        description="Streak length reported in saving_streak alerts"
    )

    # Budget monitor
    budget_warning_percentage: Decimal = Field(default=Decimal("80"), gt=0)
    budget_exceeded_percentage: Decimal = Field(default=Decimal("100"), gt=0)
    budget_controlled_percentage: Decimal = Field(default=Decimal("30"), ge=0)

    # Goal allocation
    goal_milestones: str = Field(
        default="25,50,75",
        description="Comma-separated progress percentages that trigger goal_milestone"
    )

    # Alerts
    dedup_window_hours: int = Field(
        default=24,
        ge=1,
        le=24 * 7,
        description="Rolling window in which identical alerts are suppressed"
    )
    alert_fetch_limit: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Maximum alerts returned for a wallet feed"
    )

    # Wallets
    max_wallets_per_user: int = Field(default=3, ge=1)
    default_wallet_name: str = Field(default="Main Wallet", min_length=1)

    # Insights
    category_trend_threshold: Decimal = Field(
        default=Decimal("20"),
        ge=0,
        description="Month-over-month change (%) above which a suggestion is shown"
    )

    @field_validator("goal_milestones")
    @classmethod
    def validate_milestones(cls, v: str) -> str:
        """Milestones must be integers strictly between 0 and 100."""
        for part in v.split(","):
            value = int(part.strip())
            if not 0 < value < 100:
                raise ValueError(f"Goal milestone out of range: {value}")
        return v

    @property
    def milestones_list(self) -> list[int]:
        """Get milestones as a sorted list."""
        return sorted(int(part.strip()) for part in self.goal_milestones.split(","))


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # One worksheet per collection
    transactions_sheet_name: str = Field(default="Transactions")
    goals_sheet_name: str = Field(default="Goals")
    budgets_sheet_name: str = Field(default="Budgets")
    alerts_sheet_name: str = Field(default="Alerts")
    wallets_sheet_name: str = Field(default="Wallets")
    shares_sheet_name: str = Field(default="WalletShares")
    audit_sheet_name: str = Field(default="AuditLog")

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    storage_backend: str = Field(
        default="memory",
        pattern="^(memory|google_sheets)$",
        description="Which document store backs the engine"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: sub-settings are loaded lazily so a missing Google Sheets
    # configuration does not stop the in-memory backend from working.

    @property
    def engine(self) -> EngineSettings:
        return EngineSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid} plus an
    ``<name>_error`` entry for every failure. Useful for startup checks.
    """
    results = {}
    settings = get_settings()

    for name in ("engine", "google_sheets", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
