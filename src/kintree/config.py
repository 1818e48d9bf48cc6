"""Library configuration using Pydantic Settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class LayoutSettings(BaseSettings):
    """Default layout geometry."""

    model_config = SettingsConfigDict(env_prefix="KINTREE_LAYOUT_")

    node_separation: float = 200.0
    level_separation: float = 120.0
    sibling_separation: float = 1.2  # multiples of node_separation
    cousin_separation: float = 2.0
    spouse_offset: float = 0.8
    tree_gap: float = 3.0
    max_people: int = 1000
    card_width: float = 160.0
    card_height: float = 90.0


class ValidationSettings(BaseSettings):
    """Thresholds for the non-blocking consistency checks."""

    model_config = SettingsConfigDict(env_prefix="KINTREE_VALIDATION_")

    min_parent_age: int = 13
    spouse_age_tolerance: int = 30
    max_sibling_age_gap: int = 50
    duplicate_year_window: int = 2


class HistorySettings(BaseSettings):
    """Undo/redo depth."""

    model_config = SettingsConfigDict(env_prefix="KINTREE_HISTORY_")

    max_depth: int = 50


class Settings(BaseSettings):
    """Main settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    layout: LayoutSettings = LayoutSettings()
    validation: ValidationSettings = ValidationSettings()
    history: HistorySettings = HistorySettings()


settings = Settings()
