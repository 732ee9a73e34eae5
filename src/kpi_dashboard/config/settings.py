from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings managed via Pydantic Settings.
    Reads variables from environment and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # --- Application Meta ---
    APP_NAME: str = "KPI Dashboard Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # --- Server Configuration ---
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # --- Schema Inference ---
    SCHEMA_SAMPLE_SIZE: int = Field(5000, description="Rows sampled from the head of a dataset")
    TYPE_DOMINANCE_THRESHOLD: float = 0.8
    MEASURE_VARIANCE_EPSILON: float = 0.1
    MIN_MEASURE_UNIQUE_VALUES: int = 3

    # --- Chart Reduction ---
    MAX_CHART_DATA_POINTS: int = 1000
    PIE_MAX_CATEGORIES: int = 8
    BAR_MAX_POINTS: int = 50

    # --- Filters & Limits ---
    FILTER_OPTIONS_SAMPLE_SIZE: int = 10000
    MAX_FILTER_OPTIONS: int = 100
    LARGE_DATASET_THRESHOLD: int = 10000
    DATA_CHUNK_SIZE: int = 1000

    # --- Cache ---
    CACHE_SWEEP_INTERVAL_SECONDS: float = 300.0

    # --- Formatting ---
    CURRENCY_SYMBOL: str = "$"

    @field_validator(
        "SCHEMA_SAMPLE_SIZE",
        "MIN_MEASURE_UNIQUE_VALUES",
        "MAX_CHART_DATA_POINTS",
        "PIE_MAX_CATEGORIES",
        "BAR_MAX_POINTS",
        "FILTER_OPTIONS_SAMPLE_SIZE",
        "MAX_FILTER_OPTIONS",
        "LARGE_DATASET_THRESHOLD",
        "DATA_CHUNK_SIZE",
        "CACHE_SWEEP_INTERVAL_SECONDS",
    )
    @classmethod
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @field_validator("TYPE_DOMINANCE_THRESHOLD")
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        """The dominant type must cover a real share of the sample."""
        if not 0 < v <= 1:
            raise ValueError("must be in the range (0, 1]")
        return v


settings = Settings()
