"""
Application configuration with Pydantic Settings for validation and type safety.
Supports environment-specific configurations and .env file loading.
"""

from enum import Enum
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Environment(str, Enum):
    """Application environment types"""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class Settings(BaseSettings):
    """
    Application settings with validation.
    Settings are loaded from environment variables or .env file.
    """

    # Application settings
    app_name: str = Field(default="LabelIQ", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: Environment = Field(
        default=Environment.DEVELOPMENT, description="Application environment"
    )
    debug: bool = Field(default=False, description="Debug mode")

    # Server settings
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, ge=1, le=65535, description="Server port")

    # Persistent store
    database_url: str = Field(
        default="sqlite:///./labeliq.db",
        description="SQLAlchemy URL of the persistent store",
    )
    db_echo: bool = Field(default=False, description="SQLAlchemy echo SQL statements")
    db_init_attempts: int = Field(
        default=3, ge=1, description="Database initialization retry attempts"
    )
    db_init_delay_sec: float = Field(
        default=1.0, ge=0, description="Delay between DB init attempts"
    )

    # Retention policy (days, None = never expire)
    retention_scan_results_days: Optional[float] = Field(
        default=90, description="Max age of stored scan results"
    )
    retention_sync_queue_days: Optional[float] = Field(
        default=7, description="Max age of queued offline writes"
    )
    retention_knowledge_cache_days: Optional[float] = Field(
        default=30, description="Max age of cached ingredient knowledge"
    )
    retention_profile_settings_days: Optional[float] = Field(
        default=None, description="Max age of profile and settings entries"
    )
    retention_sweep_interval_hours: float = Field(
        default=24, gt=0, description="Minimum time between retention sweeps"
    )

    # Offline sync
    sync_max_retries: int = Field(
        default=3, ge=1, description="Replay attempts before a queued item is dropped"
    )
    sync_endpoint_url: Optional[str] = Field(
        default=None, description="Remote endpoint receiving replayed offline writes"
    )
    sync_timeout_sec: float = Field(default=5.0, gt=0, description="Sync request timeout")
    start_online: bool = Field(
        default=True, description="Initial connectivity state of the service"
    )

    # Source orchestrator
    remote_sources_enabled: bool = Field(
        default=True, description="Register remote capability sources"
    )
    intelligence_cache_ttl_sec: float = Field(
        default=3600, gt=0, description="TTL of cached enrichment results"
    )
    source_min_confidence: float = Field(
        default=0.3, ge=0, le=1, description="Lowest confidence accepted from a source"
    )
    enrichment_max_ingredients: int = Field(
        default=10, ge=0, description="Unknown ingredients enriched per analysis"
    )

    # Capability source credentials
    cosmetic_api_url: Optional[str] = Field(
        default=None, description="Cosmetic ingredient database base URL"
    )
    cosmetic_api_key: Optional[str] = Field(
        default=None, description="Cosmetic ingredient database API key"
    )
    pubchem_url: str = Field(
        default="https://pubchem.ncbi.nlm.nih.gov/rest/pug/compound",
        description="PubChem PUG REST compound endpoint",
    )
    epa_url: str = Field(
        default="https://comptox.epa.gov/dashboard-api",
        description="EPA CompTox dashboard API",
    )
    openfda_url: str = Field(default="https://api.fda.gov", description="openFDA API")
    anthropic_url: str = Field(
        default="https://api.anthropic.com/v1/messages",
        description="Anthropic Messages API",
    )
    anthropic_api_key: Optional[str] = Field(default=None, description="Anthropic API key")
    anthropic_model: str = Field(
        default="claude-3-5-sonnet-20241022", description="Anthropic model name"
    )
    openai_url: str = Field(
        default="https://api.openai.com/v1/chat/completions",
        description="OpenAI chat completions API",
    )
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    openai_model: str = Field(default="gpt-4-turbo", description="OpenAI model name")
    pubmed_url: str = Field(
        default="https://eutils.ncbi.nlm.nih.gov/entrez/eutils",
        description="PubMed E-utilities base URL",
    )
    clinical_trials_url: str = Field(
        default="https://clinicaltrials.gov/api/v2",
        description="ClinicalTrials.gov API base URL",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="%(asctime)s %(levelname)s %(name)s: %(message)s",
        description="Log format string",
    )

    # CORS settings
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:8000"],
        description="Allowed CORS origins",
    )
    cors_allow_credentials: bool = Field(
        default=True, description="Allow CORS credentials"
    )
    cors_allow_methods: list[str] = Field(
        default=["*"], description="Allowed HTTP methods"
    )
    cors_allow_headers: list[str] = Field(
        default=["*"], description="Allowed HTTP headers"
    )

    # API settings
    api_prefix: str = Field(default="", description="API route prefix")
    api_title: str = Field(default="LabelIQ API", description="API documentation title")
    api_description: str = Field(
        default="Ingredient safety intelligence for food, cosmetic and household labels",
        description="API documentation description",
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        """Validate and normalize environment value"""
        if isinstance(v, str):
            return Environment(v.lower())
        return v

    @field_validator(
        "retention_scan_results_days",
        "retention_sync_queue_days",
        "retention_knowledge_cache_days",
        "retention_profile_settings_days",
        mode="before",
    )
    @classmethod
    def validate_retention(cls, v):
        """Empty strings, 'never' and 0 disable expiry for a collection"""
        if v is None:
            return None
        if isinstance(v, str) and v.strip().lower() in ("", "none", "never", "null"):
            return None
        if float(v) == 0:
            return None
        if float(v) < 0:
            raise ValueError("retention must be positive or empty")
        return v

    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.environment == Environment.PRODUCTION

    def is_development(self) -> bool:
        """Check if running in development environment"""
        return self.environment == Environment.DEVELOPMENT

    def is_testing(self) -> bool:
        """Check if running in testing environment"""
        return self.environment == Environment.TESTING


# Global settings instance
settings = Settings()
