"""Configuration models for the metafield sync service."""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ShopifyConfig(BaseModel):
    """Configuration for the Shopify Admin API session."""

    shop_domain: str = Field(default=..., description="Shop domain, e.g. example.myshopify.com")
    access_token: str = Field(default=..., description="Admin API access token")
    api_version: str = Field(default="2024-10", description="Admin API version")
    timeout_seconds: float = Field(default=30.0, gt=0, description="HTTP timeout per request")

    @property
    def graphql_url(self) -> str:
        return f"https://{self.shop_domain}/admin/api/{self.api_version}/graphql.json"


class SyncConfig(BaseModel):
    """Configuration for bulk and incremental synchronization."""

    batch_size: int = Field(default=50, ge=1, le=250, description="Variants fetched per batch")
    concurrency_limit: int = Field(
        default=5, ge=1, description="Variants processed in parallel within a batch"
    )
    batch_delay_seconds: float = Field(
        default=1.0, ge=0.0, description="Pause between batches to stay under API rate limits"
    )
    location_levels_limit: int = Field(
        default=100, ge=1, le=250, description="Inventory levels fetched per inventory item"
    )
    metafield_namespace: str = Field(default="custom", description="Snapshot metafield namespace")
    metafield_key: str = Field(default="locations", description="Snapshot metafield key")
    max_retries: int = Field(default=3, ge=0, description="Retries for throttled/failed calls")
    retry_base_delay: float = Field(default=1.0, ge=0.0, description="Initial backoff delay")


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(default=True, description="JSON output when True, console otherwise")
    log_file: str | None = Field(default=None, description="Optional rotating log file path")


class AppConfig(BaseSettings):
    """Main application configuration.

    Values can also be supplied through ``APP_``-prefixed environment variables,
    e.g. ``APP_SHOPIFY__ACCESS_TOKEN``.
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    shopify: ShopifyConfig
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
