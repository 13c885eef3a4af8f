"""Config file."""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # PROJECT
    project_name: str = Field("BartMart Indexer", alias="PROJECT_NAME")

    # REDIS (projection store)
    redis_url: str = Field("redis://localhost:6379/0", alias="REDIS_URL")

    # CHAIN
    rpc_url: str = Field("https://mainnet.base.org", alias="RPC_URL")
    chain_id: int = Field(8453, alias="CHAIN_ID")
    bartmart_address: str = Field(
        "0x03735E64c156d8C0D79a0cc5Fd979A95f67FC94C",
        alias="BARTMART_ADDRESS",
    )
    rpc_timeout_seconds: float = Field(30.0, alias="RPC_TIMEOUT_SECONDS")
    rpc_max_retries: int = Field(3, alias="RPC_MAX_RETRIES")
    rpc_backoff_seconds: float = Field(0.5, alias="RPC_BACKOFF_SECONDS")

    # INDEXER
    indexer_lookback_blocks: int = Field(1000, alias="INDEXER_LOOKBACK_BLOCKS")
    full_sync_batch_size: int = Field(50, alias="FULL_SYNC_BATCH_SIZE")
    query_batch_size: int = Field(50, alias="QUERY_BATCH_SIZE")
    user_tx_history_limit: int = Field(1000, alias="USER_TX_HISTORY_LIMIT")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings: Settings = Settings()
