# chronovault/settings.py
import logging

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ledger (Monad testnet by default)
    RPC_URL: str = "https://testnet-rpc.monad.xyz"
    CONTRACT_ADDRESS: str = "0xB095DE5c9d0bceF7B1Bc3e1B04da28D9852Ad36A"
    CHAIN_ID: int = 10143
    SUBMITTER_PK: str | None = None
    SUBMIT_GAS: int = 500000

    # indexer
    GRAPHQL_ENDPOINT: str = (
        "https://api.studio.thegraph.com/query/113356/my-subgraph-send-data/version/latest"
    )
    INDEXER_TIMEOUT: float = 15.0

    # file storage
    PINATA_JWT: str | None = None
    PINATA_API_KEY: str | None = None
    PINATA_API_SECRET: str | None = None
    IPFS_GATEWAY: str = "https://gateway.pinata.cloud/ipfs"
    MEDIA_DIR: str = "./media"
    MEDIA_MAX_SIZE: int = 100 * 1024 * 1024
    MEDIA_ALLOWED_TYPES: str = "image,audio,video"

    DATABASE_URL: str = "sqlite:///./chronovault.db"
    HOST: str = "127.0.0.1"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    @property
    def allowed_media_types(self) -> list[str]:
        return [t.strip() for t in self.MEDIA_ALLOWED_TYPES.split(",") if t.strip()]


settings = Settings()


def configure_logging(level: str | None = None):
    """Apply LOG_LEVEL to the root logger (called once at app startup)."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
