import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError


class Settings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    freepik_api_key: str = Field(alias="FREEPIK_API_KEY")
    shopify_store: str = Field(alias="SHOPIFY_STORE")
    shopify_access_token: str = Field(alias="SHOPIFY_ACCESS_TOKEN")
    shopify_api_version: str = Field(default="2023-10", alias="SHOPIFY_API_VERSION")

    # OAuth install handshake
    shopify_api_key: str = Field(default="", alias="SHOPIFY_API_KEY")
    shopify_api_secret: str = Field(default="", alias="SHOPIFY_API_SECRET")
    redirect_uri: str = Field(default="", alias="REDIRECT_URI")

    # Seconds; applies to every outbound call made through the shared client.
    http_timeout: float = Field(default=15.0, alias="HTTP_TIMEOUT")
    # Per-listing page ceiling for index builds (250 items per page).
    index_max_pages: int = Field(default=5, ge=1, alias="INDEX_MAX_PAGES")
    duplicate_precheck: bool = Field(default=True, alias="DUPLICATE_PRECHECK")
    metafield_namespace: str = Field(default="custom", alias="METAFIELD_NAMESPACE")
    metafield_key: str = Field(default="image_fingerprint", alias="METAFIELD_KEY")

    static_dir: Optional[Path] = Field(default=None, alias="STATIC_DIR")
    port: int = Field(default=5000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    env: str = Field(default="local", alias="APP_ENV")

    @property
    def shop_domain(self) -> str:
        store = self.shopify_store.strip().rstrip("/")
        return store if store.endswith(".myshopify.com") else f"{store}.myshopify.com"


def _load_dotenv():
    # Load from repo root if present, otherwise rely on environment variables.
    root_env = Path(__file__).resolve().parents[2] / ".env"
    if root_env.exists():
        load_dotenv(root_env)
    else:
        load_dotenv()


def load_settings() -> Settings:
    """Build the process-wide settings once, at startup."""
    _load_dotenv()
    try:
        return Settings(**os.environ)
    except ValidationError as exc:
        missing = [e["loc"][0] for e in exc.errors() if e["type"] == "missing"]
        if not missing:
            raise RuntimeError(f"Invalid configuration: {exc}") from exc
        detail = f"Missing required environment variables: {', '.join(missing)}"
        raise RuntimeError(detail) from exc
