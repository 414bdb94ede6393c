from pydantic_settings import BaseSettings
from pydantic import Field
from typing import List, Optional
from pathlib import Path
import json
import os


BACKEND_DIR = Path(__file__).parent.parent.parent


class Settings(BaseSettings):
    # Deployment
    environment: str = "development"  # "production" fails closed on direct access
    log_level: str = "INFO"

    # Trusted gateway
    trusted_proxy_name: str = "numgate"
    proxy_secret: str = ""
    jwt_secret: str = ""
    credential_encryption_key: str = ""  # Fernet key for stored tenant API keys
    gateway_url: str = "http://localhost:3001"

    # Blob storage
    blob_store_mode: str = "local"  # "local" or "vercel"
    blob_read_write_token: str = ""
    blob_api_url: str = "https://blob.vercel-storage.com"
    local_blob_path: str = str(BACKEND_DIR / "blob-data")
    blob_request_timeout: float = 30.0

    # Auxiliary KV store (chat history)
    redis_url: str = ""
    kv_url: str = ""

    # Relational store (per-tenant AI keys)
    database_url: str = f"sqlite:///{BACKEND_DIR / 'pagebuilder.db'}"

    # OpenAI
    openai_api_key: str = ""
    openai_base_url: str = ""
    openai_model: str = "gpt-4o-mini"

    # Server
    backend_port: int = 8000
    cors_origins: List[str] = ["http://localhost:3000"]

    # Agent
    chat_rate_limit: str = "20/minute"
    history_window: int = Field(default=10, ge=0)

    class Config:
        env_file = ".env"
        extra = "ignore"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)

        # Handle CORS_ORIGINS as JSON string from env
        cors_env = os.getenv("CORS_ORIGINS")
        if cors_env:
            try:
                self.cors_origins = json.loads(cors_env)
            except json.JSONDecodeError:
                self.cors_origins = [o.strip() for o in cors_env.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def effective_redis_url(self) -> Optional[str]:
        """Redis URL, falling back to the KV alias used by hosted deployments."""
        return self.redis_url or self.kv_url or None

    def get_effective_settings(self) -> dict:
        """Get current effective settings (for diagnostics)."""
        return {
            "environment": self.environment,
            "blob_store_mode": self.blob_store_mode,
            "blob_read_write_token": self._mask_key(self.blob_read_write_token),
            "redis_configured": bool(self.effective_redis_url),
            "openai_api_key": self._mask_key(self.openai_api_key),
            "openai_base_url": self.openai_base_url,
            "openai_model": self.openai_model,
            "proxy_secret": self._mask_key(self.proxy_secret),
        }

    def _mask_key(self, key: str) -> str:
        """Mask a secret key for display."""
        if not key:
            return ""
        if len(key) <= 8:
            return "*" * len(key)
        return key[:4] + "*" * (len(key) - 8) + key[-4:]


settings = Settings()
