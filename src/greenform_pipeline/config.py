from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from greenform_pipeline.domain.entities.credential import Credential

# Load .env if present
load_dotenv()


@dataclass(frozen=True)
class Settings:
    username: str = os.getenv("GREENFORM_USERNAME", "")
    password: str = os.getenv("GREENFORM_PASSWORD", "")
    base_url: str = os.getenv("GREENFORM_BASE_URL", "https://boms.qistbazaar.pk")
    login_path: str = os.getenv("GREENFORM_LOGIN_PATH", "/api/user/login")
    asset_base_url: str = os.getenv("GREENFORM_ASSET_BASE_URL", "")
    asset_key: str = os.getenv("GREENFORM_ASSET_KEY", "")
    http_timeout: float = float(os.getenv("HTTP_TIMEOUT", "45"))
    http_retries: int = int(os.getenv("HTTP_RETRIES", "3"))
    token_validity_hours: float = float(os.getenv("TOKEN_VALIDITY_HOURS", "10"))
    token_refresh_buffer_minutes: float = float(os.getenv("TOKEN_REFRESH_BUFFER_MINUTES", "5"))
    token_store_path: str = os.getenv("TOKEN_STORE_PATH", ".greenform_token.sqlite")
    max_concurrency: int = int(os.getenv("GREENFORM_MAX_CONCURRENCY", "10"))
    batch_deadline_seconds: float = float(os.getenv("BATCH_DEADLINE_SECONDS", "0"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    def credential(self) -> Credential:
        return Credential(username=self.username, secret=self.password)

    @property
    def resolved_asset_base_url(self) -> str:
        return self.asset_base_url or self.base_url

    @property
    def batch_deadline(self) -> float | None:
        return self.batch_deadline_seconds if self.batch_deadline_seconds > 0 else None


settings = Settings()
