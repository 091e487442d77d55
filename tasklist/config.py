from pathlib import Path
import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load environment variables from repo root and tasklist/.env (if present).
REPO_ROOT = Path(__file__).resolve().parents[1]
load_dotenv(REPO_ROOT / ".env")
load_dotenv(Path(__file__).resolve().parent / ".env")

STORE_URL_ENV = "STORE_URL"
STORE_API_KEY_ENV = "STORE_API_KEY"


def _split_origins(raw: str) -> List[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


class Settings(BaseModel):
    """Application settings.

    Built once at startup and handed to ``create_app``; nothing below the
    app factory reads the environment directly.
    """

    store_url: Optional[str] = None
    store_api_key: Optional[str] = None
    secret_key: str = "change-me"
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    password_hash_rounds: int = 12
    log_level: str = "INFO"

    @property
    def is_store_configured(self) -> bool:
        return bool(self.store_url and self.store_api_key)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            store_url=os.getenv(STORE_URL_ENV) or None,
            store_api_key=os.getenv(STORE_API_KEY_ENV) or None,
            secret_key=os.getenv("SECRET_KEY", "change-me"),
            cors_origins=_split_origins(os.getenv("CORS_ORIGINS", "http://localhost:3000")),
            password_hash_rounds=int(os.getenv("PASSWORD_HASH_ROUNDS", "12")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
