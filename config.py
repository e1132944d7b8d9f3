import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

WEBHOOK_PATH = "telegram"


@dataclass
class Config:
    bot_token: str
    channel_id: str
    environment: str
    public_base_url: Optional[str]
    db_path: str
    port: int
    session_idle_minutes: int

    @property
    def is_production(self):
        return self.environment == "production"

    @property
    def webhook_url(self):
        if not self.public_base_url:
            return None
        return f"{self.public_base_url}/{WEBHOOK_PATH}"


def _int_setting(name, default):
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def load_config():
    load_dotenv()

    bot_token = os.getenv("BOT_TOKEN")
    if not bot_token:
        raise ValueError("BOT_TOKEN environment variable is not set")

    channel_id = os.getenv("CHANNEL_ID")
    if not channel_id:
        raise ValueError("CHANNEL_ID environment variable is not set (e.g. -1001234567890)")

    environment = os.getenv("ENVIRONMENT", "development").strip().lower()
    public_base_url = os.getenv("PUBLIC_BASE_URL", "").strip().rstrip("/") or None
    db_path = os.getenv("DB_PATH", "").strip()

    if environment == "production":
        if not public_base_url:
            raise ValueError("PUBLIC_BASE_URL environment variable is not set (required in production)")
        if not db_path:
            raise ValueError("DB_PATH environment variable is not set (required in production)")

    return Config(
        bot_token=bot_token,
        channel_id=channel_id.strip(),
        environment=environment,
        public_base_url=public_base_url,
        db_path=db_path or "bot_data.db",
        port=_int_setting("PORT", 8080),
        session_idle_minutes=_int_setting("SESSION_IDLE_MINUTES", 120),
    )
