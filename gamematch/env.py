import os
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

from .errors import ConfigurationError

DEFAULT_DB_PATH = "data/catalog.db"
DEFAULT_TRANSLATE_URL = "https://libretranslate.com"


def load_env(env_path: Optional[Path] = None) -> None:
    """Load .env from project root if present. Existing variables win."""
    env_path = env_path or Path.cwd() / ".env"
    if not env_path.exists():
        return
    load_dotenv(dotenv_path=env_path, override=False)


def twitch_credentials() -> Tuple[str, str]:
    """Return (client_id, client_secret) or raise ConfigurationError."""
    client_id = os.getenv("TWITCH_CLIENT_ID", "").strip()
    client_secret = os.getenv("TWITCH_CLIENT_SECRET", "").strip()
    if not client_id or not client_secret:
        raise ConfigurationError(
            "TWITCH_CLIENT_ID / TWITCH_CLIENT_SECRET not set. Set env vars or add them to .env."
        )
    return client_id, client_secret


def translate_endpoint() -> Tuple[str, Optional[str]]:
    """Return (base_url, api_key) for the translation service."""
    base = os.getenv("LIBRETRANSLATE_URL") or DEFAULT_TRANSLATE_URL
    api_key = os.getenv("LIBRETRANSLATE_API_KEY") or None
    return base.rstrip("/"), api_key


def database_path() -> Path:
    return Path(os.getenv("GAMEMATCH_DB") or DEFAULT_DB_PATH)


def log_level() -> str:
    return (os.getenv("GAMEMATCH_LOG_LEVEL") or "INFO").upper()
