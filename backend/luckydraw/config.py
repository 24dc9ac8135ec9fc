# luckydraw/config.py
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import dotenv_values, load_dotenv

load_dotenv()

# deck bounds
MIN_AMOUNT = 1_000
MAX_AMOUNT = 5_000_000_000
MAX_QUANTITY = 100_000
MAX_DECK_SIZE = 200

# rate limits: (limit, window in ms)
DRAW_LIMIT = (10, 60 * 1000)
DEPOSIT_LIMIT = (30, 5 * 60 * 1000)
ADMIN_LOGIN_LIMIT = (10, 5 * 60 * 1000)
ADMIN_DECK_LIMIT = (30, 5 * 60 * 1000)

# token lifetimes
ADMIN_SESSION_TTL_MS = 12 * 60 * 60 * 1000
DRAW_LOCK_TTL_MS = 24 * 60 * 60 * 1000

ADMIN_SESSION_COOKIE = "lixi_admin_session"
DRAW_LOCK_COOKIE = "lixi_draw_lock"
DRAW_LOCK_FALLBACK_SECRET = "lixi-2026-draw-lock"


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    env_file: Path
    production: bool

    @property
    def deck_path(self) -> Path:
        return self.data_dir / "deck.json"


@lru_cache
def get_settings() -> Settings:
    return Settings(
        data_dir=Path(os.getenv("LUCKYDRAW_DATA_DIR", "data")),
        env_file=Path(os.getenv("LUCKYDRAW_ENV_FILE", ".env.local")),
        production=os.getenv("LUCKYDRAW_ENV", "").lower() == "production",
    )


def get_admin_password(settings: Settings) -> str:
    """Read ADMIN_PASSWORD fresh on each call.

    The env file wins over the process environment so that setup can be
    completed while the server is running. Empty string means "not set up".
    """
    file_values = {}
    if settings.env_file.is_file():
        file_values = dotenv_values(settings.env_file)
    # an explicit (even empty) line in the env file wins
    value = file_values.get("ADMIN_PASSWORD")
    if value is None:
        value = os.getenv("ADMIN_PASSWORD", "")
    return value.strip()


def draw_lock_secret(settings: Settings) -> str:
    return get_admin_password(settings) or DRAW_LOCK_FALLBACK_SECRET
