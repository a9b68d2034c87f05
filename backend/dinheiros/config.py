from pydantic_settings import BaseSettings
from datetime import timedelta
from typing import Optional
import re
import secrets
import logging
from dotenv import load_dotenv

load_dotenv()

_log = logging.getLogger("dinheiros")

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(h|m|s|ms)")
_DURATION_UNITS = {
    "h": timedelta(hours=1),
    "m": timedelta(minutes=1),
    "s": timedelta(seconds=1),
    "ms": timedelta(milliseconds=1),
}
DEFAULT_TOKEN_DURATION = timedelta(hours=24)


def parse_duration(value: str) -> timedelta:
    """Parse a duration string such as "24h", "30m", "1h30m" or "90s".

    Raises ValueError when the string is empty or contains anything that is
    not a sequence of <number><unit> pairs.
    """
    text = (value or "").strip()
    if not text:
        raise ValueError("empty duration")

    total = timedelta()
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            raise ValueError(f"invalid duration: {value!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text):
        raise ValueError(f"invalid duration: {value!r}")
    return total


class Settings(BaseSettings):
    # When JWT_SECRET is not provided a random key is generated per process,
    # so issued tokens stop validating after a restart.
    JWT_SECRET: Optional[str] = None
    JWT_TOKEN_DURATION: str = "24h"
    ALGORITHM: str = "HS256"
    DEBUG: bool = False

    # SQLite file used when DATABASE_URL is not set.
    DB_PATH: str = "./dinheiros.db"
    DATABASE_URL: Optional[str] = None

    PORT: int = 8080
    ALLOWED_ORIGINS: str = "http://localhost:5173,http://localhost:3000"

    class Config:
        env_file = None
        env_file_encoding = "utf-8"
        extra = "ignore"

    def model_post_init(self, __context) -> None:
        if not self.JWT_SECRET:
            _log.warning("JWT_SECRET not set; generated a random key valid only for this process")
            self.JWT_SECRET = secrets.token_hex(32)

    @property
    def secret_key(self) -> str:
        return self.JWT_SECRET

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"sqlite:///{self.DB_PATH}"

    @property
    def token_duration(self) -> timedelta:
        try:
            return parse_duration(self.JWT_TOKEN_DURATION)
        except ValueError:
            _log.warning(f"Invalid JWT_TOKEN_DURATION {self.JWT_TOKEN_DURATION!r}; using 24h")
            return DEFAULT_TOKEN_DURATION


settings = Settings()
