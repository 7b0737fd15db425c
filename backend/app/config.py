import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

ENV_API_KEY = "ARCADE_API_KEY"
ENV_DB_PATH = "ARCADE_DB_PATH"

# backend/data/arcade.db рядом с кодом сервера
DEFAULT_DB_PATH = Path(__file__).resolve().parents[1] / "data" / "arcade.db"


@dataclass(frozen=True)
class Settings:
    api_key: str
    db_path: Path

    @property
    def auth_enabled(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Настройки сервера из окружения; при пустом ключе сервер отклоняет все запросы."""
        env = os.environ if environ is None else environ
        raw_path = (env.get(ENV_DB_PATH) or "").strip()
        db_path = Path(raw_path).expanduser() if raw_path else DEFAULT_DB_PATH
        settings = cls(api_key=(env.get(ENV_API_KEY) or "").strip(), db_path=db_path)
        if not settings.auth_enabled:
            logger.warning("%s is not set: every request will be rejected with invalid_api_key", ENV_API_KEY)
        return settings


def load_settings() -> Settings:
    return Settings.from_env()
