from __future__ import annotations

import json
import os
from dataclasses import replace
from pathlib import Path

from config.settings import ClientConfig

ENV_BACKEND_URL = "ARCADE_BACKEND_URL"
ENV_CHALLENGE_URL = "ARCADE_CHALLENGE_URL"
ENV_API_KEY = "ARCADE_API_KEY"


def load_client_settings(settings_path: Path, defaults: ClientConfig = ClientConfig()) -> tuple[ClientConfig, str]:
    """
    Адреса сервисов и ключ: файл настроек, поверх него переменные окружения.
    Если файла нет - создаём его из значений по умолчанию.
    """
    env_backend = os.getenv(ENV_BACKEND_URL, "").strip()
    env_challenge = os.getenv(ENV_CHALLENGE_URL, "").strip()
    env_key = os.getenv(ENV_API_KEY, "").strip()

    backend_url = defaults.backend_url
    challenge_url = defaults.challenge_url
    api_key = ""

    if not settings_path.exists():
        save_client_settings(settings_path, backend_url, challenge_url, api_key)
    else:
        try:
            payload = json.loads(settings_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            payload = {}
        if isinstance(payload, dict):
            backend_url = str(payload.get("backend_url", backend_url)).strip() or backend_url
            challenge_url = str(payload.get("challenge_url", challenge_url)).strip() or challenge_url
            api_key = str(payload.get("api_key", "")).strip()

    if env_backend:
        backend_url = env_backend
    if env_challenge:
        challenge_url = env_challenge
    if env_key:
        api_key = env_key
    return replace(defaults, backend_url=backend_url, challenge_url=challenge_url), api_key


def save_client_settings(settings_path: Path, backend_url: str, challenge_url: str, api_key: str) -> None:
    payload = {
        "backend_url": backend_url.strip(),
        "challenge_url": challenge_url.strip(),
        "api_key": api_key.strip(),
    }
    settings_path.parent.mkdir(parents=True, exist_ok=True)
    settings_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
