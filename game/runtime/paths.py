import os
import sys
from pathlib import Path


APP_NAME = "TokenArcade"
ENV_DATA_DIR = "ARCADE_DATA_DIR"


def _platform_root() -> Path:
    if sys.platform.startswith("win"):
        appdata = os.getenv("APPDATA")
        return Path(appdata) if appdata else Path.home() / "AppData" / "Roaming"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support"
    xdg = os.getenv("XDG_DATA_HOME")
    return Path(xdg) if xdg else Path.home() / ".local" / "share"


def app_data_dir() -> Path:
    """Каталог клиента: ARCADE_DATA_DIR, иначе системный каталог данных, иначе ./data/_appdata."""
    override = os.getenv(ENV_DATA_DIR, "").strip()
    candidates = [Path(override).expanduser()] if override else [_platform_root() / APP_NAME]
    candidates.append(Path.cwd() / "data" / "_appdata")
    for candidate in candidates:
        try:
            candidate.mkdir(parents=True, exist_ok=True)
        except OSError:
            continue
        return candidate
    raise OSError(f"No writable data directory for {APP_NAME}")


def app_data_path(*parts: str) -> Path:
    return app_data_dir().joinpath(*parts)


def client_settings_path() -> Path:
    return app_data_path("client_settings.json")


def pending_sessions_path() -> Path:
    return app_data_path("pending_sessions.json")


def events_log_path() -> Path:
    return app_data_path("events.jsonl")
