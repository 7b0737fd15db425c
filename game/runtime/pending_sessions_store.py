from __future__ import annotations

import json
from pathlib import Path
from typing import Any


def load_pending_sessions(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return {}
    sessions = payload.get("sessions") if isinstance(payload, dict) else None
    if isinstance(sessions, dict):
        return sessions
    return {}


def save_pending_sessions(path: Path, sessions: dict[str, Any]) -> None:
    if not sessions:
        path.unlink(missing_ok=True)
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(".tmp")
    tmp.write_text(
        json.dumps({"sessions": sessions}, ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    tmp.replace(path)
