import asyncio
import logging
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from config.settings import ClientConfig
from data.errors import PersistenceFailure
from data.http_json import HttpJsonError, http_get_json, http_post_json, join_url
from data.models import GameSessionResult, PlayerContext, ReactionMeasurement, SessionReceipt
from game.runtime.pending_sessions_store import load_pending_sessions, save_pending_sessions

logger = logging.getLogger(__name__)

SESSIONS_PATH = "/v1/sessions"
REACTION_SESSIONS_PATH = "/v1/reaction-sessions"


class SessionStore(Protocol):
    async def submit_session(
        self, game_id: str, result: GameSessionResult, submission_id: Optional[str] = None
    ) -> SessionReceipt:
        ...

    async def submit_reaction(
        self, game_id: str, measurement: ReactionMeasurement, submission_id: Optional[str] = None
    ) -> SessionReceipt:
        ...


def parse_receipt(data: Dict[str, Any]) -> SessionReceipt:
    if data.get("ok") is not True:
        raise PersistenceFailure("invalid_server_response")
    try:
        tokens = int(data["tokensEarned"])
    except (KeyError, TypeError, ValueError) as exc:
        raise PersistenceFailure("invalid_server_response") from exc
    balance = data.get("newBalance")
    return SessionReceipt(
        session_id=str(data.get("sessionId", "")),
        tokens_earned=tokens,
        new_balance=int(balance) if isinstance(balance, (int, float)) else None,
    )


class HttpSessionStore:
    """
    Отправляет итоги партий на бэкенд. Сервер сам пересчитывает токены,
    его ответ считается истинным.

    Неотправленные партии остаются в очереди на диске (ключ - submission_id)
    и досылаются только явным вызовом retry_pending().
    """

    def __init__(
        self,
        player: PlayerContext,
        config: ClientConfig = ClientConfig(),
        pending_path: Optional[Path] = None,
    ) -> None:
        self.player = player
        self.config = config
        self.base_url = config.backend_url.strip()
        self.pending_path = pending_path
        self.last_error: str = ""

    async def submit_session(
        self, game_id: str, result: GameSessionResult, submission_id: Optional[str] = None
    ) -> SessionReceipt:
        body = {"gameId": game_id, **result.to_payload()}
        return await self._submit(SESSIONS_PATH, body, submission_id)

    async def submit_reaction(
        self, game_id: str, measurement: ReactionMeasurement, submission_id: Optional[str] = None
    ) -> SessionReceipt:
        body = {
            "gameId": game_id,
            "startTime": measurement.start_ms,
            "endTime": measurement.end_ms,
        }
        return await self._submit(REACTION_SESSIONS_PATH, body, submission_id)

    async def fetch_balance(self) -> int:
        url = join_url(self.base_url, f"/v1/balance/{self.player.user_id}")
        try:
            data = await asyncio.to_thread(http_get_json, url, self.config.timeout_sec)
        except HttpJsonError as exc:
            self.last_error = exc.reason
            raise PersistenceFailure(exc.reason) from exc
        return int(data.get("balance", 0) or 0)

    def pending_count(self) -> int:
        if self.pending_path is None:
            return 0
        return len(load_pending_sessions(self.pending_path))

    async def retry_pending(self) -> List[SessionReceipt]:
        """Досылает очередь по порядку; на первой ошибке останавливается (PersistenceFailure)."""
        if self.pending_path is None:
            return []
        receipts: List[SessionReceipt] = []
        for submission_id, item in list(load_pending_sessions(self.pending_path).items()):
            receipt = await self._send(item["path"], item["body"])
            receipts.append(receipt)
            self._dequeue(submission_id)
        return receipts

    async def _submit(self, path: str, body: Dict[str, Any], submission_id: Optional[str]) -> SessionReceipt:
        body = {"submissionId": submission_id or uuid.uuid4().hex, **body}
        try:
            receipt = await self._send(path, body)
        except PersistenceFailure:
            self._enqueue(path, body)
            raise
        self._dequeue(body["submissionId"])
        return receipt

    async def _send(self, path: str, body: Dict[str, Any]) -> SessionReceipt:
        full_body = {"api_key": self.player.api_key, "user_id": self.player.user_id, **body}
        url = join_url(self.base_url, path)
        try:
            data = await asyncio.to_thread(http_post_json, url, full_body, self.config.timeout_sec)
        except HttpJsonError as exc:
            self.last_error = exc.reason
            logger.warning("session submit to %s failed: %s", path, exc.reason)
            raise PersistenceFailure(exc.reason) from exc
        receipt = parse_receipt(data)
        self.last_error = ""
        return receipt

    def _enqueue(self, path: str, body: Dict[str, Any]) -> None:
        if self.pending_path is None:
            return
        pending = load_pending_sessions(self.pending_path)
        pending[body["submissionId"]] = {"path": path, "body": body}
        save_pending_sessions(self.pending_path, pending)

    def _dequeue(self, submission_id: str) -> None:
        if self.pending_path is None:
            return
        pending = load_pending_sessions(self.pending_path)
        if pending.pop(submission_id, None) is not None:
            save_pending_sessions(self.pending_path, pending)
