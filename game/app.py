import logging
import random
from pathlib import Path
from typing import Callable, Optional

from config.settings import ClientConfig, GameModesConfig, LevelConfig
from data.challenge_client import HttpChallengeSource
from data.logger import JsonlLogger
from data.models import PlayerContext, SessionReceipt
from data.session_client import HttpSessionStore
from game.modes import create_mode
from game.runtime.client_settings import load_client_settings
from game.runtime.paths import client_settings_path, events_log_path, pending_sessions_path
from game.state_machine import GameSession, SessionEvent

logger = logging.getLogger(__name__)


class ArcadeApp:
    """
    Сборка клиента: настройки, HTTP-источник заданий, хранилище сессий, журнал событий.
    На каждую партию создаётся новая GameSession.
    """

    def __init__(
        self,
        user_id: str,
        settings_path: Optional[Path] = None,
        pending_path: Optional[Path] = None,
        events_path: Optional[Path] = None,
        defaults: ClientConfig = ClientConfig(),
        modes: GameModesConfig = GameModesConfig(),
        level_cfg: LevelConfig = LevelConfig(),
    ) -> None:
        self.config, api_key = load_client_settings(settings_path or client_settings_path(), defaults)
        self.player = PlayerContext(user_id=user_id, api_key=api_key)
        self.modes = modes
        self.level_cfg = level_cfg
        self.source = HttpChallengeSource(self.player, self.config)
        self.store = HttpSessionStore(self.player, self.config, pending_path or pending_sessions_path())
        self.event_log = JsonlLogger(str(events_path or events_log_path()))
        if not api_key:
            logger.warning("api key is not configured; sessions will be rejected by the backend")

    def new_session(
        self,
        mode: str,
        rng: Optional[random.Random] = None,
        listener: Optional[Callable[[SessionEvent], None]] = None,
    ) -> GameSession:
        game_mode = create_mode(mode, self.modes.get(mode), rng)
        return GameSession(
            mode=game_mode,
            player=self.player,
            source=self.source,
            store=self.store,
            level_cfg=self.level_cfg,
            listener=listener,
            event_log=self.event_log,
        )

    def pending_count(self) -> int:
        return self.store.pending_count()

    async def retry_pending(self) -> list[SessionReceipt]:
        receipts = await self.store.retry_pending()
        if receipts:
            logger.info("resent %d pending sessions", len(receipts))
        return receipts

    async def balance(self) -> int:
        return await self.store.fetch_balance()
