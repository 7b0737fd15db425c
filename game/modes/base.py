from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Optional

from adaptation.difficulty import STANDARD_RULES, AdjustmentRules
from adaptation.rewards import compute_tokens
from config.settings import ModeConfig
from data.challenge_client import ChallengeSource
from data.models import Challenge, GameSessionResult, SessionReceipt, TokenReward
from data.session_client import SessionStore
from game.session_metrics import SessionStats


@dataclass(frozen=True)
class RoundScore:
    correct: bool
    points: float = 0.0
    feedback: str = ""


class GameMode:
    """
    Стратегия режима: как получить задание, как оценить ответ и как закрыть партию.
    Последовательность раундов живёт в GameSession и одинакова для всех режимов.
    """

    mode: str = "BASE"
    rules: Optional[AdjustmentRules] = STANDARD_RULES
    # False -> раунд нельзя проиграть по времени, timeout() игнорируется
    accepts_timeout: bool = True

    def __init__(self, config: ModeConfig, rng: Optional[random.Random] = None) -> None:
        self.config = config
        self.rng = rng or random.Random()

    @property
    def game_id(self) -> str:
        return self.config.game_id

    @property
    def round_time_limit_sec(self) -> Optional[float]:
        return self.config.round_time_limit_sec

    def difficulty_rules(self) -> Optional[AdjustmentRules]:
        if not self.config.adaptive:
            return None
        return self.rules

    def start(self) -> None:
        """Сброс локального состояния режима перед новой партией."""

    async def next_challenge(self, source: ChallengeSource, difficulty: int) -> Challenge:
        return await source.fetch_challenge(self.mode, difficulty)

    async def score(
        self,
        challenge: Challenge,
        submission: Any,
        source: ChallengeSource,
        response_time_sec: float,
    ) -> RoundScore:
        raise NotImplementedError

    def is_finished(self, stats: SessionStats) -> bool:
        return stats.attempts >= self.config.total_rounds

    def build_result(self, stats: SessionStats, difficulty: int) -> GameSessionResult:
        return stats.to_result(difficulty)

    def compute_reward(self, result: GameSessionResult) -> TokenReward:
        return compute_tokens(result)

    async def submit(
        self, store: SessionStore, result: GameSessionResult, submission_id: Optional[str] = None
    ) -> Optional[SessionReceipt]:
        """None - сохранять нечего."""
        return await store.submit_session(self.game_id, result, submission_id)
