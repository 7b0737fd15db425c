import random
from typing import Any, Optional

from adaptation.reaction import score_reaction
from config.settings import ModeConfig, ReactionConfig
from data.challenge_client import ChallengeSource
from data.models import (
    Challenge,
    GameSessionResult,
    ReactionMeasurement,
    SessionReceipt,
    TokenReward,
)
from data.session_client import SessionStore
from game.modes.base import GameMode, RoundScore
from game.session_metrics import SessionStats


class ReactionMode(GameMode):
    """
    Одна попытка: отсчёт, случайная пауза, сигнал, клик.
    Токены считает ReactionScorer, а не общая формула награды.
    """

    mode = "reaction"
    rules = None

    def __init__(
        self,
        config: ModeConfig,
        rng: Optional[random.Random] = None,
        reaction_cfg: ReactionConfig = ReactionConfig(),
    ) -> None:
        super().__init__(config, rng)
        self.reaction_cfg = reaction_cfg
        self.measurement: Optional[ReactionMeasurement] = None

    def start(self) -> None:
        self.measurement = None

    async def next_challenge(self, source: ChallengeSource, difficulty: int) -> Challenge:
        delay = self.rng.randint(self.reaction_cfg.min_signal_delay_ms, self.reaction_cfg.max_signal_delay_ms)
        payload = {"countdownMs": self.reaction_cfg.countdown_ms, "signalDelayMs": delay}
        return Challenge(mode=self.mode, difficulty=difficulty, payload=payload)

    async def score(
        self,
        challenge: Challenge,
        submission: Any,
        source: ChallengeSource,
        response_time_sec: float,
    ) -> RoundScore:
        if not isinstance(submission, ReactionMeasurement):
            raise ValueError("invalid_reaction_submission")
        # InvalidMeasurement пробрасывается: попытка отклонена, раунд остаётся открытым
        scored = score_reaction(submission, self.reaction_cfg)
        self.measurement = submission
        return RoundScore(
            correct=True,
            points=scored.reaction_time_ms,
            feedback=f"{scored.reaction_time_ms}ms",
        )

    def build_result(self, stats: SessionStats, difficulty: int) -> GameSessionResult:
        if self.measurement is None:
            return stats.to_result(difficulty)
        reaction_ms = self.measurement.reaction_time_ms
        return GameSessionResult(
            score=reaction_ms,
            accuracy_percent=100.0,
            streak=stats.streak,
            total_time_sec=reaction_ms / 1000,
            difficulty=difficulty,
            questions_answered=stats.attempts,
        )

    def compute_reward(self, result: GameSessionResult) -> TokenReward:
        if self.measurement is None:
            return TokenReward(tokens_earned=0)
        return TokenReward(tokens_earned=score_reaction(self.measurement, self.reaction_cfg).tokens_earned)

    async def submit(
        self, store: SessionStore, result: GameSessionResult, submission_id: Optional[str] = None
    ) -> Optional[SessionReceipt]:
        # Попытка истекла без клика: замера нет, на сервер отправлять нечего.
        if self.measurement is None:
            return None
        return await store.submit_reaction(self.game_id, self.measurement, submission_id)
