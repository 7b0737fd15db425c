import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from adaptation.difficulty import DifficultyAdjuster
from config.settings import LevelConfig
from data.challenge_client import ChallengeSource
from data.errors import ArcadeError, PersistenceFailure
from data.logger import JsonlLogger
from data.models import (
    Challenge,
    GameSessionResult,
    PlayerContext,
    RoundResult,
    SessionReceipt,
    TokenReward,
)
from data.session_client import SessionStore
from game.modes.base import GameMode
from game.session_metrics import SessionStats
from game.timer import RoundTimer

logger = logging.getLogger(__name__)

# Состояния партии
STATE_IDLE = "IDLE"
STATE_IN_PROGRESS = "IN_PROGRESS"
STATE_COMPLETED = "COMPLETED"
STATE_CANCELLED = "CANCELLED"


@dataclass
class ChallengeRound:
    index: int
    challenge: Challenge
    submission: Any = None
    is_answered: bool = False
    is_correct: Optional[bool] = None
    # ответ отправлен на проверку, но ещё не оценён
    grading: bool = False
    # таймер сработал во время проверки
    expired: bool = False


@dataclass(frozen=True)
class RoundView:
    state: str
    round_index: Optional[int]
    challenge: Optional[Challenge]
    is_answered: bool
    is_correct: Optional[bool]
    difficulty: int


@dataclass(frozen=True)
class SessionOutcome:
    result: GameSessionResult
    reward: TokenReward
    receipt: Optional[SessionReceipt] = None
    error: Optional[PersistenceFailure] = None

    @property
    def persisted(self) -> bool:
        return self.receipt is not None

    @property
    def tokens_earned(self) -> int:
        # Сервер пересчитывает награду сам - его значение главнее локального.
        if self.receipt is not None:
            return self.receipt.tokens_earned
        return self.reward.tokens_earned

    @property
    def new_balance(self) -> Optional[int]:
        return self.receipt.new_balance if self.receipt is not None else None


SessionEvent = Union[RoundView, SessionOutcome, ArcadeError]


class _StaleResponse(Exception):
    """Ответ пришёл для раунда, с которого сессия уже ушла."""


class GameSession:
    """
    Одна партия в одном режиме: IDLE -> IN_PROGRESS -> COMPLETED.

    Раунд: запрос задания -> ответ (или таймаут) -> оценка -> новая сложность ->
    следующий раунд или завершение. Режим (GameMode) решает только, как оценить ответ.

    Каждый раунд завершается ровно один раз: кто первым пришёл - ответ или таймер,
    тот и закрывает раунд, второй вызов игнорируется.
    """

    def __init__(
        self,
        mode: GameMode,
        player: PlayerContext,
        source: ChallengeSource,
        store: SessionStore,
        level_cfg: LevelConfig = LevelConfig(),
        listener: Optional[Callable[[SessionEvent], None]] = None,
        event_log: Optional[JsonlLogger] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.mode = mode
        self.player = player
        self.source = source
        self.store = store
        self.listener = listener
        self.event_log = event_log
        self.session_id = uuid.uuid4().hex

        self.state: str = STATE_IDLE
        self.stats = SessionStats()
        self.adjuster = DifficultyAdjuster(rules=mode.difficulty_rules(), level_cfg=level_cfg)
        self.difficulty: int = level_cfg.start_level
        self.current_round: Optional[ChallengeRound] = None
        self.timer = RoundTimer(clock)

        self.result: Optional[GameSessionResult] = None
        self.reward: Optional[TokenReward] = None
        self.outcome: Optional[SessionOutcome] = None
        self.last_error: Optional[ArcadeError] = None

        self._epoch: int = 0
        self._inflight: Optional[asyncio.Future] = None
        self._background: set = set()

    # ------------------------------------------------------------------
    # Публичные переходы
    # ------------------------------------------------------------------

    async def start(self) -> RoundView:
        if self.state != STATE_IDLE:
            raise RuntimeError(f"session_not_idle:{self.state}")
        self.stats.reset()
        self.mode.start()
        self.difficulty = self.adjuster.reset()
        self.state = STATE_IN_PROGRESS
        logger.info("session %s started: mode=%s user=%s", self.session_id, self.mode.mode, self.player.user_id)
        try:
            await self._open_round()
        except _StaleResponse:
            pass
        return self.snapshot()

    async def retry(self) -> RoundView:
        """Повторный запрос задания после ChallengeSourceFailure."""
        if self.state != STATE_IN_PROGRESS:
            raise RuntimeError(f"session_not_in_progress:{self.state}")
        rnd = self.current_round
        if rnd is not None and not rnd.is_answered:
            return self.snapshot()
        try:
            await self._open_round()
        except _StaleResponse:
            pass
        return self.snapshot()

    async def answer(self, submission: Any) -> RoundView:
        rnd = self.current_round
        if self.state != STATE_IN_PROGRESS or rnd is None or rnd.is_answered or rnd.grading:
            return self.snapshot()

        response_time = self.timer.elapsed()
        rnd.grading = True
        rnd.submission = submission
        try:
            scored = await self._call(
                self.mode.score(rnd.challenge, submission, self.source, response_time)
            )
        except _StaleResponse:
            return self.snapshot()
        except Exception:
            # Ответ не засчитан: раунд снова открыт, игрок может повторить.
            rnd.grading = False
            rnd.submission = None
            if rnd.expired:
                self._spawn(self.timeout())
            raise
        rnd.grading = False

        try:
            await self._finish_round(rnd, scored.correct, scored.points, response_time, False, scored.feedback)
        except _StaleResponse:
            pass
        return self.snapshot()

    async def timeout(self) -> RoundView:
        rnd = self.current_round
        if not self.mode.accepts_timeout:
            return self.snapshot()
        if self.state != STATE_IN_PROGRESS or rnd is None or rnd.is_answered:
            return self.snapshot()
        if rnd.grading:
            rnd.expired = True
            return self.snapshot()
        limit = self.mode.round_time_limit_sec
        response_time = limit if limit is not None else self.timer.elapsed()
        try:
            await self._finish_round(rnd, False, 0.0, response_time, True, "Time's up")
        except _StaleResponse:
            pass
        return self.snapshot()

    async def retry_submit(self) -> Optional[SessionOutcome]:
        """Повторная отправка итогов после PersistenceFailure."""
        if self.state != STATE_COMPLETED or self.result is None:
            raise RuntimeError(f"session_not_completed:{self.state}")
        if self.outcome is not None and self.outcome.error is None:
            return self.outcome
        await self._persist()
        return self.outcome

    def cancel(self) -> None:
        """Уход со страницы: таймер снят, запрос в полёте отменён, поздние ответы выбрасываются."""
        if self.state in (STATE_COMPLETED, STATE_CANCELLED):
            return
        self.state = STATE_CANCELLED
        self._epoch += 1
        self.timer.cancel()
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
        logger.info("session %s cancelled", self.session_id)

    def snapshot(self) -> RoundView:
        rnd = self.current_round
        return RoundView(
            state=self.state,
            round_index=rnd.index if rnd is not None else None,
            challenge=rnd.challenge if rnd is not None else None,
            is_answered=rnd.is_answered if rnd is not None else False,
            is_correct=rnd.is_correct if rnd is not None else None,
            difficulty=self.difficulty,
        )

    # ------------------------------------------------------------------
    # Внутренние шаги
    # ------------------------------------------------------------------

    async def _open_round(self) -> None:
        challenge = await self._call(self.mode.next_challenge(self.source, self.difficulty))
        self.current_round = ChallengeRound(index=len(self.stats.rounds), challenge=challenge)
        rnd = self.current_round
        self.timer.start(self.mode.round_time_limit_sec, lambda: self._on_timer_expired(rnd))
        self._emit(self.snapshot())

    async def _finish_round(
        self,
        rnd: ChallengeRound,
        correct: bool,
        points: float,
        response_time: float,
        is_timeout: bool,
        feedback: str,
    ) -> None:
        # Флаг ставится до первого await - второй переход по этому раунду невозможен.
        rnd.is_answered = True
        rnd.is_correct = correct
        self.timer.cancel()
        self._epoch += 1

        result = RoundResult(
            round_index=rnd.index,
            correct=correct,
            is_timeout=is_timeout,
            points=points,
            response_time_sec=response_time,
            difficulty=self.difficulty,
            feedback=feedback,
        )
        self.stats.record(result)
        self._log_round(result)
        self._emit(self.snapshot())

        if self.mode.is_finished(self.stats):
            await self._complete()
            return
        self.difficulty = self.adjuster.update(self.stats.performance_sample())
        await self._open_round()

    async def _complete(self) -> None:
        self.timer.cancel()
        self.result = self.mode.build_result(self.stats, self.difficulty)
        self.reward = self.mode.compute_reward(self.result)
        self.state = STATE_COMPLETED
        logger.info(
            "session %s completed: score=%s accuracy=%.1f tokens=%s",
            self.session_id,
            self.result.score,
            self.result.accuracy_percent,
            self.reward.tokens_earned,
        )
        await self._persist()

    async def _persist(self) -> None:
        try:
            receipt = await self._call(self.mode.submit(self.store, self.result, self.session_id))
        except _StaleResponse:
            return
        except PersistenceFailure as exc:
            logger.warning("session %s not saved: %s", self.session_id, exc.reason)
            self.last_error = exc
            self.outcome = SessionOutcome(result=self.result, reward=self.reward, error=exc)
        else:
            if receipt is None:
                logger.info("session %s: nothing to submit", self.session_id)
            elif receipt.tokens_earned != self.reward.tokens_earned:
                logger.info(
                    "session %s: server reward %s differs from local %s",
                    self.session_id,
                    receipt.tokens_earned,
                    self.reward.tokens_earned,
                )
            self.outcome = SessionOutcome(result=self.result, reward=self.reward, receipt=receipt)
        self._log_session()
        self._emit(self.outcome)

    async def _call(self, coro):
        """Один запрос к внешней стороне за раз; результат устаревшего раунда выбрасывается."""
        epoch = self._epoch
        task = asyncio.ensure_future(coro)
        self._inflight = task
        try:
            value = await task
        except asyncio.CancelledError:
            if self.state == STATE_CANCELLED:
                raise _StaleResponse() from None
            raise
        except Exception:
            if epoch != self._epoch or self.state == STATE_CANCELLED:
                raise _StaleResponse() from None
            raise
        finally:
            if self._inflight is task:
                self._inflight = None
        if epoch != self._epoch or self.state == STATE_CANCELLED:
            raise _StaleResponse()
        return value

    def _on_timer_expired(self, rnd: ChallengeRound) -> None:
        if self.current_round is not rnd or rnd.is_answered:
            return
        if rnd.grading:
            rnd.expired = True
            return
        self._spawn(self.timeout())

    def _spawn(self, coro) -> None:
        task = asyncio.ensure_future(self._run_background(coro))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _run_background(self, coro) -> None:
        # Ошибки переходов по таймеру уходят слушателю, а не в "never retrieved".
        try:
            await coro
        except ArcadeError as exc:
            logger.warning("session %s background transition failed: %s", self.session_id, exc.reason)
            self.last_error = exc
            self._emit(exc)
        except Exception as exc:
            logger.exception("session %s background transition crashed", self.session_id)
            error = ArcadeError("unexpected_error", f"{type(exc).__name__}: {exc}")
            error.__cause__ = exc
            self.last_error = error
            self._emit(error)

    def _emit(self, event: SessionEvent) -> None:
        if self.listener is not None:
            self.listener(event)

    def _log_round(self, result: RoundResult) -> None:
        if self.event_log is None:
            return
        self.event_log.write(
            {
                "timestamp": int(time.time()),
                "event_type": "round_end",
                "session_id": self.session_id,
                "user_id": self.player.user_id,
                "mode": self.mode.mode,
                "round": result.round_index,
                "difficulty": result.difficulty,
                "correct": int(result.correct),
                "timeout": int(result.is_timeout),
                "points": result.points,
                "response_time": result.response_time_sec,
            }
        )

    def _log_session(self) -> None:
        if self.event_log is None or self.outcome is None:
            return
        result = self.outcome.result
        self.event_log.write(
            {
                "timestamp": int(time.time()),
                "event_type": "session_end",
                "session_id": self.session_id,
                "user_id": self.player.user_id,
                "mode": self.mode.mode,
                "score": result.score,
                "accuracy": result.accuracy_percent,
                "streak": result.streak,
                "total_time": result.total_time_sec,
                "difficulty": result.difficulty,
                "questions_answered": result.questions_answered,
                "tokens_earned": self.outcome.tokens_earned,
                "persisted": int(self.outcome.persisted),
            }
        )
