from __future__ import annotations

from dataclasses import dataclass, field

from data.models import GameSessionResult, PerformanceSample, RoundResult


@dataclass
class SessionStats:
    """Накопленная статистика партии: попытки, точность, серия, очки, время."""

    attempts: int = 0
    correct: int = 0
    streak: int = 0
    best_streak: int = 0
    score: float = 0.0
    timeouts: int = 0
    response_times: list[float] = field(default_factory=list)
    rounds: list[RoundResult] = field(default_factory=list)

    def reset(self) -> None:
        self.attempts = 0
        self.correct = 0
        self.streak = 0
        self.best_streak = 0
        self.score = 0.0
        self.timeouts = 0
        self.response_times = []
        self.rounds = []

    def record(self, result: RoundResult) -> None:
        self.attempts += 1
        self.rounds.append(result)
        self.response_times.append(result.response_time_sec)
        if result.is_timeout:
            self.timeouts += 1
        if result.correct:
            self.correct += 1
            self.streak += 1
            self.best_streak = max(self.best_streak, self.streak)
            self.score += result.points
        else:
            self.streak = 0

    @property
    def accuracy_percent(self) -> float:
        if self.attempts == 0:
            return 0.0
        return self.correct / self.attempts * 100

    @property
    def total_time_sec(self) -> float:
        return sum(self.response_times)

    @property
    def avg_response_time_sec(self) -> float | None:
        if not self.response_times:
            return None
        return self.total_time_sec / len(self.response_times)

    def performance_sample(self) -> PerformanceSample:
        return PerformanceSample(
            accuracy_percent=self.accuracy_percent,
            streak=self.streak,
            avg_response_time_sec=self.avg_response_time_sec,
        )

    def to_result(self, difficulty: int, questions_answered: int | None = None, score: float | None = None) -> GameSessionResult:
        return GameSessionResult(
            score=self.score if score is None else score,
            accuracy_percent=self.accuracy_percent,
            streak=self.streak,
            total_time_sec=self.total_time_sec,
            difficulty=difficulty,
            questions_answered=self.attempts if questions_answered is None else questions_answered,
        )
