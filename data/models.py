import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


def safe_number(value: Any, default: float) -> float:
    """Число из сырого значения; None, NaN и мусор -> default."""
    if isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


@dataclass(frozen=True)
class PlayerContext:
    """
    Кто играет. Передаётся в движок и клиенты явно, без глобального состояния.
    """
    user_id: str
    api_key: str = ""


@dataclass(frozen=True)
class PerformanceSample:
    accuracy_percent: float
    streak: int
    avg_response_time_sec: Optional[float] = None

    @classmethod
    def from_raw(cls, accuracy: Any, streak: Any, avg_time: Any = None) -> "PerformanceSample":
        avg = safe_number(avg_time, -1.0)
        return cls(
            accuracy_percent=max(0.0, min(100.0, safe_number(accuracy, 0.0))),
            streak=max(0, int(safe_number(streak, 0.0))),
            avg_response_time_sec=avg if avg >= 0 else None,
        )


@dataclass(frozen=True)
class GameSessionResult:
    """
    Итог одной партии - что уходит в расчёт награды и в хранилище
    """
    score: float
    accuracy_percent: float
    streak: int
    total_time_sec: float = 0.0
    difficulty: int = 1
    questions_answered: int = 0

    @classmethod
    def from_raw(
        cls,
        score: Any,
        accuracy: Any = None,
        streak: Any = None,
        total_time: Any = None,
        difficulty: Any = None,
        questions_answered: Any = None,
    ) -> "GameSessionResult":
        # Присланное снаружи приводится к допустимым границам: точность 0..100, счётчики >= 0.
        return cls(
            score=max(0.0, safe_number(score, 0.0)),
            accuracy_percent=max(0.0, min(100.0, safe_number(accuracy, 0.0))),
            streak=max(0, int(safe_number(streak, 0.0))),
            total_time_sec=max(0.0, safe_number(total_time, 0.0)),
            difficulty=max(1, int(safe_number(difficulty, 1.0))),
            questions_answered=max(0, int(safe_number(questions_answered, 0.0))),
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "accuracy": self.accuracy_percent,
            "streak": self.streak,
            "totalTime": self.total_time_sec,
            "difficulty": self.difficulty,
            "questionsAnswered": self.questions_answered,
        }


@dataclass(frozen=True)
class TokenReward:
    tokens_earned: int


@dataclass(frozen=True)
class ReactionMeasurement:
    start_ms: int
    end_ms: int

    @property
    def reaction_time_ms(self) -> int:
        return self.end_ms - self.start_ms


@dataclass(frozen=True)
class ReactionScore:
    reaction_time_ms: int
    tokens_earned: int


@dataclass(frozen=True)
class Challenge:
    """
    Контент одного раунда. payload зависит от режима:
    quiz -> question/options/correctAnswer/explanation,
    debug -> buggyCode/fixedCode/description,
    algorithm_race -> problem/testCases/hint,
    memory_match -> раскладка карт, reaction -> задержка сигнала.
    """
    mode: str
    difficulty: int
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class GradeResult:
    is_correct: bool
    feedback: str = ""
    passed_count: Optional[int] = None


@dataclass(frozen=True)
class RoundResult:
    round_index: int
    correct: bool
    is_timeout: bool
    points: float
    response_time_sec: float
    difficulty: int
    feedback: str = ""


@dataclass(frozen=True)
class SessionReceipt:
    session_id: str
    tokens_earned: int
    new_balance: Optional[int] = None
