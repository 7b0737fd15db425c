import random
from dataclasses import dataclass
from typing import Any, List, Optional

from config.settings import ModeConfig
from data.challenge_client import ChallengeSource
from data.models import Challenge, GameSessionResult
from game.modes.base import GameMode, RoundScore
from game.session_metrics import SessionStats

PROGRAMMING_CONCEPTS = [
    "const", "let", "var", "function", "class", "async", "await", "return",
    "if", "else", "for", "while", "switch", "break", "continue", "try",
]


@dataclass
class MemoryCard:
    card_id: int
    content: str
    is_matched: bool = False


def deal_cards(rng: random.Random, pairs: int) -> List[MemoryCard]:
    concepts = PROGRAMMING_CONCEPTS[:pairs]
    contents = concepts + concepts
    rng.shuffle(contents)
    return [MemoryCard(card_id=i, content=c) for i, c in enumerate(contents)]


def memory_score(moves: int, elapsed_sec: float) -> float:
    return max(0.0, 1000 - moves * 10 - int(elapsed_sec) * 2)


class MemoryMatchMode(GameMode):
    """
    Раунд = один ход (открыть две карты). Совпадение - верный ответ,
    промах - лишняя попытка. Партия заканчивается, когда найдены все пары.
    """

    mode = "memory_match"
    rules = None
    accepts_timeout = False

    def __init__(self, config: ModeConfig, rng: Optional[random.Random] = None) -> None:
        super().__init__(config, rng)
        self.pairs = config.total_rounds
        self.cards: List[MemoryCard] = []

    def start(self) -> None:
        self.cards = deal_cards(self.rng, self.pairs)

    async def next_challenge(self, source: ChallengeSource, difficulty: int) -> Challenge:
        # Доска раздаётся локально, внешний генератор не нужен.
        board = [
            {"id": c.card_id, "content": c.content, "isMatched": c.is_matched}
            for c in self.cards
        ]
        return Challenge(mode=self.mode, difficulty=difficulty, payload={"cards": board})

    async def score(
        self,
        challenge: Challenge,
        submission: Any,
        source: ChallengeSource,
        response_time_sec: float,
    ) -> RoundScore:
        first, second = self._pick(submission)
        if first.content == second.content:
            first.is_matched = True
            second.is_matched = True
            return RoundScore(correct=True, feedback="Match found")
        return RoundScore(correct=False, feedback="No match")

    def is_finished(self, stats: SessionStats) -> bool:
        return stats.correct >= self.pairs

    def build_result(self, stats: SessionStats, difficulty: int) -> GameSessionResult:
        return stats.to_result(
            difficulty,
            questions_answered=stats.correct,
            score=memory_score(stats.attempts, stats.total_time_sec),
        )

    def _pick(self, submission: Any):
        try:
            first_id, second_id = submission
            first = self.cards[int(first_id)]
            second = self.cards[int(second_id)]
        except (TypeError, ValueError, IndexError) as exc:
            raise ValueError("invalid_card_selection") from exc
        if first.card_id == second.card_id or first.is_matched or second.is_matched:
            raise ValueError("invalid_card_selection")
        return first, second
