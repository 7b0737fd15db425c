from typing import Any

from adaptation.difficulty import SOLVED_RATIO_RULES
from data.challenge_client import ChallengeSource
from data.models import Challenge
from game.modes.base import GameMode, RoundScore


class QuizMode(GameMode):
    mode = "quiz"
    rules = SOLVED_RATIO_RULES

    async def score(
        self,
        challenge: Challenge,
        submission: Any,
        source: ChallengeSource,
        response_time_sec: float,
    ) -> RoundScore:
        # submission - индекс выбранного варианта
        correct = submission == challenge.payload["correctAnswer"]
        if correct:
            return RoundScore(correct=True, points=10 * challenge.difficulty, feedback="Correct!")
        explanation = challenge.payload.get("explanation") or "Try the next one!"
        return RoundScore(correct=False, feedback=explanation)
