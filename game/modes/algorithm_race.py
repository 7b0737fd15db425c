from typing import Any

from data.challenge_client import ChallengeSource
from data.models import Challenge
from game.modes.base import GameMode, RoundScore

TIME_BONUS_WINDOW_SEC = 60.0


def time_bonus(response_time_sec: float) -> float:
    return max(0.0, TIME_BONUS_WINDOW_SEC - response_time_sec) * 2


class AlgorithmRaceMode(GameMode):
    mode = "algorithm_race"

    async def score(
        self,
        challenge: Challenge,
        submission: Any,
        source: ChallengeSource,
        response_time_sec: float,
    ) -> RoundScore:
        grade = await source.grade_submission(self.mode, challenge, submission, challenge.difficulty)
        if grade.is_correct:
            points = 100 * challenge.difficulty + time_bonus(response_time_sec)
            return RoundScore(correct=True, points=points, feedback=grade.feedback)
        feedback = grade.feedback
        if grade.passed_count is not None:
            total = len(challenge.payload.get("testCases", []))
            feedback = f"{grade.passed_count}/{total} test cases passed. {feedback}".strip()
        return RoundScore(correct=False, feedback=feedback)
