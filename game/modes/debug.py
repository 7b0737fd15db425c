import re
from typing import Any

from data.challenge_client import ChallengeSource
from data.models import Challenge
from game.modes.base import GameMode, RoundScore

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_code(code: str) -> str:
    return _WHITESPACE_RE.sub(" ", code).strip().lower()


class DebugMode(GameMode):
    mode = "debug"

    async def score(
        self,
        challenge: Challenge,
        submission: Any,
        source: ChallengeSource,
        response_time_sec: float,
    ) -> RoundScore:
        fixed = challenge.payload["fixedCode"]
        if normalize_code(str(submission or "")) == normalize_code(fixed):
            return RoundScore(
                correct=True,
                points=100 * challenge.difficulty,
                feedback="Perfect! You've successfully fixed the bug.",
            )
        return RoundScore(correct=False, feedback="Not quite right. Review your solution and try again.")
