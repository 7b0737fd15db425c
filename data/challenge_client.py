import asyncio
import logging
from typing import Any, Dict, Optional, Protocol

from config.settings import ClientConfig
from data.errors import ChallengeSourceFailure
from data.http_json import HttpJsonError, http_post_json, join_url
from data.models import Challenge, GradeResult, PlayerContext

logger = logging.getLogger(__name__)


class ChallengeSource(Protocol):
    async def fetch_challenge(self, mode: str, difficulty: int) -> Challenge:
        ...

    async def grade_submission(
        self, mode: str, challenge: Challenge, submission: Any, difficulty: int
    ) -> GradeResult:
        ...


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def validate_challenge(mode: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Проверяет форму ответа генератора. Битый контент -> ChallengeSourceFailure."""
    if mode == "quiz":
        options = data.get("options")
        answer = data.get("correctAnswer")
        if (
            not _is_text(data.get("question"))
            or not isinstance(options, list)
            or len(options) != 4
            or isinstance(answer, bool)
            or not isinstance(answer, int)
            or not 0 <= answer < len(options)
        ):
            raise ChallengeSourceFailure("incomplete_question_data")
        return {
            "question": data["question"],
            "options": [str(o) for o in options],
            "correctAnswer": answer,
            "explanation": str(data.get("explanation") or ""),
        }
    if mode == "debug":
        if not _is_text(data.get("buggyCode")) or not _is_text(data.get("fixedCode")):
            raise ChallengeSourceFailure("incomplete_debug_challenge")
        return {
            "buggyCode": data["buggyCode"],
            "fixedCode": data["fixedCode"],
            "description": str(data.get("description") or ""),
        }
    if mode == "algorithm_race":
        test_cases = data.get("testCases")
        if not _is_text(data.get("problem")) or not isinstance(test_cases, list) or not test_cases:
            raise ChallengeSourceFailure("incomplete_algorithm_challenge")
        return {
            "problem": data["problem"],
            "testCases": test_cases,
            "hint": str(data.get("hint") or ""),
        }
    raise ChallengeSourceFailure("unsupported_mode", f"No remote challenges for mode {mode}")


class HttpChallengeSource:
    """
    Клиент серверных функций, которые генерируют задания через AI
    и проверяют решения для режимов с внешней проверкой.
    """

    def __init__(self, player: PlayerContext, config: ClientConfig = ClientConfig()) -> None:
        self.player = player
        self.config = config
        self.base_url = config.challenge_url.strip()
        self.last_error: str = ""

    async def fetch_challenge(self, mode: str, difficulty: int) -> Challenge:
        endpoint = self.config.challenge_endpoints.get(mode)
        if endpoint is None:
            raise ChallengeSourceFailure("unsupported_mode", f"No challenge endpoint for mode {mode}")
        data = await self._post(endpoint, {"difficulty": difficulty})
        payload = validate_challenge(mode, data)
        return Challenge(mode=mode, difficulty=difficulty, payload=payload)

    async def grade_submission(
        self, mode: str, challenge: Challenge, submission: Any, difficulty: int
    ) -> GradeResult:
        endpoint = self.config.grading_endpoints.get(mode)
        if endpoint is None:
            raise ChallengeSourceFailure("unsupported_mode", f"No grading endpoint for mode {mode}")
        body = {
            "userSolution": str(submission).strip(),
            "testCases": challenge.payload.get("testCases", []),
            "difficulty": difficulty,
        }
        data = await self._post(endpoint, body)
        all_passed = data.get("allPassed")
        if not isinstance(all_passed, bool):
            raise ChallengeSourceFailure("invalid_grading_response")
        passed_count: Optional[int] = data.get("passedCount")
        if not isinstance(passed_count, int) or isinstance(passed_count, bool):
            passed_count = None
        return GradeResult(
            is_correct=all_passed,
            feedback=str(data.get("feedback") or ""),
            passed_count=passed_count,
        )

    async def _post(self, endpoint: str, body: Dict[str, Any]) -> Dict[str, Any]:
        url = join_url(self.base_url, endpoint)
        headers = {}
        if self.player.api_key:
            headers["Authorization"] = f"Bearer {self.player.api_key}"
        try:
            data = await asyncio.to_thread(
                http_post_json, url, body, self.config.timeout_sec, headers
            )
        except HttpJsonError as exc:
            self.last_error = exc.reason
            logger.warning("challenge request to %s failed: %s", endpoint, exc.reason)
            raise ChallengeSourceFailure(exc.reason) from exc
        if "error" in data:
            self.last_error = "remote_error"
            raise ChallengeSourceFailure("remote_error", str(data["error"]))
        self.last_error = ""
        return data
