import asyncio
import json
from urllib import error

import pytest

from config.settings import ClientConfig
from data.challenge_client import HttpChallengeSource, validate_challenge
from data.errors import ChallengeSourceFailure, PersistenceFailure
from data.models import Challenge, GameSessionResult, PlayerContext, ReactionMeasurement
from data.session_client import HttpSessionStore, parse_receipt

PLAYER = PlayerContext(user_id="user-1", api_key="secret")
CONFIG = ClientConfig(backend_url="http://backend.test", challenge_url="http://functions.test/v1")

QUIZ = {
    "question": "2 + 2?",
    "options": ["3", "4", "5", "22"],
    "correctAnswer": 1,
    "explanation": "Basic arithmetic",
}


class FakeResponse:
    def __init__(self, payload, status=200):
        self.status = status
        self._raw = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")

    def read(self):
        return self._raw

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeUrlopen:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, req, timeout=None):
        self.requests.append(req)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def body(self, index=-1):
        return json.loads(self.requests[index].data.decode("utf-8"))


@pytest.fixture
def urlopen(monkeypatch):
    def install(*responses):
        fake = FakeUrlopen(*responses)
        monkeypatch.setattr("urllib.request.urlopen", fake)
        return fake

    return install


def test_fetch_quiz_challenge(urlopen):
    fake = urlopen(FakeResponse(QUIZ))
    source = HttpChallengeSource(PLAYER, CONFIG)

    challenge = asyncio.run(source.fetch_challenge("quiz", 4))

    assert challenge.mode == "quiz"
    assert challenge.difficulty == 4
    assert challenge.payload["correctAnswer"] == 1
    req = fake.requests[0]
    assert req.full_url == "http://functions.test/v1/generate-quiz"
    assert req.get_header("Authorization") == "Bearer secret"
    assert fake.body() == {"difficulty": 4}


def test_incomplete_quiz_is_rejected():
    broken = dict(QUIZ, options=["a", "b", "c"])
    with pytest.raises(ChallengeSourceFailure) as exc_info:
        validate_challenge("quiz", broken)
    assert exc_info.value.reason == "incomplete_question_data"

    for answer in (4, True, "1"):
        with pytest.raises(ChallengeSourceFailure):
            validate_challenge("quiz", dict(QUIZ, correctAnswer=answer))


def test_debug_and_algorithm_shapes():
    assert validate_challenge("debug", {"buggyCode": "a", "fixedCode": "b"})["description"] == ""
    with pytest.raises(ChallengeSourceFailure):
        validate_challenge("debug", {"buggyCode": "a"})
    with pytest.raises(ChallengeSourceFailure):
        validate_challenge("algorithm_race", {"problem": "p", "testCases": []})


@pytest.mark.parametrize(
    "response, reason",
    [
        (error.HTTPError("http://functions.test", 500, "boom", None, None), "http_status_500"),
        (error.URLError("refused"), "connection_error"),
        (FakeResponse(b"<html>"), "invalid_json_payload"),
        (FakeResponse({"error": "rate limited"}), "remote_error"),
    ],
)
def test_fetch_failures_raise_challenge_source_failure(urlopen, response, reason):
    urlopen(response)
    source = HttpChallengeSource(PLAYER, CONFIG)
    with pytest.raises(ChallengeSourceFailure) as exc_info:
        asyncio.run(source.fetch_challenge("quiz", 1))
    assert exc_info.value.reason == reason
    assert source.last_error == reason


def test_local_modes_have_no_remote_source():
    source = HttpChallengeSource(PLAYER, CONFIG)
    with pytest.raises(ChallengeSourceFailure) as exc_info:
        asyncio.run(source.fetch_challenge("memory_match", 1))
    assert exc_info.value.reason == "unsupported_mode"


def test_grade_algorithm_submission(urlopen):
    fake = urlopen(FakeResponse({"allPassed": False, "passedCount": 1, "feedback": "Off by one"}))
    source = HttpChallengeSource(PLAYER, CONFIG)
    challenge = Challenge(mode="algorithm_race", difficulty=2, payload={"problem": "p", "testCases": [{"in": 1}]})

    grade = asyncio.run(source.grade_submission("algorithm_race", challenge, "  def f(x): return x  ", 2))

    assert not grade.is_correct
    assert grade.passed_count == 1
    assert grade.feedback == "Off by one"
    assert fake.requests[0].full_url.endswith("/check-algorithm-solution")
    assert fake.body() == {"userSolution": "def f(x): return x", "testCases": [{"in": 1}], "difficulty": 2}


def test_grade_without_verdict_is_failure(urlopen):
    urlopen(FakeResponse({"feedback": "?"}))
    source = HttpChallengeSource(PLAYER, CONFIG)
    challenge = Challenge(mode="algorithm_race", difficulty=1, payload={"testCases": [1]})
    with pytest.raises(ChallengeSourceFailure) as exc_info:
        asyncio.run(source.grade_submission("algorithm_race", challenge, "x", 1))
    assert exc_info.value.reason == "invalid_grading_response"


def test_parse_receipt():
    receipt = parse_receipt({"ok": True, "sessionId": "s1", "tokensEarned": 12, "newBalance": 40})
    assert receipt.tokens_earned == 12
    assert receipt.new_balance == 40
    with pytest.raises(PersistenceFailure):
        parse_receipt({"ok": True})
    with pytest.raises(PersistenceFailure):
        parse_receipt({"tokensEarned": 3})


def test_submit_session(urlopen, tmp_path):
    fake = urlopen(FakeResponse({"ok": True, "sessionId": "s1", "tokensEarned": 9, "newBalance": 9}))
    store = HttpSessionStore(PLAYER, CONFIG, tmp_path / "pending.json")
    result = GameSessionResult(score=50, accuracy_percent=80.0, streak=2, total_time_sec=40.0, difficulty=3, questions_answered=5)

    receipt = asyncio.run(store.submit_session("ai-quiz-challenge", result, "sub-1"))

    assert receipt.session_id == "s1"
    assert receipt.tokens_earned == 9
    assert fake.requests[0].full_url == "http://backend.test/v1/sessions"
    body = fake.body()
    assert body["api_key"] == "secret"
    assert body["user_id"] == "user-1"
    assert body["submissionId"] == "sub-1"
    assert body["gameId"] == "ai-quiz-challenge"
    assert body["totalTime"] == 40.0
    assert body["questionsAnswered"] == 5
    assert store.pending_count() == 0


def test_submit_reaction(urlopen):
    fake = urlopen(FakeResponse({"ok": True, "sessionId": "s2", "tokensEarned": 20}))
    store = HttpSessionStore(PLAYER, CONFIG)

    receipt = asyncio.run(store.submit_reaction("reaction-time-challenge", ReactionMeasurement(100, 600)))

    assert receipt.new_balance is None
    body = fake.body()
    assert fake.requests[0].full_url.endswith("/v1/reaction-sessions")
    assert body["startTime"] == 100
    assert body["endTime"] == 600
    assert body["submissionId"]


def test_failed_submit_is_queued_and_resent(urlopen, tmp_path):
    pending = tmp_path / "pending.json"
    fake = urlopen(
        error.URLError("offline"),
        FakeResponse({"ok": True, "sessionId": "s1", "tokensEarned": 5, "newBalance": 5}),
    )
    store = HttpSessionStore(PLAYER, CONFIG, pending)
    result = GameSessionResult(score=10, accuracy_percent=20.0, streak=0)

    with pytest.raises(PersistenceFailure) as exc_info:
        asyncio.run(store.submit_session("code-debug", result, "sub-9"))
    assert exc_info.value.reason == "connection_error"
    assert store.pending_count() == 1
    assert pending.exists()

    receipts = asyncio.run(store.retry_pending())

    assert [r.session_id for r in receipts] == ["s1"]
    assert fake.body(1)["submissionId"] == "sub-9"
    assert store.pending_count() == 0
    assert not pending.exists()


def test_retry_pending_stops_on_first_failure(urlopen, tmp_path):
    urlopen(
        error.URLError("offline"),
        error.URLError("offline"),
        error.URLError("still offline"),
    )
    store = HttpSessionStore(PLAYER, CONFIG, tmp_path / "pending.json")
    result = GameSessionResult(score=0, accuracy_percent=0.0, streak=0)
    for sub in ("a", "b"):
        with pytest.raises(PersistenceFailure):
            asyncio.run(store.submit_session("code-debug", result, sub))
    assert store.pending_count() == 2

    with pytest.raises(PersistenceFailure):
        asyncio.run(store.retry_pending())
    assert store.pending_count() == 2


def test_fetch_balance(urlopen):
    fake = urlopen(FakeResponse({"ok": True, "balance": 77}))
    store = HttpSessionStore(PLAYER, CONFIG)
    assert asyncio.run(store.fetch_balance()) == 77
    assert fake.requests[0].full_url == "http://backend.test/v1/balance/user-1"
