import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import replace
from typing import Any, Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse

from adaptation.difficulty import adjust
from adaptation.reaction import score_reaction
from adaptation.rewards import compute_tokens
from backend.app.config import Settings, load_settings
from backend.app.db import ensure_db, get_balance, read_transactions, record_session
from config.settings import LevelConfig
from data.errors import InvalidMeasurement
from data.models import GameSessionResult, PerformanceSample, ReactionMeasurement, safe_number

logger = logging.getLogger(__name__)


def _check_auth(settings: Settings, body: dict[str, Any]) -> str:
    api_key = str(body.get("api_key", ""))
    if not api_key or api_key != settings.api_key:
        raise HTTPException(status_code=401, detail="invalid_api_key")
    user_id = str(body.get("user_id", "")).strip()
    if not user_id:
        raise HTTPException(status_code=400, detail="missing_required_fields:user_id")
    return user_id


def _game_id(body: dict[str, Any]) -> str:
    game_id = str(body.get("gameId", "") or "").strip()
    if not game_id:
        raise HTTPException(status_code=400, detail="missing_required_fields:gameId")
    return game_id


def _submission_id(body: dict[str, Any]) -> str:
    return str(body.get("submissionId", "") or "").strip() or uuid.uuid4().hex


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    level_cfg = LevelConfig()

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        ensure_db(settings.db_path)
        yield

    app = FastAPI(title="Token Arcade API", version="0.1.0", lifespan=lifespan)

    @app.get("/health")
    def health() -> dict[str, bool]:
        return {"ok": True}

    @app.post("/v1/difficulty/adjust")
    def adjust_difficulty(body: dict[str, Any]) -> dict[str, Any]:
        _check_auth(settings, body)
        sample = PerformanceSample.from_raw(body.get("accuracy"), body.get("streak"), body.get("avgTime"))
        current = int(safe_number(body.get("currentDifficulty"), level_cfg.start_level))
        current = max(level_cfg.min_level, min(level_cfg.max_level, current))
        new_level = adjust(sample, current, level_cfg=level_cfg)
        return {"ok": True, "newDifficulty": new_level, "adjustment": new_level - current}

    @app.post("/v1/sessions")
    def submit_session(body: dict[str, Any]) -> JSONResponse:
        user_id = _check_auth(settings, body)
        game_id = _game_id(body)

        if body.get("score") is None:
            raise HTTPException(status_code=400, detail="missing_required_fields:score")
        # Токены считаются здесь заново, присланному клиентом значению не доверяем.
        result = GameSessionResult.from_raw(
            score=body.get("score"),
            accuracy=body.get("accuracy"),
            streak=body.get("streak"),
            total_time=body.get("totalTime"),
            difficulty=body.get("difficulty"),
            questions_answered=body.get("questionsAnswered"),
        )
        result = replace(result, difficulty=min(level_cfg.max_level, result.difficulty))
        reward = compute_tokens(result)
        receipt = record_session(
            db_path=settings.db_path,
            submission_id=_submission_id(body),
            user_id=user_id,
            game_id=game_id,
            score=result.score,
            tokens_earned=reward.tokens_earned,
            payload=result.to_payload(),
        )
        logger.info(
            "session %s for %s/%s: tokens=%s duplicate=%s",
            receipt["session_id"],
            user_id,
            game_id,
            receipt["tokens_earned"],
            receipt["duplicate"],
        )
        return JSONResponse(
            content={
                "ok": True,
                "sessionId": receipt["session_id"],
                "tokensEarned": receipt["tokens_earned"],
                "newBalance": receipt["new_balance"],
                "duplicate": receipt["duplicate"],
            },
            status_code=200,
        )

    @app.post("/v1/reaction-sessions")
    def submit_reaction(body: dict[str, Any]) -> JSONResponse:
        user_id = _check_auth(settings, body)
        game_id = _game_id(body)
        start = body.get("startTime")
        end = body.get("endTime")
        if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in (start, end)):
            raise HTTPException(status_code=400, detail="missing_required_fields:startTime,endTime")

        measurement = ReactionMeasurement(start_ms=int(start), end_ms=int(end))
        try:
            scored = score_reaction(measurement)
        except InvalidMeasurement as exc:
            raise HTTPException(status_code=400, detail=exc.reason) from exc

        receipt = record_session(
            db_path=settings.db_path,
            submission_id=_submission_id(body),
            user_id=user_id,
            game_id=game_id,
            score=scored.reaction_time_ms,
            tokens_earned=scored.tokens_earned,
            payload={"startTime": measurement.start_ms, "endTime": measurement.end_ms},
        )
        return JSONResponse(
            content={
                "ok": True,
                "sessionId": receipt["session_id"],
                "reactionTime": scored.reaction_time_ms,
                "tokensEarned": receipt["tokens_earned"],
                "newBalance": receipt["new_balance"],
                "duplicate": receipt["duplicate"],
            },
            status_code=200,
        )

    @app.get("/v1/balance/{user_id}")
    def balance(user_id: str) -> dict[str, Any]:
        return {"ok": True, "user_id": user_id, **get_balance(settings.db_path, user_id)}

    @app.get("/v1/transactions/{user_id}")
    def transactions(user_id: str, limit: int = 100) -> dict[str, Any]:
        rows = read_transactions(settings.db_path, user_id, limit=limit)
        return {"ok": True, "rows": rows, "count": len(rows)}

    return app


app = create_app()
