import json
import sqlite3
import uuid
from pathlib import Path
from typing import Any, Optional


def ensure_db(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(path) as conn:
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS game_sessions (
                id TEXT PRIMARY KEY,
                submission_id TEXT NOT NULL UNIQUE,
                user_id TEXT NOT NULL,
                game_id TEXT NOT NULL,
                created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                score REAL NOT NULL,
                tokens_earned INTEGER NOT NULL,
                payload_json TEXT NOT NULL
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS user_tokens (
                user_id TEXT PRIMARY KEY,
                balance INTEGER NOT NULL DEFAULT 0,
                total_earned INTEGER NOT NULL DEFAULT 0,
                updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS wallet_transactions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                amount INTEGER NOT NULL,
                transaction_type TEXT NOT NULL,
                description TEXT,
                session_id TEXT NOT NULL,
                created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY(session_id) REFERENCES game_sessions(id)
            );
            """
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_sessions_user_ts ON game_sessions(user_id, created_at);"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_wallet_user_ts ON wallet_transactions(user_id, created_at);"
        )


def _find_session(cur: sqlite3.Cursor, submission_id: str) -> Optional[dict[str, Any]]:
    row = cur.execute(
        """
        SELECT s.id, s.tokens_earned, t.balance
        FROM game_sessions s
        LEFT JOIN user_tokens t ON t.user_id = s.user_id
        WHERE s.submission_id = ?
        """,
        (submission_id,),
    ).fetchone()
    if row is None:
        return None
    session_id, tokens, balance = row
    return {"session_id": session_id, "tokens_earned": int(tokens), "new_balance": int(balance or 0), "duplicate": True}


def record_session(
    db_path: Path,
    submission_id: str,
    user_id: str,
    game_id: str,
    score: float,
    tokens_earned: int,
    payload: dict[str, Any],
) -> dict[str, Any]:
    """
    Сессия + начисление токенов одной транзакцией.
    Повторная отправка с тем же submission_id ничего не начисляет и возвращает первую квитанцию.
    """
    with sqlite3.connect(db_path) as conn:
        cur = conn.cursor()
        existing = _find_session(cur, submission_id)
        if existing is not None:
            return existing

        session_id = uuid.uuid4().hex
        try:
            cur.execute(
                """
                INSERT INTO game_sessions (id, submission_id, user_id, game_id, score, tokens_earned, payload_json)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session_id,
                    submission_id,
                    user_id,
                    game_id,
                    score,
                    tokens_earned,
                    json.dumps(payload, ensure_ascii=False, separators=(",", ":")),
                ),
            )
        except sqlite3.IntegrityError:
            # параллельный запрос с тем же submission_id успел раньше
            conn.rollback()
            existing = _find_session(cur, submission_id)
            if existing is None:
                raise
            return existing
        cur.execute(
            """
            INSERT INTO user_tokens (user_id, balance, total_earned)
            VALUES (?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                balance = balance + excluded.balance,
                total_earned = total_earned + excluded.total_earned,
                updated_at = CURRENT_TIMESTAMP
            """,
            (user_id, tokens_earned, tokens_earned),
        )
        cur.execute(
            """
            INSERT INTO wallet_transactions (user_id, amount, transaction_type, description, session_id)
            VALUES (?, ?, 'game_reward', ?, ?)
            """,
            (user_id, tokens_earned, f"Earned from {game_id}", session_id),
        )
        balance = cur.execute(
            "SELECT balance FROM user_tokens WHERE user_id = ?", (user_id,)
        ).fetchone()[0]
        conn.commit()

    return {"session_id": session_id, "tokens_earned": tokens_earned, "new_balance": int(balance), "duplicate": False}


def get_balance(db_path: Path, user_id: str) -> dict[str, int]:
    if not db_path.exists():
        return {"balance": 0, "total_earned": 0}
    with sqlite3.connect(db_path) as conn:
        row = conn.execute(
            "SELECT balance, total_earned FROM user_tokens WHERE user_id = ?", (user_id,)
        ).fetchone()
    if row is None:
        return {"balance": 0, "total_earned": 0}
    return {"balance": int(row[0]), "total_earned": int(row[1])}


def read_transactions(db_path: Path, user_id: str, limit: int = 100) -> list[dict[str, Any]]:
    safe_limit = max(1, min(500, int(limit)))
    if not db_path.exists():
        return []
    with sqlite3.connect(db_path) as conn:
        rows = conn.execute(
            """
            SELECT amount, transaction_type, description, session_id, created_at
            FROM wallet_transactions
            WHERE user_id = ?
            ORDER BY id ASC
            LIMIT ?
            """,
            (user_id, safe_limit),
        ).fetchall()
    return [
        {
            "amount": int(amount),
            "transaction_type": transaction_type,
            "description": description,
            "session_id": session_id,
            "created_at": created_at,
        }
        for amount, transaction_type, description, session_id, created_at in rows
    ]
