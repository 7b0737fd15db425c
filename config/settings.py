from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class LevelConfig:
    min_level: int = 1
    max_level: int = 10
    start_level: int = 1


@dataclass(frozen=True)
class RewardConfig:
    base_reward: float = 3.0
    accuracy_weight: float = 2.0
    streak_cap: int = 10
    streak_weight: float = 1.5
    # Для 5 вопросов: идеал ~30с, после 90с бонуса нет.
    ideal_time_sec: float = 30.0
    max_time_for_bonus_sec: float = 90.0
    speed_bonus_max: float = 5.0


@dataclass(frozen=True)
class ReactionConfig:
    min_reaction_ms: int = 100
    max_reaction_ms: int = 10000
    countdown_ms: int = 3000
    min_signal_delay_ms: int = 1000
    max_signal_delay_ms: int = 4000


@dataclass(frozen=True)
class ModeConfig:
    mode: str
    game_id: str
    total_rounds: int
    round_time_limit_sec: Optional[float] = None
    adaptive: bool = True


@dataclass(frozen=True)
class GameModesConfig:
    quiz: ModeConfig = ModeConfig(mode="quiz", game_id="ai-quiz-challenge", total_rounds=5)
    debug: ModeConfig = ModeConfig(mode="debug", game_id="code-debug", total_rounds=5)
    algorithm_race: ModeConfig = ModeConfig(
        mode="algorithm_race",
        game_id="algorithm-race",
        total_rounds=5,
        round_time_limit_sec=60.0,
    )
    memory_match: ModeConfig = ModeConfig(
        mode="memory_match",
        game_id="memory-match",
        total_rounds=8,
        adaptive=False,
    )
    reaction: ModeConfig = ModeConfig(
        mode="reaction",
        game_id="reaction-time-challenge",
        total_rounds=1,
        adaptive=False,
    )

    def get(self, mode: str) -> ModeConfig:
        cfg = getattr(self, mode, None)
        if not isinstance(cfg, ModeConfig):
            raise ValueError(f"Unknown mode: {mode}")
        return cfg


@dataclass(frozen=True)
class ClientConfig:
    backend_url: str = "http://127.0.0.1:8000"
    challenge_url: str = "http://127.0.0.1:54321/functions/v1"
    timeout_sec: float = 15.0
    challenge_endpoints: dict = field(
        default_factory=lambda: {
            "quiz": "generate-quiz",
            "debug": "generate-debug-challenge",
            "algorithm_race": "generate-algorithm-challenge",
        }
    )
    grading_endpoints: dict = field(
        default_factory=lambda: {
            "algorithm_race": "check-algorithm-solution",
        }
    )
