import random
from typing import Optional

from config.settings import GameModesConfig, ModeConfig
from game.modes.algorithm_race import AlgorithmRaceMode
from game.modes.base import GameMode, RoundScore
from game.modes.debug import DebugMode
from game.modes.memory_match import MemoryMatchMode
from game.modes.quiz import QuizMode
from game.modes.reaction import ReactionMode

MODES = {
    "quiz": QuizMode,
    "debug": DebugMode,
    "algorithm_race": AlgorithmRaceMode,
    "memory_match": MemoryMatchMode,
    "reaction": ReactionMode,
}


def create_mode(
    name: str,
    config: Optional[ModeConfig] = None,
    rng: Optional[random.Random] = None,
) -> GameMode:
    if name not in MODES:
        raise ValueError(f"Unknown mode: {name}")
    cfg = config or GameModesConfig().get(name)
    return MODES[name](cfg, rng)


__all__ = [
    "GameMode",
    "RoundScore",
    "QuizMode",
    "DebugMode",
    "AlgorithmRaceMode",
    "MemoryMatchMode",
    "ReactionMode",
    "MODES",
    "create_mode",
]
