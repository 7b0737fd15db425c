import math

from config.settings import ReactionConfig
from data.errors import InvalidMeasurement
from data.models import ReactionMeasurement, ReactionScore


def score_reaction(measurement: ReactionMeasurement, cfg: ReactionConfig = ReactionConfig()) -> ReactionScore:
    reaction_ms = measurement.reaction_time_ms
    if reaction_ms < cfg.min_reaction_ms or reaction_ms > cfg.max_reaction_ms:
        raise InvalidMeasurement(
            "invalid_reaction_time",
            f"reaction time {reaction_ms}ms outside [{cfg.min_reaction_ms}, {cfg.max_reaction_ms}]",
        )
    tokens = max(1, math.floor(1000 / reaction_ms * 10))
    return ReactionScore(reaction_time_ms=reaction_ms, tokens_earned=tokens)
