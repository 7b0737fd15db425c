from dataclasses import dataclass
from typing import Optional, Tuple

from config.settings import LevelConfig
from data.models import PerformanceSample


@dataclass(frozen=True)
class RaiseTier:
    min_accuracy: float  # строго больше
    min_streak: int
    delta: int


@dataclass(frozen=True)
class LowerTier:
    max_accuracy: float  # строго меньше
    delta: int


@dataclass(frozen=True)
class FastAnswerBonus:
    max_avg_time_sec: float = 5.0
    min_accuracy: float = 70.0
    delta: int = 1


@dataclass(frozen=True)
class AdjustmentRules:
    """
    Правила смены сложности.
    Ветки проверяются сверху вниз (сначала повышение, потом понижение),
    срабатывает первая подходящая. Бонус за скорость считается отдельно.
    """

    raise_tiers: Tuple[RaiseTier, ...] = ()
    lower_tiers: Tuple[LowerTier, ...] = ()
    fast_bonus: Optional[FastAnswerBonus] = None


STANDARD_RULES = AdjustmentRules(
    raise_tiers=(
        RaiseTier(min_accuracy=90.0, min_streak=5, delta=2),
        RaiseTier(min_accuracy=80.0, min_streak=3, delta=1),
    ),
    lower_tiers=(
        LowerTier(max_accuracy=30.0, delta=-2),
        LowerTier(max_accuracy=50.0, delta=-1),
    ),
    fast_bonus=FastAnswerBonus(),
)

# Упрощённый вариант: решено больше 70% попыток -> +1, иначе без изменений.
SOLVED_RATIO_RULES = AdjustmentRules(
    raise_tiers=(RaiseTier(min_accuracy=70.0, min_streak=0, delta=1),),
)


def round_half_up(value: float) -> int:
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def adjust(
    sample: PerformanceSample,
    current: int,
    rules: AdjustmentRules = STANDARD_RULES,
    level_cfg: LevelConfig = LevelConfig(),
) -> int:
    accuracy = sample.accuracy_percent
    delta = 0
    for tier in rules.raise_tiers:
        if accuracy > tier.min_accuracy and sample.streak >= tier.min_streak:
            delta = tier.delta
            break
    else:
        for low in rules.lower_tiers:
            if accuracy < low.max_accuracy:
                delta = low.delta
                break

    next_level = current + delta
    bonus = rules.fast_bonus
    avg_time = sample.avg_response_time_sec
    if bonus is not None and avg_time is not None:
        if avg_time < bonus.max_avg_time_sec and accuracy > bonus.min_accuracy:
            next_level += bonus.delta

    next_level = max(level_cfg.min_level, min(level_cfg.max_level, next_level))
    return round_half_up(next_level)


@dataclass
class DifficultyAdjuster:
    """Держит текущий уровень одной сессии и двигает его по правилам."""

    rules: Optional[AdjustmentRules] = STANDARD_RULES
    level_cfg: LevelConfig = LevelConfig()
    level: int = 1

    def reset(self) -> int:
        self.level = self.level_cfg.start_level
        return self.level

    def update(self, sample: PerformanceSample) -> int:
        # rules=None -> режим без адаптации (memory match, reaction)
        if self.rules is None:
            return self.level
        self.level = adjust(sample, self.level, self.rules, self.level_cfg)
        return self.level
