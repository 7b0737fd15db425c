from adaptation.difficulty import round_half_up
from config.settings import RewardConfig
from data.models import GameSessionResult, TokenReward


def compute_speed_bonus(total_time_sec: float, cfg: RewardConfig = RewardConfig()) -> float:
    if total_time_sec <= 0 or total_time_sec > cfg.max_time_for_bonus_sec:
        return 0.0
    window = cfg.max_time_for_bonus_sec - cfg.ideal_time_sec
    # Сверху не ограничено: при t < ideal бонус больше speed_bonus_max (7.5 при t -> 0).
    return max(0.0, cfg.speed_bonus_max * (1 - (total_time_sec - cfg.ideal_time_sec) / window))


def compute_tokens(result: GameSessionResult, cfg: RewardConfig = RewardConfig()) -> TokenReward:
    accuracy_bonus = (result.accuracy_percent / 100) * cfg.accuracy_weight
    streak_bonus = min(result.streak, cfg.streak_cap) * cfg.streak_weight
    speed_bonus = compute_speed_bonus(result.total_time_sec, cfg)
    total = cfg.base_reward + accuracy_bonus + streak_bonus + speed_bonus
    return TokenReward(tokens_earned=max(0, round_half_up(total)))
