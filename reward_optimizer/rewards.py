from __future__ import annotations

import math
from typing import Protocol

from reward_optimizer.models import RewardCap

PERIOD_MULTIPLIERS: dict[str, int] = {
    "monthly": 1,
    "quarterly": 3,
    "yearly": 12,
}


class RewardConverter(Protocol):
    def to_dollars(self, spend: float, rate: float, point_value: float) -> float:
        """Return the dollar value earned on ``spend`` at ``rate``."""


class CashbackConverter:
    def to_dollars(self, spend: float, rate: float, point_value: float) -> float:
        return spend * rate


class PointsConverter:
    """Rates below 1 are already dollars per dollar; otherwise points per dollar."""

    def to_dollars(self, spend: float, rate: float, point_value: float) -> float:
        if rate < 1:
            return spend * rate
        return spend * rate * point_value


DEFAULT_CONVERTERS: dict[str, RewardConverter] = {
    "cashback": CashbackConverter(),
    "points": PointsConverter(),
}


def period_multiplier(period: str | None) -> int:
    # Unrecognised periods are treated as yearly, the widest window.
    return PERIOD_MULTIPLIERS.get((period or "").lower(), 12)


def max_spend_per_month(reward_rate: float, cap: RewardCap | None) -> float:
    if cap is None or reward_rate <= 0:
        return math.inf
    return cap.max_reward / (reward_rate * period_multiplier(cap.period))


def monthly_reward_value(
    reward_rate: float,
    monthly_spend: float,
    base_reward: float,
    reward_type: str,
    point_value: float,
    cap: RewardCap | None = None,
    converters: dict[str, RewardConverter] | None = None,
) -> float:
    """Monthly dollar value for one spending bucket.

    Spend up to the cap threshold earns ``reward_rate``; anything above it
    earns ``base_reward``. A cap on a zero rate is ignored.
    """
    converters = converters or DEFAULT_CONVERTERS
    converter = converters.get(reward_type, converters["cashback"])

    limit = max_spend_per_month(reward_rate, cap)
    capped_spend = min(monthly_spend, limit)
    overage = max(0.0, monthly_spend - limit)

    value = converter.to_dollars(capped_spend, reward_rate, point_value)
    if overage > 0:
        value += converter.to_dollars(overage, base_reward, point_value)
    return max(value, 0.0)
