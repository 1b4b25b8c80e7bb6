from __future__ import annotations

import os
from dataclasses import dataclass


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else default


def _env_float(name: str, default: float | None) -> float | None:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else default


@dataclass(frozen=True, slots=True)
class EngineSettings:
    """Search bounds for the multi-card optimizer.

    Pool sizes cap how many ranked cards enter each combinatorial search, so
    the work stays fixed no matter how large the catalog grows.
    """

    pair_pool_size: int = 10
    triple_pool_size: int = 8
    specialist_pool_size: int = 15
    max_strategies: int = 3
    specialist_min_rate: float = 2.0
    default_point_value: float | None = None

    def __post_init__(self) -> None:
        for name in ("pair_pool_size", "triple_pool_size", "specialist_pool_size", "max_strategies"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")

    @classmethod
    def from_env(cls) -> "EngineSettings":
        defaults = cls()
        return cls(
            pair_pool_size=_env_int("REWARD_OPTIMIZER_PAIR_POOL", defaults.pair_pool_size),
            triple_pool_size=_env_int("REWARD_OPTIMIZER_TRIPLE_POOL", defaults.triple_pool_size),
            specialist_pool_size=_env_int("REWARD_OPTIMIZER_SPECIALIST_POOL", defaults.specialist_pool_size),
            max_strategies=_env_int("REWARD_OPTIMIZER_MAX_STRATEGIES", defaults.max_strategies),
            specialist_min_rate=_env_float("REWARD_OPTIMIZER_SPECIALIST_MIN_RATE", defaults.specialist_min_rate),
            default_point_value=_env_float("REWARD_OPTIMIZER_POINT_VALUE", defaults.default_point_value),
        )


@dataclass(frozen=True, slots=True)
class CalculationPreferences:
    include_annual_fees: bool = True
    include_benefits: bool = True
    include_signup_bonuses: bool = False
