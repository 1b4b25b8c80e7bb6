from __future__ import annotations

import logging
from dataclasses import replace
from itertools import combinations
from typing import Sequence

from reward_optimizer.allocation import assign_categories
from reward_optimizer.config import CalculationPreferences, EngineSettings
from reward_optimizer.models import CardRecommendation, MultiCardStrategy, SpendingEntry

logger = logging.getLogger(__name__)


def _join_names(recommendations: Sequence[CardRecommendation]) -> str:
    names = [rec.card_name for rec in recommendations]
    if len(names) <= 2:
        return " and ".join(names)
    return ", ".join(names[:-1]) + f", and {names[-1]}"


def best_combination(
    recommendations: Sequence[CardRecommendation],
    spending: Sequence[SpendingEntry],
    size: int,
    pool_size: int,
    preferences: CalculationPreferences | None = None,
) -> MultiCardStrategy | None:
    """Highest net value over every ``size``-card set drawn from the top of the ranking."""
    pool = list(recommendations[:pool_size])
    if len(pool) < size:
        return None

    best: MultiCardStrategy | None = None
    best_cards: tuple[CardRecommendation, ...] = ()
    tested = 0
    for combo in combinations(pool, size):
        if len({rec.card_id for rec in combo}) != size:
            continue
        tested += 1
        strategy = assign_categories(combo, spending, preferences)
        if strategy is not None and (best is None or strategy.net_annual_value > best.net_annual_value):
            best, best_cards = strategy, combo
    logger.debug("tested %d %d-card combinations", tested, size)

    if best is None:
        return None
    return replace(
        best,
        strategy_name=f"Best {size}-Card Combination",
        description=f"Optimal combination of {_join_names(best_cards)} for maximum rewards.",
    )


def find_category_specialists(
    recommendations: Sequence[CardRecommendation],
    pool_size: int,
    min_rate: float,
) -> list[CardRecommendation]:
    """Distinct cards holding the top rate (at least ``min_rate``) in some category."""
    specialists: dict[str, tuple[CardRecommendation, float]] = {}
    for rec in recommendations[:pool_size]:
        for row in rec.category_breakdown:
            if row.reward_rate < min_rate:
                continue
            current = specialists.get(row.category_name)
            if current is None or row.reward_rate > current[1]:
                specialists[row.category_name] = (rec, row.reward_rate)

    unique: list[CardRecommendation] = []
    for rec, _ in specialists.values():
        if all(rec.card_id != other.card_id for other in unique):
            unique.append(rec)
    return unique[:3]


def specialist_strategy(
    recommendations: Sequence[CardRecommendation],
    spending: Sequence[SpendingEntry],
    settings: EngineSettings,
    preferences: CalculationPreferences | None = None,
) -> MultiCardStrategy | None:
    specialists = find_category_specialists(recommendations, settings.specialist_pool_size, settings.specialist_min_rate)
    if len(specialists) < 2:
        return None
    return assign_categories(
        specialists,
        spending,
        preferences,
        strategy_name="Category Specialist Strategy",
        description="Combination of category-specific cards that excel in different spending areas for maximum specialization.",
    )


def optimize(
    recommendations: Sequence[CardRecommendation],
    spending: Sequence[SpendingEntry],
    settings: EngineSettings | None = None,
    preferences: CalculationPreferences | None = None,
) -> list[MultiCardStrategy]:
    settings = settings or EngineSettings()
    if len(recommendations) < 2:
        return []

    candidates = [
        best_combination(recommendations, spending, 2, settings.pair_pool_size, preferences),
        best_combination(recommendations, spending, 3, settings.triple_pool_size, preferences),
        specialist_strategy(recommendations, spending, settings, preferences),
    ]
    strategies = [strategy for strategy in candidates if strategy is not None]
    strategies.sort(key=lambda item: item.net_annual_value, reverse=True)
    for strategy in strategies:
        logger.debug("%s: %s net=%.2f", strategy.strategy_name, strategy.card_ids, strategy.net_annual_value)
    return strategies[: settings.max_strategies]
