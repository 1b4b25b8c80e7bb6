from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

from reward_optimizer.benefits import dedupe_benefits_value
from reward_optimizer.config import CalculationPreferences
from reward_optimizer.evaluator import spending_buckets
from reward_optimizer.models import (
    CardRecommendation,
    CardUsage,
    CategoryAllocation,
    MultiCardStrategy,
    SpendingEntry,
)

logger = logging.getLogger(__name__)

# category name -> card id -> breakdown row of that card for the category
ValueMatrix = dict[str, dict[str, tuple[float, float]]]


@dataclass(frozen=True, slots=True)
class AllocationState:
    allocations: tuple[CategoryAllocation, ...] = ()

    @property
    def claimed(self) -> frozenset[str]:
        return frozenset(item.category_name for item in self.allocations)

    @property
    def cards_used(self) -> tuple[str, ...]:
        used: list[str] = []
        for item in self.allocations:
            if item.card_id not in used:
                used.append(item.card_id)
        return tuple(used)

    @property
    def rewards_value(self) -> float:
        return sum(item.annual_value for item in self.allocations)

    def claim(self, allocation: CategoryAllocation) -> "AllocationState":
        return AllocationState(self.allocations + (allocation,))


def sorted_categories(spending: Iterable[SpendingEntry]) -> list[tuple[str, float]]:
    """Buckets ordered by monthly spend, highest first; ties keep input order."""
    return sorted(spending_buckets(spending), key=lambda bucket: bucket[1], reverse=True)


def build_value_matrix(recommendations: Sequence[CardRecommendation], categories: Iterable[tuple[str, float]]) -> ValueMatrix:
    matrix: ValueMatrix = {}
    for name, _ in categories:
        row: dict[str, tuple[float, float]] = {}
        for rec in recommendations:
            breakdown = rec.breakdown_for(name)
            if breakdown is not None:
                row[rec.card_id] = (breakdown.monthly_value, breakdown.reward_rate)
        matrix[name] = row
    return matrix


def _allocation(rec: CardRecommendation, name: str, spend: float, cell: tuple[float, float]) -> CategoryAllocation:
    monthly_value, rate = cell
    return CategoryAllocation(
        category_name=name,
        card_id=rec.card_id,
        card_name=rec.card_name,
        monthly_spend=spend,
        reward_rate=rate,
        monthly_value=monthly_value,
        annual_value=monthly_value * 12,
        reward_type=rec.reward_type,
    )


def first_pass(
    state: AllocationState,
    recommendations: Sequence[CardRecommendation],
    categories: Sequence[tuple[str, float]],
    matrix: ValueMatrix,
) -> AllocationState:
    """Each card, in order, claims its most valuable unclaimed category."""
    for rec in recommendations:
        claimed = state.claimed
        best: tuple[str, float] | None = None
        best_value = 0.0
        for name, spend in categories:
            if name in claimed:
                continue
            cell = matrix.get(name, {}).get(rec.card_id)
            if cell is not None and cell[0] > best_value:
                best, best_value = (name, spend), cell[0]
        if best is not None:
            state = state.claim(_allocation(rec, best[0], best[1], matrix[best[0]][rec.card_id]))
    return state


def second_pass(
    state: AllocationState,
    recommendations: Sequence[CardRecommendation],
    categories: Sequence[tuple[str, float]],
    matrix: ValueMatrix,
) -> AllocationState:
    """Every unclaimed category goes to whichever card earns the most on it."""
    for name, spend in categories:
        if name in state.claimed:
            continue
        best: CardRecommendation | None = None
        best_value = 0.0
        for rec in recommendations:
            cell = matrix.get(name, {}).get(rec.card_id)
            if cell is not None and cell[0] > best_value:
                best, best_value = rec, cell[0]
        if best is not None:
            state = state.claim(_allocation(best, name, spend, matrix[name][best.card_id]))
    return state


def diversify(
    recommendations: Sequence[CardRecommendation],
    categories: Sequence[tuple[str, float]],
    matrix: ValueMatrix,
) -> AllocationState:
    """Round-robin the top spend categories across the cards by index."""
    state = AllocationState()
    count = len(recommendations)
    if count == 0:
        return state
    for index, (name, spend) in enumerate(categories[:count]):
        rec = recommendations[index % count]
        cell = matrix.get(name, {}).get(rec.card_id)
        if cell is not None:
            state = state.claim(_allocation(rec, name, spend, cell))
    return state


def _card_usage(recommendations: Sequence[CardRecommendation], state: AllocationState) -> tuple[CardUsage, ...]:
    usage: list[CardUsage] = []
    for rec in recommendations:
        mine = [item for item in state.allocations if item.card_id == rec.card_id]
        if not mine:
            continue
        usage.append(
            CardUsage(
                card_id=rec.card_id,
                card_name=rec.card_name,
                recommended_categories=tuple(item.category_name for item in mine),
                category_value=sum(item.annual_value for item in mine),
            )
        )
    return tuple(usage)


def assign_categories(
    recommendations: Sequence[CardRecommendation],
    spending: Sequence[SpendingEntry],
    preferences: CalculationPreferences | None = None,
    strategy_name: str = "",
    description: str = "",
) -> MultiCardStrategy | None:
    preferences = preferences or CalculationPreferences()
    card_ids = [rec.card_id for rec in recommendations]
    if not card_ids or len(set(card_ids)) != len(card_ids):
        return None

    categories = sorted_categories(spending)
    matrix = build_value_matrix(recommendations, categories)

    state = first_pass(AllocationState(), recommendations, categories, matrix)
    state = second_pass(state, recommendations, categories, matrix)

    if len(state.cards_used) < 2 and len(recommendations) >= 2:
        forced = diversify(recommendations, categories, matrix)
        if len(forced.cards_used) > len(state.cards_used):
            logger.debug("diversified allocation across %d cards for %s", len(forced.cards_used), card_ids)
            state = forced

    if not state.allocations:
        return None

    benefits_value = 0.0
    if preferences.include_benefits:
        benefits_value = dedupe_benefits_value(rec.benefits_breakdown for rec in recommendations)
    signup_value = 0.0
    if preferences.include_signup_bonuses:
        signup_value = sum(
            rec.signup_bonus.amount
            for rec in recommendations
            if rec.signup_bonus is not None and rec.signup_bonus.amount > 0
        )
    total_fees = sum(rec.annual_fee for rec in recommendations) if preferences.include_annual_fees else 0.0
    total_value = state.rewards_value + benefits_value + signup_value

    return MultiCardStrategy(
        strategy_name=strategy_name,
        description=description,
        cards=_card_usage(recommendations, state),
        category_allocations=state.allocations,
        benefits_value=benefits_value,
        total_annual_value=total_value,
        total_annual_fees=total_fees,
        net_annual_value=total_value - total_fees,
    )
