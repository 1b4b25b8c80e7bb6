from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

from reward_optimizer.evaluator import active_entries, spending_buckets
from reward_optimizer.models import (
    BenefitValuation,
    CardCustomization,
    CardDefinition,
    CardRecommendation,
    SpendingEntry,
)
from reward_optimizer.ranking import rank_cards

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CategoryOptimization:
    category_name: str
    best_card_id: str | None
    best_card_name: str | None
    monthly_value: float
    annual_value: float
    is_optimal: bool
    better_option: str | None = None


@dataclass(frozen=True, slots=True)
class SuboptimalCategory:
    category_name: str
    current_card: str
    current_value: float
    optimal_card: str
    optimal_value: float
    improvement: float


@dataclass(frozen=True, slots=True)
class RecommendedAddition:
    card_id: str
    card_name: str
    reason: str
    categories_improved: tuple[str, ...]
    net_value_added: float


@dataclass(frozen=True, slots=True)
class PortfolioAnalysis:
    owned_card_ids: tuple[str, ...]
    total_annual_fees: float
    total_annual_value: float
    net_annual_value: float
    category_optimization: tuple[CategoryOptimization, ...]
    optimal_card_id: str | None
    optimal_net_annual_value: float
    potential_improvement: float
    percentage_improvement: float
    missing_categories: tuple[str, ...]
    suboptimal_categories: tuple[SuboptimalCategory, ...]
    recommended_additions: tuple[RecommendedAddition, ...]


def best_card_overall(recommendations: Sequence[CardRecommendation]) -> CardRecommendation | None:
    return recommendations[0] if recommendations else None


def best_card_per_category(
    cards: Sequence[CardDefinition],
    spending: Sequence[SpendingEntry],
    reward_preference: str = "best_overall",
    point_value: float | None = None,
    customizations: Mapping[str, CardCustomization] | None = None,
    valuations: Sequence[BenefitValuation] | None = None,
    owned_card_ids: Iterable[str] = (),
    subscription_tier: str | None = "free",
) -> dict[str, CardRecommendation]:
    """Rank the catalog once per spending bucket, keeping each bucket's winner."""
    owned = tuple(owned_card_ids)
    best: dict[str, CardRecommendation] = {}
    for entry in active_entries(spending):
        ranked = rank_cards(
            cards,
            [entry],
            reward_preference=reward_preference,
            point_value=point_value,
            customizations=customizations,
            valuations=valuations,
            owned_card_ids=owned,
            subscription_tier=subscription_tier,
        )
        if ranked:
            best[entry.display_name] = ranked[0]
    return best


def _best_for(recommendations: Iterable[CardRecommendation], category_name: str) -> tuple[CardRecommendation | None, float, float]:
    best: CardRecommendation | None = None
    best_monthly = 0.0
    best_annual = 0.0
    for rec in recommendations:
        row = rec.breakdown_for(category_name)
        if row is not None and row.monthly_value > best_monthly:
            best, best_monthly, best_annual = rec, row.monthly_value, row.annual_value
    return best, best_monthly, best_annual


def analyze_portfolio(
    recommendations: Sequence[CardRecommendation],
    owned_card_ids: Iterable[str],
    spending: Sequence[SpendingEntry],
    max_additions: int = 3,
) -> PortfolioAnalysis:
    """Compare the cards a user already holds against the full ranking.

    ``recommendations`` must be ranked without excluding owned cards.
    """
    owned_ids = tuple(dict.fromkeys(owned_card_ids))
    owned = [rec for rec in recommendations if rec.card_id in owned_ids]

    total_fees = sum(rec.annual_fee for rec in owned)
    total_value = sum(rec.total_annual_value for rec in owned)
    net_value = total_value - total_fees

    optimization: list[CategoryOptimization] = []
    for name, _ in spending_buckets(spending):
        owned_best, monthly, annual = _best_for(owned, name)
        overall_best, _, _ = _best_for(recommendations, name)
        is_optimal = owned_best is not None and overall_best is not None and owned_best.card_id == overall_best.card_id
        optimization.append(
            CategoryOptimization(
                category_name=name,
                best_card_id=owned_best.card_id if owned_best else None,
                best_card_name=owned_best.card_name if owned_best else None,
                monthly_value=monthly,
                annual_value=annual,
                is_optimal=is_optimal,
                better_option=overall_best.card_id if overall_best and not is_optimal else None,
            )
        )

    by_id = {rec.card_id: rec for rec in recommendations}
    suboptimal: list[SuboptimalCategory] = []
    for item in optimization:
        if item.is_optimal or item.better_option is None:
            continue
        optimal_row = by_id[item.better_option].breakdown_for(item.category_name)
        optimal_value = optimal_row.annual_value if optimal_row else 0.0
        suboptimal.append(
            SuboptimalCategory(
                category_name=item.category_name,
                current_card=item.best_card_id or "",
                current_value=item.annual_value,
                optimal_card=item.better_option,
                optimal_value=optimal_value,
                improvement=optimal_value - item.annual_value,
            )
        )

    additions: list[RecommendedAddition] = []
    candidates = [rec for rec in recommendations if rec.card_id not in owned_ids][:max_additions]
    for rec in candidates:
        improved: list[str] = []
        value_added = 0.0
        for item in optimization:
            row = rec.breakdown_for(item.category_name)
            if row is not None and row.annual_value > item.annual_value:
                improved.append(item.category_name)
                value_added += row.annual_value - item.annual_value
        net_added = value_added - rec.annual_fee
        if net_added <= 0:
            continue
        reason = f"Improves {', '.join(improved)}" if improved else "General rewards improvement"
        additions.append(
            RecommendedAddition(
                card_id=rec.card_id,
                card_name=rec.card_name,
                reason=reason,
                categories_improved=tuple(improved),
                net_value_added=net_added,
            )
        )

    optimal = best_card_overall(recommendations)
    optimal_net = optimal.net_annual_value if optimal else 0.0
    improvement = optimal_net - net_value if optimal else 0.0
    percentage = improvement / net_value * 100 if net_value > 0 else 0.0
    logger.debug("portfolio of %d cards: net=%.2f improvement=%.2f", len(owned), net_value, improvement)

    return PortfolioAnalysis(
        owned_card_ids=owned_ids,
        total_annual_fees=total_fees,
        total_annual_value=total_value,
        net_annual_value=net_value,
        category_optimization=tuple(optimization),
        optimal_card_id=optimal.card_id if optimal else None,
        optimal_net_annual_value=optimal_net,
        potential_improvement=improvement,
        percentage_improvement=percentage,
        missing_categories=tuple(item.category_name for item in optimization if item.best_card_id is None),
        suboptimal_categories=tuple(suboptimal),
        recommended_additions=tuple(additions),
    )
