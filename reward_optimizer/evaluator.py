from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

from reward_optimizer.benefits import value_benefits
from reward_optimizer.models import (
    BenefitValuation,
    CardCustomization,
    CardDefinition,
    CardRecommendation,
    CategoryBreakdown,
    CategoryRewardRule,
    SignupBonusValue,
    SpendingEntry,
)
from reward_optimizer.rewards import monthly_reward_value

logger = logging.getLogger(__name__)

DEFAULT_POINT_VALUE = 0.01


def find_reward_rule(card: CardDefinition, entry: SpendingEntry) -> CategoryRewardRule | None:
    """Subcategory rule first, then the parent category rule, else ``None`` (base rate)."""
    if entry.sub_category_id:
        for rule in card.category_rewards:
            if rule.sub_category_id == entry.sub_category_id:
                return rule
    if entry.category_id:
        for rule in card.category_rewards:
            if not rule.sub_category_id and rule.category_id == entry.category_id:
                return rule
    return None


def resolve_point_value(
    card: CardDefinition,
    customization: CardCustomization | None = None,
    default_point_value: float | None = None,
) -> float:
    """Customization override, then caller default, then the card's own value."""
    for candidate in (
        customization.point_value if customization is not None else None,
        default_point_value,
        card.point_value,
    ):
        if candidate is not None:
            return float(candidate)
    return DEFAULT_POINT_VALUE


def is_placeholder(entry: SpendingEntry, entries: Sequence[SpendingEntry]) -> bool:
    if entry.sub_category_id or entry.monthly_spend != 0 or not entry.category_id:
        return False
    return any(
        other.sub_category_id and other.category_id == entry.category_id
        for other in entries
    )


def active_entries(entries: Iterable[SpendingEntry]) -> list[SpendingEntry]:
    entries = list(entries)
    return [entry for entry in entries if not is_placeholder(entry, entries)]


def spending_buckets(entries: Iterable[SpendingEntry]) -> tuple[tuple[str, float], ...]:
    """Display name and merged monthly spend per bucket, in first-seen order."""
    buckets: dict[str, float] = {}
    for entry in active_entries(entries):
        buckets[entry.display_name] = buckets.get(entry.display_name, 0.0) + float(entry.monthly_spend)
    return tuple(buckets.items())


@dataclass(slots=True)
class _BucketTotals:
    monthly_spend: float = 0.0
    monthly_value: float = 0.0
    weighted_rate: float = 0.0
    rate_sum: float = 0.0
    entries: int = 0

    def add(self, spend: float, rate: float, value: float) -> None:
        self.monthly_spend += spend
        self.monthly_value += value
        self.weighted_rate += spend * rate
        self.rate_sum += rate
        self.entries += 1

    def to_breakdown(self, name: str) -> CategoryBreakdown:
        if self.monthly_spend > 0:
            rate = self.weighted_rate / self.monthly_spend
        else:
            rate = self.rate_sum / self.entries
        return CategoryBreakdown(
            category_name=name,
            monthly_spend=self.monthly_spend,
            reward_rate=rate,
            monthly_value=self.monthly_value,
            annual_value=self.monthly_value * 12,
        )


def evaluate_card(
    card: CardDefinition,
    spending: Iterable[SpendingEntry],
    customization: CardCustomization | None = None,
    valuations: Sequence[BenefitValuation] | None = None,
    default_point_value: float | None = None,
) -> CardRecommendation:
    point_value = resolve_point_value(card, customization, default_point_value)

    totals: dict[str, _BucketTotals] = {}
    total_annual_value = 0.0
    for entry in active_entries(spending):
        rule = find_reward_rule(card, entry)
        rate = rule.reward_rate if rule is not None else card.base_reward_rate
        monthly_value = monthly_reward_value(
            reward_rate=rate,
            monthly_spend=float(entry.monthly_spend),
            base_reward=card.base_reward_rate,
            reward_type=card.reward_type,
            point_value=point_value,
            cap=rule.cap if rule is not None else None,
        )
        total_annual_value += monthly_value * 12
        totals.setdefault(entry.display_name, _BucketTotals()).add(float(entry.monthly_spend), rate, monthly_value)

    breakdown = tuple(bucket.to_breakdown(name) for name, bucket in totals.items())
    benefits_breakdown, benefits_value = value_benefits(card.benefits, customization, valuations)

    signup_bonus = None
    if card.signup_bonus is not None:
        amount = card.signup_bonus.amount
        if card.reward_type == "points":
            amount = amount * point_value
        signup_bonus = SignupBonusValue(
            amount=amount,
            required_spend=card.signup_bonus.required_spend,
            timeframe_months=card.signup_bonus.timeframe_months,
        )

    net_annual_value = total_annual_value + benefits_value - card.annual_fee
    logger.debug("evaluated %s: rewards=%.2f benefits=%.2f net=%.2f", card.id, total_annual_value, benefits_value, net_annual_value)
    return CardRecommendation(
        card_id=card.id,
        card_name=card.name,
        issuer=card.issuer,
        annual_fee=card.annual_fee,
        reward_type=card.reward_type,
        total_annual_value=total_annual_value,
        benefits_value=benefits_value,
        net_annual_value=net_annual_value,
        category_breakdown=breakdown,
        benefits_breakdown=benefits_breakdown,
        signup_bonus=signup_bonus,
    )


def evaluate_cards(
    cards: Iterable[CardDefinition],
    spending: Sequence[SpendingEntry],
    customizations: Mapping[str, CardCustomization] | None = None,
    valuations: Sequence[BenefitValuation] | None = None,
    default_point_value: float | None = None,
) -> list[CardRecommendation]:
    customizations = customizations or {}
    return [
        evaluate_card(card, spending, customizations.get(card.id), valuations, default_point_value)
        for card in cards
    ]
