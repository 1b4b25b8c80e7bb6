from __future__ import annotations

import logging
from typing import Iterable, Mapping, Sequence

from reward_optimizer.evaluator import evaluate_cards
from reward_optimizer.models import BenefitValuation, CardCustomization, CardDefinition, CardRecommendation, SpendingEntry

logger = logging.getLogger(__name__)

REWARD_TYPE_PREFERENCES = {"cashback", "points"}


def normalize_tier(subscription_tier: str | None) -> str:
    # Anything that is not explicitly premium gets the restrictive free catalog.
    return "premium" if (subscription_tier or "").lower() == "premium" else "free"


def filter_cards(
    cards: Iterable[CardDefinition],
    reward_preference: str = "best_overall",
    subscription_tier: str | None = "free",
    owned_card_ids: Iterable[str] = (),
) -> list[CardDefinition]:
    owned = set(owned_card_ids)
    tier = normalize_tier(subscription_tier)
    eligible: list[CardDefinition] = []
    for card in cards:
        if card.id in owned:
            continue
        if reward_preference in REWARD_TYPE_PREFERENCES and card.reward_type != reward_preference:
            continue
        if tier == "free" and card.tier != "free":
            continue
        eligible.append(card)
    return eligible


def rank_cards(
    cards: Iterable[CardDefinition],
    spending: Sequence[SpendingEntry],
    reward_preference: str = "best_overall",
    point_value: float | None = None,
    customizations: Mapping[str, CardCustomization] | None = None,
    valuations: Sequence[BenefitValuation] | None = None,
    owned_card_ids: Iterable[str] = (),
    subscription_tier: str | None = "free",
) -> list[CardRecommendation]:
    eligible = filter_cards(cards, reward_preference, subscription_tier, owned_card_ids)
    ranked = evaluate_cards(eligible, spending, customizations, valuations, point_value)
    ranked.sort(key=lambda item: item.net_annual_value, reverse=True)
    logger.debug("ranked %d cards (preference=%s, tier=%s)", len(ranked), reward_preference, normalize_tier(subscription_tier))
    return ranked
