from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from reward_optimizer.catalog import CardCatalogProvider, CatalogFilter
from reward_optimizer.config import CalculationPreferences, EngineSettings
from reward_optimizer.models import (
    BenefitValuation,
    CardCustomization,
    CardDefinition,
    CardRecommendation,
    MultiCardStrategy,
    SpendingEntry,
)
from reward_optimizer.optimizer import optimize
from reward_optimizer.portfolio import PortfolioAnalysis, analyze_portfolio
from reward_optimizer.ranking import REWARD_TYPE_PREFERENCES, normalize_tier, rank_cards

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RecommendationOptions:
    spending: Sequence[SpendingEntry]
    reward_preference: str = "best_overall"
    point_value: float | None = None
    benefit_valuations: Sequence[BenefitValuation] | None = None
    card_customizations: Mapping[str, CardCustomization] = field(default_factory=dict)
    owned_card_ids: Sequence[str] = ()
    subscription_tier: str | None = "free"


class RewardEngine:
    """Synchronous entry points over a read-only card catalog."""

    def __init__(self, catalog: CardCatalogProvider, settings: EngineSettings | None = None) -> None:
        self.catalog = catalog
        self.settings = settings or EngineSettings()

    def _fetch_cards(self, reward_preference: str, subscription_tier: str | None) -> list[CardDefinition]:
        tier = normalize_tier(subscription_tier)
        catalog_filter = CatalogFilter(
            reward_type=reward_preference if reward_preference in REWARD_TYPE_PREFERENCES else None,
            tier="free" if tier == "free" else None,
        )
        return self.catalog.fetch_active_cards(catalog_filter)

    def _rank(
        self,
        options: RecommendationOptions,
        owned_card_ids: Iterable[str],
        reward_preference: str,
        subscription_tier: str | None,
    ) -> list[CardRecommendation]:
        point_value = options.point_value if options.point_value is not None else self.settings.default_point_value
        return rank_cards(
            self._fetch_cards(reward_preference, subscription_tier),
            options.spending,
            reward_preference=reward_preference,
            point_value=point_value,
            customizations=options.card_customizations,
            valuations=options.benefit_valuations,
            owned_card_ids=owned_card_ids,
            subscription_tier=subscription_tier,
        )

    def evaluate(self, options: RecommendationOptions) -> list[CardRecommendation]:
        return self._rank(options, options.owned_card_ids, options.reward_preference, options.subscription_tier)

    def optimize_multi_card(
        self,
        options: RecommendationOptions,
        preferences: CalculationPreferences | None = None,
    ) -> list[MultiCardStrategy]:
        ranked = self.evaluate(options)
        strategies = optimize(ranked, options.spending, self.settings, preferences)
        logger.info("built %d multi-card strategies from %d ranked cards", len(strategies), len(ranked))
        return strategies

    def analyze_portfolio(self, options: RecommendationOptions) -> PortfolioAnalysis:
        # Owned cards must stay in the ranking whatever their tier or reward type.
        ranked = self._rank(options, (), "best_overall", "premium")
        return analyze_portfolio(ranked, options.owned_card_ids, options.spending)


def to_dict(rows: Iterable[Any]) -> list[dict]:
    return [asdict(row) for row in rows]
