from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SpendingEntry:
    category_name: str
    monthly_spend: float
    category_id: str | None = None
    sub_category_id: str | None = None
    sub_category_name: str | None = None

    @property
    def display_name(self) -> str:
        if self.sub_category_id:
            child = self.sub_category_name or self.sub_category_id
            return f"{self.category_name} → {child}"
        return self.category_name


@dataclass(frozen=True, slots=True)
class RewardCap:
    max_reward: float
    period: str = "monthly"


@dataclass(frozen=True, slots=True)
class CategoryRewardRule:
    card_id: str
    reward_rate: float
    category_id: str | None = None
    sub_category_id: str | None = None
    cap: RewardCap | None = None


@dataclass(frozen=True, slots=True)
class BenefitDefinition:
    id: str
    card_id: str
    name: str
    annual_value: float
    category: str
    is_recurring: bool = True


@dataclass(frozen=True, slots=True)
class SignupBonus:
    amount: float
    required_spend: float
    timeframe_months: int


@dataclass(frozen=True, slots=True)
class CardDefinition:
    id: str
    name: str
    issuer: str
    annual_fee: float
    reward_type: str
    base_reward_rate: float
    tier: str = "free"
    point_value: float | None = None
    signup_bonus: SignupBonus | None = None
    category_rewards: tuple[CategoryRewardRule, ...] = ()
    benefits: tuple[BenefitDefinition, ...] = ()
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class BenefitValuation:
    benefit_id: str
    personal_value: float


@dataclass(frozen=True, slots=True)
class CardCustomization:
    point_value: float | None = None
    benefit_values: dict[str, float] | None = None
    enabled_benefits: dict[str, bool] | None = None


@dataclass(frozen=True, slots=True)
class CategoryBreakdown:
    category_name: str
    monthly_spend: float
    reward_rate: float
    monthly_value: float
    annual_value: float


@dataclass(frozen=True, slots=True)
class BenefitBreakdown:
    benefit_name: str
    official_value: float
    personal_value: float
    category: str


@dataclass(frozen=True, slots=True)
class SignupBonusValue:
    amount: float
    required_spend: float
    timeframe_months: int


@dataclass(frozen=True, slots=True)
class CardRecommendation:
    card_id: str
    card_name: str
    issuer: str
    annual_fee: float
    reward_type: str
    total_annual_value: float
    benefits_value: float
    net_annual_value: float
    category_breakdown: tuple[CategoryBreakdown, ...] = ()
    benefits_breakdown: tuple[BenefitBreakdown, ...] = ()
    signup_bonus: SignupBonusValue | None = None

    def breakdown_for(self, category_name: str) -> CategoryBreakdown | None:
        for row in self.category_breakdown:
            if row.category_name == category_name:
                return row
        return None


@dataclass(frozen=True, slots=True)
class CategoryAllocation:
    category_name: str
    card_id: str
    card_name: str
    monthly_spend: float
    reward_rate: float
    monthly_value: float
    annual_value: float
    reward_type: str


@dataclass(frozen=True, slots=True)
class CardUsage:
    card_id: str
    card_name: str
    recommended_categories: tuple[str, ...]
    category_value: float


@dataclass(frozen=True, slots=True)
class MultiCardStrategy:
    strategy_name: str
    description: str
    cards: tuple[CardUsage, ...]
    category_allocations: tuple[CategoryAllocation, ...]
    benefits_value: float
    total_annual_value: float
    total_annual_fees: float
    net_annual_value: float

    @property
    def card_ids(self) -> tuple[str, ...]:
        return tuple(usage.card_id for usage in self.cards)
