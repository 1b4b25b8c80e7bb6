import pytest

from reward_optimizer.evaluator import (
    DEFAULT_POINT_VALUE,
    evaluate_card,
    find_reward_rule,
    resolve_point_value,
    spending_buckets,
)
from reward_optimizer.models import (
    BenefitDefinition,
    CardCustomization,
    CardDefinition,
    CategoryRewardRule,
    SignupBonus,
    SpendingEntry,
)


def _points_card(**overrides):
    fields = dict(
        id="pts",
        name="Points Card",
        issuer="Bank",
        annual_fee=95,
        reward_type="points",
        base_reward_rate=1,
        point_value=0.0125,
        category_rewards=(
            CategoryRewardRule(card_id="pts", reward_rate=3, category_id="dining"),
            CategoryRewardRule(card_id="pts", reward_rate=5, category_id="travel", sub_category_id="flights"),
            CategoryRewardRule(card_id="pts", reward_rate=2, category_id="travel"),
        ),
        benefits=(BenefitDefinition(id="b1", card_id="pts", name="Lounge Access", annual_value=100, category="travel"),),
        signup_bonus=SignupBonus(amount=60000, required_spend=4000, timeframe_months=3),
    )
    fields.update(overrides)
    return CardDefinition(**fields)


def test_subcategory_rule_takes_precedence():
    card = _points_card()
    flights = SpendingEntry("Travel", 100, category_id="travel", sub_category_id="flights", sub_category_name="Flights")
    hotels = SpendingEntry("Travel", 100, category_id="travel", sub_category_id="hotels", sub_category_name="Hotels")
    assert find_reward_rule(card, flights).reward_rate == 5
    assert find_reward_rule(card, hotels).reward_rate == 2
    assert find_reward_rule(card, SpendingEntry("Gas", 100, category_id="gas")) is None


def test_point_value_priority():
    card = _points_card()
    assert resolve_point_value(card, CardCustomization(point_value=0.02), 0.015) == 0.02
    assert resolve_point_value(card, CardCustomization(), 0.015) == 0.015
    assert resolve_point_value(card, None, None) == 0.0125
    assert resolve_point_value(_points_card(point_value=None)) == DEFAULT_POINT_VALUE


def test_dining_points_example():
    card = _points_card(benefits=(), annual_fee=0)
    rec = evaluate_card(card, [SpendingEntry("Dining", 500, category_id="dining")])
    assert rec.category_breakdown[0].monthly_value == pytest.approx(18.75)
    assert rec.total_annual_value == pytest.approx(225)


def test_net_value_invariant_and_signup_bonus_in_dollars():
    card = _points_card()
    spending = [SpendingEntry("Dining", 500, category_id="dining"), SpendingEntry("Gas", 100, category_id="gas")]
    rec = evaluate_card(card, spending)
    assert rec.net_annual_value == pytest.approx(rec.total_annual_value + rec.benefits_value - card.annual_fee)
    assert rec.signup_bonus.amount == pytest.approx(60000 * 0.0125)
    assert rec.signup_bonus.timeframe_months == 3


def test_cashback_signup_bonus_passes_through():
    card = _points_card(reward_type="cashback", base_reward_rate=0.01, category_rewards=(), signup_bonus=SignupBonus(200, 500, 3))
    assert evaluate_card(card, []).signup_bonus.amount == 200


def test_zero_spend_profile():
    card = CardDefinition(id="cb", name="Cash", issuer="Bank", annual_fee=0, reward_type="cashback", base_reward_rate=0.015)
    rec = evaluate_card(card, [])
    assert rec.total_annual_value == 0
    assert rec.net_annual_value == rec.benefits_value
    assert rec.category_breakdown == ()


def test_parent_placeholder_is_skipped_but_parent_spend_counts():
    entries = [
        SpendingEntry("Travel", 0, category_id="travel"),
        SpendingEntry("Travel", 200, category_id="travel", sub_category_id="flights", sub_category_name="Flights"),
        SpendingEntry("Dining", 0, category_id="dining"),
    ]
    assert [name for name, _ in spending_buckets(entries)] == ["Travel → Flights", "Dining"]

    with_parent_spend = [SpendingEntry("Travel", 50, category_id="travel")] + entries[1:]
    rec = evaluate_card(_points_card(), with_parent_spend)
    assert [row.category_name for row in rec.category_breakdown] == ["Travel", "Travel → Flights", "Dining"]


def test_entries_sharing_a_display_name_are_merged():
    card = CardDefinition(
        id="cb",
        name="Cash",
        issuer="Bank",
        annual_fee=0,
        reward_type="cashback",
        base_reward_rate=0.01,
        category_rewards=(CategoryRewardRule(card_id="cb", reward_rate=0.03, category_id="restaurants"),),
    )
    spending = [
        SpendingEntry("Dining", 100, category_id="restaurants"),
        SpendingEntry("Dining", 300, category_id="delivery"),
    ]
    rec = evaluate_card(card, spending)
    assert len(rec.category_breakdown) == 1
    row = rec.category_breakdown[0]
    assert row.monthly_spend == 400
    assert row.monthly_value == pytest.approx(6.0)
    assert row.reward_rate == pytest.approx(0.015)
    assert row.annual_value == pytest.approx(72.0)


def test_customized_benefits_flow_into_recommendation():
    customization = CardCustomization(benefit_values={"Lounge Access": 40}, enabled_benefits={"Lounge Access": True})
    rec = evaluate_card(_points_card(), [], customization=customization)
    assert rec.benefits_value == 40
    assert rec.benefits_breakdown[0].official_value == 100
