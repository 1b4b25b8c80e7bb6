import pytest

from reward_optimizer.allocation import (
    AllocationState,
    assign_categories,
    build_value_matrix,
    first_pass,
    second_pass,
    sorted_categories,
)
from reward_optimizer.config import CalculationPreferences
from reward_optimizer.evaluator import evaluate_card
from reward_optimizer.models import BenefitDefinition, CardDefinition, CategoryRewardRule, SignupBonus, SpendingEntry

SPENDING = [SpendingEntry("Dining", 300, category_id="dining"), SpendingEntry("Travel", 200, category_id="travel")]


def _card(card_id, base=0.01, fee=0.0, rules=(), benefits=(), signup_bonus=None):
    return CardDefinition(
        id=card_id,
        name=card_id.upper(),
        issuer="Bank",
        annual_fee=fee,
        reward_type="cashback",
        base_reward_rate=base,
        category_rewards=tuple(CategoryRewardRule(card_id=card_id, reward_rate=rate, category_id=cat) for cat, rate in rules),
        benefits=tuple(
            BenefitDefinition(id=f"{card_id}-{name}", card_id=card_id, name=name, annual_value=value, category=category)
            for name, value, category in benefits
        ),
        signup_bonus=signup_bonus,
    )


def _recs(cards, spending=SPENDING):
    return [evaluate_card(card, spending) for card in cards]


def test_two_card_split():
    card_x = _card("x", rules=[("dining", 0.03)], fee=0)
    card_y = _card("y", rules=[("travel", 0.04)], fee=95)
    strategy = assign_categories(_recs([card_x, card_y]), SPENDING)

    by_category = {item.category_name: item for item in strategy.category_allocations}
    assert by_category["Dining"].card_id == "x"
    assert by_category["Dining"].annual_value == pytest.approx(108)
    assert by_category["Travel"].card_id == "y"
    assert by_category["Travel"].annual_value == pytest.approx(96)
    assert strategy.total_annual_fees == 95
    assert strategy.net_annual_value == pytest.approx(108 + 96 - 95)
    assert [usage.card_id for usage in strategy.cards] == ["x", "y"]


def test_category_names_never_repeat():
    spending = SPENDING + [SpendingEntry("Gas", 150, category_id="gas"), SpendingEntry("Groceries", 400, category_id="groceries")]
    cards = [_card("x", rules=[("dining", 0.03)]), _card("y", rules=[("travel", 0.04)]), _card("z", base=0.02)]
    strategy = assign_categories(_recs(cards, spending), spending)
    names = [item.category_name for item in strategy.category_allocations]
    assert len(names) == len(set(names)) == 4


def test_shared_benefit_counted_once():
    lounge = [("Lounge Access", 300, "travel")]
    cards = [
        _card("x", rules=[("dining", 0.03)], benefits=lounge),
        _card("y", rules=[("travel", 0.04)], benefits=lounge + [("Hotel Credit", 50, "travel")]),
    ]
    strategy = assign_categories(_recs(cards), SPENDING)
    assert strategy.benefits_value == pytest.approx(350)
    assert strategy.net_annual_value == pytest.approx(108 + 96 + 350)


def test_first_pass_breaks_ties_by_spend_order():
    spending = [SpendingEntry("Gas", 100, category_id="gas"), SpendingEntry("Dining", 100, category_id="dining")]
    recs = _recs([_card("flat", base=0.02)], spending)
    categories = sorted_categories(spending)
    matrix = build_value_matrix(recs, categories)

    start = AllocationState()
    state = first_pass(start, recs, categories, matrix)
    assert [item.category_name for item in state.allocations] == ["Gas"]
    assert start.allocations == ()

    state = second_pass(state, recs, categories, matrix)
    assert [item.category_name for item in state.allocations] == ["Gas", "Dining"]


def test_diversification_fallback_spreads_top_categories():
    dominant = _card("a", base=0.02)
    idle = _card("b", base=0.0)
    strategy = assign_categories(_recs([dominant, idle]), SPENDING)

    assert [(item.category_name, item.card_id) for item in strategy.category_allocations] == [("Dining", "a"), ("Travel", "b")]
    assert strategy.net_annual_value == pytest.approx(300 * 0.02 * 12)


def test_greedy_allocation_kept_when_fallback_uses_no_more_cards():
    spending = [SpendingEntry("Dining", 300, category_id="dining")]
    idle = _card("y", base=0.0)
    dining = _card("x", rules=[("dining", 0.03)])
    strategy = assign_categories(_recs([idle, dining], spending), spending)

    assert [(item.category_name, item.card_id) for item in strategy.category_allocations] == [("Dining", "x")]
    assert [usage.card_id for usage in strategy.cards] == ["x"]
    assert strategy.net_annual_value == pytest.approx(300 * 0.03 * 12)


def test_returns_none_without_categories_or_with_duplicates():
    card = _card("x", rules=[("dining", 0.03)])
    assert assign_categories(_recs([card, _card("y")], []), []) is None
    recs = _recs([card])
    assert assign_categories(recs + recs, SPENDING) is None


def test_signup_bonus_only_counted_when_requested():
    cards = [
        _card("x", rules=[("dining", 0.03)], signup_bonus=SignupBonus(200, 500, 3)),
        _card("y", rules=[("travel", 0.04)], fee=95),
    ]
    recs = _recs(cards)
    default = assign_categories(recs, SPENDING)
    generous = assign_categories(recs, SPENDING, CalculationPreferences(include_signup_bonuses=True, include_annual_fees=False))
    assert generous.net_annual_value == pytest.approx(default.net_annual_value + 200 + 95)
