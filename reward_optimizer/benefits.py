from __future__ import annotations

from typing import Iterable, Sequence

from reward_optimizer.models import BenefitBreakdown, BenefitDefinition, BenefitValuation, CardCustomization


def resolve_benefit_value(
    benefit: BenefitDefinition,
    customization: CardCustomization | None = None,
    valuations: Sequence[BenefitValuation] | None = None,
) -> float:
    """Personal dollar value of one benefit.

    Sources are consulted in a fixed order:

    1. a card customization carrying both ``enabled_benefits`` and
       ``benefit_values`` (keyed by benefit name); disabled or unlisted
       benefits are worth nothing and enabled ones without an explicit value
       keep their official value;
    2. a legacy valuation list, matched by benefit id, where unmatched
       benefits are worth nothing;
    3. the official ``annual_value``.
    """
    if (
        customization is not None
        and customization.enabled_benefits is not None
        and customization.benefit_values is not None
    ):
        if not customization.enabled_benefits.get(benefit.name, False):
            return 0.0
        return float(customization.benefit_values.get(benefit.name, benefit.annual_value))

    if valuations is not None:
        for valuation in valuations:
            if valuation.benefit_id == benefit.id:
                return float(valuation.personal_value)
        return 0.0

    return float(benefit.annual_value)


def value_benefits(
    benefits: Iterable[BenefitDefinition],
    customization: CardCustomization | None = None,
    valuations: Sequence[BenefitValuation] | None = None,
) -> tuple[tuple[BenefitBreakdown, ...], float]:
    rows: list[BenefitBreakdown] = []
    total = 0.0
    for benefit in benefits:
        personal_value = resolve_benefit_value(benefit, customization, valuations)
        total += personal_value
        rows.append(
            BenefitBreakdown(
                benefit_name=benefit.name,
                official_value=float(benefit.annual_value),
                personal_value=personal_value,
                category=benefit.category,
            )
        )
    return tuple(rows), total


def dedupe_benefits_value(breakdowns: Iterable[Iterable[BenefitBreakdown]]) -> float:
    """Sum personal values once per ``(benefit_name, category)`` across cards."""
    seen: set[tuple[str, str]] = set()
    total = 0.0
    for rows in breakdowns:
        for row in rows:
            key = (row.benefit_name, row.category)
            if key in seen:
                continue
            seen.add(key)
            total += row.personal_value
    return total
