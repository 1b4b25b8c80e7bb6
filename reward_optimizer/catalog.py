from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Protocol

from reward_optimizer.models import (
    BenefitDefinition,
    BenefitValuation,
    CardCustomization,
    CardDefinition,
    CategoryRewardRule,
    RewardCap,
    SignupBonus,
    SpendingEntry,
)


class CatalogError(ValueError):
    """Raised when a catalog or spending payload cannot be parsed."""


@dataclass(frozen=True, slots=True)
class CatalogFilter:
    reward_type: str | None = None
    tier: str | None = None

    def matches(self, card: CardDefinition) -> bool:
        if not card.is_active:
            return False
        if self.reward_type and card.reward_type != self.reward_type:
            return False
        if self.tier and card.tier != self.tier:
            return False
        return True


class CardCatalogProvider(Protocol):
    def fetch_active_cards(self, catalog_filter: CatalogFilter) -> list[CardDefinition]:
        ...


class InMemoryCardCatalog:
    def __init__(self, cards: Iterable[CardDefinition]) -> None:
        self.cards = tuple(cards)

    def fetch_active_cards(self, catalog_filter: CatalogFilter) -> list[CardDefinition]:
        return [card for card in self.cards if catalog_filter.matches(card)]


class JsonCardCatalog:
    """Read-only catalog backed by a JSON snapshot file."""

    def __init__(self, file_path: str) -> None:
        self.file_path = Path(file_path)

    def fetch_active_cards(self, catalog_filter: CatalogFilter) -> list[CardDefinition]:
        payload = _read_json(self.file_path)
        if not isinstance(payload, list):
            raise CatalogError(f"{self.file_path}: expected a list of cards")
        cards = [card_from_dict(item) for item in payload]
        return [card for card in cards if catalog_filter.matches(card)]


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text())
    except json.JSONDecodeError as exc:
        raise CatalogError(f"{path}: {exc}") from exc


def _require(payload: dict, keys: Iterable[str], what: str) -> None:
    missing = [key for key in keys if key not in payload]
    if missing:
        raise CatalogError(f"Missing required {what} fields: {', '.join(missing)}")


def _require_object(payload: object, what: str) -> None:
    if not isinstance(payload, dict):
        raise CatalogError(f"{what.capitalize()} entries must be objects")


def _optional_float(value: object) -> float | None:
    return None if value is None else float(value)


def rule_from_dict(card_id: str, payload: dict) -> CategoryRewardRule:
    _require(payload, ["reward_rate"], "reward rule")
    cap = payload.get("cap")
    return CategoryRewardRule(
        card_id=card_id,
        reward_rate=float(payload["reward_rate"]),
        category_id=payload.get("category_id"),
        sub_category_id=payload.get("sub_category_id"),
        cap=RewardCap(max_reward=float(cap["max_reward"]), period=str(cap.get("period", "monthly"))) if cap else None,
    )


def benefit_from_dict(card_id: str, payload: dict) -> BenefitDefinition:
    _require(payload, ["name", "annual_value"], "benefit")
    return BenefitDefinition(
        id=str(payload.get("id", f"{card_id}:{payload['name']}")),
        card_id=card_id,
        name=str(payload["name"]),
        annual_value=float(payload["annual_value"] or 0.0),
        category=str(payload.get("category", "other")),
        is_recurring=bool(payload.get("is_recurring", True)),
    )


def card_from_dict(payload: dict) -> CardDefinition:
    _require_object(payload, "card")
    _require(payload, ["id", "name", "issuer", "reward_type", "base_reward_rate"], "card")
    card_id = str(payload["id"]).strip()
    bonus = payload.get("signup_bonus")
    try:
        return CardDefinition(
            id=card_id,
            name=str(payload["name"]).strip(),
            issuer=str(payload["issuer"]).strip(),
            annual_fee=float(payload.get("annual_fee", 0.0) or 0.0),
            reward_type=str(payload["reward_type"]).strip().lower(),
            base_reward_rate=float(payload["base_reward_rate"]),
            tier=str(payload.get("tier", "free")).strip().lower(),
            point_value=_optional_float(payload.get("point_value")),
            signup_bonus=SignupBonus(
                amount=float(bonus["amount"]),
                required_spend=float(bonus.get("required_spend", 0.0) or 0.0),
                timeframe_months=int(bonus.get("timeframe_months", 3) or 3),
            )
            if bonus
            else None,
            category_rewards=tuple(rule_from_dict(card_id, item) for item in payload.get("category_rewards", [])),
            benefits=tuple(benefit_from_dict(card_id, item) for item in payload.get("benefits", [])),
            is_active=bool(payload.get("is_active", True)),
        )
    except (AttributeError, KeyError, TypeError) as exc:
        raise CatalogError(f"Invalid card {card_id!r}: {exc}") from exc


def spending_from_dict(payload: dict) -> SpendingEntry:
    _require_object(payload, "spending")
    _require(payload, ["category_name", "monthly_spend"], "spending")
    return SpendingEntry(
        category_name=str(payload["category_name"]),
        monthly_spend=float(payload["monthly_spend"]),
        category_id=payload.get("category_id"),
        sub_category_id=payload.get("sub_category_id"),
        sub_category_name=payload.get("sub_category_name"),
    )


def _flag(value: object) -> bool:
    if not isinstance(value, bool):
        raise CatalogError(f"enabled_benefits values must be true or false, got {value!r}")
    return value


def customization_from_dict(payload: dict) -> CardCustomization:
    _require_object(payload, "customization")

    def _coerce_map(value: object, cast) -> dict | None:
        if not isinstance(value, dict):
            return None
        return {str(k): cast(v) for k, v in value.items()}

    return CardCustomization(
        point_value=_optional_float(payload.get("point_value")),
        benefit_values=_coerce_map(payload.get("benefit_values"), float),
        enabled_benefits=_coerce_map(payload.get("enabled_benefits"), _flag),
    )


def valuation_from_dict(payload: dict) -> BenefitValuation:
    _require_object(payload, "benefit valuation")
    _require(payload, ["benefit_id", "personal_value"], "benefit valuation")
    return BenefitValuation(benefit_id=str(payload["benefit_id"]), personal_value=float(payload["personal_value"]))


def load_spending(path: str) -> list[SpendingEntry]:
    payload = _read_json(Path(path))
    if not isinstance(payload, list):
        raise CatalogError(f"{path}: expected a list of spending entries")
    return [spending_from_dict(item) for item in payload]


def load_customizations(path: str) -> dict[str, CardCustomization]:
    payload = _read_json(Path(path))
    if not isinstance(payload, dict):
        raise CatalogError(f"{path}: expected an object keyed by card id")
    return {str(card_id): customization_from_dict(item) for card_id, item in payload.items()}


def load_valuations(path: str) -> list[BenefitValuation]:
    payload = _read_json(Path(path))
    if not isinstance(payload, list):
        raise CatalogError(f"{path}: expected a list of benefit valuations")
    return [valuation_from_dict(item) for item in payload]
