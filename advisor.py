from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict

from reward_optimizer.catalog import JsonCardCatalog, load_customizations, load_spending, load_valuations
from reward_optimizer.config import CalculationPreferences, EngineSettings
from reward_optimizer.engine import RecommendationOptions, RewardEngine, to_dict


def build_engine(args: argparse.Namespace) -> RewardEngine:
    return RewardEngine(JsonCardCatalog(args.catalog), settings=EngineSettings.from_env())


def options_from_args(args: argparse.Namespace) -> RecommendationOptions:
    return RecommendationOptions(
        spending=load_spending(args.spending),
        reward_preference=args.preference,
        point_value=args.point_value,
        benefit_valuations=load_valuations(args.valuations) if args.valuations else None,
        card_customizations=load_customizations(args.customizations) if args.customizations else {},
        owned_card_ids=tuple(args.owned),
        subscription_tier=args.tier,
    )


def cmd_recommend(args: argparse.Namespace) -> None:
    result = build_engine(args).evaluate(options_from_args(args))
    print(json.dumps(to_dict(result[: args.top]), indent=2))


def cmd_strategies(args: argparse.Namespace) -> None:
    preferences = CalculationPreferences(
        include_annual_fees=not args.ignore_fees,
        include_benefits=not args.ignore_benefits,
        include_signup_bonuses=args.include_signup_bonuses,
    )
    result = build_engine(args).optimize_multi_card(options_from_args(args), preferences)
    print(json.dumps(to_dict(result), indent=2))


def cmd_portfolio(args: argparse.Namespace) -> None:
    result = build_engine(args).analyze_portfolio(options_from_args(args))
    print(json.dumps(asdict(result), indent=2))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Credit card reward optimizer")
    parser.add_argument("--catalog", required=True, help="JSON card catalog snapshot")
    parser.add_argument("--spending", required=True, help="JSON list of monthly spending entries")
    parser.add_argument("--preference", choices=["cashback", "points", "best_overall"], default="best_overall")
    parser.add_argument("--tier", choices=["free", "premium"], default="free")
    parser.add_argument("--point-value", type=float)
    parser.add_argument("--owned", action="append", default=[], help="card id already held (repeatable)")
    parser.add_argument("--customizations", help="JSON object of per-card customizations")
    parser.add_argument("--valuations", help="JSON list of benefit valuations")
    parser.add_argument("--log-level", default="WARNING")

    sub = parser.add_subparsers(required=True)

    rec = sub.add_parser("recommend")
    rec.add_argument("--top", type=int, default=5)
    rec.set_defaults(func=cmd_recommend)

    strategies = sub.add_parser("strategies")
    strategies.add_argument("--ignore-fees", action="store_true")
    strategies.add_argument("--ignore-benefits", action="store_true")
    strategies.add_argument("--include-signup-bonuses", action="store_true")
    strategies.set_defaults(func=cmd_strategies)

    portfolio = sub.add_parser("portfolio")
    portfolio.set_defaults(func=cmd_portfolio)
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")
    try:
        args.func(args)
    except (ValueError, OSError) as exc:
        parser.error(str(exc))


if __name__ == "__main__":
    main()
