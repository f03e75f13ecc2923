"""CLI entry point for the grocery planner."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

DEFAULT_VAULT_PATH = Path.home() / "obsidian-sync" / "Personal"


def get_vault_path(args: argparse.Namespace) -> Path:
    return Path(args.vault_path) if args.vault_path else DEFAULT_VAULT_PATH


def get_cooking_path(args: argparse.Namespace) -> Path:
    from grocery_planner.config import DEFAULT_COOKING_DIR

    return get_vault_path(args) / DEFAULT_COOKING_DIR


def get_note_path(args: argparse.Namespace) -> Path:
    from grocery_planner.config import apply_cli_overrides, load_config

    config = apply_cli_overrides(
        load_config(get_vault_path(args)), note=getattr(args, "note", None)
    )
    return get_cooking_path(args) / config["grocery"]["note"]


def cmd_parse(args: argparse.Namespace) -> None:
    from grocery_planner.ingredient_parser import parse_ingredients

    ingredients = parse_ingredients(args.lines)
    if args.format == "json":
        data = [
            {"original": i.original, "quantity": i.quantity, "name": i.name}
            for i in ingredients
        ]
        print(json.dumps(data, indent=2, ensure_ascii=False))
    else:
        for i in ingredients:
            print(f"{i.original!r}: quantity={i.quantity!r} name={i.name!r}")


def cmd_scale(args: argparse.Namespace) -> None:
    from grocery_planner.scaler import run_scale

    run_scale(
        cooking_path=get_cooking_path(args),
        recipe_name=args.recipe,
        servings=args.servings,
        base=args.base,
        quantities=args.quantity,
        output_format=args.format,
    )


def cmd_aggregate(args: argparse.Namespace) -> None:
    from grocery_planner.shopping import run_aggregate

    run_aggregate(
        vault_path=get_vault_path(args),
        plan_file=args.plan_file,
        output_format=args.format,
    )


def cmd_grocery_list(args: argparse.Namespace) -> None:
    from grocery_planner.shopping import run_grocery_list

    run_grocery_list(
        vault_path=get_vault_path(args),
        plan_file=args.plan_file,
        model=args.model,
        timeout=args.timeout,
        output_format=args.format,
    )


def cmd_show(args: argparse.Namespace) -> None:
    from grocery_planner.grocery_note import run_show

    run_show(get_note_path(args), output_format=args.format)


def cmd_check(args: argparse.Namespace) -> None:
    from grocery_planner.grocery_note import run_check

    run_check(get_note_path(args), args.item_id, checked=not args.uncheck)


def cmd_clear(args: argparse.Namespace) -> None:
    from grocery_planner.grocery_note import run_clear

    run_clear(get_note_path(args))


def cmd_sources(args: argparse.Namespace) -> None:
    from grocery_planner.grocery_note import run_sources

    run_sources(get_note_path(args), args.name)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="grocery-planner",
        description="Weekly grocery list from Obsidian recipe notes and a week plan",
    )
    parser.add_argument(
        "--vault-path",
        type=str,
        default=None,
        help=f"Path to Obsidian vault (default: {DEFAULT_VAULT_PATH})",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        default="info",
        help="Logging verbosity (default: info)",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Also write logs to this file",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    # parse
    p_parse = sub.add_parser("parse", help="Split ingredient lines into quantity and name")
    p_parse.add_argument("lines", nargs="+", help="Ingredient lines, e.g. '200 g di pasta'")
    p_parse.add_argument(
        "--format", type=str, choices=["json", "text"], default="text"
    )
    p_parse.set_defaults(func=cmd_parse)

    # scale
    p_scale = sub.add_parser("scale", help="Scale a recipe or quantities to N servings")
    p_scale.add_argument("recipe", type=str, nargs="?", help="Recipe name (fuzzy matched)")
    p_scale.add_argument("--servings", type=float, required=True)
    p_scale.add_argument(
        "--quantity",
        action="append",
        default=[],
        help="Scale this quantity text instead of a recipe. Repeatable.",
    )
    p_scale.add_argument(
        "--base", type=str, default=None, help="Base servings for --quantity, e.g. '2-4 porzioni'"
    )
    p_scale.add_argument(
        "--format", type=str, choices=["json", "markdown"], default="markdown"
    )
    p_scale.set_defaults(func=cmd_scale)

    # aggregate
    p_agg = sub.add_parser("aggregate", help="Consolidate the week's ingredients without normalizing")
    p_agg.add_argument("--plan-file", type=str, help="Week plan YAML (default from preferences)")
    p_agg.add_argument(
        "--format", type=str, choices=["json", "markdown"], default="markdown"
    )
    p_agg.set_defaults(func=cmd_aggregate)

    # grocery-list
    p_groc = sub.add_parser("grocery-list", help="Compute, normalize and save the grocery list")
    p_groc.add_argument("--plan-file", type=str, help="Week plan YAML (default from preferences)")
    p_groc.add_argument("--model", type=str, help="Claude model for normalization")
    p_groc.add_argument("--timeout", type=int, help="Normalizer timeout in seconds")
    p_groc.add_argument(
        "--format", type=str, choices=["json", "markdown"], default="markdown"
    )
    p_groc.set_defaults(func=cmd_grocery_list)

    # show
    p_show = sub.add_parser("show", help="Print the saved grocery list")
    p_show.add_argument("--note", type=str, help="Grocery note file name")
    p_show.add_argument(
        "--format", type=str, choices=["json", "markdown", "text"], default="markdown"
    )
    p_show.set_defaults(func=cmd_show)

    # check
    p_check = sub.add_parser("check", help="Mark a saved item as bought")
    p_check.add_argument("item_id", type=int, help="Item id from 'show --format json'")
    p_check.add_argument("--uncheck", action="store_true", help="Clear the checkmark instead")
    p_check.add_argument("--note", type=str, help="Grocery note file name")
    p_check.set_defaults(func=cmd_check)

    # clear
    p_clear = sub.add_parser("clear", help="Empty the saved grocery list")
    p_clear.add_argument("--note", type=str, help="Grocery note file name")
    p_clear.set_defaults(func=cmd_clear)

    # sources
    p_src = sub.add_parser("sources", help="Show which recipes and meals need an item")
    p_src.add_argument("name", type=str, help="Item name (exact or substring)")
    p_src.add_argument("--note", type=str, help="Grocery note file name")
    p_src.set_defaults(func=cmd_sources)

    return parser


def main() -> None:
    from grocery_planner.log import setup_logging

    parser = build_parser()
    args = parser.parse_args()

    log_file = Path(args.log_file) if args.log_file else None
    setup_logging(level=args.log_level, log_file=log_file)

    args.func(args)


if __name__ == "__main__":
    main()
