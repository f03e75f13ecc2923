"""Grocery list generation from a week plan."""

from __future__ import annotations

import json
import logging
import re
import sys
from collections.abc import Callable
from pathlib import Path

from grocery_planner.config import DEFAULT_COOKING_DIR, apply_cli_overrides, load_config
from grocery_planner.indexer import load_recipes
from grocery_planner.ingredient_parser import COUNT_PATTERN
from grocery_planner.models import (
    Assignment,
    ConsolidatedEntry,
    NormalizedItem,
    NormalizedResult,
    Recipe,
    SourceRecord,
)
from grocery_planner.scaler import (
    compute_ratio,
    parse_base_servings,
    resolve_planned_servings,
    scale_quantity,
)
from grocery_planner.week_plan import WeekPlan, load_week_plan, slot_key

logger = logging.getLogger(__name__)

BULLET_RE = re.compile(r"^\s*[-–—•*]+\s*")

Oracle = Callable[[list[str]], list[NormalizedResult]]


def recover_count(name: str) -> tuple[str, str] | None:
    """Pull a stray leading count out of an ingredient name.

    "- 5 uova" -> ("5", "uova"). Returns None when the name has no count.
    """
    m = COUNT_PATTERN.match(BULLET_RE.sub("", name))
    if not m:
        return None
    return m.group("qty").strip(), m.group("name").strip()


def aggregate(
    recipes: list[Recipe],
    assignments: list[Assignment],
    eating_out: set[str],
    min_planned_servings: float = 0.25,
) -> list[ConsolidatedEntry]:
    """Scale and fold every assigned recipe's ingredients by lowercase name.

    Args:
        recipes: recipes referenced by the assignments
        assignments: one entry per scheduled meal; duplicates are kept
        eating_out: slot keys ("0-lunch") whose assignments are skipped
        min_planned_servings: planned servings below this fall back to the
            recipe's base servings

    Returns:
        consolidated entries in first-seen order, each with one quantity,
        original line and source per contributing occurrence
    """
    recipes_by_id = {r.id: r for r in recipes}
    agg: dict[str, ConsolidatedEntry] = {}

    for assignment in assignments:
        if slot_key(assignment.day_of_week, assignment.meal_type) in eating_out:
            logger.debug(
                "Skipping assignment %s: eating out on %s",
                assignment.id,
                slot_key(assignment.day_of_week, assignment.meal_type),
            )
            continue

        recipe = recipes_by_id.get(assignment.recipe_id)  # type: ignore[arg-type]
        if recipe is None:
            continue

        base_servings = parse_base_servings(recipe.servings)
        planned = resolve_planned_servings(
            assignment.planned_servings, base_servings, min_planned_servings
        )
        ratio = compute_ratio(planned, base_servings)

        for ing in recipe.ingredients:
            quantity = ing.quantity
            name = ing.name

            if not quantity and not ing.normalized:
                recovered = recover_count(name)
                if recovered:
                    quantity, name = recovered
                    logger.debug("Recovered count '%s' for '%s'", quantity, name)

            scaled = scale_quantity(quantity, ratio)
            display_name = ing.normalized or name
            key = display_name.lower()

            if key not in agg:
                agg[key] = ConsolidatedEntry(name=display_name)

            entry = agg[key]
            entry.quantities.append(scaled)
            entry.original.append(ing.original)
            entry.sources.append(
                SourceRecord(
                    recipe_name=recipe.name,
                    recipe_id=recipe.id,
                    assignment_id=assignment.id,
                    day_of_week=assignment.day_of_week,
                    meal_type=assignment.meal_type,
                    quantity=scaled,
                    original_text=ing.original,
                )
            )

    return list(agg.values())


def format_consolidated_markdown(entries: list[ConsolidatedEntry]) -> str:
    """Format the pre-normalization list as markdown, one line per entry."""
    lines = ["# Ingredienti della settimana", ""]
    for entry in sorted(entries, key=lambda e: e.name.lower()):
        quantities = [q for q in entry.quantities if q]
        qty_str = " + ".join(quantities) if quantities else "q.b."
        recipes = sorted({s.recipe_name for s in entry.sources})
        lines.append(f"- {entry.name}: {qty_str} ({', '.join(recipes)})")
    lines.append("")
    return "\n".join(lines)


def format_consolidated_json(entries: list[ConsolidatedEntry]) -> str:
    """Format the pre-normalization list as JSON."""
    data = [
        {
            "name": e.name,
            "quantities": e.quantities,
            "original": e.original,
            "sources": [s.to_dict() for s in e.sources],
        }
        for e in entries
    ]
    return json.dumps(data, indent=2, ensure_ascii=False)


def build_grocery_list(
    recipes: list[Recipe],
    plan: WeekPlan,
    oracle: Oracle,
    min_planned_servings: float = 0.25,
) -> list[NormalizedItem]:
    """Aggregate the week plan and reconcile it through the normalizer.

    Raises NormalizationError if the normalizer fails; nothing is persisted
    here.
    """
    from grocery_planner.reconciler import reconcile

    consolidated = aggregate(
        recipes, plan.assignments, plan.eating_out, min_planned_servings
    )
    if not consolidated:
        logger.warning("No ingredients to list")
        return []

    return reconcile(consolidated, oracle)


def _load_inputs(
    cooking_path: Path, config: dict
) -> tuple[list[Recipe], WeekPlan]:
    recipes = load_recipes(cooking_path)
    plan_path = cooking_path / config["planning"]["week_plan"]
    return recipes, load_week_plan(plan_path, recipes)


def run_aggregate(
    vault_path: Path,
    plan_file: str | None = None,
    output_format: str = "markdown",
) -> None:
    """CLI entry point for aggregate command (no normalization)."""
    config = apply_cli_overrides(load_config(vault_path), plan=plan_file)
    cooking_path = vault_path / DEFAULT_COOKING_DIR

    try:
        recipes, plan = _load_inputs(cooking_path, config)
    except (OSError, ValueError) as e:
        print(f"Cannot load week plan: {e}", file=sys.stderr)
        sys.exit(1)

    entries = aggregate(
        recipes,
        plan.assignments,
        plan.eating_out,
        config["planning"]["min_planned_servings"],
    )

    if output_format == "json":
        print(format_consolidated_json(entries))
    else:
        print(format_consolidated_markdown(entries))


def run_grocery_list(
    vault_path: Path,
    plan_file: str | None = None,
    model: str | None = None,
    timeout: int | None = None,
    output_format: str = "markdown",
) -> None:
    """CLI entry point for grocery-list command.

    Runs the whole pipeline and replaces the persisted grocery note only
    when normalization succeeds.
    """
    from grocery_planner.grocery_note import (
        format_grocery_json,
        format_grocery_markdown,
        save_grocery_list,
    )
    from grocery_planner.log import normalizer_status
    from grocery_planner.normalizer import NormalizationError, normalize_lines

    config = apply_cli_overrides(
        load_config(vault_path), plan=plan_file, model=model, timeout=timeout
    )
    cooking_path = vault_path / DEFAULT_COOKING_DIR
    normalizer_cfg = config["normalizer"]

    def oracle(lines: list[str]) -> list[NormalizedResult]:
        with normalizer_status(len(lines)):
            return normalize_lines(
                lines,
                command=normalizer_cfg["command"],
                model=normalizer_cfg["model"],
                timeout=normalizer_cfg["timeout"],
            )

    try:
        recipes, plan = _load_inputs(cooking_path, config)
        items = build_grocery_list(
            recipes, plan, oracle, config["planning"]["min_planned_servings"]
        )
    except NormalizationError as e:
        logger.error("Normalization failed, grocery list left unchanged: %s", e)
        sys.exit(1)
    except (OSError, ValueError) as e:
        print(f"Cannot load week plan: {e}", file=sys.stderr)
        sys.exit(1)

    if not items:
        return

    note_path = cooking_path / config["grocery"]["note"]
    items = save_grocery_list(note_path, items)
    logger.info("Saved %d items to %s", len(items), note_path.name)

    if output_format == "json":
        print(format_grocery_json(items))
    else:
        print(format_grocery_markdown(items))
