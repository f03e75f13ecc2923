"""Servings-based scaling of ingredient quantity text."""

from __future__ import annotations

import json
import math
import re
import sys
from difflib import SequenceMatcher
from pathlib import Path

from grocery_planner.models import Recipe

QUANTITY_RE = re.compile(r"^(\d+(?:[.,]\d+)?)(?:/(\d+))?\s*(.*)$")

SERVINGS_WORDS_RE = re.compile(
    r"\b(?:porzion[ei]|person[ae]|servings?|serves)\b", re.IGNORECASE
)
SERVINGS_NUMBER = r"(\d+(?:[.,]\d+)?)"


def _to_number(token: str) -> float:
    return float(token.replace(",", "."))


def format_number(value: float) -> str:
    """One decimal place, trailing ".0" dropped."""
    text = f"{value:.1f}"
    if text.endswith(".0"):
        text = text[:-2]
    return text


def scale_quantity(quantity: str, ratio: float) -> str:
    """Multiply the leading number of a quantity string by ratio.

    "200 g" x 2 -> "400 g", "1,5 l" x 2 -> "3 l", "1/2 cucchiaio" x 2 ->
    "1 cucchiaio". Text without a leading number ("q.b.", "") is returned
    unchanged, as is anything scaled by exactly 1.
    """
    if ratio == 1 or not quantity:
        return quantity

    m = QUANTITY_RE.match(quantity.strip())
    if not m:
        return quantity

    value = _to_number(m.group(1))
    if m.group(2):
        denominator = int(m.group(2))
        if denominator == 0:
            return quantity
        value /= denominator

    scaled = format_number(value * ratio)
    unit = m.group(3).strip()
    return f"{scaled} {unit}" if unit else scaled


def parse_base_servings(servings: str | None) -> float | None:
    """Parse a recipe's free-text yield into the servings its quantities are for.

    Handles: "4", "4 porzioni", "2-4 persone" (low end), "2/4" (low end),
    "Servings: 6". Returns None when no positive number can be found.
    """
    if servings is None:
        return None

    s = SERVINGS_WORDS_RE.sub(" ", str(servings)).strip()
    if not s:
        return None

    # "2/4 porzioni"
    m = re.search(rf"{SERVINGS_NUMBER}\s*/\s*{SERVINGS_NUMBER}", s)
    if not m:
        # "2-4 persone"
        m = re.search(rf"{SERVINGS_NUMBER}\s*-\s*{SERVINGS_NUMBER}", s)
    if m:
        value = min(_to_number(m.group(1)), _to_number(m.group(2)))
    else:
        m = re.search(SERVINGS_NUMBER, s)
        if not m:
            return None
        value = _to_number(m.group(1))

    return value if value > 0 else None


def resolve_planned_servings(
    planned: float | str | None,
    base_servings: float | None,
    minimum: float = 0.25,
) -> float:
    """Return the planned servings for an assignment, or a fallback.

    Accepts numbers or numeric strings (comma decimal allowed). Values that
    are missing, not finite, or below minimum fall back to the recipe's base
    servings, then to 1.
    """
    value: float | None = None
    if isinstance(planned, bool):
        value = None
    elif isinstance(planned, (int, float)):
        value = float(planned)
    elif isinstance(planned, str):
        try:
            value = _to_number(planned.strip())
        except ValueError:
            value = None

    if value is not None and math.isfinite(value) and value >= minimum:
        return value
    return base_servings or 1.0


def compute_ratio(planned_servings: float, base_servings: float | None) -> float:
    if base_servings and base_servings > 0:
        return planned_servings / base_servings
    return 1.0


def fuzzy_match_recipe(name: str, recipes: list[Recipe]) -> Recipe | None:
    """Find the best matching recipe by fuzzy name matching."""
    name_lower = name.lower()

    best_match: tuple[float, Recipe | None] = (0.0, None)

    for recipe in recipes:
        recipe_lower = recipe.name.lower()

        if recipe_lower == name_lower:
            return recipe

        # Substring match gets a boost
        score = SequenceMatcher(None, name_lower, recipe_lower).ratio()
        if name_lower in recipe_lower or recipe_lower in name_lower:
            score = max(score, 0.8)

        if score > best_match[0]:
            best_match = (score, recipe)

    if best_match[1] and best_match[0] > 0.4:
        return best_match[1]

    return None


def scale_recipe(recipe: Recipe, target_servings: float) -> dict:
    """Scale every ingredient of a recipe to target servings."""
    base_servings = parse_base_servings(recipe.servings)
    ratio = compute_ratio(target_servings, base_servings)

    items = []
    for ing in recipe.ingredients:
        items.append({
            "name": ing.name,
            "original": ing.original,
            "quantity": ing.quantity,
            "scaled_quantity": scale_quantity(ing.quantity, ratio),
        })

    return {
        "name": recipe.name,
        "base_servings": base_servings,
        "target_servings": target_servings,
        "scale_factor": round(ratio, 2),
        "ingredients": items,
    }


def format_scaled_markdown(data: dict) -> str:
    """Format scaled recipe as markdown."""
    base = format_number(data["base_servings"]) if data["base_servings"] else "?"
    lines = [
        f"# {data['name']} ({format_number(data['target_servings'])} porzioni)",
        "",
        f"**Base:** {base} porzioni | **Scala:** {data['scale_factor']}x",
        "",
        "## Ingredienti",
        "",
    ]
    for item in data["ingredients"]:
        qty = item["scaled_quantity"]
        if qty and qty[0].isdigit():
            lines.append(f"- {qty} {item['name']}")
        elif qty:
            lines.append(f"- {item['name']} {qty}")
        else:
            lines.append(f"- {item['name']}")
    lines.append("")
    return "\n".join(lines)


def run_scale(
    cooking_path: Path,
    recipe_name: str | None,
    servings: float,
    base: str | None = None,
    quantities: list[str] | None = None,
    output_format: str = "markdown",
) -> None:
    """CLI entry point for scale command.

    Scales either a vault recipe (fuzzy matched by name) or bare quantity
    strings given on the command line against --base servings.
    """
    if quantities:
        ratio = compute_ratio(servings, parse_base_servings(base))
        scaled = [{"quantity": q, "scaled_quantity": scale_quantity(q, ratio)} for q in quantities]
        if output_format == "json":
            print(json.dumps(scaled, indent=2, ensure_ascii=False))
        else:
            for entry in scaled:
                print(f"{entry['quantity']} -> {entry['scaled_quantity']}")
        return

    if not recipe_name:
        print("Give a recipe name or at least one --quantity", file=sys.stderr)
        sys.exit(1)

    from grocery_planner.indexer import load_recipes

    recipe = fuzzy_match_recipe(recipe_name, load_recipes(cooking_path))
    if not recipe:
        print(f"Recipe not found: {recipe_name}", file=sys.stderr)
        sys.exit(1)

    if not recipe.ingredients:
        print(f"Recipe '{recipe.name}' has no ingredients.", file=sys.stderr)
        sys.exit(1)

    data = scale_recipe(recipe, servings)

    if output_format == "json":
        print(json.dumps(data, indent=2, ensure_ascii=False))
    else:
        print(format_scaled_markdown(data))

