"""Week plan loading: assignments and eating-out slots from YAML."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from grocery_planner.models import Assignment, MealType, Recipe

logger = logging.getLogger(__name__)

DAY_NAMES = [
    "monday", "tuesday", "wednesday", "thursday",
    "friday", "saturday", "sunday",
]

DAY_ALIASES = {
    "lunedi": 0, "lunedì": 0,
    "martedi": 1, "martedì": 1,
    "mercoledi": 2, "mercoledì": 2,
    "giovedi": 3, "giovedì": 3,
    "venerdi": 4, "venerdì": 4,
    "sabato": 5,
    "domenica": 6,
}

MEAL_ALIASES = {
    "colazione": MealType.BREAKFAST,
    "pranzo": MealType.LUNCH,
    "cena": MealType.DINNER,
}


@dataclass
class WeekPlan:
    """Already-materialized assignments for one planning horizon."""
    assignments: list[Assignment] = field(default_factory=list)
    eating_out: set[str] = field(default_factory=set)


def slot_key(day_of_week: int, meal_type: MealType) -> str:
    """Key identifying a day+meal slot, e.g. "0-lunch"."""
    return f"{day_of_week}-{meal_type.value}"


def parse_day(raw: object) -> int:
    """Parse a day index (0-6) or an English/Italian day name."""
    if isinstance(raw, int) and not isinstance(raw, bool):
        if 0 <= raw <= 6:
            return raw
        raise ValueError(f"Day index out of range: {raw}")

    day_str = str(raw).strip().lower()
    if day_str.isdigit():
        return parse_day(int(day_str))
    if day_str in DAY_NAMES:
        return DAY_NAMES.index(day_str)
    if day_str in DAY_ALIASES:
        return DAY_ALIASES[day_str]
    raise ValueError(f"Unknown day '{raw}'. Use 0-6 or a day name.")


def parse_meal(raw: object) -> MealType:
    """Parse an English or Italian meal name."""
    meal_str = str(raw).strip().lower()
    if meal_str in MEAL_ALIASES:
        return MEAL_ALIASES[meal_str]
    try:
        return MealType(meal_str)
    except ValueError:
        valid = ", ".join(m.value for m in MealType)
        raise ValueError(f"Unknown meal type '{raw}'. Valid: {valid}")


def parse_slot(raw: str) -> str:
    """Parse 'day:meal' into a slot key."""
    parts = raw.split(":")
    if len(parts) != 2:
        raise ValueError(f"Invalid slot format: '{raw}'. Expected 'day:meal'")
    return slot_key(parse_day(parts[0]), parse_meal(parts[1]))


def find_recipe_id(query: str, recipes: list[Recipe]) -> int | None:
    """Resolve a recipe name to its id: exact match first, then shortest substring match."""
    query_lower = query.strip().lower()

    for r in recipes:
        if r.name.lower() == query_lower:
            return r.id

    matches = [r for r in recipes if query_lower in r.name.lower()]
    if matches:
        matches.sort(key=lambda r: len(r.name))
        return matches[0].id

    return None


def parse_assignment(data: dict, recipes: list[Recipe]) -> Assignment:
    """Build an Assignment from one week-plan entry."""
    if "recipe_id" in data:
        recipe_id = int(data["recipe_id"])
    elif "recipe" in data:
        recipe_id = find_recipe_id(str(data["recipe"]), recipes)
        if recipe_id is None:
            logger.warning("No recipe found matching '%s'", data["recipe"])
    else:
        raise ValueError(f"Assignment without recipe: {data!r}")

    if "day" not in data or "meal" not in data:
        raise ValueError(f"Assignment needs 'day' and 'meal': {data!r}")

    return Assignment(
        id=data.get("id"),
        recipe_id=recipe_id,
        day_of_week=parse_day(data["day"]),
        meal_type=parse_meal(data["meal"]),
        planned_servings=data.get("servings"),
    )


def load_week_plan(plan_path: Path, recipes: list[Recipe]) -> WeekPlan:
    """Load a YAML week plan.

    Format:
      assignments:
        - {id: 1, recipe: Pasta al pomodoro, day: lunedì, meal: pranzo, servings: 4}
      eating_out:
        - "martedì:cena"
    """
    with open(plan_path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Week plan must be a mapping: {plan_path}")

    assignments = [parse_assignment(a, recipes) for a in data.get("assignments") or []]
    eating_out = {parse_slot(str(s)) for s in data.get("eating_out") or []}

    logger.debug(
        "Week plan: %d assignments, %d eating-out slots", len(assignments), len(eating_out)
    )
    return WeekPlan(assignments=assignments, eating_out=eating_out)
