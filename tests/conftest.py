import pytest
from grocery_planner.ingredient_parser import parse_ingredients
from grocery_planner.models import Assignment, MealType, Recipe, SourceRecord


def make_recipe(recipe_id: int, name: str, servings: str | None, lines: list[str]) -> Recipe:
    return Recipe(id=recipe_id, name=name, servings=servings, ingredients=parse_ingredients(lines))


def make_source(
    recipe_id: int = 1,
    assignment_id: int | None = 1,
    day: int = 0,
    meal: MealType = MealType.LUNCH,
    text: str = "200 g pasta",
    quantity: str = "200 g",
    recipe_name: str = "Pasta",
) -> SourceRecord:
    return SourceRecord(
        recipe_name=recipe_name,
        recipe_id=recipe_id,
        assignment_id=assignment_id,
        day_of_week=day,
        meal_type=meal,
        quantity=quantity,
        original_text=text,
    )


@pytest.fixture
def sample_recipes() -> list[Recipe]:
    """Small set of Italian recipes for unit tests."""
    return [
        make_recipe(1, "Pasta al pomodoro", "4", [
            "200 g pasta",
            "Pomodori pelati 400 g",
            "Sale q.b.",
            "Olio extravergine d'oliva 2 cucchiai",
        ]),
        make_recipe(2, "Frittata di zucchine", "2 porzioni", [
            "4 uova",
            "n. 2 zucchine",
            "Parmigiano 30 g",
            "Sale q.b.",
        ]),
        make_recipe(3, "Insalata caprese", "2-4 persone", [
            "Pomodorini 250 g",
            "Mozzarella 1 kg",
            "Basilico",
        ]),
    ]


@pytest.fixture
def sample_assignments() -> list[Assignment]:
    return [
        Assignment(id=1, recipe_id=1, day_of_week=0, meal_type=MealType.LUNCH, planned_servings=4),
        Assignment(id=2, recipe_id=2, day_of_week=0, meal_type=MealType.DINNER, planned_servings=4),
        Assignment(id=3, recipe_id=3, day_of_week=1, meal_type=MealType.LUNCH, planned_servings=2),
        Assignment(id=4, recipe_id=1, day_of_week=2, meal_type=MealType.DINNER, planned_servings=2),
    ]
