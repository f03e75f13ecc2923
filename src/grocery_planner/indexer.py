"""Recipe loading: parse vault recipe notes into Recipe objects."""

from __future__ import annotations

import logging
import re
from pathlib import Path

import frontmatter

from grocery_planner.ingredient_parser import parse_ingredients
from grocery_planner.models import Recipe

logger = logging.getLogger(__name__)

LIST_MARKER_RE = re.compile(r"^\s*(?:[-*+]\s+(?:\[[ xX]\]\s+)?|\d+[.)]\s+)")


def extract_ingredients_section(content: str) -> list[str]:
    """Extract ingredient lines from a markdown body.

    Looks for ## Ingredienti / ### Ingredients and captures list items until
    the next heading of equal or higher level. List markers are removed.
    """
    lines = content.split("\n")
    in_section = False
    section_level = 0
    result: list[str] = []

    for line in lines:
        m = re.match(r"^(#{2,3})\s+Ingredient(?:i|s)\b", line, re.IGNORECASE)
        if m and not in_section:
            in_section = True
            section_level = len(m.group(1))
            continue

        if in_section:
            heading_match = re.match(r"^(#{1,%d})\s+" % section_level, line)
            if heading_match:
                break
            if not LIST_MARKER_RE.match(line):
                continue
            item = LIST_MARKER_RE.sub("", line, count=1).strip()
            if item:
                result.append(item)

    return result


def _to_str(val: object) -> str | None:
    if val is None or val == "":
        return None
    return str(val).strip()


def parse_recipe_file(file_path: Path, fallback_id: int = 0) -> Recipe | None:
    """Parse a single recipe markdown note into a Recipe object."""
    try:
        post = frontmatter.load(file_path)
    except Exception as e:
        logger.warning("Cannot read recipe note %s: %s", file_path.name, e)
        return None

    meta = post.metadata
    if meta.get("type") != "recipe":
        return None

    raw_lines = meta.get("ingredients")
    if isinstance(raw_lines, list) and raw_lines:
        lines = [str(line) for line in raw_lines if line is not None]
    else:
        lines = extract_ingredients_section(post.content)

    recipe_id = meta.get("id", fallback_id)
    try:
        recipe_id = int(recipe_id)
    except (TypeError, ValueError):
        logger.warning("Non-numeric id %r in %s, using %d", recipe_id, file_path.name, fallback_id)
        recipe_id = fallback_id

    return Recipe(
        id=recipe_id,
        name=_to_str(meta.get("name")) or file_path.stem,
        servings=_to_str(meta.get("servings", meta.get("porzioni"))),
        ingredients=parse_ingredients(lines),
        file_path=file_path,
    )


def discover_recipe_files(cooking_path: Path, limit: int | None = None) -> list[Path]:
    """Find all .md files in the cooking directory."""
    files = sorted(cooking_path.glob("*.md"))
    if limit:
        files = files[:limit]
    return files


def load_recipes(cooking_path: Path) -> list[Recipe]:
    """Load every recipe note in the cooking directory.

    Notes without an explicit id get their 1-based position in sorted file
    order.
    """
    recipes: list[Recipe] = []
    for i, f in enumerate(discover_recipe_files(cooking_path), start=1):
        recipe = parse_recipe_file(f, fallback_id=i)
        if recipe is None:
            logger.debug("SKIP (not a recipe or parse error): %s", f.name)
            continue
        recipes.append(recipe)

    logger.debug("Loaded %d recipes from %s", len(recipes), cooking_path)
    return recipes
