"""Reconcile normalizer output with the consolidated ingredient list.

The normalizer only sees flat text lines, so provenance has to be matched
back by name. Each consolidated entry is attached to the single best
matching normalized name, which keeps every source record in at most one
grocery item. Duplicate normalized names in the response are dropped,
first occurrence wins.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from collections.abc import Callable
from dataclasses import dataclass, field

from grocery_planner.models import (
    ConsolidatedEntry,
    MealType,
    NormalizedItem,
    NormalizedResult,
    SourceRecord,
)

logger = logging.getLogger(__name__)

STOPWORDS = frozenset({
    "di", "d", "del", "dello", "della", "dei", "degli", "delle",
    "al", "allo", "alla", "ai", "alle", "da", "in", "con", "e",
})

# match_score results; higher wins when an entry matches several names
NO_MATCH = 0
PARTIAL_WORD = 1
TOKEN_SUBSET = 2
WHOLE_WORDS = 3
SAME_NAME = 4


def flatten(consolidated: list[ConsolidatedEntry]) -> list[tuple[str, ConsolidatedEntry]]:
    """Build one normalizer line per (quantity, source) slot of every entry.

    Numeric quantities go in front of the name ("400 g pasta"), anything
    else after it ("sale q.b."). Each line points back to its entry.
    """
    lines: list[tuple[str, ConsolidatedEntry]] = []
    for entry in consolidated:
        for quantity, _source in zip(entry.quantities, entry.sources):
            quantity = quantity.strip()
            if not quantity:
                text = entry.name
            elif quantity[0].isdigit():
                text = f"{quantity} {entry.name}"
            else:
                text = f"{entry.name} {quantity}"
            lines.append((text.strip(), entry))
    return lines


def split_words(name: str) -> list[str]:
    """Lowercase words with accents and punctuation stripped, in order."""
    decomposed = unicodedata.normalize("NFKD", name.lower())
    plain = "".join(c for c in decomposed if not unicodedata.combining(c))
    return re.sub(r"[^\w\s]|_", " ", plain).split()


def tokenize(name: str) -> set[str]:
    """Lowercase, strip accents and punctuation, drop Italian stopwords."""
    return {w for w in split_words(name) if w not in STOPWORDS}


def _contains_words(outer: list[str], inner: list[str]) -> bool:
    return f" {' '.join(inner)} " in f" {' '.join(outer)} "


def match_score(normalized_name: str, original_name: str) -> int:
    """How well a normalized name matches a pre-normalization name.

    SAME_NAME: equal names, or equal non-empty token sets.
    WHOLE_WORDS: one name's words appear as a run of whole words in the other.
    TOKEN_SUBSET: one token set contains the other, whose side has at
    least two tokens.
    PARTIAL_WORD: one lowercased name is a raw substring of the other
    ("pomodori" in "pomodorini").
    """
    a = normalized_name.strip().lower()
    b = original_name.strip().lower()
    if not a or not b:
        return NO_MATCH

    ta = tokenize(a)
    tb = tokenize(b)
    if a == b or (ta and ta == tb):
        return SAME_NAME

    wa = split_words(a)
    wb = split_words(b)
    if wa and wb and (_contains_words(wb, wa) or _contains_words(wa, wb)):
        return WHOLE_WORDS
    if (ta and ta <= tb and len(ta) >= 2) or (tb and tb <= ta and len(tb) >= 2):
        return TOKEN_SUBSET
    if a in b or b in a:
        return PARTIAL_WORD
    return NO_MATCH


def best_result(original_name: str, results: list[NormalizedResult]) -> int | None:
    """Index of the result that should own an entry's sources.

    Highest match_score wins; ties go to the longest normalized name, then
    to the earliest result. None when nothing matches.
    """
    best_index = None
    best_key = (NO_MATCH, 0)
    for i, result in enumerate(results):
        score = match_score(result.normalized_name, original_name)
        if score == NO_MATCH:
            continue
        key = (score, len(result.normalized_name.strip()))
        if key > best_key:
            best_index, best_key = i, key
    return best_index


def source_key(source: SourceRecord) -> tuple[object, int, str]:
    """Identity of a source: assignment (or day-meal slot), recipe and line."""
    if source.assignment_id is not None:
        slot: object = source.assignment_id
    else:
        slot = f"{source.day_of_week}-{source.meal_type.value}"
    return slot, source.recipe_id, source.original_text


def dedupe_sources(sources: list[SourceRecord]) -> list[SourceRecord]:
    """Drop repeated sources, keeping order and distinct meals."""
    seen: set[tuple[object, int, str]] = set()
    result: list[SourceRecord] = []
    for source in sources:
        key = source_key(source)
        if key in seen:
            continue
        seen.add(key)
        result.append(source)
    return result


def dedupe_results(results: list[NormalizedResult]) -> list[NormalizedResult]:
    """Keep the first result for each lowercased normalized name."""
    first: dict[str, NormalizedResult] = {}
    for result in results:
        key = result.normalized_name.lower()
        if key in first:
            logger.warning(
                "Normalizer returned '%s' more than once; keeping '%s', dropping '%s'",
                result.normalized_name,
                first[key].total_quantity,
                result.total_quantity,
            )
            continue
        first[key] = result
    return list(first.values())


def reconcile(
    consolidated: list[ConsolidatedEntry],
    oracle: Callable[[list[str]], list[NormalizedResult]],
) -> list[NormalizedItem]:
    """Normalize a consolidated list and carry provenance onto the result.

    The oracle is called once with every flattened line. Its errors
    propagate unchanged; no partial list is built.
    """
    lines = flatten(consolidated)
    if not lines:
        return []

    results = dedupe_results(oracle([text for text, _entry in lines]))

    # Original lowercase name -> sources; entries are unique by name
    sources_by_name: dict[str, list[SourceRecord]] = {}
    for _text, entry in lines:
        sources_by_name.setdefault(entry.name.lower(), entry.sources)

    matched: list[list[SourceRecord]] = [[] for _ in results]
    for original_name, sources in sources_by_name.items():
        best_index = best_result(original_name, results)
        if best_index is not None:
            matched[best_index].extend(sources)
        else:
            logger.debug("No normalized name matches '%s'", original_name)

    items: list[NormalizedItem] = []
    for result, sources in zip(results, matched):
        unique_sources = dedupe_sources(sources)
        items.append(
            NormalizedItem(
                name=result.normalized_name,
                total_quantity=result.total_quantity,
                normalized=True,
                checked=False,
                sources=unique_sources or None,
            )
        )
    return items


@dataclass
class RecipeUsage:
    """Per-recipe provenance summary of one grocery item."""
    recipe_id: int
    recipe_name: str
    meals: set[object] = field(default_factory=set)
    meal_type_counts: dict[MealType, int] = field(
        default_factory=lambda: {m: 0 for m in MealType}
    )
    quantities: list[str] = field(default_factory=list)

    @property
    def meal_count(self) -> int:
        return len(self.meals)


def summarize_sources(item: NormalizedItem) -> list[RecipeUsage]:
    """Group an item's sources by recipe, sorted by recipe name.

    Sources without an assignment id each count as a separate meal.
    """
    by_recipe: dict[int, RecipeUsage] = {}
    for i, source in enumerate(item.sources or []):
        usage = by_recipe.get(source.recipe_id)
        if usage is None:
            usage = RecipeUsage(recipe_id=source.recipe_id, recipe_name=source.recipe_name)
            by_recipe[source.recipe_id] = usage

        if source.assignment_id is not None:
            usage.meals.add(source.assignment_id)
        else:
            usage.meals.add(("unassigned", i))
        usage.meal_type_counts[source.meal_type] += 1
        if source.quantity.strip():
            usage.quantities.append(source.quantity.strip())

    return sorted(by_recipe.values(), key=lambda u: u.recipe_name.lower())


MEAL_LABELS = {
    MealType.BREAKFAST: "colazioni",
    MealType.LUNCH: "pranzi",
    MealType.DINNER: "cene",
}


def format_meal_counts(counts: dict[MealType, int]) -> str:
    """Summarize meal counts as e.g. "2 pranzi + 1 cene"; empty when all are zero."""
    return " + ".join(
        f"{counts[m]} {MEAL_LABELS[m]}" for m in MealType if counts.get(m, 0) > 0
    )


def format_sources_markdown(item: NormalizedItem) -> str:
    """Render the provenance of one grocery item."""
    usages = summarize_sources(item)
    totals = {m: sum(u.meal_type_counts[m] for u in usages) for m in MealType}
    meals_text = format_meal_counts(totals) or f"{sum(u.meal_count for u in usages)} pasti"

    lines = [
        f"# {item.name}",
        "",
        f"**Totale:** {item.display_quantity}",
        "",
        f"Usato in ({meals_text}):",
        "",
    ]
    for usage in usages:
        per_recipe = format_meal_counts(usage.meal_type_counts) or (
            f"{usage.meal_count} {'pasto' if usage.meal_count == 1 else 'pasti'}"
        )
        quantities = list(dict.fromkeys(usage.quantities))
        qty_text = " + ".join(quantities) if quantities else "q.b."
        if re.fullmatch(r"\d+(?:[.,]\d+)?", qty_text):
            qty_text = f"{qty_text} {item.name.lower()}"
        lines.append(f"- {usage.recipe_name} ({per_recipe}): {qty_text}")
    lines.append("")
    return "\n".join(lines)
