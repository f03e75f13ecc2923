"""Free-text ingredient line parsing into (quantity, name) pairs.

Lines are matched against PARSE_RULES top to bottom and the first rule whose
pattern matches decides the split. Rules never backtrack into each other, and
a line that no rule recognizes keeps an empty quantity with the whole line as
its name.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from grocery_planner.models import Ingredient

# Number token: digits with "." or "," separators, or a simple a/b fraction
NUMBER = r"[\d.,/]+"

MEASURE_UNITS = (
    r"kg|g|ml|l|cl|dl|"
    r"cucchiaio|cucchiai|cucchiaino|cucchiaini|"
    r"pizzico|pizzichi"
)
TO_TASTE = r"q\.?\s?b\.?|quanto\s+basta"

QB = "q.b."


@dataclass(frozen=True)
class ParseRule:
    name: str
    pattern: re.Pattern[str]
    extract: Callable[[re.Match[str]], tuple[str, str]]


def _name_then_quantity(m: re.Match[str]) -> tuple[str, str]:
    return m.group("qty").strip(), m.group("name").strip()


def _to_taste(m: re.Match[str]) -> tuple[str, str]:
    return QB, m.group("name").strip()


PARSE_RULES: list[ParseRule] = [
    # "Pollo 950 g", "Sale 1 pizzico", "Prezzemolo 1 q.b."
    ParseRule(
        "trailing_quantity",
        re.compile(
            rf"^(?P<name>.+?)\s+(?P<qty>{NUMBER}\s*(?:{MEASURE_UNITS}|{TO_TASTE}))$",
            re.IGNORECASE,
        ),
        _name_then_quantity,
    ),
    # "200 g di pasta", "50 ml d'olio", "2 cucchiai zucchero"
    ParseRule(
        "leading_quantity",
        re.compile(
            rf"^(?P<qty>{NUMBER}\s*(?:{MEASURE_UNITS}))\s+(?:di\s+|d['’]\s*)?(?P<name>.+)$",
            re.IGNORECASE,
        ),
        _name_then_quantity,
    ),
    # "Sale q.b.", "Pepe quanto basta"
    ParseRule(
        "trailing_to_taste",
        re.compile(rf"^(?P<name>.+?)\s+(?:{TO_TASTE})$", re.IGNORECASE),
        _to_taste,
    ),
    # "4 uova", "n. 2 zucchine", "1,5 limoni"
    ParseRule(
        "leading_count",
        re.compile(rf"^(?:n\.?\s*)?(?P<qty>{NUMBER})\s+(?P<name>.+)$", re.IGNORECASE),
        _name_then_quantity,
    ),
]

# Same shape as the leading_count rule, reused by the aggregator's recovery pass
COUNT_PATTERN = PARSE_RULES[-1].pattern


def parse_ingredient(line: str) -> Ingredient:
    """Split one ingredient line into quantity text and name.

    Never raises: a line no rule recognizes comes back with an empty
    quantity and the line itself as the name.
    """
    text = " ".join(line.split())

    for rule in PARSE_RULES:
        m = rule.pattern.match(text)
        if m:
            quantity, name = rule.extract(m)
            if name:
                return Ingredient(original=line, quantity=quantity, name=name)

    return Ingredient(original=line, quantity="", name=line)


def parse_ingredients(lines: list[str]) -> list[Ingredient]:
    """Parse a list of ingredient lines, skipping blank ones."""
    return [parse_ingredient(line) for line in lines if line.strip()]
