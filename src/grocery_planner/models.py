"""Shared data models for the grocery planner."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class NormalizationError(RuntimeError):
    """The normalizer failed or answered with something unusable."""


class MealType(Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"


@dataclass
class Ingredient:
    original: str
    quantity: str
    name: str
    # Canonical name carried over from an earlier normalization run
    normalized: str | None = None


@dataclass
class Recipe:
    id: int
    name: str
    servings: str | None = None
    ingredients: list[Ingredient] = field(default_factory=list)
    file_path: Path | None = None


@dataclass
class Assignment:
    id: int | None
    recipe_id: int | None
    day_of_week: int  # 0 = Monday
    meal_type: MealType
    planned_servings: float | str | None = None


@dataclass
class SourceRecord:
    recipe_name: str
    recipe_id: int
    assignment_id: int | None
    day_of_week: int
    meal_type: MealType
    quantity: str
    original_text: str

    def to_dict(self) -> dict:
        return {
            "recipe_name": self.recipe_name,
            "recipe_id": self.recipe_id,
            "assignment_id": self.assignment_id,
            "day_of_week": self.day_of_week,
            "meal_type": self.meal_type.value,
            "quantity": self.quantity,
            "original_text": self.original_text,
        }

    @classmethod
    def from_dict(cls, data: dict) -> SourceRecord:
        return cls(
            recipe_name=str(data.get("recipe_name", "")),
            recipe_id=int(data["recipe_id"]),
            assignment_id=data.get("assignment_id"),
            day_of_week=int(data["day_of_week"]),
            meal_type=MealType(data["meal_type"]),
            quantity=str(data.get("quantity", "")),
            original_text=str(data.get("original_text", "")),
        )


@dataclass
class ConsolidatedEntry:
    """Pre-normalization aggregate; one slot per contributing occurrence."""
    name: str
    quantities: list[str] = field(default_factory=list)
    original: list[str] = field(default_factory=list)
    sources: list[SourceRecord] = field(default_factory=list)


@dataclass
class NormalizedResult:
    normalized_name: str
    total_quantity: str
    count: int

    @classmethod
    def from_dict(cls, data: object) -> NormalizedResult:
        """Validate one oracle result object.

        Raises NormalizationError when normalizedName is missing or blank.
        totalQuantity may be absent (treated as empty) but must be text or a
        number; count defaults to 0.
        """
        if not isinstance(data, dict):
            raise NormalizationError(f"Expected an object, got {type(data).__name__}")

        name = data.get("normalizedName")
        if not isinstance(name, str) or not name.strip():
            raise NormalizationError(f"Result without normalizedName: {data!r}")

        total = data.get("totalQuantity", "")
        if total is None:
            total = ""
        if isinstance(total, bool) or not isinstance(total, (str, int, float)):
            raise NormalizationError(f"Invalid totalQuantity for '{name}': {total!r}")

        raw_count = data.get("count", 0)
        try:
            count = int(raw_count)
        except (TypeError, ValueError):
            raise NormalizationError(f"Invalid count for '{name}': {raw_count!r}")

        return cls(normalized_name=name.strip(), total_quantity=str(total).strip(), count=count)


@dataclass
class NormalizedItem:
    name: str
    total_quantity: str
    normalized: bool = True
    checked: bool = False
    sources: list[SourceRecord] | None = None
    id: int | None = None

    @property
    def display_quantity(self) -> str:
        return self.total_quantity or "q.b."

    def to_dict(self) -> dict:
        data: dict = {
            "id": self.id,
            "name": self.name,
            "total_quantity": self.total_quantity,
            "normalized": self.normalized,
            "checked": self.checked,
        }
        if self.sources:
            data["sources"] = [s.to_dict() for s in self.sources]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> NormalizedItem:
        sources = [SourceRecord.from_dict(s) for s in data.get("sources") or []]
        return cls(
            name=str(data["name"]),
            total_quantity=str(data.get("total_quantity") or ""),
            normalized=bool(data.get("normalized", True)),
            checked=bool(data.get("checked", False)),
            sources=sources or None,
            id=data.get("id"),
        )
