"""Persisted grocery list stored as a vault note with YAML frontmatter.

The frontmatter carries the items (ids, quantities, checked state,
provenance); the body is a rendered checklist for reading in Obsidian.
Saving replaces the whole list and assigns ids 1..n in order. Checked
state can only be changed on persisted items, i.e. items that have an id.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime
from pathlib import Path

import frontmatter

from grocery_planner.models import NormalizedItem

logger = logging.getLogger(__name__)

NOTE_TYPE = "grocery-list"


def format_grocery_markdown(items: list[NormalizedItem]) -> str:
    """Format the grocery list as a markdown checklist."""
    remaining = sum(1 for item in items if not item.checked)
    lines = ["# Lista della spesa", "", f"{remaining}/{len(items)} articoli", ""]
    for item in items:
        box = "[x]" if item.checked else "[ ]"
        recipes = {s.recipe_id for s in item.sources or []}
        note = f" ({len(recipes)} ricette)" if len(recipes) > 1 else ""
        lines.append(f"- {box} {item.name} - {item.display_quantity}{note}")
    lines.append("")
    return "\n".join(lines)


def format_grocery_text(items: list[NormalizedItem]) -> str:
    """Plain "name - quantity" lines for copying elsewhere."""
    return "\n".join(f"{item.name} - {item.display_quantity}" for item in items)


def format_grocery_json(items: list[NormalizedItem]) -> str:
    return json.dumps([item.to_dict() for item in items], indent=2, ensure_ascii=False)


def _write_note(note_path: Path, items: list[NormalizedItem]) -> None:
    """Write the note through a sibling temp file so a failed write keeps the old list."""
    post = frontmatter.Post(format_grocery_markdown(items))
    post.metadata["type"] = NOTE_TYPE
    post.metadata["updated"] = datetime.now().isoformat(timespec="seconds")
    post.metadata["items"] = [item.to_dict() for item in items]

    note_path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = note_path.with_name(note_path.name + ".tmp")
    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(frontmatter.dumps(post))
            f.write("\n")
        tmp_path.replace(note_path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def load_grocery_list(note_path: Path) -> list[NormalizedItem]:
    """Load the persisted grocery list; a missing note is an empty list."""
    if not note_path.exists():
        return []

    post = frontmatter.load(note_path)
    if post.metadata.get("type") != NOTE_TYPE:
        raise ValueError(f"{note_path.name} is not a grocery list note")

    return [NormalizedItem.from_dict(d) for d in post.metadata.get("items") or []]


def save_grocery_list(note_path: Path, items: list[NormalizedItem]) -> list[NormalizedItem]:
    """Replace the persisted list with items, returning them with fresh ids."""
    persisted = [
        NormalizedItem(
            name=item.name,
            total_quantity=item.total_quantity,
            normalized=item.normalized,
            checked=item.checked,
            sources=item.sources,
            id=i,
        )
        for i, item in enumerate(items, start=1)
    ]
    _write_note(note_path, persisted)
    logger.debug("Wrote %d grocery items to %s", len(persisted), note_path)
    return persisted


def set_item_checked(note_path: Path, item_id: int | None, checked: bool) -> NormalizedItem:
    """Set the checked state of one persisted item.

    Requires the id assigned at save time; transient items (id None) are
    not toggleable.
    """
    if item_id is None:
        raise ValueError("Cannot toggle an item without id; save the list first")

    items = load_grocery_list(note_path)
    for item in items:
        if item.id == item_id:
            item.checked = checked
            _write_note(note_path, items)
            return item

    raise ValueError(f"No grocery item with id {item_id}")


def clear_grocery_list(note_path: Path) -> None:
    """Empty the persisted list, keeping the note."""
    _write_note(note_path, [])


def run_show(note_path: Path, output_format: str = "markdown") -> None:
    """CLI entry point for show command."""
    try:
        items = load_grocery_list(note_path)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)

    if output_format == "json":
        print(format_grocery_json(items))
    elif output_format == "text":
        print(format_grocery_text(items))
    else:
        print(format_grocery_markdown(items))


def run_check(note_path: Path, item_id: int, checked: bool = True) -> None:
    """CLI entry point for check command."""
    try:
        item = set_item_checked(note_path, item_id, checked)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)

    logger.info("%s %s", "Checked" if checked else "Unchecked", item.name)


def run_clear(note_path: Path) -> None:
    """CLI entry point for clear command."""
    clear_grocery_list(note_path)
    logger.info("Grocery list cleared")


def run_sources(note_path: Path, name: str) -> None:
    """CLI entry point for sources command: show where an item comes from."""
    from grocery_planner.reconciler import format_sources_markdown

    try:
        items = load_grocery_list(note_path)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)

    query = name.strip().lower()
    matches = [i for i in items if i.name.lower() == query] or [
        i for i in items if query in i.name.lower()
    ]
    if not matches:
        print(f"Item not found: {name}", file=sys.stderr)
        sys.exit(1)

    for item in matches:
        print(format_sources_markdown(item))
