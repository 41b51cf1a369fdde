# Overview: Recipes and their supply lines.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import ConflictError, NotFoundError, ReferentialIntegrityError, ValidationError, require_fields
from ..models import Product, Recipe, RecipeLine, Supply
from ..validation import parse_quantity


def _parse_lines(raw_lines) -> list[dict]:
    if raw_lines is None:
        return []
    if not isinstance(raw_lines, list):
        raise ValidationError("lines must be a list")

    parsed = []
    seen = set()
    for i, raw in enumerate(raw_lines):
        if not isinstance(raw, dict) or raw.get("supply_id") in (None, ""):
            raise ValidationError(
                f"Missing required fields: lines[{i}].supply_id",
                missing_fields=[f"lines[{i}].supply_id"],
            )
        try:
            supply_id = int(raw["supply_id"])
        except (TypeError, ValueError):
            raise ValidationError(f"lines[{i}].supply_id must be an integer")
        if supply_id in seen:
            raise ValidationError(f"Supply {supply_id} appears more than once")
        seen.add(supply_id)
        if db.session.get(Supply, supply_id) is None:
            raise ReferentialIntegrityError(f"Supply {supply_id} does not exist")
        parsed.append({
            "supply_id": supply_id,
            "quantity": parse_quantity(raw.get("quantity"), f"lines[{i}].quantity"),
            "unit": (str(raw["unit"]).strip() or None) if raw.get("unit") else None,
        })
    return parsed


def _commit() -> None:
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        if "unique" in str(exc.orig).lower() or "duplicate" in str(exc.orig).lower():
            raise ConflictError("Recipe already exists")
        raise ReferentialIntegrityError("Recipe references a record that does not exist")


def list_recipes() -> list[Recipe]:
    return db.session.query(Recipe).order_by(Recipe.name.asc()).all()


def get_recipe(recipe_id: int) -> Recipe:
    recipe = db.session.get(Recipe, recipe_id)
    if recipe is None:
        raise NotFoundError("Recipe not found")
    return recipe


def create_recipe(payload: dict) -> Recipe:
    require_fields(payload, ["name"])
    lines = _parse_lines(payload.get("lines"))
    recipe = Recipe(
        name=str(payload["name"]).strip(),
        description=payload.get("description"),
        instructions=payload.get("instructions"),
    )
    for line in lines:
        recipe.lines.append(RecipeLine(**line))
    db.session.add(recipe)
    _commit()
    return recipe


def update_recipe(recipe_id: int, payload: dict) -> Recipe:
    """Update header fields; a "lines" key replaces every line."""
    recipe = get_recipe(recipe_id)
    if "name" in payload:
        name = str(payload.get("name") or "").strip()
        if not name:
            raise ValidationError("name cannot be blank")
        recipe.name = name
    for key in ("description", "instructions"):
        if key in payload:
            setattr(recipe, key, payload[key])
    if "lines" in payload:
        lines = _parse_lines(payload["lines"])
        recipe.lines.clear()
        db.session.flush()
        for line in lines:
            recipe.lines.append(RecipeLine(**line))
    _commit()
    return recipe


def delete_recipe(recipe_id: int) -> None:
    recipe = get_recipe(recipe_id)
    in_use = db.session.query(Product).filter_by(recipe_id=recipe_id).count()
    if in_use:
        raise ReferentialIntegrityError("Recipe is used by products and cannot be deleted")
    db.session.delete(recipe)
    _commit()
