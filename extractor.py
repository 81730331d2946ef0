"""Extracts schema.org recipes from the JSON-LD embedded in a web page."""

import json
import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Any
from urllib.parse import urlparse

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

DEFAULT_RECIPE_NAME = "Untitled Recipe"

_JSON_LD_TYPE = re.compile(r"^application/ld\+json$", re.IGNORECASE)


# =============================================================================
# DATA MODEL
# =============================================================================

@dataclass
class Recipe:
    """Normalized recipe as returned to clients."""
    name: str = DEFAULT_RECIPE_NAME
    description: str = ""
    ingredients: list[str] = field(default_factory=list)
    instructions: list[str] = field(default_factory=list)
    servings: Any = None  # raw recipeYield, usually "4" or "4 servings"
    prep_time: str | None = None  # ISO 8601 duration as given by the source
    cook_time: str | None = None
    image: str | None = None

    def to_dict(self) -> dict:
        """Serializes with the camelCase keys of the public response."""
        data = asdict(self)
        data["prepTime"] = data.pop("prep_time")
        data["cookTime"] = data.pop("cook_time")
        return data


class RecipeNotFoundError(ValueError):
    """Raised when a page carries no schema.org Recipe object."""
    pass


# =============================================================================
# JSON-LD DISCOVERY
# =============================================================================

def find_json_ld_blocks(html: str) -> list:
    """
    Parses every <script type="application/ld+json"> block in document order.

    Malformed blocks are common in the wild and are skipped.
    """
    soup = BeautifulSoup(html, "html.parser")

    blocks = []
    for script in soup.find_all("script", attrs={"type": _JSON_LD_TYPE}):
        text = script.string
        if not text:
            continue
        try:
            blocks.append(json.loads(text))
        except json.JSONDecodeError as e:
            logger.debug(f"Skipping malformed JSON-LD block: {e}")
            continue

    return blocks


def _is_recipe(item) -> bool:
    return isinstance(item, dict) and item.get("@type") == "Recipe"


def _first_recipe(items: list) -> dict | None:
    for item in items:
        if _is_recipe(item):
            return item
    return None


def resolve_recipe(candidates: list) -> dict | None:
    """
    Finds the first Recipe object among parsed JSON-LD blocks.

    Each block may be the Recipe itself, an array holding it, or a wrapper
    with an "@graph" array holding it, checked in that order.
    """
    for data in candidates:
        if _is_recipe(data):
            return data

        if isinstance(data, list):
            recipe = _first_recipe(data)
            if recipe:
                return recipe

        if isinstance(data, dict) and isinstance(data.get("@graph"), list):
            recipe = _first_recipe(data["@graph"])
            if recipe:
                return recipe

    return None


# =============================================================================
# NORMALIZATION
# =============================================================================

def _normalize_instructions(raw) -> list[str]:
    if isinstance(raw, str):
        return [raw] if raw else []
    if not isinstance(raw, list):
        return []

    instructions = []
    for step in raw:
        if isinstance(step, str):
            text = step
        elif isinstance(step, dict):
            # HowToStep carries "text", HowToSection only a "name"
            text = step.get("text") or step.get("name")
        else:
            text = None
        if text:
            instructions.append(text)
    return instructions


def _resolve_image(raw) -> str | None:
    if isinstance(raw, list):
        raw = raw[0] if raw else None
    if isinstance(raw, dict):
        raw = raw.get("url")
    if not isinstance(raw, str) or not raw:
        return None

    # Only absolute http(s) URLs reach the client
    try:
        parsed = urlparse(raw)
    except ValueError:
        return None
    if parsed.scheme.lower() not in ("http", "https") or not parsed.netloc:
        return None
    return raw


def normalize_recipe(data: dict) -> Recipe:
    """Maps a schema.org Recipe object onto the response fields."""
    raw_ingredients = data.get("recipeIngredient") or []
    if not isinstance(raw_ingredients, list):
        raw_ingredients = []

    return Recipe(
        name=data.get("name") or DEFAULT_RECIPE_NAME,
        description=data.get("description") or "",
        ingredients=[i.strip() if isinstance(i, str) else "" for i in raw_ingredients],
        instructions=_normalize_instructions(data.get("recipeInstructions")),
        servings=data.get("recipeYield") or None,
        prep_time=data.get("prepTime") or None,
        cook_time=data.get("cookTime") or None,
        image=_resolve_image(data.get("image")),
    )


def extract_recipe(html: str) -> Recipe:
    """
    Extracts the first schema.org Recipe from a page.

    Raises:
        RecipeNotFoundError: If no JSON-LD block holds a Recipe.
    """
    candidates = find_json_ld_blocks(html)
    data = resolve_recipe(candidates)
    if data is None:
        raise RecipeNotFoundError(
            f"No Recipe among {len(candidates)} JSON-LD block(s)"
        )

    recipe = normalize_recipe(data)
    logger.info(f"Schema recipe found: {recipe.name}")
    return recipe
