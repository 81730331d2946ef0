"""Strips unsafe markup from recipe text before it leaves the gateway.

This is a denylist, not an HTML parser. It may also strip harmless text that
happens to look like one of the denied tags, which is fine for recipe text.
"""

import re

from extractor import Recipe

_DANGEROUS_TAG = re.compile(
    r"<\s*/?\s*(script|iframe|object|embed|form|link|style|base|meta|svg)\b[^>]*>",
    re.IGNORECASE,
)
_EVENT_HANDLER = re.compile(r"""\s+on\w+\s*=\s*(?:"[^"]*"|'[^']*'|[^\s>]*)""", re.IGNORECASE)
_DANGEROUS_URL_ATTR = re.compile(
    r"""(href|src|action)\s*=\s*["']?\s*(javascript|data|vbscript)\s*:""",
    re.IGNORECASE,
)
_SCRIPT_BLOCK = re.compile(r"<script\b[^>]*>[\s\S]*?</script>", re.IGNORECASE)


def _sanitize_once(text: str) -> str:
    # Whole script blocks go first so their body does not survive as text
    text = _SCRIPT_BLOCK.sub("", text)
    text = _DANGEROUS_TAG.sub("", text)
    text = _EVENT_HANDLER.sub("", text)
    text = _DANGEROUS_URL_ATTR.sub(r'\1="', text)
    return _SCRIPT_BLOCK.sub("", text)


def sanitize_text(value):
    """Sanitizes a string; anything else is returned unchanged."""
    if not isinstance(value, str):
        return value

    # Every pass only shortens the text, so this terminates. Repeating until
    # stable catches tags that a removal glued back together.
    while True:
        cleaned = _sanitize_once(value)
        if cleaned == value:
            return cleaned
        value = cleaned


def sanitize_recipe(recipe: Recipe) -> Recipe:
    """Sanitizes all free-text fields of a recipe in place."""
    if recipe.name:
        recipe.name = sanitize_text(recipe.name)
    if recipe.description:
        recipe.description = sanitize_text(recipe.description)
    recipe.instructions = [sanitize_text(step) for step in recipe.instructions]
    recipe.ingredients = [sanitize_text(item) for item in recipe.ingredients]
    return recipe
