"""Normalization of upstream catalog payloads.

The catalog API returns ingredients in two shapes (``ingredients`` on detail
responses, ``short_ingredients`` on search hits) and may nest amount/units
under a ``pivot`` object or name under an ``ingredient`` object. Every payload
is mapped onto the canonical models in :mod:`cocktail_mcp.schemas.catalog`
here, once, on ingestion. Nothing downstream looks at raw payloads.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any, List, Optional, Union

from ..schemas.catalog import (
    UNKNOWN_COCKTAIL_NAME,
    CocktailDetail,
    CocktailSummary,
    Ingredient,
)

UNKNOWN_INGREDIENT_NAME = "Unknown ingredient"

# Split free-text instructions on newlines, commas and "1." style markers
_STEP_SPLIT = re.compile(r"[,\n\r]|(?:\d+\.)")


def _first_present(*values: Any) -> Any:
    """Return the first value that is neither None nor an empty string."""
    for value in values:
        if value is not None and value != "":
            return value
    return None


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _ref_name(value: Any) -> Optional[str]:
    """Name of a ``{"name": ...}`` reference or a bare string."""
    if isinstance(value, str):
        return value.strip() or None
    name = _mapping(value).get("name")
    return str(name).strip() if name else None


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _amount(value: Any) -> Union[float, str, None]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return str(value).strip() or None


def normalize_ingredient(raw: Any) -> Ingredient:
    """Map any upstream ingredient shape onto :class:`Ingredient`.

    Lookup order: ``pivot`` over top level for amount/units/optional, nested
    ``ingredient.name`` over top-level ``name``.
    """
    if isinstance(raw, str):
        return Ingredient(name=raw.strip() or UNKNOWN_INGREDIENT_NAME)
    item = _mapping(raw)
    pivot = _mapping(item.get("pivot"))
    nested = _mapping(item.get("ingredient"))

    name = _first_present(nested.get("name"), item.get("name"))
    units = _first_present(pivot.get("units"), item.get("units"))
    optional = _first_present(pivot.get("optional"), item.get("optional"))
    return Ingredient(
        name=str(name).strip() if name else UNKNOWN_INGREDIENT_NAME,
        amount_raw=_amount(_first_present(pivot.get("amount"), item.get("amount"))),
        units=str(units) if units else "",
        optional=bool(optional),
    )


def normalize_ingredients(raw_cocktail: Mapping[str, Any]) -> List[Ingredient]:
    """Canonical ingredient list, preferring ``ingredients`` over ``short_ingredients``."""
    items = raw_cocktail.get("ingredients") or raw_cocktail.get("short_ingredients")
    if not isinstance(items, list):
        return []
    return [normalize_ingredient(i) for i in items]


def normalize_instructions(raw: Any) -> List[str]:
    """Flatten instructions into an ordered list of step strings."""
    if not raw:
        return []
    if isinstance(raw, str):
        return [s.strip() for s in _STEP_SPLIT.split(raw) if s.strip()]
    if isinstance(raw, list):
        ordered = sorted(
            raw,
            key=lambda s: _to_float(_mapping(s).get("sort")) or 0.0,
        )
        steps: List[str] = []
        for step in ordered:
            if isinstance(step, Mapping):
                text = _first_present(
                    step.get("content"), step.get("description"), step.get("text")
                )
            else:
                text = step
            if text is not None and str(text).strip():
                steps.append(str(text).strip())
        return steps
    return []


def _cocktail_id(raw: Mapping[str, Any]) -> int:
    try:
        return int(raw["id"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"cocktail payload has no usable id: {raw.get('id')!r}") from exc


def normalize_summary(raw: Mapping[str, Any]) -> CocktailSummary:
    """Normalize a search hit."""
    return CocktailSummary(
        id=_cocktail_id(raw),
        name=str(raw.get("name") or UNKNOWN_COCKTAIL_NAME),
        slug=raw.get("slug") or None,
        abv=_to_float(raw.get("abv")),
        ingredients=normalize_ingredients(raw),
        glass=_ref_name(raw.get("glass")),
        method=_ref_name(raw.get("method")),
    )


def normalize_cocktail(raw: Mapping[str, Any]) -> CocktailDetail:
    """Normalize a full cocktail detail payload.

    Raises
    ------
    ValueError
        If the payload carries no usable id.
    """
    tags = [_ref_name(t) for t in raw.get("tags") or []]
    return CocktailDetail(
        id=_cocktail_id(raw),
        name=str(raw.get("name") or UNKNOWN_COCKTAIL_NAME),
        slug=raw.get("slug") or None,
        description=raw.get("description") or None,
        abv=_to_float(raw.get("abv")),
        garnish=raw.get("garnish") or None,
        source=raw.get("source") or None,
        ingredients=normalize_ingredients(raw),
        instructions=normalize_instructions(raw.get("instructions")),
        glass=_ref_name(raw.get("glass")),
        method=_ref_name(raw.get("method")),
        tags=[t for t in tags if t],
    )
