"""
Structured search refinements.

The upstream search takes a single ingredient and an ABV range. Everything
else a caller can ask for (several required ingredients, excluded
ingredients, glass, method, a strength band) is mapped onto those upstream
filters where possible and applied to the returned hits otherwise.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from ..schemas.catalog import (
    CocktailSummary,
    SearchFilter,
    SearchRefinement,
    StrengthPreference,
)

STRENGTH_ABV_RANGES: Dict[StrengthPreference, Tuple[Optional[float], Optional[float]]] = {
    StrengthPreference.LIGHT: (None, 15.0),
    StrengthPreference.MEDIUM: (15.0, 30.0),
    StrengthPreference.STRONG: (30.0, None),
}


def strength_range(
    preference: StrengthPreference,
) -> Tuple[Optional[float], Optional[float]]:
    """ABV bounds ``(min, max)`` for a strength band; ``None`` is open."""
    return STRENGTH_ABV_RANGES[preference]


def apply_strength(
    req: SearchFilter, preference: Optional[StrengthPreference]
) -> SearchFilter:
    """Fill the ABV range from `preference` unless the caller set one."""
    if preference is None or req.abv_min is not None or req.abv_max is not None:
        return req
    abv_min, abv_max = strength_range(preference)
    return req.model_copy(update={"abv_min": abv_min, "abv_max": abv_max})


def push_down_ingredient(
    req: SearchFilter, refinement: SearchRefinement
) -> Tuple[SearchFilter, SearchRefinement]:
    """Move the first required ingredient into the upstream filter.

    Only done when the filter has no ingredient yet. The moved ingredient is
    dropped from the local refinement; the upstream search already enforces
    it.
    """
    if req.ingredient or not refinement.must_include:
        return req, refinement
    first, *rest = refinement.must_include
    return (
        req.model_copy(update={"ingredient": first}),
        refinement.model_copy(update={"must_include": rest}),
    )


def _ingredient_names(hit: CocktailSummary) -> List[str]:
    return [i.name.lower() for i in hit.ingredients]


def _contains(value: Optional[str], term: str) -> bool:
    return value is not None and term.lower() in value.lower()


def matches(hit: CocktailSummary, refinement: SearchRefinement) -> bool:
    names = _ingredient_names(hit)
    for required in refinement.must_include:
        term = required.lower()
        if not any(term in n for n in names):
            return False
    for excluded in refinement.must_exclude:
        term = excluded.lower()
        if any(term in n for n in names):
            return False
    if refinement.glass_type and not _contains(hit.glass, refinement.glass_type):
        return False
    if refinement.preparation_method and not _contains(
        hit.method, refinement.preparation_method
    ):
        return False
    return True


def refine_hits(
    hits: Sequence[CocktailSummary],
    refinement: SearchRefinement,
    limit: Optional[int] = None,
) -> List[CocktailSummary]:
    """Keep the hits satisfying `refinement`, in order, up to `limit`."""
    kept = [h for h in hits if matches(h, refinement)]
    return kept if limit is None else kept[:limit]
