"""
Ingredient-overlap similarity scoring for cocktails.

Scores are heuristic by nature: ingredient names are free text, so matching
works on normalized names and on fixed keyword lexicons (base spirits and key
modifiers) using substring tests.

Score
-----
``min(1.0, jaccard + spirit_bonus + modifier_bonus + count_bonus)`` where

- ``jaccard``: ``|A & B| / |A | B|`` of normalized name sets (0 if either is
  empty)
- ``spirit_bonus``: 0.25 if the sets share a base-spirit name
- ``modifier_bonus``: 0.15 per shared key-modifier name
- ``count_bonus``: 0.10 if the sets share at least two names

Every term is derived from symmetric set operations, so
``similarity_score(a, b) == similarity_score(b, a)``.
"""

from __future__ import annotations

import re
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from ..schemas.catalog import CocktailDetail

SPIRIT_BONUS = 0.25
MODIFIER_BONUS = 0.15
COUNT_BONUS = 0.10
COUNT_BONUS_MIN_SHARED = 2
MAX_SHARED_IN_REASON = 3

# Spirit family -> keywords (substring matched against normalized names)
BASE_SPIRITS: Dict[str, Tuple[str, ...]] = {
    "gin": ("gin",),
    "whiskey": ("whiskey", "whisky", "bourbon", "rye", "scotch"),
    "vodka": ("vodka",),
    "rum": ("rum",),
    "tequila": ("tequila", "mezcal"),
    "brandy": ("brandy", "cognac", "armagnac"),
}

KEY_MODIFIERS: Tuple[str, ...] = (
    "vermouth",
    "campari",
    "aperol",
    "bitters",
    "cointreau",
    "triple sec",
    "chartreuse",
    "benedictine",
    "maraschino",
    "creme",
    "liqueur",
)

_WHITESPACE = re.compile(r"\s+")
_PARENTHETICAL = re.compile(r"\([^)]*\)")


def normalize_name(name: str) -> str:
    """Canonical form of an ingredient name for set comparison.

    Lowercases, drops everything after the first comma, strips parenthetical
    asides and collapses whitespace.

    >>> normalize_name("  Lime Juice (fresh),  squeezed ")
    'lime juice'
    """
    text = name.lower().split(",", 1)[0]
    text = _PARENTHETICAL.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()


def base_spirit(name: str) -> Optional[str]:
    """Spirit family of an ingredient name, or None."""
    normalized = normalize_name(name)
    for family, keywords in BASE_SPIRITS.items():
        if any(k in normalized for k in keywords):
            return family
    return None


def is_key_modifier(name: str) -> bool:
    normalized = normalize_name(name)
    return any(m in normalized for m in KEY_MODIFIERS)


def name_set(names: Iterable[str]) -> FrozenSet[str]:
    """Normalized, de-duplicated ingredient names (empty names dropped)."""
    return frozenset(n for n in (normalize_name(x) for x in names) if n)


def jaccard(a: FrozenSet[str], b: FrozenSet[str]) -> float:
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def similarity_score(ref_names: Iterable[str], cand_names: Iterable[str]) -> float:
    """Score two ingredient name lists in ``[0, 1]``."""
    a = name_set(ref_names)
    b = name_set(cand_names)
    if not a or not b:
        return 0.0
    shared = a & b
    spirit_bonus = SPIRIT_BONUS if any(base_spirit(n) for n in shared) else 0.0
    modifier_bonus = MODIFIER_BONUS * sum(1 for n in shared if is_key_modifier(n))
    count_bonus = COUNT_BONUS if len(shared) >= COUNT_BONUS_MIN_SHARED else 0.0
    return min(1.0, jaccard(a, b) + spirit_bonus + modifier_bonus + count_bonus)


def _first_spirit(cocktail: CocktailDetail) -> Optional[str]:
    for ing in cocktail.ingredients:
        family = base_spirit(ing.name)
        if family:
            return family
    return None


def _same_label(a: Optional[str], b: Optional[str]) -> bool:
    return bool(a and b and a.strip().casefold() == b.strip().casefold())


def similarity_reasons(ref: CocktailDetail, cand: CocktailDetail) -> List[str]:
    """Human-auditable reasons, each included only when it holds.

    Independent of the score: a pair may share a spirit family (a reason)
    without sharing the exact spirit name (a score bonus).
    """
    reasons: List[str] = []

    ref_spirit = _first_spirit(ref)
    if ref_spirit and ref_spirit == _first_spirit(cand):
        reasons.append(f"Same base spirit: {ref_spirit}")

    cand_names = name_set(i.name for i in cand.ingredients)
    shared: List[str] = []
    seen = set()
    for ing in ref.ingredients:
        key = normalize_name(ing.name)
        if key and key in cand_names and key not in seen:
            seen.add(key)
            shared.append(ing.name)
    if shared:
        reasons.append(
            f"Shared ingredients: {', '.join(shared[:MAX_SHARED_IN_REASON])}"
        )

    if _same_label(ref.method, cand.method):
        reasons.append(f"Same preparation method: {ref.method}")
    if _same_label(ref.glass, cand.glass):
        reasons.append(f"Same glass type: {ref.glass}")
    return reasons
