"""Substitution suggestions for common cocktail ingredients."""

from __future__ import annotations

from typing import List, Tuple

from ..schemas.catalog import Substitution

# (keyword, suggestions); the first keyword found in the name wins
_SUBSTITUTIONS: Tuple[Tuple[str, Tuple[Substitution, ...]], ...] = (
    (
        "gin",
        (
            Substitution(
                substitute="Vodka",
                description="Provides a cleaner, neutral flavor profile",
                flavor_impact="Less botanical, more neutral",
            ),
            Substitution(
                substitute="White rum",
                description="Adds tropical character to cocktails",
                flavor_impact="Sweeter, more tropical",
            ),
            Substitution(
                substitute="Aquavit",
                description="Maintains herbal complexity",
                flavor_impact="Different botanicals, caraway notes",
            ),
        ),
    ),
    (
        "vermouth",
        (
            Substitution(
                substitute="Lillet Blanc",
                description="Lighter and more citrus-forward",
                flavor_impact="Less herbal, more citrusy",
            ),
            Substitution(
                substitute="Cocchi Americano",
                description="More bitter and complex",
                flavor_impact="More bitter, quinine notes",
            ),
            Substitution(
                substitute="Dry sherry",
                description="Provides fortified wine character",
                flavor_impact="Nuttier, more oxidized flavors",
            ),
        ),
    ),
    (
        "campari",
        (
            Substitution(
                substitute="Aperol",
                description="Lighter and sweeter alternative",
                flavor_impact="Less bitter, more orange-forward",
            ),
            Substitution(
                substitute="Cappelletti",
                description="Similar bitterness profile",
                flavor_impact="Similar bitterness, different herbal notes",
            ),
            Substitution(
                substitute="Gran Classico",
                description="Spicier and more complex",
                flavor_impact="More spice, different bitter profile",
            ),
        ),
    ),
)


def substitutions_for(ingredient_name: str) -> List[Substitution]:
    """Suggested substitutes for `ingredient_name`; empty when none are known."""
    lowered = ingredient_name.lower()
    for keyword, suggestions in _SUBSTITUTIONS:
        if keyword in lowered:
            return list(suggestions)
    return []
