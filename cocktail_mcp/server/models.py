"""Tool request/response models for the cocktail MCP server."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, model_validator

from ..domain.search import apply_strength, push_down_ingredient
from ..schemas.catalog import (
    BatchItem,
    BatchReference,
    CocktailDetail,
    CocktailSummary,
    FetchSource,
    SearchFilter,
    SearchRefinement,
    SimilarityResult,
    StrengthPreference,
    Substitution,
)

MAX_RECIPES_PER_REQUEST = 20


class FindSimilarRequest(BaseModel):
    """Request model for find_similar_cocktails.

    Exactly one of ``cocktail_id`` or ``cocktail_name`` identifies the
    reference; the id wins when both are given.
    """

    cocktail_id: Optional[int] = Field(None, ge=0)
    cocktail_name: Optional[str] = Field(None, min_length=1)
    limit: int = Field(10, ge=1, le=50, description="Maximum results to return.")

    @model_validator(mode="after")
    def _require_reference(self) -> "FindSimilarRequest":
        if self.cocktail_id is None and not self.cocktail_name:
            raise ValueError("provide cocktail_id or cocktail_name")
        return self


class GetRecipesRequest(BaseModel):
    """Request model for get_recipes.

    Ids are taken first, then names, up to ``limit`` references in total.
    """

    cocktail_ids: List[int] = Field(default_factory=list)
    cocktail_names: List[str] = Field(default_factory=list)
    limit: int = Field(10, ge=1, le=MAX_RECIPES_PER_REQUEST)

    @model_validator(mode="after")
    def _require_references(self) -> "GetRecipesRequest":
        if not self.cocktail_ids and not any(n.strip() for n in self.cocktail_names):
            raise ValueError("provide cocktail_ids or cocktail_names")
        return self

    def references(self) -> List[BatchReference]:
        refs = [BatchReference(id=i) for i in self.cocktail_ids[: self.limit]]
        remaining = self.limit - len(refs)
        names = [n.strip() for n in self.cocktail_names if n.strip()]
        refs.extend(BatchReference(name=n) for n in names[: max(remaining, 0)])
        return refs


class SearchCocktailsRequest(BaseModel):
    """Request model for search_cocktails.

    ``preferred_strength`` only applies when neither ABV bound is given. The
    first ``must_include`` ingredient becomes the upstream ingredient filter
    when ``ingredient`` is not set; the remaining refinements filter the
    returned hits.
    """

    query: Optional[str] = None
    ingredient: Optional[str] = None
    abv_min: Optional[float] = Field(None, ge=0, le=100)
    abv_max: Optional[float] = Field(None, ge=0, le=100)
    preferred_strength: Optional[StrengthPreference] = None
    must_include: List[str] = Field(default_factory=list)
    must_exclude: List[str] = Field(default_factory=list)
    glass_type: Optional[str] = None
    preparation_method: Optional[str] = None
    limit: int = Field(20, ge=1, le=100)

    def to_search(self) -> Tuple[SearchFilter, SearchRefinement]:
        """Upstream filter plus the local refinement applied to its hits."""
        req = SearchFilter(
            query=self.query or None,
            ingredient=self.ingredient or None,
            abv_min=self.abv_min,
            abv_max=self.abv_max,
            page_size=self.limit,
        )
        refinement = SearchRefinement(
            must_include=[i.strip() for i in self.must_include if i.strip()],
            must_exclude=[i.strip() for i in self.must_exclude if i.strip()],
            glass_type=self.glass_type or None,
            preparation_method=self.preparation_method or None,
        )
        req = apply_strength(req, self.preferred_strength)
        return push_down_ingredient(req, refinement)

    def applied_filters(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_defaults=True, exclude={"limit"})


class RecipeOut(BaseModel):
    """One recipe in a get_recipes response."""

    cocktail: CocktailDetail
    source: FetchSource
    degraded: bool

    @classmethod
    def from_item(cls, item: BatchItem) -> "RecipeOut":
        return cls(cocktail=item.cocktail, source=item.source, degraded=item.degraded)


class GetRecipesResponse(BaseModel):
    recipes: List[RecipeOut] = Field(default_factory=list)
    requested: int = 0


class FindSimilarResponse(BaseModel):
    results: List[SimilarityResult] = Field(default_factory=list)


class SearchCocktailsResponse(BaseModel):
    results: List[CocktailSummary] = Field(default_factory=list)
    total: int = 0
    applied_filters: Dict[str, Any] = Field(default_factory=dict)


class IngredientInfoRequest(BaseModel):
    """Request model for get_ingredient_info."""

    ingredient_name: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def _strip_name(self) -> "IngredientInfoRequest":
        self.ingredient_name = self.ingredient_name.strip()
        if not self.ingredient_name:
            raise ValueError("ingredient_name must not be blank")
        return self


class IngredientInfoResponse(BaseModel):
    ingredient: str
    cocktails: List[RecipeOut] = Field(default_factory=list)
    substitutions: List[Substitution] = Field(default_factory=list)
