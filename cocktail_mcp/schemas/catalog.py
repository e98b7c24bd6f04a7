"""
Cocktail Catalog Schemas

Code-first schema definitions using Pydantic that serve as:
1. Runtime validation for catalog payloads after normalization
2. The typed interface between the cache, the similarity engine and the
   batch orchestrator
3. JSON-able tool results for the MCP layer

Upstream payloads are never validated against these models directly; they
pass through :mod:`cocktail_mcp.domain.normalize` first.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

UNKNOWN_COCKTAIL_NAME = "Unknown Cocktail"
PLACEHOLDER_INGREDIENT_NAME = "Recipe details unavailable"
PLACEHOLDER_INSTRUCTION = (
    "Complete instructions not available - please refer to source or try "
    "getting recipe by ID"
)


class ErrorCode(str, Enum):
    """Standardized error codes"""

    INVALID_REQUEST = "INVALID_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


class FetchSource(str, Enum):
    """Which rung of the retrieval ladder produced a batch item"""

    DETAIL = "detail"
    CACHE = "cache"
    SEARCH = "search"
    SEED = "seed"
    PLACEHOLDER = "placeholder"


# Common Models


class ErrorDetails(BaseModel):
    """Structured error response"""

    code: ErrorCode
    message: str
    details: Optional[Dict[str, Any]] = None
    retryable: Optional[bool] = None


class ErrorResponse(BaseModel):
    """Standard error response wrapper"""

    error: ErrorDetails


class Ingredient(BaseModel):
    """Canonical ingredient shape, whichever upstream shape it came from"""

    name: str
    amount_raw: Union[float, str, None] = Field(
        None, description="Amount as sent upstream (number or free text)"
    )
    units: str = ""
    optional: bool = False


class CocktailSummary(BaseModel):
    """Cocktail as returned by a catalog search"""

    model_config = ConfigDict(extra="ignore")

    id: int = Field(..., ge=0)
    name: str
    slug: Optional[str] = None
    abv: Optional[float] = Field(None, ge=0)
    ingredients: List[Ingredient] = Field(default_factory=list)
    glass: Optional[str] = None
    method: Optional[str] = None

    def to_detail(self) -> "CocktailDetail":
        """Promote a search hit to a (sparser) detail record."""
        return CocktailDetail.model_validate(self.model_dump())


class CocktailDetail(CocktailSummary):
    """Full cocktail record: the unit of comparison and of retrieval"""

    description: Optional[str] = None
    garnish: Optional[str] = None
    source: Optional[str] = None
    instructions: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)


# catalog.search


class SearchFilter(BaseModel):
    """Filters accepted by the upstream cocktail search"""

    query: Optional[str] = Field(None, description="Free-text name filter")
    ingredient: Optional[str] = Field(None, description="Single ingredient name")
    abv_min: Optional[float] = Field(None, ge=0, le=100)
    abv_max: Optional[float] = Field(None, ge=0, le=100)
    page_size: int = Field(20, ge=1, le=100)
    page: Optional[int] = Field(None, ge=1)


class SearchMeta(BaseModel):
    """Search result metadata"""

    total: int = Field(0, ge=0)


class SearchResponse(BaseModel):
    """Response from catalog.search"""

    data: List[CocktailSummary] = Field(default_factory=list)
    meta: SearchMeta = Field(default_factory=SearchMeta)


class StrengthPreference(str, Enum):
    """Coarse strength bands mapped onto ABV ranges"""

    LIGHT = "light"
    MEDIUM = "medium"
    STRONG = "strong"


class SearchRefinement(BaseModel):
    """Filters applied locally to search hits after the upstream search

    Matching is case-insensitive substring matching against ingredient,
    glass and method names.
    """

    must_include: List[str] = Field(default_factory=list)
    must_exclude: List[str] = Field(default_factory=list)
    glass_type: Optional[str] = None
    preparation_method: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not (
            self.must_include
            or self.must_exclude
            or self.glass_type
            or self.preparation_method
        )


class Substitution(BaseModel):
    """A suggested stand-in for an ingredient"""

    substitute: str
    description: str
    flavor_impact: str


# Batch retrieval


class BatchReference(BaseModel):
    """One requested cocktail: by id or by name, optionally with seed data"""

    id: Optional[int] = Field(None, ge=0)
    name: Optional[str] = Field(None, min_length=1)
    seed: Optional[CocktailDetail] = Field(
        None, description="Prior partial data used if every fetch fails"
    )

    @model_validator(mode="after")
    def _require_id_or_name(self) -> "BatchReference":
        if self.id is None and not self.name:
            raise ValueError("batch reference needs an id or a name")
        return self


class ResolvedReference(BaseModel):
    """A batch reference whose name (if any) has been resolved to an id"""

    id: int
    original: BatchReference

    @property
    def seed(self) -> Optional[CocktailDetail]:
        return self.original.seed


class BatchItem(BaseModel):
    """Terminal state of one batch reference"""

    cocktail: CocktailDetail
    source: FetchSource

    @property
    def degraded(self) -> bool:
        """True when the item did not come from a full detail fetch."""
        return self.source not in (FetchSource.DETAIL, FetchSource.CACHE)


# Similarity


class SimilarityResult(BaseModel):
    """A scored candidate with human-auditable reasons"""

    cocktail: CocktailDetail
    score: float = Field(..., ge=0.0, le=1.0)
    reasons: List[str] = Field(default_factory=list)
