"""In-memory catalog used by the domain and server tests."""

from __future__ import annotations

import asyncio
from typing import Dict, Iterable, List, Optional, Set, Tuple

from cocktail_mcp.exceptions import CatalogUnavailableError, CocktailNotFoundError
from cocktail_mcp.schemas.catalog import (
    CocktailDetail,
    CocktailSummary,
    Ingredient,
    SearchFilter,
    SearchMeta,
    SearchResponse,
)


def cocktail(
    cid: int,
    name: str,
    ingredients: Iterable[str],
    *,
    method: Optional[str] = None,
    glass: Optional[str] = None,
    instructions: Iterable[str] = ("Stir with ice", "Strain"),
) -> CocktailDetail:
    return CocktailDetail(
        id=cid,
        name=name,
        ingredients=[Ingredient(name=n) for n in ingredients],
        instructions=list(instructions),
        method=method,
        glass=glass,
    )


def summary(detail: CocktailDetail) -> CocktailSummary:
    return CocktailSummary.model_validate(
        detail.model_dump(include=set(CocktailSummary.model_fields))
    )


class FakeCatalog:
    """Search, detail and name-resolution ports over a dict of cocktails.

    Ingredient searches match any cocktail containing the ingredient name
    (case-insensitive); name searches match a substring of the name; an
    unfiltered search returns everything in id order.
    """

    def __init__(self, cocktails: Iterable[CocktailDetail] = ()) -> None:
        self.cocktails: Dict[int, CocktailDetail] = {c.id: c for c in cocktails}
        self.failing_details: Set[int] = set()
        self.failing_searches: Set[Tuple[Optional[str], Optional[str]]] = set()
        self.fail_all_searches = False
        self.detail_delay = 0.0
        self.detail_calls: List[int] = []
        self.search_calls: List[SearchFilter] = []
        self.name_calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    def add(self, *cocktails: CocktailDetail) -> None:
        for c in cocktails:
            self.cocktails[c.id] = c

    async def get_cocktail(self, cocktail_id: int) -> CocktailDetail:
        self.detail_calls.append(cocktail_id)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.detail_delay)
            if cocktail_id in self.failing_details:
                raise CatalogUnavailableError("upstream down", status=503)
            if cocktail_id not in self.cocktails:
                raise CocktailNotFoundError(cocktail_id)
            return self.cocktails[cocktail_id]
        finally:
            self.in_flight -= 1

    async def search_cocktails(self, req: SearchFilter) -> SearchResponse:
        self.search_calls.append(req)
        if self.fail_all_searches or (req.query, req.ingredient) in self.failing_searches:
            raise CatalogUnavailableError("search down", status=502)
        hits = sorted(self.cocktails.values(), key=lambda c: c.id)
        if req.query and req.query.startswith("id:"):
            wanted = int(req.query[3:])
            hits = [c for c in hits if c.id == wanted]
        elif req.query:
            hits = [c for c in hits if req.query.lower() in c.name.lower()]
        if req.ingredient:
            term = req.ingredient.lower()
            hits = [
                c for c in hits if any(term == i.name.lower() for i in c.ingredients)
            ]
        page = [summary(c) for c in hits[: req.page_size]]
        return SearchResponse(data=page, meta=SearchMeta(total=len(hits)))

    async def find_cocktail_by_name(self, name: str) -> SearchResponse:
        self.name_calls.append(name)
        return await self.search_cocktails(SearchFilter(query=name, page_size=5))

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        self.closed = True
