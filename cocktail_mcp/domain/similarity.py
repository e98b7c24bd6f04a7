"""Similar-cocktail ranking.

Given a reference cocktail, gathers candidates through ingredient searches
(falling back to a broad search), hydrates them through the batch
orchestrator and ranks them by ingredient overlap.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from ..adapters import DetailPort, SearchPort
from ..exceptions import CatalogError, ReferenceNotFoundError
from ..schemas.catalog import (
    PLACEHOLDER_INGREDIENT_NAME,
    BatchReference,
    CocktailDetail,
    CocktailSummary,
    ResolvedReference,
    SearchFilter,
    SimilarityResult,
)
from .batch import BatchOrchestrator
from .scoring import similarity_reasons, similarity_score

logger = logging.getLogger(__name__)

MAX_CANDIDATES = 50
INGREDIENT_SEARCH_SIZE = 50
SEED_INGREDIENTS = 3
POOL_THRESHOLD_FACTOR = 3
BROAD_SEARCH_FACTOR = 10
BROAD_SEARCH_MAX = 100
MIN_SCORE = 0.15


def _ingredient_names(cocktail: CocktailDetail) -> List[str]:
    return [i.name for i in cocktail.ingredients if i.name != PLACEHOLDER_INGREDIENT_NAME]


class SimilarityEngine:
    """Rank catalog cocktails by similarity to a reference cocktail.

    Parameters
    ----------
    search_port: SearchPort
        Used to discover candidates.
    detail_port: DetailPort
        Used to fetch the reference when it is not cached.
    orchestrator: BatchOrchestrator
        Hydrates candidates and owns the recipe cache.
    max_candidates: int
        Upper bound on candidates hydrated per query.
    ingredient_search_size: int
        Page size of each ingredient-filtered search.
    min_score: float
        Candidates must score strictly above this to be returned.
    """

    def __init__(
        self,
        search_port: SearchPort,
        detail_port: DetailPort,
        orchestrator: BatchOrchestrator,
        *,
        max_candidates: int = MAX_CANDIDATES,
        ingredient_search_size: int = INGREDIENT_SEARCH_SIZE,
        min_score: float = MIN_SCORE,
    ) -> None:
        self._search = search_port
        self._detail = detail_port
        self._orchestrator = orchestrator
        self._max_candidates = max_candidates
        self._ingredient_search_size = ingredient_search_size
        self._min_score = min_score

    async def find_similar(
        self, reference_id: int, limit: int = 10
    ) -> List[SimilarityResult]:
        """Return up to `limit` cocktails most similar to `reference_id`.

        Results are sorted by score, highest first, and never include the
        reference itself. An empty list is a valid answer.

        Raises
        ------
        ValueError
            If `limit` is below 1.
        ReferenceNotFoundError
            If the reference cocktail cannot be fetched.
        """
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")

        reference = await self._load_reference(reference_id)
        pool = await self._candidate_pool(reference, limit)
        if not pool:
            logger.info(
                "similarity.no_candidates", extra={"reference_id": reference_id}
            )
            return []

        hydrated = await self._hydrate(pool)
        ref_names = _ingredient_names(reference)
        scored: List[SimilarityResult] = []
        for cid in pool:
            cand = hydrated.get(cid)
            if cand is None:
                continue
            score = similarity_score(ref_names, _ingredient_names(cand))
            if score <= self._min_score:
                continue
            scored.append(
                SimilarityResult(
                    cocktail=cand,
                    score=score,
                    reasons=similarity_reasons(reference, cand),
                )
            )

        scored.sort(key=lambda r: r.score, reverse=True)
        logger.info(
            "similarity.ranked",
            extra={
                "reference_id": reference_id,
                "pool": len(pool),
                "hydrated": len(hydrated),
                "matches": len(scored),
            },
        )
        return scored[:limit]

    async def _load_reference(self, reference_id: int) -> CocktailDetail:
        cached = self._orchestrator.cache_get(reference_id)
        if cached is not None:
            return cached
        try:
            reference = await self._detail.get_cocktail(reference_id)
        except CatalogError as exc:
            raise ReferenceNotFoundError(reference_id, str(exc)) from exc
        self._orchestrator.cache_put(reference_id, reference)
        return reference

    async def _candidate_pool(self, reference: CocktailDetail, limit: int) -> List[int]:
        """Ordered, de-duplicated candidate ids, reference excluded."""
        threshold = limit * POOL_THRESHOLD_FACTOR
        pool: Dict[int, None] = {}

        async def collect(strategy: str, req: SearchFilter) -> None:
            try:
                result = await self._search.search_cocktails(req)
            except CatalogError as exc:
                logger.warning(
                    "similarity.strategy.failed",
                    extra={
                        "strategy": strategy,
                        "ingredient": req.ingredient,
                        "error": str(exc),
                    },
                )
                return
            for hit in result.data:
                if hit.id != reference.id:
                    pool.setdefault(hit.id, None)

        for name in _ingredient_names(reference)[:SEED_INGREDIENTS]:
            if len(pool) >= threshold:
                break
            await collect(
                "ingredient",
                SearchFilter(ingredient=name, page_size=self._ingredient_search_size),
            )

        if len(pool) < threshold:
            await collect(
                "broad",
                SearchFilter(
                    page_size=min(limit * BROAD_SEARCH_FACTOR, BROAD_SEARCH_MAX)
                ),
            )

        return list(pool)[: self._max_candidates]

    async def _hydrate(self, pool: List[int]) -> Dict[int, CocktailDetail]:
        """Full records for pool ids; degraded items are left out."""
        refs = [
            ResolvedReference(id=cid, original=BatchReference(id=cid)) for cid in pool
        ]
        items = await self._orchestrator.fetch(refs)
        return {i.cocktail.id: i.cocktail for i in items if not i.degraded}


# Name fragments marking a variation of a classic rather than the classic
VARIATION_MARKERS = ("frozen", "dry", "perfect", "reverse", "white", "red")


def best_name_match(
    name: str, hits: Sequence[CocktailSummary]
) -> Optional[CocktailSummary]:
    """Pick the hit that best matches a free-text cocktail name.

    Preference: exact (case-insensitive) match, then a name starting with the
    term, then a name containing it that is not an obvious variation, then
    the first hit.
    """
    if not hits:
        return None
    term = name.strip().lower()
    lowered = [(h, h.name.lower()) for h in hits]
    for hit, hname in lowered:
        if hname == term:
            return hit
    for hit, hname in lowered:
        if hname.startswith(term):
            return hit
    for hit, hname in lowered:
        if term in hname and not any(m in hname for m in VARIATION_MARKERS):
            return hit
    return hits[0]
