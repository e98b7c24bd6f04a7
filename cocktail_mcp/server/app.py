"""Cocktail catalog service.

Owns the process-wide caches and wires the catalog adapter into the batch
orchestrator and the similarity engine. The MCP tool layer talks only to
:class:`CocktailCatalogServer`.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from ..adapters import CatalogAdapter
from ..config.models import EnvSettings
from ..domain.batch import BatchOrchestrator
from ..domain.search import refine_hits
from ..domain.similarity import SimilarityEngine, best_name_match
from ..exceptions import CatalogError, ReferenceNotFoundError
from ..schemas.catalog import (
    BatchItem,
    BatchReference,
    CocktailDetail,
    SearchFilter,
    SearchRefinement,
    SearchResponse,
    SimilarityResult,
)
from ..utils.cache import TTLCache, canonical_key

logger = logging.getLogger(__name__)

NAME_MATCH_PAGE_SIZE = 10
INGREDIENT_USAGE_LIMIT = 10


class CocktailCatalogServer:
    """Catalog operations behind the MCP tools.

    Parameters
    ----------
    adapter: CatalogAdapter
        Backend implementing search, detail and name-resolution operations.
    settings: Optional[EnvSettings]
        Cache sizing, TTLs and batch limits. Defaults are used when omitted.
    """

    def __init__(
        self, adapter: CatalogAdapter, settings: Optional[EnvSettings] = None
    ) -> None:
        self._settings = settings or EnvSettings()
        self._adapter = adapter
        self._started: bool = False
        self.recipe_cache: TTLCache[int, CocktailDetail] = TTLCache(
            maxsize=self._settings.cache_max_size,
            ttl=self._settings.cache_ttl_seconds,
        )
        self.search_cache: TTLCache[str, SearchResponse] = TTLCache(
            maxsize=self._settings.cache_max_size,
            ttl=self._settings.search_cache_ttl_seconds,
        )
        self.orchestrator = BatchOrchestrator(
            adapter,
            adapter,
            self.recipe_cache,
            name_resolver=adapter,
            chunk_size=self._settings.batch_chunk_size,
        )
        self.engine = SimilarityEngine(adapter, adapter, self.orchestrator)

    @property
    def adapter(self) -> CatalogAdapter:
        return self._adapter

    @property
    def settings(self) -> EnvSettings:
        return self._settings

    async def start(self) -> None:
        """Start the server runtime. Idempotent."""
        if self._started:
            logger.debug("server.start no-op: already started")
            return
        self._started = True
        logger.info(
            "server.started",
            extra={
                "cache_max_size": self._settings.cache_max_size,
                "cache_ttl_seconds": self._settings.cache_ttl_seconds,
                "batch_chunk_size": self._settings.batch_chunk_size,
            },
        )

    async def stop(self) -> None:
        """Stop the server runtime and close the adapter. Idempotent."""
        if not self._started:
            logger.debug("server.stop no-op: not started")
            return
        self._started = False
        await self._adapter.aclose()
        logger.info("server.stopped")

    async def ping(self) -> bool:
        return await self._adapter.ping()

    def cache_get(self, cocktail_id: int) -> Optional[CocktailDetail]:
        return self.orchestrator.cache_get(cocktail_id)

    def cache_put(self, cocktail_id: int, cocktail: CocktailDetail) -> None:
        self.orchestrator.cache_put(cocktail_id, cocktail)

    async def search_cocktails(
        self, req: SearchFilter, refinement: Optional[SearchRefinement] = None
    ) -> SearchResponse:
        """Search the catalog, memoizing whole upstream results by their parameters.

        `refinement` is applied to the (possibly cached) upstream hits and is
        not part of the cache key. ``meta.total`` stays the upstream total.
        """
        key = canonical_key(req.model_dump())
        result = self.search_cache.get(key)
        if result is not None:
            logger.debug("server.search.cache_hit", extra={"key": key})
        else:
            result = await self._adapter.search_cocktails(req)
            self.search_cache.set(key, result)
        if refinement is None or refinement.is_empty:
            return result
        kept = refine_hits(result.data, refinement, req.page_size)
        logger.debug(
            "server.search.refined",
            extra={"upstream": len(result.data), "kept": len(kept)},
        )
        return SearchResponse(data=kept, meta=result.meta)

    async def cocktails_with_ingredient(
        self, ingredient_name: str, limit: int = INGREDIENT_USAGE_LIMIT
    ) -> List[BatchItem]:
        """Full recipes of cocktails using `ingredient_name`.

        Search hits seed the batch fetch, so a failed detail lookup still
        yields the hit's own data. No hits means an empty list.
        """
        hits = await self.search_cocktails(
            SearchFilter(ingredient=ingredient_name, page_size=limit)
        )
        if not hits.data:
            return []
        return await self.orchestrator.fetch_batch(
            [BatchReference(id=h.id, seed=h.to_detail()) for h in hits.data]
        )

    async def find_similar(
        self, reference_id: int, limit: int = 10
    ) -> List[SimilarityResult]:
        return await self.engine.find_similar(reference_id, limit)

    async def find_similar_by_name(
        self, name: str, limit: int = 10
    ) -> List[SimilarityResult]:
        """Resolve `name` to its best catalog match, then rank similar cocktails.

        Raises
        ------
        ReferenceNotFoundError
            If no cocktail matches `name` or the lookup fails.
        """
        try:
            hits = await self.search_cocktails(
                SearchFilter(query=name, page_size=NAME_MATCH_PAGE_SIZE)
            )
        except CatalogError as exc:
            raise ReferenceNotFoundError(name, str(exc)) from exc
        match = best_name_match(name, hits.data)
        if match is None:
            raise ReferenceNotFoundError(name, "no cocktail matches that name")
        logger.info(
            "server.similar.resolved_name",
            extra={"name": name, "cocktail_id": match.id, "matched": match.name},
        )
        return await self.find_similar(match.id, limit)

    async def fetch_batch(self, references: Sequence[BatchReference]) -> List[BatchItem]:
        """Fetch full recipes; references past ``max_batch_size`` are dropped.

        Raises
        ------
        InvalidBatchRequestError
            If `references` is empty.
        """
        max_size = self._settings.max_batch_size
        if len(references) > max_size:
            logger.warning(
                "server.batch.truncated",
                extra={"requested": len(references), "max_batch_size": max_size},
            )
            references = references[:max_size]
        return await self.orchestrator.fetch_batch(references)
