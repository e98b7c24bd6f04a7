"""Batch retrieval of full cocktail records.

Fetches many cocktails by id or name without exceeding the upstream
concurrency budget and without letting any single failure abort the batch.

Every reference reaches a terminal :class:`BatchItem`. Per reference, the
fallback ladder is::

    detail fetch -> exact-id search (only without a seed) -> seed -> placeholder

Only detail results are written to the recipe cache. A degraded record must
not be served later as if it were complete.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from ..adapters import DetailPort, NameResolverPort, SearchPort
from ..exceptions import CatalogError, InvalidBatchRequestError
from ..schemas.catalog import (
    PLACEHOLDER_INGREDIENT_NAME,
    PLACEHOLDER_INSTRUCTION,
    UNKNOWN_COCKTAIL_NAME,
    BatchItem,
    BatchReference,
    CocktailDetail,
    FetchSource,
    Ingredient,
    ResolvedReference,
    SearchFilter,
    SearchResponse,
)
from ..utils.cache import TTLCache
from ..utils.partial_results import chunked, gather_partial

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 5


NAME_LOOKUP_PAGE_SIZE = 5


def placeholder_cocktail(cocktail_id: int) -> CocktailDetail:
    """Minimal record for a reference nothing could be learned about."""
    return CocktailDetail(id=cocktail_id, name=UNKNOWN_COCKTAIL_NAME)


def with_placeholders(cocktail: CocktailDetail) -> CocktailDetail:
    """Fill empty ingredient or instruction lists with one placeholder each.

    Returns a copy when anything changes; the input is never mutated, so a
    cached record stays exactly as it was fetched.
    """
    update: Dict[str, object] = {}
    if not cocktail.ingredients:
        update["ingredients"] = [Ingredient(name=PLACEHOLDER_INGREDIENT_NAME)]
    if not cocktail.instructions:
        update["instructions"] = [PLACEHOLDER_INSTRUCTION]
    if not update:
        return cocktail
    return cocktail.model_copy(update=update)


class BatchOrchestrator:
    """Fetch many cocktails in bounded-concurrency chunks.

    Parameters
    ----------
    search_port: SearchPort
        Used for the exact-id search fallback.
    detail_port: DetailPort
        Primary source of full records.
    cache: TTLCache
        Recipe cache keyed by cocktail id.
    name_resolver: Optional[NameResolverPort]
        Resolves name references; without one, a plain name search on
        `search_port` is used.
    chunk_size: int
        Maximum number of detail fetches in flight at once.
    cache_ttl: Optional[float]
        TTL for cached details; ``None`` uses the cache default.
    """

    def __init__(
        self,
        search_port: SearchPort,
        detail_port: DetailPort,
        cache: TTLCache[int, CocktailDetail],
        *,
        name_resolver: Optional[NameResolverPort] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        cache_ttl: Optional[float] = None,
    ) -> None:
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be at least 1, got {chunk_size}")
        self._search = search_port
        self._detail = detail_port
        self._name_resolver = name_resolver
        self._cache = cache
        self._chunk_size = chunk_size
        self._cache_ttl = cache_ttl

    @property
    def cache(self) -> TTLCache[int, CocktailDetail]:
        return self._cache

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    def cache_get(self, cocktail_id: int) -> Optional[CocktailDetail]:
        return self._cache.get(cocktail_id)

    def cache_put(self, cocktail_id: int, cocktail: CocktailDetail) -> None:
        self._cache.set(cocktail_id, cocktail, ttl=self._cache_ttl)

    async def resolve(
        self, references: Sequence[BatchReference]
    ) -> List[ResolvedReference]:
        """Turn references into id references, preserving input order.

        Name references go through the name-resolution port and take the
        first hit. A name with no hits, or whose lookup fails, is dropped.
        """
        resolved: List[ResolvedReference] = []
        for ref in references:
            if ref.id is not None:
                resolved.append(ResolvedReference(id=ref.id, original=ref))
                continue
            name = ref.name or ""
            try:
                result = await self._lookup_name(name)
            except CatalogError as exc:
                logger.warning(
                    "batch.resolve.failed", extra={"name": name, "error": str(exc)}
                )
                continue
            if not result.data:
                logger.warning("batch.resolve.no_match", extra={"name": name})
                continue
            resolved.append(ResolvedReference(id=result.data[0].id, original=ref))
        return resolved

    async def fetch(self, resolved: Sequence[ResolvedReference]) -> List[BatchItem]:
        """Fetch every resolved reference; one item per reference.

        Cache hits are emitted first (input order) without network use. The
        rest are fetched in sequential chunks of ``chunk_size``; every fetch
        in a chunk settles before the next chunk starts.
        """
        cached: List[BatchItem] = []
        pending: List[ResolvedReference] = []
        for ref in resolved:
            hit = self._cache.get(ref.id)
            if hit is not None:
                cached.append(BatchItem(cocktail=hit, source=FetchSource.CACHE))
            else:
                pending.append(ref)

        fetched: List[BatchItem] = []
        for index, chunk in enumerate(chunked(pending, self._chunk_size)):
            operations = {
                f"{index}:{pos}": self._fetch_one(ref) for pos, ref in enumerate(chunk)
            }
            outcome = await gather_partial(operations, "batch_fetch")
            if outcome.has_failures:
                failed = {f.identifier: f for f in outcome.failures}
            else:
                failed = {}
            for pos, ref in enumerate(chunk):
                item = outcome.successes.get(f"{index}:{pos}")
                if item is None:
                    # Only non-catalog exceptions get here
                    failure = failed.get(f"{index}:{pos}")
                    logger.error(
                        "batch.fetch.unexpected_error",
                        extra={
                            "cocktail_id": ref.id,
                            "error_type": failure.error_type if failure else None,
                            "error": failure.error if failure else None,
                        },
                    )
                    item = self._degrade(ref)
                fetched.append(item)

        items = [
            BatchItem(cocktail=with_placeholders(i.cocktail), source=i.source)
            for i in cached + fetched
        ]
        logger.info(
            "batch.fetch.complete",
            extra={
                "requested": len(resolved),
                "cache_hits": len(cached),
                "degraded": sum(1 for i in items if i.degraded),
            },
        )
        return items

    async def fetch_batch(self, references: Sequence[BatchReference]) -> List[BatchItem]:
        """Resolve then fetch.

        Raises
        ------
        InvalidBatchRequestError
            If `references` is empty.
        """
        if not references:
            raise InvalidBatchRequestError("batch needs at least one id or name")
        return await self.fetch(await self.resolve(references))

    async def _lookup_name(self, name: str) -> SearchResponse:
        if self._name_resolver is not None:
            return await self._name_resolver.find_cocktail_by_name(name)
        return await self._search.search_cocktails(
            SearchFilter(query=name, page_size=NAME_LOOKUP_PAGE_SIZE)
        )

    async def _fetch_one(self, ref: ResolvedReference) -> BatchItem:
        try:
            detail = await self._detail.get_cocktail(ref.id)
        except CatalogError as exc:
            logger.warning(
                "batch.fetch.fallback",
                extra={"cocktail_id": ref.id, "error": str(exc)},
            )
        else:
            self.cache_put(ref.id, detail)
            return BatchItem(cocktail=detail, source=FetchSource.DETAIL)

        if ref.seed is None:
            summary = await self._search_by_id(ref.id)
            if summary is not None:
                return BatchItem(cocktail=summary, source=FetchSource.SEARCH)
        return self._degrade(ref)

    async def _search_by_id(self, cocktail_id: int) -> Optional[CocktailDetail]:
        try:
            result = await self._search.search_cocktails(
                SearchFilter(query=f"id:{cocktail_id}", page_size=1)
            )
        except CatalogError as exc:
            logger.warning(
                "batch.fetch.search_fallback_failed",
                extra={"cocktail_id": cocktail_id, "error": str(exc)},
            )
            return None
        if not result.data:
            return None
        return result.data[0].to_detail()

    @staticmethod
    def _degrade(ref: ResolvedReference) -> BatchItem:
        if ref.seed is not None:
            return BatchItem(cocktail=ref.seed, source=FetchSource.SEED)
        return BatchItem(
            cocktail=placeholder_cocktail(ref.id), source=FetchSource.PLACEHOLDER
        )
