"""Tests for the catalog service facade."""

import pytest

from cocktail_mcp.config.models import EnvSettings
from cocktail_mcp.exceptions import ReferenceNotFoundError
from cocktail_mcp.schemas.catalog import (
    BatchReference,
    FetchSource,
    SearchFilter,
    SearchRefinement,
)
from cocktail_mcp.server.app import CocktailCatalogServer

from fakes import FakeCatalog, cocktail

NEGRONI = cocktail(1, "Negroni", ["Gin", "Campari", "Sweet Vermouth"])
BOULEVARDIER = cocktail(2, "Boulevardier", ["Bourbon", "Campari", "Sweet Vermouth"])
WHITE_NEGRONI = cocktail(3, "White Negroni", ["Gin", "Suze", "Lillet Blanc"])


def _server(catalog, **settings):
    return CocktailCatalogServer(catalog, EnvSettings(**settings))


@pytest.mark.asyncio
async def test_search_results_are_memoized():
    catalog = FakeCatalog([NEGRONI, BOULEVARDIER])
    server = _server(catalog)
    first = await server.search_cocktails(SearchFilter(query="negroni"))
    second = await server.search_cocktails(SearchFilter(query="negroni"))
    assert first == second
    assert len(catalog.search_calls) == 1
    await server.search_cocktails(SearchFilter(query="negroni", page_size=5))
    assert len(catalog.search_calls) == 2


@pytest.mark.asyncio
async def test_cache_put_and_get_share_the_recipe_cache():
    catalog = FakeCatalog()
    server = _server(catalog)
    server.cache_put(1, NEGRONI)
    assert server.cache_get(1) == NEGRONI
    items = await server.fetch_batch([BatchReference(id=1)])
    assert items[0].source == FetchSource.CACHE
    assert catalog.detail_calls == []


@pytest.mark.asyncio
async def test_fetch_batch_truncates_to_max_batch_size():
    catalog = FakeCatalog(cocktail(i, f"C{i}", ["Gin"]) for i in range(1, 6))
    server = _server(catalog, max_batch_size=3)
    items = await server.fetch_batch([BatchReference(id=i) for i in range(1, 6)])
    assert [i.cocktail.id for i in items] == [1, 2, 3]


@pytest.mark.asyncio
async def test_find_similar_by_name_prefers_exact_match():
    catalog = FakeCatalog([WHITE_NEGRONI, NEGRONI, BOULEVARDIER])
    server = _server(catalog)
    results = await server.find_similar_by_name("Negroni", limit=5)
    assert [r.cocktail.id for r in results][0] == 2
    assert 1 not in catalog.detail_calls[1:]


@pytest.mark.asyncio
async def test_find_similar_by_unknown_name():
    server = _server(FakeCatalog([NEGRONI]))
    with pytest.raises(ReferenceNotFoundError):
        await server.find_similar_by_name("Zombie")


@pytest.mark.asyncio
async def test_settings_size_the_caches():
    server = _server(FakeCatalog(), cache_max_size=7, cache_ttl_seconds=60)
    assert server.recipe_cache.maxsize == 7
    assert server.recipe_cache.ttl == 60
    assert server.search_cache.maxsize == 7


@pytest.mark.asyncio
async def test_start_stop_idempotent_and_close_adapter():
    catalog = FakeCatalog()
    server = _server(catalog)
    await server.start()
    await server.start()
    await server.stop()
    assert catalog.closed
    catalog.closed = False
    await server.stop()
    assert not catalog.closed


@pytest.mark.asyncio
async def test_refinement_filters_cached_upstream_results():
    catalog = FakeCatalog([NEGRONI, BOULEVARDIER, WHITE_NEGRONI])
    server = _server(catalog)
    req = SearchFilter(ingredient="Gin")
    plain = await server.search_cocktails(req)
    refined = await server.search_cocktails(
        req, SearchRefinement(must_exclude=["campari"])
    )
    assert [c.id for c in plain.data] == [1, 3]
    assert [c.id for c in refined.data] == [3]
    assert refined.meta.total == plain.meta.total
    # Refinement is local; the upstream result was reused
    assert len(catalog.search_calls) == 1


@pytest.mark.asyncio
async def test_cocktails_with_ingredient_fetches_full_recipes():
    catalog = FakeCatalog([NEGRONI, BOULEVARDIER, WHITE_NEGRONI])
    catalog.failing_details.add(2)
    server = _server(catalog)
    items = await server.cocktails_with_ingredient("Campari")
    assert catalog.search_calls[0].ingredient == "Campari"
    assert catalog.search_calls[0].page_size == 10
    by_id = {i.cocktail.id: i for i in items}
    assert set(by_id) == {1, 2}
    assert by_id[1].source == FetchSource.DETAIL
    # The search hit seeds the failed detail lookup
    assert by_id[2].source == FetchSource.SEED
    assert by_id[2].cocktail.name == "Boulevardier"


@pytest.mark.asyncio
async def test_cocktails_with_unused_ingredient_is_empty():
    catalog = FakeCatalog([NEGRONI])
    server = _server(catalog)
    assert await server.cocktails_with_ingredient("Orgeat") == []
    assert catalog.detail_calls == []
