"""Tests for the similarity engine."""

import pytest

from cocktail_mcp.domain.batch import BatchOrchestrator
from cocktail_mcp.domain.similarity import SimilarityEngine, best_name_match
from cocktail_mcp.exceptions import ReferenceNotFoundError
from cocktail_mcp.utils.cache import TTLCache

from fakes import FakeCatalog, cocktail, summary

NEGRONI = cocktail(1, "Negroni", ["Gin", "Campari", "Sweet Vermouth"], method="Stir")
BOULEVARDIER = cocktail(
    2, "Boulevardier", ["Bourbon", "Campari", "Sweet Vermouth"], method="Stir"
)
DAIQUIRI = cocktail(3, "Daiquiri", ["White Rum", "Lime Juice", "Simple Syrup"])
GIN_SOUR = cocktail(4, "Gin Sour", ["Gin", "Lemon Juice", "Simple Syrup"])
AMERICANO = cocktail(5, "Americano", ["Campari", "Sweet Vermouth", "Soda Water"])


def _engine(catalog, **kwargs):
    orch = BatchOrchestrator(catalog, catalog, TTLCache(maxsize=100, ttl=300))
    return SimilarityEngine(catalog, catalog, orch, **kwargs), orch


@pytest.mark.asyncio
async def test_negroni_ranking():
    catalog = FakeCatalog([NEGRONI, BOULEVARDIER, DAIQUIRI, GIN_SOUR, AMERICANO])
    engine, _ = _engine(catalog)

    results = await engine.find_similar(1, limit=10)

    ids = [r.cocktail.id for r in results]
    assert 1 not in ids
    assert 3 not in ids  # Daiquiri shares nothing
    assert ids[0] in (2, 5)
    scores = [r.score for r in results]
    assert scores == sorted(scores, reverse=True)
    boulevardier = next(r for r in results if r.cocktail.id == 2)
    assert boulevardier.score == pytest.approx(0.9)
    assert "Shared ingredients: Campari, Sweet Vermouth" in boulevardier.reasons
    assert "Same preparation method: Stir" in boulevardier.reasons


@pytest.mark.asyncio
async def test_limit_truncates_results():
    catalog = FakeCatalog([NEGRONI, BOULEVARDIER, GIN_SOUR, AMERICANO])
    engine, _ = _engine(catalog)
    results = await engine.find_similar(1, limit=1)
    assert len(results) == 1


@pytest.mark.asyncio
async def test_invalid_limit():
    engine, _ = _engine(FakeCatalog([NEGRONI]))
    with pytest.raises(ValueError):
        await engine.find_similar(1, limit=0)


@pytest.mark.asyncio
async def test_missing_reference_raises():
    engine, _ = _engine(FakeCatalog([BOULEVARDIER]))
    with pytest.raises(ReferenceNotFoundError):
        await engine.find_similar(1)


@pytest.mark.asyncio
async def test_reference_served_from_cache():
    catalog = FakeCatalog([BOULEVARDIER])
    engine, orch = _engine(catalog)
    orch.cache_put(1, NEGRONI)
    results = await engine.find_similar(1)
    assert [r.cocktail.id for r in results] == [2]
    assert 1 not in catalog.detail_calls


@pytest.mark.asyncio
async def test_ingredient_searches_use_first_three_ingredients():
    catalog = FakeCatalog([NEGRONI, BOULEVARDIER])
    engine, _ = _engine(catalog)
    await engine.find_similar(1, limit=10)
    ingredient_searches = [c.ingredient for c in catalog.search_calls if c.ingredient]
    assert ingredient_searches == ["Gin", "Campari", "Sweet Vermouth"]
    assert all(
        c.page_size == 50 for c in catalog.search_calls if c.ingredient
    )
    # Pool stayed under limit * 3, so the broad search ran too
    broad = [c for c in catalog.search_calls if not c.ingredient and not c.query]
    assert len(broad) == 1
    assert broad[0].page_size == 100


@pytest.mark.asyncio
async def test_pool_threshold_short_circuits_searches():
    many = [cocktail(i, f"Gin Thing {i}", ["Gin", "Tonic"]) for i in range(10, 20)]
    catalog = FakeCatalog([NEGRONI, *many])
    engine, _ = _engine(catalog)
    await engine.find_similar(1, limit=2)
    # The first ingredient search already found >= 6 candidates
    assert [c.ingredient for c in catalog.search_calls] == ["Gin"]


@pytest.mark.asyncio
async def test_candidate_pool_is_capped():
    many = [cocktail(i, f"Gin Thing {i}", ["Gin", "Campari"]) for i in range(10, 80)]
    catalog = FakeCatalog([NEGRONI, *many])
    engine, _ = _engine(catalog, max_candidates=20)
    await engine.find_similar(1, limit=50)
    assert len([c for c in catalog.detail_calls if c != 1]) == 20


@pytest.mark.asyncio
async def test_strategy_failures_are_swallowed():
    catalog = FakeCatalog([NEGRONI, BOULEVARDIER])
    catalog.failing_searches.add((None, "Gin"))
    engine, _ = _engine(catalog)
    results = await engine.find_similar(1)
    assert [r.cocktail.id for r in results] == [2]


@pytest.mark.asyncio
async def test_all_strategies_failing_yields_empty_list():
    catalog = FakeCatalog([NEGRONI, BOULEVARDIER])
    catalog.fail_all_searches = True
    engine, _ = _engine(catalog)
    assert await engine.find_similar(1) == []


@pytest.mark.asyncio
async def test_degraded_candidates_are_discarded():
    catalog = FakeCatalog([NEGRONI, BOULEVARDIER, AMERICANO])
    catalog.failing_details.add(2)
    engine, _ = _engine(catalog)
    results = await engine.find_similar(1)
    assert [r.cocktail.id for r in results] == [5]


@pytest.mark.asyncio
async def test_low_scores_are_filtered():
    weak = cocktail(6, "Weak", ["Gin", "A", "B", "C", "D", "E", "F", "G", "H"])
    catalog = FakeCatalog([cocktail(1, "Ref", ["Water", "Salt"]), weak])
    engine, _ = _engine(catalog)
    assert await engine.find_similar(1) == []


def test_best_name_match_preferences():
    hits = [
        summary(cocktail(10, "Frozen Margarita", [])),
        summary(cocktail(11, "Tommy's Margarita", [])),
        summary(cocktail(12, "Margarita", [])),
    ]
    assert best_name_match("margarita", hits).id == 12
    assert best_name_match("tommy", hits).id == 11
    assert best_name_match("garita", hits[:2]).id == 11
    assert best_name_match("zombie", hits).id == 10
    assert best_name_match("anything", []) is None
