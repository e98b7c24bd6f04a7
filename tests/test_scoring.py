"""Tests for ingredient-overlap scoring and reasons."""

import pytest

from cocktail_mcp.domain.scoring import (
    base_spirit,
    is_key_modifier,
    jaccard,
    name_set,
    normalize_name,
    similarity_reasons,
    similarity_score,
)

from fakes import cocktail

NEGRONI = ["Gin", "Campari", "Sweet Vermouth"]
BOULEVARDIER = ["Bourbon", "Campari", "Sweet Vermouth"]
DAIQUIRI = ["White Rum", "Lime Juice", "Simple Syrup"]


def test_normalize_name():
    assert normalize_name("  Lime Juice (fresh),  squeezed ") == "lime juice"
    assert normalize_name("Sweet  VERMOUTH") == "sweet vermouth"


def test_base_spirit_families():
    assert base_spirit("London Dry Gin") == "gin"
    assert base_spirit("Rye Whiskey") == "whiskey"
    assert base_spirit("Bourbon") == "whiskey"
    assert base_spirit("Mezcal") == "tequila"
    assert base_spirit("Lime Juice") is None


def test_key_modifiers():
    assert is_key_modifier("Sweet Vermouth")
    assert is_key_modifier("Angostura Bitters")
    assert not is_key_modifier("Simple Syrup")


def test_jaccard():
    a = name_set(["Gin", "Campari"])
    b = name_set(["gin", "Lime"])
    assert jaccard(a, b) == pytest.approx(1 / 3)
    assert jaccard(frozenset(), b) == 0.0


def test_negroni_boulevardier_score():
    # jaccard 2/4, two shared modifiers 0.30, count bonus 0.10, no shared spirit
    assert similarity_score(NEGRONI, BOULEVARDIER) == pytest.approx(0.9)


def test_negroni_daiquiri_score_is_zero():
    assert similarity_score(NEGRONI, DAIQUIRI) == 0.0


def test_score_is_symmetric_and_bounded():
    pairs = [(NEGRONI, BOULEVARDIER), (NEGRONI, DAIQUIRI), (NEGRONI, NEGRONI)]
    for a, b in pairs:
        assert similarity_score(a, b) == similarity_score(b, a)
        assert 0.0 <= similarity_score(a, b) <= 1.0


def test_identical_lists_clamp_to_one():
    assert similarity_score(NEGRONI, NEGRONI) == 1.0


def test_empty_lists_score_zero():
    assert similarity_score([], NEGRONI) == 0.0
    assert similarity_score(NEGRONI, []) == 0.0


def test_shared_spirit_bonus():
    with_gin = similarity_score(["Gin", "Tonic"], ["Gin", "Lime Juice"])
    without = similarity_score(["Soda", "Tonic"], ["Soda", "Lime Juice"])
    assert with_gin == pytest.approx(without + 0.25)


def test_reasons_for_negroni_and_boulevardier():
    negroni = cocktail(1, "Negroni", NEGRONI, method="Stir", glass="Rocks")
    boulevardier = cocktail(2, "Boulevardier", BOULEVARDIER, method="stir", glass="Coupe")
    reasons = similarity_reasons(negroni, boulevardier)
    assert reasons == [
        "Shared ingredients: Campari, Sweet Vermouth",
        "Same preparation method: Stir",
    ]


def test_reasons_report_spirit_family_and_cap_shared_list():
    a = cocktail(1, "A", ["Bourbon", "Campari", "Sweet Vermouth", "Bitters", "Soda"], glass="Rocks")
    b = cocktail(2, "B", ["Rye Whiskey", "Campari", "Sweet Vermouth", "Bitters", "Soda"], glass="rocks")
    reasons = similarity_reasons(a, b)
    assert reasons[0] == "Same base spirit: whiskey"
    assert reasons[1] == "Shared ingredients: Campari, Sweet Vermouth, Bitters"
    assert reasons[2] == "Same glass type: Rocks"


def test_reasons_empty_when_nothing_shared():
    a = cocktail(1, "Negroni", NEGRONI)
    b = cocktail(2, "Daiquiri", DAIQUIRI)
    assert similarity_reasons(a, b) == []
