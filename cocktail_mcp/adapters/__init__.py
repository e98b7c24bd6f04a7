"""Catalog adapter interfaces and registry."""

from __future__ import annotations

import logging
from typing import Dict, Protocol

from ..schemas.catalog import CocktailDetail, SearchFilter, SearchResponse


class SearchPort(Protocol):
    """Cocktail search by filter. Zero matches is an empty result, not an error."""

    async def search_cocktails(self, req: SearchFilter) -> SearchResponse:
        """Search cocktails by name, ingredient or ABV range."""
        raise NotImplementedError


class DetailPort(Protocol):
    """Full cocktail lookup by id."""

    async def get_cocktail(self, cocktail_id: int) -> CocktailDetail:
        """Fetch one cocktail. Raises on unknown id or transport failure."""
        raise NotImplementedError


class NameResolverPort(Protocol):
    """Resolve a free-text cocktail name to candidate records."""

    async def find_cocktail_by_name(self, name: str) -> SearchResponse:
        """Return best-effort matches for `name`, best first."""
        raise NotImplementedError


class CatalogAdapter(SearchPort, DetailPort, NameResolverPort, Protocol):
    """Protocol for catalog backends.

    Implementations translate catalog operations to the underlying HTTP API
    and return normalized, validated models.
    """

    async def ping(self) -> bool:
        """Return True when the backend answers an authenticated probe."""
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release network resources."""
        raise NotImplementedError


_adapters: Dict[str, CatalogAdapter] = {}


def register_adapter(source_id: str, adapter: CatalogAdapter) -> None:
    """Register an adapter instance under a logical `source_id`."""
    _adapters[source_id] = adapter


def get_adapter(source_id: str) -> CatalogAdapter:
    """Retrieve a registered adapter by `source_id`."""
    return _adapters[source_id]


def log_adapter_status() -> None:
    """Log which catalog backends are registered."""
    logger = logging.getLogger(__name__)

    if not _adapters:
        logger.warning(
            "adapters.none_registered",
            extra={"hint": "set BAR_ASSISTANT_URL and BAR_ASSISTANT_TOKEN"},
        )
    else:
        logger.info(
            "adapters.registered",
            extra={
                "adapters": {
                    source_id: type(adapter).__name__
                    for source_id, adapter in _adapters.items()
                }
            },
        )


def reset_adapters() -> None:
    """Test-only helper to clear registered adapters."""
    _adapters.clear()
