"""Exceptions raised by the catalog core.

Each exception carries the :class:`~cocktail_mcp.schemas.catalog.ErrorCode`
the tool layer reports back to the MCP client.
"""

from __future__ import annotations

from typing import Optional

from .schemas.catalog import ErrorCode


class CatalogError(Exception):
    """Base class for catalog failures."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR


class CatalogUnavailableError(CatalogError):
    """Upstream transport, auth or 5xx failure on a single call.

    Recovered locally by the batch fallback ladder; never surfaced past the
    orchestrator.
    """

    code = ErrorCode.SERVICE_UNAVAILABLE

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        self.status = status
        super().__init__(message)


class CocktailNotFoundError(CatalogError):
    """The upstream catalog has no cocktail with the requested id."""

    code = ErrorCode.NOT_FOUND

    def __init__(self, cocktail_id: int) -> None:
        self.cocktail_id = cocktail_id
        super().__init__(f"Cocktail {cocktail_id} not found")


class ReferenceNotFoundError(CatalogError):
    """The reference cocktail of a similarity query could not be fetched.

    This is the one lookup failure that propagates: without the reference
    there is nothing to rank against.
    """

    code = ErrorCode.NOT_FOUND

    def __init__(self, reference: object, reason: str = "") -> None:
        self.reference = reference
        detail = f": {reason}" if reason else ""
        super().__init__(f"Reference cocktail {reference!r} unavailable{detail}")


class InvalidBatchRequestError(CatalogError, ValueError):
    """Malformed batch input, e.g. no ids and no names. Never retried."""

    code = ErrorCode.INVALID_REQUEST
