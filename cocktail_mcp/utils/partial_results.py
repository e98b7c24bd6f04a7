"""
Partial results handling for concurrent fetches where some operations fail.

Provides utilities for collecting successful results while tracking failures,
so one failing upstream call never aborts the rest of a batch.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Dict, Iterator, List, Sequence, TypeVar

import httpx

from ..exceptions import CatalogUnavailableError, CocktailNotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class PartialResult:
    """
    Result container for operations that may partially fail.

    Attributes
    ----------
    successes : Dict[str, Any]
        Successfully retrieved values keyed by identifier, in submission order
    failures : List[FailureInfo]
        Information about failed operations
    success_rate : float
        Ratio of successes to total attempts (0.0-1.0)
    """

    successes: Dict[str, Any] = field(default_factory=dict)
    failures: List["FailureInfo"] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        """Calculate success rate (0.0-1.0)."""
        total = len(self.successes) + len(self.failures)
        if total == 0:
            return 0.0
        return len(self.successes) / total

    @property
    def has_failures(self) -> bool:
        """Check if any operations failed."""
        return len(self.failures) > 0


@dataclass
class FailureInfo:
    """
    Information about a failed operation.

    Attributes
    ----------
    identifier : str
        Identifier for the failed operation (e.g., cocktail id)
    error : str
        Error message
    error_type : str
        Type of error (e.g., "server_error", "timeout", "not_found")
    retryable : bool
        Whether the operation might succeed if retried
    """

    identifier: str
    error: str
    error_type: str
    retryable: bool = False


async def gather_partial(
    operations: Dict[str, Awaitable[T]],
    operation_type: str = "operation",
) -> PartialResult:
    """
    Execute multiple async operations and wait for every one to settle.

    Continues execution even if some operations fail, returning all
    successful results along with failure information.

    Parameters
    ----------
    operations : Dict[str, Awaitable[T]]
        Dictionary mapping identifiers to async operations
    operation_type : str
        Human-readable type of operation (for logging)

    Returns
    -------
    PartialResult
        Container with successes and failures

    Raises
    ------
    ValueError
        If operations dict is empty

    Examples
    --------
    >>> operations = {
    ...     "11": adapter.get_cocktail(11),
    ...     "12": adapter.get_cocktail(12),
    ... }
    >>> result = await gather_partial(operations, "cocktail_fetch")
    >>> print(f"Got {len(result.successes)}, {len(result.failures)} failed")
    """
    if not operations:
        raise ValueError("operations dictionary cannot be empty")

    results = PartialResult()

    # Create tasks with identifiers
    tasks: Dict[str, "asyncio.Task[Any]"] = {
        identifier: asyncio.ensure_future(operation)
        for identifier, operation in operations.items()
    }

    # Wait for all to complete (including failures)
    completed = await asyncio.gather(*tasks.values(), return_exceptions=True)

    for identifier, result in zip(tasks.keys(), completed):
        if isinstance(result, Exception):
            error_type = _classify_error(result)
            retryable = _is_retryable(error_type)

            results.failures.append(
                FailureInfo(
                    identifier=identifier,
                    error=str(result),
                    error_type=error_type,
                    retryable=retryable,
                )
            )

            logger.warning(
                f"partial_results.{operation_type}.failed",
                extra={
                    "identifier": identifier,
                    "error_type": error_type,
                    "retryable": retryable,
                    "error": str(result),
                },
            )
        elif isinstance(result, BaseException):
            # Cancellation and friends are not ours to swallow
            raise result
        else:
            results.successes[identifier] = result

    logger.info(
        f"partial_results.{operation_type}.complete",
        extra={
            "total": len(operations),
            "successes": len(results.successes),
            "failures": len(results.failures),
            "success_rate": results.success_rate,
        },
    )

    return results


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of at most `size` items."""
    if size < 1:
        raise ValueError(f"chunk size must be at least 1, got {size}")
    for start in range(0, len(items), size):
        yield items[start : start + size]


def _classify_error(exc: Exception) -> str:
    """Classify exception into error type."""
    error_type = "unknown_error"

    if isinstance(exc, CatalogUnavailableError) and exc.__cause__ is not None:
        cause = exc.__cause__
        if isinstance(cause, Exception):
            return _classify_error(cause)

    if isinstance(exc, CocktailNotFoundError):
        error_type = "not_found"
    elif isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status >= 500:
            error_type = "server_error"
        elif status == 429:
            error_type = "rate_limit"
        elif status in (401, 403):
            error_type = "auth_error"
        elif status == 404:
            error_type = "not_found"
        else:
            error_type = "http_error"
    elif isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError)):
        error_type = "timeout"
    elif isinstance(exc, httpx.TransportError):
        error_type = "connection_error"
    elif isinstance(exc, CatalogUnavailableError):
        error_type = "server_error"
    elif isinstance(exc, ValueError):
        error_type = "parse_error"
    elif isinstance(exc, KeyError):
        error_type = "missing_field"

    return error_type


def _is_retryable(error_type: str) -> bool:
    """Determine if an error type is retryable."""
    retryable_types = {
        "timeout",
        "connection_error",
        "server_error",
        "rate_limit",
    }
    return error_type in retryable_types
