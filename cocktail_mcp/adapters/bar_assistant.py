"""Bar Assistant catalog adapter.

This adapter translates catalog operations into HTTP requests against a Bar
Assistant instance. It encapsulates transport concerns (base URL, bar
selection header, bearer token, timeouts, retries) and exposes a typed
interface returning normalized Pydantic models.

Notes
-----
- Every payload passes through :mod:`cocktail_mcp.domain.normalize` before
  it leaves this module.
- Upstream failures surface as :class:`CatalogUnavailableError` chained to
  the original httpx error; an unknown id surfaces as
  :class:`CocktailNotFoundError`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx

from ..domain.normalize import normalize_cocktail, normalize_summary
from ..exceptions import CatalogUnavailableError, CocktailNotFoundError
from ..schemas.catalog import (
    CocktailDetail,
    CocktailSummary,
    SearchFilter,
    SearchMeta,
    SearchResponse,
)
from ..utils.correlation import get_request_id

logger = logging.getLogger(__name__)

SEARCH_INCLUDE = "ingredients,tags,glass,method,images"
DETAIL_INCLUDE = "ingredients,instructions,tags,glass,method,images"
NAME_LOOKUP_PAGE_SIZE = 5

_RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


class BarAssistantAdapter:
    """Adapter for the Bar Assistant REST API.

    Parameters
    ----------
    endpoint: str
        Base URL of the Bar Assistant instance (e.g., "https://bar.example").
    api_key: Optional[str]
        Bearer token. Internal whitespace is stripped before use.
    bar_id: str
        Value of the ``Bar-Assistant-Bar-Id`` header.
    timeout: float
        Request timeout in seconds for all HTTP operations.

    Attributes
    ----------
    _client: httpx.AsyncClient
        Shared async client configured with base URL, timeout, and headers.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: Optional[str] = None,
        bar_id: str = "1",
        timeout: float = 30,
        *,
        max_retries: int = 1,
        backoff_initial_ms: int = 200,
        backoff_multiplier: float = 2.0,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=endpoint.rstrip("/"),
            timeout=timeout,
            headers=self._headers(api_key, bar_id),
        )
        self._max_retries = max(0, int(max_retries))
        self._backoff_initial_ms = max(0, int(backoff_initial_ms))
        self._backoff_multiplier = max(1.0, float(backoff_multiplier))
        self._timeout_seconds = timeout
        logger.info(
            "bar_assistant.adapter.init",
            extra={"endpoint": endpoint, "bar_id": bar_id, "timeout_seconds": timeout},
        )

    def inject_http_client_for_testing(self, client: Any) -> None:
        """Replace underlying HTTP client (testing only).

        This allows unit tests to provide a mock compatible with ``get()``.
        """
        self._client = client

    async def aclose(self) -> None:
        close = getattr(self._client, "aclose", None)
        if close is not None:
            await close()

    @staticmethod
    def _headers(api_key: Optional[str], bar_id: str) -> dict:
        """Build default headers.

        Parameters
        ----------
        api_key: Optional[str]
            Bearer token to attach as an Authorization header.
        bar_id: str
            Bar selector sent on every request.

        Returns
        -------
        dict
            A dictionary of HTTP headers suitable for JSON requests.
        """
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Bar-Assistant-Bar-Id": str(bar_id),
        }
        if api_key:
            token = "".join(api_key.split())
            if token:
                headers["Authorization"] = f"Bearer {token}"
        return headers

    def _backoff_delay(self, attempt: int) -> float:
        return (self._backoff_initial_ms / 1000.0) * (self._backoff_multiplier**attempt)

    async def _get_json(
        self, path: str, params: Optional[Mapping[str, Any]] = None
    ) -> Dict[str, Any]:
        """GET an endpoint and return parsed JSON with retry handling.

        Parameters
        ----------
        path: str
            Relative URL path (e.g., "/api/cocktails").
        params: Optional[Mapping[str, Any]]
            Query parameters; ``None`` values are dropped.

        Returns
        -------
        Dict[str, Any]
            Parsed JSON object from the response body.

        Raises
        ------
        CatalogUnavailableError
            On transport errors, non-2xx responses or non-JSON bodies once
            retries are exhausted. ``status`` carries the HTTP status when
            there was one.
        """
        query = {k: v for k, v in (params or {}).items() if v is not None}
        logger.debug(
            "bar_assistant.http.get",
            extra={"req_id": get_request_id(), "path": path, "params": query},
        )
        attempt = 0
        last_exc: Optional[Exception] = None
        while attempt <= self._max_retries:
            try:
                resp = await self._client.get(path, params=query)
                resp.raise_for_status()
                break
            except httpx.TimeoutException as exc:
                last_exc = exc
                logger.warning(
                    "bar_assistant.http.timeout",
                    extra={
                        "path": path,
                        "attempt": attempt + 1,
                        "max_retries": self._max_retries,
                        "timeout_seconds": self._timeout_seconds,
                    },
                )
            except httpx.ConnectError as exc:
                last_exc = exc
                logger.warning(
                    "bar_assistant.http.connect_error",
                    extra={"path": path, "attempt": attempt + 1, "error": str(exc)},
                )
            except httpx.TransportError as exc:
                # Read/write resets, protocol and proxy failures
                last_exc = exc
                logger.warning(
                    "bar_assistant.http.transport_error",
                    extra={
                        "path": path,
                        "attempt": attempt + 1,
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                    },
                )
            except httpx.HTTPStatusError as exc:
                last_exc = exc
                status = exc.response.status_code
                if status not in _RETRYABLE_STATUS or attempt >= self._max_retries:
                    body_preview = exc.response.text or ""
                    if len(body_preview) > 500:
                        body_preview = body_preview[:500] + "..."
                    logger.error(
                        "bar_assistant.http.status_error",
                        extra={
                            "req_id": get_request_id(),
                            "path": path,
                            "status": status,
                            "body_preview": body_preview,
                        },
                    )
                    raise CatalogUnavailableError(
                        f"GET {path} failed with HTTP {status}", status=status
                    ) from exc
            except httpx.HTTPError as exc:
                # Decoding, redirect loops and other non-transient failures
                logger.error(
                    "bar_assistant.http.error",
                    extra={
                        "req_id": get_request_id(),
                        "path": path,
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                    },
                )
                raise CatalogUnavailableError(
                    f"GET {path} failed: {type(exc).__name__}: {exc}"
                ) from exc
            if attempt < self._max_retries:
                await asyncio.sleep(self._backoff_delay(attempt))
            attempt += 1
        else:
            raise CatalogUnavailableError(
                f"GET {path} failed after {self._max_retries + 1} attempt(s): "
                f"{last_exc}"
            ) from last_exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise CatalogUnavailableError(
                f"GET {path} returned a non-JSON body", status=resp.status_code
            ) from exc
        logger.debug(
            "bar_assistant.http.response",
            extra={
                "req_id": get_request_id(),
                "path": path,
                "status_code": resp.status_code,
            },
        )
        if not isinstance(data, dict):
            raise CatalogUnavailableError(f"GET {path} returned a non-object body")
        return data

    async def ping(self) -> bool:
        """Probe connectivity and auth.

        Tries ``/api/profile`` first, then a one-item ingredient listing for
        instances where the profile endpoint is unavailable.
        """
        for path, params in (
            ("/api/profile", None),
            ("/api/ingredients", {"per_page": 1}),
        ):
            try:
                await self._get_json(path, params)
                return True
            except CatalogUnavailableError as exc:
                logger.info(
                    "bar_assistant.ping.probe_failed",
                    extra={"path": path, "error": str(exc)},
                )
        return False

    async def search_cocktails(self, req: SearchFilter) -> SearchResponse:
        """Search cocktails.

        Parameters
        ----------
        req: SearchFilter
            Name, ingredient and ABV filters plus pagination.

        Returns
        -------
        SearchResponse
            Normalized hits; hits without a usable id are skipped.
        """
        params: Dict[str, Any] = {
            "filter[name]": req.query,
            "filter[ingredient_name]": req.ingredient,
            "filter[abv_min]": req.abv_min,
            "filter[abv_max]": req.abv_max,
            "per_page": req.page_size,
            "page": req.page,
            "include": SEARCH_INCLUDE,
        }
        data = await self._get_json("/api/cocktails", params)

        hits: List[CocktailSummary] = []
        for raw in data.get("data") or []:
            if not isinstance(raw, Mapping):
                continue
            try:
                hits.append(normalize_summary(raw))
            except ValueError as exc:
                logger.warning(
                    "bar_assistant.search.skipped_hit", extra={"error": str(exc)}
                )
        meta = data.get("meta") if isinstance(data.get("meta"), Mapping) else {}
        total = meta.get("total") if isinstance(meta.get("total"), int) else len(hits)
        return SearchResponse(data=hits, meta=SearchMeta(total=max(total, 0)))

    async def get_cocktail(self, cocktail_id: int) -> CocktailDetail:
        """Fetch full cocktail details by id.

        Raises
        ------
        CocktailNotFoundError
            If the catalog answers 404 or returns no record.
        CatalogUnavailableError
            On any other upstream failure.
        """
        try:
            data = await self._get_json(
                f"/api/cocktails/{cocktail_id}", {"include": DETAIL_INCLUDE}
            )
        except CatalogUnavailableError as exc:
            if exc.status == 404:
                raise CocktailNotFoundError(cocktail_id) from exc
            raise
        record = data.get("data")
        if not isinstance(record, Mapping):
            raise CocktailNotFoundError(cocktail_id)
        try:
            return normalize_cocktail(record)
        except ValueError as exc:
            raise CatalogUnavailableError(
                f"Cocktail {cocktail_id} payload could not be normalized: {exc}"
            ) from exc

    async def find_cocktail_by_name(self, name: str) -> SearchResponse:
        """Resolve a cocktail name to search hits.

        Tries the full name, then the first word of a multi-word name, then
        the name as an ingredient. The first non-empty result wins.
        """
        name = name.strip()
        attempts = [SearchFilter(query=name, page_size=NAME_LOOKUP_PAGE_SIZE)]
        words = name.split()
        if len(words) > 1:
            attempts.append(
                SearchFilter(query=words[0], page_size=NAME_LOOKUP_PAGE_SIZE)
            )
        attempts.append(SearchFilter(ingredient=name, page_size=NAME_LOOKUP_PAGE_SIZE))

        for req in attempts:
            result = await self.search_cocktails(req)
            if result.data:
                logger.debug(
                    "bar_assistant.name_lookup.hit",
                    extra={
                        "name": name,
                        "query": req.query,
                        "ingredient": req.ingredient,
                        "hits": len(result.data),
                    },
                )
                return result
        return SearchResponse()
