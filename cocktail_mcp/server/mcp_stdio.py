"""MCP stdio server exposing the cocktail catalog tools.

This module exposes a Model Context Protocol (MCP) server over stdio so
MCP-capable AI chat clients can connect and invoke the catalog tools:
``ping``, ``find_similar_cocktails``, ``get_recipes``,
``search_cocktails`` and ``get_ingredient_info``.

The implementation uses the Python MCP SDK (package ``mcp``). If the SDK is
not installed, a clear error is raised at runtime.
"""

from __future__ import annotations

import asyncio
import importlib
import logging
import os
import signal
from typing import Any, Dict, Optional, cast

from pydantic import ValidationError

from .. import __version__
from ..adapters import get_adapter, log_adapter_status, register_adapter
from ..adapters.bar_assistant import BarAssistantAdapter
from ..config.models import EnvSettings, load_settings
from ..domain.ingredients import substitutions_for
from ..exceptions import CatalogError
from ..observability import setup_logging
from ..schemas.catalog import ErrorCode, ErrorDetails, ErrorResponse
from ..utils.correlation import set_request_id
from .app import CocktailCatalogServer
from .models import (
    FindSimilarRequest,
    FindSimilarResponse,
    GetRecipesRequest,
    GetRecipesResponse,
    IngredientInfoRequest,
    IngredientInfoResponse,
    RecipeOut,
    SearchCocktailsRequest,
    SearchCocktailsResponse,
)

logger = logging.getLogger(__name__)

SOURCE_ID = "bar-assistant"


def _load_mcp_sdk() -> tuple[Optional[Any], Optional[Any]]:
    """Load FastMCP class and stdio context manager if available."""
    try:
        fast_mod = importlib.import_module("mcp.server.fastmcp")
        stdio_mod = importlib.import_module("mcp.server.stdio")
        return getattr(fast_mod, "FastMCP"), getattr(stdio_mod, "stdio_server")
    except (ImportError, ModuleNotFoundError):  # pragma: no cover
        return None, None


def _init_adapter_from_settings(settings: EnvSettings) -> BarAssistantAdapter:
    """Build the Bar Assistant adapter and register it under ``SOURCE_ID``."""
    if not settings.url:
        log_adapter_status()
        raise RuntimeError(
            "BAR_ASSISTANT_URL is not set. Configure BAR_ASSISTANT_URL and "
            "BAR_ASSISTANT_TOKEN (environment or .env) and re-run."
        )
    adapter = BarAssistantAdapter(
        settings.url,
        settings.token,
        settings.bar_id,
        settings.timeout_seconds,
        max_retries=settings.max_retries,
        backoff_initial_ms=settings.backoff_initial_ms,
        backoff_multiplier=settings.backoff_multiplier,
    )
    register_adapter(SOURCE_ID, adapter)
    log_adapter_status()
    return adapter


def _error(
    code: ErrorCode,
    message: str,
    *,
    details: Optional[Dict[str, Any]] = None,
    retryable: Optional[bool] = None,
) -> Dict[str, Any]:
    return ErrorResponse(
        error=ErrorDetails(
            code=code, message=message, details=details, retryable=retryable
        )
    ).model_dump(mode="json", exclude_none=True)


def _validation_error(exc: ValidationError) -> Dict[str, Any]:
    problems = [
        {"loc": ".".join(str(p) for p in e["loc"]), "msg": e["msg"]}
        for e in exc.errors()
    ]
    return _error(
        ErrorCode.INVALID_REQUEST,
        "Invalid tool parameters",
        details={"errors": problems},
        retryable=False,
    )


def _catalog_error(exc: CatalogError) -> Dict[str, Any]:
    return _error(
        exc.code,
        str(exc),
        retryable=exc.code == ErrorCode.SERVICE_UNAVAILABLE,
    )


async def handle_find_similar(
    app: CocktailCatalogServer, params: Dict[str, Any]
) -> Dict[str, Any]:
    """Tool body of ``find_similar_cocktails``."""
    try:
        req = FindSimilarRequest.model_validate(params)
    except ValidationError as exc:
        return _validation_error(exc)
    try:
        if req.cocktail_id is not None:
            results = await app.find_similar(req.cocktail_id, req.limit)
        else:
            results = await app.find_similar_by_name(
                cast(str, req.cocktail_name), req.limit
            )
    except CatalogError as exc:
        return _catalog_error(exc)
    return FindSimilarResponse(results=results).model_dump(mode="json")


async def handle_get_recipes(
    app: CocktailCatalogServer, params: Dict[str, Any]
) -> Dict[str, Any]:
    """Tool body of ``get_recipes``."""
    try:
        req = GetRecipesRequest.model_validate(params)
        references = req.references()
    except ValidationError as exc:
        return _validation_error(exc)
    try:
        items = await app.fetch_batch(references)
    except CatalogError as exc:
        return _catalog_error(exc)
    return GetRecipesResponse(
        recipes=[RecipeOut.from_item(i) for i in items],
        requested=len(references),
    ).model_dump(mode="json")


async def handle_search(
    app: CocktailCatalogServer, params: Dict[str, Any]
) -> Dict[str, Any]:
    """Tool body of ``search_cocktails``."""
    try:
        req = SearchCocktailsRequest.model_validate(params)
    except ValidationError as exc:
        return _validation_error(exc)
    try:
        result = await app.search_cocktails(*req.to_search())
    except CatalogError as exc:
        return _catalog_error(exc)
    return SearchCocktailsResponse(
        results=result.data,
        total=result.meta.total,
        applied_filters=req.applied_filters(),
    ).model_dump(mode="json")


async def handle_ingredient_info(
    app: CocktailCatalogServer, params: Dict[str, Any]
) -> Dict[str, Any]:
    """Tool body of ``get_ingredient_info``."""
    try:
        req = IngredientInfoRequest.model_validate(params)
    except ValidationError as exc:
        return _validation_error(exc)
    try:
        items = await app.cocktails_with_ingredient(req.ingredient_name)
    except CatalogError as exc:
        return _catalog_error(exc)
    return IngredientInfoResponse(
        ingredient=req.ingredient_name,
        cocktails=[RecipeOut.from_item(i) for i in items],
        substitutions=substitutions_for(req.ingredient_name),
    ).model_dump(mode="json")


def _register_tools(mcp_app: Any, app: CocktailCatalogServer) -> None:
    """Register MCP tools on the FastMCP app.

    Registers:
    - ping: connectivity check against the catalog
    - find_similar_cocktails: ranked similar cocktails for a reference
    - get_recipes: full recipes for a batch of ids and/or names
    - search_cocktails: filtered catalog search
    - get_ingredient_info: recipes using an ingredient plus substitutes
    """
    tool_dec = getattr(mcp_app, "tool", None)
    if tool_dec is None:
        raise RuntimeError(
            "MCP SDK version lacks FastMCP.tool(); try: pip install -U mcp"
        )

    @tool_dec(name="ping")
    async def ping() -> Dict[str, Any]:
        """Check that the Bar Assistant catalog is reachable."""
        set_request_id()
        reachable = await app.ping()
        return {"status": "ok" if reachable else "unreachable", "version": __version__}

    @tool_dec(name="find_similar_cocktails")
    async def find_similar_tool(params: Dict[str, Any]) -> Dict[str, Any]:
        """Find cocktails similar to a reference cocktail.

        Similarity is based on shared ingredients, with extra weight for a
        shared base spirit and shared key modifiers (vermouth, bitters,
        liqueurs). Each result carries a 0-1 score and the reasons for it.

        Parameters
        ----------
        params: Dict[str, Any]
            Object with keys:
            - cocktail_id: id of the reference cocktail, or
            - cocktail_name: name of the reference cocktail
            - limit: maximum number of results (1-50, default 10)
        """
        set_request_id()
        return await handle_find_similar(app, params)

    @tool_dec(name="get_recipes")
    async def get_recipes_tool(params: Dict[str, Any]) -> Dict[str, Any]:
        """Get complete recipes for several cocktails at once.

        Every requested cocktail gets a recipe entry. Entries that could not
        be fully fetched are marked ``degraded`` with their ``source``
        (search, seed or placeholder).

        Parameters
        ----------
        params: Dict[str, Any]
            Object with keys:
            - cocktail_ids: list of cocktail ids
            - cocktail_names: list of cocktail names
            - limit: maximum recipes (1-20, default 10); ids are taken first
        """
        set_request_id()
        return await handle_get_recipes(app, params)

    @tool_dec(name="search_cocktails")
    async def search_tool(params: Dict[str, Any]) -> Dict[str, Any]:
        """Search cocktails with structured filters.

        Parameters
        ----------
        params: Dict[str, Any]
            Object with keys:
            - query: cocktail name filter
            - ingredient: ingredient name filter
            - abv_min / abv_max: ABV bounds in percent
            - preferred_strength: light (<=15%), medium (15-30%) or
              strong (>=30%); ignored when an ABV bound is given
            - must_include: ingredients every result must contain
            - must_exclude: ingredients no result may contain
            - glass_type: glass name fragment, e.g. "coupe"
            - preparation_method: method name fragment, e.g. "shake"
            - limit: page size (1-100, default 20)
        """
        set_request_id()
        return await handle_search(app, params)

    @tool_dec(name="get_ingredient_info")
    async def ingredient_info_tool(params: Dict[str, Any]) -> Dict[str, Any]:
        """Show how an ingredient is used and what can replace it.

        Returns full recipes of up to 10 cocktails using the ingredient and,
        for gin, vermouth and Campari, suggested substitutes.

        Parameters
        ----------
        params: Dict[str, Any]
            Object with keys:
            - ingredient_name: the ingredient to look up
        """
        set_request_id()
        return await handle_ingredient_info(app, params)

    # Mark as used for linters
    _ = (ping, find_similar_tool, get_recipes_tool, search_tool, ingredient_info_tool)


async def _serve_forever(mcp_app: Any, app: CocktailCatalogServer) -> None:
    """Run FastMCP stdio server with graceful shutdown.

    Starts the stdio transport and handles Ctrl-C (SIGINT) to exit cleanly
    without traceback.
    """
    logger.info("Starting MCP stdio server (attach your MCP client)...")
    shutdown_event = asyncio.Event()
    shutting_down = False

    def _on_sigint() -> None:
        nonlocal shutting_down
        if not shutting_down:
            shutting_down = True
            logger.info("Shutting down MCP stdio server...")
            shutdown_event.set()
        else:
            os._exit(130)

    try:
        asyncio.get_running_loop().add_signal_handler(signal.SIGINT, _on_sigint)
    except NotImplementedError:
        pass

    run_task = asyncio.create_task(mcp_app.run_stdio_async())
    wait_task = asyncio.create_task(shutdown_event.wait())
    await asyncio.wait([run_task, wait_task], return_when=asyncio.FIRST_COMPLETED)
    for task in (run_task, wait_task):
        if not task.done():
            task.cancel()
    await asyncio.sleep(0)
    await app.stop()


async def run_stdio(settings: Optional[EnvSettings] = None) -> None:
    """Start an MCP stdio server and register tools.

    Loads the MCP SDK, builds the adapter from settings, registers tools,
    and serves over stdio until interrupted.
    """
    mcp_cls, _ = _load_mcp_sdk()
    if mcp_cls is None:
        raise RuntimeError(
            "MCP SDK not installed. Please install the Python MCP SDK (e.g.,\n"
            "    pip install mcp\n"
            "and then re-run: cocktail-mcp-server"
        )
    settings = settings or load_settings()
    mcp_app = cast(Any, mcp_cls)("cocktail-mcp-server")
    _init_adapter_from_settings(settings)

    app = CocktailCatalogServer(get_adapter(SOURCE_ID), settings)
    await app.start()
    _register_tools(mcp_app, app)
    await _serve_forever(mcp_app, app)


def main() -> None:
    """CLI entrypoint: run the MCP stdio server.

    Logging is configured from ``BAR_ASSISTANT_LOG_LEVEL`` unless the host
    process already configured it.
    """
    settings = load_settings()
    if not logging.getLogger().hasHandlers():
        setup_logging(settings.log_level)
    try:
        asyncio.run(run_stdio(settings))
    except KeyboardInterrupt:
        # Suppress traceback on Ctrl-C for a clean exit
        pass


if __name__ == "__main__":
    main()
