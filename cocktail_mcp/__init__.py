"""
Cocktail catalog MCP package.

This package hosts the cocktail MCP server: the Bar Assistant adapter, the
recipe and search caches, similarity ranking and batch recipe retrieval.
"""

from .__version__ import __version__

__all__ = ["__version__"]
