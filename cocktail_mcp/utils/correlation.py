"""Correlation ids for structured logging.

Each MCP tool call sets a fresh id in a ContextVar; the adapter attaches it as
``req_id`` to its HTTP log records, so every upstream request made on behalf
of one tool call (including the concurrent fetches of a batch, which copy the
context when their tasks are created) can be traced back to it.
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar
from typing import Optional

_request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def set_request_id(request_id: Optional[str] = None) -> str:
    """Set the current correlation id (a new random one if omitted) and return it."""
    value = request_id or uuid.uuid4().hex
    _request_id_var.set(value)
    return value


def get_request_id() -> str:
    """Return the current correlation id, or empty string."""
    return _request_id_var.get()
