"""Helpers called from compiled template bodies."""

from __future__ import annotations

import inspect
from typing import Any

from markupsafe import escape


async def resolve_value(value: Any) -> Any:
    """Await value if it is awaitable (e.g. the result of include())."""
    while inspect.isawaitable(value):
        value = await value
    return value


def escape_value(value: Any) -> str:
    """HTML-escape an interpolated value. None renders as nothing."""
    if value is None:
        return ""
    return str(escape(value))


def raw_value(value: Any) -> str:
    """Coerce an interpolated value to text without escaping."""
    if value is None:
        return ""
    return str(value)
