"""
Row source adapter.

Lets the orchestrator consume plain iterables and async iterables through
one ``async for`` loop. Synchronous sources are pulled one item at a time,
asynchronous ones at exactly the rate rows are written.
"""

from __future__ import annotations

from typing import Any, AsyncIterator

from fleetexport.domain.models import RowSource


def is_async_source(source: Any) -> bool:
    return hasattr(source, "__aiter__")


async def iterate_rows(source: RowSource) -> AsyncIterator[Any]:
    """Yield the rows of ``source`` regardless of its kind."""
    if is_async_source(source):
        async for row in source:
            yield row
    else:
        for row in source:
            yield row
