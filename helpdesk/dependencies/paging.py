from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Query


def lenient_int(value: str | None) -> int | None:
    """Parse a query value as an integer; anything unparsable counts as absent."""

    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


@dataclass(slots=True)
class PagingParams:
    page: int | None
    limit: int | None


def paging_params(
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
) -> PagingParams:
    # Out of range values are clamped by the services, so junk falls back to the defaults.
    return PagingParams(page=lenient_int(page), limit=lenient_int(limit))


Paging = Annotated[PagingParams, Depends(paging_params)]
