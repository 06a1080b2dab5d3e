from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from fastapi import APIRouter, Depends, Query

from ..clock import evaluate
from ..models import CountdownEntity
from ..schemas import Board, BoardEntry, CountdownOut
from ..store import CountdownStore, get_store
from ..utils import ensure_utc

router = APIRouter(tags=["countdowns"])


def _get_store(store: CountdownStore = Depends(get_store)) -> CountdownStore:
    """
    Dependency wrapper for the store to keep signatures clean.
    """
    return store


def soonest_first(items: Iterable[CountdownEntity]) -> List[CountdownEntity]:
    return sorted(items, key=lambda c: c["target"])


# PUBLIC_INTERFACE
def build_board(items: Iterable[CountdownEntity], now: datetime) -> Board:
    """Sort countdowns by soonest target and attach each one's display state at `now`."""
    entries = []
    for item in soonest_first(items):
        state = evaluate(now, item["target"])
        entries.append(BoardEntry(**item, **state.as_dict()))
    return Board(now=now, items=entries)


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=Board,
    summary="Countdown Board",
    description=(
        "All countdowns sorted by soonest target, each with its remaining time or "
        "arrival state. Pass `at` (ISO8601) to evaluate at another instant."
    ),
)
def get_board(
    at: Optional[datetime] = Query(None, description="Evaluate display states at this instant"),
    store: CountdownStore = Depends(_get_store),
) -> Board:
    now = ensure_utc(at) if at is not None else datetime.now(timezone.utc)
    return build_board(store.list(), now)


# PUBLIC_INTERFACE
@router.get(
    "/api/countdowns",
    response_model=List[CountdownOut],
    summary="List Countdowns",
    description="Read-only list of all countdowns in stored order.",
)
def list_countdowns(store: CountdownStore = Depends(_get_store)) -> List[CountdownOut]:
    return [CountdownOut(**c) for c in store.list()]
