from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ..auth import require_admin
from ..schemas import AdminListing, CountdownCreate, CountdownOut
from ..settings import get_settings
from ..store import CountdownStore, get_store
from .countdowns import soonest_first

router = APIRouter(
    prefix="/admin/countdowns",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


def _get_store(store: CountdownStore = Depends(get_store)) -> CountdownStore:
    return store


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=AdminListing,
    summary="Admin Listing",
    description="All countdowns sorted by soonest target, plus whether the admin gate is active.",
)
async def admin_list(store: CountdownStore = Depends(_get_store)) -> AdminListing:
    items = await store.alist()
    return AdminListing(
        items=[CountdownOut(**c) for c in soonest_first(items)],
        auth_enabled=get_settings().auth_enabled,
    )


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=CountdownOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Countdown",
    description="Create a countdown. Blank title, emoji and color fall back to placeholders.",
    responses={
        201: {"description": "Countdown created successfully"},
        422: {"description": "Validation error"},
    },
)
async def create_countdown(
    payload: CountdownCreate, store: CountdownStore = Depends(_get_store)
) -> CountdownOut:
    created = await store.ainsert(payload)
    return CountdownOut(**created)


# PUBLIC_INTERFACE
@router.get(
    "/{countdown_id}",
    response_model=CountdownOut,
    summary="Get Countdown",
    responses={404: {"description": "Countdown not found"}},
)
def get_countdown(countdown_id: str, store: CountdownStore = Depends(_get_store)) -> CountdownOut:
    item = store.get(countdown_id)
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Countdown not found")
    return CountdownOut(**item)


# PUBLIC_INTERFACE
@router.put(
    "/{countdown_id}",
    response_model=CountdownOut,
    summary="Replace Countdown",
    description="Replace every field of a countdown except its id.",
    responses={
        200: {"description": "Countdown updated"},
        404: {"description": "Countdown not found"},
    },
)
async def put_countdown(
    countdown_id: str, payload: CountdownCreate, store: CountdownStore = Depends(_get_store)
) -> CountdownOut:
    updated = await store.aupdate(countdown_id, payload)
    return CountdownOut(**updated)


# PUBLIC_INTERFACE
@router.delete(
    "/{countdown_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Countdown",
    responses={
        204: {"description": "Countdown deleted"},
        404: {"description": "Countdown not found"},
    },
)
async def delete_countdown(countdown_id: str, store: CountdownStore = Depends(_get_store)) -> None:
    await store.adelete(countdown_id)
    return None
