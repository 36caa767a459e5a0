"""Cache inspection and invalidation endpoints."""

from fastapi import APIRouter, Depends, Query

from cartera.api.deps import get_cache_coordinator
from cartera.api.schemas import CacheInfoResponse, CacheInvalidateResponse
from cartera.core.exceptions import NotFoundError
from cartera.services import CacheCoordinator

router = APIRouter(prefix="/cache", tags=["cache"])


@router.get("/{key:path}", response_model=CacheInfoResponse)
def get_cache_info(
    key: str,
    cache: CacheCoordinator = Depends(get_cache_coordinator),
) -> CacheInfoResponse:
    """Lifecycle state of one key."""
    info = cache.info(key)
    return CacheInfoResponse(
        key=info["key"],
        exists=info["exists"],
        state=info["state"].value,
        age_hours=round(info["age_hours"], 2) if info["age_hours"] is not None else None,
        expires_in_hours=(
            round(info["expires_in_hours"], 2) if info["expires_in_hours"] is not None else None
        ),
        stored_at=info["stored_at"],
    )


@router.delete("/{key:path}", response_model=CacheInvalidateResponse)
def invalidate_key(
    key: str,
    cache: CacheCoordinator = Depends(get_cache_coordinator),
) -> CacheInvalidateResponse:
    """Force one key back to EMPTY."""
    if not cache.invalidate(key):
        raise NotFoundError("Cache key", key)
    return CacheInvalidateResponse(removed=1)


@router.delete("", response_model=CacheInvalidateResponse)
def invalidate_prefix(
    prefix: str = Query("", description="Namespace to clear (all when empty); credentials are kept"),
    cache: CacheCoordinator = Depends(get_cache_coordinator),
) -> CacheInvalidateResponse:
    """Clear a namespace."""
    return CacheInvalidateResponse(removed=cache.invalidate_prefix(prefix))
