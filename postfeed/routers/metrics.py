from fastapi import APIRouter, Depends
from postfeed.cache import cache
from postfeed.dependencies import get_post_store, get_profile_lookup
from postfeed.schemas import MetricsResponse
from postfeed.store import PostStore, ProfileLookup

router = APIRouter(prefix="/api/metrics", tags=["metrics"])

@router.get("", response_model=MetricsResponse)
async def get_metrics(
    store: PostStore = Depends(get_post_store),
    profiles: ProfileLookup = Depends(get_profile_lookup),
):
    return MetricsResponse(
        total_posts=await store.count(),
        total_users=await profiles.count(),
        cache_info=cache.stats,
    )
