from fastapi import Depends

from postfeed.cache import cache
from postfeed.database import Database, get_database
from postfeed.services.post_service import PostService
from postfeed.store import PostStore, ProfileLookup


def get_post_store(database: Database = Depends(get_database)) -> PostStore:
    return PostStore(database)


def get_profile_lookup(database: Database = Depends(get_database)) -> ProfileLookup:
    return ProfileLookup(database)


def get_post_service(
    store: PostStore = Depends(get_post_store),
    profiles: ProfileLookup = Depends(get_profile_lookup),
) -> PostService:
    """
    Build a PostService around the Database handle on ``app.state``.

    Services hold no per-request state beyond their collaborators, so a
    fresh instance per request is cheap.
    """
    return PostService(store, profiles, cache=cache)
