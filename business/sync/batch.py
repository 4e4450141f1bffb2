import logging
from typing import Dict, Iterator, List, Sequence, TypeVar

from business.sync.cache import QueryCache, query_keys
from database.documents.store import MAX_IN_FILTER_VALUES, DocumentStore
from database.documents.users import User, get_users_by_ids

logger = logging.getLogger(__name__)

T = TypeVar("T")


def chunked(values: Sequence[T], size: int) -> Iterator[List[T]]:
    if size <= 0:
        raise ValueError("Chunk size must be positive")
    for start in range(0, len(values), size):
        yield list(values[start : start + size])


def fetch_users_batch(
    store: DocumentStore, user_ids: Sequence[str], chunk_size: int = MAX_IN_FILTER_VALUES
) -> Dict[str, User]:
    """
    Resolve user ids into user records, one store round trip per chunk.

    Missing users are absent from the result.
    """
    unique_ids = list(dict.fromkeys(user_ids))
    users: Dict[str, User] = {}
    for chunk in chunked(unique_ids, chunk_size):
        users.update(get_users_by_ids(store, chunk))
    return users


def prefetch_users(
    store: DocumentStore, cache: QueryCache, user_ids: Sequence[str]
) -> Dict[str, User]:
    """
    Populate the cache with every user not already cached.

    Returns:
        The users that were fetched
    """
    uncached = [uid for uid in dict.fromkeys(user_ids) if cache.get(query_keys.user(uid)) is None]
    if not uncached:
        return {}
    users = fetch_users_batch(store, uncached)
    for user_id, user in users.items():
        cache.set(query_keys.user(user_id), user)
    logger.debug(f"Prefetched {len(users)} of {len(uncached)} uncached users")
    return users
