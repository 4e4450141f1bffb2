import threading
from typing import Any, Dict, List, Tuple

CacheKey = Tuple[str, ...]


class QueryCache:
    """
    Session-wide cache of query results and entities.

    Keys are tuples whose first element names the collection and whose
    remaining elements name the scope, e.g. ``("wishlist", user_id)``.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[CacheKey, Any] = {}

    def get(self, key: CacheKey, default: Any = None) -> Any:
        with self._lock:
            return self._entries.get(key, default)

    def has(self, key: CacheKey) -> bool:
        with self._lock:
            return key in self._entries

    def set(self, key: CacheKey, value: Any) -> None:
        with self._lock:
            self._entries[key] = value

    def invalidate(self, prefix: CacheKey) -> int:
        """
        Drop every entry whose key starts with ``prefix``.

        Returns how many entries were removed.
        """
        with self._lock:
            stale = [key for key in self._entries if key[: len(prefix)] == prefix]
            for key in stale:
                del self._entries[key]
            return len(stale)

    def keys(self) -> List[CacheKey]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class query_keys:
    @staticmethod
    def user(user_id: str) -> CacheKey:
        return ("users", user_id)

    @staticmethod
    def friends(user_id: str) -> CacheKey:
        return ("friends", user_id)

    @staticmethod
    def friend_requests(user_id: str) -> CacheKey:
        return ("friendRequests", user_id)

    @staticmethod
    def friendship_status(viewer_id: str, target_id: str) -> CacheKey:
        # Direction matters: pending_sent for one side is pending_received for the other
        return ("friendshipStatus", viewer_id, target_id)

    @staticmethod
    def wishlist(user_id: str) -> CacheKey:
        return ("wishlist", user_id)

    @staticmethod
    def wishlist_item(item_id: str) -> CacheKey:
        return ("wishlist", "item", item_id)

    @staticmethod
    def folders(user_id: str) -> CacheKey:
        return ("folders", user_id)

    @staticmethod
    def folder(folder_id: str) -> CacheKey:
        return ("folders", "detail", folder_id)

    @staticmethod
    def activity_feed(user_id: str) -> CacheKey:
        return ("activity", "feed", user_id)

    @staticmethod
    def purchases_by_owner(item_owner_id: str) -> CacheKey:
        return ("purchases", "byOwner", item_owner_id)

