"""Collection names of the document store.

Collections are created on first write; these constants are the single
source of truth for their names.
"""

COLLECTION_USERS = "users"
COLLECTION_FRIEND_REQUESTS = "friendRequests"
COLLECTION_FRIENDSHIPS = "friendships"
COLLECTION_WISHLIST_ITEMS = "wishlistItems"
COLLECTION_FOLDERS = "folders"
COLLECTION_ACTIVITY = "activity"
COLLECTION_PURCHASES = "purchases"
