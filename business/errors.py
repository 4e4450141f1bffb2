class WishlistError(Exception):
    """Base exception for wishlist business rule violations"""

    pass


class AuthorizationError(WishlistError):
    """Raised when the caller may not act on an entity; no side effect has happened"""

    pass


class NotFoundError(WishlistError):
    """Raised when the target entity does not exist"""

    pass


class ValidationError(WishlistError):
    """Raised when input data is invalid"""

    pass


class ConflictError(WishlistError):
    """Raised when the current state does not allow the operation"""

    pass


class RequestAlreadyResolvedError(ConflictError):
    """Raised when acting on a friend request that is no longer pending"""

    pass


class AlreadyPurchasedError(ConflictError):
    """Raised when claiming an item another friend already claimed"""

    pass
