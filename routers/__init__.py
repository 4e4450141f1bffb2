from fastapi import APIRouter

from routers.activity import router as activity_router
from routers.folders import router as folders_router
from routers.friends import router as friends_router
from routers.purchases import router as purchases_router
from routers.users import router as users_router
from routers.wishlist import router as wishlist_router

router = APIRouter()
router.include_router(users_router, tags=["Users"])
router.include_router(friends_router, tags=["Friends"])
router.include_router(wishlist_router, tags=["Wishlist"])
router.include_router(folders_router, tags=["Folders"])
router.include_router(purchases_router, tags=["Purchases"])
router.include_router(activity_router, tags=["Activity"])
