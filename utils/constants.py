import os

from dotenv import load_dotenv

load_dotenv(".env.local")

# ENV variables
WEBAPP_URL = os.getenv("WEBAPP_URL", "http://localhost:5173")
IS_DEV = os.getenv("IS_DEV", "true").lower() in ("true", "1", "yes")
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS", "http://localhost:5173,http://localhost:3000"
    ).split(",")
    if origin.strip()
]


# JWT configuration
JWT_SECRET = os.getenv("JWT_SECRET", "wishlist_secret")
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "wishlist-app")
JWT_ISSUER = os.getenv("JWT_ISSUER", "wishlist-auth")
COOKIE_NAME = os.getenv("COOKIE_NAME", "wishlist_access_token")

# Document store configuration
DATABASE_URL = os.getenv("DATABASE_URL")
MIGRATIONS_DIR = os.path.join(
    os.path.dirname(__file__), "..", "database", "documents", "migrations"
)

# Object storage configuration
STORAGE_BUCKET = os.getenv("STORAGE_BUCKET", "")

# Domain limits
MAX_ITEM_IMAGES = 5
MIN_SEARCH_LENGTH = 2
MIN_USERNAME_LENGTH = 3
ACTIVITY_PAGE_SIZE = int(os.getenv("ACTIVITY_PAGE_SIZE", "10"))
FEED_FRIEND_CHUNK_SIZE = 10  # friend ids per activity feed "in" filter
BIRTHDAY_WINDOW_DAYS = 30
