import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from business.errors import WishlistError
from database.documents.orm import get_connection, run_migrations
from database.documents.store import DocumentStore
from integrations.storage import get_image_storage
from routers import router
from utils.constants import CORS_ORIGINS
from utils.http_errors import wishlist_error_handler

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler()  # This outputs to console
    ],
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown events."""
    logger.info("Starting application...")

    try:
        logger.info("Running database migrations...")
        run_migrations()
        app.state.store = DocumentStore()
        app.state.image_storage = get_image_storage()
        logger.info("Document store initialization completed successfully")
    except Exception as e:
        logger.error(f"Failed to initialize document store: {e}")
        raise

    yield

    logger.info("Application shutdown completed")


app = FastAPI(
    title="Wishlist API",
    description="Social wishlists: friends, wishlists, folders and gift coordination",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(WishlistError, wishlist_error_handler)

app.include_router(router, tags=["API v1"])


@app.get("/")
async def read_root() -> dict:
    return {"message": "Wishlist API"}


@app.get("/health")
async def health_check():
    """Health check with document store connectivity test."""
    db_status = "unknown"
    try:
        conn = get_connection()
        try:
            cur = conn.cursor()
            cur.execute("SELECT 1")
            db_status = "connected" if cur.fetchone() else "disconnected"
            cur.close()
        finally:
            conn.close()
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        db_status = "error"

    return {
        "status": "healthy",
        "database": db_status,
        "environment": os.getenv("ENVIRONMENT", "development"),
    }
