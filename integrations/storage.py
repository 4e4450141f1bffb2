import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional
from urllib.parse import unquote, urlparse

from google.cloud import storage as gcs

from utils.constants import STORAGE_BUCKET

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base exception for object storage errors"""

    pass


class StorageConfigurationError(StorageError):
    """Raised when the storage bucket is not configured"""

    pass


def path_from_url(download_url: str) -> Optional[str]:
    """
    Extract the object path from a storage download URL.

    Download URLs carry the url-encoded object path after ``/o/``, e.g.
    ``https://firebasestorage.googleapis.com/v0/b/<bucket>/o/users%2Fu1%2Fwishlist%2Fa.webp?alt=media``.

    Returns:
        The decoded path, or None when the URL does not contain one
    """
    try:
        parsed = urlparse(download_url)
    except ValueError:
        return None
    marker = "/o/"
    if marker not in parsed.path:
        return None
    encoded = parsed.path.split(marker, 1)[1]
    return unquote(encoded) or None


class ImageStorage(ABC):
    """Object storage holding wishlist and profile images."""

    @abstractmethod
    def delete(self, path: str) -> None:
        pass

    def delete_images(self, download_urls: Iterable[str]) -> List[str]:
        """
        Delete every image referenced by ``download_urls``.

        Individual failures are logged and skipped.

        Returns:
            Paths that were deleted
        """
        deleted: List[str] = []
        for url in download_urls:
            path = path_from_url(url)
            if not path:
                logger.warning(f"Could not extract storage path from URL: {url}")
                continue
            try:
                self.delete(path)
                deleted.append(path)
            except Exception as e:
                logger.warning(f"Failed to delete image {url}: {e}")
        return deleted


class FirebaseImageStorage(ImageStorage):
    def __init__(self, bucket_name: str = STORAGE_BUCKET, client: Optional[gcs.Client] = None):
        if not bucket_name:
            raise StorageConfigurationError("STORAGE_BUCKET environment variable not set")
        self._client = client or gcs.Client()
        self._bucket = self._client.bucket(bucket_name)

    def delete(self, path: str) -> None:
        self._bucket.blob(path).delete()


def get_image_storage() -> Optional[ImageStorage]:
    if not STORAGE_BUCKET:
        logger.warning("STORAGE_BUCKET not configured, image cleanup disabled")
        return None
    return FirebaseImageStorage(STORAGE_BUCKET)
