# =============================================================================
# core/services/storage_service.py - Supabase Storage Operations
# =============================================================================
# Handles map background images in Supabase Storage.
# Clients upload directly to a signed URL, so image bytes never pass
# through the API.
# =============================================================================

import logging
from urllib.parse import urlsplit
from uuid import uuid4

from lib.supabase_client import SupabaseClient
from app.config import settings
from app.exceptions import ServiceNotConfiguredError, StorageUploadError, ValidationFailedError

logger = logging.getLogger(__name__)

# Accepted background image types and their file extensions
ALLOWED_IMAGE_TYPES: dict[str, str] = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
}


class StorageService:
    """
    Service for Supabase Storage operations.

    Background images live at {user_id}/{map_id}-{version}.{ext}. Every
    upload gets a fresh version so browsers and CDNs never serve a stale
    image; the previous object is removed once the map points elsewhere.
    """

    @staticmethod
    def _bucket_name() -> str:
        bucket = settings.BACKGROUND_BUCKET.strip()
        if not bucket:
            raise ServiceNotConfiguredError(
                "Background upload is not configured.", "BACKGROUND_BUCKET"
            )
        return bucket

    @staticmethod
    def public_url_prefix() -> str:
        """URL prefix shared by every public object in the background bucket."""
        base = settings.SUPABASE_URL.rstrip("/")
        return f"{base}/storage/v1/object/public/{StorageService._bucket_name()}/"

    @staticmethod
    def create_background_upload(user_id: str, map_id: str, content_type: str) -> dict[str, str]:
        """
        Create a signed upload URL for a map background image.

        Args:
            user_id: Uploading user (first path segment)
            map_id: Map the image belongs to
            content_type: One of ALLOWED_IMAGE_TYPES

        Returns:
            {"uploadUrl", "publicUrl", "path"}

        Raises:
            ValidationFailedError: If content type or map id is missing/invalid
            ServiceNotConfiguredError: If the bucket is not configured
            StorageUploadError: If the signed URL cannot be created
        """
        content_type = (content_type or "").strip()
        map_id = (map_id or "").strip()
        if content_type not in ALLOWED_IMAGE_TYPES:
            raise ValidationFailedError(
                "Invalid or missing contentType. Use image/png, image/jpeg, or image/webp."
            )
        if not map_id:
            raise ValidationFailedError("Missing mapId.")

        bucket = StorageService._bucket_name()
        ext = ALLOWED_IMAGE_TYPES[content_type]
        path = f"{user_id}/{map_id}-{uuid4().hex[:8]}.{ext}"
        client = SupabaseClient.get_client()

        try:
            storage = client.storage.from_(bucket)
            signed = storage.create_signed_upload_url(path)
            public_url = storage.get_public_url(path)
        except Exception as e:
            if "bucket not found" in str(e).lower():
                raise ServiceNotConfiguredError(
                    "Background upload is not configured.", "BACKGROUND_BUCKET"
                )
            logger.error(f"Signed upload URL failed for {path}: {e}")
            raise StorageUploadError(str(e))

        upload_url = signed.get("signed_url") or signed.get("signedUrl")
        if not upload_url:
            raise StorageUploadError("Storage returned no signed URL")

        logger.info(f"Created background upload URL: {path}")
        return {
            "uploadUrl": upload_url,
            "publicUrl": public_url.rstrip("?"),
            "path": path,
        }

    @staticmethod
    def path_from_public_url(url: str | None) -> str | None:
        """
        Storage path of a public URL, or None if it's not in our bucket.

        Example:
            path_from_public_url(".../object/public/map-backgrounds/u/m-1a2b.png?v=1")
            # "u/m-1a2b.png"
        """
        if not url or not settings.BACKGROUND_BUCKET.strip():
            return None
        prefix = StorageService.public_url_prefix()
        if not url.startswith(prefix):
            return None
        path = urlsplit(url[len(prefix):]).path
        return path or None

    @staticmethod
    def delete_background(url: str | None) -> bool:
        """
        Delete a background image by its public URL.

        URLs outside our bucket (external images) are left alone.

        Returns:
            True if an object was deleted
        """
        path = StorageService.path_from_public_url(url)
        if not path:
            return False

        client = SupabaseClient.get_client()

        try:
            client.storage.from_(StorageService._bucket_name()).remove([path])
            logger.info(f"Deleted background from storage: {path}")
            return True

        except Exception as e:
            logger.error(f"Failed to delete background {path}: {e}")
            return False
