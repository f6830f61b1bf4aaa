"""Avatar storage in MinIO."""

import io
import logging
import uuid

from minio import Minio
from minio.error import S3Error
from fastapi import UploadFile

from kanvaro.core.config import settings
from kanvaro.core.exceptions import StorageError, ValidationError

logger = logging.getLogger(__name__)

AVATAR_CONTENT_TYPES = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/gif": "gif",
    "image/webp": "webp",
}


class FileService:
    """Uploads user avatars to MinIO and builds servable URLs."""

    def __init__(self):
        self._client = None
        self.bucket = settings.MINIO_BUCKET

    @property
    def client(self) -> Minio:
        if self._client is None:
            self._client = Minio(
                settings.MINIO_ENDPOINT,
                access_key=settings.MINIO_ACCESS_KEY,
                secret_key=settings.MINIO_SECRET_KEY,
                secure=settings.MINIO_SECURE,
            )
        return self._client

    def ensure_bucket(self) -> None:
        """Create the default bucket if it doesn't exist."""
        if not self.client.bucket_exists(self.bucket):
            self.client.make_bucket(self.bucket)

    def public_url(self, object_key: str) -> str:
        return f"{settings.MINIO_PUBLIC_URL.rstrip('/')}/{self.bucket}/{object_key}"

    async def upload_avatar(self, upload: UploadFile, user_id: int) -> str:
        """Store an avatar image and return its URL.

        Raises:
            ValidationError: Wrong content type or file too large.
            StorageError: MinIO rejected the upload.
        """
        extension = AVATAR_CONTENT_TYPES.get(upload.content_type or "")
        if extension is None:
            raise ValidationError("Avatar must be a PNG, JPEG, GIF or WebP image")

        content = await upload.read()
        max_bytes = settings.MAX_AVATAR_SIZE_MB * 1024 * 1024
        if not content:
            raise ValidationError("Avatar file is empty")
        if len(content) > max_bytes:
            raise ValidationError(f"Avatar exceeds {settings.MAX_AVATAR_SIZE_MB} MB")

        object_key = f"avatars/{user_id}/{uuid.uuid4().hex}.{extension}"
        try:
            self.ensure_bucket()
            self.client.put_object(
                self.bucket,
                object_key,
                io.BytesIO(content),
                length=len(content),
                content_type=upload.content_type,
            )
        except S3Error as e:
            logger.error("Avatar upload failed for user %s: %s", user_id, e)
            raise StorageError(f"Failed to upload avatar: {e}")

        return self.public_url(object_key)


file_service = FileService()
