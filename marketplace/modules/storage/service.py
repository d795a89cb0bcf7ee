import logging
import mimetypes
import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import UploadFile
from supabase import AsyncClient

from marketplace.config import settings
from marketplace.core.contracts import BlobStorage
from marketplace.core.exceptions import ValidationError

logger = logging.getLogger(__name__)


def build_blob_storage(client: AsyncClient) -> BlobStorage:
    """Pick the configured blob backend."""
    if settings.storage_backend == "s3":
        from marketplace.modules.storage.s3_storage import S3Storage
        return S3Storage.get_instance()
    if settings.storage_backend != "supabase":
        raise ValueError(f"Unknown storage backend: {settings.storage_backend}")
    from marketplace.modules.storage.supabase_storage import SupabaseStorage
    return SupabaseStorage(client)


@dataclass(frozen=True)
class PreparedPhoto:
    data: bytes
    content_type: str
    extension: str


class PhotoService:
    """Validates and uploads profile photos to the profile-photos bucket."""

    def __init__(self, blobs: BlobStorage):
        self.blobs = blobs

    async def prepare(self, upload: Optional[UploadFile], screen: Optional[str] = None) -> Optional[PreparedPhoto]:
        """Read and validate an uploaded photo. No network calls."""
        if upload is None or not upload.filename:
            return None
        content_type = upload.content_type or ""
        if not content_type.startswith("image/"):
            raise ValidationError("Profile photo must be an image", fields={"photo": ["Must be an image"]}, screen=screen)
        data = await upload.read()
        if not data:
            return None
        if len(data) > settings.max_photo_size_bytes:
            raise ValidationError(
                f"Profile photo must be at most {settings.max_photo_size_mb}MB",
                fields={"photo": ["File too large"]},
                screen=screen,
            )
        extension = self._extension(upload.filename, content_type)
        return PreparedPhoto(data=data, content_type=content_type, extension=extension)

    async def upload(self, owner: str, photo: PreparedPhoto) -> str:
        key = f"{owner}-{uuid.uuid4().hex[:12]}.{photo.extension}"
        url = await self.blobs.upload(settings.profile_photos_bucket, key, photo.data, photo.content_type)
        logger.info(f"Uploaded profile photo {key}")
        return url

    @staticmethod
    def _extension(filename: str, content_type: str) -> str:
        if "." in filename:
            ext = filename.rsplit(".", 1)[1].lower()
            if ext.isalnum():
                return ext
        guessed = mimetypes.guess_extension(content_type) or ".img"
        return guessed.lstrip(".")
