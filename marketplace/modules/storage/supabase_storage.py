import logging

from supabase import AsyncClient

from marketplace.config import settings
from marketplace.core.exceptions import StorageError

logger = logging.getLogger(__name__)


class SupabaseStorage:
    def __init__(self, client: AsyncClient):
        self.client = client

    async def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        try:
            await self.client.storage.from_(bucket).upload(key, data, {"content-type": content_type})
        except Exception as e:
            logger.error(f"Failed to upload {key} to bucket {bucket}: {str(e)}")
            raise StorageError(f"Failed to upload file: {e}", bucket=bucket, key=key)
        return self.public_url(bucket, key)

    @staticmethod
    def public_url(bucket: str, key: str) -> str:
        return f"{settings.supabase_url.rstrip('/')}/storage/v1/object/public/{bucket}/{key}"
