import asyncio
import boto3
from botocore.exceptions import ClientError
from marketplace.config import settings
from marketplace.core.exceptions import StorageError
import logging

logger = logging.getLogger(__name__)


class S3Storage:
    _instance: "S3Storage" = None

    @classmethod
    def get_instance(cls) -> "S3Storage":
        """One boto3 client per process"""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def __init__(self):
        if not all([settings.aws_access_key_id, settings.aws_secret_access_key, settings.s3_bucket_name]):
            raise ValueError("AWS S3 credentials and bucket name must be configured")

        self.s3_client = boto3.client(
            's3',
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region_name=settings.aws_region
        )
        self.bucket_name = settings.s3_bucket_name

    async def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        """Upload under ``<bucket>/<key>`` and return the public URL"""
        object_key = f"{bucket}/{key}"
        try:
            await asyncio.to_thread(
                self.s3_client.put_object,
                Bucket=self.bucket_name,
                Key=object_key,
                Body=data,
                ContentType=content_type
            )
        except ClientError as e:
            logger.error(f"Failed to upload file to S3: {str(e)}")
            raise StorageError(f"Failed to upload file: {e}", bucket=bucket, key=key)
        return self.public_url(object_key)

    def public_url(self, object_key: str) -> str:
        base = settings.s3_public_base_url or f"https://{self.bucket_name}.s3.{settings.aws_region}.amazonaws.com"
        return f"{base.rstrip('/')}/{object_key}"
