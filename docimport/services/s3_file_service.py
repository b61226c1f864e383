"""S3FileService provides S3-backed blob storage for uploaded documents."""

import boto3
from botocore.exceptions import ClientError

from docimport.core.settings import Settings, get_settings


class S3FileService:
    """Service for S3 file operations: upload, download, delete, signed URLs, ensure bucket."""

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize S3FileService from the S3 settings and ensure the bucket exists."""
        settings = settings or get_settings()
        self.s3 = boto3.client(
            "s3",
            endpoint_url=settings.s3_endpoint_url,
            aws_access_key_id=settings.s3_access_key,
            aws_secret_access_key=settings.s3_secret_key,
        )
        self.bucket = settings.s3_bucket
        self.ensure_bucket()

    def ensure_bucket(self) -> None:
        """Ensure the S3 bucket exists, create if not present."""
        try:
            self.s3.head_bucket(Bucket=self.bucket)
        except ClientError:
            self.s3.create_bucket(Bucket=self.bucket)

    def upload_fileobj(self, key: str, data: bytes, content_type: str | None = None) -> None:
        """Upload a file object to S3 under the given key."""
        extra = {"ContentType": content_type} if content_type else {}
        self.s3.put_object(Bucket=self.bucket, Key=str(key), Body=data, **extra)

    def download_fileobj(self, key: str) -> bytes:
        """Download a file object from S3 by key."""
        obj = self.s3.get_object(Bucket=self.bucket, Key=str(key))
        return obj["Body"].read()

    def delete_fileobj(self, key: str) -> None:
        """Delete a file object from S3 by key."""
        self.s3.delete_object(Bucket=self.bucket, Key=str(key))

    def presigned_url(self, key: str, expires_in: int) -> str:
        """Generate a time-limited download URL for a key."""
        return self.s3.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": str(key)},
            ExpiresIn=expires_in,
        )
