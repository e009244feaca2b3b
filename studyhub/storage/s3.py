import asyncio
from typing import Optional
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from studyhub.errors import UploadFailed
from studyhub.storage.base import BlobStore
from studyhub.utils.logs import ErrorLogger


class S3BlobStore(BlobStore):
    """Stores attachments as S3 objects; references are object keys."""

    def __init__(
        self,
        bucket_name: str,
        region: str = "us-east-1",
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        public_base_url: Optional[str] = None,
        logger: Optional[ErrorLogger] = None,
    ):
        if not bucket_name:
            raise ValueError("S3 bucket name must be configured")

        self.s3_client = boto3.client(
            "s3",
            aws_access_key_id=access_key_id or None,
            aws_secret_access_key=secret_access_key or None,
            region_name=region,
            endpoint_url=endpoint_url or None,
        )
        self.bucket_name = bucket_name
        self.region = region
        self.public_base_url = (
            public_base_url or f"https://{bucket_name}.s3.{region}.amazonaws.com"
        ).rstrip("/")
        self._logger = logger

    async def upload(self, key: str, data: bytes, mime_type: str) -> str:
        try:
            # boto3 blocks; run it off the event loop.
            await asyncio.to_thread(
                self.s3_client.put_object,
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=mime_type,
            )
        except (ClientError, BotoCoreError) as e:
            if self._logger:
                self._logger.log_external_api_error("s3", e, key=key)
            raise UploadFailed(f"Failed to upload {key}") from e
        return key

    def public_url(self, ref: str) -> str:
        return f"{self.public_base_url}/{quote(ref)}"
