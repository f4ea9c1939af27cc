# This project was developed with assistance from AI tools.
"""S3-compatible object storage for uploaded bills.

Uses boto3 synchronous client run in a thread-pool executor for async
compatibility. Browsers upload directly to storage through presigned PUT
URLs; the API itself only writes small JSON documents. The module exposes a
singleton initialised at app startup via ``init_storage_service()``.
"""

import asyncio
import json
import logging
import os
from functools import partial
from typing import Any

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from ..core.config import Settings

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    "application/pdf",
    "image/jpeg",
    "image/png",
    "image/heic",
    "image/webp",
}

CASE_PREFIX = "bills"
META_FILENAME = "meta.json"
CONTACT_FILENAME = "contact.json"


class StorageService:
    """Thin wrapper around a boto3 S3 client."""

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        bucket: str,
        region: str = "us-east-1",
        ensure_bucket: bool = True,
    ):
        self._bucket = bucket
        self._client = boto3.client(
            "s3",
            endpoint_url=endpoint,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
            config=BotoConfig(
                signature_version="s3v4",
                s3={
                    "addressing_style": "path",
                    "use_accelerate_endpoint": False,
                },
            ),
        )
        if ensure_bucket:
            self._ensure_bucket()

    @property
    def bucket(self) -> str:
        return self._bucket

    def _ensure_bucket(self) -> None:
        """Create the bucket if it doesn't already exist (dev convenience)."""
        try:
            self._client.head_bucket(Bucket=self._bucket)
        except ClientError:
            logger.info("Creating S3 bucket: %s", self._bucket)
            self._client.create_bucket(Bucket=self._bucket)

    async def _run(self, func, **kwargs: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, **kwargs))

    async def upload_json(self, data: dict[str, Any], object_key: str) -> str:
        """Write ``data`` as pretty-printed JSON and return the object key."""
        await self._run(
            self._client.put_object,
            Bucket=self._bucket,
            Key=object_key,
            Body=json.dumps(data, indent=2, default=str).encode("utf-8"),
            ContentType="application/json",
        )
        return object_key

    async def get_upload_url(self, object_key: str, content_type: str, expires_in: int = 900) -> str:
        """Return a presigned PUT URL bound to ``content_type``."""
        loop = asyncio.get_running_loop()
        url: str = await loop.run_in_executor(
            None,
            partial(
                self._client.generate_presigned_url,
                "put_object",
                Params={"Bucket": self._bucket, "Key": object_key, "ContentType": content_type},
                ExpiresIn=expires_in,
            ),
        )
        return url

    async def object_exists(self, object_key: str) -> bool:
        try:
            await self._run(self._client.head_object, Bucket=self._bucket, Key=object_key)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code in ("404", "NoSuchKey", "NotFound"):
                return False
            raise
        return True

    async def prefix_has_objects(self, prefix: str) -> bool:
        response = await self._run(
            self._client.list_objects_v2, Bucket=self._bucket, Prefix=prefix, MaxKeys=1
        )
        return response.get("KeyCount", 0) > 0

    async def case_folder_exists(self, case_id: str) -> bool:
        """True when the case already has ``meta.json`` or any uploaded object."""
        if await self.object_exists(self.build_meta_key(case_id)):
            return True
        return await self.prefix_has_objects(self.case_prefix(case_id))

    @staticmethod
    def case_prefix(case_id: str) -> str:
        return f"{CASE_PREFIX}/{case_id}/"

    @staticmethod
    def build_meta_key(case_id: str) -> str:
        return f"{CASE_PREFIX}/{case_id}/{META_FILENAME}"

    @staticmethod
    def build_contact_key(case_id: str) -> str:
        return f"{CASE_PREFIX}/{case_id}/{CONTACT_FILENAME}"

    @staticmethod
    def build_object_key(case_id: str, filename: str) -> str:
        """Build the S3 object key: bills/{case_id}/{filename}.

        Strips path components from filename to prevent path traversal attacks.
        """
        safe_name = os.path.basename(filename.replace("\\", "/")) or "upload"
        return f"{CASE_PREFIX}/{case_id}/{safe_name}"


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

_service: StorageService | None = None


def init_storage_service(cfg: Settings) -> StorageService:
    """Initialise the singleton (called once from app lifespan)."""
    global _service  # noqa: PLW0603
    _service = StorageService(
        endpoint=cfg.S3_ENDPOINT,
        access_key=cfg.S3_ACCESS_KEY,
        secret_key=cfg.S3_SECRET_KEY,
        bucket=cfg.S3_BUCKET,
        region=cfg.S3_REGION,
    )
    logger.info("StorageService initialised (bucket=%s)", cfg.S3_BUCKET)
    return _service


def get_storage_service() -> StorageService:
    """Return the initialised StorageService singleton."""
    if _service is None:
        raise RuntimeError("StorageService not initialised -- call init_storage_service() first")
    return _service
