# This project was developed with assistance from AI tools.
"""Presigned upload URLs for bill files."""

import logging
import uuid
from dataclasses import dataclass

from ..core.config import settings
from .bill_token import sign_bill_token
from .storage import ALLOWED_CONTENT_TYPES, StorageService

logger = logging.getLogger(__name__)


class UploadUrlError(Exception):
    """Base for upload URL request failures."""


class UploadTooLarge(UploadUrlError):
    pass


class UnsupportedMediaType(UploadUrlError):
    pass


class CaseFolderNotFound(UploadUrlError):
    pass


@dataclass(frozen=True)
class UploadGrant:
    case_id: str
    bill_token: str
    signed_url: str
    storage_path: str


async def create_upload_url(
    storage: StorageService,
    *,
    file_name: str,
    mime_type: str,
    size: int,
    case_id: str | None = None,
    check_directory: bool = False,
) -> UploadGrant:
    """Issue a presigned PUT URL under ``bills/{case_id}/``.

    A missing ``case_id`` starts a new case. With ``check_directory`` the
    supplied case must already have objects in storage.

    Raises:
        UploadTooLarge, UnsupportedMediaType, CaseFolderNotFound.
    """
    max_bytes = settings.UPLOAD_MAX_SIZE_MB * 1024 * 1024
    if size > max_bytes:
        raise UploadTooLarge(f"File exceeds maximum size of {settings.UPLOAD_MAX_SIZE_MB} MB")
    if mime_type not in ALLOWED_CONTENT_TYPES:
        raise UnsupportedMediaType(
            f"Unsupported file type: {mime_type}. "
            f"Allowed: {', '.join(sorted(ALLOWED_CONTENT_TYPES))}"
        )

    if check_directory and case_id:
        if not await storage.case_folder_exists(case_id):
            raise CaseFolderNotFound(f'Directory for case_id "{case_id}" does not exist.')

    case_id = case_id or str(uuid.uuid4())
    object_key = storage.build_object_key(case_id, file_name)
    signed_url = await storage.get_upload_url(
        object_key, mime_type, expires_in=settings.UPLOAD_URL_EXPIRES_SECONDS
    )
    logger.info("Issued upload URL for case %s (%s, %d bytes)", case_id, mime_type, size)

    return UploadGrant(
        case_id=case_id,
        bill_token=sign_bill_token(case_id),
        signed_url=signed_url,
        storage_path=f"s3://{storage.bucket}/{object_key}",
    )
