# This project was developed with assistance from AI tools.
"""Bill upload routes: presigned URLs, final case submission and the contact form."""

import logging

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import APIRouter, Depends, HTTPException, status

from ..schemas.uploads import (
    ContactRequest,
    ContactResponse,
    DoubleOptInStatusBody,
    SubmitCaseRequest,
    SubmitCaseResponse,
    UploadUrlRequest,
    UploadUrlResponse,
)
from ..services.double_opt_in import DoubleOptInService, get_double_opt_in_service
from ..services.storage import StorageService, get_storage_service
from ..services.submit_case import BillTokenMismatch, save_contact, submit_case
from ..services.upload_url import (
    CaseFolderNotFound,
    UnsupportedMediaType,
    UploadTooLarge,
    create_upload_url,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/upload-url", response_model=UploadUrlResponse)
async def issue_upload_url(
    body: UploadUrlRequest,
    storage: StorageService = Depends(get_storage_service),
) -> UploadUrlResponse:
    """Return a presigned PUT URL and the bill token for the case."""
    try:
        grant = await create_upload_url(
            storage,
            file_name=body.file_name,
            mime_type=body.mime_type,
            size=body.size,
            case_id=body.case_id,
            check_directory=body.check_directory,
        )
    except UploadTooLarge as exc:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(exc)
        ) from exc
    except UnsupportedMediaType as exc:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail=str(exc)
        ) from exc
    except CaseFolderNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except (BotoCoreError, ClientError) as exc:
        logger.error("Storage error issuing upload URL: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate signed URL",
        ) from exc

    return UploadUrlResponse(
        case_id=grant.case_id,
        bill_token=grant.bill_token,
        signed_url=grant.signed_url,
        storage_path=grant.storage_path,
    )


@router.post("/submit-case", response_model=SubmitCaseResponse)
async def submit_case_route(
    body: SubmitCaseRequest,
    storage: StorageService = Depends(get_storage_service),
    double_opt_in: DoubleOptInService = Depends(get_double_opt_in_service),
) -> SubmitCaseResponse:
    """Save case metadata next to the uploads and start double opt-in.

    Opt-in problems are reported in ``doubleOptIn`` and never fail the request.
    """
    try:
        receipt = await submit_case(storage, double_opt_in, body.model_dump(by_alias=True))
    except BillTokenMismatch as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc

    return SubmitCaseResponse(
        storage_path=receipt.storage_path,
        double_opt_in=DoubleOptInStatusBody(
            status=receipt.double_opt_in.status.value,
            error=receipt.double_opt_in.error,
        ),
    )


@router.post("/contact", response_model=ContactResponse)
async def contact(
    body: ContactRequest,
    storage: StorageService = Depends(get_storage_service),
) -> ContactResponse:
    """Store intake answers without an upload; a new caseId is assigned."""
    case_id, storage_path = await save_contact(storage, body.model_dump(by_alias=True))
    return ContactResponse(case_id=case_id, storage_path=storage_path)
