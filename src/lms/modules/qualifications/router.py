"""
Instructor Qualifications Router

Submission and self-service views for instructors, plus the public
certificates listing.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.auth import Principal, get_current_instructor, get_principal
from lms.core.database import get_db
from lms.core.exceptions import LifecycleError, internal_http_exception, to_http_exception
from lms.core.storage import BlobStore, get_blob_store
from lms.modules.accounts.models import Instructor
from lms.modules.qualifications import service
from lms.modules.qualifications.schemas import (
    CertificateListResponse,
    QualificationListResponse,
    RequirementStatusResponse,
    SubmissionResponse,
)
from lms.modules.qualifications.service import DocumentUpload

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Qualifications"])


async def _read_upload(upload: UploadFile) -> DocumentUpload:
    return DocumentUpload(
        filename=upload.filename or "upload",
        content_type=upload.content_type,
        content=await upload.read(),
    )


@router.post(
    "/instructors/me/qualifications",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit Qualifications",
    description="""
Submit qualification documents for admin verification.

**First submission:**
- `signature` is required and is stored permanently
- at least one document is required

**Later submissions:** more documents may be added; a re-sent signature is ignored.

**Documents:** PDF only, 10 MB each. `levels` and `fields_of_study`, when
given, must have one entry per document. Level defaults to `CERTIFICATE`.
""",
    responses={
        400: {"description": "Missing signature/document, arity mismatch or invalid file"},
        403: {"description": "Instructor account is inactive"},
    },
)
async def submit_qualifications(
    documents: list[UploadFile] | None = File(None),
    signature: UploadFile | None = File(None),
    levels: list[str] | None = Form(None),
    fields_of_study: list[str] | None = Form(None),
    instructor: Instructor = Depends(get_current_instructor),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> SubmissionResponse:
    try:
        created, signature_stored = await service.submit_qualifications(
            db,
            instructor.id,
            documents=[await _read_upload(d) for d in documents or []],
            signature=await _read_upload(signature) if signature else None,
            levels=levels or None,
            fields_of_study=fields_of_study or None,
            blob_store=blob_store,
        )
        return SubmissionResponse(
            items=[await service.to_response(q, blob_store) for q in created],
            signature_stored=signature_stored,
            message=f"{len(created)} qualification(s) submitted for review",
        )
    except LifecycleError as e:
        logger.warning(f"Submission by instructor {instructor.id} refused: {e.message}")
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error submitting qualifications: {e}")
        raise internal_http_exception() from e


@router.get(
    "/instructors/me/qualifications",
    response_model=QualificationListResponse,
    summary="My Qualification History",
)
async def get_my_qualifications(
    instructor: Instructor = Depends(get_current_instructor),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> QualificationListResponse:
    items = await service.get_history(db, instructor, blob_store)
    return QualificationListResponse(items=items, total=len(items))


@router.get(
    "/instructors/me/requirements",
    response_model=RequirementStatusResponse,
    summary="My Onboarding Requirements",
)
async def get_my_requirements(
    instructor: Instructor = Depends(get_current_instructor),
    db: AsyncSession = Depends(get_db),
) -> RequirementStatusResponse:
    return await service.get_requirement_status(db, instructor)


@router.get(
    "/instructors/{instructor_id}/certificates",
    response_model=CertificateListResponse,
    summary="Instructor Certificates",
    description="Verified qualifications of an instructor. Pending and rejected ones are hidden.",
)
async def get_instructor_certificates(
    instructor_id: UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> CertificateListResponse:
    try:
        items = await service.get_verified_certificates(db, instructor_id, blob_store)
        return CertificateListResponse(instructor_id=instructor_id, items=items)
    except LifecycleError as e:
        raise to_http_exception(e) from e
