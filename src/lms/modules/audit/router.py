"""
Audit Trail Router

Read-only access to status change records. Admins see records about
students, instructors and qualifications; super-admins see every record,
including changes to admin accounts.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.auth import get_current_admin, get_current_super_admin
from lms.core.database import get_db
from lms.core.exceptions import Forbidden, to_http_exception
from lms.modules.accounts.models import Admin, SuperAdmin
from lms.modules.audit import service
from lms.modules.audit.models import USER_SUBJECT_TYPES, SubjectType
from lms.modules.audit.schemas import (
    ChainVerificationResponse,
    StatusChangeRecordListResponse,
    StatusChangeRecordResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Audit"])


@router.get(
    "/admin/audit",
    response_model=StatusChangeRecordListResponse,
    summary="Account and Qualification Audit Trail",
)
async def list_user_audit_records(
    subject_type: SubjectType | None = Query(None),
    subject_id: UUID | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
) -> StatusChangeRecordListResponse:
    if subject_type is not None and subject_type not in USER_SUBJECT_TYPES:
        raise to_http_exception(
            Forbidden("Admin audit records are only visible to super admins.")
        )

    records = await service.list_records(
        db,
        subject_type=subject_type,
        subject_id=subject_id,
        allowed_types=USER_SUBJECT_TYPES,
        limit=limit,
        offset=offset,
    )
    return StatusChangeRecordListResponse(
        items=[StatusChangeRecordResponse.model_validate(r) for r in records],
        limit=limit,
        offset=offset,
    )


@router.get(
    "/admin/audit/subjects/{subject_id}",
    response_model=StatusChangeRecordListResponse,
    summary="Subject Status History",
)
async def get_user_subject_history(
    subject_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: Admin = Depends(get_current_admin),
) -> StatusChangeRecordListResponse:
    records = await service.subject_history(db, subject_id, allowed_types=USER_SUBJECT_TYPES)
    return StatusChangeRecordListResponse(
        items=[StatusChangeRecordResponse.model_validate(r) for r in records],
        limit=len(records),
        offset=0,
    )


@router.get(
    "/super-admin/audit",
    response_model=StatusChangeRecordListResponse,
    summary="Full Audit Trail",
)
async def list_all_audit_records(
    subject_type: SubjectType | None = Query(None),
    subject_id: UUID | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    super_admin: SuperAdmin = Depends(get_current_super_admin),
) -> StatusChangeRecordListResponse:
    records = await service.list_records(
        db, subject_type=subject_type, subject_id=subject_id, limit=limit, offset=offset
    )
    return StatusChangeRecordListResponse(
        items=[StatusChangeRecordResponse.model_validate(r) for r in records],
        limit=limit,
        offset=offset,
    )


@router.get(
    "/super-admin/audit/subjects/{subject_id}",
    response_model=StatusChangeRecordListResponse,
    summary="Subject Status History (all subject types)",
)
async def get_subject_history(
    subject_id: UUID,
    db: AsyncSession = Depends(get_db),
    super_admin: SuperAdmin = Depends(get_current_super_admin),
) -> StatusChangeRecordListResponse:
    records = await service.subject_history(db, subject_id)
    return StatusChangeRecordListResponse(
        items=[StatusChangeRecordResponse.model_validate(r) for r in records],
        limit=len(records),
        offset=0,
    )


@router.get(
    "/super-admin/audit/verify",
    response_model=ChainVerificationResponse,
    summary="Verify Audit Chain",
    description="Recompute the audit hash chain and report the first tampered record, if any.",
)
async def verify_audit_chain(
    db: AsyncSession = Depends(get_db),
    super_admin: SuperAdmin = Depends(get_current_super_admin),
) -> ChainVerificationResponse:
    result = await service.verify_chain(db)
    if not result.valid:
        logger.error(
            f"Super admin {super_admin.id} found a broken audit chain at {result.broken_record_id}"
        )
    return ChainVerificationResponse(
        valid=result.valid,
        records_checked=result.records_checked,
        broken_record_id=result.broken_record_id,
    )
