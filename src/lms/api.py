from fastapi import APIRouter

from lms.modules.accounts.admin_router import router as admin_accounts_router
from lms.modules.accounts.auth_router import router as auth_router
from lms.modules.accounts.router import router as accounts_router
from lms.modules.accounts.super_admin_router import router as super_admin_router
from lms.modules.audit.router import router as audit_router
from lms.modules.qualifications.admin_router import router as admin_qualifications_router
from lms.modules.qualifications.router import router as qualifications_router

api_router = APIRouter()

api_router.include_router(auth_router)
api_router.include_router(accounts_router)
api_router.include_router(qualifications_router)
api_router.include_router(admin_accounts_router)
api_router.include_router(admin_qualifications_router)
api_router.include_router(super_admin_router)
api_router.include_router(audit_router)
