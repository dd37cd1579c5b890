"""
Admin routes: login, dashboard metrics, student management and export
Everything except login requires an admin JWT
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from .auth import ADMIN_ROLE, authenticate_admin, create_access_token, require_admin
from .config import Config
from .db.engine import get_db
from .dependencies import get_config, get_reconciliation_service, get_student_service
from .exceptions import BadRequestError, UnauthorizedError
from .schemas import (
    AdminLoginRequest,
    InviteOut,
    LoginOut,
    MetricsOut,
    PackageOut,
    PaginationOut,
    PaymentOut,
    StudentDetailsOut,
    StudentListOut,
    StudentOut,
    success_response,
)
from .services.export_service import export_students_csv
from .services.reconciliation_service import PaymentReconciliationService
from .services.student_service import DEFAULT_PAGE_SIZE, StudentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])


# ============================================================================
# Auth
# ============================================================================

@router.post("/auth/login")
def login(payload: AdminLoginRequest, config: Config = Depends(get_config)):
    """Exchange the admin credentials for a bearer token"""
    if not authenticate_admin(payload.email, payload.password, config):
        raise UnauthorizedError("Invalid credentials")

    token = create_access_token({"sub": config.ADMIN_EMAIL, "role": ADMIN_ROLE}, config)
    logger.info("Admin logged in")
    return success_response(
        LoginOut(token=token, admin={"email": config.ADMIN_EMAIL}),
        message="Login successful",
    )


# ============================================================================
# Dashboard
# ============================================================================

@router.get("/metrics")
def get_metrics(
    admin: dict = Depends(require_admin),
    students: StudentService = Depends(get_student_service),
):
    """Head counts by payment status, revenue collected and total outstanding"""
    return success_response(MetricsOut(**students.get_metrics()))


@router.get("/students")
def list_students(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    status: Optional[str] = Query(None),
    package_code: Optional[str] = Query(None, alias="packageCode"),
    search: Optional[str] = Query(None, max_length=100),
    admin: dict = Depends(require_admin),
    students: StudentService = Depends(get_student_service),
):
    """Paginated students, filterable by status, package and name/matric search"""
    result = students.list_students(
        page=page,
        limit=limit,
        status=status,
        package_code=package_code,
        search=search,
    )
    return success_response(
        StudentListOut(
            students=[StudentOut.model_validate(s) for s in result["students"]],
            pagination=PaginationOut(**result["pagination"]),
        )
    )


@router.get("/students/{student_id}")
def get_student_details(
    student_id: int,
    admin: dict = Depends(require_admin),
    students: StudentService = Depends(get_student_service),
):
    """One student with their package and full payment history"""
    details = students.get_student_with_payment_history(student_id)
    return success_response(
        StudentDetailsOut(
            student=StudentOut.model_validate(details["student"]),
            package=PackageOut.model_validate(details["package"]),
            payments=[PaymentOut.model_validate(p) for p in details["payments"]],
            total_paid=details["total_paid"],
            outstanding=details["outstanding"],
        )
    )


# ============================================================================
# Invites
# ============================================================================

@router.post("/students/{student_id}/resend-invite")
def resend_invite(
    student_id: int,
    request: Request,
    admin: dict = Depends(require_admin),
    students: StudentService = Depends(get_student_service),
):
    """Email the existing invite again"""
    student = students.get_by_id(student_id)
    if not student.has_invite:
        raise BadRequestError("No invite found. Please regenerate the invite first.")
    if not student.email:
        raise BadRequestError("Student has no email address on file")

    sent = request.app.state.notifier.resend_invite(student, student.package)
    if not sent:
        raise BadRequestError("Invite email could not be sent")

    logger.info(f"Admin {admin.get('sub')} resent invite to {student.matric_number}")
    return success_response(message="Invite resent successfully")


@router.post("/students/{student_id}/regenerate-invite")
def regenerate_invite(
    student_id: int,
    admin: dict = Depends(require_admin),
    reconciliation: PaymentReconciliationService = Depends(get_reconciliation_service),
):
    """Render a fresh invite for a fully paid student and email it"""
    artifact = reconciliation.regenerate_invite(student_id)
    logger.info(f"Admin {admin.get('sub')} regenerated invite for student {student_id}")
    return success_response(
        InviteOut(invite_image_url=artifact.image_url, invite_generated_at=artifact.generated_at),
        message="Invite regenerated and sent successfully",
    )


# ============================================================================
# Export
# ============================================================================

@router.get("/export.csv")
def export_csv(
    admin: dict = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """All students as a CSV download"""
    return Response(
        content=export_students_csv(db),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=students-export.csv"},
    )
