"""
Student routes: package catalogue, identification and package changes
"""
import logging

from fastapi import APIRouter, Depends

from .dependencies import get_package_service, get_student_service
from .schemas import (
    IdentifyStudentRequest,
    PackageOut,
    SelectPackageRequest,
    StudentOut,
    StudentWithPackageOut,
    UpgradePackageRequest,
    success_response,
)
from .services.balance import calculate_outstanding
from .services.package_service import PackageService
from .services.student_service import StudentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/students", tags=["Students"])


def _student_with_package(student, package) -> StudentWithPackageOut:
    return StudentWithPackageOut(
        student=StudentOut.model_validate(student),
        package=PackageOut.model_validate(package),
        outstanding=calculate_outstanding(package.price, student.total_paid),
    )


@router.get("/packages")
def list_packages(packages: PackageService = Depends(get_package_service)):
    """All packages, cheapest first"""
    return success_response([PackageOut.model_validate(p).to_json() for p in packages.list_packages()])


@router.post("/identify")
def identify_student(
    request: IdentifyStudentRequest,
    students: StudentService = Depends(get_student_service),
):
    """
    Register a student or refresh an existing one's details

    Existing students keep their package; use select-package or
    upgrade-package to change it.
    """
    student, package = students.identify_student(
        matric_number=request.matric_number,
        full_name=request.full_name,
        package_code=request.package_code,
        email=request.email,
        phone=request.phone,
        selected_days=request.selected_days,
        department=request.department,
        gender=request.gender,
    )
    return success_response(
        _student_with_package(student, package),
        message="Student identified/created successfully",
    )


@router.post("/select-package")
def select_package(
    request: SelectPackageRequest,
    students: StudentService = Depends(get_student_service),
):
    """Choose a package before paying anything"""
    student = students.select_package(request.matric_number, request.package_code, request.selected_days)
    return success_response(
        _student_with_package(student, student.package),
        message="Package selected successfully",
    )


@router.post("/upgrade-package")
def upgrade_package(
    request: UpgradePackageRequest,
    students: StudentService = Depends(get_student_service),
):
    """Move to a more expensive package, keeping the amount already paid"""
    student = students.upgrade_package(request.matric_number, request.new_package_code, request.selected_days)
    return success_response(
        _student_with_package(student, student.package),
        message="Package upgraded successfully",
    )


@router.get("/{matric_number:path}")
def get_student(
    matric_number: str,
    students: StudentService = Depends(get_student_service),
):
    """Student, their package and the balance still owed"""
    student = students.get_by_matric_number(matric_number)
    return success_response(_student_with_package(student, student.package))
