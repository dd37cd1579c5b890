"""
Student Service - identity, package selection and balance updates
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..db.models.package import Package
from ..db.models.payment import Payment, TransactionStatus
from ..db.models.student import PaymentStatus, Student
from ..exceptions import BadRequestError, NotFoundError, ValidationError
from .balance import (
    ZERO,
    apply_credit,
    calculate_outstanding,
    derive_payment_status,
    resolve_selected_days,
    to_decimal,
    validate_upgrade,
)
from .package_service import PackageService

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class StudentService:
    """Service for student records and their paid balance"""

    def __init__(self, db: Session):
        """
        Initialize student service

        Args:
            db: Database session
        """
        self.db = db
        self.packages = PackageService(db)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_by_matric_number(self, matric_number: str) -> Student:
        student = (
            self.db.query(Student)
            .filter(Student.matric_number == matric_number.strip().upper())
            .first()
        )
        if not student:
            raise NotFoundError("Student not found")
        return student

    def get_by_id(self, student_id: int) -> Student:
        student = self.db.query(Student).filter(Student.id == student_id).first()
        if not student:
            raise NotFoundError("Student not found")
        return student

    # ------------------------------------------------------------------
    # Identity and package choice
    # ------------------------------------------------------------------

    def identify_student(
        self,
        matric_number: str,
        full_name: str,
        package_code: str,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        selected_days: Optional[List[str]] = None,
        department: Optional[str] = None,
        gender: Optional[str] = None,
    ) -> Tuple[Student, Package]:
        """
        Create a student or refresh an existing one's contact details

        An existing student keeps their package; days are only replaced when
        supplied for the package the student already holds. Use
        select_package / upgrade_package to change packages.

        Returns:
            (student, package the student is on)
        """
        matric_number = matric_number.strip().upper()
        if not matric_number:
            raise ValidationError("Matric number is required")

        package = self.packages.get_by_code(package_code)
        resolved_days = resolve_selected_days(package.package_type, selected_days)

        student = self.db.query(Student).filter(Student.matric_number == matric_number).first()
        if student:
            if full_name:
                student.full_name = full_name.strip()
            if email:
                student.email = email.strip().lower()
            if phone:
                student.phone = phone.strip()
            if department:
                student.department = department.strip()
            if gender:
                student.gender = gender.strip()
            if selected_days and student.package_id == package.id:
                student.selected_days = resolved_days
            logger.info(f"Identified existing student {matric_number}")
        else:
            student = Student(
                matric_number=matric_number,
                full_name=full_name.strip(),
                email=email.strip().lower() if email else None,
                phone=phone.strip() if phone else None,
                department=department.strip() if department else None,
                gender=gender.strip() if gender else None,
                package_id=package.id,
                selected_days=resolved_days,
                total_paid=ZERO,
                payment_status=PaymentStatus.NOT_PAID.value,
            )
            self.db.add(student)
            logger.info(f"Registered student {matric_number} on package {package.code}")

        self.db.commit()
        self.db.refresh(student)
        return student, student.package

    def select_package(
        self,
        matric_number: str,
        package_code: str,
        selected_days: Optional[List[str]] = None,
    ) -> Student:
        """
        Switch package before any payment: a fresh start

        Resets total_paid and status and drops the invite. Once money has
        been credited, only upgrade_package may change the package.
        """
        student = self.get_by_matric_number(matric_number)
        package = self.packages.get_by_code(package_code)
        resolved_days = resolve_selected_days(package.package_type, selected_days)

        if student.total_paid > ZERO:
            raise BadRequestError(
                "Payments have already been made on this package. Use the upgrade option to change package."
            )

        student.package_id = package.id
        student.selected_days = resolved_days
        student.total_paid = ZERO
        student.payment_status = PaymentStatus.NOT_PAID.value
        student.clear_invite()

        self.db.commit()
        self.db.refresh(student)
        logger.info(f"Student {student.matric_number} selected package {package.code}")
        return student

    def upgrade_package(
        self,
        matric_number: str,
        new_package_code: str,
        selected_days: Optional[List[str]] = None,
    ) -> Student:
        """
        Move to a strictly higher-priced package, keeping what was paid

        Raises:
            BadRequestError: new package is not more expensive
            ValidationError: day selection does not fit the new package
        """
        student = self.get_by_matric_number(matric_number)
        current = student.package
        new_package = self.packages.get_by_code(new_package_code)

        validate_upgrade(current.price, new_package.price)
        resolved_days = resolve_selected_days(new_package.package_type, selected_days)

        logger.info(
            f"Upgrading student {student.matric_number} from {current.code} ({current.price}) "
            f"to {new_package.code} ({new_package.price}). Current paid: {student.total_paid}"
        )

        student.package_id = new_package.id
        student.package = new_package
        student.selected_days = resolved_days
        student.payment_status = derive_payment_status(student.total_paid, new_package.price).value
        student.clear_invite()

        self.db.commit()
        self.db.refresh(student)
        return student

    # ------------------------------------------------------------------
    # Balance
    # ------------------------------------------------------------------

    def credit_payment(self, student_id: int, amount: Decimal) -> Tuple[Student, PaymentStatus]:
        """
        Apply a settled amount to the student's balance

        Returns:
            (student, status before the credit)

        Locks the student row for the rest of the caller's transaction and
        flushes without committing; the settlement routine owns the commit.
        """
        student = (
            self.db.query(Student)
            .filter(Student.id == student_id)
            .with_for_update()
            .first()
        )
        if not student:
            raise NotFoundError("Student not found")

        previous_status = PaymentStatus(student.payment_status)
        price = student.package.price
        new_total, new_status = apply_credit(student.total_paid, amount, price)
        student.total_paid = new_total
        student.payment_status = new_status.value
        self.db.flush()

        logger.info(
            f"Updated student {student.matric_number} payment: {new_total} / {price} ({new_status.value})"
        )
        return student, previous_status

    def update_invite(self, student_id: int, image_url: str, generated_at: datetime) -> Student:
        student = self.get_by_id(student_id)
        student.invite_image_url = image_url
        student.invite_generated_at = generated_at
        self.db.commit()
        self.db.refresh(student)
        return student

    # ------------------------------------------------------------------
    # Admin views
    # ------------------------------------------------------------------

    def get_student_with_payment_history(self, student_id: int) -> Dict[str, Any]:
        student = self.get_by_id(student_id)
        payments = (
            self.db.query(Payment)
            .filter(Payment.student_id == student.id)
            .order_by(Payment.created_at.desc(), Payment.id.desc())
            .all()
        )
        return {
            "student": student,
            "package": student.package,
            "payments": payments,
            "total_paid": student.total_paid,
            "outstanding": calculate_outstanding(student.package.price, student.total_paid),
        }

    def list_students(
        self,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        status: Optional[str] = None,
        package_code: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Paginated student list with status, package and name/matric filters"""
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)

        query = self.db.query(Student)
        if status:
            try:
                query = query.filter(Student.payment_status == PaymentStatus(status).value)
            except ValueError:
                raise ValidationError(f"Invalid payment status: {status}")
        if package_code:
            query = query.join(Package, Student.package_id == Package.id).filter(
                Package.code == package_code.strip().upper()
            )
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(Student.full_name.ilike(pattern), Student.matric_number.ilike(pattern))
            )

        total = query.count()
        students = (
            query.order_by(Student.created_at.desc(), Student.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return {
            "students": students,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": (total + limit - 1) // limit,
            },
        }

    def get_metrics(self) -> Dict[str, Any]:
        """Head counts by status, collected revenue and total outstanding"""
        counts = dict(
            self.db.query(Student.payment_status, func.count(Student.id))
            .group_by(Student.payment_status)
            .all()
        )
        total_revenue = (
            self.db.query(func.coalesce(func.sum(func.coalesce(Payment.amount_paid, Payment.amount)), 0))
            .filter(Payment.status == TransactionStatus.SUCCESS.value)
            .scalar()
        )
        outstanding_total = ZERO
        rows = self.db.query(Student.total_paid, Package.price).join(Package, Student.package_id == Package.id)
        for total_paid, price in rows:
            outstanding_total += calculate_outstanding(price, total_paid)

        return {
            "total_students": sum(counts.values()),
            "fully_paid_count": counts.get(PaymentStatus.FULLY_PAID.value, 0),
            "partially_paid_count": counts.get(PaymentStatus.PARTIALLY_PAID.value, 0),
            "not_paid_count": counts.get(PaymentStatus.NOT_PAID.value, 0),
            "total_revenue": to_decimal(total_revenue or 0),
            "outstanding_total": outstanding_total,
        }
