"""
CSV export of registered students for the admin dashboard
"""
import csv
import io
import logging

from sqlalchemy.orm import Session, joinedload

from ..db.models.student import Student
from .balance import calculate_outstanding

logger = logging.getLogger(__name__)

CSV_HEADERS = [
    "Full Name",
    "Matric Number",
    "Email",
    "Phone",
    "Package",
    "Package Price",
    "Selected Days",
    "Total Paid",
    "Outstanding",
    "Payment Status",
    "Has Invite",
    "Created At",
]


def export_students_csv(db: Session) -> str:
    """All students, newest first, as CSV text"""
    students = (
        db.query(Student)
        .options(joinedload(Student.package))
        .order_by(Student.created_at.desc(), Student.id.desc())
        .all()
    )

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADERS)
    for student in students:
        package = student.package
        writer.writerow([
            student.full_name,
            student.matric_number,
            student.email or "N/A",
            student.phone or "N/A",
            package.name,
            f"{package.price:.2f}",
            ", ".join(student.selected_days) if student.selected_days else "N/A",
            f"{student.total_paid:.2f}",
            f"{calculate_outstanding(package.price, student.total_paid):.2f}",
            student.payment_status,
            "Yes" if student.has_invite else "No",
            student.created_at.isoformat() if student.created_at else "",
        ])

    logger.info(f"Exported {len(students)} students to CSV")
    return buffer.getvalue()
