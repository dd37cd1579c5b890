"""
Student model and payment status enum
"""
import enum

from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from ..base import Base, JSONType, utcnow


class PaymentStatus(str, enum.Enum):
    """Student balance status derived from total paid vs package price"""
    NOT_PAID = "NOT_PAID"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    FULLY_PAID = "FULLY_PAID"


class Student(Base):
    """Registered student; matric number is the identity key"""
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, index=True)
    matric_number = Column(String(32), nullable=False, unique=True, index=True)
    full_name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True, index=True)
    phone = Column(String(32), nullable=True)
    gender = Column(String(16), nullable=True)
    department = Column(String(120), nullable=True)
    package_id = Column(Integer, ForeignKey("packages.id"), nullable=False, index=True)
    selected_days = Column(JSONType, nullable=False, default=list)
    total_paid = Column(Numeric(12, 2), nullable=False, default=0)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.NOT_PAID.value, index=True)
    invite_image_url = Column(String(500), nullable=True)
    invite_generated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    package = relationship("Package", back_populates="students")
    payments = relationship("Payment", back_populates="student", order_by="Payment.created_at.desc()")

    @property
    def has_invite(self) -> bool:
        return bool(self.invite_image_url)

    def clear_invite(self) -> None:
        self.invite_image_url = None
        self.invite_generated_at = None

    def __repr__(self):
        return f"<Student {self.matric_number} {self.payment_status}>"
