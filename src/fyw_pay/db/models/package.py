"""
Package model
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime
from sqlalchemy.orm import relationship

from ..base import Base, JSONType, utcnow


class Package(Base):
    """A paid registration tier; price is the total a student owes"""
    __tablename__ = "packages"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(16), nullable=False, unique=True, index=True)
    name = Column(String(120), nullable=False)
    package_type = Column(String(32), nullable=False)  # constants.PackageType
    price = Column(Numeric(12, 2), nullable=False)
    benefits = Column(JSONType, nullable=False, default=list)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    students = relationship("Student", back_populates="package")

    def __repr__(self):
        return f"<Package {self.code} {self.price}>"
