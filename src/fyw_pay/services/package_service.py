"""
Package catalogue service
"""
import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from ..constants import PackageType
from ..db.models.package import Package
from ..exceptions import NotFoundError, ValidationError
from .balance import to_decimal

logger = logging.getLogger(__name__)


class PackageService:
    """Lookups and administrative upserts for packages"""

    def __init__(self, db: Session):
        self.db = db

    def list_packages(self) -> List[Package]:
        """All packages, cheapest first"""
        return self.db.query(Package).order_by(Package.price.asc(), Package.code.asc()).all()

    def get_by_code(self, code: str) -> Package:
        package = self.db.query(Package).filter(Package.code == code.strip().upper()).first()
        if not package:
            raise NotFoundError(f"Package not found: {code}")
        return package

    def get_by_id(self, package_id: int) -> Package:
        package = self.db.query(Package).filter(Package.id == package_id).first()
        if not package:
            raise NotFoundError("Package not found")
        return package

    def create_or_update_package(
        self,
        code: str,
        name: str,
        package_type: str,
        price: Decimal,
        benefits: Optional[List[str]] = None,
    ) -> Package:
        """
        Insert a package or correct an existing one in place

        This is the administrative correction path; it flushes but leaves
        the commit to the caller.
        """
        code = code.strip().upper()
        if not code:
            raise ValidationError("Package code is required")
        try:
            package_type = PackageType(package_type).value
        except ValueError:
            raise ValidationError(f"Invalid package type: {package_type}")
        price = to_decimal(price)
        if price < 0:
            raise ValidationError("Package price cannot be negative")

        package = self.db.query(Package).filter(Package.code == code).first()
        if package is None:
            package = Package(code=code)
            self.db.add(package)
            logger.info(f"Creating package {code} ({name}) at {price}")
        else:
            logger.info(f"Updating package {code} ({name}) to {price}")

        package.name = name
        package.package_type = package_type
        package.price = price
        package.benefits = list(benefits or [])
        self.db.flush()
        return package
