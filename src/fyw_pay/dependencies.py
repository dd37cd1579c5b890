"""
FastAPI dependencies that build services from the app state
"""
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .config import Config
from .db.engine import get_db
from .services.package_service import PackageService
from .services.reconciliation_service import PaymentReconciliationService
from .services.student_service import StudentService


def get_config(request: Request) -> Config:
    return request.app.state.config


def get_student_service(db: Session = Depends(get_db)) -> StudentService:
    return StudentService(db)


def get_package_service(db: Session = Depends(get_db)) -> PackageService:
    return PackageService(db)


def get_reconciliation_service(
    request: Request,
    db: Session = Depends(get_db),
) -> PaymentReconciliationService:
    state = request.app.state
    return PaymentReconciliationService(
        db,
        gateways=state.gateways,
        invite_generator=state.invite_generator,
        notifier=state.notifier,
        config=state.config,
    )
