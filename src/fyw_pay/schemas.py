"""
Pydantic request and response schemas
Field names are snake_case in Python and camelCase on the wire
"""
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, PlainSerializer, field_validator
from pydantic.alias_generators import to_camel

# Decimals go out as JSON numbers
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    """Base model accepting and emitting camelCase keys"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


def success_response(data: Any = None, message: Optional[str] = None) -> dict:
    """Standard success envelope: {success, message?, data?}"""
    body = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data.to_json() if isinstance(data, CamelModel) else data
    return body


# ============================================================================
# Requests
# ============================================================================

def _strip_days(days: Optional[List[str]]) -> Optional[List[str]]:
    if days is None:
        return None
    return [day for day in (d.strip() for d in days) if day]


class IdentifyStudentRequest(CamelModel):
    matric_number: str = Field(..., min_length=5, max_length=32)
    full_name: str = Field(..., min_length=2, max_length=200)
    package_code: str = Field(..., min_length=1, max_length=16)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=32)
    department: Optional[str] = Field(None, max_length=120)
    gender: Optional[str] = Field(None, max_length=16)
    selected_days: Optional[List[str]] = None

    @field_validator("selected_days")
    @classmethod
    def clean_days(cls, v):
        return _strip_days(v)


class SelectPackageRequest(CamelModel):
    matric_number: str = Field(..., min_length=5, max_length=32)
    package_code: str = Field(..., min_length=1, max_length=16)
    selected_days: Optional[List[str]] = None

    @field_validator("selected_days")
    @classmethod
    def clean_days(cls, v):
        return _strip_days(v)


class UpgradePackageRequest(CamelModel):
    matric_number: str = Field(..., min_length=5, max_length=32)
    new_package_code: str = Field(..., min_length=1, max_length=16)
    selected_days: Optional[List[str]] = None

    @field_validator("selected_days")
    @classmethod
    def clean_days(cls, v):
        return _strip_days(v)


class InitializePaymentRequest(CamelModel):
    """studentId carries the student's matric number"""
    student_id: str = Field(..., min_length=1, max_length=32)
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    email: EmailStr


class AdminLoginRequest(CamelModel):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=8)


# ============================================================================
# Responses
# ============================================================================

class PackageOut(CamelModel):
    id: int
    code: str
    name: str
    package_type: str
    price: Money
    benefits: List[str] = []


class StudentOut(CamelModel):
    id: int
    matric_number: str
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    department: Optional[str] = None
    gender: Optional[str] = None
    package_id: int
    selected_days: List[str] = []
    total_paid: Money
    payment_status: str
    invite_image_url: Optional[str] = None
    invite_generated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StudentWithPackageOut(CamelModel):
    student: StudentOut
    package: PackageOut
    outstanding: Optional[Money] = None


class PaymentOut(CamelModel):
    id: int
    student_id: int
    package_id_at_time: int
    amount: Money
    amount_paid: Optional[Money] = None
    reference: str
    provider: str
    status: str
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CheckoutOut(CamelModel):
    redirect_url: str
    reference: str
    access_code: Optional[str] = None


class StudentDetailsOut(CamelModel):
    student: StudentOut
    package: PackageOut
    payments: List[PaymentOut]
    total_paid: Money
    outstanding: Money


class PaginationOut(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class StudentListOut(CamelModel):
    students: List[StudentOut]
    pagination: PaginationOut


class MetricsOut(CamelModel):
    total_students: int
    fully_paid_count: int
    partially_paid_count: int
    not_paid_count: int
    total_revenue: Money
    outstanding_total: Money


class AdminOut(CamelModel):
    email: str


class LoginOut(CamelModel):
    token: str
    admin: AdminOut


class InviteOut(CamelModel):
    invite_image_url: str
    invite_generated_at: datetime
