"""
API request and response models for ExpenseTracker REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
ledger/models.py, which own the internal domain representation. Route
handlers map between the two.

Request models never carry an owner: any user_id/owner_id a client sends is
dropped by Pydantic (extra="ignore") before the handler sees the body.

Separation of concerns: auth/ and ledger/ models = domain truth; api/ models = API contract.
"""

from datetime import date
from decimal import Decimal
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator

from auth.models import User
from auth.passwords import MAX_PASSWORD_BYTES
from ledger.models import Category, CategoryTotal, Expense

# Loose shape check only; deliverability is not our concern.
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"

# Trimmed on the way in. Passwords are never trimmed.
TrimmedName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
TrimmedEmail = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=3, max_length=255, pattern=EMAIL_PATTERN)
]


def _check_password_bytes(value: Optional[str]) -> Optional[str]:
    # bcrypt refuses input longer than 72 bytes; max_length counts characters.
    if value is not None and len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded.")
    return value


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register.

    name and email are trimmed; the password is taken exactly as sent, so
    login with the same string always matches.
    """

    name: TrimmedName
    email: TrimmedEmail
    password: str = Field(min_length=6, max_length=MAX_PASSWORD_BYTES)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: Optional[str]) -> Optional[str]:
        return _check_password_bytes(value)


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login.

    No format validation: a malformed email simply fails to authenticate,
    with the same 401 as any other bad credential. The email is trimmed the
    same way registration trims it; the password is not touched.
    """

    email: Annotated[str, StringConstraints(strip_whitespace=True, max_length=255)]
    password: str = Field(max_length=255)


class UserResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(id=user.id, name=user.name, email=user.email, created_at=user.created_at or "")


class LoginResponse(BaseModel):
    """Response for a successful POST /api/v1/auth/login."""

    model_config = ConfigDict(frozen=True)

    token: str
    type: str = "Bearer"
    expires_in: int
    user: UserResponse


class EmailAvailabilityResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    available: bool


class UserUpdate(BaseModel):
    """Request body for PUT /api/v1/users/me. Omitted fields are left unchanged."""

    name: Optional[TrimmedName] = None
    email: Optional[TrimmedEmail] = None
    password: Optional[str] = Field(default=None, min_length=6, max_length=MAX_PASSWORD_BYTES)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: Optional[str]) -> Optional[str]:
        return _check_password_bytes(value)


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


class CategoryRequest(BaseModel):
    """Request body for POST and PUT /api/v1/categories."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=2, max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)
    color: Optional[str] = Field(default=None, pattern=COLOR_PATTERN)
    icon: Optional[str] = Field(default=None, max_length=50)


class CategoryResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    description: Optional[str]
    color: Optional[str]
    icon: Optional[str]
    created_at: str

    @classmethod
    def from_category(cls, category: Category) -> "CategoryResponse":
        """Factory Method -- the mapping lives here, next to the output model."""
        return cls(
            id=category.id,
            name=category.name,
            description=category.description,
            color=category.color,
            icon=category.icon,
            created_at=category.created_at,
        )


# ---------------------------------------------------------------------------
# Expenses
# ---------------------------------------------------------------------------


class ExpenseRequest(BaseModel):
    """Request body for POST and PUT /api/v1/expenses.

    Older clients also send user_id; it is ignored. The owner is always the
    authenticated caller.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    description: str = Field(min_length=1, max_length=255)
    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    date: date
    category_id: int = Field(gt=0)


class ExpenseResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    description: str
    amount: Decimal
    date: date
    category_id: int
    created_at: str

    @classmethod
    def from_expense(cls, expense: Expense) -> "ExpenseResponse":
        return cls(
            id=expense.id,
            description=expense.description,
            amount=expense.amount,
            date=expense.date,
            category_id=expense.category_id,
            created_at=expense.created_at,
        )


class CategoryTotalRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    category_id: int
    category_name: str
    total: Decimal
    count: int
    percentage: float

    @classmethod
    def from_total(cls, row: CategoryTotal) -> "CategoryTotalRow":
        return cls(
            category_id=row.category_id,
            category_name=row.category_name,
            total=row.total,
            count=row.count,
            percentage=row.percentage,
        )


class ExpenseSummaryResponse(BaseModel):
    """Response for GET /api/v1/expenses/summary."""

    model_config = ConfigDict(frozen=True)

    total: Decimal
    count: int
    by_category: list[CategoryTotalRow]
