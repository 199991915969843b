"""
API request and response models for the NegoceHub REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
catalog/models.py, which own the internal domain representation. Route
handlers map between the two.

Field constraints here are the validation step of register/login: a body
that fails them never reaches the gateway and is answered with a 400 and
the list of field errors.
"""

from decimal import Decimal
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_validator, model_validator

from auth.models import Identity
from catalog.models import Product

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    errors: Optional[list[dict]] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


def _strip(value):
    return value.strip() if isinstance(value, str) else value


class RegisterRequest(BaseModel):
    """Request body for POST /api/auth/register.

    name and email are trimmed; password is taken byte for byte.
    """

    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
    email: EmailStr
    # 6-char minimum matches the mobile client; 72 bytes is bcrypt's ceiling.
    password: str = Field(min_length=6, max_length=72)

    @field_validator("email", mode="before")
    @classmethod
    def trim_email(cls, value):
        return _strip(value)


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login."""

    email: EmailStr
    password: str = Field(min_length=1, max_length=72)

    @field_validator("email", mode="before")
    @classmethod
    def trim_email(cls, value):
        return _strip(value)


class TokenResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class ProfileResponse(BaseModel):
    """Public view of an identity -- never includes the password hash."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    email: str
    is_seller: bool = Field(alias="isSeller")

    @classmethod
    def from_identity(cls, identity: Identity) -> "ProfileResponse":
        return cls(id=identity.id, name=identity.name, email=identity.email, is_seller=identity.is_seller)


class ProfileUpdate(BaseModel):
    """Request body for PUT /api/users/me. Omitted fields are left unchanged."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


class ProductCreate(BaseModel):
    """Request body for POST /api/products."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    description: str = Field(default="", max_length=5000)
    price: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    stock: int = Field(ge=0)
    image_url: Optional[str] = Field(default=None, max_length=2048)


class ProductUpdate(BaseModel):
    """Request body for PUT /api/products/{id}.

    Omitted fields are left unchanged. owner_id is not a field: ownership
    never changes after creation.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    stock: Optional[int] = Field(default=None, ge=0)
    image_url: Optional[str] = Field(default=None, max_length=2048)

    @model_validator(mode="after")
    def reject_explicit_nulls(self) -> "ProductUpdate":
        """Non-nullable columns may be omitted but not set to null."""
        for field in ("name", "description", "price", "stock"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class ProductResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    owner_id: str
    name: str
    description: str
    price: Decimal
    stock: int
    image_url: Optional[str]
    created_at: str
    updated_at: Optional[str]

    @classmethod
    def from_product(cls, product: Product) -> "ProductResponse":
        return cls(
            id=product.id,
            owner_id=product.owner_id,
            name=product.name,
            description=product.description,
            price=product.price,
            stock=product.stock,
            image_url=product.image_url,
            created_at=product.created_at,
            updated_at=product.updated_at,
        )
