"""Request and response bodies for the auth routes."""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from .models import AccountSummary


class RegisterRequest(BaseModel):
    """Local account registration."""

    email: EmailStr = Field(..., description="Login email")
    password: str = Field(..., min_length=6, description="Plaintext password")
    full_name: str = Field(..., min_length=2, description="Display name")

    model_config = {"json_schema_extra": {
        "example": {
            "email": "alice@example.com",
            "password": "hunter22",
            "full_name": "Alice Doe"
        }
    }}


class LoginRequest(BaseModel):
    """Email/password login."""

    email: str = Field(..., description="Login email")
    password: str = Field(..., description="Plaintext password")


class AccountSummaryResponse(BaseModel):
    """Public account fields."""

    account_id: UUID
    email: str
    full_name: str
    avatar_url: Optional[str] = None
    linked_provider: Optional[str] = None

    @classmethod
    def from_summary(cls, summary: AccountSummary) -> "AccountSummaryResponse":
        return cls(
            account_id=summary.account_id,
            email=summary.email,
            full_name=summary.full_name,
            avatar_url=summary.avatar_url,
            linked_provider=summary.linked_provider,
        )


class RegisterResponse(BaseModel):
    """Created account and its first session token."""

    account_id: UUID
    token: str


class LoginResponse(BaseModel):
    """Session token plus the account it was issued for."""

    token: str
    account: AccountSummaryResponse


class ErrorResponse(BaseModel):
    """Error body returned by the auth routes."""

    error: str = Field(..., description="Human-readable error message")
