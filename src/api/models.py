"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
The request model only enforces shape (three string fields, nothing else);
content rules live in the domain validator so that every input failure is
reported with its specific kind.
"""

from pydantic import BaseModel, ConfigDict, Field

from src.domain.models import CreatedAccount, RegistrationRequest


class RegisterRequest(BaseModel):
    """Request model for user registration."""

    model_config = ConfigDict(extra="forbid", strict=True)

    handle: str = Field(..., description="Requested handle, with or without the domain suffix")
    email: str = Field(..., description="Account email address")
    password: str = Field(..., description="Account password")

    def to_domain(self) -> RegistrationRequest:
        return RegistrationRequest(handle=self.handle, email=self.email, password=self.password)


class RegisterResponse(BaseModel):
    """
    Response model for successful registration.

    ``handle``, ``did``, ``accessJwt`` and ``refreshJwt`` are guaranteed;
    ``email`` is returned as a convenience.
    """

    model_config = ConfigDict(populate_by_name=True)

    handle: str
    did: str
    access_jwt: str = Field(..., alias="accessJwt")
    refresh_jwt: str = Field(..., alias="refreshJwt")
    email: str | None = None

    @classmethod
    def from_account(cls, account: CreatedAccount) -> "RegisterResponse":
        return cls(
            handle=account.handle,
            did=account.identity,
            access_jwt=account.access_token,
            refresh_jwt=account.refresh_token,
            email=account.email,
        )


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
    kind: str
