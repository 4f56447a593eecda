"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Email syntax is checked by the domain registry, not here, so that a
malformed address and a missing one both surface as a 400.
"""

from pydantic import BaseModel, Field


class SendCodeRequest(BaseModel):
    """Request model for issuing a verification code."""

    email: str = Field(..., description="Address to send the code to")


class SendCodeResponse(BaseModel):
    """Response model for a successfully issued code."""

    success: bool = True
    message: str
    expires_in_seconds: int
    code: str | None = Field(
        default=None,
        description="The issued code, only present in development mode",
    )


class VerifyCodeRequest(BaseModel):
    """Request model for checking a verification code."""

    email: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1, description="Code received by email")


class VerifyCodeResponse(BaseModel):
    """Response model for an accepted code."""

    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    success: bool = False
    message: str


class HealthResponse(BaseModel):
    """Liveness probe payload."""

    status: str
    timestamp: str
    service: str
