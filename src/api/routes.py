"""
API routes - Verification code endpoints.

This module defines the HTTP endpoints:
- POST /api/send-verification-code - Issue and email a code
- POST /api/verify-code - Check a submitted code
- GET /api/health - Liveness probe
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from src.api.dependencies import get_registry
from src.api.models import (
    ErrorResponse,
    HealthResponse,
    SendCodeRequest,
    SendCodeResponse,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from src.config.settings import Settings, get_settings
from src.domain.exceptions import CodeRejected, CooldownError, InvalidEmail, NotifierError
from src.domain.verification import VerificationCodeRegistry

router = APIRouter(prefix="/api", tags=["verification"])

SERVICE_NAME = "email-verification-service"
DELIVERY_FAILED = "Failed to send the verification email, please check the address or try again later"
INTERNAL_ERROR = "Internal server error"


def error_response(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    """Build the {success: false, message} body shared by every failure."""
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message).model_dump(),
        headers=headers,
    )


def health_payload() -> HealthResponse:
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        service=SERVICE_NAME,
    )


@router.post(
    "/send-verification-code",
    response_model=SendCodeResponse,
    response_model_exclude_none=True,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid email address"},
        429: {"model": ErrorResponse, "description": "Code requested too recently"},
        500: {"model": ErrorResponse, "description": "Email delivery failed"},
    },
    summary="Send a verification code",
    description="Generate a 6-digit code for the email address and send it by email. "
    "The code is valid for 10 minutes; a new one can be requested after 60 seconds.",
)
async def send_verification_code(
    request_data: SendCodeRequest,
    registry: VerificationCodeRegistry = Depends(get_registry),
    settings: Settings = Depends(get_settings),
) -> SendCodeResponse | JSONResponse:
    """
    Issue a verification code and deliver it.

    - **email**: Address to verify

    In development mode the code is echoed back in the response.
    """
    try:
        issued = await run_in_threadpool(registry.issue, request_data.email)
    except InvalidEmail as e:
        return error_response(status.HTTP_400_BAD_REQUEST, str(e))
    except CooldownError as e:
        return error_response(
            status.HTTP_429_TOO_MANY_REQUESTS,
            str(e),
            headers={"Retry-After": str(e.retry_after)},
        )
    except NotifierError:
        # Transport detail is already logged by the notifier
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, DELIVERY_FAILED)

    return SendCodeResponse(
        message="Verification code sent to your email",
        expires_in_seconds=int(registry.code_ttl.total_seconds()),
        code=issued.code if settings.is_development else None,
    )


@router.post(
    "/verify-code",
    response_model=VerifyCodeResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Code missing, wrong, expired or exhausted"},
    },
    summary="Verify a code",
    description="Check the 6-digit code sent to the email address. "
    "A code can be used once and allows 5 wrong attempts.",
)
async def verify_code(
    request_data: VerifyCodeRequest,
    registry: VerificationCodeRegistry = Depends(get_registry),
) -> VerifyCodeResponse | JSONResponse:
    """
    Validate a submitted code, consuming it on success.

    - **email**: Address the code was sent to
    - **code**: Code from the email
    """
    try:
        await run_in_threadpool(registry.validate, request_data.email, request_data.code)
    except CodeRejected as e:
        return error_response(status.HTTP_400_BAD_REQUEST, str(e))

    return VerifyCodeResponse(message="Verification code accepted")


@router.get("/health", response_model=HealthResponse, summary="Liveness probe")
async def health_check() -> HealthResponse:
    """Report that the service is up. Does not touch the registry."""
    return health_payload()
