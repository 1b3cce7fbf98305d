"""
User routes: registration, login, dashboard and password recovery.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from expense_ledger.api.dependencies import (
    get_components,
    get_correlation_id,
    get_current_user_id,
)
from expense_ledger.api.schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
)
from expense_ledger.orchestrator import AppComponents


router = APIRouter(prefix="/api/user", tags=["user"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    components: AppComponents = Depends(get_components),
    correlation_id: UUID = Depends(get_correlation_id),
):
    user = await components.credentials.register(
        body.name,
        body.email,
        body.password,
        body.balance,
        correlation_id=correlation_id,
    )
    return {
        "message": "User registered successfully",
        "user": user.model_dump(mode="json"),
    }


@router.post("/login")
async def login(
    body: LoginRequest,
    components: AppComponents = Depends(get_components),
    correlation_id: UUID = Depends(get_correlation_id),
):
    result = await components.credentials.login(
        body.email,
        body.password,
        correlation_id=correlation_id,
    )
    return {"message": "Login successful", **result.model_dump(mode="json")}


@router.get("/dashboard")
async def dashboard(
    user_id: str = Depends(get_current_user_id),
    components: AppComponents = Depends(get_components),
):
    summary = await components.ledger.dashboard(user_id)
    return {"message": "User dashboard", "dashboard": summary.model_dump(mode="json")}


@router.post("/forgot-password")
async def forgot_password(
    body: ForgotPasswordRequest,
    components: AppComponents = Depends(get_components),
    correlation_id: UUID = Depends(get_correlation_id),
):
    await components.reset_flow.forgot_password(body.email, correlation_id=correlation_id)
    return {"message": "Reset code sent to your email"}


@router.post("/reset-password")
async def reset_password(
    body: ResetPasswordRequest,
    components: AppComponents = Depends(get_components),
    correlation_id: UUID = Depends(get_correlation_id),
):
    # Codes are digits, so clients sometimes send them as numbers
    code = body.reset_code
    if isinstance(code, int):
        code = str(code)

    await components.reset_flow.reset_password(
        body.email,
        code,
        body.new_password,
        correlation_id=correlation_id,
    )
    return {"message": "Password reset successfully"}
