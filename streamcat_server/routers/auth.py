# Copyright (C) 2024 StreamCat Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Account API routes: register, login and password recovery."""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from streamcat_server.auth import create_access_token, get_current_user_id
from streamcat_server.database import get_db
from streamcat_server.models import User
from streamcat_server.rate_limit import rate_limit_dep
from streamcat_server.api.schemas import (
    AccountResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    RequestCodeRequest,
    ResetPasswordRequest,
    ResetPasswordResponse,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from streamcat_server.services.accounts import AccountService, CredentialStore
from streamcat_server.services.codes import CodeLedger

router = APIRouter(tags=["auth"], dependencies=[Depends(rate_limit_dep)])


async def get_account_service(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AccountService:
    """Build the account service for this request from the app's collaborators."""
    state = request.app.state
    return AccountService(
        store=CredentialStore(db),
        ledger=CodeLedger(db, clock=state.clock),
        sender=state.sender,
        code_ttl_seconds=state.settings.reset_code_ttl_seconds,
        reveal_unknown_email=state.settings.reveal_unknown_email,
    )


@router.post("/register", response_model=RegisterResponse, response_model_exclude_none=True)
async def register(
    data: RegisterRequest,
    service: AccountService = Depends(get_account_service),
) -> RegisterResponse:
    """Create a new account."""
    result = await service.register(data.nombre, data.usuario, data.contrasena, data.correo)
    if not result.success:
        return RegisterResponse(success=False, error=result.message, message=result.message)
    user = AccountResponse.model_validate(result.account)
    return RegisterResponse(
        success=True,
        id=user.id,
        usuario=user.usuario,
        user=user,
        message=result.message,
    )


@router.post("/login", response_model=LoginResponse, response_model_exclude_none=True)
async def login(
    data: LoginRequest,
    service: AccountService = Depends(get_account_service),
) -> LoginResponse:
    """Authenticate. Wrong username and wrong password give the same answer."""
    result = await service.login(data.usuario, data.contrasena)
    if not result.success:
        return LoginResponse(success=False, message=result.message)
    token = create_access_token({"sub": str(result.account.id)})
    return LoginResponse(
        success=True,
        message=result.message,
        user=AccountResponse.model_validate(result.account),
        token=token,
    )


@router.post("/recover-password", response_model=MessageResponse)
async def request_code(
    data: RequestCodeRequest,
    service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    """Email a recovery code to the account's address."""
    result = await service.request_password_reset(data.correo)
    return MessageResponse(success=result.success, message=result.message)


@router.post("/verify-code", response_model=VerifyCodeResponse)
async def verify_code_only(
    data: VerifyCodeRequest,
    service: AccountService = Depends(get_account_service),
) -> VerifyCodeResponse:
    """Check a recovery code without spending it."""
    valid = await service.verify_reset_code(data.correo, data.codigo)
    return VerifyCodeResponse(success=True, valido=valid)


@router.post("/reset-password", response_model=ResetPasswordResponse, response_model_exclude_none=True)
async def verify_code_and_reset_password(
    data: ResetPasswordRequest,
    service: AccountService = Depends(get_account_service),
) -> ResetPasswordResponse:
    """Spend a recovery code and set a new password."""
    result = await service.complete_password_reset(data.correo, data.codigo, data.nueva_contrasena)
    if not result.success:
        return ResetPasswordResponse(success=False, message=result.message)
    return ResetPasswordResponse(
        success=True,
        message=result.message,
        user=AccountResponse.model_validate(result.account),
    )


@router.get("/me", response_model=AccountResponse)
async def get_me(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> AccountResponse:
    """Get current account profile."""
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Usuario no encontrado")
    return AccountResponse.model_validate(user)
