"""
NGO Portal - Authentication Routes

API endpoints for authentication:
- POST /auth/sign-in                  - Authenticate and open a session
- POST /auth/refresh                  - Rotate the token pair
- POST /auth/sign-out                 - Delete the current session
- GET  /auth/me                       - Current user
- GET  /auth/sessions                 - Caller's open sessions
- POST /auth/password-reset/request   - Email a reset link
- POST /auth/password-reset/confirm   - Set a new password
- POST /auth/admins                   - Create admin (superadmin)
- POST /auth/superadmin               - Bootstrap a superadmin
- POST /auth/temporary-admin/grant    - Time-boxed admin (superadmin)
- POST /auth/temporary-admin/revoke   - Remove time-boxed admin (superadmin)

Bodies are result envelopes; failures carry `error` and `error_code`.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlmodel import Session as DBSession

from ngo_portal.auth import service as auth_service
from ngo_portal.auth.dependencies import get_bearer_token, get_db, to_response
from ngo_portal.auth.schemas import (
    CreateAdminRequest,
    CreateSuperAdminRequest,
    CurrentUserResult,
    OperationResult,
    PasswordResetConfirm,
    PasswordResetRequest,
    RefreshRequest,
    RefreshResult,
    SessionListResult,
    SignInRequest,
    SignInResult,
    TemporaryAdminGrantRequest,
    TemporaryAdminRevokeRequest,
    UserResult,
)


router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/sign-in", response_model=SignInResult, summary="Authenticate and open a session")
async def sign_in(body: SignInRequest, db: DBSession = Depends(get_db)):
    result = await auth_service.sign_in(db, body.email, body.password, body.device_info)
    return to_response(result)


@router.post("/refresh", response_model=RefreshResult, summary="Rotate access and refresh tokens")
async def refresh(body: RefreshRequest, db: DBSession = Depends(get_db)):
    return to_response(await auth_service.refresh_tokens(db, body.refresh_token))


@router.post("/sign-out", response_model=OperationResult, summary="Delete the current session")
async def sign_out(
    db: DBSession = Depends(get_db),
    token: Optional[str] = Depends(get_bearer_token),
):
    return to_response(await auth_service.sign_out(db, token))


@router.get("/me", response_model=CurrentUserResult, summary="Get current user")
async def me(
    db: DBSession = Depends(get_db),
    token: Optional[str] = Depends(get_bearer_token),
):
    return to_response(await auth_service.get_current_user(db, token))


@router.get("/sessions", response_model=SessionListResult, summary="List open sessions")
async def sessions(
    db: DBSession = Depends(get_db),
    token: Optional[str] = Depends(get_bearer_token),
):
    return to_response(await auth_service.list_sessions(db, token))


@router.post("/password-reset/request", response_model=OperationResult, summary="Request a password reset")
async def request_password_reset(body: PasswordResetRequest, db: DBSession = Depends(get_db)):
    return to_response(await auth_service.request_password_reset(db, body.email))


@router.post("/password-reset/confirm", response_model=OperationResult, summary="Reset password with a token")
async def confirm_password_reset(body: PasswordResetConfirm, db: DBSession = Depends(get_db)):
    return to_response(await auth_service.reset_password(db, body.token, body.new_password))


@router.post(
    "/admins",
    response_model=UserResult,
    status_code=status.HTTP_201_CREATED,
    summary="Create admin user (superadmin only)",
)
async def create_admin(
    body: CreateAdminRequest,
    db: DBSession = Depends(get_db),
    token: Optional[str] = Depends(get_bearer_token),
):
    result = await auth_service.create_admin_user(
        db,
        token,
        email=body.email,
        name=body.name,
        password=body.password,
        phone=body.phone,
        position=body.position,
    )
    return to_response(result, status.HTTP_201_CREATED)


@router.post(
    "/superadmin",
    response_model=UserResult,
    status_code=status.HTTP_201_CREATED,
    summary="Create superadmin with the bootstrap key",
)
async def create_super_admin(
    body: CreateSuperAdminRequest,
    db: DBSession = Depends(get_db),
    token: Optional[str] = Depends(get_bearer_token),
):
    result = await auth_service.create_super_admin(
        db,
        body.bootstrap_key,
        email=body.email,
        name=body.name,
        password=body.password,
        token=token,
    )
    return to_response(result, status.HTTP_201_CREATED)


@router.post("/temporary-admin/grant", response_model=UserResult, summary="Grant temporary admin access")
async def grant_temporary_admin(
    body: TemporaryAdminGrantRequest,
    db: DBSession = Depends(get_db),
    token: Optional[str] = Depends(get_bearer_token),
):
    result = await auth_service.grant_temporary_admin_access(db, token, body.user_id, body.duration_hours)
    return to_response(result)


@router.post("/temporary-admin/revoke", response_model=UserResult, summary="Revoke temporary admin access")
async def revoke_temporary_admin(
    body: TemporaryAdminRevokeRequest,
    db: DBSession = Depends(get_db),
    token: Optional[str] = Depends(get_bearer_token),
):
    return to_response(await auth_service.revoke_temporary_admin_access(db, token, body.user_id))
