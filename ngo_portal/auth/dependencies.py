"""
NGO Portal - Route Dependencies

FastAPI dependencies shared by every router:
- get_db: per-request database session from app state
- get_bearer_token: raw token from the Authorization header (may be None)
- to_response: result envelope -> JSON response with a matching status code

Usage:
    @router.post("/hubs")
    async def create(body: HubCreate, db = Depends(get_db), token = Depends(get_bearer_token)):
        return to_response(await hub_service.create_hub(db, token, body), status.HTTP_201_CREATED)
"""

from typing import Generator, Optional

from fastapi import Depends, Request, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session as DBSession

from ngo_portal.auth.errors import AuthErrorCode
from ngo_portal.auth.schemas import OperationResult


# HTTP Bearer scheme for token extraction
security = HTTPBearer(auto_error=False)


ERROR_STATUS = {
    AuthErrorCode.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.ACCOUNT_LOCKED: status.HTTP_423_LOCKED,
    AuthErrorCode.ACCOUNT_INACTIVE: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.ACCOUNT_MISCONFIGURED: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.INVALID_REFRESH_TOKEN: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.INSUFFICIENT_PERMISSIONS: status.HTTP_403_FORBIDDEN,
    AuthErrorCode.EMAIL_EXISTS: status.HTTP_409_CONFLICT,
    AuthErrorCode.INVALID_RESET_TOKEN: status.HTTP_400_BAD_REQUEST,
    AuthErrorCode.WEAK_PASSWORD: status.HTTP_422_UNPROCESSABLE_ENTITY,
    AuthErrorCode.INVALID_BOOTSTRAP_KEY: status.HTTP_403_FORBIDDEN,
    AuthErrorCode.INVALID_INPUT: status.HTTP_422_UNPROCESSABLE_ENTITY,
    AuthErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    AuthErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    AuthErrorCode.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_db(request: Request) -> Generator[DBSession, None, None]:
    """Database session from app state, closed after the request."""
    db = request.app.state.db_session_factory()
    try:
        yield db
    finally:
        db.close()


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    """Bearer token, or None. Operations decide what a missing token means."""
    return credentials.credentials if credentials else None


def to_response(result: OperationResult, success_status: int = status.HTTP_200_OK) -> JSONResponse:
    """Serialize an envelope; failures get the status code for their error code."""
    if result.success:
        status_code = success_status
    else:
        status_code = ERROR_STATUS.get(result.error_code, status.HTTP_400_BAD_REQUEST)

    headers = None
    if status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}

    return JSONResponse(
        status_code=status_code,
        content=result.model_dump(mode="json", exclude_none=True),
        headers=headers,
    )
