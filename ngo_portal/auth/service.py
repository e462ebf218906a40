"""
NGO Portal - Authentication Operations

Public auth operations, callable from routes or other application code:
- sign_in / sign_out / refresh_tokens / get_current_user / list_sessions
- request_password_reset / reset_password
- create_admin_user / create_super_admin
- grant_temporary_admin_access / revoke_temporary_admin_access
- cleanup_expired_auth_data (periodic)

Every operation takes an explicit database session and, where needed, the
caller's token. Expected failures come back as result envelopes; only
configuration faults raise.
"""

import hmac
import logging
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session as DBSession, select

from ngo_portal.auth import lockout
from ngo_portal.auth import password_reset
from ngo_portal.auth import sessions as session_service
from ngo_portal.auth.errors import (
    AuthError,
    AuthErrorCode,
    MalformedPasswordHashError,
    result_boundary,
)
from ngo_portal.auth.models import GlobalRole, User
from ngo_portal.auth.password import (
    generate_temporary_password,
    make_password_hash,
    validate_password_strength,
    verify_stored_password,
)
from ngo_portal.auth.permissions import resolve_permissions
from ngo_portal.auth.schemas import (
    CleanupReport,
    CurrentUserResult,
    OperationResult,
    RefreshResult,
    SessionInfo,
    SessionListResult,
    SignInResult,
    TokenPair,
    UserResponse,
    UserResult,
    normalize_email,
)
from ngo_portal.config import get_settings
from ngo_portal.gateway.policy import ensure_allowed
from ngo_portal.notifications import EmailNotifier, get_notifier


logger = logging.getLogger(__name__)

PASSWORD_RESET_MESSAGE = "If an account exists for this email, a password reset link has been sent."


async def get_user_by_email(db: DBSession, email: str) -> Optional[User]:
    statement = select(User).where(User.email == email.strip().lower())
    return db.exec(statement).first()


def _clean_email(email: str) -> str:
    try:
        return normalize_email(email)
    except ValueError:
        raise AuthError(AuthErrorCode.INVALID_INPUT, "Invalid email format")


def _require_strong_password(password: str) -> None:
    problem = validate_password_strength(password)
    if problem:
        raise AuthError(AuthErrorCode.WEAK_PASSWORD, problem)


# Sign in / out

@result_boundary(SignInResult, "Sign in failed. Please try again.")
async def sign_in(
    db: DBSession,
    email: str,
    password: str,
    device_info: Optional[str] = None,
) -> SignInResult:
    """
    Authenticate with email and password and open a session.

    Checks run in a fixed order, which decides the message a caller sees:
    1. Lockout (minutes remaining)
    2. Deactivated account
    3. Password (failure counted; fifth failure locks)
    4. Counter reset, token issuance, session insert

    Unknown email and wrong password share one message.
    """
    settings = get_settings()
    user = await get_user_by_email(db, email)
    if user is None:
        logger.info("Sign-in failed: reason=user_not_found")
        raise AuthError(AuthErrorCode.INVALID_CREDENTIALS)

    now = datetime.utcnow()
    if lockout.is_locked(user, now):
        minutes = lockout.minutes_until_unlock(user, now)
        logger.info("Sign-in refused: reason=locked user=%s", user.id)
        raise AuthError(
            AuthErrorCode.ACCOUNT_LOCKED,
            f"Account is locked due to too many failed attempts. Try again in {minutes} minute(s).",
        )
    lockout.release_expired_lock(user, now)

    if not user.is_active:
        logger.info("Sign-in refused: reason=inactive user=%s", user.id)
        raise AuthError(AuthErrorCode.ACCOUNT_INACTIVE)

    try:
        password_ok = verify_stored_password(password, user.password_hash)
    except MalformedPasswordHashError:
        logger.error("User %s has a malformed password hash", user.id)
        raise AuthError(AuthErrorCode.ACCOUNT_MISCONFIGURED)

    if not password_ok:
        locked = lockout.register_failed_attempt(
            user,
            now,
            settings.MAX_FAILED_LOGIN_ATTEMPTS,
            settings.LOCKOUT_MINUTES,
        )
        db.add(user)
        db.commit()
        if locked:
            logger.warning(
                "Account %s locked after %s failed attempts",
                user.id, user.failed_login_attempts,
            )
            raise AuthError(
                AuthErrorCode.ACCOUNT_LOCKED,
                f"Too many failed attempts. Account locked for {settings.LOCKOUT_MINUTES} minutes.",
            )
        logger.info(
            "Sign-in failed: reason=invalid_password user=%s attempts=%s",
            user.id, user.failed_login_attempts,
        )
        raise AuthError(AuthErrorCode.INVALID_CREDENTIALS)

    lockout.register_successful_login(user, now)
    db.add(user)
    session = await session_service.create_session(db, user.id, device_info=device_info)
    db.refresh(user)

    logger.info("Sign-in succeeded user=%s session=%s", user.id, session.id)
    return SignInResult(
        success=True,
        user=UserResponse.model_validate(user),
        tokens=TokenPair.model_validate(session),
    )


@result_boundary(CurrentUserResult)
async def get_current_user(db: DBSession, token: Optional[str]) -> CurrentUserResult:
    """Return the user behind an access token whose session is still live."""
    if not token:
        raise AuthError(AuthErrorCode.UNAUTHENTICATED)
    user, _ = await session_service.authenticate_access_token(db, token)
    return CurrentUserResult(success=True, user=UserResponse.model_validate(user))


@result_boundary(RefreshResult, "Token refresh failed. Please sign in again.")
async def refresh_tokens(db: DBSession, refresh_token: str) -> RefreshResult:
    """Rotate a session's token pair; the presented refresh token stops working."""
    session = await session_service.rotate_session(db, refresh_token)
    logger.info("Session %s rotated", session.id)
    return RefreshResult(success=True, tokens=TokenPair.model_validate(session))


@result_boundary(OperationResult, "Sign out failed.")
async def sign_out(db: DBSession, token: Optional[str]) -> OperationResult:
    """Delete the session for this access token. Idempotent."""
    if token:
        deleted = await session_service.delete_session_by_access_token(db, token)
        if deleted:
            logger.info("Session signed out")
    return OperationResult(success=True, message="Signed out")


@result_boundary(SessionListResult)
async def list_sessions(db: DBSession, token: Optional[str]) -> SessionListResult:
    """List the caller's open sessions, flagging the current one."""
    if not token:
        raise AuthError(AuthErrorCode.UNAUTHENTICATED)
    user, current = await session_service.authenticate_access_token(db, token)
    rows = await session_service.list_user_sessions(db, user.id)
    infos = []
    for row in rows:
        info = SessionInfo.model_validate(row)
        info.is_current = row.id == current.id
        infos.append(info)
    return SessionListResult(success=True, sessions=infos)


# Password reset

@result_boundary(OperationResult)
async def request_password_reset(
    db: DBSession,
    email: str,
    notifier: Optional[EmailNotifier] = None,
) -> OperationResult:
    """
    Email a reset link if the account exists.

    The response is identical whether or not the email is known.
    """
    notifier = notifier or get_notifier()
    try:
        address = normalize_email(email)
    except ValueError:
        return OperationResult(success=True, message=PASSWORD_RESET_MESSAGE)

    user = await get_user_by_email(db, address)
    if user is not None and user.is_active:
        reset_token = await password_reset.issue_reset_token(db, user.id)
        notifier.send_password_reset(user.email, user.name, reset_token.token, reset_token.expires_at)
        logger.info("Password reset issued user=%s", user.id)
    else:
        logger.info("Password reset requested for unknown or inactive account")

    return OperationResult(success=True, message=PASSWORD_RESET_MESSAGE)


@result_boundary(OperationResult, "Password reset failed. Please try again.")
async def reset_password(db: DBSession, token: str, new_password: str) -> OperationResult:
    """
    Set a new password using a reset token.

    Clears lockout state, consumes the token, and signs the user out everywhere.
    """
    _require_strong_password(new_password)

    reset_token = await password_reset.find_usable_reset_token(db, token)
    if reset_token is None:
        raise AuthError(AuthErrorCode.INVALID_RESET_TOKEN)

    user = db.get(User, reset_token.user_id)
    if user is None:
        raise AuthError(AuthErrorCode.INVALID_RESET_TOKEN)

    now = datetime.utcnow()
    user.password_hash = make_password_hash(new_password)
    lockout.clear_lockout(user)
    reset_token.used_at = now
    db.add(user)
    db.add(reset_token)
    db.commit()

    revoked = await session_service.revoke_all_user_sessions(db, user.id)
    logger.info("Password reset completed user=%s sessions_revoked=%s", user.id, revoked)

    return OperationResult(
        success=True,
        message="Password has been reset. Please sign in with your new password.",
    )


# Privileged account management

async def insert_user(
    db: DBSession,
    *,
    email: str,
    name: str,
    password: str,
    role: GlobalRole,
    phone: Optional[str] = None,
    position: Optional[str] = None,
    email_verified: bool = True,
) -> User:
    """
    Add a user and commit it together with any pending changes.

    Raises:
        AuthError(EMAIL_EXISTS): the address is already registered
    """
    if await get_user_by_email(db, email):
        raise AuthError(AuthErrorCode.EMAIL_EXISTS)

    user = User(
        email=email,
        name=name.strip(),
        password_hash=make_password_hash(password),
        global_role=role,
        phone=phone,
        position=position,
        is_active=True,
        email_verified=email_verified,
        joined_at=datetime.utcnow(),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise AuthError(AuthErrorCode.EMAIL_EXISTS)
    db.refresh(user)
    return user


@result_boundary(UserResult, "Failed to create admin user")
async def create_admin_user(
    db: DBSession,
    token: Optional[str],
    email: str,
    name: str,
    password: Optional[str] = None,
    phone: Optional[str] = None,
    position: Optional[str] = None,
    notifier: Optional[EmailNotifier] = None,
) -> UserResult:
    """
    Create an admin account (superadmin only).

    A temporary password is generated and emailed when none is given.
    """
    permissions = await resolve_permissions(db, token)
    ensure_allowed(permissions, "users.create_admin")

    address = _clean_email(email)
    temporary_password = None
    if password is None:
        temporary_password = password = generate_temporary_password()
    else:
        _require_strong_password(password)

    user = await insert_user(
        db,
        email=address,
        name=name,
        password=password,
        role=GlobalRole.ADMIN,
        phone=phone,
        position=position,
    )
    logger.info("Admin user %s created by %s", user.id, permissions.user.id)

    (notifier or get_notifier()).send_welcome(user.email, user.name, temporary_password)
    return UserResult(success=True, user=UserResponse.model_validate(user), message="Admin user created")


@result_boundary(UserResult, "Failed to create superadmin")
async def create_super_admin(
    db: DBSession,
    bootstrap_key: str,
    email: str,
    name: str,
    password: str,
    token: Optional[str] = None,
    notifier: Optional[EmailNotifier] = None,
) -> UserResult:
    """
    Create a superadmin using the deployment's bootstrap key.

    The key alone suffices only while no superadmin exists; afterwards the
    caller must also be a superadmin.
    """
    configured_key = get_settings().SUPERADMIN_BOOTSTRAP_KEY
    if not configured_key:
        logger.warning("Superadmin bootstrap attempted but no key is configured")
        raise AuthError(AuthErrorCode.INVALID_BOOTSTRAP_KEY, "Superadmin bootstrap is disabled")
    if not hmac.compare_digest(bootstrap_key.encode("utf-8"), configured_key.encode("utf-8")):
        logger.warning("Superadmin bootstrap attempted with a wrong key")
        raise AuthError(AuthErrorCode.INVALID_BOOTSTRAP_KEY)

    existing = db.exec(select(User).where(User.global_role == GlobalRole.SUPERADMIN)).first()
    if existing is not None:
        permissions = await resolve_permissions(db, token)
        ensure_allowed(permissions, "users.create_super_admin")

    address = _clean_email(email)
    _require_strong_password(password)
    user = await insert_user(
        db,
        email=address,
        name=name,
        password=password,
        role=GlobalRole.SUPERADMIN,
    )
    logger.info("Superadmin %s created", user.id)

    (notifier or get_notifier()).send_welcome(user.email, user.name)
    return UserResult(success=True, user=UserResponse.model_validate(user), message="Superadmin created")


async def _get_target_user(db: DBSession, user_id: UUID) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise AuthError(AuthErrorCode.NOT_FOUND, "User not found")
    return user


@result_boundary(UserResult, "Failed to grant temporary admin access")
async def grant_temporary_admin_access(
    db: DBSession,
    token: Optional[str],
    user_id: UUID,
    duration_hours: int,
    notifier: Optional[EmailNotifier] = None,
) -> UserResult:
    """Give a user admin capability until now + duration_hours (superadmin only)."""
    permissions = await resolve_permissions(db, token)
    ensure_allowed(permissions, "users.grant_temporary_admin")

    if duration_hours <= 0:
        raise AuthError(AuthErrorCode.INVALID_INPUT, "Duration must be positive")

    user = await _get_target_user(db, user_id)
    if not user.is_active:
        raise AuthError(AuthErrorCode.CONFLICT, "User account is inactive")

    user.temporary_admin_until = datetime.utcnow() + timedelta(hours=duration_hours)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(
        "Temporary admin granted user=%s until=%s by=%s",
        user.id, user.temporary_admin_until, permissions.user.id,
    )

    (notifier or get_notifier()).send_temporary_admin_granted(user.email, user.name, user.temporary_admin_until)
    return UserResult(success=True, user=UserResponse.model_validate(user), message="Temporary admin access granted")


@result_boundary(UserResult, "Failed to revoke temporary admin access")
async def revoke_temporary_admin_access(
    db: DBSession,
    token: Optional[str],
    user_id: UUID,
    notifier: Optional[EmailNotifier] = None,
) -> UserResult:
    """Remove a temporary admin grant (superadmin only)."""
    permissions = await resolve_permissions(db, token)
    ensure_allowed(permissions, "users.revoke_temporary_admin")

    user = await _get_target_user(db, user_id)
    user.temporary_admin_until = None
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Temporary admin revoked user=%s by=%s", user.id, permissions.user.id)

    (notifier or get_notifier()).send_temporary_admin_revoked(user.email, user.name)
    return UserResult(success=True, user=UserResponse.model_validate(user), message="Temporary admin access revoked")


# Periodic cleanup

async def cleanup_expired_auth_data(db: DBSession, now: Optional[datetime] = None) -> CleanupReport:
    """
    Delete expired sessions, expired reset tokens, and stale used reset tokens.

    Only removes rows that are already unusable, so it can run alongside
    live traffic. Re-running on a clean store deletes nothing.
    """
    now = now or datetime.utcnow()
    report = CleanupReport(
        sessions_deleted=await session_service.cleanup_expired_sessions(db, now),
        reset_tokens_deleted=await password_reset.cleanup_reset_tokens(db, now),
    )
    logger.info(
        "Auth cleanup: sessions_deleted=%s reset_tokens_deleted=%s",
        report.sessions_deleted, report.reset_tokens_deleted,
    )
    return report
