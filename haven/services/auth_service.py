"""
Auth service — sessions, login/logout, email verification, password
reset and social login.

Every issued bearer token is backed by a ``Session`` row; a token is
only honoured while its row is active and unexpired, so logging out or
resetting a password revokes tokens immediately.
"""
import logging
import secrets
from datetime import datetime, timedelta, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from haven import mailer, social
from haven.config import settings
from haven.errors import BadRequest, NotFound, Unauthorized
from haven.models import ResetPassword, Session, User
from haven.schemas import LoginRequest
from haven.security import (
    SESSION_TOKEN,
    VERIFY_EMAIL_TOKEN,
    create_token,
    decode_token,
    device_platform,
    hash_password,
    session_ttl,
    verify_password,
)
from haven.services import user_service

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

async def create_session(
    db: AsyncSession,
    user: User,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> str:
    """Issue a session token for *user* on the calling device."""
    platform = device_platform(user_agent)
    ttl = session_ttl(platform)
    token = create_token(user.id, SESSION_TOKEN, ttl)
    db.add(
        Session(
            user_id=user.id,
            token=token,
            active=True,
            device_platform=platform,
            user_agent=user_agent[:500] if user_agent else None,
            ip_address=ip_address,
            expires_at=datetime.now(timezone.utc) + ttl,
        )
    )
    await db.flush()
    return token


async def authenticate(db: AsyncSession, token: str) -> tuple[User, Session]:
    """
    Resolve a bearer token to its user and session.

    Raises ``Unauthorized`` when the JWT is invalid or the backing
    session is missing, revoked or expired.
    """
    decode_token(token, SESSION_TOKEN)
    q = (
        select(Session)
        .where(
            Session.token == token,
            Session.active.is_(True),
            Session.expires_at > datetime.now(timezone.utc),
        )
        .options(joinedload(Session.user))
    )
    session = (await db.execute(q)).unique().scalar_one_or_none()
    if session is None or session.user is None:
        raise Unauthorized("session is invalid or has expired")
    return session.user, session


async def login(
    db: AsyncSession,
    data: LoginRequest,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[User, str]:
    user = await user_service.find_user(db, data.user)
    if user is None or not verify_password(data.password, user.password):
        logger.warning("Failed login for %r from %s", data.user, ip_address)
        raise Unauthorized("invalid credentials")
    token = await create_session(db, user, user_agent, ip_address)
    return user, token


async def logout(db: AsyncSession, session: Session) -> None:
    session.active = False
    await db.flush()


async def revoke_sessions(db: AsyncSession, user_id: int) -> None:
    await db.execute(
        update(Session).where(Session.user_id == user_id).values(active=False)
    )


# ---------------------------------------------------------------------------
# Email verification
# ---------------------------------------------------------------------------

async def send_verification(user: User) -> None:
    token = create_token(
        user.id, VERIFY_EMAIL_TOKEN, timedelta(hours=settings.VERIFY_TOKEN_TTL_HOURS)
    )
    await mailer.send_verification_email(user.first_name, user.email, token)


async def verify_email(db: AsyncSession, token: str) -> str:
    """Mark the token's user as verified; returns the response message."""
    payload = decode_token(token, VERIFY_EMAIL_TOKEN)
    user = await db.get(User, int(payload["sub"]))
    if user is None:
        raise NotFound("user not found")
    if user.verified:
        return "email already verified"
    user.verified = True
    await db.flush()
    return "email verification successful"


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------

async def request_password_reset(db: AsyncSession, email: str) -> None:
    """
    Issue a one-time reset token for *email* and mail it.

    Earlier unused tokens for the same user are invalidated so only the
    newest link works.
    """
    user = await user_service.get_by_email(db, email)
    if user is None:
        raise NotFound("user not found")

    await db.execute(
        update(ResetPassword)
        .where(ResetPassword.user_id == user.id, ResetPassword.used.is_(False))
        .values(used=True)
    )
    token = secrets.token_urlsafe(32)
    db.add(
        ResetPassword(
            user_id=user.id,
            token=token,
            expires_at=datetime.now(timezone.utc)
            + timedelta(minutes=settings.RESET_TOKEN_TTL_MINUTES),
        )
    )
    await db.flush()
    logger.info("Password reset issued for user id=%s", user.id)
    await mailer.send_reset_password_email(user.first_name, user.email, token)


async def reset_password(db: AsyncSession, token: str, password: str) -> None:
    q = select(ResetPassword).where(
        ResetPassword.token == token,
        ResetPassword.used.is_(False),
        ResetPassword.expires_at > datetime.now(timezone.utc),
    )
    reset = (await db.execute(q)).scalar_one_or_none()
    if reset is None:
        raise BadRequest("invalid or expired reset token")

    user = await db.get(User, reset.user_id)
    if user is None:
        raise BadRequest("invalid or expired reset token")

    user.password = hash_password(password)
    reset.used = True
    await revoke_sessions(db, user.id)
    await db.flush()
    logger.info("Password reset completed for user id=%s", user.id)


# ---------------------------------------------------------------------------
# Social login
# ---------------------------------------------------------------------------

async def social_login(
    db: AsyncSession,
    provider: str,
    access_token: str,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[User, str, bool]:
    """
    Sign in with a provider access token.

    Returns ``(user, token, created)``.  An existing local account with
    the same email is linked to the provider account rather than
    duplicated.
    """
    profile = await social.fetch_profile(provider, access_token)
    created = False

    q = select(User).where(
        User.social_provider == profile.provider, User.social_id == profile.social_id
    )
    user = (await db.execute(q)).scalar_one_or_none()

    if user is None:
        user = await user_service.get_by_email(db, profile.email)
        if user is not None:
            if user.social_provider is None:
                user.social_provider = profile.provider
                user.social_id = profile.social_id
                logger.info("Linked %s account to user id=%s", provider, user.id)
            # The provider has vouched for this address.
            user.verified = True

    if user is None:
        local_part = profile.email.split("@", 1)[0]
        user = User(
            first_name=profile.first_name or local_part,
            last_name=profile.last_name or provider,
            user_name=await user_service.unique_user_name(db, local_part),
            email=profile.email.strip().lower(),
            avatar_url=profile.avatar_url,
            verified=True,
            social_provider=profile.provider,
            social_id=profile.social_id,
        )
        db.add(user)
        await db.flush()
        created = True
        logger.info("Created user id=%s from %s login", user.id, provider)

    token = await create_session(db, user, user_agent, ip_address)
    return user, token, created
