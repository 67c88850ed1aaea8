"""
User service — registration, lookup and serialisation for the User
aggregate.

Email and user-name uniqueness are checked up front so each clash gets
its own message; the unique constraints on the table stay as the last
line of defence and surface as ``IntegrityError``.
"""
import logging
import re
import secrets

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from haven.errors import Conflict, NotFound
from haven.models import Article, User
from haven.schemas import UserCreate
from haven.security import hash_password

logger = logging.getLogger(__name__)

_USER_NAME_STRIP_RE = re.compile(r"[^a-z0-9_.-]")


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def user_to_dict(user: User) -> dict:
    """Serialise a User for its owner (includes email and verification state)."""
    return {
        "id": user.id,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "user_name": user.user_name,
        "email": user.email,
        "bio": user.bio,
        "avatar_url": user.avatar_url,
        "verified": user.verified,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def author_to_dict(user: User | None) -> dict | None:
    """Public subset of a user embedded in article and comment payloads."""
    if user is None:
        return None
    return {
        "id": user.id,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "user_name": user.user_name,
        "avatar_url": user.avatar_url,
    }


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

async def get_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def get_by_user_name(db: AsyncSession, user_name: str) -> User | None:
    result = await db.execute(select(User).where(User.user_name == user_name))
    return result.scalar_one_or_none()


async def find_user(db: AsyncSession, identifier: str) -> User | None:
    """Resolve a login identifier that may be an email or a user name."""
    identifier = identifier.strip()
    if "@" in identifier:
        return await get_by_email(db, identifier)
    return await get_by_user_name(db, identifier)


async def unique_user_name(db: AsyncSession, seed: str) -> str:
    """Derive an unused user name from *seed* (e.g. an email local part)."""
    base = _USER_NAME_STRIP_RE.sub("", seed.lower())[:40] or "user"
    if len(base) < 2:
        base = f"{base}user"
    candidate = base
    while await get_by_user_name(db, candidate) is not None:
        candidate = f"{base}{secrets.randbelow(10_000):04d}"
    return candidate


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def create_user(db: AsyncSession, data: UserCreate) -> User:
    """
    Register a new user with a bcrypt-hashed password.

    Raises ``Conflict`` when the email or the user name is already taken.
    """
    if await get_by_email(db, data.email) is not None:
        raise Conflict("email has already been taken")
    if await get_by_user_name(db, data.user_name) is not None:
        raise Conflict("username has already been taken")

    user = User(
        first_name=data.first_name,
        last_name=data.last_name,
        user_name=data.user_name,
        email=data.email,
        password=hash_password(data.password),
        bio=data.bio,
        avatar_url=str(data.avatar_url) if data.avatar_url else None,
    )
    db.add(user)
    await db.flush()
    logger.info("Registered user id=%s user_name=%s", user.id, user.user_name)
    return user


async def get_profile(db: AsyncSession, user_name: str) -> dict:
    """Public profile for *user_name* with a count of published articles."""
    user = await get_by_user_name(db, user_name)
    if user is None:
        raise NotFound("user not found")

    published = (
        await db.execute(
            select(func.count())
            .select_from(Article)
            .where(
                Article.author_id == user.id,
                Article.is_archived.is_(False),
                Article.published_at.is_not(None),
            )
        )
    ).scalar_one()

    data = author_to_dict(user)
    data["bio"] = user.bio
    data["articles_count"] = published
    return data
