from dataclasses import dataclass

from fastapi import Depends, Header, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from haven.config import settings
from haven.database import get_db
from haven.errors import Unauthorized
from haven.models import Session, User
from haven.services import auth_service


class PaginationParams:
    """
    Reusable dependency that parses and validates pagination / sorting
    query parameters.

    Attributes
    ----------
    page:
        1-based page number (minimum 1).
    page_size:
        Items per page, clamped to ``settings.MAX_PAGE_SIZE``.
    sort_by:
        Column name to sort by; the service maps unknown names to
        ``created_at``.
    sort_order:
        ``"asc"`` or ``"desc"``.
    """

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number (1-based)."),
        page_size: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            le=100,
            description="Number of items returned per page (max 100).",
        ),
        sort_by: str = Query("published_at", description="Column name to sort results by."),
        sort_order: str = Query(
            "desc", pattern="^(asc|desc)$", description="Sort direction: 'asc' or 'desc'."
        ),
    ) -> None:
        self.page = page
        self.page_size = min(page_size, settings.MAX_PAGE_SIZE)
        self.sort_by = sort_by
        self.sort_order = sort_order


@dataclass
class ClientInfo:
    user_agent: str | None
    ip_address: str | None


def get_client_info(request: Request) -> ClientInfo:
    return ClientInfo(
        user_agent=request.headers.get("user-agent"),
        ip_address=request.client.host if request.client else None,
    )


@dataclass
class CurrentUser:
    user: User
    session: Session

    @property
    def id(self) -> int:
        return self.user.id


def _extract_token(authorization: str) -> str:
    scheme, _, credentials = authorization.strip().partition(" ")
    if credentials and scheme.lower() == "bearer":
        return credentials.strip()
    # Bare tokens are accepted as well.
    return authorization.strip()


async def get_current_user(
    authorization: str | None = Header(None),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """Require a valid bearer token tied to an active session."""
    if not authorization:
        raise Unauthorized("authentication required")
    user, session = await auth_service.authenticate(db, _extract_token(authorization))
    return CurrentUser(user=user, session=session)


async def get_optional_user(
    authorization: str | None = Header(None),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser | None:
    """Like ``get_current_user`` but anonymous requests yield None.  A
    token that is present but invalid is still rejected."""
    if not authorization:
        return None
    user, session = await auth_service.authenticate(db, _extract_token(authorization))
    return CurrentUser(user=user, session=session)
